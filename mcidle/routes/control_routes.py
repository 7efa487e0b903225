"""Control API route registration for the mcidle HTTP surface."""

from functools import wraps

from flask import jsonify, request
from werkzeug.exceptions import HTTPException

from mcidle.core.response_helpers import (
    internal_error_response,
    result_response,
    token_rejected_response,
    token_unconfigured_response,
)
from mcidle.core.security import is_api_token_valid
from mcidle.services.idle_tracker import get_idle_countdown, run_idle_check
from mcidle.services.maintenance_override import (
    disable_maintenance,
    enable_maintenance,
    maintenance_status,
)
from mcidle.services.world_archive_store import list_worlds


def _requested_minutes():
    """Return the ``minutes`` field from form or JSON body, or None."""
    minutes = request.form.get("minutes")
    if minutes is None and request.is_json:
        payload = request.get_json(silent=True) or {}
        minutes = payload.get("minutes")
    return minutes


def register_control_routes(app, state):
    """Register status, world listing, maintenance and idle-check routes."""

    def require_token(view):
        @wraps(view)
        def wrapped(*args, **kwargs):
            if not state.API_TOKEN:
                state.log_action(request.endpoint or "api", rejection_message="API token not configured.")
                return token_unconfigured_response()
            if not is_api_token_valid(request, state.API_TOKEN):
                state.log_action(request.endpoint or "api", rejection_message="Invalid API token.")
                return token_rejected_response()
            return view(*args, **kwargs)

        return wrapped

    # Route: /status
    @app.route("/status", methods=["GET"])
    def status():
        """Return maintenance status, server state and idle countdown."""
        payload = maintenance_status(state)
        payload["service_status"] = state.get_status()
        payload["idle_countdown"] = get_idle_countdown(state)
        return jsonify(payload)

    # Route: /worlds
    @app.route("/worlds", methods=["GET"])
    def worlds():
        return jsonify(list_worlds(state))

    # Route: /maintenance/enable
    @app.route("/maintenance/enable", methods=["POST"])
    @require_token
    def maintenance_enable():
        return result_response(enable_maintenance(state, _requested_minutes()))

    # Route: /maintenance/disable
    @app.route("/maintenance/disable", methods=["POST"])
    @require_token
    def maintenance_disable():
        return result_response(disable_maintenance(state))

    # Route: /idle-check
    @app.route("/idle-check", methods=["POST"])
    @require_token
    def idle_check():
        """Run one idle tick on demand."""
        return result_response(run_idle_check(state))

    @app.errorhandler(Exception)
    def handle_unexpected_error(exc):
        if isinstance(exc, HTTPException):
            return exc
        state.log_exception(f"route:{request.path}", exc)
        return internal_error_response()
