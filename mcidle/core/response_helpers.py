"""Shared Flask JSON response helpers for the control API."""

from flask import jsonify

_ERROR_STATUS_CODES = {
    "invalid_input": 400,
    "not_found": 404,
    "world_folder_not_found": 404,
    "already_exists": 409,
    "operation_in_progress": 409,
    "corrupt_archive": 422,
    "scheduler_failed": 500,
    "stage_failure": 500,
}


def result_response(result):
    """Return a service result dict as JSON with a matching status code."""
    if result.get("ok"):
        return jsonify(result)
    status_code = _ERROR_STATUS_CODES.get(result.get("error", ""), 500)
    return jsonify(result), status_code


def token_rejected_response():
    """Return standardized API token rejection response."""
    return jsonify({
        "ok": False,
        "error": "token_invalid",
        "message": "API token missing or incorrect.",
    }), 403


def token_unconfigured_response():
    """Return response when write routes are disabled by missing config."""
    return jsonify({
        "ok": False,
        "error": "token_unconfigured",
        "message": "MCIDLE_API_TOKEN is not configured; write operations are disabled.",
    }), 503


def internal_error_response():
    """Return generic internal-error response payload."""
    return jsonify({"ok": False, "error": "internal_error", "message": "Internal server error."}), 500
