"""App factory and runtime wiring entrypoint."""

from flask import Flask

from mcidle.core.config import apply_default_flask_config
from mcidle.routes.control_routes import register_control_routes


def create_app(state=None, config_path=None):
    """Return the Flask app bound to ``state`` (built from config when omitted)."""
    if state is None:
        from mcidle.main import build_state

        state = build_state(config_path)
    app = Flask(__name__)
    apply_default_flask_config(app)
    register_control_routes(app, state)
    return app
