"""Runtime configuration helpers for mcidle."""

import os
from pathlib import Path

DEFAULT_CONFIG_CANDIDATES = (
    Path("/etc/mcidle/mcidle.env"),
)


def resolve_config_path(app_dir, env_name="MCIDLE_CONFIG"):
    """Return the config file path from env, system location, or app dir."""
    explicit = (os.environ.get(env_name) or "").strip()
    if explicit:
        return Path(explicit).absolute()
    for candidate in DEFAULT_CONFIG_CANDIDATES:
        if candidate.exists():
            return candidate
    return Path(app_dir) / "mcidle.env"


def env_override(configured, *env_names):
    """Return the first non-blank environment value among ``env_names``, else ``configured``."""
    for name in env_names:
        value = (os.environ.get(name) or "").strip()
        if value:
            return value
    return (configured or "").strip()


def apply_default_flask_config(app):
    """Apply baseline Flask runtime config values."""
    app.config["JSON_SORT_KEYS"] = False
    app.config["MAX_CONTENT_LENGTH"] = 64 * 1024
