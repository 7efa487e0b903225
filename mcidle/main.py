"""Idle-lifecycle controller and world manager for a self-hosted Minecraft server.

This module wires:
- Config loading (mcidle.env KEY=VALUE file)
- Action/system log writers
- Service delegates bound to one shared AppState
"""

from pathlib import Path
import shutil
import sys
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from mcidle.core.config import env_override, resolve_config_path
from mcidle.core.logging_setup import build_loggers
from mcidle.core.manager_config import ManagerConfig
from mcidle.core.operation_lock import FileLock
from mcidle.services.runtime_bindings import build_runtime_bindings
from mcidle.state import AppState

APP_DIR = Path(__file__).resolve().parent.parent


def _display_tz(name):
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        return ZoneInfo("UTC")


def _default_mcidle_command():
    found = shutil.which("mcidle")
    if found:
        return found
    return f"{sys.executable} -m mcidle.cli"


def load_settings(config_path=None):
    """Read the config file into the runtime namespace (no bindings yet)."""
    config_path = Path(config_path).absolute() if config_path else resolve_config_path(APP_DIR)
    ns = ManagerConfig(config_path).as_dict()
    ns["CONFIG_PATH"] = config_path

    ns["SERVER_PROPERTIES"] = ns["SERVER_PROPERTIES"] or ns["SERVER_DIR"] / "server.properties"
    ns["OFF_STATES"] = frozenset({"inactive", "failed"})

    ns["IMPORT_ROOT"] = ns["STAGING_ROOT"] / "world-import"
    ns["SWITCH_STAGE"] = ns["STAGING_ROOT"] / "world-switch-stage"
    ns["world_lock"] = FileLock(ns["WORLD_STORE"] / ".world-manager.lock")

    ns["MAINTENANCE_STATE_FILE"] = ns["DATA_DIR"] / "maintenance.json"
    ns["MCIDLE_COMMAND"] = ns["MCIDLE_COMMAND"] or _default_mcidle_command()
    ns["RCON_PASSWORD"] = env_override(ns["RCON_PASSWORD"], "RCON_PASSWORD")

    ns["DISPLAY_TZ"] = _display_tz(ns["DISPLAY_TZ"])
    ns["ACTION_LOG_FILE"] = ns["LOG_DIR"] / "mcidle-actions.log"
    ns["SYSTEM_LOG_FILE"] = ns["LOG_DIR"] / "mcidle.log"
    ns["API_TOKEN"] = env_override(ns.pop("MCIDLE_API_TOKEN"), "MCIDLE_API_TOKEN")
    return ns


def build_state(config_path=None):
    """Load config, bind services, and return the shared AppState."""
    ns = load_settings(config_path)
    log_action, log_system, log_exception = build_loggers(
        ns["DISPLAY_TZ"],
        ns["ACTION_LOG_FILE"],
        ns["SYSTEM_LOG_FILE"],
    )
    ns["log_action"] = log_action
    ns["log_system"] = log_system
    ns["log_exception"] = log_exception
    ns.update(build_runtime_bindings(ns))
    state = AppState.from_namespace(ns)
    ns["STATE"] = state
    return state
