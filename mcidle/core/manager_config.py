"""mcidle.env loader: every setting is declared once with its kind and default."""

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional


@dataclass(frozen=True)
class Setting:
    """One recognised config key. ``kind`` is str, int, float or Path."""
    key: str
    default: Any
    kind: type = str
    minimum: Optional[float] = None


MCIDLE_SETTINGS = (
    # Game server layout.
    Setting("SERVICE", "minecraft"),
    Setting("SERVER_DIR", Path("/opt/minecraft/server"), Path),
    Setting("LEVEL_NAME", "world"),
    Setting("SERVICE_ACCOUNT", "minecraft"),
    Setting("SERVER_PROPERTIES", None, Path),
    Setting("SERVICE_STOP_TIMEOUT_SECONDS", 60.0, float, minimum=1.0),
    # World archive store and scratch area.
    Setting("WORLD_STORE", Path("/opt/minecraft/worlds"), Path),
    Setting("STAGING_ROOT", Path("/tmp/mcidle-staging"), Path),
    # Idle tracking and maintenance override.
    Setting("DATA_DIR", Path("/var/lib/mcidle"), Path),
    Setting("IDLE_STATE_FILE", Path("/tmp/mc-idle-since"), Path),
    Setting("IDLE_THRESHOLD_SECONDS", 60, int, minimum=1),
    Setting("IDLE_TIMER_UNIT", "mc-idle-shutdown.timer"),
    Setting("REENABLE_JOB_UNIT", "maintenance-reenable"),
    Setting("MAINTENANCE_DEFAULT_MINUTES", 60, int, minimum=1),
    Setting("MCIDLE_COMMAND", ""),
    # RCON occupancy probe; port 0 defers to server.properties.
    Setting("RCON_HOST", "127.0.0.1"),
    Setting("RCON_PORT", 0, int, minimum=0),
    Setting("RCON_PASSWORD", ""),
    Setting("RCON_TIMEOUT_SECONDS", 5.0, float, minimum=0.5),
    # Logging and HTTP surface.
    Setting("DISPLAY_TZ", "UTC"),
    Setting("LOG_DIR", Path("/var/log/mcidle"), Path),
    Setting("SYSLOG_TAG", "mcidle"),
    Setting("WEB_HOST", "127.0.0.1"),
    Setting("WEB_PORT", 8765, int, minimum=1),
    Setting("MCIDLE_API_TOKEN", ""),
)


def parse_env_file(path):
    """Return ``{KEY: raw value}`` from a shell-style env file ({} when unreadable)."""
    values = {}
    try:
        lines = Path(path).read_text(encoding="utf-8").splitlines()
    except OSError:
        return values
    for raw in lines:
        line = raw.strip()
        if line.startswith("export "):
            line = line[len("export "):]
        key, sep, value = line.partition("=")
        key = key.strip()
        if not sep or not key or key.startswith("#"):
            continue
        value = value.strip()
        if len(value) >= 2 and value[0] == value[-1] and value[0] in "'\"":
            value = value[1:-1]
        values[key] = value
    return values


class ManagerConfig:
    """Typed view of one mcidle.env file.

    Only declared keys can be read. Blank or malformed values fall back to the
    declared default, numbers below ``minimum`` are raised to it, and relative
    paths are taken from the directory holding the config file.
    """

    def __init__(self, config_path, settings=MCIDLE_SETTINGS):
        self.config_path = Path(config_path)
        self.base_dir = self.config_path.parent
        self.settings = {setting.key: setting for setting in settings}
        self.raw = parse_env_file(self.config_path)

    def get(self, key):
        setting = self.settings[key]
        text = (self.raw.get(key) or "").strip()
        if not text:
            return setting.default
        if setting.kind is Path:
            path = Path(text)
            return path if path.is_absolute() else self.base_dir / path
        if setting.kind is str:
            return text
        try:
            value = setting.kind(text)
        except ValueError:
            return setting.default
        if setting.minimum is not None and value < setting.minimum:
            return setting.kind(setting.minimum)
        return value

    def as_dict(self):
        """Return every declared setting, resolved."""
        return {key: self.get(key) for key in self.settings}
