"""Typed data model and application runtime state container."""
from dataclasses import dataclass
from collections.abc import Iterator, MutableMapping
from pathlib import Path
from typing import Any, Optional


@dataclass(frozen=True)
class OccupancyReading:
    """One player-count probe result; ``count`` is None when unknown."""
    count: Optional[int]
    observed_at: float

    @property
    def known(self) -> bool:
        return self.count is not None


@dataclass
class IdleState:
    """Persisted idle marker plus the per-episode power-off guard."""
    idle_since: Optional[float] = None
    shutdown_issued_at: Optional[float] = None

    @property
    def idle(self) -> bool:
        return self.idle_since is not None


@dataclass
class MaintenanceWindow:
    """Operator maintenance override window."""
    active: bool = False
    reenable_at: Optional[float] = None
    job_unit: Optional[str] = None

    def to_dict(self) -> dict:
        return {"active": self.active, "reenable_at": self.reenable_at, "job_unit": self.job_unit}

    @classmethod
    def from_dict(cls, payload: dict) -> "MaintenanceWindow":
        reenable_at = payload.get("reenable_at")
        try:
            reenable_at = float(reenable_at) if reenable_at is not None else None
        except (TypeError, ValueError):
            reenable_at = None
        return cls(
            active=bool(payload.get("active")),
            reenable_at=reenable_at,
            job_unit=payload.get("job_unit") or None,
        )


@dataclass(frozen=True)
class WorldArchive:
    """One immutable named world archive in the library."""
    name: str
    path: Path
    created_at: float
    size_bytes: int = 0


_STATE_CORE_KEYS = (
    "ACTION_LOG_FILE",
    "API_TOKEN",
    "CONFIG_PATH",
    "DATA_DIR",
    "DISPLAY_TZ",
    "IDLE_STATE_FILE",
    "IDLE_THRESHOLD_SECONDS",
    "IDLE_TIMER_UNIT",
    "IMPORT_ROOT",
    "LEVEL_NAME",
    "LOG_DIR",
    "MAINTENANCE_DEFAULT_MINUTES",
    "MAINTENANCE_STATE_FILE",
    "MCIDLE_COMMAND",
    "OFF_STATES",
    "RCON_HOST",
    "RCON_PASSWORD",
    "RCON_PORT",
    "RCON_TIMEOUT_SECONDS",
    "REENABLE_JOB_UNIT",
    "SERVER_DIR",
    "SERVER_PROPERTIES",
    "SERVICE",
    "SERVICE_ACCOUNT",
    "SERVICE_STOP_TIMEOUT_SECONDS",
    "STAGING_ROOT",
    "SWITCH_STAGE",
    "SYSLOG_TAG",
    "SYSTEM_LOG_FILE",
    "WEB_HOST",
    "WEB_PORT",
    "WORLD_STORE",
    "world_lock",
)

_STATE_BINDING_KEYS = (
    "cancel_reenable_job",
    "chown_paths",
    "clear_idle_state",
    "clear_maintenance_window",
    "get_status",
    "host_boot_time",
    "is_idle_scheduler_active",
    "is_maintenance_active",
    "is_reenable_job_pending",
    "live_world_dirs",
    "load_idle_state",
    "load_maintenance_window",
    "log_action",
    "log_exception",
    "log_system",
    "probe_occupancy",
    "save_idle_state",
    "save_maintenance_window",
    "schedule_reenable_job",
    "shutdown_host",
    "space_check",
    "start_idle_scheduler",
    "start_server",
    "stop_idle_scheduler",
    "stop_server",
    "syslog",
)

REQUIRED_STATE_KEYS = _STATE_CORE_KEYS + _STATE_BINDING_KEYS
REQUIRED_STATE_KEY_SET = frozenset(REQUIRED_STATE_KEYS)


class AppState(MutableMapping[str, Any]):
    """Strict runtime mapping with attribute and dict-style access."""

    __slots__ = ("_data",)

    def __init__(self, data: dict[str, Any]):
        missing = [key for key in REQUIRED_STATE_KEYS if key not in data]
        if missing:
            raise KeyError(f"Missing state members: {', '.join(missing)}")
        self._data = {key: data[key] for key in REQUIRED_STATE_KEYS}

    @classmethod
    def from_namespace(cls, namespace: dict[str, Any]) -> "AppState":
        """Build AppState from a runtime namespace dictionary."""
        data = {}
        for key in REQUIRED_STATE_KEYS:
            if key in namespace:
                data[key] = namespace[key]
        return cls(data)

    def __getitem__(self, key: str) -> Any:
        try:
            return self._data[key]
        except KeyError as exc:
            raise KeyError(key) from exc

    def __setitem__(self, key: str, value: Any) -> None:
        if key not in REQUIRED_STATE_KEY_SET:
            raise KeyError(key)
        self._data[key] = value

    def __delitem__(self, key: str) -> None:
        raise TypeError("AppState does not support deleting members")

    def __iter__(self) -> Iterator[str]:
        return iter(REQUIRED_STATE_KEYS)

    def __len__(self) -> int:
        return len(REQUIRED_STATE_KEYS)

    def __getattr__(self, name: str) -> Any:
        """Support attribute-style state reads used across services."""
        if name in REQUIRED_STATE_KEY_SET:
            return self._data[name]
        raise AttributeError(name)

    def __setattr__(self, name: str, value: Any) -> None:
        """Support attribute-style state writes for known keys only."""
        if name == "_data":
            object.__setattr__(self, name, value)
            return
        if name in REQUIRED_STATE_KEY_SET:
            self._data[name] = value
            return
        raise AttributeError(name)
