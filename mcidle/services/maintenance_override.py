"""Maintenance override: suspend idle auto-shutdown for a bounded window."""

from datetime import datetime
import json
from pathlib import Path
import re
import time

from mcidle.core.filesystem_utils import atomic_write_json, remove_file
from mcidle.state import MaintenanceWindow

_MINUTES_RE = re.compile(r"[0-9]+")


def parse_duration_minutes(value, default):
    """Return a positive whole number of minutes, ``default`` when omitted, else None."""
    if value is None:
        return default
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value if value > 0 else None
    text = str(value).strip()
    if not text:
        return default
    if not _MINUTES_RE.fullmatch(text):
        return None
    minutes = int(text)
    return minutes if minutes > 0 else None


def format_timestamp(ctx, ts):
    """Render an epoch timestamp in the display timezone."""
    if ts is None:
        return ""
    return datetime.fromtimestamp(ts, tz=ctx.DISPLAY_TZ).strftime("%Y-%m-%d %H:%M:%S %Z")


def load_maintenance_window(ctx):
    """Load the persisted maintenance window (inactive when missing/corrupt)."""
    try:
        payload = json.loads(Path(ctx.MAINTENANCE_STATE_FILE).read_text(encoding="utf-8"))
    except (OSError, ValueError):
        return MaintenanceWindow()
    if not isinstance(payload, dict):
        return MaintenanceWindow()
    return MaintenanceWindow.from_dict(payload)


def save_maintenance_window(ctx, window):
    atomic_write_json(ctx.MAINTENANCE_STATE_FILE, window.to_dict())


def clear_maintenance_window(ctx):
    remove_file(ctx.MAINTENANCE_STATE_FILE)


def is_maintenance_active(ctx, now=None):
    """Return whether a maintenance window is in force right now.

    A recorded window only counts while its end time is ahead and the
    re-enable job is still armed. The job is a transient systemd unit that
    does not survive a reboot, so a window found without it is stale and
    is cleared here.
    """
    window = ctx.load_maintenance_window()
    if not window.active:
        return False
    now = time.time() if now is None else float(now)
    if window.reenable_at is not None and now < window.reenable_at and ctx.is_reenable_job_pending():
        return True
    ctx.clear_maintenance_window()
    ctx.log_system(
        "maintenance-stale",
        command=f"window until {format_timestamp(ctx, window.reenable_at) or 'unknown'} expired or lost its re-enable job; cleared",
    )
    return False


def _maintenance_failed(message, error="scheduler_failed", stage=""):
    return {"ok": False, "error": error, "message": message, "stage": stage}


def enable_maintenance(ctx, duration_minutes=None, now=None):
    """Stop auto-shutdown and arm exactly one deferred re-enable job."""
    minutes = parse_duration_minutes(duration_minutes, ctx.MAINTENANCE_DEFAULT_MINUTES)
    if minutes is None:
        message = "Duration must be a positive number (minutes)."
        ctx.log_action("maintenance-enable", command=str(duration_minutes), rejection_message=message)
        return _maintenance_failed(message, error="invalid_input", stage="validate")
    now = time.time() if now is None else float(now)

    # A prior pending job must be gone before the new one is armed.
    if not ctx.cancel_reenable_job():
        message = "Could not cancel the previously scheduled re-enable job."
        ctx.log_action("maintenance-enable", command=f"{minutes}m", rejection_message=message)
        return _maintenance_failed(message, stage="cancel_reenable")

    if not ctx.stop_idle_scheduler():
        message = f"Could not stop {ctx.IDLE_TIMER_UNIT}."
        ctx.log_action("maintenance-enable", command=f"{minutes}m", rejection_message=message)
        return _maintenance_failed(message, stage="stop_idle_timer")

    ctx.clear_idle_state()

    if not ctx.schedule_reenable_job(minutes):
        restarted = ctx.start_idle_scheduler()
        ctx.clear_maintenance_window()
        message = "Could not schedule automatic re-enable; maintenance mode not enabled."
        if not restarted:
            message += f" {ctx.IDLE_TIMER_UNIT} is stopped; run 'mcidle maintenance disable'."
        ctx.log_action("maintenance-enable", command=f"{minutes}m", rejection_message=message)
        return _maintenance_failed(message, stage="schedule_reenable")

    reenable_at = now + minutes * 60
    ctx.save_maintenance_window(MaintenanceWindow(active=True, reenable_at=reenable_at, job_unit=ctx.REENABLE_JOB_UNIT))
    ctx.log_action("maintenance-enable", command=f"{minutes}m until {format_timestamp(ctx, reenable_at)}")
    return {
        "ok": True,
        "active": True,
        "minutes": minutes,
        "reenable_at": reenable_at,
        "reenable_at_text": format_timestamp(ctx, reenable_at),
        "message": f"Maintenance mode enabled for {minutes} minutes.",
    }


def disable_maintenance(ctx):
    """Cancel the pending re-enable job and resume auto-shutdown now."""
    was_active = ctx.load_maintenance_window().active
    if not ctx.cancel_reenable_job():
        message = "Could not cancel the scheduled re-enable job."
        ctx.log_action("maintenance-disable", rejection_message=message)
        return _maintenance_failed(message, stage="cancel_reenable")

    if not ctx.start_idle_scheduler():
        message = f"Could not start {ctx.IDLE_TIMER_UNIT}."
        ctx.log_action("maintenance-disable", rejection_message=message)
        return _maintenance_failed(message, stage="start_idle_timer")

    ctx.clear_idle_state()
    ctx.clear_maintenance_window()
    ctx.log_action("maintenance-disable", command="was_active=true" if was_active else "already off")
    return {
        "ok": True,
        "active": False,
        "was_active": was_active,
        "message": f"Maintenance mode disabled. Auto-shutdown after {ctx.IDLE_THRESHOLD_SECONDS}s with no players.",
    }


def expire_maintenance(ctx):
    """Deferred job body: resume auto-shutdown when the window ends."""
    if not ctx.start_idle_scheduler():
        message = f"Could not start {ctx.IDLE_TIMER_UNIT} at end of maintenance."
        ctx.log_action("maintenance-expire", rejection_message=message)
        return _maintenance_failed(message, stage="start_idle_timer")
    ctx.clear_idle_state()
    ctx.clear_maintenance_window()
    ctx.syslog("Maintenance mode ended - auto-shutdown re-enabled")
    ctx.log_action("maintenance-expire", command="auto-shutdown re-enabled")
    return {"ok": True, "active": False, "message": "Maintenance mode ended - auto-shutdown re-enabled."}


def maintenance_status(ctx, now=None):
    """Report override state plus best-effort occupancy and idle progress."""
    now = time.time() if now is None else float(now)
    scheduler_active = ctx.is_idle_scheduler_active()
    active = not scheduler_active
    window = ctx.load_maintenance_window()
    job_pending = ctx.is_reenable_job_pending() if active else False
    reenable_at = window.reenable_at if (active and job_pending) else None

    players = None
    try:
        players = ctx.probe_occupancy().count
    except Exception as exc:
        ctx.log_exception("maintenance_status/probe_occupancy", exc)

    idle_state = ctx.load_idle_state()
    idle_seconds = max(0, int(now - idle_state.idle_since)) if idle_state.idle else None

    status = {
        "ok": True,
        "active": active,
        "scheduler_active": scheduler_active,
        "reenable_job_pending": job_pending,
        "reenable_at": reenable_at,
        "reenable_at_text": format_timestamp(ctx, reenable_at),
        "reenable_job_unit": (window.job_unit or ctx.REENABLE_JOB_UNIT) if job_pending else None,
        "players": players,
        "players_text": "could not determine" if players is None else str(players),
        "idle_seconds": idle_seconds,
        "threshold_seconds": ctx.IDLE_THRESHOLD_SECONDS,
        "warning": "",
    }
    if active and not job_pending:
        status["warning"] = "No automatic re-enable scheduled! Run 'mcidle maintenance disable' to re-enable."
    return status
