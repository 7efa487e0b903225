"""Idle tracking tick: occupancy -> persisted idle marker -> shutdown trigger."""

from pathlib import Path
import time

from mcidle.core.filesystem_utils import atomic_write_text, remove_file
from mcidle.state import IdleState

PROC_STAT = "/proc/stat"


def _shutdown_marker_path(ctx):
    path = Path(ctx.IDLE_STATE_FILE)
    return path.with_name(path.name + ".shutdown")


def _read_timestamp(path):
    """Read a Unix timestamp file; return None when absent or unreadable."""
    try:
        raw = Path(path).read_text(encoding="utf-8").strip()
    except OSError:
        return None
    if not raw:
        return None
    try:
        ts = float(raw)
    except ValueError:
        return None
    if ts <= 0:
        return None
    if ts > 1_000_000_000_000:
        ts = ts / 1000.0
    return ts


def load_idle_state(ctx):
    """Load the persisted idle marker."""
    idle_since = _read_timestamp(ctx.IDLE_STATE_FILE)
    if idle_since is None:
        return IdleState()
    return IdleState(idle_since=idle_since, shutdown_issued_at=_read_timestamp(_shutdown_marker_path(ctx)))


def save_idle_state(ctx, state):
    """Persist the idle marker; an absent ``idle_since`` removes it."""
    if state.idle_since is None:
        clear_idle_state(ctx)
        return
    atomic_write_text(ctx.IDLE_STATE_FILE, f"{int(state.idle_since)}\n")
    if state.shutdown_issued_at is None:
        remove_file(_shutdown_marker_path(ctx))
    else:
        atomic_write_text(_shutdown_marker_path(ctx), f"{int(state.shutdown_issued_at)}\n")


def clear_idle_state(ctx):
    """Remove the idle marker; return whether one was present."""
    existed = remove_file(ctx.IDLE_STATE_FILE)
    remove_file(_shutdown_marker_path(ctx))
    return existed


def read_host_boot_time(proc_stat=PROC_STAT):
    """Return the host boot time (``btime`` in /proc/stat), or None."""
    try:
        with open(proc_stat, encoding="utf-8") as handle:
            for line in handle:
                if line.startswith("btime "):
                    return float(line.split()[1])
    except (OSError, ValueError, IndexError):
        return None
    return None


def format_countdown(seconds):
    """Format remaining seconds as ``MM:SS`` with floor at zero."""
    if seconds <= 0:
        return "00:00"
    mins = int(seconds // 60)
    secs = int(seconds % 60)
    return f"{mins:02d}:{secs:02d}"


def get_idle_countdown(ctx, state=None, now=None):
    """Return remaining time before idle shutdown, or ``--:--`` when not idle."""
    if state is None:
        state = ctx.load_idle_state()
    if not state.idle:
        return "--:--"
    now = time.time() if now is None else float(now)
    return format_countdown(ctx.IDLE_THRESHOLD_SECONDS - (now - state.idle_since))


def _tick_result(action, players, **extra):
    payload = {"ok": True, "action": action, "players": players}
    payload.update(extra)
    return payload


def run_idle_check(ctx, now=None):
    """Run one idle-check tick and return what happened."""
    now = time.time() if now is None else float(now)
    if ctx.is_maintenance_active(now):
        ctx.log_system("idle-check", command="skipped: maintenance mode active")
        return _tick_result("maintenance", None)

    reading = ctx.probe_occupancy()
    if not reading.known:
        ctx.log_system("idle-check", command="players=unknown (server may be starting)")
        return _tick_result("unknown", None)

    state = ctx.load_idle_state()
    if state.idle:
        boot_time = ctx.host_boot_time()
        if boot_time is not None and state.idle_since < boot_time:
            ctx.log_system("idle-check", command="idle marker predates host boot; starting a new idle episode")
            ctx.clear_idle_state()
            state = IdleState()

    if reading.count > 0:
        if state.idle:
            ctx.clear_idle_state()
            ctx.log_system("idle-check", command=f"players={reading.count}; players joined - idle timer reset")
            return _tick_result("players_joined", reading.count)
        ctx.log_system("idle-check", command=f"players={reading.count}")
        return _tick_result("active", reading.count)

    if not state.idle:
        ctx.save_idle_state(IdleState(idle_since=now))
        ctx.log_system("idle-check", command="players=0; idle countdown started")
        return _tick_result("idle_started", 0, idle_seconds=0, threshold_seconds=ctx.IDLE_THRESHOLD_SECONDS)

    idle_seconds = max(0, int(now - state.idle_since))
    threshold = ctx.IDLE_THRESHOLD_SECONDS
    if idle_seconds < threshold:
        ctx.log_system("idle-check", command=f"players=0; idle for {idle_seconds}s (threshold {threshold}s)")
        return _tick_result("idle", 0, idle_seconds=idle_seconds, threshold_seconds=threshold)

    if state.shutdown_issued_at is not None:
        ctx.log_system("idle-check", command=f"players=0; idle for {idle_seconds}s; power-off already issued")
        return _tick_result("shutdown_pending", 0, idle_seconds=idle_seconds, threshold_seconds=threshold)

    state.shutdown_issued_at = now
    ctx.save_idle_state(state)
    shutdown = ctx.shutdown_host(idle_seconds)
    if not shutdown.get("ok"):
        # Power-off did not happen; the next tick tries again.
        state.shutdown_issued_at = None
        ctx.save_idle_state(state)
    return _tick_result(
        "shutdown",
        0,
        idle_seconds=idle_seconds,
        threshold_seconds=threshold,
        shutdown_ok=bool(shutdown.get("ok")),
    )
