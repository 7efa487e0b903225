"""systemd-backed periodic idle timer and one-shot re-enable job control."""

import shlex

from mcidle.core.privileged import result_detail, run_privileged, run_query, systemctl, systemd_run_once

REENABLE_DESCRIPTION = "Re-enable Minecraft auto-shutdown after maintenance"


def _reenable_timer(ctx):
    return f"{ctx.REENABLE_JOB_UNIT}.timer"


def _unit_is_active(ctx, unit):
    result = run_query(ctx, systemctl("is-active", unit, timeout=10.0))
    return (result.stdout or "").strip() == "active"


def stop_idle_scheduler(ctx):
    """Stop the periodic idle-check timer; return success."""
    result = run_privileged(ctx, systemctl("stop", ctx.IDLE_TIMER_UNIT))
    if result.returncode != 0:
        ctx.log_system("idle-timer-stop", command=ctx.IDLE_TIMER_UNIT, rejection_message=result_detail(result) or "stop failed")
        return False
    return True


def start_idle_scheduler(ctx):
    """Start the periodic idle-check timer; return success."""
    result = run_privileged(ctx, systemctl("start", ctx.IDLE_TIMER_UNIT))
    if result.returncode != 0:
        ctx.log_system("idle-timer-start", command=ctx.IDLE_TIMER_UNIT, rejection_message=result_detail(result) or "start failed")
        return False
    return True


def is_idle_scheduler_active(ctx):
    """Return whether the periodic idle-check timer is running."""
    return _unit_is_active(ctx, ctx.IDLE_TIMER_UNIT)


def cancel_reenable_job(ctx):
    """Cancel any pending re-enable job; succeeds when none exists.

    Both the transient timer and its service are stopped, then any failed
    record of them is reset so the next ``systemd-run --unit`` can reuse
    the name.
    """
    timer = _reenable_timer(ctx)
    service = f"{ctx.REENABLE_JOB_UNIT}.service"
    result = run_privileged(ctx, systemctl("stop", timer, service))
    if result.returncode != 0 and _unit_is_active(ctx, timer):
        ctx.log_system("reenable-cancel", command=timer, rejection_message=result_detail(result) or "stop failed")
        return False
    reset = run_privileged(ctx, systemctl("reset-failed", timer, service, timeout=10.0))
    if reset.returncode != 0:
        ctx.log_system("reenable-cancel", command=f"reset-failed {service}", rejection_message=result_detail(reset) or "nothing to reset")
    return True


def reenable_command_argv(ctx):
    """Return the argv the deferred job runs when maintenance expires."""
    return [*shlex.split(ctx.MCIDLE_COMMAND), "--config", str(ctx.CONFIG_PATH), "maintenance", "expire"]


def schedule_reenable_job(ctx, minutes):
    """Schedule the one-shot re-enable job ``minutes`` from now; return success."""
    command = systemd_run_once(ctx.REENABLE_JOB_UNIT, minutes, REENABLE_DESCRIPTION, reenable_command_argv(ctx))
    result = run_privileged(ctx, command)
    if result.returncode != 0:
        ctx.log_system("reenable-schedule", command=f"{minutes}m", rejection_message=result_detail(result) or "systemd-run failed")
        return False
    return True


def is_reenable_job_pending(ctx):
    """Return whether the one-shot re-enable timer is armed."""
    return _unit_is_active(ctx, _reenable_timer(ctx))
