"""Host power-off for idle shutdown."""

from mcidle.core.privileged import power_off, result_detail, run_privileged, syslog_notice


def syslog(ctx, message):
    """Send a notice to the host syslog; failures are logged, not raised."""
    result = run_privileged(ctx, syslog_notice(ctx.SYSLOG_TAG, message))
    if result.returncode != 0:
        ctx.log_system("syslog", command=message, rejection_message=result_detail(result) or "logger failed")
        return False
    return True


def shutdown_host(ctx, idle_seconds, reason="idle"):
    """Issue host power-off, leaving a durable record of the idle duration."""
    message = f"Minecraft idle shutdown: No players for {int(idle_seconds)}s"
    ctx.log_action("shutdown", command=f"reason={reason} idle={int(idle_seconds)}s threshold={ctx.IDLE_THRESHOLD_SECONDS}s")
    ctx.syslog(message)
    result = run_privileged(ctx, power_off())
    if result.returncode != 0:
        detail = result_detail(result) or "shutdown command failed"
        ctx.log_action("shutdown", command=f"reason={reason}", rejection_message=detail)
        return {"ok": False, "error": "shutdown_failed", "message": detail}
    return {"ok": True, "message": message}
