"""Game server systemd unit control and live world directory helpers."""

from pathlib import Path
import time

from mcidle.core.privileged import chown_tree, result_detail, run_privileged, run_query, systemctl


def get_status(ctx):
    """Return the raw systemd state for the game server unit."""
    result = run_query(ctx, systemctl("is-active", ctx.SERVICE, timeout=10.0))
    status = (result.stdout or "").strip()
    return status or "unknown"


def stop_server(ctx):
    """Stop the game server unit and wait for an off-state; return success."""
    result = run_privileged(ctx, systemctl("stop", ctx.SERVICE, timeout=ctx.SERVICE_STOP_TIMEOUT_SECONDS))
    if result.returncode != 0:
        ctx.log_system("server-stop", command=ctx.SERVICE, rejection_message=result_detail(result) or "systemctl stop failed")

    deadline = time.time() + 10
    while True:
        if get_status(ctx) in ctx.OFF_STATES:
            return True
        if time.time() >= deadline:
            return False
        time.sleep(0.5)


def start_server(ctx):
    """Start the game server unit; return success."""
    result = run_privileged(ctx, systemctl("start", ctx.SERVICE))
    if result.returncode != 0:
        ctx.log_system("server-start", command=ctx.SERVICE, rejection_message=result_detail(result) or "systemctl start failed")
        return False
    return True


def live_world_dirs(ctx):
    """Return (root, nether, end) live world directories."""
    server_dir = Path(ctx.SERVER_DIR)
    level = ctx.LEVEL_NAME
    return (
        server_dir / level,
        server_dir / f"{level}_nether",
        server_dir / f"{level}_the_end",
    )


def chown_paths(ctx, *paths):
    """Hand ownership of existing paths to the service account; return success."""
    existing = [str(p) for p in paths if Path(p).exists()]
    if not existing or not ctx.SERVICE_ACCOUNT:
        return True
    owner = f"{ctx.SERVICE_ACCOUNT}:{ctx.SERVICE_ACCOUNT}"
    result = run_privileged(ctx, chown_tree(owner, *existing))
    if result.returncode != 0:
        ctx.log_system("chown", command=" ".join(existing), rejection_message=result_detail(result) or "chown failed")
        return False
    return True
