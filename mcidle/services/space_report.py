"""Observational disk-space reports around storage-heavy world steps."""

from pathlib import Path
import shutil

from mcidle.core.filesystem_utils import dir_size_bytes, format_file_size


def _free_space_line(path):
    probe = Path(path)
    while not probe.exists() and probe != probe.parent:
        probe = probe.parent
    usage = shutil.disk_usage(probe)
    percent = (usage.used / usage.total) * 100.0 if usage.total else 0.0
    return (
        f"Free space on {probe}: {format_file_size(usage.free)} of "
        f"{format_file_size(usage.total)} ({percent:.0f}% used)"
    )


def space_check(ctx, label, progress_callback=None):
    """Report free space and key path sizes; never blocks or raises."""
    lines = [f"=== Disk Check: {label} ==="]
    try:
        lines.append(_free_space_line(ctx.WORLD_STORE))
        paths = [*ctx.live_world_dirs(), Path(ctx.WORLD_STORE), Path(ctx.STAGING_ROOT)]
        for path in paths:
            if path.exists():
                lines.append(f"  {format_file_size(dir_size_bytes(path)):>10}  {path}")
    except Exception as exc:
        ctx.log_exception(f"space_check/{label}", exc)
        lines.append("  (disk usage unavailable)")

    ctx.log_system("space-check", command=" | ".join(lines))
    if progress_callback:
        for line in lines:
            try:
                progress_callback(line)
            except Exception:
                pass
    return lines
