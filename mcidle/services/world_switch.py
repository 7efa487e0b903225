"""Switch the live world to a stored archive, always behind a safety archive."""

from datetime import datetime
from pathlib import Path
import shutil
import time

from mcidle.services.world_archive_store import (
    LEVEL_MARKER,
    WorldStageError,
    _world_failed,
    archive_exists,
    archive_path,
    extract_archive,
    import_world,
    invalid_name_message,
    make_progress,
    present_parts,
    validate_archive_name,
    write_archive,
)


def _stamp(ctx, now):
    return datetime.fromtimestamp(now, tz=ctx.DISPLAY_TZ).strftime("%Y%m%d-%H%M%S")


def safety_archive_name(ctx, target, now):
    """Return a free ``auto-before-<target>-<stamp>`` archive name."""
    base = f"auto-before-{target}-{_stamp(ctx, now)}"
    name = base
    suffix = 1
    while archive_exists(ctx, name):
        name = f"{base}-{suffix}"
        suffix += 1
    return name


def _replace_live_world(ctx, stage_dir):
    server_dir = Path(ctx.SERVER_DIR)
    live_dirs = ctx.live_world_dirs()
    for path in live_dirs:
        if path.exists():
            shutil.rmtree(path)
    parts = present_parts(ctx, stage_dir)
    for part in parts:
        shutil.move(str(Path(stage_dir) / part), str(server_dir / part))
    ctx.chown_paths(*live_dirs)
    return parts


def _switch_world_locked(ctx, name, now, progress):
    server_dir = Path(ctx.SERVER_DIR)
    stage_dir = Path(ctx.SWITCH_STAGE)
    safety_name = safety_archive_name(ctx, name, now)

    ctx.space_check("Before pre-switch backup", progress)
    progress("Stopping game server.")
    if not ctx.stop_server():
        return _world_failed("Could not stop the game server; live world unchanged.", stage="stop_server")

    live_touched = False
    safety_created = False
    result = None
    try:
        live_parts = present_parts(ctx, server_dir)
        if ctx.LEVEL_NAME not in live_parts:
            raise WorldStageError(
                f"Live world directory {server_dir / ctx.LEVEL_NAME} not found; refusing to switch without a safety archive.",
                error="not_found",
                stage="safety_archive",
            )
        try:
            safety_path = write_archive(ctx, server_dir, live_parts, safety_name)
        except Exception as exc:
            raise WorldStageError(f"Failed to create safety archive '{safety_name}': {exc}", stage="safety_archive") from exc
        safety_created = True
        progress(f"Safety archive created: {safety_path}")
        ctx.space_check("After pre-switch backup", progress)

        ctx.space_check("Before target extraction to staging", progress)
        shutil.rmtree(stage_dir, ignore_errors=True)
        progress(f"Extracting '{name}' to staging.")
        extract_archive(archive_path(ctx, name), stage_dir, stage="extract")
        if not (stage_dir / ctx.LEVEL_NAME / LEVEL_MARKER).is_file():
            raise WorldStageError(
                f"Archive '{name}' has no {ctx.LEVEL_NAME}/{LEVEL_MARKER}; live world unchanged.",
                error="corrupt_archive",
                stage="verify",
            )
        ctx.space_check("After target extraction to staging", progress)

        progress("Replacing live world.")
        live_touched = True
        parts = _replace_live_world(ctx, stage_dir)
        ctx.space_check("After live world replacement", progress)
        result = {
            "ok": True,
            "archive": name,
            "safety_archive": safety_name,
            "parts": parts,
            "message": f"Switch complete. Auto-backup created: {safety_path}",
        }
    except WorldStageError as exc:
        result = _world_failed(exc.message, error="stage_failure" if live_touched else exc.error, stage=exc.stage)
    except Exception as exc:
        ctx.log_exception("switch_world", exc)
        result = _world_failed(f"World switch failed: {exc}", stage="replace" if live_touched else "switch")

    if safety_created:
        result["safety_archive"] = safety_name

    if live_touched and not result["ok"]:
        result["message"] += f" Live world may be incomplete; server left stopped. Restore with: mcidle world switch {safety_name}"
        return result

    progress("Starting game server.")
    if not ctx.start_server():
        if result["ok"]:
            result = {**result, **_world_failed("World switched, but the game server failed to start.", stage="start_server")}
        else:
            result["message"] += " The game server also failed to restart."
    return result


def switch_world(ctx, name, now=None, progress_callback=None):
    """Replace the live world with archive ``name``; archive the current one first."""
    progress = make_progress(progress_callback)
    if not validate_archive_name(name):
        return _world_failed(invalid_name_message(name), error="invalid_input", stage="validate")
    if not archive_exists(ctx, name):
        message = f"Archive '{name}' not found in {ctx.WORLD_STORE}."
        ctx.log_action("world-switch", command=name, rejection_message=message)
        return _world_failed(message, error="not_found", stage="validate")
    now = time.time() if now is None else float(now)

    if not ctx.world_lock.acquire(blocking=False):
        return _world_failed("Another world operation is already in progress.", error="operation_in_progress", stage="lock")
    try:
        result = _switch_world_locked(ctx, name, now, progress)
    finally:
        shutil.rmtree(ctx.SWITCH_STAGE, ignore_errors=True)
        ctx.world_lock.release()

    if result["ok"]:
        ctx.log_action("world-switch", command=f"{name} (safety: {result['safety_archive']})")
    else:
        ctx.log_action("world-switch", command=name, rejection_message=f"[{result['stage']}] {result['message']}")
    return result


def restore_from_zip(ctx, zip_path, world_folder=None, now=None, progress_callback=None):
    """Import a portable zip as ``restored-<stamp>`` and switch to it."""
    now = time.time() if now is None else float(now)
    name = f"restored-{_stamp(ctx, now)}"
    imported = import_world(ctx, zip_path, name, world_folder=world_folder, progress_callback=progress_callback)
    if not imported["ok"]:
        return imported
    result = switch_world(ctx, name, now=now, progress_callback=progress_callback)
    result["imported_archive"] = name
    return result
