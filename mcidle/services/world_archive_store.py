"""Named world archive library: list, save live world, import portable zips."""

from datetime import datetime
import gzip
import os
from pathlib import Path
import re
import shutil
import tarfile
import zipfile
import zlib

from mcidle.core.filesystem_utils import dir_size_bytes, format_file_size, list_archive_files, safe_child_dir
from mcidle.state import WorldArchive

ARCHIVE_SUFFIX = ".tar.gz"
ARCHIVE_NAME_RE = re.compile(r"^[A-Za-z0-9._-]+$")
LEVEL_MARKER = "level.dat"
NETHER_DIM = "DIM-1"
END_DIM = "DIM1"
_IGNORED_IMPORT_DIRS = {"__MACOSX"}


class WorldStageError(Exception):
    """A world operation step failed; carries the result error code and stage."""

    def __init__(self, message, error="stage_failure", stage=""):
        super().__init__(message)
        self.message = message
        self.error = error
        self.stage = stage


def _world_failed(message, error="stage_failure", stage=""):
    """Return normalized world-operation failure payload."""
    return {"ok": False, "error": error, "message": message, "stage": stage}


def make_progress(progress_callback):
    """Wrap an optional progress callback so it can never break an operation."""

    def progress(message):
        if progress_callback:
            try:
                progress_callback(message)
            except Exception:
                pass

    return progress


def validate_archive_name(name):
    """Return whether ``name`` is a valid archive identifier."""
    return bool(name) and bool(ARCHIVE_NAME_RE.match(str(name)))


def invalid_name_message(name):
    return f"Invalid archive name '{name}'. Allowed: letters, numbers, ., _, -"


def archive_path(ctx, name):
    return Path(ctx.WORLD_STORE) / f"{name}{ARCHIVE_SUFFIX}"


def archive_exists(ctx, name):
    """Return whether a published archive exists under ``name``."""
    if not validate_archive_name(name):
        return False
    return archive_path(ctx, name).is_file()


def level_parts(ctx):
    """Return (root, nether, end) directory names of the host layout."""
    level = ctx.LEVEL_NAME
    return (level, f"{level}_nether", f"{level}_the_end")


def present_parts(ctx, base_dir):
    """Return host-layout directory names that exist under ``base_dir``."""
    base_dir = Path(base_dir)
    return [part for part in level_parts(ctx) if (base_dir / part).is_dir()]


def write_archive(ctx, source_dir, parts, name):
    """Compress ``parts`` of ``source_dir`` into ``name``; publish by rename."""
    final = archive_path(ctx, name)
    final.parent.mkdir(parents=True, exist_ok=True)
    temp = final.with_name(f".{final.name}.partial-{os.getpid()}")
    try:
        with tarfile.open(temp, "w:gz") as tar:
            for part in parts:
                tar.add(str(Path(source_dir) / part), arcname=part)
        os.replace(temp, final)
    except BaseException:
        try:
            temp.unlink()
        except FileNotFoundError:
            pass
        raise
    ctx.chown_paths(final)
    return final


def _check_tar_members(members, stage):
    for member in members:
        member_path = Path(member.name)
        if member_path.is_absolute() or ".." in member_path.parts:
            raise WorldStageError(f"Archive member escapes staging area: {member.name}", error="corrupt_archive", stage=stage)
        if not (member.isfile() or member.isdir() or member.issym() or member.islnk()):
            raise WorldStageError(f"Unsupported archive member type: {member.name}", error="corrupt_archive", stage=stage)


def extract_archive(archive, dest_dir, stage="extract"):
    """Extract a world tar.gz into ``dest_dir``."""
    dest_dir = Path(dest_dir)
    dest_dir.mkdir(parents=True, exist_ok=True)
    try:
        with tarfile.open(archive, "r:gz") as tar:
            _check_tar_members(tar.getmembers(), stage)
            tar.extractall(dest_dir, filter="data")
    except (tarfile.TarError, gzip.BadGzipFile, zlib.error, EOFError) as exc:
        raise WorldStageError(f"Archive {Path(archive).name} is invalid or corrupted: {exc}", error="corrupt_archive", stage=stage) from exc
    except OSError as exc:
        raise WorldStageError(f"Failed to extract {Path(archive).name}: {exc}", stage=stage) from exc


def find_world_folder(extract_root, hint=None):
    """Return the world root inside an extracted bundle, or None.

    A hint names a folder relative to the bundle root. Without one, the first
    directory holding ``level.dat`` in a sorted depth-first walk is used.
    """
    extract_root = Path(extract_root)
    if hint:
        return safe_child_dir(extract_root, hint)
    for root, dirs, files in os.walk(extract_root):
        dirs[:] = sorted(d for d in dirs if d not in _IGNORED_IMPORT_DIRS)
        if LEVEL_MARKER in files:
            return Path(root)
    return None


def remap_dimensions(ctx, staged_root):
    """Promote nested DIM-1/DIM1 folders to host-layout sibling directories."""
    staged_root = Path(staged_root)
    root_name, nether_name, end_name = level_parts(ctx)
    world = staged_root / root_name
    moved = []
    for dim, sibling in ((NETHER_DIM, nether_name), (END_DIM, end_name)):
        nested = world / dim
        if not nested.is_dir():
            continue
        target_parent = staged_root / sibling
        target_parent.mkdir(parents=True, exist_ok=True)
        target = target_parent / dim
        if target.exists():
            shutil.rmtree(target)
        shutil.move(str(nested), str(target))
        moved.append(f"{root_name}/{dim} -> {sibling}/{dim}")
    return moved


def list_archives(ctx):
    """Return stored archives as ``WorldArchive`` records, newest first."""
    return [
        WorldArchive(name=item["name"], path=Path(item["path"]), created_at=item["mtime"], size_bytes=item["size_bytes"])
        for item in list_archive_files(ctx.WORLD_STORE, ARCHIVE_SUFFIX)
        if validate_archive_name(item["name"])
    ]


def _archive_entry(ctx, archive):
    return {
        "name": archive.name,
        "path": str(archive.path),
        "mtime": archive.created_at,
        "size_bytes": archive.size_bytes,
        "size_text": format_file_size(archive.size_bytes),
        "modified": datetime.fromtimestamp(archive.created_at, tz=ctx.DISPLAY_TZ).strftime("%b %d, %Y %I:%M:%S %p %Z"),
    }


def list_worlds(ctx):
    """Return archive listing plus live directory sizes."""
    archives = [_archive_entry(ctx, archive) for archive in list_archives(ctx)]
    live = []
    for path in ctx.live_world_dirs():
        exists = path.is_dir()
        size = dir_size_bytes(path) if exists else 0
        live.append({
            "name": path.name,
            "path": str(path),
            "exists": exists,
            "size_bytes": size,
            "size_text": format_file_size(size) if exists else "-",
        })
    return {"ok": True, "archives": archives, "live": live, "world_store": str(ctx.WORLD_STORE)}


def _save_world_locked(ctx, name, progress):
    server_dir = Path(ctx.SERVER_DIR)
    ctx.space_check("Before live-world archive creation", progress)

    progress("Stopping game server.")
    if not ctx.stop_server():
        return _world_failed("Could not stop the game server; nothing was archived.", stage="stop_server")

    result = None
    try:
        progress(f"Compressing live world into '{name}'.")
        path = write_archive(ctx, server_dir, present_parts(ctx, server_dir), name)
        result = {"ok": True, "archive": name, "path": str(path), "message": f"Saved: {path}"}
    except Exception as exc:
        ctx.log_exception("save_world/compress", exc)
        result = _world_failed(f"Failed to create archive '{name}': {exc}", stage="compress")

    progress("Starting game server.")
    if not ctx.start_server():
        if result["ok"]:
            result = {**result, **_world_failed("Archive saved, but the game server failed to restart.", stage="start_server")}
        else:
            result["message"] += " The game server also failed to restart."

    ctx.space_check("After live-world archive creation", progress)
    return result


def save_world(ctx, name, force=False, progress_callback=None):
    """Snapshot the live world into a named archive with the server stopped."""
    progress = make_progress(progress_callback)
    if not validate_archive_name(name):
        return _world_failed(invalid_name_message(name), error="invalid_input", stage="validate")
    if archive_exists(ctx, name) and not force:
        message = f"Archive '{name}' already exists. Re-run with --force to overwrite."
        ctx.log_action("world-save", command=name, rejection_message=message)
        return _world_failed(message, error="already_exists", stage="validate")
    root_dir = ctx.live_world_dirs()[0]
    if not root_dir.is_dir():
        return _world_failed(f"Live world directory not found: {root_dir}", error="not_found", stage="validate")

    if not ctx.world_lock.acquire(blocking=False):
        return _world_failed("Another world operation is already in progress.", error="operation_in_progress", stage="lock")
    try:
        result = _save_world_locked(ctx, name, progress)
    finally:
        ctx.world_lock.release()

    if result["ok"]:
        ctx.log_action("world-save", command=name)
    else:
        ctx.log_action("world-save", command=name, rejection_message=f"[{result['stage']}] {result['message']}")
    return result


def _import_world_locked(ctx, zip_path, name, world_folder, progress):
    import_root = Path(ctx.IMPORT_ROOT)
    shutil.rmtree(import_root, ignore_errors=True)
    extracted = import_root / "extracted"
    staged = import_root / "staged"
    extracted.mkdir(parents=True)
    staged.mkdir(parents=True)

    ctx.space_check("Before zip extraction/staging", progress)
    progress(f"Extracting {zip_path.name}.")
    try:
        with zipfile.ZipFile(zip_path, "r") as zf:
            zf.extractall(extracted)
    except zipfile.BadZipFile as exc:
        raise WorldStageError(f"Zip file is invalid or corrupted: {zip_path}", error="corrupt_archive", stage="extract") from exc
    ctx.space_check("After zip extraction", progress)

    source = find_world_folder(extracted, world_folder)
    if source is None:
        if world_folder:
            message = f"Detected world folder not found: {world_folder}"
        else:
            message = f"Could not detect world folder in zip (no {LEVEL_MARKER} found)."
        raise WorldStageError(message, error="world_folder_not_found", stage="detect_world_folder")
    relative = os.path.relpath(source.resolve(), extracted.resolve())
    progress(f"World folder: {'(zip root)' if relative == '.' else relative}")

    shutil.move(str(source), str(staged / ctx.LEVEL_NAME))
    moved = remap_dimensions(ctx, staged)
    for line in moved:
        progress(f"Remapped {line}")

    parts = present_parts(ctx, staged)
    progress(f"Compressing {', '.join(parts)} into '{name}'.")
    try:
        path = write_archive(ctx, staged, parts, name)
    except Exception as exc:
        raise WorldStageError(f"Failed to create archive '{name}': {exc}", stage="compress") from exc
    ctx.space_check("After zip staging and archive creation", progress)
    return {
        "ok": True,
        "archive": name,
        "path": str(path),
        "world_folder": str(relative),
        "parts": parts,
        "remapped": moved,
        "message": f"Imported archive: {path}",
    }


def import_world(ctx, zip_path, name, world_folder=None, force=False, progress_callback=None):
    """Convert a portable world zip into a host-layout archive."""
    progress = make_progress(progress_callback)
    if not validate_archive_name(name):
        return _world_failed(invalid_name_message(name), error="invalid_input", stage="validate")
    zip_path = Path(zip_path).expanduser()
    if not zip_path.is_file():
        return _world_failed(f"Zip file not found: {zip_path}", error="not_found", stage="validate")
    if archive_exists(ctx, name) and not force:
        message = f"Archive '{name}' already exists. Re-run with --force to overwrite."
        ctx.log_action("world-import", command=name, rejection_message=message)
        return _world_failed(message, error="already_exists", stage="validate")

    if not ctx.world_lock.acquire(blocking=False):
        return _world_failed("Another world operation is already in progress.", error="operation_in_progress", stage="lock")
    try:
        result = _import_world_locked(ctx, zip_path, name, world_folder, progress)
    except WorldStageError as exc:
        result = _world_failed(exc.message, error=exc.error, stage=exc.stage)
    except Exception as exc:
        ctx.log_exception("import_world", exc)
        result = _world_failed(f"Import failed: {exc}", stage="import")
    finally:
        shutil.rmtree(ctx.IMPORT_ROOT, ignore_errors=True)
        ctx.world_lock.release()

    if result["ok"]:
        ctx.log_action("world-import", command=f"{zip_path.name} -> {name}")
    else:
        ctx.log_action("world-import", command=f"{zip_path.name} -> {name}", rejection_message=f"[{result['stage']}] {result['message']}")
    return result
