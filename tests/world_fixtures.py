"""Shared helpers for world archive and switch tests."""

from pathlib import Path
from types import SimpleNamespace
from unittest.mock import Mock
from zoneinfo import ZoneInfo

from mcidle.core.operation_lock import FileLock
from mcidle.services import server_control


def make_world_ctx(tmp):
    root = Path(tmp)
    ctx = SimpleNamespace(
        SERVER_DIR=root / "server",
        LEVEL_NAME="world",
        WORLD_STORE=root / "worlds",
        STAGING_ROOT=root / "staging",
        IMPORT_ROOT=root / "staging" / "world-import",
        SWITCH_STAGE=root / "staging" / "world-switch-stage",
        DISPLAY_TZ=ZoneInfo("UTC"),
        stop_server=Mock(return_value=True),
        start_server=Mock(return_value=True),
        chown_paths=Mock(return_value=True),
        space_check=Mock(return_value=[]),
        log_action=Mock(),
        log_exception=Mock(),
        log_system=Mock(),
    )
    ctx.world_lock = FileLock(ctx.WORLD_STORE / ".world-manager.lock")
    ctx.live_world_dirs = lambda: server_control.live_world_dirs(ctx)
    ctx.SERVER_DIR.mkdir(parents=True)
    return ctx


def write_live_world(ctx, seed="alpha", with_end=True):
    server = Path(ctx.SERVER_DIR)
    files = {
        "world/level.dat": f"level-{seed}",
        "world/region/r.0.0.mca": f"overworld-{seed}" * 50,
        "world_nether/DIM-1/region/r.0.0.mca": f"nether-{seed}",
    }
    if with_end:
        files["world_the_end/DIM1/region/r.0.0.mca"] = f"end-{seed}"
    for rel, text in files.items():
        path = server / rel
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(text, encoding="utf-8")


def snapshot_tree(base):
    """Return {relative path: bytes} for every file under ``base``."""
    base = Path(base)
    if not base.exists():
        return {}
    return {
        str(path.relative_to(base)): path.read_bytes()
        for path in sorted(base.rglob("*"))
        if path.is_file()
    }
