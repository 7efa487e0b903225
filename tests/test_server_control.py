import subprocess
import tempfile
import unittest
from pathlib import Path
from types import SimpleNamespace
from unittest.mock import Mock, patch

from mcidle.services import server_control, space_report


def _done(returncode=0, stdout=""):
    return subprocess.CompletedProcess([], returncode, stdout=stdout, stderr="")


def _ctx(tmp):
    root = Path(tmp)
    return SimpleNamespace(
        SERVICE="minecraft",
        SERVICE_STOP_TIMEOUT_SECONDS=30.0,
        OFF_STATES=frozenset({"inactive", "failed"}),
        SERVER_DIR=root / "server",
        LEVEL_NAME="world",
        SERVICE_ACCOUNT="minecraft",
        WORLD_STORE=root / "worlds",
        STAGING_ROOT=root / "staging",
        log_system=Mock(),
        log_exception=Mock(),
    )


class ServerControlTests(unittest.TestCase):
    def test_stop_waits_for_off_state(self):
        with tempfile.TemporaryDirectory() as tmp:
            ctx = _ctx(tmp)
            with patch.object(server_control, "run_privileged", return_value=_done()), \
                    patch.object(server_control, "run_query", return_value=_done(3, "inactive\n")):
                self.assertTrue(server_control.stop_server(ctx))

    def test_stop_times_out_while_active(self):
        with tempfile.TemporaryDirectory() as tmp:
            ctx = _ctx(tmp)
            clock = iter(range(0, 100, 5))
            with patch.object(server_control, "run_privileged", return_value=_done()), \
                    patch.object(server_control, "run_query", return_value=_done(0, "active\n")), \
                    patch.object(server_control.time, "time", side_effect=lambda: next(clock)), \
                    patch.object(server_control.time, "sleep"):
                self.assertFalse(server_control.stop_server(ctx))

    def test_chown_skips_missing_paths(self):
        with tempfile.TemporaryDirectory() as tmp:
            ctx = _ctx(tmp)
            present = Path(tmp) / "present"
            present.mkdir()
            with patch.object(server_control, "run_privileged", return_value=_done()) as run:
                self.assertTrue(server_control.chown_paths(ctx, present, Path(tmp) / "absent"))
            argv = run.call_args[0][1].argv()
            self.assertEqual(argv, ["chown", "-R", "minecraft:minecraft", "--", str(present)])


class SpaceReportTests(unittest.TestCase):
    def test_space_check_reports_and_emits(self):
        with tempfile.TemporaryDirectory() as tmp:
            ctx = _ctx(tmp)
            ctx.live_world_dirs = lambda: server_control.live_world_dirs(ctx)
            (ctx.SERVER_DIR / "world").mkdir(parents=True)
            (ctx.SERVER_DIR / "world" / "level.dat").write_bytes(b"x" * 10)
            emitted = []
            lines = space_report.space_check(ctx, "Before test", emitted.append)
            self.assertEqual(lines[0], "=== Disk Check: Before test ===")
            self.assertTrue(any(line.startswith("Free space on") for line in lines))
            self.assertTrue(any(str(ctx.SERVER_DIR / "world") in line for line in lines))
            self.assertEqual(emitted, lines)

    def test_space_check_never_raises(self):
        with tempfile.TemporaryDirectory() as tmp:
            ctx = _ctx(tmp)
            ctx.live_world_dirs = Mock(side_effect=OSError("gone"))
            lines = space_report.space_check(ctx, "Broken")
            self.assertIn("  (disk usage unavailable)", lines)
            ctx.log_exception.assert_called_once()


if __name__ == "__main__":
    unittest.main()
