import tempfile
import unittest
from datetime import datetime
from pathlib import Path
from unittest.mock import Mock, patch
from zoneinfo import ZoneInfo

from flask import Flask

from mcidle.core import logging_setup

UTC = ZoneInfo("UTC")


class LogLineTests(unittest.TestCase):
    def test_cli_line_format(self):
        when = datetime(2026, 1, 2, 3, 4, 5, tzinfo=UTC)
        line = logging_setup.format_log_line(UTC, "maintenance-enable", "30m", "could not\nstop timer", when=when)
        self.assertEqual(line, "2026-01-02 03:04:05 <cli> [mcidle/maintenance-enable] 30m rejected: could not stop timer")

    def test_request_uses_forwarded_client(self):
        app = Flask(__name__)
        with app.test_request_context("/status", headers={"X-Forwarded-For": "10.0.0.7, 127.0.0.1"}):
            self.assertEqual(logging_setup.caller_tag(), "10.0.0.7")
        with app.test_request_context("/status", environ_base={"REMOTE_ADDR": "192.168.1.4"}):
            self.assertEqual(logging_setup.caller_tag(), "192.168.1.4")


class LogWriterTests(unittest.TestCase):
    def test_writer_creates_dir_and_appends(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "logs" / "mcidle.log"
            write = logging_setup.make_log_writer(UTC, path)
            write("idle-check", command="players=0")
            write("idle-check", command="players=2")
            lines = path.read_text(encoding="utf-8").splitlines()
            self.assertEqual(len(lines), 2)
            self.assertTrue(lines[1].endswith("<cli> [mcidle/idle-check] players=2"))

    def test_full_log_is_rotated(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "mcidle.log"
            path.write_text("old\n", encoding="utf-8")
            with patch.object(logging_setup, "ROTATE_MAX_BYTES", 4):
                logging_setup.make_log_writer(UTC, path)("boot-ready")
            self.assertEqual(path.with_name("mcidle.log.1").read_text(encoding="utf-8"), "old\n")
            self.assertIn("[mcidle/boot-ready]", path.read_text(encoding="utf-8"))

    def test_exception_logger_names_origin(self):
        write = Mock()
        log_exception = logging_setup.make_exception_logger(write)
        try:
            raise ValueError("bad archive")
        except ValueError as exc:
            log_exception("world_save", exc)
        message = write.call_args.kwargs["rejection_message"]
        self.assertEqual(write.call_args.args, ("error",))
        self.assertTrue(message.startswith("world_save: ValueError: bad archive at test_logging_setup.py:"))
        self.assertIn("in test_exception_logger_names_origin", message)


if __name__ == "__main__":
    unittest.main()
