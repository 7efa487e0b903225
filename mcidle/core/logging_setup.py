"""Append-only action and system logs shared by the CLI and the control API.

Each event is one line::

    2026-01-01 12:00:00 <cli> [mcidle/maintenance-enable] 30m rejected: ...

The caller tag is ``cli`` for terminal and systemd invocations and the client
address for HTTP requests.
"""

from datetime import datetime
import os
from pathlib import Path
import traceback

from flask import has_request_context, request

ROTATE_MAX_BYTES = 5 * 1024 * 1024
ROTATE_KEEP = 5


def one_line(text):
    """Collapse whitespace (newlines included) so a value cannot split a log line."""
    return " ".join(str(text or "").split())


def caller_tag():
    if not has_request_context():
        return "cli"
    forwarded = (request.headers.get("X-Forwarded-For") or "").split(",")[0].strip()
    return forwarded or request.remote_addr or "http"


def format_log_line(display_tz, event, command=None, rejection_message=None, when=None):
    when = when or datetime.now(tz=display_tz)
    line = f"{when:%Y-%m-%d %H:%M:%S} <{one_line(caller_tag()) or 'unknown'}> [mcidle/{one_line(event) or 'unknown'}]"
    if one_line(command):
        line += f" {one_line(command)}"
    if one_line(rejection_message):
        line += f" rejected: {one_line(rejection_message)}"
    return line


def _rotate(path):
    if not path.exists() or path.stat().st_size < ROTATE_MAX_BYTES:
        return
    for idx in range(ROTATE_KEEP - 1, 0, -1):
        older = path.with_name(f"{path.name}.{idx}")
        if older.exists():
            os.replace(older, path.with_name(f"{path.name}.{idx + 1}"))
    os.replace(path, path.with_name(f"{path.name}.1"))


def make_log_writer(display_tz, log_file):
    """Return ``write(event, command=None, rejection_message=None)`` for ``log_file``."""
    log_file = Path(log_file)

    def write(event, command=None, rejection_message=None):
        line = format_log_line(display_tz, event, command, rejection_message)
        try:
            log_file.parent.mkdir(parents=True, exist_ok=True)
            _rotate(log_file)
            with log_file.open("a", encoding="utf-8") as handle:
                handle.write(line + "\n")
        except OSError:
            # Log output never fails the command being logged.
            pass

    return write


def make_exception_logger(write):
    """Return ``log_exception(context, exc)`` that records the error and where it was raised."""

    def log_exception(context, exc):
        summary = one_line("".join(traceback.format_exception_only(type(exc), exc)))
        frames = traceback.extract_tb(exc.__traceback__)
        if frames:
            origin = frames[-1]
            summary += f" at {Path(origin.filename).name}:{origin.lineno} in {origin.name}"
        write("error", rejection_message=f"{context}: {summary}")

    return log_exception


def build_loggers(display_tz, action_log_file, system_log_file):
    """Return ``(log_action, log_system, log_exception)``; exceptions go to the system log."""
    log_action = make_log_writer(display_tz, action_log_file)
    log_system = make_log_writer(display_tz, system_log_file)
    return log_action, log_system, make_exception_logger(log_system)
