"""Typed privileged host commands and the single runner that executes them.

Every host-level operation (systemd units, power-off, ownership changes,
syslog notices) is described by a ``PrivilegedCommand`` and passed to
``run_privileged``. Arguments always travel as an argv list, never through a
shell, so no value is ever quoted or interpolated into command text.
"""

from dataclasses import dataclass, field
import re
import subprocess

OWNER_PATTERN = re.compile(r"^[A-Za-z0-9._-]+(?::[A-Za-z0-9._-]+)?$")
SYSTEMCTL_ACTIONS = frozenset({"start", "stop", "is-active", "reset-failed"})
UNIT_NAME_CHARS = frozenset("abcdefghijklmnopqrstuvwxyzABCDEFGHIJKLMNOPQRSTUVWXYZ0123456789:-_.@")


@dataclass(frozen=True)
class PrivilegedCommand:
    """One host command: program plus literal arguments."""

    program: str
    args: tuple = field(default_factory=tuple)
    timeout: float = 60.0

    def argv(self):
        """Return the argv list handed to ``subprocess.run``."""
        return [self.program, *[str(arg) for arg in self.args]]


def _require_unit_name(unit):
    text = str(unit or "")
    if not text or not set(text) <= UNIT_NAME_CHARS:
        raise ValueError(f"Invalid systemd unit name: {unit!r}")
    return text


def systemctl(action, *units, timeout=60.0):
    """Build a ``systemctl <action> <units>`` command."""
    if action not in SYSTEMCTL_ACTIONS:
        raise ValueError(f"Unsupported systemctl action: {action!r}")
    names = tuple(_require_unit_name(unit) for unit in units)
    return PrivilegedCommand("systemctl", (action, *names), timeout=timeout)


def systemd_run_once(unit, delay_minutes, description, argv):
    """Build a transient one-shot timer that runs ``argv`` after a delay."""
    minutes = int(delay_minutes)
    if minutes <= 0:
        raise ValueError("delay_minutes must be positive")
    return PrivilegedCommand(
        "systemd-run",
        (
            f"--on-active={minutes}m",
            f"--unit={_require_unit_name(unit)}",
            f"--description={description}",
            "--collect",
            "--",
            *argv,
        ),
    )


def power_off():
    """Build the host power-off command."""
    return PrivilegedCommand("shutdown", ("-h", "now"))


def syslog_notice(tag, message):
    """Build a syslog notice via ``logger``."""
    return PrivilegedCommand("logger", ("-t", str(tag), "--", str(message)), timeout=10.0)


def chown_tree(owner, *paths):
    """Build a recursive ownership change for existing paths."""
    if not OWNER_PATTERN.match(str(owner or "")):
        raise ValueError(f"Invalid owner: {owner!r}")
    return PrivilegedCommand("chown", ("-R", owner, "--", *[str(p) for p in paths]))


def _failed_result(argv, returncode, message):
    return subprocess.CompletedProcess(argv, returncode, stdout="", stderr=message)


def run_privileged(ctx, command):
    """Run a command directly first; fall back to non-interactive sudo."""
    argv = command.argv()
    try:
        direct = subprocess.run(
            argv,
            capture_output=True,
            text=True,
            timeout=command.timeout,
        )
    except subprocess.TimeoutExpired:
        ctx.log_system("privileged-timeout", command=" ".join(argv), rejection_message=f"Timed out after {command.timeout:.0f}s.")
        return _failed_result(argv, 124, "timed out")
    except OSError as exc:
        direct = None
        ctx.log_exception(f"run_privileged/{command.program}", exc)

    if direct is not None and direct.returncode == 0:
        return direct

    try:
        return subprocess.run(
            ["sudo", "-n"] + argv,
            capture_output=True,
            text=True,
            timeout=command.timeout,
        )
    except subprocess.TimeoutExpired:
        ctx.log_system("privileged-timeout", command="sudo -n " + " ".join(argv), rejection_message=f"Timed out after {command.timeout:.0f}s.")
        return _failed_result(argv, 124, "timed out")
    except OSError as exc:
        ctx.log_exception(f"run_privileged/sudo/{command.program}", exc)
        if direct is not None:
            return direct
        return _failed_result(argv, 127, str(exc))


def run_query(ctx, command):
    """Run a read-only command without sudo; never raises."""
    argv = command.argv()
    try:
        return subprocess.run(
            argv,
            capture_output=True,
            text=True,
            timeout=command.timeout,
        )
    except subprocess.TimeoutExpired:
        return _failed_result(argv, 124, "timed out")
    except OSError as exc:
        ctx.log_exception(f"run_query/{command.program}", exc)
        return _failed_result(argv, 127, str(exc))


def result_detail(result, limit=400):
    """Return compact stderr/stdout text from a completed process."""
    detail = ((getattr(result, "stderr", "") or "") + "\n" + (getattr(result, "stdout", "") or "")).strip()
    return detail[:limit]
