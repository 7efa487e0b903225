import subprocess
import unittest
from pathlib import Path
from types import SimpleNamespace
from unittest.mock import Mock, patch

from mcidle.core import privileged
from mcidle.services import job_scheduler, shutdown_executor


def _ctx(**extra):
    base = dict(
        IDLE_TIMER_UNIT="mc-idle-shutdown.timer",
        REENABLE_JOB_UNIT="maintenance-reenable",
        MCIDLE_COMMAND="/usr/local/bin/mcidle",
        CONFIG_PATH=Path("/srv/custom.env"),
        IDLE_THRESHOLD_SECONDS=60,
        SYSLOG_TAG="mcidle",
        log_system=Mock(),
        log_exception=Mock(),
        log_action=Mock(),
    )
    base.update(extra)
    return SimpleNamespace(**base)


def _done(returncode=0, stdout="", stderr=""):
    return subprocess.CompletedProcess([], returncode, stdout=stdout, stderr=stderr)


class CommandBuilderTests(unittest.TestCase):
    def test_systemctl_rejects_unknown_action_and_bad_unit(self):
        with self.assertRaises(ValueError):
            privileged.systemctl("mask", "minecraft")
        with self.assertRaises(ValueError):
            privileged.systemctl("stop", "minecraft; reboot")

    def test_systemd_run_once_argv(self):
        command = privileged.systemd_run_once("maintenance-reenable", 30, "desc", ["mcidle", "maintenance", "expire"])
        self.assertEqual(
            command.argv(),
            [
                "systemd-run",
                "--on-active=30m",
                "--unit=maintenance-reenable",
                "--description=desc",
                "--collect",
                "--",
                "mcidle",
                "maintenance",
                "expire",
            ],
        )

    def test_chown_tree_validates_owner(self):
        self.assertEqual(privileged.chown_tree("minecraft:minecraft", "/srv/world").argv()[:3], ["chown", "-R", "minecraft:minecraft"])
        with self.assertRaises(ValueError):
            privileged.chown_tree("root;rm", "/srv/world")


class RunPrivilegedTests(unittest.TestCase):
    def test_direct_success_skips_sudo(self):
        with patch.object(privileged.subprocess, "run", return_value=_done()) as run:
            result = privileged.run_privileged(_ctx(), privileged.power_off())
        self.assertEqual(result.returncode, 0)
        run.assert_called_once()
        self.assertEqual(run.call_args[0][0], ["shutdown", "-h", "now"])

    def test_falls_back_to_sudo(self):
        with patch.object(privileged.subprocess, "run", side_effect=[_done(1, stderr="denied"), _done()]) as run:
            result = privileged.run_privileged(_ctx(), privileged.systemctl("stop", "minecraft"))
        self.assertEqual(result.returncode, 0)
        self.assertEqual(run.call_args_list[1][0][0], ["sudo", "-n", "systemctl", "stop", "minecraft"])

    def test_timeout_reports_124(self):
        with patch.object(privileged.subprocess, "run", side_effect=subprocess.TimeoutExpired("systemctl", 60)):
            result = privileged.run_privileged(_ctx(), privileged.systemctl("stop", "minecraft"))
        self.assertEqual(result.returncode, 124)


class JobSchedulerTests(unittest.TestCase):
    def test_schedule_reenable_job_runs_expire(self):
        ctx = _ctx()
        with patch.object(job_scheduler, "run_privileged", return_value=_done()) as run:
            self.assertTrue(job_scheduler.schedule_reenable_job(ctx, 15))
        argv = run.call_args[0][1].argv()
        self.assertIn("--on-active=15m", argv)
        self.assertEqual(
            argv[argv.index("--") + 1:],
            ["/usr/local/bin/mcidle", "--config", "/srv/custom.env", "maintenance", "expire"],
        )

    def test_reenable_argv_splits_command_and_keeps_config(self):
        ctx = _ctx(MCIDLE_COMMAND="/usr/bin/python3 -m mcidle.cli")
        self.assertEqual(
            job_scheduler.reenable_command_argv(ctx),
            ["/usr/bin/python3", "-m", "mcidle.cli", "--config", "/srv/custom.env", "maintenance", "expire"],
        )

    def test_cancel_stops_timer_and_service_then_resets(self):
        ctx = _ctx()
        with patch.object(job_scheduler, "run_privileged", return_value=_done()) as run:
            self.assertTrue(job_scheduler.cancel_reenable_job(ctx))
        argvs = [call[0][1].argv() for call in run.call_args_list]
        self.assertEqual(
            argvs,
            [
                ["systemctl", "stop", "maintenance-reenable.timer", "maintenance-reenable.service"],
                ["systemctl", "reset-failed", "maintenance-reenable.timer", "maintenance-reenable.service"],
            ],
        )

    def test_cancel_succeeds_when_no_job(self):
        ctx = _ctx()
        with patch.object(job_scheduler, "run_privileged", return_value=_done(5, stderr="not loaded")), \
                patch.object(job_scheduler, "run_query", return_value=_done(3, stdout="inactive\n")):
            self.assertTrue(job_scheduler.cancel_reenable_job(ctx))

    def test_cancel_fails_when_timer_still_active(self):
        ctx = _ctx()
        with patch.object(job_scheduler, "run_privileged", return_value=_done(1, stderr="denied")), \
                patch.object(job_scheduler, "run_query", return_value=_done(0, stdout="active\n")):
            self.assertFalse(job_scheduler.cancel_reenable_job(ctx))

    def test_is_idle_scheduler_active(self):
        ctx = _ctx()
        with patch.object(job_scheduler, "run_query", return_value=_done(0, stdout="active\n")) as query:
            self.assertTrue(job_scheduler.is_idle_scheduler_active(ctx))
        self.assertEqual(query.call_args[0][1].argv(), ["systemctl", "is-active", "mc-idle-shutdown.timer"])


class ShutdownExecutorTests(unittest.TestCase):
    def test_shutdown_logs_then_powers_off(self):
        ctx = _ctx(syslog=Mock(return_value=True))
        with patch.object(shutdown_executor, "run_privileged", return_value=_done()) as run:
            result = shutdown_executor.shutdown_host(ctx, 61)
        self.assertTrue(result["ok"])
        ctx.syslog.assert_called_once_with("Minecraft idle shutdown: No players for 61s")
        self.assertEqual(run.call_args[0][1].argv(), ["shutdown", "-h", "now"])

    def test_shutdown_failure_is_reported(self):
        ctx = _ctx(syslog=Mock(return_value=True))
        with patch.object(shutdown_executor, "run_privileged", return_value=_done(1, stderr="not permitted")):
            result = shutdown_executor.shutdown_host(ctx, 61)
        self.assertFalse(result["ok"])
        self.assertEqual(result["error"], "shutdown_failed")


if __name__ == "__main__":
    unittest.main()
