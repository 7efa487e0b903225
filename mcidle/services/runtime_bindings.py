"""Build delegate runtime callables for main.py state wiring."""

from mcidle.services import (
    idle_tracker,
    job_scheduler,
    maintenance_override,
    occupancy_probe,
    server_control,
    shutdown_executor,
    space_report,
)


def build_runtime_bindings(namespace):
    """Return mapping of delegate callables bound to namespace state."""
    ns = namespace

    def _state():
        return ns["STATE"]

    def get_status():
        return server_control.get_status(_state())

    def stop_server():
        return server_control.stop_server(_state())

    def start_server():
        return server_control.start_server(_state())

    def live_world_dirs():
        return server_control.live_world_dirs(_state())

    def chown_paths(*paths):
        return server_control.chown_paths(_state(), *paths)

    def probe_occupancy():
        return occupancy_probe.probe_occupancy(_state())

    def load_idle_state():
        return idle_tracker.load_idle_state(_state())

    def save_idle_state(state):
        return idle_tracker.save_idle_state(_state(), state)

    def clear_idle_state():
        return idle_tracker.clear_idle_state(_state())

    def shutdown_host(idle_seconds, reason="idle"):
        return shutdown_executor.shutdown_host(_state(), idle_seconds, reason)

    def syslog(message):
        return shutdown_executor.syslog(_state(), message)

    def stop_idle_scheduler():
        return job_scheduler.stop_idle_scheduler(_state())

    def start_idle_scheduler():
        return job_scheduler.start_idle_scheduler(_state())

    def is_idle_scheduler_active():
        return job_scheduler.is_idle_scheduler_active(_state())

    def cancel_reenable_job():
        return job_scheduler.cancel_reenable_job(_state())

    def schedule_reenable_job(minutes):
        return job_scheduler.schedule_reenable_job(_state(), minutes)

    def is_reenable_job_pending():
        return job_scheduler.is_reenable_job_pending(_state())

    def load_maintenance_window():
        return maintenance_override.load_maintenance_window(_state())

    def save_maintenance_window(window):
        return maintenance_override.save_maintenance_window(_state(), window)

    def clear_maintenance_window():
        return maintenance_override.clear_maintenance_window(_state())

    def is_maintenance_active(now=None):
        return maintenance_override.is_maintenance_active(_state(), now)

    def host_boot_time():
        return idle_tracker.read_host_boot_time()

    def space_check(label, progress_callback=None):
        return space_report.space_check(_state(), label, progress_callback)

    return {
        "cancel_reenable_job": cancel_reenable_job,
        "chown_paths": chown_paths,
        "clear_idle_state": clear_idle_state,
        "clear_maintenance_window": clear_maintenance_window,
        "get_status": get_status,
        "host_boot_time": host_boot_time,
        "is_idle_scheduler_active": is_idle_scheduler_active,
        "is_maintenance_active": is_maintenance_active,
        "is_reenable_job_pending": is_reenable_job_pending,
        "live_world_dirs": live_world_dirs,
        "load_idle_state": load_idle_state,
        "load_maintenance_window": load_maintenance_window,
        "probe_occupancy": probe_occupancy,
        "save_idle_state": save_idle_state,
        "save_maintenance_window": save_maintenance_window,
        "schedule_reenable_job": schedule_reenable_job,
        "shutdown_host": shutdown_host,
        "space_check": space_check,
        "start_idle_scheduler": start_idle_scheduler,
        "start_server": start_server,
        "stop_idle_scheduler": stop_idle_scheduler,
        "stop_server": stop_server,
        "syslog": syslog,
    }
