"""Command-line entry point for idle checks, maintenance mode and world management."""

import argparse
import sys

from mcidle.services import world_archive_store, world_switch
from mcidle.services.idle_tracker import run_idle_check
from mcidle.services.maintenance_override import (
    disable_maintenance,
    enable_maintenance,
    expire_maintenance,
    maintenance_status,
)

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_USAGE = 2


def build_parser():
    """Return the argparse parser for all mcidle subcommands."""
    parser = argparse.ArgumentParser(
        prog="mcidle",
        description="Idle auto-shutdown, maintenance mode and world archives for a Minecraft server.",
    )
    parser.add_argument("--config", help="Path to mcidle.env (default: $MCIDLE_CONFIG or /etc/mcidle/mcidle.env)")
    subparsers = parser.add_subparsers(dest="command")

    subparsers.add_parser("idle-check", help="Run one idle-detection tick")

    maint_parser = subparsers.add_parser("maintenance", help="Suspend or resume idle auto-shutdown")
    maint_sub = maint_parser.add_subparsers(dest="maintenance_command")
    enable_parser = maint_sub.add_parser("enable", aliases=["on"], help="Disable auto-shutdown for a while")
    enable_parser.add_argument("minutes", nargs="?", help="Duration in minutes (default from config)")
    maint_sub.add_parser("disable", aliases=["off"], help="Re-enable auto-shutdown now")
    maint_sub.add_parser("status", help="Show maintenance mode status")
    maint_sub.add_parser("expire", help="End the maintenance window (run by the scheduled job)")

    world_parser = subparsers.add_parser("world", help="Manage world archives")
    world_sub = world_parser.add_subparsers(dest="world_command")
    world_sub.add_parser("list", help="List archives and live world sizes")

    save_parser = world_sub.add_parser("save", help="Archive the live world")
    save_parser.add_argument("name", help="Archive name")
    save_parser.add_argument("--force", action="store_true", help="Overwrite an existing archive")

    import_parser = world_sub.add_parser("import", help="Import a world zip as an archive")
    import_parser.add_argument("zip_path", help="Path to the world zip")
    import_parser.add_argument("name", help="Archive name")
    import_parser.add_argument("world_folder", nargs="?", help="Folder inside the zip holding level.dat")
    import_parser.add_argument("--force", action="store_true", help="Overwrite an existing archive")

    switch_parser = world_sub.add_parser("switch", help="Switch the live world to an archive")
    switch_parser.add_argument("name", help="Archive name")

    restore_parser = world_sub.add_parser("restore", help="Import a world zip and switch to it")
    restore_parser.add_argument("zip_path", help="Path to the world zip")
    restore_parser.add_argument("world_folder", nargs="?", help="Folder inside the zip holding level.dat")

    serve_parser = subparsers.add_parser("serve", help="Run the HTTP control API")
    serve_parser.add_argument("--host", help="Bind address (default WEB_HOST)")
    serve_parser.add_argument("--port", type=int, help="Bind port (default WEB_PORT)")
    return parser


def _emit(line):
    print(line, flush=True)


def _report(result):
    """Print a service result and return the matching exit code."""
    if result.get("ok"):
        if result.get("message"):
            _emit(result["message"])
        return EXIT_OK
    stage = result.get("stage")
    prefix = f"Error [{stage}]" if stage else "Error"
    print(f"{prefix}: {result.get('message', 'operation failed')}", file=sys.stderr, flush=True)
    if result.get("safety_archive"):
        print(f"Safety archive: {result['safety_archive']}", file=sys.stderr, flush=True)
    return EXIT_FAILED


def cmd_idle_check(state, args):
    result = run_idle_check(state)
    players = "unknown" if result.get("players") is None else result["players"]
    line = f"idle-check: {result['action']} (players={players}"
    if result.get("idle_seconds") is not None:
        line += f", idle={result['idle_seconds']}s/{result['threshold_seconds']}s"
    _emit(line + ")")
    if not result.get("ok"):
        return _report(result)
    if result["action"] == "shutdown" and not result.get("shutdown_ok", True):
        return EXIT_FAILED
    return EXIT_OK


def print_maintenance_status(status):
    _emit("=== Maintenance Mode Status ===")
    if not status["active"]:
        _emit("Auto-shutdown: ENABLED (normal operation)")
        if status["players"] is None:
            _emit(f"  Players online: {status['players_text']}")
        else:
            _emit(f"  Players online: {status['players']}")
        if status["idle_seconds"] is not None:
            _emit(f"  Idle for {status['idle_seconds']}s (shutdown at {status['threshold_seconds']}s)")
        elif status["players"] == 0:
            _emit("  Idle timer not started yet")
    else:
        _emit("Auto-shutdown: DISABLED (maintenance mode)")
        if status["reenable_job_pending"]:
            when = status["reenable_at_text"] or "scheduled time"
            _emit(f"  Will re-enable at: {when}")
            _emit(f"  Re-enable job: {status['reenable_job_unit']}.timer")
        if status["warning"]:
            _emit(f"  Warning: {status['warning']}")


def cmd_maintenance(state, args):
    command = args.maintenance_command
    if command in ("enable", "on"):
        result = enable_maintenance(state, args.minutes)
        code = _report(result)
        if code == EXIT_OK:
            _emit(f"  Will automatically re-enable at: {result['reenable_at_text']}")
        return code
    if command in ("disable", "off"):
        return _report(disable_maintenance(state))
    if command == "expire":
        return _report(expire_maintenance(state))
    if command == "status":
        print_maintenance_status(maintenance_status(state))
        return EXIT_OK
    return None


def print_world_list(listing):
    _emit(f"Archives in {listing['world_store']}:")
    if not listing["archives"]:
        _emit("  (none)")
    for item in listing["archives"]:
        _emit(f"  {item['name']:<40} {item['size_text']:>10}  {item['modified']}")
    _emit("Live world:")
    for item in listing["live"]:
        _emit(f"  {item['name']:<40} {item['size_text']:>10}")


def cmd_world(state, args):
    command = args.world_command
    if command == "list":
        print_world_list(world_archive_store.list_worlds(state))
        return EXIT_OK
    if command == "save":
        return _report(world_archive_store.save_world(state, args.name, force=args.force, progress_callback=_emit))
    if command == "import":
        return _report(
            world_archive_store.import_world(
                state,
                args.zip_path,
                args.name,
                world_folder=args.world_folder,
                force=args.force,
                progress_callback=_emit,
            )
        )
    if command == "switch":
        return _report(world_switch.switch_world(state, args.name, progress_callback=_emit))
    if command == "restore":
        return _report(world_switch.restore_from_zip(state, args.zip_path, world_folder=args.world_folder, progress_callback=_emit))
    return None


def cmd_serve(state, args):
    from mcidle.application_factory import create_app
    from mcidle.services.bootstrap import run_server

    run_server(create_app(state), state, host=args.host, port=args.port)
    return EXIT_OK


_COMMANDS = {
    "idle-check": cmd_idle_check,
    "maintenance": cmd_maintenance,
    "world": cmd_world,
    "serve": cmd_serve,
}


def main(argv=None, state=None):
    """Parse ``argv``, run one subcommand, and return its exit code."""
    parser = build_parser()
    try:
        args = parser.parse_args(argv)
    except SystemExit as exc:
        return EXIT_OK if exc.code == 0 else EXIT_USAGE
    handler = _COMMANDS.get(args.command)
    if handler is None:
        parser.print_help(sys.stderr)
        return EXIT_USAGE

    if state is None:
        from mcidle.main import build_state

        state = build_state(args.config)
    code = handler(state, args)
    if code is None:
        parser.print_help(sys.stderr)
        return EXIT_USAGE
    return code


if __name__ == "__main__":
    sys.exit(main())
