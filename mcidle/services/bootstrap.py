"""Application bootstrap/run helpers."""


def run_server(app, state, host=None, port=None):
    """Log boot, then start the Flask control API server."""
    host = host or state.WEB_HOST
    port = port or state.WEB_PORT
    state.log_system("boot-start", command=f"host={host} port={port}")
    if not state.API_TOKEN:
        state.log_system("boot-warning", command="MCIDLE_API_TOKEN unset; mutating routes disabled")

    state.log_system("boot-ready", command=f"host={host} port={port}")
    try:
        app.run(host=host, port=port)
    except Exception as exc:
        state.log_exception("boot_step/app.run", exc)
        state.log_system("boot-failed", command="app.run", rejection_message=str(exc)[:500] or "web server startup failed")
        raise
