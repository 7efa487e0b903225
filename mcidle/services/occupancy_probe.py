"""Player occupancy probe over the game server's RCON console."""

from pathlib import Path
import re
import shutil
import subprocess
import time

from mcidle.state import OccupancyReading

DEFAULT_RCON_PORT = 25575


def candidate_mcrcon_bins():
    """Return preferred list of mcrcon binary candidates."""
    candidates = []
    found = shutil.which("mcrcon")
    if found:
        candidates.append(found)
    for path in ("/usr/bin/mcrcon", "/usr/local/bin/mcrcon", "/opt/mcrcon/mcrcon"):
        if path not in candidates and Path(path).exists():
            candidates.append(path)
    return candidates


def clean_rcon_output(text):
    """Strip ANSI and section-format control codes from RCON output."""
    cleaned = text or ""
    cleaned = re.sub(r"\x1b\[[0-9;]*[A-Za-z]", "", cleaned)
    cleaned = re.sub(r"§.", "", cleaned)
    return cleaned


def parse_server_properties(text):
    """Parse KEY=VALUE lines from server.properties style content."""
    kv = {}
    for raw in (text or "").splitlines():
        line = raw.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        key, value = line.split("=", 1)
        kv[key.strip()] = value.strip()
    return kv


def resolve_rcon_credentials(ctx):
    """Return (password, port) from config first, then server.properties."""
    password = (ctx.RCON_PASSWORD or "").strip()
    port = ctx.RCON_PORT
    props_path = Path(ctx.SERVER_PROPERTIES)
    try:
        kv = parse_server_properties(props_path.read_text(encoding="utf-8", errors="ignore"))
    except OSError:
        kv = {}
    if not password:
        password = kv.get("rcon.password", "").strip()
    if not port:
        port_text = str(kv.get("rcon.port", "")).strip()
        port = int(port_text) if port_text.isdigit() else DEFAULT_RCON_PORT
    return password or None, port


def run_mcrcon(ctx, command, timeout=None):
    """Execute one RCON command through mcrcon with a bounded timeout."""
    password, port = resolve_rcon_credentials(ctx)
    if not password:
        raise RuntimeError("RCON password unavailable: set RCON_PASSWORD or rcon.password")
    bins = candidate_mcrcon_bins()
    if not bins:
        raise RuntimeError("mcrcon binary not found")
    if timeout is None:
        timeout = ctx.RCON_TIMEOUT_SECONDS
    argv = [bins[0], "-H", ctx.RCON_HOST, "-P", str(port), "-p", password, command]
    return subprocess.run(
        argv,
        capture_output=True,
        text=True,
        timeout=timeout,
    )


def parse_players_online(output):
    """Parse the connected player count from ``list`` output; None if absent."""
    text = clean_rcon_output(output).strip()
    if not text:
        return None
    match = re.search(r"There are\s+(\d+)\s+(?:of a max of|out of maximum)", text, re.IGNORECASE)
    if match:
        return int(match.group(1))
    if re.search(r"\bno players online\b", text, re.IGNORECASE):
        return 0
    match = re.search(r"(\d+)\s+players?\s+online", text, re.IGNORECASE)
    if match:
        return int(match.group(1))
    match = re.search(r"Players?\s+online:\s*(\d+)", text, re.IGNORECASE)
    if match:
        return int(match.group(1))
    return None


def probe_occupancy(ctx):
    """Return the current occupancy; any failure yields an unknown count."""
    observed_at = time.time()
    try:
        result = run_mcrcon(ctx, "list")
    except subprocess.TimeoutExpired:
        ctx.log_system("occupancy-probe", command="list", rejection_message=f"RCON timed out after {ctx.RCON_TIMEOUT_SECONDS}s.")
        return OccupancyReading(count=None, observed_at=observed_at)
    except Exception as exc:
        ctx.log_system("occupancy-probe", command="list", rejection_message=str(exc))
        return OccupancyReading(count=None, observed_at=observed_at)
    if result.returncode != 0:
        return OccupancyReading(count=None, observed_at=observed_at)
    count = parse_players_online((result.stdout or "") + (result.stderr or ""))
    return OccupancyReading(count=count, observed_at=observed_at)
