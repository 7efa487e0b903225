"""Filesystem helpers for archive listings, safe paths, and atomic writes."""

import json
import os
from pathlib import Path


def format_file_size(num_bytes):
    """Format bytes into a human-readable string (B/KB/MB/GB/TB)."""
    value = float(max(0, num_bytes or 0))
    units = ["B", "KB", "MB", "GB", "TB"]
    idx = 0
    while value >= 1024 and idx < len(units) - 1:
        value /= 1024
        idx += 1
    if idx == 0:
        return f"{int(value)} {units[idx]}"
    return f"{value:.1f} {units[idx]}"


def list_archive_files(base_dir, suffix):
    """Return archive metadata sorted newest-first; names drop ``suffix``."""
    items = []
    base_dir = Path(base_dir)
    if not base_dir.exists() or not base_dir.is_dir():
        return items

    for path in base_dir.glob(f"*{suffix}"):
        if not path.is_file():
            continue
        try:
            stat = path.stat()
        except OSError:
            continue
        ts = stat.st_mtime
        items.append({
            "name": path.name[: -len(suffix)],
            "path": str(path),
            "mtime": ts,
            "size_bytes": stat.st_size,
        })

    items.sort(key=lambda item: item["mtime"], reverse=True)
    return items


def dir_size_bytes(path):
    """Return the total size of regular files under ``path`` (0 when missing)."""
    path = Path(path)
    if path.is_file():
        try:
            return path.stat().st_size
        except OSError:
            return 0
    total = 0
    for root, _dirs, files in os.walk(path):
        for name in files:
            try:
                total += os.lstat(os.path.join(root, name)).st_size
            except OSError:
                continue
    return total


def safe_child_dir(base_dir, relative):
    """Return ``base_dir/relative`` when it is an existing directory inside base."""
    if not relative:
        return None
    candidate = Path(base_dir) / relative
    try:
        base_resolved = Path(base_dir).resolve()
        candidate_resolved = candidate.resolve()
    except OSError:
        return None
    try:
        candidate_resolved.relative_to(base_resolved)
    except ValueError:
        return None
    if not candidate_resolved.is_dir():
        return None
    return candidate_resolved


def atomic_write_text(path, text):
    """Write text to a temp sibling and rename it over ``path``."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    temp = path.with_name(path.name + ".tmp")
    temp.write_text(str(text), encoding="utf-8")
    temp.replace(path)


def atomic_write_json(path, payload):
    """Write a JSON document atomically."""
    atomic_write_text(path, json.dumps(payload, indent=2, sort_keys=True))


def remove_file(path):
    """Delete a file if present; return whether it existed."""
    try:
        Path(path).unlink()
    except FileNotFoundError:
        return False
    return True
