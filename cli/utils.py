"""Formatting helpers for CLI output."""

import sys
from typing import Sequence

from cli.constants import GREEN, RED_ORANGE, RESET
from gateway.schemas import StorageStatus

HEALTHY_STATUSES = ("ok", "up", "healthy", "online")


def format_file_size(size_bytes: int) -> str:
    """
    Format a byte count with binary units (B, KiB, MiB, GiB, TiB, PiB).

    Args:
        size_bytes: Size in bytes

    Returns:
        Formatted string, e.g. "512 B" or "1.50 MiB"
    """
    if size_bytes < 1024:
        return f"{size_bytes} B"

    size = float(size_bytes)
    for unit in ('KiB', 'MiB', 'GiB', 'TiB'):
        size /= 1024.0
        if size < 1024.0:
            return f"{size:.2f} {unit}"

    return f"{size / 1024.0:.2f} PiB"


def write_progress(line: str) -> None:
    """Overwrite the current terminal line with a progress message."""
    sys.stdout.write(f"\r{line}")
    sys.stdout.flush()


def end_progress() -> None:
    sys.stdout.write('\n')
    sys.stdout.flush()


def format_transfer(label: str, done: int, total: int) -> str:
    if total > 0:
        percent = (done / total) * 100
        return f"{label}: {format_file_size(done)} / {format_file_size(total)} ({GREEN}{percent:.1f}%{RESET})"
    return f"{label}: {format_file_size(done)}"


def format_health(statuses: Sequence[StorageStatus]) -> str:
    """Render SDS node statuses one per line, unhealthy ones highlighted."""
    if not statuses:
        return "SDS reported no storage nodes."

    healthy = sum(1 for s in statuses if s.status.lower() in HEALTHY_STATUSES)
    lines = [f"{healthy}/{len(statuses)} storage node(s) healthy:"]
    for s in statuses:
        color = GREEN if s.status.lower() in HEALTHY_STATUSES else RED_ORANGE
        lines.append(f"  - {s.host} [{s.region or '-'}]: {color}{s.status}{RESET}")
    return '\n'.join(lines)
