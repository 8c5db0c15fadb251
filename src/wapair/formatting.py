"""Formatting utilities for the status page and CLI output."""

from datetime import datetime, timezone


def format_duration(seconds: float) -> str:
    """Format a duration in seconds as a compact string.

    Examples:
        >>> format_duration(42)
        '42s'
        >>> format_duration(3725)
        '1h 2m 5s'
    """
    total = max(0, int(seconds))
    days, rem = divmod(total, 86400)
    hours, rem = divmod(rem, 3600)
    minutes, secs = divmod(rem, 60)

    parts = []
    if days:
        parts.append(f"{days}d")
    if hours or days:
        parts.append(f"{hours}h")
    if minutes or hours or days:
        parts.append(f"{minutes}m")
    parts.append(f"{secs}s")
    return " ".join(parts)


def to_iso(timestamp: float | None) -> str | None:
    """Convert a Unix timestamp to an ISO 8601 UTC string ending in 'Z'."""
    if timestamp is None:
        return None
    dt = datetime.fromtimestamp(timestamp, tz=timezone.utc)
    return dt.isoformat(timespec="milliseconds").replace("+00:00", "Z")
