"""Formatting utilities for consistent output across CLI and TUI."""

_UNITS = "KMGTPE"


def format_bytes(num_bytes: int | float) -> str:
    """Format a byte count with binary units.

    Returns:
        "512 B", "1.5 KB", "3.2 GB", ...
    """
    if num_bytes < 1024:
        return f"{int(num_bytes)} B"
    value = float(num_bytes)
    exp = -1
    while value >= 1024 and exp < len(_UNITS) - 1:
        value /= 1024
        exp += 1
    return f"{value:.1f} {_UNITS[exp]}B"


def format_rate(bytes_per_sec: float) -> str:
    """Format a byte rate, e.g. "1.2 MB/s"."""
    return f"{format_bytes(bytes_per_sec)}/s"


def format_uptime(seconds: int | float) -> str:
    """Format uptime compactly.

    Returns:
        "3d 4h 5m", "4h 5m" or "5m"
    """
    seconds = int(seconds)
    days, rem = divmod(seconds, 86400)
    hours, rem = divmod(rem, 3600)
    minutes = rem // 60
    if days > 0:
        return f"{days}d {hours}h {minutes}m"
    if hours > 0:
        return f"{hours}h {minutes}m"
    return f"{minutes}m"


def format_percent(value: float) -> str:
    """Format a percentage with one decimal."""
    return f"{value:.1f}%"


def truncate(text: str, max_len: int) -> str:
    """Shorten text to max_len characters, marking the cut with "..."."""
    if len(text) <= max_len:
        return text
    if max_len <= 3:
        return text[:max_len]
    return text[: max_len - 3] + "..."


def progress_bar(percent: float, width: int = 30) -> str:
    """Render a fixed-width bar of filled/empty blocks."""
    filled = int(percent / 100 * width)
    filled = max(0, min(width, filled))
    return "█" * filled + "░" * (width - filled)
