"""Human-readable formatting of playback times."""


def format_duration(seconds: float) -> str:
    """Format seconds as e.g. "1h 1m 5s", "1m 30s" or "59s".

    Once a larger unit is shown, every smaller unit is shown too
    ("1h 0m 0s"). Fractions are truncated and negatives clamp to "0s".
    """
    total = max(0, int(seconds))
    hours, rest = divmod(total, 3600)
    minutes, secs = divmod(rest, 60)
    if hours:
        return f"{hours}h {minutes}m {secs}s"
    if minutes:
        return f"{minutes}m {secs}s"
    return f"{secs}s"


def format_offset(seconds: float) -> str:
    """Format a signed offset such as "+4s" or "-1m 2s"."""
    sign = "-" if seconds < 0 else "+"
    return sign + format_duration(abs(seconds))
