from datetime import datetime, timezone
import time


def now_ms() -> int:
    """Current wall-clock time in epoch milliseconds."""
    return int(time.time()) * 1000


def ms_to_seconds(ms: int | float) -> int:
    """Convert epoch milliseconds to whole epoch seconds (chart time key)."""
    return int(ms // 1000)


def fmt_bar_time(seconds: int, interval: str = "1m") -> str:
    """
    Format a bar time (epoch seconds) as a UTC axis label.

    Daily and longer intervals drop the clock part.

    Args:
        seconds: Bar open time in epoch seconds.
        interval: Interval code of the chart.

    Returns:
        "YYYY-MM-DD HH:MM" or "YYYY-MM-DD".
    """
    dt = datetime.fromtimestamp(seconds, tz=timezone.utc)
    if interval.endswith(("d", "w", "M")):
        return dt.strftime("%Y-%m-%d")
    return dt.strftime("%Y-%m-%d %H:%M")
