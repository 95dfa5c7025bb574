"""Display formatting helpers."""

import math
from typing import Any


def format_duration(ms: Any) -> str:
    """Format milliseconds as a zero-padded MM:SS string.

    Negative, non-numeric or non-finite input yields "00:00".

    Examples:
        >>> format_duration(65000)
        '01:05'
    """
    if isinstance(ms, bool) or not isinstance(ms, (int, float)):
        return "00:00"
    if not math.isfinite(ms) or ms < 0:
        return "00:00"

    total_seconds = int(ms // 1000)
    minutes, seconds = divmod(total_seconds, 60)
    return f"{minutes:02d}:{seconds:02d}"
