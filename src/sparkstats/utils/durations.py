"""Duration and number formatting helpers for battle-result data.

The game exports elapsed times as fixed-format strings such as
``"+00000000.00:01:34.516855700"`` (days, then HH:MM:SS and a fractional
part). Everything downstream works in seconds.
"""

from __future__ import annotations

import re
from typing import Any

BATTLE_TIME_PATTERN = re.compile(r"(\d{2}):(\d{2}):(\d{2})\.(\d+)")


def parse_battle_time(value: Any) -> float:
    """Convert a battle-time duration string to seconds.

    Only the first three digits of the fractional part are used
    (millisecond resolution). Numeric input is returned as a float and
    anything that does not match the duration pattern yields 0.0.
    """
    if value is None or isinstance(value, bool):
        return 0.0
    if isinstance(value, (int, float)):
        return float(value)
    if not isinstance(value, str):
        return 0.0

    match = BATTLE_TIME_PATTERN.search(value)
    if not match:
        return 0.0

    hours, minutes, seconds, fraction = match.groups()
    millis = int(fraction[:3].ljust(3, "0"))
    return int(hours) * 3600 + int(minutes) * 60 + int(seconds) + millis / 1000


def format_battle_time(seconds: float | None) -> str:
    """Render seconds as ``M:SS`` (hours fold into minutes)."""
    if not seconds or seconds < 0:
        return "0:00"
    whole = int(seconds)
    return f"{whole // 60}:{whole % 60:02d}"


def format_number(num: float | None) -> str:
    """Compact rendering for large counters: 1.2K, 3.4M."""
    if num is None:
        return "0"
    if num >= 1_000_000:
        return f"{num / 1_000_000:.1f}M"
    if num >= 1000:
        return f"{num / 1000:.1f}K"
    if isinstance(num, float) and not num.is_integer():
        return f"{num:.1f}"
    return str(int(num))


def safe_ratio(numerator: float, denominator: float) -> float:
    """Divide, returning 0.0 when the denominator is not positive."""
    if not denominator or denominator <= 0:
        return 0.0
    return numerator / denominator
