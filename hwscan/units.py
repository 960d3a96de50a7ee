"""Binary size units and a helper to pick a display unit for an amount."""

from __future__ import annotations

KB = 1024
MB = KB * 1024
GB = MB * 1024
TB = GB * 1024
PB = TB * 1024
EB = PB * 1024

_THRESHOLDS = (
    (MB, KB, "KB"),
    (GB, MB, "MB"),
    (TB, GB, "GB"),
    (PB, TB, "TB"),
    (EB, PB, "PB"),
)


def amount_string(size: int) -> tuple[int, str]:
    """Return the unit size and its suffix suited to display ``size`` bytes."""
    for limit, unit, suffix in _THRESHOLDS:
        if size < limit:
            return unit, suffix
    return EB, "EB"