"""Small helpers shared across the hardware inspection modules."""

from __future__ import annotations

from typing import Callable

UNKNOWN = "unknown"

_STRICT_TRUE = frozenset({"1", "t", "T", "TRUE", "true", "True"})
_STRICT_FALSE = frozenset({"0", "f", "F", "FALSE", "false", "False"})
_EXTRA_BOOLS = {
    "on": True,
    "off": False,
    "yes": True,
    "no": False,
    # empty files (for instance in the sysfs net class) count as false
    "": False,
}

Warner = Callable[..., None]


def safe_int_from_file(path, warn: Warner) -> int:
    """Read an integer from ``path``; return -1 and warn on any failure."""
    msg = "failed to read int from file: %s\n"
    try:
        with open(path, encoding="utf-8", errors="replace") as handle:
            contents = handle.read().strip()
    except OSError as err:
        warn(msg, err)
        return -1
    try:
        return int(contents)
    except ValueError as err:
        warn(msg, err)
        return -1


def concat_strings(*args: str) -> str:
    """Concatenate the given strings with no separator."""
    return "".join(args)


def parse_bool(text: str) -> bool:
    """Parse a boolean, also accepting on/off/yes/no in any case and "".

    Raises ValueError for anything that is not recognised.
    """
    if text in _STRICT_TRUE:
        return True
    if text in _STRICT_FALSE:
        return False
    try:
        return _EXTRA_BOOLS[text.lower()]
    except KeyError:
        raise ValueError(f"invalid boolean value: {text!r}") from None