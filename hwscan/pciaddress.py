"""Parsing and formatting of PCI addresses."""

from __future__ import annotations

import re
from dataclasses import dataclass

_ADDRESS_RE = re.compile(
    r"^((1?[0-9a-f]{0,4}):)?([0-9a-f]{2}):([0-9a-f]{2})\.([0-9a-f]{1})\Z"
)


@dataclass(frozen=True)
class Address:
    """The components of a PCI address."""

    domain: str
    bus: str
    device: str
    function: str

    def __str__(self) -> str:
        return f"{self.domain}:{self.bus}:{self.device}.{self.function}"


def from_string(address: str) -> Address | None:
    """Parse a BDF or full domain-qualified PCI address.

    Returns None if the string is not a valid PCI address.
    """
    match = _ADDRESS_RE.match(address.lower())
    if match is None:
        return None
    domain = "0000" if match.group(1) is None else match.group(2)
    return Address(
        domain=domain,
        bus=match.group(3),
        device=match.group(4),
        function=match.group(5),
    )