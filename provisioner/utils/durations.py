"""Parser for Go-style duration strings such as ``"5m"`` or ``"1h2m3.5s"``."""

from __future__ import annotations

import re

# Unit -> seconds
_UNITS: dict[str, float] = {
    "ns": 1e-9,
    "us": 1e-6,
    "µs": 1e-6,
    "μs": 1e-6,
    "ms": 1e-3,
    "s": 1.0,
    "m": 60.0,
    "h": 3600.0,
}

_COMPONENT = re.compile(r"(\d+\.?\d*|\.\d+)(ns|us|µs|μs|ms|s|m|h)")


def parse_duration(text: str) -> float:
    """Parse *text* into a number of seconds.

    A duration is an optional sign followed by one or more decimal numbers,
    each with an optional fraction and a mandatory unit suffix.  The bare
    string ``"0"`` is also accepted.

    Raises:
        ValueError: If *text* is not a valid duration.
    """
    original = text
    if not text:
        raise ValueError(f"invalid duration {original!r}")

    sign = 1.0
    if text[0] in "+-":
        if text[0] == "-":
            sign = -1.0
        text = text[1:]

    if text == "0":
        return 0.0
    if not text:
        raise ValueError(f"invalid duration {original!r}")

    total = 0.0
    pos = 0
    while pos < len(text):
        match = _COMPONENT.match(text, pos)
        if match is None:
            if text[pos].isdigit() or text[pos] == ".":
                raise ValueError(f"missing unit in duration {original!r}")
            raise ValueError(f"invalid duration {original!r}")
        total += float(match.group(1)) * _UNITS[match.group(2)]
        pos = match.end()

    return sign * total
