# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
"""Parsing of duration strings such as ``"30s"``, ``"1m"`` or ``"1h30m"``.

Configuration files express timeouts in this compact form. ``Duration`` is a
pydantic-aware ``timedelta`` that accepts either such a string or a number of
seconds.
"""

import re

from datetime import timedelta
from typing import Annotated, Any
from pydantic import BeforeValidator, PlainSerializer

_UNIT_SECONDS = {
    "ns": 1e-9,
    "us": 1e-6,
    "µs": 1e-6,
    "μs": 1e-6,
    "ms": 1e-3,
    "s": 1.0,
    "m": 60.0,
    "h": 3600.0,
}

_COMPONENT = re.compile(r"(\d+(?:\.\d*)?|\.\d+)(ns|us|µs|μs|ms|s|m|h)")


def parse_duration(value: str) -> timedelta:
    """Parse a duration string into a ``timedelta``.

    A duration is an optionally signed sequence of decimal numbers, each with
    a unit suffix, e.g. ``"300ms"``, ``"-1.5h"`` or ``"2h45m"``. The bare
    string ``"0"`` is also accepted.

    Raises:
        ValueError: if the string is not a valid duration
    """
    original = value
    s = value.strip()
    if not s:
        raise ValueError(f"invalid duration {original!r}")

    sign = 1.0
    if s[0] in "+-":
        sign = -1.0 if s[0] == "-" else 1.0
        s = s[1:]

    if s == "0":
        return timedelta(0)

    total = 0.0
    pos = 0
    while pos < len(s):
        match = _COMPONENT.match(s, pos)
        if match is None:
            raise ValueError(f"invalid duration {original!r}")
        number, unit = match.groups()
        total += float(number) * _UNIT_SECONDS[unit]
        pos = match.end()

    if pos == 0:
        raise ValueError(f"invalid duration {original!r}")
    return timedelta(seconds=sign * total)


def format_duration(td: timedelta) -> str:
    """Render a ``timedelta`` in the same compact form, e.g. ``"1h30m0s"``."""
    total = td.total_seconds()
    if total == 0:
        return "0s"
    sign = "-" if total < 0 else ""
    total = abs(total)
    if total < 1:
        return f"{sign}{total * 1000:g}ms"
    hours, rem = divmod(total, 3600)
    minutes, seconds = divmod(rem, 60)
    out = sign
    if hours:
        out += f"{int(hours)}h"
    if hours or minutes:
        out += f"{int(minutes)}m"
    out += f"{seconds:g}s"
    return out


def _coerce_duration(value: Any) -> Any:
    if isinstance(value, str):
        return parse_duration(value)
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return timedelta(seconds=value)
    return value


Duration = Annotated[
    timedelta,
    BeforeValidator(_coerce_duration),
    PlainSerializer(format_duration, return_type=str),
]
