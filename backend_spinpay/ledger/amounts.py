"""
Amount parser — any upstream or client amount representation to nanotons.

Indexers report values as JSON numbers, digit strings, or strings with
separators ("1 000 000", "150 nanoton"). The result is always a Python int,
so values above 2**53 survive intact.
"""

from __future__ import annotations

import math
import re
from decimal import Decimal
from typing import Any

_DIGIT_RUN = re.compile(r"\d+")
_FIRST_RUN = re.compile(r"(-?)\d")


def parse_amount(value: Any) -> int:
    """
    Convert value to an integer count of the smallest unit. Never raises.

    Integers pass through; integral floats/Decimals convert exactly. Anything
    else is read as text: every maximal digit run is concatenated in order,
    and a "-" directly before the first run makes the result negative.
    None, empty and digit-free input give 0. Lossy on malformed input.
    """
    if value is None or isinstance(value, bool):
        return 0
    if isinstance(value, int):
        return value
    if isinstance(value, float) and math.isfinite(value) and value.is_integer():
        return int(value)
    if isinstance(value, Decimal) and value.is_finite() and value == value.to_integral_value():
        return int(value)
    if isinstance(value, (bytes, bytearray)):
        text = bytes(value).decode("ascii", errors="ignore")
    else:
        text = str(value)

    runs = _DIGIT_RUN.findall(text)
    if not runs:
        return 0
    magnitude = int("".join(runs))
    first = _FIRST_RUN.search(text)
    if first is not None and first.group(1) == "-":
        return -magnitude
    return magnitude
