"""Lenient parsers for iCafeCloud billing log fields.

Upstream values arrive as strings of varying shape (``"01:30:00"``, ``"45"``,
``"12.50"``, ``""``) and occasionally as numbers or nulls. Each parser maps
anything it cannot read to a neutral value instead of raising.
"""

from __future__ import annotations

import math
import re
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any

_HMS_RE = re.compile(r"^(\d+):([0-5]?\d):([0-5]?\d)$")
_SECONDS_RE = re.compile(r"^\d+(\.\d+)?$")


def parse_time_to_seconds(value: Any) -> int:
    """``"HH:MM:SS"`` (hours may exceed 24) or bare seconds -> int seconds.

    Unparseable input yields 0.
    """
    if value is None:
        return 0
    text = str(value).strip()
    if not text:
        return 0
    match = _HMS_RE.match(text)
    if match:
        hours, minutes, seconds = (int(part) for part in match.groups())
        return hours * 3600 + minutes * 60 + seconds
    if _SECONDS_RE.match(text):
        return int(float(text))
    return 0


def parse_amount(value: Any) -> float:
    """Monetary field -> float; non-numeric, NaN and infinities yield 0."""
    if value is None:
        return 0.0
    try:
        amount = float(str(value).strip())
    except ValueError:
        return 0.0
    if math.isnan(amount) or math.isinf(amount):
        return 0.0
    return amount


def parse_log_timestamp(*candidates: Any) -> datetime | None:
    """First readable timestamp among ``candidates`` (``log_date_local`` first)."""
    for value in candidates:
        if not value:
            continue
        text = str(value).strip().replace("Z", "+00:00")
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            continue
        # naive wall-clock time, so local and offset-bearing values compare
        return parsed.replace(tzinfo=None)
    return None


def round_half_up(value: float, digits: int = 1) -> float:
    """Round like a dashboard would (0.25 -> 0.3), not banker's rounding."""
    quantum = Decimal(1).scaleb(-digits)
    try:
        return float(Decimal(repr(value)).quantize(quantum, rounding=ROUND_HALF_UP))
    except InvalidOperation:  # pragma: no cover - nan/inf never reach here
        return 0.0
