"""Boundary normalization for Bags API values.

Upstream records mix encodings: lamport amounts arrive as decimal strings,
claim timestamps arrive either as unix seconds or as date-time strings.
Everything here maps those variants to one canonical type (int lamports,
UTC datetime) before the analyzer looks at them. Nothing here raises on
bad input — unparseable values come back as None.
"""

from __future__ import annotations

import math
import re
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from typing import Union

LAMPORTS_PER_SOL = 1_000_000_000

# int/float seconds since epoch, or a date-time string; None when absent
RawTimestamp = Union[int, float, str, None]

# Leading signed integer, like JS parseInt(x, 10)
_LEADING_INT_RE = re.compile(r"^\s*([+-]?\d+)")


def parse_lamports(value: object) -> int | None:
    """
    Parse a lamport amount with leading-integer semantics.

    "5000000000" → 5000000000, "12abc" → 12, "abc" / "" / None → None.
    Integers are accepted as-is.
    """
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if not isinstance(value, str):
        return None
    m = _LEADING_INT_RE.match(value)
    if not m:
        return None
    return int(m.group(1))


def lamports_to_sol(lamports: int) -> float:
    return lamports / LAMPORTS_PER_SOL


def normalize_timestamp(raw: RawTimestamp) -> datetime | None:
    """
    Map a raw claim timestamp to a UTC datetime.

    Numbers are unix seconds. Strings are ISO-8601 (a trailing "Z" and
    date-only forms are accepted; naive values are taken as UTC) or
    RFC 2822. Zero, negative, non-finite and unparseable values map to None.
    """
    if raw is None or isinstance(raw, bool):
        return None

    if isinstance(raw, (int, float)):
        if not math.isfinite(raw) or raw <= 0:
            return None
        try:
            return datetime.fromtimestamp(raw, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return None

    if isinstance(raw, str):
        text = raw.strip()
        if not text:
            return None
        parsed = _parse_datetime_string(text)
        if parsed is None:
            return None
        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=timezone.utc)
        parsed = parsed.astimezone(timezone.utc)
        if parsed.timestamp() <= 0:
            return None
        return parsed

    return None


def _parse_datetime_string(text: str) -> datetime | None:
    try:
        return datetime.fromisoformat(text)
    except ValueError:
        pass
    try:
        return parsedate_to_datetime(text)
    except (TypeError, ValueError, IndexError):
        return None
