"""
Tolerant attribute coercion

Showplan attributes are text; anything absent or malformed becomes zero
(or False) instead of an exception.
"""

import math
import re
from typing import Optional

_INT_RE = re.compile(r'^[+-]?\d+$')


def parse_float(value: Optional[str]) -> float:
    """Parse a floating point attribute, 0.0 when absent, malformed or not finite"""
    if value is None:
        return 0.0
    text = str(value).strip()
    if not text or '_' in text:
        return 0.0
    try:
        result = float(text)
    except ValueError:
        return 0.0
    return result if math.isfinite(result) else 0.0


def parse_int(value: Optional[str]) -> int:
    """Parse an integer attribute, 0 when absent or not a plain integer"""
    if value is None:
        return 0
    text = str(value).strip()
    if not _INT_RE.match(text):
        return 0
    return int(text)


def parse_truncated_int(value: Optional[str]) -> int:
    """Parse a number that may carry a fraction (e.g. '12.0') and truncate it"""
    return int(parse_float(value))


def parse_bool(value: Optional[str]) -> bool:
    """Showplan booleans are written as 'true'/'false' or '1'/'0'"""
    return value in ("true", "1")
