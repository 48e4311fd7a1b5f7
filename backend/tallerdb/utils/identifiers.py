from __future__ import annotations

import os
import re
import time
import uuid
from typing import Optional

EMPLOYEE_CODE_PREFIX = "EMP"
EMPLOYEE_CODE_WIDTH = 4

_EMPLOYEE_CODE_RE = re.compile(r"^[A-Z]+-(\d+)$")


def generate_uuid7() -> str:
    """
    Generate a UUIDv7 string (time-ordered).

    Layout:
    - 48-bit Unix timestamp in milliseconds
    - 4-bit version (0b0111)
    - 74-bit randomness
    """
    ts_ms = int(time.time() * 1000)
    raw = bytearray(ts_ms.to_bytes(6, "big", signed=False) + os.urandom(10))
    raw[6] = (raw[6] & 0x0F) | 0x70
    raw[8] = (raw[8] & 0x3F) | 0x80
    return str(uuid.UUID(bytes=bytes(raw)))


def format_employee_code(number: int) -> str:
    """`7` -> `EMP-0007`. Numbers past 9999 simply grow wider."""
    if number < 1:
        raise ValueError("Employee code numbers start at 1.")
    return f"{EMPLOYEE_CODE_PREFIX}-{number:0{EMPLOYEE_CODE_WIDTH}d}"


def parse_employee_code(code: Optional[str]) -> int:
    """Return the numeric suffix of an employee code, or 0 if it has none."""
    if not code:
        return 0
    match = _EMPLOYEE_CODE_RE.match(code.strip().upper())
    if not match:
        return 0
    return int(match.group(1))
