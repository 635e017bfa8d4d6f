"""
Input checks shared by the analyzer and administration.
"""

from __future__ import annotations

from typing import Any


def is_uint(value: Any) -> bool:
    """True for non-negative ints; bools are rejected even though they subclass int."""
    return isinstance(value, int) and not isinstance(value, bool) and value >= 0
