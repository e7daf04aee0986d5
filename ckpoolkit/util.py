"""Small size, path and JSON helpers."""

from __future__ import annotations

import copy
from typing import Any

PAGESIZE = 4096


def align_len(length: int) -> int:
    """Round length up to a multiple of 4."""
    rem = length % 4
    return length + 4 - rem if rem else length


def round_up_page(length: int) -> int:
    """Round length up to a multiple of the page size."""
    rem = length % PAGESIZE
    return length + PAGESIZE - rem if rem else length


def trail_slash(path: str) -> str:
    """Return path ending in exactly one added slash if it lacks one."""
    return path if path.endswith("/") else path + "/"


def json_array_string(val: Any, entry: int) -> str | None:
    """Return the string at index entry of a JSON array, or None if there is none."""
    if not isinstance(val, list) or not 0 <= entry < len(val):
        return None
    item = val[entry]
    return item if isinstance(item, str) else None


def json_object_dup(val: Any, key: str) -> Any:
    """Return a shallow copy of the member key of a JSON object, or None."""
    if not isinstance(val, dict) or key not in val:
        return None
    return copy.copy(val[key])