# ========================================================================
# File:       chainq/helpers/core_helper.py
# Purpose:    Safe calls + value shape checks shared by the builder and drivers
# Created:    2026-10-18
# ========================================================================

from __future__ import annotations
from collections.abc import Mapping
from typing import Any, Callable


def safe_call(func: Callable, *args, **kwargs):
    """Call the function and leave exceptions to the layer above."""
    return func(*args, **kwargs)


def normalize_keyword(text: Any) -> str:
    """'not  in' -> 'NOT IN'. Collapses inner whitespace and upper-cases."""
    return " ".join(str(text or "").split()).upper()


def is_value_list(value: Any) -> bool:
    """True for list/tuple/set values (IN lists). Strings and mappings are not lists."""
    return isinstance(value, (list, tuple, set, frozenset))


def is_mapping(value: Any) -> bool:
    return isinstance(value, Mapping)
