from __future__ import annotations

from typing import Any, Callable, Dict, Tuple

# Only equality and inequality are supported. `None` renders IS [NOT] NULL.
OPERATOR_REGISTRY: Dict[str, Callable[[Any, Any], Any]] = {
    'eq': lambda col, v: col == v,
    'ne': lambda col, v: col != v,
}

DEFAULT_OPERATOR = 'eq'


def split_filter_key(key: str) -> Tuple[str, str]:
    """Split a ``field:op`` query key. A bare ``field`` means ``field:eq``."""
    name, sep, op = str(key).partition(':')
    if not sep:
        return name, DEFAULT_OPERATOR
    return name, op
