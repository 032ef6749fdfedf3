from __future__ import annotations

import logging

from .base import BaseAdapter
from .sqlite import SQLiteAdapter
from .postgres import PostgresAdapter

logger = logging.getLogger(__name__)


def get_adapter(dialect_name: str) -> BaseAdapter:
    dn = (dialect_name or '').lower()
    if dn.startswith('postgres'):
        return PostgresAdapter()
    if not dn.startswith('sqlite'):
        logger.warning("No adapter for dialect '%s', falling back to SQLite", dialect_name)
    return SQLiteAdapter()


__all__ = [
    'BaseAdapter',
    'SQLiteAdapter',
    'PostgresAdapter',
    'get_adapter',
]
