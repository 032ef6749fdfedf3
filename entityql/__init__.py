"""EntityQL: declare entities and relations once, get generic find/search/insert/update/delete.

The HTTP surface lives in :mod:`entityql.http` and is imported on demand.
"""
from __future__ import annotations

from .config import Settings
from .core import (
    MISSING,
    Date,
    DateTime,
    Decimal,
    Entity,
    Int,
    String,
    Time,
    Type,
)
from .db import Database, create_engine
from .errors import EntityQLError, ParseError, SchemaError, UnknownNameError, ValidationError
from .registry import Model

__all__ = [
    'Model',
    'Entity',
    'Type',
    'MISSING',
    'String',
    'Int',
    'Decimal',
    'DateTime',
    'Date',
    'Time',
    'Settings',
    'Database',
    'create_engine',
    'EntityQLError',
    'SchemaError',
    'ParseError',
    'ValidationError',
    'UnknownNameError',
]
