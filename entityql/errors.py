"""Error taxonomy for EntityQL.

All of these are raised while statements are being built, before any I/O.
Database errors coming from SQLAlchemy are not wrapped.
"""
from __future__ import annotations

__all__ = [
    'EntityQLError',
    'SchemaError',
    'ParseError',
    'ValidationError',
    'UnknownNameError',
]


class EntityQLError(Exception):
    """Base class for every error raised by EntityQL."""


class SchemaError(EntityQLError):
    """Invalid schema declaration (duplicate names, unpaired relation, frozen model)."""


class ParseError(EntityQLError, TypeError):
    """A raw value cannot be coerced by a scalar or modifier type."""


class ValidationError(EntityQLError, ValueError):
    """Payload has the wrong shape or writes something that is not writable."""


class UnknownNameError(EntityQLError, LookupError):
    """A filter or lookup names a field, entity, relation or operator that does not exist."""
