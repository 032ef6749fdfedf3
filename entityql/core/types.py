"""Scalar types and the Optional/Computed modifiers.

A type knows three things: how to coerce a raw (JSON or query-string) value
for a write or a filter, how to project a column into a SELECT, and how to turn
the driver value of a result row back into a JSON-friendly value.
"""
from __future__ import annotations

import datetime as _dt
import decimal as _decimal
import re
from typing import TYPE_CHECKING, Any

from sqlalchemy.sql import sqltypes

from ..errors import ParseError, ValidationError

if TYPE_CHECKING:  # pragma: no cover
    from .context import QueryContext
    from .fields import Field

__all__ = [
    'MISSING',
    'Type',
    'OptionalType',
    'ComputedType',
    'String',
    'Int',
    'Decimal',
    'DateTime',
    'Date',
    'Time',
]


class _Missing:
    """Marker for a key that is absent from a payload (not the same as null)."""

    def __repr__(self) -> str:
        return 'MISSING'

    def __bool__(self) -> bool:
        return False


MISSING: Any = _Missing()

_INT_RE = re.compile(r'^[+-]?\d+$')


class Type:
    name = 'Type'
    nullable = False

    def optional(self) -> 'OptionalType':
        wrapper = self.__dict__.get('_optional')
        if wrapper is None:
            wrapper = OptionalType(self)
            self._optional = wrapper
        return wrapper

    def computed(self) -> 'ComputedType':
        wrapper = self.__dict__.get('_computed')
        if wrapper is None:
            wrapper = ComputedType(self)
            self._computed = wrapper
        return wrapper

    def parse(self, value: Any) -> Any:
        return value

    def parse_filter(self, value: Any) -> Any:
        """Coerce a filter value; same as :meth:`parse` unless a modifier says otherwise."""
        return self.parse(value)

    def load(self, value: Any) -> Any:
        return value

    def column_type(self) -> sqltypes.TypeEngine:
        raise NotImplementedError

    def project_into(self, context: 'QueryContext', field: 'Field') -> None:
        context.columns.append(field.column.label(field.name))

    def __repr__(self) -> str:
        return self.name


class ScalarType(Type):
    """Leaf type: rejects null, passes MISSING through, coerces everything else."""

    def parse(self, value: Any) -> Any:
        if value is MISSING:
            return MISSING
        if value is None:
            raise ParseError(f"{self.name} does not accept null")
        return self.coerce(value)

    def coerce(self, value: Any) -> Any:
        return value

    def _fail(self, value: Any) -> ParseError:
        return ParseError(f"Cannot parse {value!r} as {self.name}")


class StringType(ScalarType):
    name = 'String'

    def coerce(self, value):
        if not isinstance(value, str):
            raise self._fail(value)
        return value

    def column_type(self):
        return sqltypes.String()


class IntType(ScalarType):
    name = 'Int'

    def coerce(self, value):
        if isinstance(value, bool):
            raise self._fail(value)
        if isinstance(value, int):
            return value
        if isinstance(value, str) and _INT_RE.match(value.strip()):
            return int(value.strip())
        raise self._fail(value)

    def column_type(self):
        return sqltypes.Integer()


class DecimalType(ScalarType):
    name = 'Decimal'

    def coerce(self, value):
        if isinstance(value, bool):
            raise self._fail(value)
        if isinstance(value, _decimal.Decimal):
            return value
        if isinstance(value, (int, float, str)):
            try:
                parsed = _decimal.Decimal(str(value).strip())
            except _decimal.InvalidOperation:
                raise self._fail(value) from None
            if not parsed.is_finite():
                raise self._fail(value)
            return parsed
        raise self._fail(value)

    def column_type(self):
        return sqltypes.Numeric()


class TemporalType(ScalarType):
    """Date/time values leave the database as bare ISO-8601 strings."""

    def project_into(self, context, field):
        super().project_into(context, field)
        context.loaders[field.name] = self.load

    def load(self, value):
        if value is None:
            return None
        if isinstance(value, str):
            # Text from JSON functions ('YYYY-MM-DD HH:MM:SS.ffffff' on SQLite)
            try:
                value = self.coerce(value)
            except ParseError:
                return value
        if isinstance(value, (_dt.datetime, _dt.date, _dt.time)):
            return value.isoformat()
        return str(value)


class DateTimeType(TemporalType):
    name = 'DateTime'

    def coerce(self, value):
        if isinstance(value, _dt.datetime):
            parsed = value
        elif isinstance(value, str):
            s = value.strip()
            s = s[:-1] + '+00:00' if s.endswith(('Z', 'z')) else s
            try:
                parsed = _dt.datetime.fromisoformat(s)
            except ValueError:
                raise self._fail(value) from None
        else:
            raise self._fail(value)
        # Stored as naive UTC
        if parsed.tzinfo is not None:
            parsed = parsed.astimezone(_dt.timezone.utc).replace(tzinfo=None)
        return parsed

    def column_type(self):
        return sqltypes.DateTime()


class DateType(TemporalType):
    name = 'Date'

    def coerce(self, value):
        if isinstance(value, _dt.datetime):
            raise self._fail(value)
        if isinstance(value, _dt.date):
            return value
        if isinstance(value, str):
            try:
                return _dt.date.fromisoformat(value.strip())
            except ValueError:
                raise self._fail(value) from None
        raise self._fail(value)

    def column_type(self):
        return sqltypes.Date()


class TimeType(TemporalType):
    name = 'Time'

    def coerce(self, value):
        if isinstance(value, _dt.time):
            return value
        if isinstance(value, str):
            try:
                return _dt.time.fromisoformat(value.strip())
            except ValueError:
                raise self._fail(value) from None
        raise self._fail(value)

    def column_type(self):
        return sqltypes.Time()


class ModifierType(Type):
    def __init__(self, source: Type):
        self.source = source

    def load(self, value):
        return self.source.load(value)

    def column_type(self):
        return self.source.column_type()

    def project_into(self, context, field):
        self.source.project_into(context, field)


class OptionalType(ModifierType):
    nullable = True

    @property
    def name(self) -> str:  # type: ignore[override]
        return f"Optional({self.source.name})"

    def parse(self, value):
        if value is None:
            return None
        return self.source.parse(value)

    def parse_filter(self, value):
        if value is None:
            return None
        return self.source.parse_filter(value)


class ComputedType(ModifierType):
    """Server-assigned value (auto-increment ids, defaults): never written by clients."""

    @property
    def name(self) -> str:  # type: ignore[override]
        return f"Computed({self.source.name})"

    @property
    def nullable(self) -> bool:  # type: ignore[override]
        return self.source.nullable

    def parse(self, value):
        if value is MISSING:
            return MISSING
        raise ValidationError(f"{self.name} is read-only and cannot be written")

    def parse_filter(self, value):
        return self.source.parse_filter(value)


String = StringType()
Int = IntType()
Decimal = DecimalType()
DateTime = DateTimeType()
Date = DateType()
Time = TimeType()
