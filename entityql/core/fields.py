from __future__ import annotations

from typing import TYPE_CHECKING, Any

from sqlalchemy import Column

from .types import MISSING, Type

if TYPE_CHECKING:  # pragma: no cover
    from .context import QueryContext
    from .entity import Entity


class Field:
    """A named, typed column of an entity.

    Fields are created when an entity is defined and never change afterwards.
    Every method that takes a context mutates it in place; the field itself
    keeps no per-call state.

    Attributes:
        owner: The entity declaring the field.
        name: Field name, unique within the owner; also the column name.
        type: The :class:`~entityql.core.types.Type` of the column.
    """

    kind = 'scalar'

    def __init__(self, owner: 'Entity', name: str, type_: Type):
        self.owner = owner
        self.name = name
        self.type = type_

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.owner.name}.{self.name}>"

    def column_def(self) -> Column:
        return Column(self.name, self.type.column_type(), nullable=self.type.nullable)

    @property
    def column(self):
        return self.owner.table.c[self.name]

    @property
    def filter_column(self):
        """Column that ``field:op`` filters compare against."""
        return self.column

    def parse(self, value: Any) -> Any:
        return self.type.parse(value)

    def parse_filter(self, value: Any) -> Any:
        return self.type.parse_filter(value)

    def upsert_children(self, context: 'QueryContext', value: Any) -> None:
        value = self.parse(value)
        if value is not MISSING:
            context.assignments[self.name] = value

    def insert_children(self, context: 'QueryContext', value: Any) -> None:
        value = self.parse(value)
        if value is not MISSING:
            context.values.append((self.name, value))

    def project_into(self, context: 'QueryContext') -> None:
        self.type.project_into(context, self)
