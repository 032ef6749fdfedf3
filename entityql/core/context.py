from __future__ import annotations

import json
from dataclasses import dataclass, field
from functools import partial
from typing import Any, Awaitable, Callable, Dict, List, Mapping, Optional, Tuple

from sqlalchemy import and_, literal_column, select

from ..errors import SchemaError


# (transaction connection, parent id) -> awaitable
ChildMutation = Callable[[Any, Any], Awaitable[Any]]


def load_json(value: Any) -> Any:
    """Decode JSON text returned by dialects without a native JSON result type (SQLite)."""
    if isinstance(value, (bytes, bytearray)):
        value = value.decode('utf-8')
    if isinstance(value, str):
        return json.loads(value)
    return value


def load_json_array(value: Any, label_load: Optional[Callable[[Any], Any]] = None) -> Any:
    items = load_json(value)
    if label_load is not None and items:
        for item in items:
            item['label'] = label_load(item.get('label'))
    return items


def load_reference(value: Any, label_load: Optional[Callable[[Any], Any]] = None) -> Any:
    """A `{value, label}` object whose value is null means the FK is not set."""
    obj = load_json(value)
    if isinstance(obj, dict) and obj.get('value') is None:
        return None
    if label_load is not None and isinstance(obj, dict):
        obj['label'] = label_load(obj.get('label'))
    return obj


@dataclass
class QueryContext:
    """Accumulator threaded through the projection and mutation walks.

    Attributes:
        adapter: Dialect adapter used for JSON construction and insert-ignore.
        columns: Labeled SELECT expressions, in contribution order.
        joins: Callables ``from_clause -> from_clause`` applied in order.
        filters: WHERE predicates, AND-ed together.
        loaders: Field name -> callable converting the driver value of a row.
        values: Ordered ``(column, value)`` pairs for an INSERT.
        assignments: ``column -> value`` for an UPDATE.
        children: Deferred child mutations run after the parent statement.
    """

    adapter: Any
    columns: List[Any] = field(default_factory=list)
    joins: List[Callable[[Any], Any]] = field(default_factory=list)
    filters: List[Any] = field(default_factory=list)
    loaders: Dict[str, Callable[[Any], Any]] = field(default_factory=dict)
    values: List[Tuple[str, Any]] = field(default_factory=list)
    assignments: Dict[str, Any] = field(default_factory=dict)
    children: List[ChildMutation] = field(default_factory=list)

    def add_json_array(self, name: str, rows, correlate_to, label_load=None) -> None:
        """Project ``rows`` (a subquery with ``value``/``label`` columns) as a JSON array.

        ``rows`` must already carry its ordering; the aggregate keeps it.
        """
        adapter = self.adapter
        row_json = adapter.json_object(
            literal_column("'value'"), rows.c.value,
            literal_column("'label'"), rows.c.label,
        )
        agg = (
            select(adapter.json_array_coalesce(adapter.json_array_agg(row_json)))
            .select_from(rows)
            .correlate(correlate_to)
            .scalar_subquery()
        )
        self.columns.append(agg.label(name))
        self.loaders[name] = partial(load_json_array, label_load=label_load)

    def add_reference(self, name: str, value_col, label_col, label_load=None) -> None:
        obj = self.adapter.json_object(
            literal_column("'value'"), value_col,
            literal_column("'label'"), label_col,
        )
        self.columns.append(obj.label(name))
        self.loaders[name] = partial(load_reference, label_load=label_load)

    def select_from(self, table):
        """Reduce the collected projection into one SELECT over ``table``."""
        if not self.columns:
            raise SchemaError(f"Entity '{table.name}' has no projected fields")
        from_clause = table
        for join in self.joins:
            from_clause = join(from_clause)
        stmt = select(*self.columns).select_from(from_clause)
        if self.filters:
            stmt = stmt.where(and_(*self.filters))
        return stmt.order_by(table.c.id.asc())

    def load_row(self, mapping: Mapping[str, Any]) -> Dict[str, Any]:
        row = dict(mapping)
        for key, loader in self.loaders.items():
            if key in row:
                row[key] = loader(row[key])
        return row
