from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Callable, Dict, Iterable, List, Mapping, Optional, Tuple

from sqlalchemy import Column, Integer, Table, delete, insert, select, update

from ..adapters import BaseAdapter, get_adapter
from ..errors import SchemaError, UnknownNameError, ValidationError
from .context import QueryContext
from .fields import Field
from .filters import OPERATOR_REGISTRY, split_filter_key
from .relations import (
    HasManyRelation,
    HasManyThroughRelation,
    ReferencesManyRelation,
    ReferencesManyThroughRelation,
    ReferencesOneRelation,
    Relation,
)
from .types import MISSING, Int, Type

if TYPE_CHECKING:  # pragma: no cover
    from ..registry import Model

logger = logging.getLogger(__name__)

# transaction connection -> awaitable result
Writer = Callable[[Any], Any]


class Entity:
    """A named, fixed collection of fields and relations backed by one table.

    Every entity has an integer ``id`` primary key. Declare it as
    ``Int.computed()`` to expose it in projections and filters.

    Public contract:
        - :meth:`find` / :meth:`search` read rows as plain dicts.
        - :meth:`insert` / :meth:`update` / :meth:`delete` validate eagerly and
          return a deferred writer to be awaited with a transaction connection.
        - :meth:`has_many`, :meth:`references_many`, :meth:`references_one`,
          :meth:`has_many_through`, :meth:`references_many_through` declare
          relation pairs.
    """

    def __init__(self, model: 'Model', name: str, fields: Mapping[str, Type], label: Optional[str] = None):
        for field_name, field_type in fields.items():
            if not isinstance(field_type, Type):
                raise SchemaError(f"Field '{name}.{field_name}' must be a Type, got {field_type!r}")
        if label is not None and label not in fields:
            raise SchemaError(f"Label '{label}' of entity '{name}' is not a scalar field")
        self.model = model
        self.name = name
        self.label = label
        self.fields: Dict[str, Field] = {}
        id_type = fields.get('id')
        id_column_type = id_type.column_type() if id_type is not None else Integer()
        self.table = Table(name, model.metadata, Column('id', id_column_type, primary_key=True))
        for field_name, field_type in fields.items():
            self._install(Field(self, field_name, field_type))

    def __repr__(self) -> str:
        return f"<Entity {self.name}>"

    @property
    def label_load(self) -> Optional[Callable[[Any], Any]]:
        """Loader applied to this entity's label inside ``{value, label}`` JSON."""
        if self.label is None:
            return None
        return self.fields[self.label].type.load

    # --- schema declaration ---------------------------------------------------
    def _install(self, field: Field) -> None:
        self.fields[field.name] = field
        if field.name == 'id':
            return
        column = field.column_def()
        if column is not None:
            self.table.append_column(column)

    def _check_free(self, name: str) -> None:
        if name in self.fields or name in self.table.c:
            raise SchemaError(f"Entity '{self.name}' already has a member named '{name}'")

    def _pair(self, relation: Relation, inverse: Relation, through: Optional[str] = None) -> Relation:
        """Install a relation and its inverse together, or neither."""
        self.model.ensure_mutable()
        target = inverse.owner
        if self.model.entities.get(target.name) is not target:
            raise SchemaError(f"Entity '{target.name}' is not defined in this model")
        if relation.owner is target and relation.name == inverse.name:
            raise SchemaError(f"Relation '{relation.qualified_name}' cannot be its own inverse")
        self._check_free(relation.name)
        target._check_free(inverse.name)
        if through is not None:
            self.model.add_through_table(through, self, target)
        self._install(relation)
        target._install(inverse)
        logger.debug(
            "Declared %s %s <-> %s %s",
            type(relation).__name__, relation.qualified_name,
            type(inverse).__name__, inverse.qualified_name,
        )
        return relation

    def has_many(self, name: str, target: 'Entity', foreign_key: str) -> Relation:
        """``target`` rows point at this entity through column ``foreign_key``.

        Installs ``target.fields[foreign_key]`` as the inverse reference.
        """
        return self._pair(
            HasManyRelation(self, name, target.name, foreign_key),
            ReferencesOneRelation(target, foreign_key, self.name, name),
        )

    def references_many(self, name: str, target: 'Entity', foreign_key: str) -> Relation:
        """Read-only variant of :meth:`has_many`."""
        return self._pair(
            ReferencesManyRelation(self, name, target.name, foreign_key),
            ReferencesOneRelation(target, foreign_key, self.name, name),
        )

    def references_one(self, name: str, target: 'Entity', inverse_name: str) -> Relation:
        """This entity stores column ``name`` pointing at one ``target`` row.

        ``target`` receives a read-only collection named ``inverse_name``.
        """
        return self._pair(
            ReferencesOneRelation(self, name, target.name, inverse_name),
            ReferencesManyRelation(target, inverse_name, self.name, name),
        )

    def has_many_through(self, name: str, target: 'Entity', foreign_key: str, through: str) -> Relation:
        """Writable many-to-many through join table ``through``.

        The join table has one column per entity, named after the entity.
        ``target`` receives the read-only side as ``foreign_key``.
        """
        return self._pair(
            HasManyThroughRelation(self, name, target.name, foreign_key, through),
            ReferencesManyThroughRelation(target, foreign_key, self.name, name, through),
            through=through,
        )

    def references_many_through(self, name: str, target: 'Entity', foreign_key: str, through: str) -> Relation:
        return self._pair(
            ReferencesManyThroughRelation(self, name, target.name, foreign_key, through),
            ReferencesManyThroughRelation(target, foreign_key, self.name, name, through),
            through=through,
        )

    # --- reads ----------------------------------------------------------------
    def parse_key(self, key: Any) -> Any:
        id_field = self.fields.get('id')
        if id_field is not None:
            return id_field.parse_filter(key)
        return Int.parse(key)

    def build_filters(self, params: Optional[Mapping[str, Any]]) -> List[Any]:
        filters: List[Any] = []
        for key, raw in (params or {}).items():
            field_name, op = split_filter_key(key)
            field = self.fields.get(field_name)
            if field is None:
                raise UnknownNameError(f"Unknown filter field: {field_name}")
            op_fn = OPERATOR_REGISTRY.get(op)
            if op_fn is None:
                raise UnknownNameError(f"Unknown filter operator: {op}")
            filters.append(op_fn(field.filter_column, field.parse_filter(raw)))
        return filters

    def project(self, adapter: BaseAdapter) -> QueryContext:
        context = QueryContext(adapter=adapter)
        for field in self.fields.values():
            field.project_into(context)
        return context

    def build_select(
        self,
        adapter: BaseAdapter,
        params: Optional[Mapping[str, Any]] = None,
        *,
        joins: Iterable[Callable[[Any], Any]] = (),
        filters: Iterable[Any] = (),
    ) -> Tuple[QueryContext, Any]:
        """Run the projection walk and reduce it into one SELECT."""
        predicates = self.build_filters(params)
        context = self.project(adapter)
        context.joins.extend(joins)
        context.filters.extend(predicates)
        context.filters.extend(filters)
        return context, context.select_from(self.table)

    async def fetch_all(self, connection, params=None, *, joins=(), filters=()) -> List[Dict[str, Any]]:
        context, stmt = self.build_select(get_adapter(connection.dialect.name), params, joins=joins, filters=filters)
        result = await connection.execute(stmt)
        return [context.load_row(m) for m in result.mappings().all()]

    async def find(self, connection, key: Any) -> Optional[Dict[str, Any]]:
        key = self.parse_key(key)
        rows = await self.fetch_all(connection, filters=[self.table.c.id == key])
        return rows[0] if rows else None

    async def search(self, connection, params: Optional[Mapping[str, Any]] = None) -> List[Dict[str, Any]]:
        return await self.fetch_all(connection, params)

    # --- writes ---------------------------------------------------------------
    def _check_payload(self, payload: Any) -> None:
        if not isinstance(payload, dict):
            raise ValidationError(f"Payload for '{self.name}' must be an object, got {type(payload).__name__}")
        unknown = [k for k in payload if k not in self.fields]
        if unknown:
            logger.debug("Ignoring unknown keys for '%s': %s", self.name, unknown)

    def insert(self, connection, payload: Any) -> Writer:
        """Validate ``payload`` and return a writer that inserts it.

        The writer inserts the parent row, then runs the child mutations with
        the generated id, one after another, and resolves to that id.
        """
        self._check_payload(payload)
        context = QueryContext(adapter=get_adapter(connection.dialect.name))
        for name, field in self.fields.items():
            field.insert_children(context, payload.get(name, MISSING))
        table = self.table
        values = dict(context.values)
        children = list(context.children)

        async def _insert(transaction):
            stmt = insert(table)
            if values:
                stmt = stmt.values(values)
            result = await transaction.execute(stmt.returning(table.c.id))
            new_id = result.scalar_one()
            for child in children:
                await child(transaction, new_id)
            logger.debug("Inserted %s %s with %d child mutation(s)", self.name, new_id, len(children))
            return new_id

        return _insert

    def update(self, connection, key: Any, delta: Any) -> Writer:
        """Validate ``delta`` and return a writer that applies it to row ``key``.

        The UPDATE and the child mutations run sequentially on the same
        transaction. The writer resolves to ``key``, or ``None`` if no such row.
        """
        self._check_payload(delta)
        key = self.parse_key(key)
        context = QueryContext(adapter=get_adapter(connection.dialect.name))
        for name, field in self.fields.items():
            field.upsert_children(context, delta.get(name, MISSING))
        table = self.table
        assignments = dict(context.assignments)
        children = list(context.children)

        async def _update(transaction):
            if assignments:
                result = await transaction.execute(update(table).where(table.c.id == key).values(assignments))
                if result.rowcount == 0:
                    return None
            else:
                found = await transaction.execute(select(table.c.id).where(table.c.id == key))
                if found.first() is None:
                    return None
            for child in children:
                await child(transaction, key)
            return key

        return _update

    def delete(self, connection, key: Any) -> Writer:
        """Return a writer that detaches dependent rows and deletes row ``key``."""
        key = self.parse_key(key)
        table = self.table
        relations = [f for f in self.fields.values() if isinstance(f, Relation)]

        async def _delete(transaction):
            for relation in relations:
                await relation.detach(transaction, key)
            result = await transaction.execute(delete(table).where(table.c.id == key))
            return key if result.rowcount else None

        return _delete
