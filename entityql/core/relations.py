"""The five relation variants.

Relations are declared in pairs (see :meth:`Entity.has_many` and friends).
Each half knows its target and its inverse only by name; both are resolved
through the owning :class:`~entityql.registry.Model`, so the schema holds no
direct back-pointers.

==========================  ======================  ============================
Variant                     Storage                 Inverse
==========================  ======================  ============================
HasManyRelation             FK column on target     ReferencesOneRelation
ReferencesManyRelation      FK column on target     ReferencesOneRelation
ReferencesOneRelation       FK column on owner      HasMany / ReferencesMany
HasManyThroughRelation      join table              ReferencesManyThroughRelation
ReferencesManyThroughRel.   join table              either through variant
==========================  ======================  ============================
"""
from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Dict, List, Mapping, Optional

from sqlalchemy import Column, ForeignKey, Integer, delete, null, select, update

from ..errors import UnknownNameError, ValidationError
from .fields import Field
from .types import MISSING, Int

if TYPE_CHECKING:  # pragma: no cover
    from .context import QueryContext
    from .entity import Entity

logger = logging.getLogger(__name__)

__all__ = [
    'Relation',
    'HasManyRelation',
    'ReferencesManyRelation',
    'ReferencesOneRelation',
    'HasManyThroughRelation',
    'ReferencesManyThroughRelation',
]


def parse_ids(relation: 'Relation', value: Any) -> Any:
    """Validate a list of target ids. Every element is checked before anything runs."""
    if value is MISSING:
        return MISSING
    if not isinstance(value, (list, tuple)):
        raise ValidationError(f"Relation '{relation.qualified_name}' expects a list of ids, got {value!r}")
    for item in value:
        if isinstance(item, bool) or not isinstance(item, int):
            raise ValidationError(f"Relation '{relation.qualified_name}' got a non-integer id: {item!r}")
    return list(dict.fromkeys(value))


class Relation(Field):
    """Field-like member pointing at another entity.

    Read-only by default: any supplied value fails validation.
    """

    kind = 'relation'
    many = True

    def __init__(self, owner: 'Entity', name: str, target_name: str, inverse_name: str):
        super().__init__(owner, name, None)  # type: ignore[arg-type]
        self.target_name = target_name
        self.inverse_name = inverse_name

    @property
    def qualified_name(self) -> str:
        return f"{self.owner.name}.{self.name}"

    @property
    def target(self) -> 'Entity':
        return self.owner.model.entity(self.target_name)

    @property
    def inverse_relation(self) -> 'Relation':
        return self.owner.model.relation(self.target_name, self.inverse_name)

    def column_def(self) -> Optional[Column]:
        return None

    @property
    def filter_column(self):
        raise UnknownNameError(f"Relation '{self.qualified_name}' cannot be used as a filter")

    def parse(self, value: Any) -> Any:
        if value is MISSING:
            return MISSING
        raise ValidationError(f"Relation '{self.qualified_name}' is read-only")

    def parse_filter(self, value: Any) -> Any:
        raise UnknownNameError(f"Relation '{self.qualified_name}' cannot be used as a filter")

    def upsert_children(self, context: 'QueryContext', value: Any) -> None:
        self.parse(value)

    def insert_children(self, context: 'QueryContext', value: Any) -> None:
        self.parse(value)

    def project_into(self, context: 'QueryContext') -> None:
        raise NotImplementedError

    async def search(self, connection, key: Any, params: Optional[Mapping[str, Any]] = None):
        raise NotImplementedError

    async def detach(self, connection, key: Any) -> None:
        """Clear rows that point at owner row ``key`` before it is deleted."""
        return None


class ReferencesManyRelation(Relation):
    """Owner is referenced by many target rows through ``target.<inverse_name>``."""

    @property
    def foreign_key(self) -> str:
        return self.inverse_name

    def project_into(self, context):
        target = self.target
        # Unlabeled targets contribute no column.
        if not target.label:
            return
        owner_table = self.owner.table
        t = target.table.alias()
        rows = (
            select(t.c.id.label('value'), t.c[target.label].label('label'))
            .where(t.c[self.foreign_key] == owner_table.c.id)
            .order_by(t.c.id.asc())
            .correlate(owner_table)
            .subquery()
        )
        context.add_json_array(self.name, rows, owner_table, label_load=target.label_load)

    async def search(self, connection, key, params=None):
        target = self.target
        key = self.owner.parse_key(key)
        return await target.fetch_all(
            connection,
            params,
            filters=[target.table.c[self.foreign_key] == key],
        )

    async def detach(self, connection, key):
        t = self.target.table
        await connection.execute(
            update(t).where(t.c[self.foreign_key] == key).values({self.foreign_key: None})
        )


class HasManyRelation(ReferencesManyRelation):
    """Writable one-to-many: the supplied id list becomes the complete child set."""

    def parse(self, value):
        return parse_ids(self, value)

    def insert_children(self, context, value):
        ids = self.parse(value)
        if ids is not MISSING:
            context.children.append(self._replace(ids))

    def upsert_children(self, context, value):
        self.insert_children(context, value)

    def _replace(self, ids: List[int]):
        t = self.target.table
        fk = self.foreign_key

        async def _mutate(connection, parent_id):
            logger.debug("Setting %s of %s to %s", self.qualified_name, parent_id, ids)
            if ids:
                await connection.execute(update(t).where(t.c.id.in_(ids)).values({fk: parent_id}))
            await connection.execute(
                update(t).where(t.c[fk] == parent_id, t.c.id.notin_(ids)).values({fk: None})
            )

        return _mutate


class ReferencesOneRelation(Relation):
    """Owner row stores one FK column (named after the field) pointing at the target."""

    many = False

    def column_def(self):
        return Column(
            self.name,
            Integer(),
            ForeignKey(f"{self.target_name}.id", ondelete='SET NULL'),
            nullable=True,
        )

    @property
    def filter_column(self):
        return self.column

    def parse(self, value):
        if value is MISSING or value is None:
            return value
        if isinstance(value, bool) or not isinstance(value, int):
            raise ValidationError(f"Relation '{self.qualified_name}' got a non-integer id: {value!r}")
        return value

    def parse_filter(self, value):
        if value is None:
            return None
        return Int.parse(value)

    def upsert_children(self, context, value):
        Field.upsert_children(self, context, value)

    def insert_children(self, context, value):
        Field.insert_children(self, context, value)

    def project_into(self, context):
        target = self.target
        alias = target.table.alias()
        fk = self.column
        context.joins.append(lambda from_clause: from_clause.outerjoin(alias, alias.c.id == fk))
        label = alias.c[target.label] if target.label else null()
        context.add_reference(self.name, alias.c.id, label, label_load=target.label_load)

    async def search(self, connection, key, params=None):
        target = self.target
        key = self.owner.parse_key(key)
        owner_alias = self.owner.table.alias()
        rows = await target.fetch_all(
            connection,
            params,
            joins=[lambda from_clause: from_clause.join(owner_alias, owner_alias.c[self.name] == target.table.c.id)],
            filters=[owner_alias.c.id == key],
        )
        return rows[0] if rows else None


class ReferencesManyThroughRelation(Relation):
    """Many-to-many through a join table whose columns are named after both entities."""

    def __init__(self, owner, name, target_name, inverse_name, through: str):
        super().__init__(owner, name, target_name, inverse_name)
        self.through = through

    @property
    def through_table(self):
        return self.owner.model.metadata.tables[self.through]

    def project_into(self, context):
        target = self.target
        owner_table = self.owner.table
        t = target.table.alias()
        j = self.through_table.alias()
        label = t.c[target.label] if target.label else null()
        rows = (
            select(t.c.id.label('value'), label.label('label'))
            .select_from(t.join(j, j.c[target.name] == t.c.id))
            .where(j.c[self.owner.name] == owner_table.c.id)
            .order_by(t.c.id.asc())
            .correlate(owner_table)
            .subquery()
        )
        context.add_json_array(self.name, rows, owner_table, label_load=target.label_load)

    async def search(self, connection, key, params=None):
        target = self.target
        key = self.owner.parse_key(key)
        j = self.through_table
        return await target.fetch_all(
            connection,
            params,
            joins=[lambda from_clause: from_clause.join(j, j.c[target.name] == target.table.c.id)],
            filters=[j.c[self.owner.name] == key],
        )

    async def detach(self, connection, key):
        j = self.through_table
        await connection.execute(delete(j).where(j.c[self.owner.name] == key))


class HasManyThroughRelation(ReferencesManyThroughRelation):
    """Writable many-to-many.

    On insert the ids are linked (existing pairs are ignored). On update the
    list is authoritative: links to ids not in the list are removed.
    """

    def parse(self, value):
        return parse_ids(self, value)

    def insert_children(self, context, value):
        ids = self.parse(value)
        if ids is not MISSING:
            context.children.append(self._link(context.adapter, ids, replace=False))

    def upsert_children(self, context, value):
        ids = self.parse(value)
        if ids is not MISSING:
            context.children.append(self._link(context.adapter, ids, replace=True))

    def _link(self, adapter, ids: List[int], *, replace: bool):
        j = self.through_table
        owner_col = self.owner.name
        target_col = self.target_name

        async def _mutate(connection, parent_id):
            logger.debug("Linking %s of %s to %s (replace=%s)", self.qualified_name, parent_id, ids, replace)
            if ids:
                rows: List[Dict[str, Any]] = [{owner_col: parent_id, target_col: i} for i in ids]
                await connection.execute(adapter.insert_ignore(j).values(rows))
            if replace:
                await connection.execute(
                    delete(j).where(j.c[owner_col] == parent_id, j.c[target_col].notin_(ids))
                )

        return _mutate
