from __future__ import annotations

import logging
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional

from sqlalchemy import Column, ForeignKey, Integer, MetaData, Table

from .core.entity import Entity
from .core.relations import Relation
from .core.types import Type
from .errors import SchemaError, UnknownNameError

logger = logging.getLogger(__name__)

__all__ = ['Model']


class Model:
    """Registry of entities sharing one :class:`~sqlalchemy.MetaData`.

    Entities and relations are declared first, then the model is frozen.
    A frozen model rejects further declarations and is safe to share
    across concurrent requests.
    """

    def __init__(self, metadata: Optional[MetaData] = None):
        self.metadata = metadata if metadata is not None else MetaData()
        self._entities: Dict[str, Entity] = {}
        self._frozen = False

    def __repr__(self) -> str:
        return f"<Model entities={list(self._entities)}>"

    @property
    def frozen(self) -> bool:
        return self._frozen

    @property
    def entities(self) -> Mapping[str, Entity]:
        return MappingProxyType(self._entities)

    def ensure_mutable(self) -> None:
        if self._frozen:
            raise SchemaError("Model is frozen; no further declarations are allowed")

    def define(self, name: str, fields: Mapping[str, Type], *, label: Optional[str] = None) -> Entity:
        self.ensure_mutable()
        if name in self._entities or name in self.metadata.tables:
            raise SchemaError(f"Entity or table '{name}' is already defined")
        entity = Entity(self, name, fields, label=label)
        self._entities[name] = entity
        logger.info("Defined entity '%s' with fields %s", name, list(fields))
        return entity

    def entity(self, name: str) -> Entity:
        try:
            return self._entities[name]
        except KeyError:
            raise UnknownNameError(f"Unknown entity: {name}") from None

    def get(self, name: str) -> Optional[Entity]:
        return self._entities.get(name)

    def relation(self, entity_name: str, field_name: str) -> Relation:
        field = self.entity(entity_name).fields.get(field_name)
        if not isinstance(field, Relation):
            raise UnknownNameError(f"Unknown relation: {entity_name}.{field_name}")
        return field

    def add_through_table(self, through: str, owner: Entity, target: Entity) -> Table:
        """Create the join table for a many-to-many pair.

        Columns are named after the two entities and form the primary key.
        """
        if owner is target:
            raise SchemaError(f"Join table '{through}' cannot link entity '{owner.name}' to itself")
        if through in self.metadata.tables or through in self._entities:
            raise SchemaError(f"Table '{through}' is already defined")
        return Table(
            through,
            self.metadata,
            Column(owner.name, Integer(), ForeignKey(f"{owner.name}.id", ondelete='CASCADE'), primary_key=True),
            Column(target.name, Integer(), ForeignKey(f"{target.name}.id", ondelete='CASCADE'), primary_key=True),
        )

    def freeze(self) -> 'Model':
        self._frozen = True
        logger.debug("Model frozen with %d entities", len(self._entities))
        return self

    async def create_all(self, connection: Any) -> None:
        """Create every entity and join table on an async connection."""
        await connection.run_sync(self.metadata.create_all)

    async def drop_all(self, connection: Any) -> None:
        await connection.run_sync(self.metadata.drop_all)
