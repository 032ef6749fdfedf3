from .context import QueryContext
from .entity import Entity
from .fields import Field
from .relations import (
    HasManyRelation,
    HasManyThroughRelation,
    ReferencesManyRelation,
    ReferencesManyThroughRelation,
    ReferencesOneRelation,
    Relation,
)
from .types import MISSING, ComputedType, Date, DateTime, Decimal, Int, OptionalType, String, Time, Type

__all__ = [
    'QueryContext',
    'Entity',
    'Field',
    'Relation',
    'HasManyRelation',
    'HasManyThroughRelation',
    'ReferencesManyRelation',
    'ReferencesManyThroughRelation',
    'ReferencesOneRelation',
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
