from .collection import ModelCollection
from .db import Base, Database
from .descriptors import dualmethod
from .exceptions import InstantiationError, NamingInferenceError, RelationError
from .model import RelationalModel
from .query_builder import QueryBuilder
from .relations import (BelongsTo, BelongsToMany, HasMany, HasManyThrough, HasOne, HasOneThrough,
                        Relation, RelationKind)
from .resolver import RelationsMixin
from .utils import attach_relations

__all__ = [
    "Base", "Database", "ModelCollection", "QueryBuilder", "RelationalModel", "RelationsMixin",
    "Relation", "RelationKind", "BelongsTo", "BelongsToMany", "HasMany", "HasManyThrough",
    "HasOne", "HasOneThrough", "RelationError", "InstantiationError", "NamingInferenceError",
    "dualmethod", "attach_relations",
]
