from __future__ import annotations

from enum import Enum
from typing import Any, Dict, Optional, Tuple

from sqlalchemy import column, table

from .collection import ModelCollection
from .naming import unqualify
from .query_builder import QueryBuilder


class RelationKind(str, Enum):
    BELONGS_TO = "BelongsTo"
    BELONGS_TO_MANY = "BelongsToMany"
    HAS_MANY = "HasMany"
    HAS_MANY_THROUGH = "HasManyThrough"
    HAS_ONE = "HasOne"
    HAS_ONE_THROUGH = "HasOneThrough"


class Relation:
    """
    Describes how to reach the related rows of ``owner``.

    ``query`` is a fresh ``QueryBuilder`` on the related model when the
    descriptor is created. ``add_constraints()`` narrows it to the owner's rows
    and ``get_results()`` runs it.
    """

    kind: RelationKind
    many: bool = False
    _key_fields: Tuple[str, ...] = ()

    def __init__(self, query: QueryBuilder, owner: Any, relation_name: Optional[str] = None):
        self.query = query
        self.owner = owner
        self.relation_name = relation_name
        self._constrained = False
        self._empty = False

    @property
    def related_model(self):
        return self.query.model

    def keys(self) -> Dict[str, Any]:
        """Key fields of this descriptor, by attribute name."""
        return {name: getattr(self, name) for name in self._key_fields}

    def add_constraints(self) -> "Relation":
        if not self._constrained:
            self._constrained = True
            self._apply_constraints()
        return self

    def _apply_constraints(self) -> None:
        raise NotImplementedError

    def get_results(self):
        self.add_constraints()
        if self.many:
            if self._empty:
                return ModelCollection([], self.query.db)
            return ModelCollection(self.query.all(), self.query.db)
        return None if self._empty else self.query.first()

    # ---------- helpers ----------
    def _owner_value(self, key: str) -> Any:
        value = self.owner.get_attribute(key)
        if value is None:
            self._empty = True
        return value

    def _related_column(self, key: str):
        return self._column(self.related_model, key)

    @staticmethod
    def _column(model, key: str):
        name = unqualify(key)
        if not hasattr(model, name):
            raise ValueError(f"{model.__name__} has no attribute '{name}'")
        return getattr(model, name)

    def __repr__(self) -> str:
        fields = ", ".join(f"{k}={v!r}" for k, v in self.keys().items())
        return f"<{type(self).__name__} {self.related_model.__name__} {fields}>"


class BelongsTo(Relation):
    """Inverse one-to-one / one-to-many: the owner holds the foreign key."""

    kind = RelationKind.BELONGS_TO
    _key_fields = ("foreign_key", "other_key", "relation_name")

    def __init__(self, query, owner, foreign_key: str, other_key: str, relation_name: str):
        super().__init__(query, owner, relation_name)
        self.foreign_key = foreign_key
        self.other_key = other_key

    def _apply_constraints(self) -> None:
        value = self._owner_value(self.foreign_key)
        self.query.where(None, self._related_column(self.other_key) == value)


class BelongsToMany(Relation):
    """Many-to-many through a join table holding both foreign keys."""

    kind = RelationKind.BELONGS_TO_MANY
    many = True
    _key_fields = ("table", "foreign_key", "other_key", "relation_name")

    def __init__(self, query, owner, table: str, foreign_key: str, other_key: str, relation_name: str):
        super().__init__(query, owner, relation_name)
        self.table = table
        self.foreign_key = foreign_key
        self.other_key = other_key

    @property
    def join_table(self):
        return table(self.table, column(self.foreign_key), column(self.other_key))

    def _apply_constraints(self) -> None:
        join = self.join_table
        related_key = self._related_column(self.related_model.primary_key_name())
        value = self._owner_value(self.owner.primary_key_name())

        self.query.join(join, join.c[self.other_key] == related_key)
        self.query.where(None, join.c[self.foreign_key] == value)


class HasOneOrMany(Relation):
    """The related table holds the (table-qualified) foreign key."""

    _key_fields = ("foreign_key", "local_key")

    def __init__(self, query, owner, foreign_key: str, local_key: str):
        super().__init__(query, owner)
        self.foreign_key = foreign_key
        self.local_key = local_key

    @property
    def plain_foreign_key(self) -> str:
        return unqualify(self.foreign_key)

    def _apply_constraints(self) -> None:
        value = self._owner_value(self.local_key)
        self.query.where({self.foreign_key: value})


class HasMany(HasOneOrMany):
    kind = RelationKind.HAS_MANY
    many = True


class HasOne(HasOneOrMany):
    kind = RelationKind.HAS_ONE


class HasOneOrManyThrough(Relation):
    """
    Owner -> through -> related.

    ``first_key`` is the column on the through table pointing at the owner,
    ``second_key`` the column on the related table pointing at the through row.
    """

    _key_fields = ("first_key", "second_key", "local_key")

    def __init__(self, query, owner, through: Any, first_key: str, second_key: str, local_key: str):
        super().__init__(query, owner)
        self.through = through
        self.first_key = first_key
        self.second_key = second_key
        self.local_key = local_key

    @property
    def through_model(self):
        return type(self.through)

    def keys(self) -> Dict[str, Any]:
        keys = super().keys()
        keys["through"] = self.through_model.__name__
        return keys

    def _apply_constraints(self) -> None:
        through = self.through_model
        through_key = self._column(through, self.through.primary_key_name())
        value = self._owner_value(self.local_key)

        self.query.join(through, through_key == self._related_column(self.second_key))
        self.query.where(None, self._column(through, self.first_key) == value)


class HasManyThrough(HasOneOrManyThrough):
    kind = RelationKind.HAS_MANY_THROUGH
    many = True


class HasOneThrough(HasOneOrManyThrough):
    kind = RelationKind.HAS_ONE_THROUGH
