from __future__ import annotations

import inspect
import sys
from typing import Any, Callable, Optional, Type, Union

from .exceptions import InstantiationError, NamingInferenceError
from .logger import get_logger
from .naming import joining_table, qualify, snake
from .relations import BelongsTo, BelongsToMany, HasMany, HasManyThrough, HasOne, HasOneThrough

RelatedRef = Union[str, Type[Any], Callable[[], Any]]

# frames looked at when recovering the accessor name
MAX_CALLER_DEPTH = 16

_PACKAGE = __name__.rpartition(".")[0]

log = get_logger(__name__)


class RelationsMixin:
    """
    Relation definitions for an entity.

    Call these from a *relation accessor*, a method named after the relation:

        class Post(RelationalModel, Base):
            def author(self):
                return self.belongs_to(User)          # author_id -> users.id

            def tags(self):
                return self.belongs_to_many(Tag)      # post_tag.post_id / post_tag.tag_id

    Every omitted key or name is inferred by convention; explicit values are
    used as given. Each call returns a new descriptor with a fresh query on the
    related entity.

    The host class provides ``table_name()``, ``primary_key_name()``,
    ``foreign_key_name()`` and ``new_query()`` (see ``RelationalModel``).
    """

    # -------------------- Defining relations --------------------
    def belongs_to(self, related: RelatedRef, foreign_key: Optional[str] = None,
                   other_key: Optional[str] = None, relation: Optional[str] = None) -> BelongsTo:
        """Define an inverse one-to-one or one-to-many relation."""
        # the foreign key follows the relation name, not the related type
        if relation is None:
            relation = self._guess_relation_name(skip_internal=False)

        if foreign_key is None:
            foreign_key = f"{snake(relation)}_id"

        instance = self._new_related_instance(related)
        query = instance.new_query()

        other_key = other_key or instance.primary_key_name()

        log.debug("belongs_to %s.%s: foreign_key=%s other_key=%s",
                  type(self).__name__, relation, foreign_key, other_key)
        return BelongsTo(query, self, foreign_key, other_key, relation)

    def belongs_to_many(self, related: RelatedRef, table: Optional[str] = None,
                        foreign_key: Optional[str] = None, other_key: Optional[str] = None,
                        relation: Optional[str] = None) -> BelongsToMany:
        """Define a many-to-many relation through a join table."""
        if relation is None:
            relation = self._guess_relation_name(skip_internal=True)

        foreign_key = foreign_key or self.foreign_key_name()

        instance = self._new_related_instance(related)

        other_key = other_key or instance.foreign_key_name()

        if table is None:
            table = joining_table(self, instance)

        query = instance.new_query()

        log.debug("belongs_to_many %s.%s: table=%s foreign_key=%s other_key=%s",
                  type(self).__name__, relation, table, foreign_key, other_key)
        return BelongsToMany(query, self, table, foreign_key, other_key, relation)

    def has_many(self, related: RelatedRef, foreign_key: Optional[str] = None,
                 local_key: Optional[str] = None) -> HasMany:
        """Define a one-to-many relation."""
        foreign_key = foreign_key or self.foreign_key_name()

        instance = self._new_related_instance(related)

        local_key = local_key or self.primary_key_name()

        return HasMany(instance.new_query(), self, qualify(instance.table_name(), foreign_key), local_key)

    def has_many_through(self, related: RelatedRef, through: RelatedRef, first_key: Optional[str] = None,
                         second_key: Optional[str] = None, local_key: Optional[str] = None) -> HasManyThrough:
        """Define a one-to-many relation reached through an intermediate entity."""
        through = self._new_related_instance(through)

        first_key = first_key or self.foreign_key_name()
        second_key = second_key or through.foreign_key_name()
        local_key = local_key or self.primary_key_name()

        instance = self._new_related_instance(related)

        return HasManyThrough(instance.new_query(), self, through, first_key, second_key, local_key)

    def has_one(self, related: RelatedRef, foreign_key: Optional[str] = None,
                local_key: Optional[str] = None) -> HasOne:
        """Define a one-to-one relation."""
        foreign_key = foreign_key or self.foreign_key_name()

        instance = self._new_related_instance(related)

        local_key = local_key or self.primary_key_name()

        return HasOne(instance.new_query(), self, qualify(instance.table_name(), foreign_key), local_key)

    def has_one_through(self, related: RelatedRef, through: RelatedRef, first_key: Optional[str] = None,
                        second_key: Optional[str] = None, local_key: Optional[str] = None) -> HasOneThrough:
        """
        Define a one-to-one relation reached through an intermediate entity.

        Unlike ``has_many_through``, the default ``second_key`` comes from the
        related entity's foreign key name.
        """
        instance = self._new_related_instance(related)
        through = self._new_related_instance(through)

        first_key = first_key or self.foreign_key_name()
        second_key = second_key or instance.foreign_key_name()
        local_key = local_key or self.primary_key_name()

        return HasOneThrough(instance.new_query(), self, through, first_key, second_key, local_key)

    # -------------------- Helpers --------------------
    def _guess_relation_name(self, skip_internal: bool) -> str:
        """
        Name of the accessor that called the relation method.

        Frame 0 is this helper and frame 1 the relation method, so the search
        starts at frame 2. With ``skip_internal`` every frame that belongs to
        this package is passed over.
        """
        try:
            frame = sys._getframe(2)
        except ValueError:
            frame = None

        try:
            depth = 0
            while frame is not None and depth < MAX_CALLER_DEPTH:
                if not (skip_internal and _is_internal(frame)):
                    return _accessor_name(frame.f_code.co_name)
                frame = frame.f_back
                depth += 1
        finally:
            del frame

        raise NamingInferenceError(
            f"Could not find the relation accessor calling {type(self).__name__}; pass relation= explicitly"
        )

    def _new_related_instance(self, related: RelatedRef) -> Any:
        if isinstance(related, str):
            related = self._resolve_class_name(related)

        if isinstance(related, type) and (inspect.isabstract(related) or related.__dict__.get("__abstract__", False)):
            raise InstantiationError(related, "entity type is abstract")
        if not callable(related):
            raise InstantiationError(related, "expected an entity class or factory")

        try:
            instance = related()
        except Exception as exc:
            log.error("Failed to instantiate %r for %s: %s", related, type(self).__name__, exc)
            raise InstantiationError(related, str(exc) or type(exc).__name__) from exc

        if not hasattr(instance, "new_query"):
            raise InstantiationError(related, f"{type(instance).__name__} is not a relational entity")

        # the related query runs on the owner's session
        db = getattr(self, "_db", None)
        if db is not None and hasattr(instance, "bind"):
            instance.bind(db)

        return instance

    def _resolve_class_name(self, name: str) -> Type[Any]:
        registry = getattr(type(self), "registry", None)
        if registry is None:
            raise InstantiationError(name, f"{type(self).__name__} has no declarative registry to look it up in")

        matches = {m.class_ for m in registry.mappers if m.class_.__name__ == name}
        if not matches:
            raise InstantiationError(name, "no mapped class with that name")
        if len(matches) > 1:
            raise InstantiationError(name, "several mapped classes share that name")
        return matches.pop()


def _is_internal(frame) -> bool:
    module = frame.f_globals.get("__name__", "")
    return module == _PACKAGE or module.startswith(_PACKAGE + ".")


def _accessor_name(name: str) -> str:
    if not name.isidentifier() or (name.startswith("__") and name.endswith("__")):
        raise NamingInferenceError(f"Cannot use {name!r} as a relation name; pass relation= explicitly")
    return name
