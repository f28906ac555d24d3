from __future__ import annotations

from typing import Any, Optional

from sqlalchemy import inspect as sa_inspect
from sqlalchemy.orm import Session

from .descriptors import dualmethod
from .naming import class_basename, foreign_key_for, table_name_for, unqualify
from .query_builder import QueryBuilder
from .resolver import RelationsMixin


class RelationalModel(RelationsMixin):
    """
    Entity mixin for SQLAlchemy models that define relations.
    Concrete models inherit both (RelationalModel, Base).

    Example:
        class User(RelationalModel, Base):
            __tablename__ = "users"
            id = Column(Integer, primary_key=True)

            def posts(self):
                return self.has_many(Post)

        user = session.get(User, 1)
        user.posts().get_results()
    """
    __abstract__ = True

    # used when the class is not mapped to a table
    _primary_key = "id"

    __db = None

    # -------------------- Session wiring --------------------
    def bind(self, db: Optional[Session]) -> "RelationalModel":
        """Bind a Session to this instance; relation queries run on it."""
        if db is not None:
            self.__db = db
        return self

    @property
    def _db(self) -> Optional[Session]:
        if self.__db is not None:
            return self.__db
        state = sa_inspect(self, raiseerr=False)
        return getattr(state, "session", None)

    # -------------------- Naming conventions --------------------
    @dualmethod
    def table_name(self) -> str:
        # mapped classes use their Table's name, whether declared by __tablename__ or __table__
        table = getattr(type(self), "__table__", None)
        if table is not None:
            return table.name
        return getattr(type(self), "__tablename__", None) or table_name_for(class_basename(self))

    @dualmethod
    def primary_key_name(self) -> str:
        table = getattr(type(self), "__table__", None)
        if table is None:
            return self._primary_key

        pk_columns = list(table.primary_key.columns)
        # prefer 'id' if it is part of the key
        for col in pk_columns:
            if col.name == "id":
                return "id"
        if pk_columns:
            return pk_columns[0].name
        raise ValueError(f"No primary key defined for {type(self).__name__}")

    @dualmethod
    def foreign_key_name(self) -> str:
        """Conventional column other tables use to point at this entity, e.g. ``user_id``."""
        return foreign_key_for(class_basename(self), self.primary_key_name())

    @dualmethod
    def new_query(self) -> QueryBuilder:
        """Fresh, unconstrained query on this entity's table."""
        return QueryBuilder(self._db, type(self))

    # -------------------- Attribute access --------------------
    def get_attribute(self, key: str) -> Any:
        return getattr(self, unqualify(key), None)

    def get_key(self) -> Any:
        return self.get_attribute(self.primary_key_name())
