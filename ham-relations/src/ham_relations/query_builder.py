# query_builder.py
from __future__ import annotations

import re
from typing import Any, Dict, List, Optional, Type, Union

from sqlalchemy import asc, desc, func, select
from sqlalchemy.orm import Session
from sqlalchemy.orm.attributes import InstrumentedAttribute
from sqlalchemy.sql import ColumnElement

FilterDict = Dict[str, Any]
JoinTarget = Any

_OPERATOR_RE = re.compile(r"^(?P<field>.+?)__(?P<op>[a-z]+)$")


class QueryBuilder:
    """
    Chainable query scope for one SQLAlchemy model (sync Session).

    A relation descriptor receives a fresh, unconstrained builder and adds its
    join/where constraints to it before running it.

    Example:
        qb = QueryBuilder(db, Post)\\
                .where({"posts.user_id": 8})\\
                .order_by("-id")\\
                .limit(10)

        posts = qb.all()
    """

    def __init__(self, db: Optional[Session], model: Type[Any]):
        self.db: Optional[Session] = db
        self.model: Type[Any] = model

        self._joins: List[tuple[JoinTarget, Any, bool]] = []        # (target, onclause, isouter)
        self._filters: List[ColumnElement[bool]] = []
        self._order_by: List[ColumnElement[Any]] = []
        self._limit: Optional[int] = None
        self._offset: Optional[int] = None

    # ---------- state ----------
    @property
    def is_constrained(self) -> bool:
        return bool(self._joins or self._filters)

    @property
    def filters(self) -> List[ColumnElement[bool]]:
        return list(self._filters)

    @property
    def joins(self) -> List[tuple[JoinTarget, Any, bool]]:
        return list(self._joins)

    # ---------- chainable API ----------
    def where(self, filters: Optional[FilterDict] = None,
              *expressions: ColumnElement[bool]) -> "QueryBuilder":
        """
        Add filter criteria. Use either:
          - dict with optional operators via suffixes:
                {"id": 8,
                 "posts.user_id": 3,
                 "title__ilike": "%orm%",
                 "id__in": [1, 2, 3],
                 "published_at__isnull": True}
          - raw SQLAlchemy boolean expressions as *expressions
        """
        if filters:
            self._filters.extend(self._build_predicates(filters))
        if expressions:
            self._filters.extend(expressions)
        return self

    def join(self, target: Union[str, JoinTarget], onclause: Any = None,
             isouter: bool = False) -> "QueryBuilder":
        """
        Join a mapped relationship (by name or attribute), another model, or a
        Core ``Table``/``TableClause`` with an explicit ``onclause``.
        """
        if isinstance(target, str):
            target = self._resolve_attr(self.model, target)
        if not self._has_join(target):
            self._joins.append((target, onclause, isouter))
        return self

    def order_by(self, *items: Union[str, ColumnElement[Any]]) -> "QueryBuilder":
        """Order by columns; ``"field"`` sorts ascending, ``"-field"`` descending."""
        for it in items:
            if not isinstance(it, str):
                self._order_by.append(it)
                continue

            direction = desc if it.startswith("-") else asc
            name = it[1:] if it.startswith("-") else it
            self._order_by.append(direction(self._resolve_attr(self.model, name)))
        return self

    def limit(self, n: int) -> "QueryBuilder":
        self._limit = n
        return self

    def offset(self, n: int) -> "QueryBuilder":
        self._offset = n
        return self

    # ---------- builders / runners ----------
    def build(self):
        """Return the SQLAlchemy ``Select`` for the current state."""
        q = select(self.model)

        for target, onclause, isouter in self._joins:
            q = q.join(target, onclause, isouter=isouter) if onclause is not None \
                else q.join(target, isouter=isouter)

        if self._filters:
            q = q.where(*self._filters)
        if self._order_by:
            q = q.order_by(*self._order_by)
        if self._limit is not None:
            q = q.limit(self._limit)
        if self._offset is not None:
            q = q.offset(self._offset)

        return q

    def first(self):
        self._ensure_ready()
        return self.db.execute(self.build().limit(1)).scalars().first()

    def all(self) -> list:
        self._ensure_ready()
        return list(self.db.execute(self.build()).scalars().all())

    def count(self) -> int:
        """Return row count matching current filters/joins."""
        self._ensure_ready()
        q = select(func.count()).select_from(self.build().order_by(None).subquery())
        return self.db.execute(q).scalar_one()

    def exists(self) -> bool:
        return self.first() is not None

    def to_sql(self) -> str:
        """Return the SQL string; uses the session dialect when one is bound."""
        q = self.build()
        bind = getattr(self.db, "bind", None) if self.db is not None else None
        if bind is not None:
            return str(q.compile(dialect=bind.dialect))
        return str(q)

    # ---------- helpers ----------
    def _ensure_ready(self) -> None:
        if self.db is None:
            raise RuntimeError(
                f"No session bound to the {self.model.__name__} query; bind one with Model.bind(session)."
            )

    def _resolve_attr(self, model: Type[Any], name: str) -> InstrumentedAttribute:
        base = self._normalize_field(name)
        if "." in base or not hasattr(model, base):
            raise ValueError(f"{model.__name__} has no attribute '{base}'")
        return getattr(model, base)

    def _normalize_field(self, field: str) -> str:
        """Strip a ``Model.`` or ``table.`` prefix naming the root model."""
        prefixes = [f"{self.model.__name__}."]
        table = getattr(self.model, "__table__", None)
        tablename = table.name if table is not None else getattr(self.model, "__tablename__", None)
        if tablename:
            prefixes.append(f"{tablename}.")
        for prefix in prefixes:
            if field.startswith(prefix):
                return field[len(prefix):]
        return field

    def _build_predicates(self, data: FilterDict) -> List[ColumnElement[bool]]:
        """
        Translate dict data into SQLAlchemy boolean expressions.
        Supports suffix operators: __eq, __ne, __lt, __lte, __gt, __gte,
                                   __in, __between, __like, __ilike,
                                   __isnull, __notnull
        Default operator is __eq.
        """
        preds: List[ColumnElement[bool]] = []

        for key, value in data.items():
            m = _OPERATOR_RE.match(key)
            raw_field, op = (m.group("field"), m.group("op")) if m else (key, "eq")
            col = self._resolve_attr(self.model, raw_field)

            if op == "eq":
                preds.append(col.is_(None) if value is None else (col == value))
            elif op == "ne":
                preds.append(col.is_not(None) if value is None else (col != value))
            elif op in ("lt", "lte", "gt", "gte"):
                op_map = {"lt": col.__lt__, "lte": col.__le__, "gt": col.__gt__, "gte": col.__ge__}
                preds.append(op_map[op](value))
            elif op == "in":
                if not isinstance(value, (list, tuple, set)):
                    raise TypeError(f"'{key}' expects a list/tuple/set")
                preds.append(col.in_(list(value)))
            elif op == "between":
                if not (isinstance(value, (list, tuple)) and len(value) == 2):
                    raise TypeError(f"'{key}' expects a 2-tuple/list (low, high)")
                lo, hi = value
                preds.append(col.between(lo, hi))
            elif op == "like":
                preds.append(col.like(value))
            elif op == "ilike":
                preds.append(col.ilike(value))
            elif op == "isnull":
                preds.append(col.is_(None) if value else col.is_not(None))
            elif op == "notnull":
                preds.append(col.is_not(None))
            else:
                raise ValueError(f"Unsupported operator '__{op}' for field '{raw_field}'")

        return preds

    def _has_join(self, target) -> bool:
        return any(t is target for t, _, _ in self._joins)
