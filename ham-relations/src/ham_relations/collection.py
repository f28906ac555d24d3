from typing import Any, Iterable, Optional

from sqlalchemy.orm import Session


class ModelCollection(list):
    """Rows returned by a many-row relation, bound to the session that loaded them."""

    def __init__(self, items: Optional[Iterable[Any]] = None, db: Optional[Session] = None):
        super().__init__(items or [])
        self._db = db

        if db is not None:
            for item in self:
                if hasattr(item, "bind"):
                    item.bind(db)

    @property
    def db(self) -> Optional[Session]:
        return self._db

    def first(self):
        return self[0] if self else None

    def values(self, attr: str = "id") -> list:
        return [getattr(x, attr, None) for x in self]

    def count(self, value: Any = None) -> int:
        return super().count(value) if value is not None else len(self)
