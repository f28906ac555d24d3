from typing import Iterator, Optional

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from .config import get_settings


class Database:
    """
    Process-wide engine and session factory.

    The first instantiation creates the engine; later ones return the same
    object. ``Database.reset()`` disposes of it so a new URL can be used.
    """
    _instance = None
    _engine: Optional[Engine] = None
    _session_factory = None

    def __new__(cls, *args, **kwargs):
        if cls._instance is None:
            cls._instance = super(Database, cls).__new__(cls)
        return cls._instance

    def __init__(self, url: str = None, **kwargs):
        if self._engine is None:
            url = url or get_settings().database_url
            self._engine = create_engine(url, **kwargs)
            self._session_factory = sessionmaker(
                bind=self._engine,
                autoflush=False,
            )

    @property
    def engine(self) -> Engine:
        return self._engine

    def get_db(self) -> Iterator[Session]:
        """Dependency-style session: commits on success, rolls back on error."""
        db = self._session_factory()
        try:
            yield db
            db.commit()
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()

    def new_session(self) -> Session:
        return self._session_factory()

    def init_db(self, base=None) -> None:
        """Create tables for every model registered on ``base``."""
        (base or Base).metadata.create_all(bind=self._engine)

    def close(self) -> None:
        if self._engine is not None:
            self._engine.dispose()

    @classmethod
    def reset(cls) -> None:
        if cls._instance is not None:
            cls._instance.close()
        cls._instance = None
        cls._engine = None
        cls._session_factory = None


Base = declarative_base()


# rows loaded by a session come back already bound to it
@event.listens_for(Base, "load", propagate=True)
def _bind_on_load(target, context):
    if hasattr(target, "bind"):
        target.bind(context.session)
