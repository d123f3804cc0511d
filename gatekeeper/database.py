# =======================================================================================
# gatekeeper/database.py - Database Management
# =======================================================================================
from sqlalchemy import create_engine, event, text
from sqlalchemy.engine import Engine
from sqlalchemy.pool import QueuePool, StaticPool
from contextlib import contextmanager
from typing import Optional
from loguru import logger
from .config import config
from .models.tables import metadata

class DatabaseManager:
    """Manages database connections and transactions."""

    def __init__(self, url: Optional[str] = None):
        self.url = url or config.DB_URL
        self.engine: Engine = self._build_engine(self.url)

    @staticmethod
    def _build_engine(url: str) -> Engine:
        if url.startswith("sqlite"):
            # Local runs and tests; a single shared connection keeps in-memory data alive.
            engine = create_engine(
                url,
                poolclass=StaticPool,
                connect_args={"check_same_thread": False},
                future=True,
            )
            _enable_sqlite_savepoints(engine)
            return engine

        return create_engine(
            url,
            poolclass=QueuePool,
            pool_size=config.DB_POOL_SIZE,
            max_overflow=config.DB_MAX_OVERFLOW,
            pool_pre_ping=True,
            isolation_level="READ COMMITTED",
            future=True,
        )

    @contextmanager
    def get_connection(self):
        """Get a connection inside a transaction; commits on success, rolls back on error."""
        with self.engine.begin() as conn:
            yield conn

    def fetch_one(self, query: str, params: dict = None):
        """Fetch a single result."""
        with self.get_connection() as conn:
            result = conn.execute(text(query), params or {})
            return result.mappings().first()

    def create_schema(self) -> None:
        """Create any missing tables."""
        metadata.create_all(self.engine)
        logger.info("[db] schema ensured on {}", self.engine.url.render_as_string(hide_password=True))

    def drop_schema(self) -> None:
        metadata.drop_all(self.engine)


def _enable_sqlite_savepoints(engine: Engine) -> None:
    """pysqlite issues its own BEGINs; take over so SAVEPOINT works."""

    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql("BEGIN")


# Global database instance
db_manager = DatabaseManager()
