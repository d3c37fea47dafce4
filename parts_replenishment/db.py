from contextlib import contextmanager

from sqlalchemy import create_engine, text
from sqlalchemy.orm import sessionmaker, Session

from parts_replenishment.config import config
from parts_replenishment.exceptions import DataStoreError
from parts_replenishment.models import Base


class Database:
    """Database connection manager for the Parts Replenishment engine."""

    _instance = None

    def __new__(cls):
        """Singleton pattern implementation."""
        if cls._instance is None:
            cls._instance = super(Database, cls).__new__(cls)
            cls._instance._initialized = False
        return cls._instance

    def __init__(self):
        """Set up empty state; the engine is created on initialize()."""
        if self._initialized:
            return

        self._engine = None
        self._session_factory = None
        self._initialized = True

    def initialize(self, connection_string=None, create_tables=False):
        """Initialize database connection.

        Args:
            connection_string: Optional database connection string.
                              If not provided, will use configuration.
            create_tables: Create missing tables after connecting
        """
        if connection_string is None:
            connection_string = config.get_db_url()

        echo = config.get_boolean('DATABASE', 'echo', False)

        try:
            self._engine = create_engine(connection_string, echo=echo)
            self._session_factory = sessionmaker(
                autocommit=False,
                autoflush=False,
                bind=self._engine
            )

            with self._engine.connect() as conn:
                conn.execute(text("SELECT 1"))

            if create_tables:
                Base.metadata.create_all(bind=self._engine)
        except Exception as e:
            raise DataStoreError(f"Database initialization failed: {str(e)}")

    @property
    def engine(self):
        if self._engine is None:
            self.initialize()
        return self._engine

    def get_session(self) -> Session:
        """Get a new database session."""
        if self._session_factory is None:
            self.initialize()
        return self._session_factory()

    @contextmanager
    def session_scope(self):
        """Provide a transactional scope around a series of operations."""
        session = self.get_session()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def create_all_tables(self):
        """Create all tables."""
        Base.metadata.create_all(bind=self.engine)

    def drop_all_tables(self):
        """Drop all tables."""
        Base.metadata.drop_all(bind=self.engine)

# Global database instance
db = Database()

@contextmanager
def session_scope():
    """Context manager for database sessions."""
    with db.session_scope() as session:
        yield session
