from .connection import DatabaseConnection, db, create_sqlalchemy_engine
from .interface import TableInterface, SupabaseInterface, SQLAlchemyInterface
from .storage import BlobStore, SupabaseStorage, LocalStorage

from inventory_sync.config import config
from inventory_sync.exceptions import ConfigError
from inventory_sync.models import Base


class DatabaseAdapter:
    """Picks the table interface and blob store matching the configured backend."""

    def __init__(self, connection):
        """Initialize with database connection."""
        self.connection = connection
        self._tables = None
        self._storage = None

    @property
    def tables(self) -> TableInterface:
        if self._tables is None:
            if self.connection.db_type == "supabase":
                self._tables = SupabaseInterface(self.connection.get_supabase())
            elif self.connection.db_type == "postgresql":
                self._tables = SQLAlchemyInterface(self.connection.engine)
            else:
                raise ConfigError(f"Unknown database type: {self.connection.db_type}")

        return self._tables

    @property
    def storage(self) -> BlobStore:
        if self._storage is None:
            if self.connection.db_type == "supabase":
                self._storage = SupabaseStorage(
                    self.connection.get_supabase(),
                    config.supabase_config['bucket']
                )
            else:
                storage_config = config.storage_config
                self._storage = LocalStorage(
                    storage_config['directory'],
                    storage_config['public_base_url']
                )

        return self._storage


database_adapter = DatabaseAdapter(db)


def create_all_tables(engine=None):
    """Create the stock, category and warehouse tables (relational backend only)."""
    if engine is None:
        if db.db_type != "postgresql":
            raise ConfigError("create_all_tables is only available for the relational backend")
        engine = db.engine

    Base.metadata.create_all(bind=engine)


def drop_all_tables(engine=None):
    """Drop all tables (relational backend only)."""
    if engine is None:
        if db.db_type != "postgresql":
            raise ConfigError("drop_all_tables is only available for the relational backend")
        engine = db.engine

    Base.metadata.drop_all(bind=engine)
