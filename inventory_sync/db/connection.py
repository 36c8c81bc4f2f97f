# inventory_sync/db/connection.py
from typing import Dict, Any, Literal

from sqlalchemy import create_engine
from sqlalchemy.pool import StaticPool
from supabase import create_client, Client

from inventory_sync.config import config
from inventory_sync.exceptions import ConfigError, RemoteReadFailure
from inventory_sync.logging_setup import get_logger

DatabaseType = Literal["postgresql", "supabase"]

logger = get_logger('db')

class DatabaseConfig:
    """Configuration for database connections."""

    @staticmethod
    def get_db_type() -> DatabaseType:
        """Get database type from configuration."""
        db_type = config.get('DATABASE', 'type', default='supabase').lower()
        # Remove any comments from the value
        db_type = db_type.split('#')[0].strip()
        return db_type

    @staticmethod
    def get_sqlalchemy_config() -> Dict[str, Any]:
        """Get relational backend configuration."""
        return {
            'url': config.get('DATABASE', 'url', default='sqlite:///inventory.db'),
            'echo': config.get_boolean('DATABASE', 'echo', default=False)
        }

    @staticmethod
    def get_supabase_config() -> Dict[str, str]:
        """Get Supabase connection configuration."""
        return config.supabase_config


def create_sqlalchemy_engine(url: str, echo: bool = False):
    """Create an engine usable from worker threads.

    SQLite connections are shared across threads; an in-memory database keeps
    a single connection so every session sees the same tables.
    """
    if url.startswith('sqlite'):
        kwargs = {'connect_args': {'check_same_thread': False}}
        if url in ('sqlite://', 'sqlite:///:memory:'):
            kwargs['poolclass'] = StaticPool
        return create_engine(url, echo=echo, **kwargs)

    return create_engine(url, echo=echo, pool_pre_ping=True)


class DatabaseConnection:
    """Lazily created connection to either Supabase or a SQLAlchemy database."""

    def __init__(self):
        self._db_type: DatabaseType = None
        self._engine = None
        self._supabase = None

    def _ensure_initialized(self):
        if self._db_type is None:
            self._initialize_connection()

    def _initialize_connection(self):
        """Initialize the database connection based on type."""
        db_type = DatabaseConfig.get_db_type()

        if db_type == "supabase":
            self._initialize_supabase()
        elif db_type == "postgresql":
            self._initialize_sqlalchemy()
        else:
            raise ConfigError(f"Unknown database type: {db_type}")

        self._db_type = db_type
        logger.info(f"Connected to {db_type} backend")

    def _initialize_sqlalchemy(self):
        """Initialize the relational connection."""
        sa_config = DatabaseConfig.get_sqlalchemy_config()
        try:
            self._engine = create_sqlalchemy_engine(sa_config['url'], sa_config['echo'])
        except Exception as e:
            raise RemoteReadFailure(f"Failed to initialize database connection: {str(e)}")

    def _initialize_supabase(self):
        """Initialize Supabase connection."""
        supabase_config = DatabaseConfig.get_supabase_config()

        if not supabase_config['url'] or not supabase_config['key']:
            raise ConfigError("Supabase URL and key must be provided")

        try:
            self._supabase = create_client(
                supabase_config['url'],
                supabase_config['key']
            )
        except Exception as e:
            raise RemoteReadFailure(f"Failed to initialize Supabase connection: {str(e)}")

    def get_supabase(self) -> Client:
        """Get Supabase client (Supabase only)."""
        self._ensure_initialized()
        if self._db_type != "supabase":
            raise ConfigError("get_supabase is only available for Supabase connections")

        return self._supabase

    @property
    def engine(self):
        """Get SQLAlchemy engine (relational backend only)."""
        self._ensure_initialized()
        if self._db_type != "postgresql":
            raise ConfigError("engine is only available for the relational backend")

        return self._engine

    @property
    def db_type(self) -> DatabaseType:
        """Get current database type."""
        self._ensure_initialized()
        return self._db_type

# Shared instance; nothing connects until first use
db = DatabaseConnection()
