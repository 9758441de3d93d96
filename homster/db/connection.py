"""
Database connection management.

Production connects to Cloud SQL through the Cloud SQL Python Connector with
IAM authentication. Local development may point DATABASE_URL at any
PostgreSQL instance instead.
"""

import os

from google.cloud.sql.connector import Connector
from sqlalchemy import Engine, create_engine
from sqlalchemy.orm import Session, sessionmaker


class DatabaseConnection:
    """
    Process-wide SQLAlchemy engine and session factory.

    Usage:
        # At app startup
        DatabaseConnection.initialize()

        session = DatabaseConnection.get_session()

        # At app shutdown
        DatabaseConnection.close()
    """

    _engine: Engine | None = None
    _connector: Connector | None = None
    _session_factory: sessionmaker | None = None
    _initialized: bool = False

    @classmethod
    def is_configured(cls) -> bool:
        """Whether the environment names a database to connect to."""
        return bool(os.getenv("DATABASE_URL") or os.getenv("INSTANCE_CONNECTION_NAME"))

    @classmethod
    def initialize(
        cls,
        database_url: str | None = None,
        instance_connection_name: str | None = None,
        db_name: str | None = None,
        db_user: str | None = None,
        pool_size: int = 5,
        max_overflow: int = 10,
        pool_timeout: int = 30,
        pool_recycle: int = 1800,
    ):
        """
        Initialize the connection pool.

        DATABASE_URL takes precedence over the Cloud SQL settings.

        Args:
            database_url: SQLAlchemy URL (postgresql+pg8000://...)
            instance_connection_name: Cloud SQL instance (project:region:instance)
            db_name: Database name
            db_user: Database user (service account email for IAM auth)
            pool_size: Base connection pool size
            max_overflow: Additional connections allowed beyond pool_size
            pool_timeout: Seconds to wait for a connection
            pool_recycle: Recycle connections after this many seconds
        """
        if cls._initialized:
            return

        database_url = database_url or os.getenv("DATABASE_URL")
        pool_options = {
            "pool_size": pool_size,
            "max_overflow": max_overflow,
            "pool_timeout": pool_timeout,
            "pool_recycle": pool_recycle,
            "pool_pre_ping": True,
        }

        if database_url:
            cls._engine = create_engine(database_url, **pool_options)
        else:
            cls._engine = cls._create_cloud_sql_engine(
                instance_connection_name, db_name, db_user, pool_options
            )

        cls._session_factory = sessionmaker(bind=cls._engine)
        cls._initialized = True

    @classmethod
    def _create_cloud_sql_engine(
        cls,
        instance_connection_name: str | None,
        db_name: str | None,
        db_user: str | None,
        pool_options: dict,
    ) -> Engine:
        instance_connection_name = instance_connection_name or os.getenv(
            "INSTANCE_CONNECTION_NAME"
        )
        db_name = db_name or os.getenv("DB_NAME", "homster")
        db_user = db_user or os.getenv("DB_USER")

        if not instance_connection_name:
            raise ValueError(
                "DATABASE_URL or INSTANCE_CONNECTION_NAME must be set. "
                "INSTANCE_CONNECTION_NAME format: project:region:instance"
            )
        if not db_user:
            raise ValueError(
                "DB_USER environment variable is required for Cloud SQL IAM auth."
            )

        cls._connector = Connector()

        def getconn():
            assert cls._connector is not None
            return cls._connector.connect(
                instance_connection_name,
                "pg8000",
                user=db_user,
                db=db_name,
                enable_iam_auth=True,
            )

        return create_engine("postgresql+pg8000://", creator=getconn, **pool_options)

    @classmethod
    def get_session(cls) -> Session:
        """
        Get a new session. The caller owns commit, rollback and close.

        Returns:
            SQLAlchemy Session
        """
        if not cls._initialized or cls._session_factory is None:
            raise RuntimeError(
                "Database not initialized. Call DatabaseConnection.initialize() first."
            )
        return cls._session_factory()

    @classmethod
    def close(cls):
        """Dispose the pool and close the connector."""
        if cls._engine:
            cls._engine.dispose()
            cls._engine = None

        if cls._connector:
            cls._connector.close()
            cls._connector = None

        cls._session_factory = None
        cls._initialized = False

    @classmethod
    def is_initialized(cls) -> bool:
        """Check if the database connection is initialized."""
        return cls._initialized
