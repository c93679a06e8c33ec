"""Database configuration and initialization."""
from sqlalchemy import create_engine
from sqlalchemy.orm import scoped_session, sessionmaker, declarative_base
from sqlalchemy.pool import StaticPool

# Create SQLAlchemy base
Base = declarative_base()


class Database:
    """
    Persistence handle: engine plus scoped session factory.

    Built once by the application factory, handed to services through the
    session it produces, and disposed at shutdown.
    """

    def __init__(self, database_uri: str, echo: bool = False):
        if database_uri.startswith('sqlite'):
            # Single shared connection so in-memory databases survive across sessions
            self.engine = create_engine(
                database_uri,
                echo=echo,
                connect_args={'check_same_thread': False},
                poolclass=StaticPool
            )
        else:
            self.engine = create_engine(
                database_uri,
                echo=echo,
                pool_pre_ping=True,  # Enable connection health checks
                pool_size=10,
                max_overflow=20
            )

        self.session = scoped_session(
            sessionmaker(autocommit=False, autoflush=False, expire_on_commit=False, bind=self.engine)
        )

    def create_all(self):
        """Create all tables (development and tests)."""
        # Import models so every table is registered on Base.metadata
        import app.models  # noqa: F401
        Base.metadata.create_all(bind=self.engine)

    def drop_all(self):
        """Drop all tables."""
        import app.models  # noqa: F401
        Base.metadata.drop_all(bind=self.engine)

    def close(self):
        """Release the session registry and every pooled connection."""
        self.session.remove()
        self.engine.dispose()


def init_db(app) -> Database:
    """Initialize database connection."""
    database = Database(
        app.config['SQLALCHEMY_DATABASE_URI'],
        echo=app.config.get('SQLALCHEMY_ECHO', False)
    )
    app.extensions['database'] = database

    # Register teardown
    @app.teardown_appcontext
    def shutdown_session(exception=None):
        """Close database session and rollback on error."""
        if exception:
            database.session.rollback()
        database.session.remove()

    return database


def get_database(app=None) -> Database:
    """Get the persistence handle of the given (or current) app."""
    if app is None:
        from flask import current_app
        app = current_app
    return app.extensions['database']


def get_session():
    """Get database session."""
    return get_database().session
