"""Database configuration and initialization."""
import atexit
import logging

from sqlalchemy import create_engine, event, BigInteger, Integer
from sqlalchemy.orm import scoped_session, sessionmaker, declarative_base

logger = logging.getLogger(__name__)

# Create SQLAlchemy base
Base = declarative_base()

# SQLite only autoincrements INTEGER PRIMARY KEY columns
BigIntPK = BigInteger().with_variant(Integer, 'sqlite')

# Global session and engine
engine = None
db_session = scoped_session(sessionmaker(autocommit=False, autoflush=False))


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    """SQLite only enforces ON DELETE CASCADE with this pragma."""
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def init_db(app):
    """Initialize database connection pool and per-request session."""
    global engine

    database_uri = app.config['SQLALCHEMY_DATABASE_URI']
    engine_options = {
        'echo': app.config.get('SQLALCHEMY_ECHO', False),
        'pool_pre_ping': True,  # Enable connection health checks
    }
    if database_uri.startswith('sqlite'):
        engine_options['connect_args'] = {'check_same_thread': False, 'timeout': 30}
    else:
        engine_options['pool_size'] = app.config.get('DB_POOL_SIZE', 10)
        engine_options['max_overflow'] = app.config.get('DB_MAX_OVERFLOW', 20)

    if engine is not None:
        engine.dispose()
    engine = create_engine(database_uri, **engine_options)

    if engine.dialect.name == 'sqlite':
        event.listen(engine, 'connect', _enable_sqlite_foreign_keys)

    db_session.remove()
    db_session.configure(bind=engine)

    Base.query = db_session.query_property()

    if app.config.get('AUTO_CREATE_TABLES', False):
        create_tables()

    # Register teardown
    @app.teardown_appcontext
    def shutdown_session(exception=None):
        """Close database session and rollback on error."""
        if exception:
            db_session.rollback()
        db_session.remove()

    atexit.register(shutdown_db)
    logger.info(f"[DB] Engine ready: {engine.url.render_as_string(hide_password=True)}")


def create_tables():
    """Create all tables that do not exist yet."""
    # Import models so they are registered on Base.metadata
    import app.models  # noqa: F401

    Base.metadata.create_all(bind=engine)


def drop_tables():
    """Drop every table (tests and `flask reset-db` only)."""
    import app.models  # noqa: F401

    Base.metadata.drop_all(bind=engine)


def shutdown_db():
    """Release pooled connections on process termination."""
    db_session.remove()
    if engine is not None:
        engine.dispose()


def get_session():
    """Get database session."""
    return db_session


# Alias for easier imports
db = db_session
