"""Database configuration and initialization."""
from sqlalchemy import create_engine, event, text
from sqlalchemy.orm import scoped_session, sessionmaker, declarative_base
from sqlalchemy.pool import StaticPool

# Create SQLAlchemy base
Base = declarative_base()

# Global session and engine
engine = None
db_session = scoped_session(sessionmaker(autocommit=False, autoflush=False))


def _set_lock_timeout(session, transaction, connection):
    """Bound how long a transaction waits on a row lock (PostgreSQL only)."""
    lock_timeout_ms = session.info.get('lock_timeout_ms')
    if lock_timeout_ms and connection.dialect.name == 'postgresql':
        connection.execute(text(f"SET LOCAL lock_timeout = {int(lock_timeout_ms)}"))


def _engine_options(app, database_uri):
    """Pool options per backend (SQLite in-memory needs one shared connection)."""
    options = {'echo': app.config.get('SQLALCHEMY_ECHO', False)}
    if database_uri.startswith('sqlite'):
        options['connect_args'] = {'check_same_thread': False}
        options['poolclass'] = StaticPool
    else:
        options['pool_pre_ping'] = True  # Enable connection health checks
        options['pool_size'] = app.config.get('DB_POOL_SIZE', 10)
        options['max_overflow'] = app.config.get('DB_MAX_OVERFLOW', 20)
    return options


def init_db(app):
    """Initialize database connection."""
    global engine

    database_uri = app.config['SQLALCHEMY_DATABASE_URI']
    engine = create_engine(database_uri, **_engine_options(app, database_uri))

    db_session.remove()
    db_session.configure(bind=engine, info={
        'lock_timeout_ms': app.config.get('LOCK_TIMEOUT_MS', 0),
    })

    factory = db_session.session_factory
    if not event.contains(factory, 'after_begin', _set_lock_timeout):
        event.listen(factory, 'after_begin', _set_lock_timeout)

    Base.query = db_session.query_property()

    # Register teardown
    @app.teardown_appcontext
    def shutdown_session(exception=None):
        """Close database session and rollback on error."""
        if exception:
            db_session.rollback()
        db_session.remove()


def create_all():
    """Create every table known to the models package."""
    import storefront.models  # noqa: F401
    Base.metadata.create_all(bind=engine)


def drop_all():
    """Drop every table known to the models package."""
    import storefront.models  # noqa: F401
    Base.metadata.drop_all(bind=engine)


def get_session():
    """Get database session."""
    return db_session


# Alias for easier imports
db = db_session
