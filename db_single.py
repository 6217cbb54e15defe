"""
Database management for the ledger store
"""

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from config import Config
# Import every model module so Base.metadata and the mapper registry are complete
from models import Base
import fee_models  # noqa: F401
import expense_models  # noqa: F401
import logging

logger = logging.getLogger(__name__)

# Global engine and session factory
ENGINE = None
SessionLocal = None

def init_database(config=None):
    """Initialize database engine and session factory"""
    global ENGINE, SessionLocal

    config = config or Config()
    database_uri = config.get_database_uri()

    options = dict(config.SQLALCHEMY_ENGINE_OPTIONS)
    if database_uri.startswith('sqlite'):
        # pool_recycle/pre_ping only matter for server databases
        options.pop('pool_recycle', None)
        options.pop('pool_pre_ping', None)

    if ENGINE is not None:
        ENGINE.dispose()

    ENGINE = create_engine(database_uri, **options)

    SessionLocal = sessionmaker(bind=ENGINE, autoflush=False, autocommit=False, expire_on_commit=False)

    logger.info(f"Database initialized: {ENGINE.url.render_as_string(hide_password=True)}")
    return ENGINE, SessionLocal

def get_session():
    """Get a database session"""
    if SessionLocal is None:
        init_database()
    return SessionLocal()

def create_tables():
    """Create every table known to the models"""
    if ENGINE is None:
        init_database()
    Base.metadata.create_all(ENGINE)

def drop_tables():
    if ENGINE is not None:
        Base.metadata.drop_all(ENGINE)
