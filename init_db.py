"""
Database Initialization
Runs on startup to ensure all tables exist, default payment categories are
seeded and at least one admin account is present
"""

import logging
from sqlalchemy import inspect
from sqlalchemy.exc import SQLAlchemyError

import db_single
from config import Config
from models import Base, Admin
from fee_models import PaymentCategory, EntryTypeEnum

logger = logging.getLogger(__name__)

DEFAULT_CATEGORIES = [
    ("Late Fine", EntryTypeEnum.FINE, "Late submission or late attendance"),
    ("Library Fine", EntryTypeEnum.FINE, "Overdue or damaged library books"),
    ("Lab Fine", EntryTypeEnum.FINE, "Laboratory equipment damage"),
    ("Committee Fees", EntryTypeEnum.FEE, "Student committee membership fees"),
    ("Event Fees", EntryTypeEnum.FEE, "Departmental event registration"),
    ("Others", EntryTypeEnum.FINE, None),
]


def create_missing_tables(engine):
    """Create any missing tables, return their names"""
    existing_tables = set(inspect(engine).get_table_names())
    missing_tables = set(Base.metadata.tables.keys()) - existing_tables
    if not missing_tables:
        logger.info("All tables exist")
        return []

    logger.info(f"Creating {len(missing_tables)} missing tables: {', '.join(sorted(missing_tables))}")
    Base.metadata.create_all(engine, checkfirst=True)
    return sorted(missing_tables)


def seed_default_categories(session):
    """Insert the default payment categories that do not exist yet"""
    existing = {name for (name,) in session.query(PaymentCategory.name).all()}
    added = 0
    for name, category_type, description in DEFAULT_CATEGORIES:
        if name in existing:
            continue
        session.add(PaymentCategory(name=name, category_type=category_type, description=description))
        added += 1
    session.commit()
    return added


def create_admin(session, email, password, name='Admin'):
    """Create an admin account; returns (admin, created)"""
    email = email.strip().lower()
    admin = session.query(Admin).filter_by(email=email).first()
    if admin:
        return admin, False

    admin = Admin(email=email, name=name, is_active=True)
    admin.set_password(password)
    session.add(admin)
    session.commit()
    return admin, True


def ensure_default_admin(session, config=None):
    """Create the configured admin when no admin exists"""
    config = config or Config()
    if session.query(Admin).count():
        return None
    admin, _ = create_admin(session, config.ADMIN_EMAIL, config.ADMIN_PASSWORD, config.ADMIN_NAME)
    logger.info(f"Created default admin: {admin.email}")
    return admin


def run_on_startup(config=None) -> bool:
    """Initialize the database; returns False when it could not be prepared"""
    try:
        engine, _ = db_single.init_database(config)
        create_missing_tables(engine)

        session = db_single.get_session()
        try:
            seed_default_categories(session)
            ensure_default_admin(session, config)
        finally:
            session.close()
        return True
    except SQLAlchemyError as e:
        logger.error(f"Database initialization failed: {e}")
        return False
