"""
Database initialization.

Creates missing tables; existing tables are left untouched.
"""

from sqlalchemy import text

from trackvault.database import db
from trackvault import models  # noqa: F401  (registers the model tables)


def initialize_database(app):
    """
    Initialize the database schema.

    This function should be called within an app context.
    """
    db.create_all()

    engine = db.engine
    # Enable WAL mode for SQLite (better concurrent write performance)
    if engine.name == 'sqlite':
        try:
            with engine.connect() as conn:
                conn.execute(text('PRAGMA journal_mode=WAL'))
                conn.commit()
        except Exception as e:
            app.logger.warning(f"Could not enable SQLite WAL mode: {e}")

    app.logger.info("Database initialized")
