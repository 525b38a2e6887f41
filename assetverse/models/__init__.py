"""
SQLAlchemy models package.

``db`` is the single Flask-SQLAlchemy extension instance; model modules
import it from here and ``create_app`` binds it to the application.
"""

from datetime import datetime, timezone

from flask_sqlalchemy import SQLAlchemy

db = SQLAlchemy()


def utcnow():
    return datetime.now(timezone.utc)


def iso(value):
    """Serialise a datetime/date column for JSON, passing None through."""
    return value.isoformat() if value else None
