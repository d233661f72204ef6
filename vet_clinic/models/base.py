from datetime import datetime

from vet_clinic.extensions import db


class TimestampMixin:
    """Adds created_at / updated_at columns managed by SQLAlchemy."""

    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)


def isoformat(value):
    """ISO string for a date/datetime, or None."""
    return value.isoformat() if value else None
