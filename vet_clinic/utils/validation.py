"""
Input parsing helpers shared by routes and services.

Each parser accepts the raw JSON/form value, returns None for empty input and
raises ValidationError naming the offending field otherwise.
"""
import re
from datetime import date, datetime

from vet_clinic.exceptions import ValidationError

TIME_PATTERN = re.compile(r'^([01]\d|2[0-3]):[0-5]\d$')

TRUE_VALUES = ('true', '1', 'yes', 'on')


def clean_text(value):
    """Strip strings; blank strings become None."""
    if value is None:
        return None
    if not isinstance(value, str):
        value = str(value)
    value = value.strip()
    return value or None


def require_fields(data, *names):
    """Raise ValidationError listing every name missing or blank in ``data``."""
    missing = [name for name in names if clean_text(data.get(name)) is None]
    if missing:
        raise ValidationError(
            f"Missing required fields: {', '.join(missing)}",
            details={'missing': missing},
        )


def parse_date(value, field='date'):
    """Parse YYYY-MM-DD (or ISO datetime) to a date."""
    if isinstance(value, date) and not isinstance(value, datetime):
        return value
    value = clean_text(value)
    if value is None:
        return None
    try:
        return datetime.fromisoformat(value).date()
    except ValueError:
        raise ValidationError(f"Invalid {field}. Use YYYY-MM-DD", field=field)


def parse_time(value, field='time'):
    """Validate a 24h HH:MM string."""
    value = clean_text(value)
    if value is None:
        return None
    if not TIME_PATTERN.match(value):
        raise ValidationError(f"Invalid {field}. Use HH:MM (24h)", field=field)
    return value


def parse_int(value, field):
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be an integer", field=field)
    if isinstance(value, int):
        return value
    value = clean_text(value)
    if value is None:
        return None
    try:
        return int(value)
    except ValueError:
        raise ValidationError(f"{field} must be an integer", field=field)


def parse_float(value, field):
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be a number", field=field)
    if isinstance(value, (int, float)):
        return float(value)
    value = clean_text(value)
    if value is None:
        return None
    try:
        return float(value)
    except ValueError:
        raise ValidationError(f"{field} must be a number", field=field)


def parse_bool(value):
    """Boolean-like form/JSON flag: true/1/yes/on."""
    if isinstance(value, bool):
        return value
    if value is None:
        return False
    return str(value).strip().lower() in TRUE_VALUES
