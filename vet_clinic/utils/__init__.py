from .decorators import require_role, get_current_user, current_user_or_401

from .audit import log_audit

from .validation import (
    clean_text,
    require_fields,
    parse_date,
    parse_time,
    parse_int,
    parse_float,
    parse_bool,
)

from .uploads import read_payload, validate_image

from .pagination import paginate

__all__ = [
    # Decorators
    "require_role",
    "get_current_user",
    "current_user_or_401",
    # Audit
    "log_audit",
    # Validation
    "clean_text",
    "require_fields",
    "parse_date",
    "parse_time",
    "parse_int",
    "parse_float",
    "parse_bool",
    # Uploads
    "read_payload",
    "validate_image",
    # Pagination
    "paginate",
]
