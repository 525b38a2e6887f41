"""Shared utility functions for blueprints and services.

parse_date:       returns None on bad input
parse_date_input: raises ValidationError on bad input
page_args:        limit/skip query-string parsing for list endpoints
require_int:      positive integer body fields (ids)
"""
import logging
from datetime import date, datetime

from flask import request

from assetverse.core.exceptions import ValidationError

logger = logging.getLogger(__name__)

MAX_PAGE_SIZE = 100


def parse_date(value):
    """Parse a date string (ISO or DD.MM.YYYY) to a date object.

    Returns None for empty/invalid input. Supports:
    - YYYY-MM-DD (ISO format)
    - YYYY-MM-DDTHH:MM:SS (datetime ISO → .date())
    - DD.MM.YYYY
    """
    if not value:
        return None
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value))
    except (ValueError, TypeError):
        pass
    try:
        return datetime.fromisoformat(str(value).replace("Z", "+00:00")).date()
    except (ValueError, TypeError):
        pass
    try:
        return datetime.strptime(str(value), "%d.%m.%Y").date()
    except (ValueError, TypeError):
        return None


def parse_date_input(value, field="date"):
    """Same as parse_date() but raises ValidationError for non-empty garbage."""
    if not value:
        return None
    parsed = parse_date(value)
    if parsed is None:
        raise ValidationError(f"Invalid {field}: {value!r}", details={field: "expected YYYY-MM-DD"})
    return parsed


def page_args():
    """Read ``limit`` / ``skip`` from the query string.

    limit=0 (the default) means "no limit". Negative or non-numeric values
    are treated as 0; limit is capped at MAX_PAGE_SIZE.
    """
    limit = max(request.args.get("limit", 0, type=int) or 0, 0)
    skip = max(request.args.get("skip", 0, type=int) or 0, 0)
    return min(limit, MAX_PAGE_SIZE), skip


def require_int(data: dict, field: str) -> int:
    """Return data[field] as a positive int or raise ValidationError."""
    value = data.get(field)
    try:
        value = int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"Field '{field}' is required and must be an integer",
                              details={field: "integer required"})
    if value <= 0:
        raise ValidationError(f"Field '{field}' must be positive", details={field: "integer > 0"})
    return value
