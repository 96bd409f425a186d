"""
Input Validation Utilities
Provides validation for API request bodies, identifiers and timezone names
"""
import re
import uuid
from typing import Dict, Any, List, Optional, Tuple
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError
import logging

from services.errors import ValidationError

logger = logging.getLogger(__name__)

# Canonical 8-4-4-4-12 hex form produced by generate_uuid()
UUID_PATTERN = re.compile(
    r'^[0-9a-fA-F]{8}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{12}$'
)

WEEKDAYS = {
    'monday': 0,
    'tuesday': 1,
    'wednesday': 2,
    'thursday': 3,
    'friday': 4,
    'saturday': 5,
    'sunday': 6,
}


def validate_required_fields(data: Dict[str, Any], required_fields: List[str]) -> Tuple[bool, Optional[str]]:
    """
    Validate that all required fields are present in the data

    Args:
        data: Dictionary of input data
        required_fields: List of required field names

    Returns:
        Tuple of (is_valid, error_message)
    """
    if not isinstance(data, dict):
        return False, "Request body must be a JSON object"

    missing_fields = [field for field in required_fields if field not in data or data[field] is None or data[field] == '']

    if missing_fields:
        return False, f"Missing required fields: {', '.join(missing_fields)}"

    return True, None


def validate_identifier(value: Any) -> Tuple[bool, Optional[str]]:
    """
    Validate that a value is a well-formed record identifier

    Args:
        value: Candidate identifier

    Returns:
        Tuple of (is_valid, error_message)
    """
    if not value or not isinstance(value, str):
        return False, "Identifier must be a non-empty string"

    if not UUID_PATTERN.match(value):
        return False, "Identifier is not a valid UUID"

    return True, None


def validate_timezone(name: Any) -> Tuple[bool, Optional[str]]:
    """
    Validate an IANA timezone name such as 'Australia/Sydney'

    Args:
        name: Timezone name

    Returns:
        Tuple of (is_valid, error_message)
    """
    if not name or not isinstance(name, str):
        return False, "Timezone must be a non-empty string"

    try:
        ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError, OSError):
        # OSError covers names that resolve to a zone directory, e.g. "America"
        return False, f"Unknown timezone: {name}"

    return True, None


def parse_week_start(name: str) -> int:
    """
    Convert a weekday name into a datetime.weekday() number (Monday is 0)

    Raises:
        ValidationError: If the name is not a weekday
    """
    try:
        return WEEKDAYS[str(name).strip().lower()]
    except KeyError:
        raise ValidationError(f"Unknown week start day: {name}", field='week_start')


def require_identifier(value: Any, field: str) -> str:
    """Return a normalized identifier or raise ValidationError naming the field."""
    is_valid, error = validate_identifier(value)
    if not is_valid:
        raise ValidationError(f"Invalid {field}: {error}", field=field)
    return str(uuid.UUID(value))


def require_timezone(name: Any) -> ZoneInfo:
    """Return the ZoneInfo for a name or raise ValidationError."""
    is_valid, error = validate_timezone(name)
    if not is_valid:
        raise ValidationError(error, field='tz')
    return ZoneInfo(name)
