"""
Normalization helpers for submitted form values and configuration input.
"""
import logging
import re
from typing import Any

from django.core.exceptions import ValidationError
from django.core.validators import validate_email
from django.utils.html import strip_tags

logger = logging.getLogger(__name__)

_KEY_DISALLOWED = re.compile(r'[^a-z0-9_\-]')
_WHITESPACE = re.compile(r'\s+')


def first_value(value: Any) -> Any:
    """
    Return the first element of a multi-value field, or the value itself.

    Multi-value fields (checkboxes, multi-selects) arrive as lists.
    """
    if isinstance(value, (list, tuple)):
        return value[0] if value else ''
    return value


def sanitize_key(value: Any) -> str:
    """
    Normalize a configuration key to a slug.

    Lowercases and drops every character outside ``[a-z0-9_-]``, so form
    field names such as ``your-email`` survive unchanged.
    """
    if value is None:
        return ''
    return _KEY_DISALLOWED.sub('', str(value).strip().lower())


def sanitize_text(value: Any) -> str:
    """
    Sanitize a value as single-line plain text.

    - Strips HTML tags
    - Collapses runs of whitespace (including line breaks) to one space
    - Trims the result
    """
    if value is None:
        return ''
    if isinstance(value, bool):
        return 'true' if value else 'false'
    text = strip_tags(str(value))
    return _WHITESPACE.sub(' ', text).strip()


def flatten_value(value: Any) -> str:
    """Sanitize a submitted value; lists are joined with ', '."""
    if isinstance(value, (list, tuple)):
        return ', '.join(sanitize_text(item) for item in value)
    return sanitize_text(value)


def normalize_email(value: Any) -> str:
    """
    Return a trimmed, lowercased email address, or '' when it is not valid.

    Args:
        value: Raw submitted value (string or multi-value list)

    Returns:
        Normalized email address or empty string
    """
    value = first_value(value)
    if not isinstance(value, str):
        return ''

    email = value.strip().lower()
    if not email:
        return ''

    try:
        validate_email(email)
    except ValidationError:
        logger.debug("Submitted email value failed validation")
        return ''
    return email
