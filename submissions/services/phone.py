"""
Best-effort phone number extraction from submitted form fields.

Forms are free-form, so the number is looked up in a fixed order:
1. Fields the form's mapping sends to a phone-like destination property
2. A fallback list of commonly used field names
"""
import logging
import re
from typing import Any, Mapping, Optional

from submissions.services.normalization import first_value

logger = logging.getLogger(__name__)

PHONE_DESTINATIONS = frozenset({
    'phone', 'phone_number', 'telephone', 'mobile', 'mobile_phone', 'tel',
})

FALLBACK_FIELD_NAMES = (
    'phone', 'tel', 'telephone', 'mobile', 'movil', 'mövil',
    'telefono', 'teléfono', 'phone-number', 'contact-phone',
)

_NON_PHONE_CHARS = re.compile(r'[^\d+]')


def normalize_phone(value: Any) -> str:
    """
    Normalize a phone number to digits with an optional leading '+'.

    - Multi-value fields use their first element
    - Everything except digits and '+' is removed
    - Only the first '+' is kept

    Examples:
        '+1 (555) 123-4567' -> '+15551234567'
        '++123' -> '+123'
    """
    value = first_value(value)
    if value is None:
        return ''

    cleaned = _NON_PHONE_CHARS.sub('', str(value).strip())
    first_plus = cleaned.find('+')
    if first_plus == -1:
        return cleaned
    head, tail = cleaned[:first_plus + 1], cleaned[first_plus + 1:]
    return head + tail.replace('+', '')


def extract_phone(posted: Mapping[str, Any], field_map: Optional[Mapping[str, str]] = None) -> str:
    """
    Extract a normalized phone number from a submission.

    Args:
        posted: Submitted field values
        field_map: The form's source field -> destination property mapping

    Returns:
        Normalized phone number, or '' when none was found
    """
    for source, destination in (field_map or {}).items():
        if str(destination).lower() not in PHONE_DESTINATIONS or source not in posted:
            continue
        phone = normalize_phone(posted[source])
        if phone:
            logger.debug(f"Phone taken from mapped field '{source}'")
            return phone

    lowered = {str(key).lower(): key for key in posted}
    for name in FALLBACK_FIELD_NAMES:
        key = lowered.get(name)
        if key is None:
            continue
        phone = normalize_phone(posted[key])
        if phone:
            logger.debug(f"Phone taken from fallback field '{key}'")
            return phone

    return ''
