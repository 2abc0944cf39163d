"""
Field mapping service: parses `source_field=destination_property` pairs and
applies them to submitted form data.

Malformed pairs are collected and reported while the valid pairs are still
saved.
"""
import logging
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Union

from submissions.services.normalization import flatten_value, sanitize_key, sanitize_text

logger = logging.getLogger(__name__)

TOKEN_SEPARATORS = re.compile(r'[,\r\n]+')
PAIR_FORMAT_HINT = 'source_field=destination_property'


@dataclass
class FieldMapParseResult:
    """Parsed field map plus the raw tokens that could not be parsed."""
    field_map: Dict[str, str] = field(default_factory=dict)
    malformed: List[str] = field(default_factory=list)


def format_field_map(field_map: Mapping[str, Any]) -> str:
    """
    Render a field map back to its flat `a=b,c=d` form.

    Args:
        field_map: Mapping of source field to destination property

    Returns:
        Comma-separated pairs in mapping order
    """
    return ','.join(f'{source}={destination}' for source, destination in field_map.items())


def _add_pair(result: FieldMapParseResult, source: Any, destination: Any, token: str) -> None:
    """Store one pair, or record its token as malformed."""
    source_key = sanitize_key(source)
    destination_name = sanitize_text(destination)
    if not source_key or not destination_name:
        result.malformed.append(token)
        return
    result.field_map[source_key] = destination_name


def parse_field_map(raw: Union[str, Mapping[str, Any], None]) -> FieldMapParseResult:
    """
    Parse a field mapping specification.

    Accepts either structured key/value pairs or a flat string of
    `source=destination` pairs separated by commas and/or newlines.

    Rules:
    - Empty tokens are dropped silently
    - A token without '=' or with an empty side is malformed
    - Only the first '=' separates source from destination
    - Structured pairs are taken as-is, so values may contain ',' or '='
    - Source keys are slugified; destinations are sanitized as plain text
    - A repeated source key overwrites the earlier one

    Args:
        raw: Mapping string, dict of pairs, or None

    Returns:
        FieldMapParseResult with the ordered map and malformed tokens
    """
    result = FieldMapParseResult()

    if raw is None:
        return result

    if isinstance(raw, Mapping):
        for source, destination in raw.items():
            _add_pair(result, source, destination, f'{source}={destination}'.strip())
    else:
        for piece in TOKEN_SEPARATORS.split(str(raw)):
            token = piece.strip()
            if not token:
                continue

            if '=' not in token:
                result.malformed.append(token)
                continue

            source, destination = (part.strip() for part in token.split('=', 1))
            _add_pair(result, source, destination, token)

    if result.malformed:
        logger.debug(f"Field map contained {len(result.malformed)} malformed token(s)")

    return result


def build_malformed_warning(tokens: List[str]) -> str:
    """
    Build the single aggregated warning for malformed mapping tokens.

    Duplicates are reported once, in first-seen order.
    """
    unique = list(dict.fromkeys(tokens))
    return (
        f"Saved, but ignored {len(unique)} malformed mapping pair(s): "
        f"{', '.join(unique)}. Use the format {PAIR_FORMAT_HINT} "
        f"(one per line or comma-separated)."
    )


def apply_field_map(posted: Mapping[str, Any], field_map: Mapping[str, str]) -> Dict[str, str]:
    """
    Translate submitted fields into destination properties.

    Fields missing from the submission are skipped; multi-value fields are
    joined with ', '.

    Args:
        posted: Submitted field values
        field_map: Mapping of source field to destination property

    Returns:
        Destination property -> sanitized value
    """
    properties = {}
    for source, destination in field_map.items():
        if source not in posted:
            continue
        properties[destination] = flatten_value(posted[source])
    return properties
