"""
Redaction helpers for diagnostic logging.

Email addresses keep their domain, credentials keep their first and last
four characters. UUIDs (request and correlation ids) stay readable.
"""
import re
from typing import Any

EMAIL_RE = re.compile(r'([A-Za-z0-9._%+\-]+)@([A-Za-z0-9.\-]+\.[A-Za-z]{2,})')
AUTH_VALUE_RE = re.compile(r'\b(Token|Bearer|Basic)\s+([A-Za-z0-9._~+/=\-:]+)')
UUID_RE = r'[0-9A-Fa-f]{8}-[0-9A-Fa-f]{4}-[0-9A-Fa-f]{4}-[0-9A-Fa-f]{4}-[0-9A-Fa-f]{12}'
LONG_TOKEN_RE = re.compile(
    rf'(?<![A-Za-z0-9_\-*])(?!{UUID_RE}(?![A-Za-z0-9_\-*]))[A-Za-z0-9_\-]{{24,}}(?![A-Za-z0-9_\-*])'
)

SECRET_KEYS = frozenset({'token', 'authorization', 'secret', 'password', 'api_key', 'credential'})


def mask_email(email: Any) -> str:
    if not email:
        return ''
    local, _, domain = str(email).partition('@')
    if not domain:
        return mask_secret(local)
    prefix = local[:1]
    return f'{prefix}***@{domain}'


def mask_secret(value: Any) -> str:
    """Shows first 4 and last 4 characters: abcd********wxyz"""
    if not value:
        return ''
    value = str(value)
    if len(value) <= 8:
        return '****'
    return f'{value[:4]}{"*" * (len(value) - 8)}{value[-4:]}'


def redact_text(text: Any) -> str:
    text = str(text)
    text = EMAIL_RE.sub(lambda m: mask_email(m.group(0)), text)
    text = AUTH_VALUE_RE.sub(lambda m: f'{m.group(1)} {mask_secret(m.group(2))}', text)
    return LONG_TOKEN_RE.sub(lambda m: mask_secret(m.group(0)), text)


def redact_payload(data: Any) -> Any:
    """Return a copy of a JSON-like structure with emails and secrets masked."""
    if isinstance(data, dict):
        redacted = {}
        for key, value in data.items():
            lowered = str(key).lower()
            if lowered in SECRET_KEYS and isinstance(value, str):
                redacted[key] = mask_secret(value)
            elif 'email' in lowered and isinstance(value, str):
                redacted[key] = mask_email(value)
            else:
                redacted[key] = redact_payload(value)
        return redacted
    if isinstance(data, (list, tuple)):
        return [redact_payload(item) for item in data]
    if isinstance(data, str):
        return redact_text(data)
    return data
