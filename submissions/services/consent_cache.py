"""
Short-lived cache of "does this customer already have this consent".

Entries are keyed by a one-way hash of the lowercased email and the consent
key, so the cache key space never contains raw email addresses.
"""
import hashlib
import logging
from typing import NamedTuple

from django.core.cache import cache as default_cache

logger = logging.getLogger(__name__)

CACHE_KEY_PREFIX = 'br_consent_'


class CacheLookup(NamedTuple):
    """Result of a cache read; a miss is not the same as a cached False."""
    hit: bool
    value: bool = False


def consent_cache_key(email: str, consent_key: str) -> str:
    digest = hashlib.sha256(f'{email.lower()}|{consent_key}'.encode('utf-8')).hexdigest()
    return f'{CACHE_KEY_PREFIX}{digest}'


class ConsentCache:
    """Consent decisions stored in the Django cache with a per-entry TTL."""

    def __init__(self, backend=None):
        self.backend = backend if backend is not None else default_cache

    def get(self, email: str, consent_key: str) -> CacheLookup:
        stored = self.backend.get(consent_cache_key(email, consent_key))
        if stored is None:
            return CacheLookup(hit=False)
        return CacheLookup(hit=True, value=stored == '1')

    def set(self, email: str, consent_key: str, value: bool, ttl_minutes: int) -> None:
        ttl_seconds = max(1, int(ttl_minutes)) * 60
        self.backend.set(consent_cache_key(email, consent_key), '1' if value else '0', timeout=ttl_seconds)
        logger.debug(f"Cached consent '{consent_key}'={bool(value)} for {ttl_seconds}s")
