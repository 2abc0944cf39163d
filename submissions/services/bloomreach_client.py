"""
Bloomreach API client.

Every call returns an ApiResponse envelope; HTTP error statuses never raise
and transport failures are reported through `transport_error`.
"""
import base64
import logging
import json
from dataclasses import dataclass
from typing import Any, Optional

import httpx

from submissions.services.config import BloomreachConfig
from submissions.services.redaction import mask_email, mask_secret, redact_payload

logger = logging.getLogger(__name__)

AUTH_SCHEMES = ('token ', 'bearer ', 'basic ')
MAX_LOGGED_BODY = 500


def build_authorization(credential: str) -> str:
    """
    Build the Authorization header value from a stored credential.

    - Already prefixed ("Token ...", "Bearer ...", "Basic ...") -> unchanged
    - "key_id:secret" -> Basic base64(key_id:secret)
    - Anything else -> Token <credential>
    """
    credential = (credential or '').strip()
    if credential.lower().startswith(AUTH_SCHEMES):
        return credential
    if ':' in credential:
        encoded = base64.b64encode(credential.encode('utf-8')).decode('ascii')
        return f'Basic {encoded}'
    return f'Token {credential}'


@dataclass(frozen=True)
class ApiResponse:
    """Normalized response envelope shared by every endpoint."""
    status_code: Optional[int] = None
    raw_body: Optional[str] = None
    parsed_json: Any = None
    transport_error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.status_code is not None and 200 <= self.status_code < 300

    @property
    def reports_failure(self) -> bool:
        """True when the body explicitly says the call failed."""
        body = self.parsed_json
        return isinstance(body, dict) and body.get('success') is False


@dataclass(frozen=True)
class WriteResult:
    """Result of an event or profile-update POST."""
    response: ApiResponse

    @property
    def accepted(self) -> bool:
        return self.response.ok and not self.response.reports_failure


@dataclass(frozen=True)
class AttributeReadResult:
    """Result of a consent attribute read."""
    GRANTED = 'granted'
    NOT_GRANTED = 'not_granted'
    UNPARSEABLE = 'unparseable'

    response: ApiResponse
    outcome: str

    @property
    def has_consent(self) -> bool:
        return self.outcome == self.GRANTED


def parse_attribute_read(response: ApiResponse) -> AttributeReadResult:
    """
    Interpret a customer attributes response.

    The first result entry must explicitly report success before its value
    is trusted; any other shape is unparseable (treated as no consent).
    """
    body = response.parsed_json
    results = body.get('results') if isinstance(body, dict) else None
    if not response.ok or not isinstance(results, list) or not results:
        return AttributeReadResult(response, AttributeReadResult.UNPARSEABLE)

    entry = results[0]
    if not isinstance(entry, dict) or entry.get('success') is not True:
        return AttributeReadResult(response, AttributeReadResult.UNPARSEABLE)

    outcome = AttributeReadResult.GRANTED if entry.get('value') is True else AttributeReadResult.NOT_GRANTED
    return AttributeReadResult(response, outcome)


def _format_body(response: ApiResponse) -> str:
    """Return a readable, truncated response body (pretty JSON if possible)."""
    if response.parsed_json is not None:
        text = json.dumps(redact_payload(response.parsed_json), ensure_ascii=False)
    else:
        text = response.raw_body or ''
    return text[:MAX_LOGGED_BODY]


class BloomreachClient:
    """Posts JSON to the Bloomreach tracking and data APIs."""

    def __init__(self, config: BloomreachConfig):
        self.config = config

    def post(self, url: str, body: dict) -> ApiResponse:
        """
        POST a JSON body with the configured credential and timeout.

        Args:
            url: Full endpoint URL
            body: JSON-serializable request body

        Returns:
            ApiResponse; `transport_error` is set when no HTTP response arrived
        """
        headers = {
            'Authorization': build_authorization(self.config.token),
            'Content-Type': 'application/json',
            'Accept': 'application/json',
        }

        logger.info(f"Sending request to Bloomreach API: {url}")
        logger.debug("Bloomreach token=%s", mask_secret(self.config.token))
        logger.debug(f"Payload: {redact_payload(body)}")

        try:
            response = httpx.post(
                url,
                json=body,
                headers=headers,
                timeout=float(self.config.timeout),
            )
        except httpx.TimeoutException as e:
            logger.error(f"Timeout sending to Bloomreach API: {e}")
            return ApiResponse(transport_error=f"timeout: {e}")
        except httpx.ConnectError as e:
            logger.error(f"Connection error sending to Bloomreach API: {e}")
            return ApiResponse(transport_error=f"connect: {e}")
        except httpx.HTTPError as e:
            logger.error(f"HTTP error sending to Bloomreach API: {e}")
            return ApiResponse(transport_error=str(e) or e.__class__.__name__)
        except (UnicodeError, ValueError) as e:
            # Header values httpx cannot encode (e.g. a non-ASCII credential)
            logger.error(f"Could not build request to Bloomreach API: {e}")
            return ApiResponse(transport_error=f"request: {e}")

        raw_body = response.text
        try:
            parsed = response.json()
        except ValueError:
            parsed = None

        result = ApiResponse(
            status_code=response.status_code,
            raw_body=raw_body,
            parsed_json=parsed,
        )

        if result.ok:
            logger.info(f"Bloomreach API response: {result.status_code}")
            logger.debug("Bloomreach API response body:\n%s", _format_body(result))
        else:
            logger.warning(
                "Bloomreach API non-2xx response: %s %s %s",
                result.status_code, url, _format_body(result),
            )
        return result

    def update_profile(self, customer_ids: dict, properties: dict) -> WriteResult:
        body = {
            'customer_ids': customer_ids,
            'properties': properties,
        }
        return WriteResult(self.post(self.config.profile_url, body))

    def track_event(self, customer_ids: dict, event_type: str, properties: dict, timestamp: float) -> WriteResult:
        body = {
            'customer_ids': customer_ids,
            'event_type': event_type,
            'properties': properties,
            'timestamp': timestamp,
        }
        return WriteResult(self.post(self.config.events_url, body))

    def read_consent(self, email: str, consent_key: str) -> AttributeReadResult:
        body = {
            'customer_ids': {'email': email},
            'attributes': [
                {'type': 'consent', 'category': consent_key, 'mode': 'valid'},
            ],
        }
        result = parse_attribute_read(self.post(self.config.attributes_url, body))
        logger.info(f"Consent '{consent_key}' for {mask_email(email)}: {result.outcome}")
        return result
