"""
Configuration service: the explicit configuration object handed to every
component, and the sanitizing settings-save operation.

The configuration is loaded once per submission and once per job run, so a
settings save in between never changes a job halfway through.
"""
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Tuple, Union

from django.conf import settings
from django.core.exceptions import ValidationError
from django.core.validators import URLValidator
from django.db import transaction

from submissions.models import (
    DEFAULT_API_BASE,
    DEFAULT_CONSENT_CACHE_MINUTES,
    DEFAULT_EMAIL_FIELD,
    DEFAULT_EVENT_TYPE,
    DEFAULT_TIMEOUT,
    LEGACY_EVENT_TYPE,
    MIN_CONSENT_CACHE_MINUTES,
    MIN_TIMEOUT,
    FormMapping,
    IntegrationSettings,
)
from submissions.services.field_mapping import (
    build_malformed_warning,
    format_field_map,
    parse_field_map,
)
from submissions.services.normalization import sanitize_key, sanitize_text
from submissions.services.redaction import mask_secret

logger = logging.getLogger(__name__)

DEFAULT_SUBMISSION_DELAY = 30


def absint(value: Any) -> int:
    """Absolute integer value; anything unparseable becomes 0."""
    try:
        return abs(int(float(value)))
    except (TypeError, ValueError):
        return 0


def clamp_timeout(value: Any) -> int:
    return max(MIN_TIMEOUT, absint(value))


def clamp_cache_minutes(value: Any) -> int:
    return max(MIN_CONSENT_CACHE_MINUTES, absint(value))


@dataclass(frozen=True)
class FormRule:
    """Immutable view of a FormMapping row."""
    form_id: int
    event_type: str = DEFAULT_EVENT_TYPE
    consent_key: str = ''
    email_field: str = DEFAULT_EMAIL_FIELD
    field_map: Mapping[str, str] = field(default_factory=dict)

    @classmethod
    def from_model(cls, mapping: FormMapping) -> 'FormRule':
        return cls(
            form_id=mapping.form_id,
            event_type=mapping.event_type or DEFAULT_EVENT_TYPE,
            consent_key=mapping.consent_key or '',
            email_field=mapping.email_field or DEFAULT_EMAIL_FIELD,
            field_map=dict(mapping.field_map or {}),
        )


@dataclass(frozen=True)
class BloomreachConfig:
    """Everything the submission handler and job runner need to know."""
    api_base: str = DEFAULT_API_BASE
    project: str = ''
    token: str = ''
    timeout: int = DEFAULT_TIMEOUT
    consent_cache_minutes: int = DEFAULT_CONSENT_CACHE_MINUTES
    consent_event_schema: str = IntegrationSettings.ConsentEventSchema.CONSENT.value
    submission_delay: int = DEFAULT_SUBMISSION_DELAY
    forms: Tuple[FormRule, ...] = ()

    @property
    def has_credentials(self) -> bool:
        return bool(self.project.strip() and self.token.strip())

    @property
    def base_url(self) -> str:
        return (self.api_base or DEFAULT_API_BASE).rstrip('/')

    @property
    def events_url(self) -> str:
        return f"{self.base_url}/track/v2/projects/{self.project.strip()}/customers/events"

    @property
    def profile_url(self) -> str:
        return f"{self.base_url}/track/v2/projects/{self.project.strip()}/customers"

    @property
    def attributes_url(self) -> str:
        return f"{self.base_url}/data/v2/projects/{self.project.strip()}/customers/attributes"

    def find_form(self, form_id: int) -> Optional[FormRule]:
        """Return the first rule configured for form_id, if any."""
        for rule in self.forms:
            if rule.form_id == form_id:
                return rule
        return None


def load_config() -> BloomreachConfig:
    """
    Load the configuration from the settings store.

    Falls back to the BLOOMREACH_* Django settings until settings have been
    saved at least once.
    """
    forms = tuple(FormRule.from_model(mapping) for mapping in FormMapping.objects.all())
    delay = max(
        DEFAULT_SUBMISSION_DELAY,
        absint(getattr(settings, 'BLOOMREACH_SUBMISSION_DELAY', DEFAULT_SUBMISSION_DELAY)),
    )
    stored = IntegrationSettings.objects.order_by('-updated_at').first()

    if stored is None:
        return BloomreachConfig(
            api_base=getattr(settings, 'BLOOMREACH_API_BASE', DEFAULT_API_BASE) or DEFAULT_API_BASE,
            project=getattr(settings, 'BLOOMREACH_PROJECT', '') or '',
            token=getattr(settings, 'BLOOMREACH_TOKEN', '') or '',
            timeout=clamp_timeout(getattr(settings, 'BLOOMREACH_TIMEOUT', DEFAULT_TIMEOUT)),
            consent_cache_minutes=clamp_cache_minutes(
                getattr(settings, 'BLOOMREACH_CONSENT_CACHE_MINUTES', DEFAULT_CONSENT_CACHE_MINUTES)
            ),
            consent_event_schema=getattr(
                settings, 'BLOOMREACH_CONSENT_EVENT_SCHEMA', BloomreachConfig.consent_event_schema
            ),
            submission_delay=delay,
            forms=forms,
        )

    return BloomreachConfig(
        api_base=stored.api_base,
        project=stored.project,
        token=stored.token,
        timeout=clamp_timeout(stored.timeout),
        consent_cache_minutes=clamp_cache_minutes(stored.consent_cache_minutes),
        consent_event_schema=stored.consent_event_schema,
        submission_delay=delay,
        forms=forms,
    )


@dataclass
class SettingsSaveResult:
    """Outcome of a settings save: stored rows plus at most one warning."""
    settings: IntegrationSettings
    forms: List[FormMapping]
    warnings: List[str] = field(default_factory=list)


def _row_field_map(row: Mapping[str, Any]) -> Union[str, Mapping[str, Any]]:
    """The row's mapping: the flat `map_str`, else structured `map` pairs."""
    if row.get('map_str'):
        return str(row['map_str'])
    if isinstance(row.get('map'), Mapping) and row['map']:
        return row['map']
    return ''


def _is_empty_row(form_id: int, event_type: str, consent_key: str, email_field: str,
                  field_map: Union[str, Mapping[str, Any]]) -> bool:
    return (
        form_id == 0
        and event_type in (DEFAULT_EVENT_TYPE, LEGACY_EVENT_TYPE)
        and consent_key == ''
        and email_field == DEFAULT_EMAIL_FIELD
        and not (field_map.strip() if isinstance(field_map, str) else field_map)
    )


def _clean_api_base(value: Any) -> str:
    api_base = sanitize_text(value) or DEFAULT_API_BASE
    URLValidator(schemes=['http', 'https'])(api_base)
    return api_base.rstrip('/')


def save_settings(raw: Mapping[str, Any]) -> SettingsSaveResult:
    """
    Sanitize raw settings input and replace the stored configuration.

    - Numeric settings are clamped (timeout >= 3s, cache >= 1 minute)
    - The token defaults to the project token when it is not supplied
    - Empty mapping rows are dropped
    - Malformed mapping pairs from every row are reported in ONE warning

    Args:
        raw: Settings input as submitted by the administrator

    Returns:
        SettingsSaveResult with the stored rows and warnings

    Raises:
        ValidationError: If api_base is not an http(s) URL, the token is not
            ASCII or the consent event schema is unknown
    """
    raw = raw or {}
    project = sanitize_text(raw.get('project', ''))
    token = sanitize_text(raw['token']) if 'token' in raw else project
    if not token.isascii():
        raise ValidationError("Token must contain ASCII characters only")
    api_base = _clean_api_base(raw.get('api_base', DEFAULT_API_BASE))

    schema = sanitize_key(raw.get('consent_event_schema', '')) or BloomreachConfig.consent_event_schema
    if schema not in IntegrationSettings.ConsentEventSchema.values:
        raise ValidationError(f"Unknown consent event schema: {schema}")

    settings_values = {
        'api_base': api_base,
        'project': project,
        'token': token,
        'timeout': clamp_timeout(raw.get('timeout', DEFAULT_TIMEOUT)),
        'consent_cache_minutes': clamp_cache_minutes(
            raw.get('consent_cache_minutes', DEFAULT_CONSENT_CACHE_MINUTES)
        ),
        'consent_event_schema': schema,
    }

    rows = raw.get('forms') or []
    if not isinstance(rows, (list, tuple)):
        rows = []

    malformed: List[str] = []
    mappings: List[FormMapping] = []

    for row in rows:
        if not isinstance(row, Mapping):
            continue

        form_id = absint(row.get('form_id', 0))
        event_type = sanitize_key(row.get('event_type', DEFAULT_EVENT_TYPE)) or DEFAULT_EVENT_TYPE
        consent_key = sanitize_key(row.get('consent_key', ''))
        email_field = sanitize_key(row.get('email_field', DEFAULT_EMAIL_FIELD)) or DEFAULT_EMAIL_FIELD
        raw_map = _row_field_map(row)

        if _is_empty_row(form_id, event_type, consent_key, email_field, raw_map):
            continue

        parsed = parse_field_map(raw_map)
        malformed.extend(parsed.malformed)

        mappings.append(FormMapping(
            position=len(mappings),
            form_id=form_id,
            event_type=event_type,
            consent_key=consent_key,
            email_field=email_field,
            field_map=parsed.field_map,
        ))

    with transaction.atomic():
        stored, _ = IntegrationSettings.objects.update_or_create(pk=1, defaults=settings_values)
        IntegrationSettings.objects.exclude(pk=stored.pk).delete()
        FormMapping.objects.all().delete()
        FormMapping.objects.bulk_create(mappings)

    warnings: List[str] = []
    if malformed:
        warning = build_malformed_warning(malformed)
        warnings.append(warning)
        logger.warning(warning)

    logger.info(f"Settings saved: {len(mappings)} form mapping(s)")
    return SettingsSaveResult(
        settings=stored,
        forms=list(FormMapping.objects.all()),
        warnings=warnings,
    )


def describe_config(config: BloomreachConfig) -> Dict[str, Any]:
    """Settings as shown to administrators; the token is masked."""
    return {
        'api_base': config.base_url,
        'project': config.project,
        'token': mask_secret(config.token),
        'timeout': config.timeout,
        'consent_cache_minutes': config.consent_cache_minutes,
        'consent_event_schema': config.consent_event_schema,
        'forms': [
            {
                'form_id': rule.form_id,
                'event_type': rule.event_type,
                'consent_key': rule.consent_key,
                'email_field': rule.email_field,
                'map': dict(rule.field_map),
                'map_str': format_field_map(rule.field_map),
            }
            for rule in config.forms
        ],
    }
