"""
Data models for Form Gateway Service.
"""
from django.db import models

DEFAULT_API_BASE = 'https://api.uk.exponea.com'
DEFAULT_EVENT_TYPE = 'contact_forms'
LEGACY_EVENT_TYPE = 'cf7_submit'
DEFAULT_EMAIL_FIELD = 'your-email'
DEFAULT_TIMEOUT = 8
MIN_TIMEOUT = 3
DEFAULT_CONSENT_CACHE_MINUTES = 60
MIN_CONSENT_CACHE_MINUTES = 1


class IntegrationSettings(models.Model):
    """
    Bloomreach connection settings.
    A single row is kept; it is replaced on every settings save.
    """

    class ConsentEventSchema(models.TextChoices):
        CONSENT = 'consent', 'consent (action/category/valid_until)'
        CONSENT_GRANTED = 'consent_granted', 'consent_granted (legacy)'

    api_base = models.URLField(max_length=255, default=DEFAULT_API_BASE)
    project = models.CharField(max_length=255, blank=True, default='')
    token = models.CharField(max_length=512, blank=True, default='')
    timeout = models.PositiveIntegerField(default=DEFAULT_TIMEOUT)
    consent_cache_minutes = models.PositiveIntegerField(default=DEFAULT_CONSENT_CACHE_MINUTES)
    consent_event_schema = models.CharField(
        max_length=32,
        choices=ConsentEventSchema.choices,
        default=ConsentEventSchema.CONSENT,
    )
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = 'integration settings'
        verbose_name_plural = 'integration settings'

    def __str__(self):
        return f"Bloomreach project {self.project or '(not configured)'}"


class FormMapping(models.Model):
    """
    Binds one form identifier to a Bloomreach event type, an optional
    consent key and a set of field translations.
    """

    position = models.PositiveIntegerField(default=0)
    form_id = models.PositiveIntegerField(db_index=True)
    event_type = models.CharField(max_length=100, default=DEFAULT_EVENT_TYPE)
    consent_key = models.CharField(max_length=100, blank=True, default='')
    email_field = models.CharField(max_length=100, default=DEFAULT_EMAIL_FIELD)
    field_map = models.JSONField(default=dict, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['position', 'id']
        indexes = [
            models.Index(fields=['form_id', 'position'], name='formmapping_form_pos_idx'),
        ]

    def __str__(self):
        return f"Form {self.form_id} -> {self.event_type}"
