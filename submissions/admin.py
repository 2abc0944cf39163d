"""
Django admin configuration for submissions app.

Settings are written through the settings API (which sanitizes and reports
malformed mappings); the admin shows them read-only.
"""
from django.contrib import admin
from submissions.models import FormMapping, IntegrationSettings
from submissions.services.field_mapping import format_field_map
from submissions.services.redaction import mask_secret


@admin.register(IntegrationSettings)
class IntegrationSettingsAdmin(admin.ModelAdmin):
    """Admin interface for IntegrationSettings model."""

    list_display = ('project', 'api_base', 'timeout', 'consent_cache_minutes', 'updated_at')
    readonly_fields = ('api_base', 'project', 'masked_token', 'timeout', 'consent_cache_minutes',
                       'consent_event_schema', 'updated_at')
    exclude = ('token',)

    fieldsets = (
        ('Connection', {
            'fields': ('api_base', 'project', 'masked_token', 'timeout')
        }),
        ('Consent', {
            'fields': ('consent_cache_minutes', 'consent_event_schema')
        }),
        ('Audit', {
            'fields': ('updated_at',),
            'classes': ('collapse',)
        }),
    )

    @admin.display(description='Token')
    def masked_token(self, obj):
        return mask_secret(obj.token)

    def has_add_permission(self, request):
        """Settings are created through the settings API."""
        return False

    def has_delete_permission(self, request, obj=None):
        return False


@admin.register(FormMapping)
class FormMappingAdmin(admin.ModelAdmin):
    """Admin interface for FormMapping model."""

    list_display = ('form_id', 'event_type', 'consent_key', 'email_field', 'mapping_pairs')
    list_filter = ('event_type', 'consent_key')
    search_fields = ('form_id', 'event_type', 'consent_key')
    readonly_fields = ('position', 'form_id', 'event_type', 'consent_key', 'email_field',
                       'field_map', 'created_at')

    @admin.display(description='Field map')
    def mapping_pairs(self, obj):
        return format_field_map(obj.field_map or {})

    def has_add_permission(self, request):
        """Mappings are replaced wholesale through the settings API."""
        return False

    def has_delete_permission(self, request, obj=None):
        return False
