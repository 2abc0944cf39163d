"""
Unit tests for configuration loading and the settings save operation.
"""
import pytest
from django.core.exceptions import ValidationError

from submissions.models import FormMapping, IntegrationSettings
from submissions.services.config import (
    BloomreachConfig,
    FormRule,
    absint,
    clamp_cache_minutes,
    clamp_timeout,
    describe_config,
    load_config,
    save_settings,
)


class TestNumericHelpers:
    """Tests for absint and clamping."""

    @pytest.mark.parametrize('value,expected', [
        (5, 5), ('7', 7), (-10, 10), ('abc', 0), (None, 0), ('3.9', 3),
    ])
    def test_absint(self, value, expected):
        assert absint(value) == expected

    def test_clamp_timeout(self):
        assert clamp_timeout(1) == 3
        assert clamp_timeout('abc') == 3
        assert clamp_timeout(20) == 20

    def test_clamp_cache_minutes(self):
        assert clamp_cache_minutes(0) == 1
        assert clamp_cache_minutes(90) == 90


class TestBloomreachConfig:
    """Tests for the configuration object."""

    def test_endpoint_urls(self):
        config = BloomreachConfig(api_base='https://api.eu1.exponea.com/', project='p1', token='t')

        assert config.events_url == 'https://api.eu1.exponea.com/track/v2/projects/p1/customers/events'
        assert config.profile_url == 'https://api.eu1.exponea.com/track/v2/projects/p1/customers'
        assert config.attributes_url == 'https://api.eu1.exponea.com/data/v2/projects/p1/customers/attributes'

    def test_has_credentials(self):
        assert BloomreachConfig(project='p', token='t').has_credentials is True
        assert BloomreachConfig(project='p', token='').has_credentials is False
        assert BloomreachConfig(project='  ', token='t').has_credentials is False

    def test_find_form_returns_first_match(self):
        config = BloomreachConfig(forms=(
            FormRule(form_id=7, event_type='first'),
            FormRule(form_id=7, event_type='second'),
        ))

        assert config.find_form(7).event_type == 'first'
        assert config.find_form(8) is None


@pytest.mark.django_db
class TestSaveSettings:
    """Tests for save_settings."""

    def test_saves_sanitized_settings(self, settings_input):
        result = save_settings(settings_input)

        assert result.warnings == []
        assert result.settings.api_base == 'https://api.test.exponea.com'
        assert result.settings.token == 'KEYID:SECRET'
        assert result.settings.timeout == 5
        assert result.settings.consent_cache_minutes == 30
        assert result.settings.consent_event_schema == 'consent'

        assert len(result.forms) == 1
        mapping = result.forms[0]
        assert mapping.form_id == 42
        assert mapping.consent_key == 'marketing'
        assert mapping.field_map == {'first-name': 'first_name', 'your-phone': 'phone'}

    def test_empty_rows_are_dropped(self, settings_input):
        settings_input['forms'] += [
            {},
            {'form_id': 0, 'event_type': 'contact_forms', 'consent_key': '',
             'email_field': 'your-email', 'map_str': ''},
            {'form_id': '', 'event_type': 'cf7_submit', 'map_str': '   '},
            'not-a-row',
        ]

        result = save_settings(settings_input)

        assert [mapping.form_id for mapping in result.forms] == [42]

    def test_row_with_zero_form_id_but_content_is_kept(self, settings_input):
        settings_input['forms'].append({'form_id': 0, 'consent_key': 'newsletter'})

        result = save_settings(settings_input)

        assert [mapping.form_id for mapping in result.forms] == [42, 0]

    def test_malformed_pairs_reported_in_one_warning(self, settings_input):
        settings_input['forms'] = [
            {'form_id': 1, 'map_str': 'a=b,12121'},
            {'form_id': 2, 'map_str': 'c=d\n=x\n12121'},
        ]

        result = save_settings(settings_input)

        assert len(result.warnings) == 1
        assert 'ignored 2 malformed mapping pair(s): 12121, =x.' in result.warnings[0]
        assert [mapping.field_map for mapping in result.forms] == [{'a': 'b'}, {'c': 'd'}]

    def test_structured_map_is_accepted(self, settings_input):
        settings_input['forms'] = [{'form_id': 9, 'map': {'Your-Name': 'name'}}]

        result = save_settings(settings_input)

        assert result.forms[0].field_map == {'your-name': 'name'}

    def test_numeric_settings_are_clamped(self, settings_input):
        settings_input['timeout'] = 1
        settings_input['consent_cache_minutes'] = 0

        result = save_settings(settings_input)

        assert result.settings.timeout == 3
        assert result.settings.consent_cache_minutes == 1

    def test_token_defaults_to_project(self, settings_input):
        del settings_input['token']

        result = save_settings(settings_input)

        assert result.settings.token == 'project-token'

    def test_keys_are_sanitized(self, settings_input):
        settings_input['forms'][0].update({'event_type': 'Contact Forms!', 'email_field': 'Your-Email'})

        mapping = save_settings(settings_input).forms[0]

        assert mapping.event_type == 'contactforms'
        assert mapping.email_field == 'your-email'

    @pytest.mark.parametrize('api_base', ['ftp://example.com', 'not a url'])
    def test_invalid_api_base_rejected(self, settings_input, api_base):
        settings_input['api_base'] = api_base

        with pytest.raises(ValidationError):
            save_settings(settings_input)

        assert IntegrationSettings.objects.count() == 0

    def test_non_ascii_token_rejected(self, settings_input):
        settings_input['token'] = 'töken'

        with pytest.raises(ValidationError):
            save_settings(settings_input)

        assert IntegrationSettings.objects.count() == 0

    def test_structured_map_keeps_separators_in_values(self, settings_input):
        settings_input['forms'] = [{'form_id': 9, 'map': {'utm': 'source=web, campaign'}}]

        result = save_settings(settings_input)

        assert result.warnings == []
        assert result.forms[0].field_map == {'utm': 'source=web, campaign'}

    def test_unknown_consent_schema_rejected(self, settings_input):
        settings_input['consent_event_schema'] = 'opt_in'

        with pytest.raises(ValidationError):
            save_settings(settings_input)

    def test_legacy_consent_schema(self, settings_input):
        settings_input['consent_event_schema'] = 'consent_granted'

        assert save_settings(settings_input).settings.consent_event_schema == 'consent_granted'

    def test_save_replaces_previous_settings(self, settings_input):
        save_settings(settings_input)
        settings_input['project'] = 'other-project'
        settings_input['forms'] = [{'form_id': 99, 'map_str': 'x=y'}]

        save_settings(settings_input)

        assert IntegrationSettings.objects.count() == 1
        assert IntegrationSettings.objects.get().project == 'other-project'
        assert list(FormMapping.objects.values_list('form_id', flat=True)) == [99]


@pytest.mark.django_db
class TestLoadConfig:
    """Tests for load_config."""

    def test_falls_back_to_django_settings(self, settings):
        settings.BLOOMREACH_API_BASE = 'https://api.eu1.exponea.com'
        settings.BLOOMREACH_PROJECT = 'env-project'
        settings.BLOOMREACH_TOKEN = 'env-token'
        settings.BLOOMREACH_TIMEOUT = 1
        settings.BLOOMREACH_CONSENT_CACHE_MINUTES = 15

        config = load_config()

        assert config.api_base == 'https://api.eu1.exponea.com'
        assert config.project == 'env-project'
        assert config.token == 'env-token'
        assert config.timeout == 3
        assert config.consent_cache_minutes == 15
        assert config.forms == ()

    def test_reads_saved_settings(self, settings_input):
        save_settings(settings_input)

        config = load_config()

        assert config.base_url == 'https://api.test.exponea.com'
        assert config.token == 'KEYID:SECRET'
        assert config.find_form(42).field_map == {'first-name': 'first_name', 'your-phone': 'phone'}

    def test_forms_keep_saved_order(self, settings_input):
        settings_input['forms'] = [
            {'form_id': 5, 'event_type': 'first'},
            {'form_id': 3},
            {'form_id': 5, 'event_type': 'second'},
        ]
        save_settings(settings_input)

        config = load_config()

        assert [rule.form_id for rule in config.forms] == [5, 3, 5]
        assert config.find_form(5).event_type == 'first'

    @pytest.mark.parametrize('configured,expected', [(0, 30), (5, 30), (45, 45)])
    def test_submission_delay_has_a_floor(self, settings, configured, expected):
        settings.BLOOMREACH_SUBMISSION_DELAY = configured

        assert load_config().submission_delay == expected


@pytest.mark.django_db
class TestDescribeConfig:
    """Tests for the administrator view of the configuration."""

    def test_token_is_masked(self, settings_input):
        save_settings(settings_input)

        described = describe_config(load_config())

        assert described['token'] == 'KEYI****CRET'
        assert described['forms'][0]['map_str'] == 'first-name=first_name,your-phone=phone'
        assert described['forms'][0]['map'] == {'first-name': 'first_name', 'your-phone': 'phone'}
