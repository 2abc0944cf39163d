import os
import sys
import pytest

# Add the project root to the path
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'form_gateway.settings')


@pytest.fixture(autouse=True)
def clear_cache():
    """Each test starts with an empty consent cache."""
    from django.core.cache import cache

    cache.clear()
    yield
    cache.clear()


@pytest.fixture
def bloomreach_config():
    """Return a configured BloomreachConfig with one mapped form."""
    from submissions.services.config import BloomreachConfig, FormRule

    return BloomreachConfig(
        api_base='https://api.test.exponea.com',
        project='project-token',
        token='abc123',
        timeout=5,
        consent_cache_minutes=60,
        forms=(
            FormRule(
                form_id=42,
                event_type='contact_forms',
                consent_key='marketing',
                email_field='your-email',
                field_map={'first-name': 'first_name', 'your-phone': 'phone'},
            ),
        ),
    )


@pytest.fixture
def posted_data():
    """Return submitted form values for testing."""
    return {
        'your-email': '  A@B.com ',
        'first-name': 'Ada',
        'your-phone': '+44 (0) 20 7946 0958',
        'your-message': 'Hello there',
        'interests': ['news', 'offers'],
    }


@pytest.fixture
def settings_input():
    """Return raw settings input as an administrator would save it."""
    return {
        'api_base': 'https://api.test.exponea.com/',
        'project': 'project-token',
        'token': 'KEYID:SECRET',
        'timeout': 5,
        'consent_cache_minutes': 30,
        'forms': [
            {
                'form_id': 42,
                'event_type': 'contact_forms',
                'consent_key': 'marketing',
                'email_field': 'your-email',
                'map_str': 'first-name=first_name\nyour-phone=phone',
            },
        ],
    }
