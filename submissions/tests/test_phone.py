"""
Unit tests for phone extraction.
"""
import pytest
from hypothesis import given, settings
import hypothesis.strategies as st

from submissions.services.phone import extract_phone, normalize_phone


class TestNormalizePhone:
    """Tests for normalize_phone."""

    def test_strips_formatting(self):
        assert normalize_phone('+1 (555) 123-4567') == '+15551234567'

    def test_keeps_only_first_plus(self):
        assert normalize_phone('++123') == '+123'
        assert normalize_phone('+12+34') == '+1234'

    def test_whitespace_only(self):
        assert normalize_phone('   ') == ''

    def test_multi_value_uses_first(self):
        assert normalize_phone(['0049 170 1234', '0000']) == '00491701234'

    def test_none(self):
        assert normalize_phone(None) == ''


class TestExtractPhone:
    """Tests for phone lookup order."""

    def test_mapped_phone_destination_wins(self):
        posted = {'your-phone': '+44 20 7946 0958', 'phone': '999'}
        assert extract_phone(posted, {'your-phone': 'phone'}) == '+442079460958'

    def test_mapped_destination_is_case_insensitive(self):
        posted = {'cell': '555 0100'}
        assert extract_phone(posted, {'cell': 'Mobile'}) == '5550100'

    def test_falls_back_to_common_field_names(self):
        posted = {'Telephone': '+34 600 000 000'}
        assert extract_phone(posted, {'first-name': 'first_name'}) == '+34600000000'

    def test_empty_mapped_value_falls_back(self):
        posted = {'your-phone': ' - ', 'tel': '123'}
        assert extract_phone(posted, {'your-phone': 'phone'}) == '123'

    @pytest.mark.parametrize('posted', [{}, {'your-message': 'call me'}, {'phone': 'n/a'}])
    def test_no_phone_found(self, posted):
        assert extract_phone(posted, {}) == ''


class TestNormalizePhoneProperties:
    """Property tests for normalize_phone output shape."""

    @settings(max_examples=100)
    @given(value=st.text(max_size=30))
    def test_output_is_digits_and_one_plus(self, value):
        result = normalize_phone(value)

        assert result.count('+') <= 1
        assert all(char.isdigit() or char == '+' for char in result)

    @settings(max_examples=100)
    @given(value=st.text(max_size=30))
    def test_idempotent(self, value):
        once = normalize_phone(value)
        assert normalize_phone(once) == once
