"""
Unit tests for answer normalization and validation.
"""

import pytest

from formflow.engine.countries import COUNTRIES, country_choice_value, find_by_dial_code
from formflow.engine.validation import (
    COUNTRY_CODE_ERROR,
    EMAIL_ERROR,
    NUMBER_ERROR,
    PHONE_ERROR,
    AnswerContext,
    process_answer,
    sniff_country_code,
    validate_country_code,
    validate_email,
    validate_number,
    validate_phone,
)
from formflow.models import DataType


# ─── Email ────────────────────────────────────────────────────────────


class TestEmail:

    def test_valid_email_is_trimmed(self):
        result = validate_email("  ann@example.com ")
        assert result.ok
        assert result.value == "ann@example.com"

    @pytest.mark.parametrize("raw", ["", "ann", "ann@", "ann@example", "a b@c.de", None, 5, True])
    def test_invalid_email(self, raw):
        result = validate_email(raw)
        assert not result.ok
        assert result.error == EMAIL_ERROR


# ─── Phone ────────────────────────────────────────────────────────────


class TestPhone:

    def test_us_ten_digits(self):
        assert validate_phone("555-123-4567", "+1").ok

    def test_us_too_short_states_digit_count(self):
        result = validate_phone("555-1234", "+1")
        assert not result.ok
        assert "10 digits" in result.error
        assert "+1" in result.error

    def test_range_message(self):
        result = validate_phone("12345", "+49")
        assert not result.ok
        assert "between 10 and 11 digits" in result.error

    def test_dial_code_prefix_not_counted(self):
        assert validate_phone("+1 555 123 4567", "+1").ok

    def test_bad_characters(self):
        result = validate_phone("555-CALL-NOW", "+1")
        assert result.error == PHONE_ERROR

    def test_generic_rule_without_country(self):
        assert validate_phone("12345").ok
        assert not validate_phone("1234").ok
        assert not validate_phone("1" * 16).ok

    def test_unknown_dial_code_uses_generic_rule(self):
        assert validate_phone("1234567", "+999").ok

    def test_numeric_answer_is_accepted_as_text(self):
        result = validate_phone(5551234567, "+1")
        assert result.ok
        assert result.value == "5551234567"

    def test_numeric_answer_checked_against_country(self):
        result = validate_phone(5551234, "+1")
        assert not result.ok
        assert "10 digits" in result.error

    @pytest.mark.parametrize("raw", [None, True, ["555"], "   "])
    def test_non_text_answers_rejected(self, raw):
        assert validate_phone(raw, "+1").error == PHONE_ERROR


# ─── Number ───────────────────────────────────────────────────────────


class TestNumber:

    @pytest.mark.parametrize("raw,expected", [
        ("42", 42),
        (" 3.5 ", 3.5),
        (7, 7),
        (2.0, 2),
        ("-1", -1),
    ])
    def test_valid_numbers(self, raw, expected):
        result = validate_number(raw)
        assert result.ok
        assert result.value == expected

    @pytest.mark.parametrize("raw", ["", "abc", None, True, "inf", "nan", [1]])
    def test_invalid_numbers(self, raw):
        result = validate_number(raw)
        assert not result.ok
        assert result.error == NUMBER_ERROR


# ─── Country Code ─────────────────────────────────────────────────────


class TestCountryCode:

    def test_bare_code(self):
        assert validate_country_code("+44").ok

    def test_compound_value_kept(self):
        result = validate_country_code("United Kingdom|+44")
        assert result.ok
        assert result.value == "United Kingdom|+44"

    @pytest.mark.parametrize("raw", ["44", "+999", "Nowhere|+0", "", None])
    def test_invalid_codes(self, raw):
        result = validate_country_code(raw)
        assert not result.ok
        assert result.error == COUNTRY_CODE_ERROR

    def test_country_table(self):
        assert find_by_dial_code("+1").min_digits == 10
        assert find_by_dial_code("+1").max_digits == 10
        assert find_by_dial_code(None) is None
        assert all(c.min_digits <= c.max_digits for c in COUNTRIES)
        assert country_choice_value(find_by_dial_code("+44")) == "United Kingdom|+44"


# ─── Country Code Sniffing ────────────────────────────────────────────


class TestSniffCountryCode:

    def test_compound_value(self):
        assert sniff_country_code({"name": "Ann", "country": "United States|+1"}) == "+1"

    def test_bare_value(self):
        assert sniff_country_code({"code": "+44"}) == "+44"

    def test_first_match_wins(self):
        assert sniff_country_code({"a": "+44", "b": "Germany|+49"}) == "+44"

    def test_nothing_found(self):
        assert sniff_country_code({"n": 5, "s": "plain"}) is None


# ─── process_answer ───────────────────────────────────────────────────


class TestProcessAnswer:

    def test_name_is_title_cased(self):
        result = process_answer("jane doe", DataType.NAME)
        assert result.ok
        assert result.value == "Jane Doe"

    def test_project_name_is_slugified(self):
        assert process_answer("My Site", "projectName").value == "my-site"

    def test_phone_uses_sniffed_country(self):
        context = AnswerContext(collected_data={"country": "United States|+1"})
        assert process_answer("555-123-4567", DataType.PHONE, context).ok
        assert not process_answer("555-1234", DataType.PHONE, context).ok

    def test_numeric_phone_answer(self):
        context = AnswerContext(collected_data={"country": "United States|+1"})
        result = process_answer(5551234567, DataType.PHONE, context)
        assert result.ok
        assert result.value == "5551234567"

    def test_explicit_country_code_wins(self):
        context = AnswerContext(
            country_code="+44", collected_data={"country": "United States|+1"}
        )
        # 9 digits: too short for +1, valid for +44
        assert process_answer("791 123 456", DataType.PHONE, context).ok

    def test_number_is_converted(self):
        assert process_answer("12", DataType.NUMBER).value == 12

    def test_untyped_and_unknown_types_accept_unchanged(self):
        assert process_answer("anything", None).value == "anything"
        assert process_answer("anything", "hexColor").value == "anything"
        assert process_answer(" 1 Main St ", DataType.ADDRESS).value == " 1 Main St "
