"""
Answer normalization and validation.

``process_answer`` is the single entry point: it normalizes a raw answer
according to the step's data type, validates it, and returns an
``AnswerResult``. It never stores anything; the caller persists the
accepted value.

Dispatch is one closed switch over ``DataType``. Types without a rule
(free text, address, dates, custom enums) are accepted unchanged.
"""

from __future__ import annotations

import math
import re
from dataclasses import dataclass, field
from typing import Any, Mapping, Optional, Union

from formflow.engine.countries import KNOWN_DIAL_CODES, find_by_dial_code
from formflow.engine.formatting import format_by_data_type, stringify
from formflow.models import DataType

EMAIL_ERROR = "That doesn't look like a valid email. Please try again."
PHONE_ERROR = "That doesn't look like a valid phone number. Please try again."
NUMBER_ERROR = "Please enter a valid number."
COUNTRY_CODE_ERROR = "Please choose a valid country code."

GENERIC_PHONE_MIN_DIGITS = 5
GENERIC_PHONE_MAX_DIGITS = 15

_EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
_PHONE_CHARS_RE = re.compile(r"^[\d\s\-+()]+$")
_DIAL_CODE_RE = re.compile(r"^\+\d{1,4}$")
_DIGIT_RE = re.compile(r"\d")


@dataclass(frozen=True)
class AnswerResult:
    """Outcome of processing one raw answer."""

    ok: bool
    value: Any = None
    error: Optional[str] = None

    @classmethod
    def accept(cls, value: Any) -> "AnswerResult":
        return cls(ok=True, value=value)

    @classmethod
    def reject(cls, error: str) -> "AnswerResult":
        return cls(ok=False, error=error)


@dataclass(frozen=True)
class AnswerContext:
    """What the validator may know beyond the raw answer."""

    country_code: Optional[str] = None
    collected_data: Mapping[str, Any] = field(default_factory=dict)


# ─── Country Code Sniffing ────────────────────────────────────────────


def sniff_country_code(data: Mapping[str, Any]) -> Optional[str]:
    """
    Guess the respondent's dial code from previously collected values.

    Scans values in insertion order for a "Label|+Code" string or a bare
    "+Code" string and returns the first match. This is shape-based and
    order-dependent; an explicit ``InputConfig.country_code`` on the
    phone step takes precedence over it.
    """
    for value in data.values():
        if not isinstance(value, str):
            continue
        if "|" in value:
            parts = value.split("|")
            if parts[1].startswith("+"):
                return parts[1]
        if value.startswith("+"):
            return value
    return None


def _split_dial_code(value: str) -> str:
    """Extract the code from "Label|+Code"; bare codes pass through."""
    if "|" in value:
        return value.split("|", 1)[1].strip()
    return value.strip()


# ─── Validators ───────────────────────────────────────────────────────


def _as_text(value: Any) -> Optional[str]:
    """Strings and JSON numbers as text; None for anything else."""
    if isinstance(value, bool) or not isinstance(value, (str, int, float)):
        return None
    return stringify(value).strip()


def validate_email(value: Any) -> AnswerResult:
    email = _as_text(value)
    if not email or not _EMAIL_RE.match(email):
        return AnswerResult.reject(EMAIL_ERROR)
    return AnswerResult.accept(email)


def validate_phone(value: Any, country_code: Optional[str] = None) -> AnswerResult:
    """
    Validate a phone number, against the country's digit rule when the
    dial code is known, otherwise with a generic 5-15 digit check.
    """
    phone = _as_text(value)
    if not phone:
        return AnswerResult.reject(PHONE_ERROR)
    if not _PHONE_CHARS_RE.match(phone):
        return AnswerResult.reject(PHONE_ERROR)

    digits = "".join(_DIGIT_RE.findall(phone))
    country = find_by_dial_code(country_code)

    if country is None:
        if not GENERIC_PHONE_MIN_DIGITS <= len(digits) <= GENERIC_PHONE_MAX_DIGITS:
            return AnswerResult.reject(PHONE_ERROR)
        return AnswerResult.accept(phone)

    # "+1 555 123 4567" carries the dial code; count the national part only.
    code_digits = country.dial_code.lstrip("+")
    if phone.startswith("+") and digits.startswith(code_digits):
        digits = digits[len(code_digits):]

    if not country.min_digits <= len(digits) <= country.max_digits:
        if country.min_digits == country.max_digits:
            expected = f"{country.min_digits} digits"
        else:
            expected = f"between {country.min_digits} and {country.max_digits} digits"
        return AnswerResult.reject(
            f"Phone numbers for country code {country.dial_code} should have "
            f"{expected}. Please try again."
        )
    return AnswerResult.accept(phone)


def validate_number(value: Any) -> AnswerResult:
    if value is None or isinstance(value, bool):
        return AnswerResult.reject(NUMBER_ERROR)
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str) and value.strip():
        try:
            number = float(value.strip())
        except ValueError:
            return AnswerResult.reject(NUMBER_ERROR)
    else:
        return AnswerResult.reject(NUMBER_ERROR)

    if not math.isfinite(number):
        return AnswerResult.reject(NUMBER_ERROR)
    if number.is_integer():
        return AnswerResult.accept(int(number))
    return AnswerResult.accept(number)


def validate_country_code(value: Any) -> AnswerResult:
    """Accept "+44" or "United Kingdom|+44" when the code is a known one."""
    if not isinstance(value, str) or not value.strip():
        return AnswerResult.reject(COUNTRY_CODE_ERROR)
    code = _split_dial_code(value)
    if not _DIAL_CODE_RE.match(code) or code not in KNOWN_DIAL_CODES:
        return AnswerResult.reject(COUNTRY_CODE_ERROR)
    return AnswerResult.accept(value.strip())


# ─── Entry Point ──────────────────────────────────────────────────────


def process_answer(
    raw_answer: Any,
    data_type: Optional[Union[DataType, str]],
    context: Optional[AnswerContext] = None,
) -> AnswerResult:
    """Normalize then validate ``raw_answer`` for ``data_type``."""
    context = context or AnswerContext()

    try:
        kind = DataType(data_type) if data_type else None
    except ValueError:
        kind = None

    if kind == DataType.NAME:
        return AnswerResult.accept(format_by_data_type(raw_answer, kind))
    if kind == DataType.PROJECT_NAME:
        return AnswerResult.accept(format_by_data_type(raw_answer, kind))
    if kind == DataType.EMAIL:
        return validate_email(raw_answer)
    if kind == DataType.PHONE:
        country_code = context.country_code or sniff_country_code(context.collected_data)
        return validate_phone(raw_answer, country_code)
    if kind == DataType.NUMBER:
        return validate_number(raw_answer)
    if kind == DataType.COUNTRY_CODE:
        return validate_country_code(raw_answer)

    return AnswerResult.accept(raw_answer)
