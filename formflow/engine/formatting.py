"""
Text formatting for collected answers.

Answers are normalized before they are validated and stored, so names
are saved title-cased and project names saved as slugs.
"""

from __future__ import annotations

import re
from typing import Any, Optional, Union

from formflow.models import DataType

_NON_SLUG_CHARS = re.compile(r"[^a-z0-9\-]")
_WHITESPACE = re.compile(r"\s+")
_HYPHEN_RUNS = re.compile(r"-+")


def stringify(value: Any) -> str:
    """
    Render a stored value as text.

    Booleans become "true"/"false" and integral floats lose their ".0",
    matching how choice values arrive from the JSON encoding.
    """
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, (list, tuple)):
        return ",".join(stringify(v) for v in value)
    return str(value)


def to_title_case(text: str) -> str:
    """
    Title-case a name word by word.

    "niko" -> "Niko", "BENJAMIN AL JIR" -> "Benjamin Al Jir". Only
    single spaces delimit words, so runs of spaces are preserved.
    """
    if not text or not isinstance(text, str):
        return text
    return " ".join(
        word[:1].upper() + word[1:] if word else word
        for word in text.lower().split(" ")
    )


def format_project_name(text: str, realtime: bool = False) -> str:
    """
    Slugify a project name: lowercase letters, digits and hyphens only.

    With ``realtime`` the leading/trailing hyphens are kept so a user
    typing "my-" is not fought by the formatter.
    """
    if not text or not isinstance(text, str):
        return text
    formatted = _WHITESPACE.sub("-", text.lower())
    formatted = _NON_SLUG_CHARS.sub("", formatted)
    formatted = _HYPHEN_RUNS.sub("-", formatted)
    if not realtime:
        formatted = formatted.strip("-")
    return formatted


def format_by_data_type(
    value: Any,
    data_type: Optional[Union[DataType, str]] = None,
) -> Any:
    """Apply the data type's normalization. Non-string values pass through."""
    if not data_type or not isinstance(value, str):
        return value
    if data_type == DataType.NAME:
        return to_title_case(value)
    if data_type == DataType.PROJECT_NAME:
        return format_project_name(value)
    return value
