"""
Variable interpolation for step messages.

Replaces ``{variableName}`` placeholders with collected values. Missing
variables leave the placeholder untouched, so a badly authored form shows
``{name}`` rather than an empty gap. Compound country values stored as
``"Label|+Code"`` are shown as ``"Label +Code"``.
"""

from __future__ import annotations

import re
from typing import Any, Iterable, Mapping, Optional

from formflow.engine.formatting import stringify
from formflow.models import Message

_PLACEHOLDER = re.compile(r"\{(\w+)\}", re.ASCII)


def format_display_value(value: Any) -> str:
    """Human-readable form of a stored value ("United States|+1" -> "United States +1")."""
    text = stringify(value)
    if "|+" in text:
        text = text.replace("|", " ", 1)
    return text


def interpolate_variables(text: Optional[str], data: Mapping[str, Any]) -> str:
    """Substitute every ``{identifier}`` present in ``data``."""
    if not text:
        return ""

    def _substitute(match: re.Match) -> str:
        value = data.get(match.group(1))
        if value is None:
            return match.group(0)
        return format_display_value(value)

    return _PLACEHOLDER.sub(_substitute, text)


def extract_variables(text: Optional[str]) -> list[str]:
    """Unique placeholder names in order of first appearance."""
    if not text:
        return []
    return list(dict.fromkeys(_PLACEHOLDER.findall(text)))


def has_variables(text: Optional[str]) -> bool:
    if not text:
        return False
    return _PLACEHOLDER.search(text) is not None


def get_missing_variables(text: Optional[str], data: Mapping[str, Any]) -> list[str]:
    """Placeholders in ``text`` that have no value in ``data`` yet."""
    return [name for name in extract_variables(text) if data.get(name) is None]


def interpolate_messages(
    messages: Iterable[Message],
    data: Mapping[str, Any],
) -> list[Message]:
    """Render every message of a step, keeping per-message delays."""
    return [
        message.model_copy(update={"text": interpolate_variables(message.text, data)})
        for message in messages
    ]


def build_validation_summary(
    data: Mapping[str, Any],
    labels: Optional[Mapping[str, str]] = None,
) -> str:
    """Recap of everything collected so far, for a confirmation step."""
    if not data:
        return "No data collected yet."

    lines = []
    for key, value in data.items():
        label = (labels or {}).get(key) or key
        lines.append(f"- {label}: {format_display_value(value)}")

    body = "\n".join(lines)
    return f"I got:\n\n{body}\n\nIs this information correct?"
