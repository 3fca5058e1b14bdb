"""
Form flow engine: pure decision logic over a step list and a data map.

Visibility, branching, replay, interpolation and answer validation.
Nothing here performs I/O or mutates its inputs.
"""

from formflow.engine.conditions import (
    evaluate_condition,
    evaluate_conditions,
    get_visible_steps,
    is_step_visible,
)
from formflow.engine.interpolation import (
    extract_variables,
    format_display_value,
    interpolate_messages,
    interpolate_variables,
)
from formflow.engine.navigation import (
    ReplayContext,
    display_step_for,
    find_step,
    get_first_step,
    get_next_step,
    get_previous_step,
    resolve_replay,
)
from formflow.engine.validation import AnswerContext, AnswerResult, process_answer

__all__ = [
    "AnswerContext",
    "AnswerResult",
    "ReplayContext",
    "display_step_for",
    "evaluate_condition",
    "evaluate_conditions",
    "extract_variables",
    "find_step",
    "format_display_value",
    "get_first_step",
    "get_next_step",
    "get_previous_step",
    "get_visible_steps",
    "interpolate_messages",
    "interpolate_variables",
    "is_step_visible",
    "process_answer",
    "resolve_replay",
]
