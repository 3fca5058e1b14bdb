"""
Condition evaluation for step visibility and branching.

Pure functions: they take a condition (or a step) and the collected
data map, and return a boolean. No I/O, no exceptions for data-dependent
reasons. A condition on a variable that has not been collected is never
satisfied, whatever its operator.
"""

from __future__ import annotations

import math
from typing import Any, Iterable, Mapping, Optional, Union

from formflow.engine.formatting import stringify
from formflow.models import (
    Condition,
    ConditionalOperator,
    LogicalOperator,
    Step,
)


# ─── Coercions ────────────────────────────────────────────────────────


def _to_number(value: Any) -> float:
    """Numeric coercion for ordering operators. Non-numeric input is NaN."""
    if isinstance(value, bool):
        return 1.0 if value else 0.0
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return 0.0
        try:
            return float(text)
        except ValueError:
            return math.nan
    return math.nan


def _same_value(left: Any, right: Any) -> bool:
    """Equality without cross-type coercion (True is not 1, "5" is not 5)."""
    if isinstance(left, bool) != isinstance(right, bool):
        return False
    return left == right


# ─── Single Condition ─────────────────────────────────────────────────


def evaluate_condition(condition: Condition, data: Mapping[str, Any]) -> bool:
    """
    Evaluate one condition against the collected data.

    Returns False when the variable is absent (None or missing) for
    every operator, including notEquals and notIn. Unknown operators
    also return False.
    """
    value = data.get(condition.variable_name)
    target = condition.value

    if value is None:
        return False

    try:
        operator = ConditionalOperator(condition.operator)
    except ValueError:
        return False

    if operator == ConditionalOperator.EQUALS:
        return _same_value(value, target)
    if operator == ConditionalOperator.NOT_EQUALS:
        return not _same_value(value, target)
    if operator == ConditionalOperator.CONTAINS:
        return stringify(target).lower() in stringify(value).lower()
    if operator == ConditionalOperator.NOT_CONTAINS:
        return stringify(target).lower() not in stringify(value).lower()
    if operator == ConditionalOperator.GREATER_THAN:
        return _to_number(value) > _to_number(target)
    if operator == ConditionalOperator.LESS_THAN:
        return _to_number(value) < _to_number(target)
    if operator == ConditionalOperator.GREATER_THAN_OR_EQUAL:
        return _to_number(value) >= _to_number(target)
    if operator == ConditionalOperator.LESS_THAN_OR_EQUAL:
        return _to_number(value) <= _to_number(target)
    if operator == ConditionalOperator.IN:
        if isinstance(target, (list, tuple)):
            return any(_same_value(value, t) for t in target)
        return False
    if operator == ConditionalOperator.NOT_IN:
        if isinstance(target, (list, tuple)):
            return not any(_same_value(value, t) for t in target)
        return True

    return False


# ─── Combinator ───────────────────────────────────────────────────────


def evaluate_conditions(
    conditions: Optional[Iterable[Condition]],
    operator: Union[LogicalOperator, str],
    data: Mapping[str, Any],
) -> bool:
    """
    Combine conditions with AND / OR.

    An empty (or missing) condition list is vacuously True. AND stops at
    the first False, OR at the first True.
    """
    conditions = list(conditions or [])
    if not conditions:
        return True

    if operator == LogicalOperator.AND:
        return all(evaluate_condition(c, data) for c in conditions)
    return any(evaluate_condition(c, data) for c in conditions)


# ─── Visibility ───────────────────────────────────────────────────────


def is_step_visible(step: Step, data: Mapping[str, Any]) -> bool:
    """A step without conditional logic is always visible."""
    if step.conditional_logic is None:
        return True
    logic = step.conditional_logic
    return evaluate_conditions(logic.show_if, logic.operator, data)


def get_visible_steps(steps: Iterable[Step], data: Mapping[str, Any]) -> list[Step]:
    """All steps eligible to be shown for the current data."""
    return [step for step in steps if is_step_visible(step, data)]
