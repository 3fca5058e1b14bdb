"""
Next-step resolution and replay indirection.

Given the step just answered, the full step list and the collected data,
decide which step the respondent sees next:

1. Branching rules of the current step, in listed order (first match wins;
   a rule whose target id does not resolve counts as not matched).
2. The override's default target, when it resolves.
3. The first visible step after the current one, in list order.
4. None: the form is complete.

Resolution is a pure function of its inputs. Branching never looks
backward except through explicit rules; loops built from such rules
are the author's responsibility.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping, Optional, Sequence

from formflow.engine.conditions import evaluate_conditions, is_step_visible
from formflow.models import Step


@dataclass(frozen=True)
class ReplayContext:
    """
    A replay node resolved to the step it re-asks.

    Navigation continues from ``node``; the answer belongs to ``target``.
    """

    node: Step
    target: Step


def find_step(steps: Sequence[Step], step_id: Optional[str]) -> Optional[Step]:
    if not step_id:
        return None
    for step in steps:
        if step.id == step_id:
            return step
    return None


def _index_of(steps: Sequence[Step], step: Step) -> int:
    for index, candidate in enumerate(steps):
        if candidate.id == step.id:
            return index
    return -1


def get_next_step(
    current_step: Step,
    all_steps: Sequence[Step],
    data: Mapping[str, Any],
) -> Optional[Step]:
    """Pick the step to display after ``current_step``, or None when done."""
    override = current_step.next_step_override
    if override is not None:
        for rule in override.rules:
            if evaluate_conditions(rule.conditions, rule.operator, data):
                target = find_step(all_steps, rule.target_step_id)
                if target is not None:
                    return target

        default_step = find_step(all_steps, override.default)
        if default_step is not None:
            return default_step

    # An unknown current step scans from the top, like a fresh start.
    current_index = _index_of(all_steps, current_step)
    for step in all_steps[current_index + 1:]:
        if is_step_visible(step, data):
            return step

    return None


def get_first_step(
    all_steps: Sequence[Step],
    data: Mapping[str, Any],
) -> Optional[Step]:
    """First visible step for a session starting (or resuming) with ``data``."""
    for step in all_steps:
        if is_step_visible(step, data):
            return step
    return None


def get_previous_step(
    current_step: Step,
    all_steps: Sequence[Step],
    data: Mapping[str, Any],
) -> Optional[Step]:
    """Nearest visible step before ``current_step`` (back navigation)."""
    current_index = _index_of(all_steps, current_step)
    for index in range(current_index - 1, -1, -1):
        if is_step_visible(all_steps[index], data):
            return all_steps[index]
    return None


def resolve_replay(step: Step, all_steps: Sequence[Step]) -> Optional[ReplayContext]:
    """
    Resolve a replay node to its target.

    Returns None for ordinary steps and for replay nodes whose target
    does not exist (those are displayed as themselves).
    """
    if not step.is_replay:
        return None
    target = find_step(all_steps, step.replay_target)
    if target is None or target.id == step.id:
        return None
    return ReplayContext(node=step, target=target)


def display_step_for(step: Step, all_steps: Sequence[Step]) -> Step:
    """The step whose content and input should be shown for ``step``."""
    replay = resolve_replay(step, all_steps)
    return replay.target if replay else step


def calculate_progress(current_index: int, visible_steps: Sequence[Step]) -> int:
    """Progress percentage (0-100) through the visible steps."""
    if not visible_steps:
        return 0
    # Half-up rounding, not round()'s banker's rounding.
    return int((current_index + 1) * 100 / len(visible_steps) + 0.5)
