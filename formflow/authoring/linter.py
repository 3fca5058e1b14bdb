"""
Static checks for authored forms.

The engine tolerates broken references at runtime (a condition on an
uncollected variable is simply False, a missing placeholder stays
literal). These checks surface the same problems at authoring time:

- every variable used in a visibility condition, branching rule or
  message placeholder must be collected by an earlier step
- steps must be complete (messages, choices, variable names)
- replay nodes must point to an existing, earlier step
- branching targets must exist

Usage:
    report = lint_form(form.steps)
    if not report.is_valid:
        for error in report.errors:
            print(error)
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Sequence

from formflow.engine.interpolation import extract_variables
from formflow.models import InputType, Step, StepType


@dataclass
class LintReport:
    """Errors found in a step list, with the indexes of offending steps."""

    errors: list[str] = field(default_factory=list)
    invalid_steps: list[int] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return not self.errors

    def add(self, index: int, message: str) -> None:
        self.errors.append(message)
        if index not in self.invalid_steps:
            self.invalid_steps.append(index)

    def merge(self, other: "LintReport") -> None:
        for message in other.errors:
            self.errors.append(message)
        for index in other.invalid_steps:
            if index not in self.invalid_steps:
                self.invalid_steps.append(index)


def get_available_variables(steps: Sequence[Step], current_index: int) -> list[str]:
    """Variables collected by steps strictly before ``current_index``."""
    variables: list[str] = []
    for step in steps[:current_index]:
        if step.variable_name and step.variable_name not in variables:
            variables.append(step.variable_name)
    return variables


def validate_form_references(steps: Sequence[Step]) -> LintReport:
    """Check that conditions and placeholders only use earlier variables."""
    report = LintReport()

    for index, step in enumerate(steps):
        available = get_available_variables(steps, index)
        number = index + 1

        if step.conditional_logic:
            for cond_index, condition in enumerate(step.conditional_logic.show_if, 1):
                if condition.variable_name and condition.variable_name not in available:
                    report.add(
                        index,
                        f"Step {number}: Condition {cond_index} references variable "
                        f'"{condition.variable_name}" which hasn\'t been collected yet',
                    )

        if step.next_step_override:
            for rule_index, rule in enumerate(step.next_step_override.rules, 1):
                for cond_index, condition in enumerate(rule.conditions, 1):
                    # The step's own answer is already stored when its rules run.
                    own = step.variable_name == condition.variable_name
                    if condition.variable_name and not own and condition.variable_name not in available:
                        report.add(
                            index,
                            f"Step {number}: Next step rule {rule_index}, condition "
                            f'{cond_index} references variable "{condition.variable_name}" '
                            f"which hasn't been collected yet",
                        )

        for message in step.display.messages:
            for name in extract_variables(message.text):
                if name not in available:
                    report.add(
                        index,
                        f'Step {number}: Message references variable "{name}" '
                        f"which hasn't been collected yet",
                    )

    return report


def validate_step(step: Step) -> list[str]:
    """Completeness problems of a single step."""
    errors: list[str] = []

    # Replay nodes show their target's messages.
    if step.type != StepType.REPLAY:
        if not step.display.messages:
            errors.append("Step must have at least one message")
        elif any(not m.text or not m.text.strip() for m in step.display.messages):
            errors.append("Messages cannot be empty")

    if step.input and step.input.type == InputType.CHOICE and not step.input.choices:
        errors.append("Choice steps must have at least one option")

    if step.collect and step.collect.enabled and not step.collect.variable_name:
        errors.append("Variable name is required when data collection is enabled")

    if step.type == StepType.REPLAY and not step.replay_target:
        errors.append("Replay step must have a target step")

    return errors


def validate_replay_targets(steps: Sequence[Step]) -> tuple[list[Step], LintReport]:
    """
    Check replay targets; return a copy of the steps with bad targets cleared.

    A target must exist and sit earlier in the list than the replay node.
    """
    report = LintReport()
    positions = {step.id: index for index, step in enumerate(steps)}
    fixed: list[Step] = []

    for index, step in enumerate(steps):
        if step.type != StepType.REPLAY or not step.replay_target:
            fixed.append(step)
            continue

        target_index = positions.get(step.replay_target)
        if target_index is None:
            report.add(index, f"Step {index + 1} (REPLAY) points to a non-existent step")
            fixed.append(step.model_copy(update={"replay_target": None}))
        elif target_index >= index:
            report.add(index, f"Step {index + 1} (REPLAY) cannot replay a later step")
            fixed.append(step.model_copy(update={"replay_target": None}))
        else:
            fixed.append(step)

    return fixed, report


def validate_branch_targets(steps: Sequence[Step]) -> LintReport:
    """Every branching rule and default must name an existing step."""
    report = LintReport()
    known = {step.id for step in steps}

    for index, step in enumerate(steps):
        override = step.next_step_override
        if override is None:
            continue
        for rule_index, rule in enumerate(override.rules, 1):
            if rule.target_step_id not in known:
                report.add(
                    index,
                    f"Step {index + 1}: Next step rule {rule_index} targets unknown "
                    f'step "{rule.target_step_id}"',
                )
        if override.default and override.default not in known:
            report.add(
                index,
                f'Step {index + 1}: Default next step "{override.default}" does not exist',
            )

    return report


def lint_form(steps: Sequence[Step]) -> LintReport:
    """Run every check and collect the results into one report."""
    report = LintReport()

    seen: set[str] = set()
    for index, step in enumerate(steps):
        if step.id in seen:
            report.add(index, f'Step {index + 1}: Duplicate step id "{step.id}"')
        seen.add(step.id)
        for message in validate_step(step):
            report.add(index, f"Step {index + 1}: {message}")

    report.merge(validate_form_references(steps))
    _, replay_report = validate_replay_targets(steps)
    report.merge(replay_report)
    report.merge(validate_branch_targets(steps))
    return report
