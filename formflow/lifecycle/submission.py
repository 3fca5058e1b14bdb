"""
Submission lifecycle transitions.

    (no submission) ──start──▶ in-progress ──complete──▶ completed
                                     │
                                     └──abandon──▶ abandoned

Every transition mutates the given ``Submission`` and returns the
commands the surrounding system must carry out: form counter increments
and, on completion, one ``CompletionMessage`` for the action outbox.
Nothing here talks to a store or sends anything.

Usage:
    submission, commands = start_submission(form, session_id)
    commands += record_answer(submission, step, value)
    commands += complete_submission(form, submission)
    for command in commands:
        ...
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Optional, Union

from formflow.models import (
    Form,
    FormAction,
    Step,
    StepAnswer,
    Submission,
    SubmissionMetadata,
    SubmissionStatus,
)

logger = logging.getLogger(__name__)


# ── Commands ─────────────────────────────────────────────────


@dataclass(frozen=True)
class CounterIncrement:
    """Increment one of a form's counters: views, starts or completions."""

    form_id: str
    counter: str


@dataclass(frozen=True)
class CompletionMessage:
    """Outbound message emitted once when a submission completes."""

    form_id: str
    form_name: str
    submission_id: str
    data: dict[str, Any]
    submitted_at_text: str
    actions: list[FormAction] = field(default_factory=list)

    def payload(self) -> dict[str, Any]:
        """JSON body sent to webhook targets."""
        return {
            "formName": self.form_name,
            "submissionId": self.submission_id,
            "submittedAt": self.submitted_at_text,
            "data": self.data,
        }


Command = Union[CounterIncrement, CompletionMessage]


def format_submitted_at(moment: datetime) -> str:
    """E.g. ``Mar 4, 2025 14:02:09`` in UTC."""
    if moment.tzinfo is not None:
        moment = moment.astimezone(timezone.utc)
    # %-d is not portable; build the day by hand.
    return moment.strftime(f"%b {moment.day}, %Y %H:%M:%S")


# ── Transitions ──────────────────────────────────────────────


def record_view(form: Form) -> list[Command]:
    return [CounterIncrement(form.id, "views")]


def start_submission(
    form: Form,
    session_id: str,
    *,
    ip_address: Optional[str] = None,
    user_agent: Optional[str] = None,
) -> tuple[Submission, list[Command]]:
    """Create the in-progress submission for a session's first answer."""
    submission = Submission(
        form_id=form.id,
        session_id=session_id,
        metadata=SubmissionMetadata(ip_address=ip_address, user_agent=user_agent),
    )
    logger.info(
        "Submission started",
        extra={"form_id": form.id, "session_id": session_id, "status": "in-progress"},
    )
    return submission, [CounterIncrement(form.id, "starts")]


def record_answer(
    submission: Submission,
    step: Step,
    value: Any,
) -> list[Command]:
    """
    Append an accepted answer to the history and store its variable.

    Re-answering a variable (e.g. through a replay step) overwrites it.
    """
    variable_name = step.variable_name
    submission.step_history.append(
        StepAnswer(step_id=step.id, answer=value, variable_name=variable_name)
    )
    if variable_name:
        submission.data[variable_name] = value
    if step.conversion_event:
        record_conversion(submission, step.id)
    return []


def record_conversion(submission: Submission, step_id: str) -> None:
    if step_id not in submission.metadata.conversions:
        submission.metadata.conversions.append(step_id)


def record_time_spent(submission: Submission, step_id: str, seconds: float) -> None:
    """Add ``seconds`` to the time recorded for ``step_id``."""
    if seconds is None or seconds < 0:
        return
    spent = submission.metadata.time_spent_per_step
    spent[step_id] = spent.get(step_id, 0.0) + float(seconds)


def complete_submission(
    form: Form,
    submission: Submission,
    *,
    actions: Optional[list[FormAction]] = None,
    now: Optional[datetime] = None,
) -> list[Command]:
    """
    Mark the submission completed.

    Returns no commands when it is not in progress, so a repeated call
    never double-counts a completion.
    """
    if submission.status != SubmissionStatus.IN_PROGRESS:
        logger.debug(
            "Completion ignored",
            extra={"session_id": submission.session_id, "status": submission.status.value},
        )
        return []

    completed_at = now or datetime.now(timezone.utc)
    submission.status = SubmissionStatus.COMPLETED
    submission.metadata.completed_at = completed_at

    message = CompletionMessage(
        form_id=form.id,
        form_name=form.name,
        submission_id=submission.id,
        data=dict(submission.data),
        submitted_at_text=format_submitted_at(completed_at),
        actions=list(form.actions if actions is None else actions),
    )
    logger.info(
        "Submission completed",
        extra={"form_id": form.id, "session_id": submission.session_id, "status": "completed"},
    )
    return [CounterIncrement(form.id, "completions"), message]


def abandon_submission(submission: Submission) -> bool:
    """Mark an in-progress submission abandoned. Completed ones stay completed."""
    if submission.status != SubmissionStatus.IN_PROGRESS:
        return False
    submission.status = SubmissionStatus.ABANDONED
    return True
