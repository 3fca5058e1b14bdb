"""
Request-level sequencing of the form flow.

Two operations back the respondent-facing API:

    service = FlowService(store, outbox)

    state = service.start_or_resume("feedback")
    outcome = service.submit_answer("feedback", state.session_id, "rating", 4)
    if not outcome.accepted:
        print(outcome.validation_error)     # re-present the same step
    elif outcome.is_complete:
        ...                                 # actions wait in the outbox
    else:
        show(outcome.next_step, outcome.rendered_messages)

The store is duck-typed (see ``formflow.store.memory.InMemoryStore``).
Every answer is processed under the store's per-session lock, so a
client resend of the same answer cannot create two submissions.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from typing import Any, Optional

from formflow.actions.dispatcher import ActionOutbox
from formflow.engine.interpolation import interpolate_messages, interpolate_variables
from formflow.engine.navigation import (
    display_step_for,
    find_step,
    get_first_step,
    get_next_step,
    resolve_replay,
)
from formflow.engine.validation import AnswerContext, process_answer
from formflow.exceptions import (
    FormNotFoundError,
    StepNotFoundError,
    SubmissionClosedError,
)
from formflow.lifecycle.submission import (
    Command,
    CompletionMessage,
    CounterIncrement,
    abandon_submission,
    complete_submission,
    record_answer,
    record_time_spent,
    record_view,
    start_submission,
)
from formflow.models import (
    ActionType,
    EmailActionConfig,
    Form,
    FormAction,
    FormStatus,
    Message,
    Step,
)
from formflow.observability.logging_config import log_context

logger = logging.getLogger(__name__)


# ── Results ──────────────────────────────────────────────────


@dataclass
class SessionState:
    session_id: str
    form: Form
    first_visible_step: Optional[Step]
    current_step_index: int = 0
    collected_data: dict[str, Any] = field(default_factory=dict)
    resumed: bool = False
    rendered_messages: list[Message] = field(default_factory=list)


@dataclass
class AnswerOutcome:
    """
    Result of one submitted answer.

    ``next_step`` is the node navigation reached (possibly a replay node);
    ``display_step`` is the step whose content is shown for it.
    """

    accepted: bool
    is_complete: bool = False
    next_step: Optional[Step] = None
    display_step: Optional[Step] = None
    rendered_messages: list[Message] = field(default_factory=list)
    collected_data: dict[str, Any] = field(default_factory=dict)
    validation_error: Optional[str] = None


# ── Service ──────────────────────────────────────────────────


class FlowService:
    """Drives respondents through published forms."""

    def __init__(self, store: Any, outbox: Optional[ActionOutbox] = None):
        self.store = store
        self.outbox = outbox if outbox is not None else ActionOutbox()

    def start_or_resume(
        self,
        public_url: str,
        session_id: Optional[str] = None,
    ) -> SessionState:
        """
        Start a new session or resume an in-progress one.

        A new session only gets an id here; its submission is created
        with the first accepted answer.
        """
        form = self._get_form(public_url)
        self._apply(record_view(form))

        if session_id:
            submission = self.store.find_submission(session_id)
            if submission is not None and submission.form_id == form.id and submission.is_open:
                data = dict(submission.data)
                first = get_first_step(form.steps, data)
                logger.info(
                    "Session resumed",
                    extra={"form_id": form.id, "session_id": session_id},
                )
                return SessionState(
                    session_id=session_id,
                    form=form,
                    first_visible_step=first,
                    current_step_index=len(submission.step_history),
                    collected_data=data,
                    resumed=True,
                    rendered_messages=self._render(first, form, data),
                )

        new_session_id = str(uuid.uuid4())
        first = get_first_step(form.steps, {})
        logger.info(
            "Session started",
            extra={"form_id": form.id, "session_id": new_session_id},
        )
        return SessionState(
            session_id=new_session_id,
            form=form,
            first_visible_step=first,
            rendered_messages=self._render(first, form, {}),
        )

    def submit_answer(
        self,
        public_url: str,
        session_id: str,
        step_id: str,
        raw_answer: Any,
        replay_step_id: Optional[str] = None,
        time_spent_seconds: Optional[float] = None,
    ) -> AnswerOutcome:
        """
        Validate, record and advance one answer.

        An answer to a replay node is validated and recorded under the
        node's target, and navigation continues from the node. The client
        may send the node's id as ``step_id``, or the target's id as
        ``step_id`` with the node's id as ``replay_step_id``. A
        ``replay_step_id`` that does not replay ``step_id`` is ignored.

        Raises:
            FormNotFoundError: No published form at ``public_url``.
            StepNotFoundError: ``step_id`` is not a step of the form.
            SubmissionClosedError: The session is completed or abandoned.
        """
        form = self._get_form(public_url)
        step = form.get_step(step_id)
        if step is None:
            raise StepNotFoundError(
                f"Step not found: {step_id}", step_id=step_id, form_id=form.id
            )

        with log_context(session_id=session_id, form_id=form.id):
            with self.store.session_lock(session_id):
                return self._submit_locked(
                    form, step, session_id, raw_answer, replay_step_id, time_spent_seconds
                )

    def abandon(self, session_id: str) -> bool:
        """Mark an in-progress session abandoned (out-of-band cleanup)."""
        with self.store.session_lock(session_id):
            submission = self.store.find_submission(session_id)
            if submission is None or not abandon_submission(submission):
                return False
            self.store.save_submission(submission)
        logger.info("Submission abandoned", extra={"session_id": session_id})
        return True

    # ── Internals ────────────────────────────────────────────

    def _submit_locked(
        self,
        form: Form,
        step: Step,
        session_id: str,
        raw_answer: Any,
        replay_step_id: Optional[str],
        time_spent_seconds: Optional[float],
    ) -> AnswerOutcome:
        submission = self.store.find_submission(session_id)
        if submission is not None and not submission.is_open:
            raise SubmissionClosedError(
                f"Session {session_id} is {submission.status.value}",
                session_id=session_id,
                status=submission.status.value,
            )

        data = dict(submission.data) if submission else {}
        step, navigate_from = self._answer_and_navigation_steps(form, step, replay_step_id)

        value = raw_answer
        if step.data_type:
            context = AnswerContext(
                country_code=step.input.country_code if step.input else None,
                collected_data=data,
            )
            result = process_answer(raw_answer, step.data_type, context)
            if not result.ok:
                logger.info(
                    "Answer rejected",
                    extra={"step_id": step.id, "status": "invalid"},
                )
                return AnswerOutcome(
                    accepted=False, collected_data=data, validation_error=result.error
                )
            value = result.value

        commands: list[Command] = []
        if submission is None:
            submission, start_commands = start_submission(form, session_id)
            submission, created = self.store.create_submission(submission)
            if created:
                commands.extend(start_commands)

        commands.extend(record_answer(submission, step, value))
        if time_spent_seconds is not None:
            record_time_spent(submission, step.id, time_spent_seconds)

        next_step = get_next_step(navigate_from, form.steps, submission.data)
        if next_step is None:
            commands.extend(
                complete_submission(form, submission, actions=self._actions_for(form))
            )

        self.store.save_submission(submission)
        self._apply(commands)

        data = dict(submission.data)
        logger.info(
            "Answer accepted",
            extra={"step_id": step.id, "status": "accepted"},
        )

        if next_step is None:
            messages = []
            if form.settings.thank_you_message:
                messages = [Message(text=interpolate_variables(form.settings.thank_you_message, data))]
            return AnswerOutcome(
                accepted=True, is_complete=True, rendered_messages=messages, collected_data=data
            )

        display = display_step_for(next_step, form.steps)
        return AnswerOutcome(
            accepted=True,
            next_step=next_step,
            display_step=display,
            rendered_messages=interpolate_messages(display.display.messages, data),
            collected_data=data,
        )

    def _answer_and_navigation_steps(
        self, form: Form, step: Step, replay_step_id: Optional[str]
    ) -> tuple[Step, Step]:
        """(step the answer belongs to, step navigation continues from)"""
        replay = resolve_replay(step, form.steps)
        if replay is not None:
            return replay.target, replay.node

        if replay_step_id:
            node = find_step(form.steps, replay_step_id)
            replay = resolve_replay(node, form.steps) if node is not None else None
            if replay is not None and replay.target.id == step.id:
                return step, replay.node
            logger.warning(
                "Replay step does not replay the answered step; ignored",
                extra={"step_id": step.id, "replay_step_id": replay_step_id},
            )
        return step, step

    def _get_form(self, public_url: str) -> Form:
        form = self.store.find_form_by_public_url(public_url)
        if form is None or form.status != FormStatus.PUBLISHED:
            raise FormNotFoundError(
                f"Form not found or not published: {public_url}", public_url=public_url
            )
        return form

    def _render(self, step: Optional[Step], form: Form, data: dict[str, Any]) -> list[Message]:
        if step is None:
            return []
        display = display_step_for(step, form.steps)
        return interpolate_messages(display.display.messages, data)

    def _actions_for(self, form: Form) -> list[FormAction]:
        """Configured actions plus the owner notification, when enabled."""
        actions = list(form.actions)
        settings = form.settings
        if settings.email_notifications and settings.notification_email:
            actions.append(FormAction(
                id=f"{form.id}-owner-notification",
                name="Owner notification",
                type=ActionType.EMAIL,
                config=EmailActionConfig(recipients=[settings.notification_email]),
            ))
        return actions

    def _apply(self, commands: list[Command]) -> None:
        for command in commands:
            if isinstance(command, CounterIncrement):
                self.store.increment_counter(command.form_id, command.counter)
            elif isinstance(command, CompletionMessage):
                self.outbox.publish(command)
