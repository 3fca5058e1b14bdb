"""
Post-completion action dispatch.

Completing a submission publishes a ``CompletionMessage`` to the
``ActionOutbox``. The surrounding system later flushes the outbox
through an ``ActionDispatcher``, which runs every configured action of
a message as one all-settled batch: each action has its own timeout,
and a failing or slow action never affects its siblings or the
completion that triggered it.

Usage:
    outbox = ActionOutbox()
    dispatcher = ActionDispatcher(email_engine=EmailEngine(), webhook_client=WebhookClient())

    outbox.publish(message)
    results = await outbox.flush(dispatcher)
"""

from __future__ import annotations

import asyncio
import logging
import threading
import time
from dataclasses import dataclass
from typing import Any, Optional

from formflow.actions.email import render_submission_email
from formflow.exceptions import ActionExecutionError
from formflow.lifecycle.submission import CompletionMessage
from formflow.models import ActionType, ApiActionConfig, EmailActionConfig, FormAction

logger = logging.getLogger(__name__)

DEFAULT_ACTION_TIMEOUT = 30.0


@dataclass
class ActionResult:
    """Outcome of one action: succeeded, failed or timeout."""

    action_id: str
    action_name: str
    action_type: str
    status: str
    error: Optional[str] = None
    duration_ms: int = 0

    @property
    def ok(self) -> bool:
        return self.status == "succeeded"


class ActionDispatcher:
    """Executes the actions attached to a completion message."""

    def __init__(
        self,
        email_engine: Any = None,
        webhook_client: Any = None,
        timeout_seconds: float = DEFAULT_ACTION_TIMEOUT,
        email_delay_seconds: float = 0.0,
    ):
        self.email_engine = email_engine
        self.webhook_client = webhook_client
        self.timeout_seconds = timeout_seconds
        self.email_delay_seconds = email_delay_seconds

    async def dispatch(self, message: CompletionMessage) -> list[ActionResult]:
        """Run all actions of ``message`` concurrently. Never raises."""
        if not message.actions:
            return []

        outcomes = await asyncio.gather(
            *(self._run(action, message) for action in message.actions),
            return_exceptions=True,
        )

        results: list[ActionResult] = []
        for action, outcome in zip(message.actions, outcomes):
            if isinstance(outcome, BaseException):
                results.append(ActionResult(
                    action_id=action.id,
                    action_name=action.name,
                    action_type=action.type.value,
                    status="failed",
                    error=str(outcome),
                ))
            else:
                results.append(outcome)

        succeeded = sum(1 for r in results if r.ok)
        logger.info(
            f"Actions dispatched for submission {message.submission_id}: "
            f"{succeeded}/{len(results)} succeeded",
            extra={"form_id": message.form_id},
        )
        return results

    async def _run(self, action: FormAction, message: CompletionMessage) -> ActionResult:
        start = time.monotonic()
        status = "succeeded"
        error: Optional[str] = None

        try:
            await asyncio.wait_for(
                self._execute(action, message), timeout=self.timeout_seconds
            )
        except asyncio.TimeoutError:
            status = "timeout"
            error = f"Action timed out after {self.timeout_seconds}s"
        except Exception as e:
            status = "failed"
            error = str(e)

        duration_ms = int((time.monotonic() - start) * 1000)
        log = logger.info if status == "succeeded" else logger.error
        log(
            f"Action '{action.name}' {status}" + (f": {error}" if error else ""),
            extra={
                "form_id": message.form_id,
                "action": action.type.value,
                "status": status,
                "duration_ms": duration_ms,
            },
        )
        return ActionResult(
            action_id=action.id,
            action_name=action.name,
            action_type=action.type.value,
            status=status,
            error=error,
            duration_ms=duration_ms,
        )

    async def _execute(self, action: FormAction, message: CompletionMessage) -> None:
        if action.type == ActionType.EMAIL and isinstance(action.config, EmailActionConfig):
            await self._send_email_action(action, action.config, message)
        elif action.type == ActionType.API and isinstance(action.config, ApiActionConfig):
            if self.webhook_client is None:
                raise ActionExecutionError(
                    "No webhook client configured",
                    action_id=action.id, action_type="api",
                )
            await self.webhook_client.send(action.config, message.payload())
        else:
            raise ActionExecutionError(
                f"Action config does not match type '{action.type.value}'",
                action_id=action.id, action_type=action.type.value,
            )

    async def _send_email_action(
        self,
        action: FormAction,
        config: EmailActionConfig,
        message: CompletionMessage,
    ) -> None:
        """Send to each recipient in turn; fail only when every send failed."""
        if self.email_engine is None:
            raise ActionExecutionError(
                "No email engine configured", action_id=action.id, action_type="email"
            )
        if not config.recipients:
            raise ActionExecutionError(
                "Email action has no recipients", action_id=action.id, action_type="email"
            )

        rendered = render_submission_email(
            form_name=message.form_name,
            submission_id=message.submission_id,
            submitted_at=message.submitted_at_text,
            data=message.data,
        )

        failures = 0
        for index, recipient in enumerate(config.recipients):
            if index > 0 and self.email_delay_seconds > 0:
                await asyncio.sleep(self.email_delay_seconds)
            try:
                result = await self.email_engine.send_email(
                    to_email=recipient,
                    subject=rendered["subject"],
                    body_html=rendered["body_html"],
                    body_text=rendered["body_text"],
                )
            except Exception as e:
                result = {"status": "failed", "error": str(e)}
            if result.get("status") != "sent":
                failures += 1
                logger.warning(
                    f"Notification to {recipient} failed: {result.get('error', '')}",
                    extra={"form_id": message.form_id, "action": "email"},
                )

        if failures == len(config.recipients):
            raise ActionExecutionError(
                f"All {failures} recipient(s) failed",
                action_id=action.id,
                action_type="email",
                details={"failed": failures},
            )


class ActionOutbox:
    """Queue of completion messages waiting for dispatch."""

    def __init__(self) -> None:
        self._messages: list[CompletionMessage] = []
        self._lock = threading.Lock()

    def publish(self, message: CompletionMessage) -> None:
        with self._lock:
            self._messages.append(message)
        logger.debug(
            f"Completion queued for submission {message.submission_id}",
            extra={"form_id": message.form_id},
        )

    def pending(self) -> list[CompletionMessage]:
        with self._lock:
            return list(self._messages)

    async def flush(self, dispatcher: ActionDispatcher) -> list[ActionResult]:
        """Dispatch and remove every queued message."""
        with self._lock:
            messages, self._messages = self._messages, []

        results: list[ActionResult] = []
        for message in messages:
            results.extend(await dispatcher.dispatch(message))
        return results
