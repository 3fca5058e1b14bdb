"""
Custom exception hierarchy for the form flow engine.

Structured error handling with clear categories:
- Configuration errors (caught when a form definition is loaded)
- Lookup errors (unknown form, unknown step)
- Lifecycle errors (answers sent to a closed submission)
- Side-effect failures (post-completion actions, including an e-mail
  provider or webhook target being down)

Answer validation failures are NOT exceptions: the engine returns them
as results so the same step can be re-presented.

Usage:
    from formflow.exceptions import ActionExecutionError

    try:
        response = await client.post(url, json=payload)
    except httpx.TimeoutException as e:
        raise ActionExecutionError("webhook timed out", action_id=action.id) from e
"""

from __future__ import annotations

from typing import Optional


class FormFlowError(Exception):
    """
    Base exception for all form flow errors.

    All custom exceptions inherit from this, so you can catch
    `FormFlowError` to handle any engine-specific error.
    """

    def __init__(self, message: str, *, details: Optional[dict] = None):
        super().__init__(message)
        self.details = details or {}


# ── Configuration Errors ──────────────────────────────────────────


class FormConfigurationError(FormFlowError):
    """
    Raised when a form's YAML definition or the app config is invalid.

    Examples:
    - Missing form.yaml
    - Step missing its id
    - Unknown step type
    """

    def __init__(
        self,
        message: str,
        *,
        form_id: Optional[str] = None,
        config_path: Optional[str] = None,
        details: Optional[dict] = None,
    ):
        super().__init__(message, details=details)
        self.form_id = form_id
        self.config_path = config_path


# ── Lookup Errors ─────────────────────────────────────────────────


class FormNotFoundError(FormFlowError):
    """Raised when no published form exists for a public URL."""

    def __init__(
        self,
        message: str,
        *,
        public_url: Optional[str] = None,
        details: Optional[dict] = None,
    ):
        super().__init__(message, details=details)
        self.public_url = public_url


class StepNotFoundError(FormFlowError):
    """Raised when an answer references a step id the form does not have."""

    def __init__(
        self,
        message: str,
        *,
        step_id: Optional[str] = None,
        form_id: Optional[str] = None,
        details: Optional[dict] = None,
    ):
        super().__init__(message, details=details)
        self.step_id = step_id
        self.form_id = form_id


# ── Lifecycle Errors ──────────────────────────────────────────────


class SubmissionClosedError(FormFlowError):
    """
    Raised when an answer arrives for a submission that is no longer
    in progress (completed or abandoned).
    """

    def __init__(
        self,
        message: str,
        *,
        session_id: Optional[str] = None,
        status: Optional[str] = None,
        details: Optional[dict] = None,
    ):
        super().__init__(message, details=details)
        self.session_id = session_id
        self.status = status


# ── Side-Effect Failures ──────────────────────────────────────────


class ActionExecutionError(FormFlowError):
    """
    Raised inside a post-completion action (e-mail or webhook) when it
    cannot be carried out.

    The dispatcher captures it per action; it never reaches the
    respondent-facing completion result.
    """

    def __init__(
        self,
        message: str,
        *,
        action_id: Optional[str] = None,
        action_type: Optional[str] = None,
        details: Optional[dict] = None,
    ):
        super().__init__(message, details=details)
        self.action_id = action_id
        self.action_type = action_type
