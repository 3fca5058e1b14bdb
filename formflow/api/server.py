"""
Respondent-facing HTTP API.

FastAPI application exposing the chat flow of published forms.

Usage:
    from formflow.api.server import create_api_app

    app = create_api_app(service, dispatcher, outbox)
    uvicorn.run(app, host="0.0.0.0", port=8000)

Endpoints:
    GET  /api/health                     - Health check
    POST /api/chat/{public_url}/session  - Start or resume a session
    POST /api/chat/{public_url}/answer   - Submit an answer
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Optional

from fastapi import BackgroundTasks, FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from formflow.actions.dispatcher import ActionDispatcher, ActionOutbox
from formflow.exceptions import (
    FormNotFoundError,
    StepNotFoundError,
    SubmissionClosedError,
)
from formflow.flow_service import FlowService
from formflow.models import Form, Message, Step

logger = logging.getLogger(__name__)


# ── Request Models ───────────────────────────────────────────


class _CamelRequest(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class SessionRequest(_CamelRequest):
    session_id: Optional[str] = None


class AnswerRequest(_CamelRequest):
    session_id: Optional[str] = None
    step_id: Optional[str] = None
    answer: Any = None
    replay_step_id: Optional[str] = None
    time_spent_seconds: Optional[float] = Field(default=None, ge=0)


# ── Serialization ────────────────────────────────────────────


def _public_form(form: Form) -> dict[str, Any]:
    """Form fields a respondent may see (no stats, no actions)."""
    return {
        "id": form.id,
        "name": form.name,
        "publicUrl": form.public_url,
        "settings": form.settings.model_dump(
            by_alias=True, mode="json", exclude={"notification_email"}, exclude_none=True
        ),
        "steps": [step.to_json_dict() for step in form.steps],
    }


def _step_payload(step: Optional[Step], messages: list[Message]) -> Optional[dict[str, Any]]:
    if step is None:
        return None
    payload = step.to_json_dict()
    payload["renderedMessages"] = [m.to_json_dict() for m in messages]
    return payload


def _error(status_code: int, message: str, **extra: Any) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message, **extra})


# ── App Factory ──────────────────────────────────────────────


def create_api_app(
    service: FlowService,
    dispatcher: ActionDispatcher,
    outbox: Optional[ActionOutbox] = None,
    cors_origins: Optional[list[str]] = None,
) -> FastAPI:
    """
    Create the FastAPI application.

    Args:
        service: Flow service handling sessions and answers.
        dispatcher: Executes post-completion actions.
        outbox: Queue the service publishes completions to
                (default: the service's own outbox).
        cors_origins: Allowed CORS origins (default: all).
    """
    outbox = outbox if outbox is not None else service.outbox

    app = FastAPI(
        title="FormFlow API",
        description="Chat-style form sessions.",
        version="1.0.0",
        docs_url="/api/docs",
        redoc_url=None,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=cors_origins or ["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # ── Health ───────────────────────────────────────────

    @app.get("/api/health", tags=["Health"])
    async def health_check():
        return {
            "status": "healthy",
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }

    # ── Chat ─────────────────────────────────────────────

    @app.post("/api/chat/{public_url}/session", tags=["Chat"])
    def start_session(public_url: str, body: Optional[SessionRequest] = None):
        """Start a new session (201) or resume an in-progress one (200)."""
        session_id = body.session_id if body else None
        try:
            state = service.start_or_resume(public_url, session_id)
        except FormNotFoundError:
            return _error(404, "Form not found or not published")

        return JSONResponse(
            status_code=200 if state.resumed else 201,
            content={
                "sessionId": state.session_id,
                "form": _public_form(state.form),
                "currentStepIndex": state.current_step_index,
                "collectedData": state.collected_data,
                "step": _step_payload(state.first_visible_step, state.rendered_messages),
            },
        )

    @app.post("/api/chat/{public_url}/answer", tags=["Chat"])
    def submit_answer(
        public_url: str,
        body: AnswerRequest,
        background_tasks: BackgroundTasks,
    ):
        """Submit one answer and get the next step."""
        if not body.session_id or not body.step_id:
            return _error(400, "Session ID and step ID are required")

        try:
            outcome = service.submit_answer(
                public_url,
                body.session_id,
                body.step_id,
                body.answer,
                replay_step_id=body.replay_step_id,
                time_spent_seconds=body.time_spent_seconds,
            )
        except FormNotFoundError:
            return _error(404, "Form not found or not published")
        except StepNotFoundError:
            return _error(404, "Step not found")
        except SubmissionClosedError as e:
            return _error(409, "Session is closed", status=e.status)

        if not outcome.accepted:
            return _error(400, outcome.validation_error or "Invalid answer", validationError=True)

        if outcome.is_complete:
            background_tasks.add_task(outbox.flush, dispatcher)

        return {
            "success": True,
            "isComplete": outcome.is_complete,
            "nextStep": outcome.next_step.to_json_dict() if outcome.next_step else None,
            "displayStep": _step_payload(outcome.display_step, outcome.rendered_messages),
            "messages": [m.to_json_dict() for m in outcome.rendered_messages],
            "collectedData": outcome.collected_data,
        }

    return app
