"""
E-mail delivery for submission notifications.

Sends through Resend or SendGrid over their HTTP APIs. The notification
body is rendered from the Jinja2 templates in ``templates/``: an HTML
table of the submission data plus a plain-text twin.
"""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Any, Optional

import httpx
from jinja2 import Environment, FileSystemLoader, select_autoescape

from formflow.engine.interpolation import format_display_value

logger = logging.getLogger(__name__)

TEMPLATE_DIR = Path(__file__).parent / "templates"
DEFAULT_FROM = "FormFlow <noreply@formflow.local>"


def _display_value(value: Any) -> str:
    if value is None:
        return "(empty)"
    if isinstance(value, bool):
        return "Yes" if value else "No"
    if isinstance(value, (list, tuple)):
        return ", ".join(format_display_value(v) for v in value)
    if isinstance(value, dict):
        return json.dumps(value, indent=2, default=str)
    return format_display_value(value)


_env = Environment(
    loader=FileSystemLoader(str(TEMPLATE_DIR)),
    autoescape=select_autoescape(["html"]),
    trim_blocks=True,
    lstrip_blocks=True,
)
_env.filters["display_value"] = _display_value


def render_submission_email(
    form_name: str,
    submission_id: str,
    submitted_at: str,
    data: dict[str, Any],
) -> dict[str, str]:
    """
    Render the owner notification for one submission.

    Returns:
        Dict with 'subject', 'body_html' and 'body_text' keys.
    """
    context = {
        "form_name": form_name,
        "submission_id": submission_id,
        "submitted_at": submitted_at,
        "data": data,
    }
    return {
        "subject": f"New submission for {form_name}",
        "body_html": _env.get_template("submission_email.html").render(**context),
        "body_text": _env.get_template("submission_email.txt").render(**context).strip(),
    }


class EmailEngine:
    """
    Email sending engine with provider abstraction.

    Supports Resend and SendGrid. Sending never raises for provider
    errors; the result dict carries ``status`` ("sent" or "failed").
    """

    def __init__(
        self,
        provider: str = "resend",
        api_key_env: Optional[str] = None,
        from_address: Optional[str] = None,
        timeout: float = 30.0,
    ):
        self.provider = provider

        if provider == "resend":
            self.api_key = os.environ.get(api_key_env or "RESEND_API_KEY", "")
            self.base_url = "https://api.resend.com"
        elif provider == "sendgrid":
            self.api_key = os.environ.get(api_key_env or "SENDGRID_API_KEY", "")
            self.base_url = "https://api.sendgrid.com/v3"
        else:
            raise ValueError(f"Unsupported email provider: {provider}")

        self.from_address = from_address or os.environ.get("MAIL_FROM", DEFAULT_FROM)
        self.timeout = timeout

    async def send_email(
        self,
        to_email: str,
        subject: str,
        body_html: str,
        body_text: str,
    ) -> dict[str, Any]:
        """
        Send one e-mail via the configured provider.

        Returns:
            Dict with 'message_id', 'status', 'provider' and, on
            failure, 'error'.
        """
        if self.provider == "resend":
            url = f"{self.base_url}/emails"
            payload: dict[str, Any] = {
                "from": self.from_address,
                "to": [to_email],
                "subject": subject,
                "html": body_html,
                "text": body_text,
            }
        else:
            url = f"{self.base_url}/mail/send"
            payload = {
                "personalizations": [{"to": [{"email": to_email}], "subject": subject}],
                "from": {"email": self.from_address},
                "content": [
                    {"type": "text/plain", "value": body_text},
                    {"type": "text/html", "value": body_html},
                ],
            }

        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.post(
                    url,
                    headers={
                        "Authorization": f"Bearer {self.api_key}",
                        "Content-Type": "application/json",
                    },
                    json=payload,
                )
        except httpx.HTTPError as e:
            logger.error(f"{self.provider} request failed: {e}")
            return {
                "message_id": "",
                "status": "failed",
                "provider": self.provider,
                "error": str(e),
            }

        if response.status_code in (200, 201, 202):
            if self.provider == "resend":
                try:
                    message_id = response.json().get("id", "")
                except ValueError:
                    message_id = ""
            else:
                message_id = response.headers.get("X-Message-Id", "")
            return {
                "message_id": message_id,
                "status": "sent",
                "provider": self.provider,
                "status_code": response.status_code,
            }

        logger.error(f"{self.provider} error: {response.status_code} - {response.text}")
        return {
            "message_id": "",
            "status": "failed",
            "provider": self.provider,
            "status_code": response.status_code,
            "error": response.text,
        }
