"""
Outbound webhook calls for API actions.

Posts the completed submission to the action's target URL:

    {"formName": ..., "submissionId": ..., "submittedAt": ..., "data": {...}}
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from formflow.exceptions import ActionExecutionError
from formflow.models import ApiActionConfig

logger = logging.getLogger(__name__)


class WebhookClient:
    """Sends submission payloads to configured HTTP targets."""

    def __init__(self, timeout: float = 30.0):
        self.timeout = timeout

    async def send(
        self,
        config: ApiActionConfig,
        payload: dict[str, Any],
    ) -> dict[str, Any]:
        """
        Call the target with ``payload`` as a JSON body.

        Configured headers are merged over ``Content-Type: application/json``.

        Raises:
            ActionExecutionError: On a transport failure or non-2xx status.
        """
        headers = {"Content-Type": "application/json", **config.headers}
        method = config.method.value

        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.request(
                    method, config.target_url, json=payload, headers=headers
                )
        except httpx.TimeoutException as e:
            raise ActionExecutionError(
                f"Webhook timed out: {config.target_url}",
                action_type="api",
                details={"target_url": config.target_url},
            ) from e
        except httpx.HTTPError as e:
            raise ActionExecutionError(
                f"Webhook request failed: {e}",
                action_type="api",
                details={"target_url": config.target_url},
            ) from e

        if not response.is_success:
            raise ActionExecutionError(
                f"Webhook returned {response.status_code}",
                action_type="api",
                details={
                    "target_url": config.target_url,
                    "status_code": response.status_code,
                    "body": response.text[:500],
                },
            )

        logger.debug(
            f"Webhook delivered: {method} {config.target_url}",
            extra={"status": response.status_code},
        )
        return {"status_code": response.status_code}
