"""
Pydantic schema for the application config (config.yaml).

Form definitions are not part of this file; each form lives in
forms/<public_url>/form.yaml and parses straight into ``formflow.models.Form``.
"""

from __future__ import annotations

from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, field_validator


class EmailProvider(str, Enum):
    RESEND = "resend"
    SENDGRID = "sendgrid"


# ---------------------------------------------------------------------------
# Sub-models
# ---------------------------------------------------------------------------

class ActionsConfig(BaseModel):
    """Post-completion action execution."""
    timeout_seconds: float = Field(default=30.0, gt=0)
    email_delay_seconds: float = Field(
        default=0.0, ge=0, description="Pause between recipients of one e-mail action"
    )


class EmailConfig(BaseModel):
    provider: EmailProvider = EmailProvider.RESEND
    api_key_env: Optional[str] = Field(
        default=None,
        description="Env var holding the provider key (RESEND_API_KEY / SENDGRID_API_KEY by default)",
    )
    from_address: Optional[str] = None


class ApiConfig(BaseModel):
    host: str = "0.0.0.0"
    port: int = Field(default=8000, ge=1, le=65535)
    cors_origins: list[str] = Field(default_factory=lambda: ["*"])


# ---------------------------------------------------------------------------
# Root
# ---------------------------------------------------------------------------

class AppConfig(BaseModel):
    """Top-level application configuration."""
    environment: str = "development"
    forms_dir: str = "forms"
    actions: ActionsConfig = Field(default_factory=ActionsConfig)
    email: EmailConfig = Field(default_factory=EmailConfig)
    api: ApiConfig = Field(default_factory=ApiConfig)

    @field_validator("environment")
    @classmethod
    def validate_environment(cls, v: str) -> str:
        allowed = {"development", "staging", "test", "production"}
        if v not in allowed:
            raise ValueError(f"environment must be one of {sorted(allowed)}")
        return v
