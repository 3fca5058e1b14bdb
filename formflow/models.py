"""
Form flow data models.

Pydantic models for forms, steps, conditions, post-completion actions
and submissions. The JSON encoding uses camelCase keys (``variableName``,
``showIf``, ``nextStepOverride`` ...) so step graphs authored elsewhere
round-trip unchanged; Python code uses the snake_case field names.

    step = Step.model_validate(raw_step_dict)
    raw = step.to_json_dict()
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional, Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ── Enums ────────────────────────────────────────────────────


class StepType(str, Enum):
    INFO = "info"
    MULTIPLE_CHOICE = "multipleChoice"
    YES_NO = "yesNo"
    STRING_INPUT = "stringInput"
    REPLAY = "replay"
    CLOSING = "closing"


class InputType(str, Enum):
    NONE = "none"
    CHOICE = "choice"
    TEXT = "text"


class DataType(str, Enum):
    """Semantic type of a free-text answer; selects formatting and validation."""
    FREETEXT = "freetext"
    NAME = "name"
    DATE_OF_BIRTH = "dateOfBirth"
    PHONE = "phone"
    COUNTRY_CODE = "countryCode"
    ADDRESS = "address"
    EMAIL = "email"
    NUMBER = "number"
    PROJECT_NAME = "projectName"
    CUSTOM_ENUM = "customEnum"
    CUSTOM_DATE = "customDate"


class ConditionalOperator(str, Enum):
    EQUALS = "equals"
    NOT_EQUALS = "notEquals"
    CONTAINS = "contains"
    NOT_CONTAINS = "notContains"
    GREATER_THAN = "greaterThan"
    LESS_THAN = "lessThan"
    GREATER_THAN_OR_EQUAL = "greaterThanOrEqual"
    LESS_THAN_OR_EQUAL = "lessThanOrEqual"
    IN = "in"
    NOT_IN = "notIn"


class LogicalOperator(str, Enum):
    AND = "AND"
    OR = "OR"


class SubmissionStatus(str, Enum):
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"
    ABANDONED = "abandoned"


class FormStatus(str, Enum):
    DRAFT = "draft"
    PUBLISHED = "published"
    ARCHIVED = "archived"


class ActionType(str, Enum):
    EMAIL = "email"
    API = "api"


class HttpMethod(str, Enum):
    POST = "POST"
    PUT = "PUT"
    PATCH = "PATCH"


class FlowModel(BaseModel):
    """Base model: camelCase aliases on the wire, field names in Python."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
    )

    def to_json_dict(self) -> dict[str, Any]:
        """Serialize to the reference JSON encoding."""
        return self.model_dump(by_alias=True, mode="json", exclude_none=True)


# ── Conditions ───────────────────────────────────────────────


class Condition(FlowModel):
    """One comparison between a collected variable and a literal."""

    variable_name: str
    # Unknown operators are kept as plain strings; they evaluate to False.
    operator: Union[ConditionalOperator, str] = Field(union_mode="left_to_right")
    value: Any = None


class ConditionalLogic(FlowModel):
    """Visibility rule for a step."""

    show_if: list[Condition] = Field(default_factory=list)
    operator: LogicalOperator = LogicalOperator.AND


class NextStepRule(FlowModel):
    """Branching rule: jump to target_step_id when the conditions hold."""

    conditions: list[Condition] = Field(default_factory=list)
    operator: LogicalOperator = LogicalOperator.AND
    target_step_id: str


class NextStepOverride(FlowModel):
    rules: list[NextStepRule] = Field(default_factory=list)
    default: Optional[str] = None


# ── Step Components ──────────────────────────────────────────


class Message(FlowModel):
    text: str
    delay: Optional[int] = None  # milliseconds


class MediaItem(FlowModel):
    id: str
    url: str
    alt: Optional[str] = None
    caption: Optional[str] = None


class MediaContent(FlowModel):
    type: str = "image"  # image | carousel | video
    items: list[MediaItem] = Field(default_factory=list)


class LinkItem(FlowModel):
    id: str
    text: str
    url: str
    open_in_new_tab: bool = True


class DisplayContent(FlowModel):
    messages: list[Message] = Field(default_factory=list)
    media: Optional[MediaContent] = None
    links: list[LinkItem] = Field(default_factory=list)


class ChoiceOption(FlowModel):
    id: str
    label: str
    value: Any = None
    redirect_url: Optional[str] = None


class InputConfig(FlowModel):
    type: InputType = InputType.NONE
    # Unknown data types are kept as plain strings; they are accepted unchanged.
    data_type: Optional[Union[DataType, str]] = Field(
        default=None, union_mode="left_to_right"
    )
    choices: list[ChoiceOption] = Field(default_factory=list)
    placeholder: Optional[str] = None
    helper_text: Optional[str] = None
    country_code: Optional[str] = Field(
        default=None,
        description="Explicit dial code (e.g. '+44') used to validate phone answers",
    )


class DataCollection(FlowModel):
    enabled: bool = True
    variable_name: str = ""
    storage_key: Optional[str] = None


class TrackingConfig(FlowModel):
    conversion_event: Optional[str] = None
    analytics_label: Optional[str] = None


# ── Step ─────────────────────────────────────────────────────


class Step(FlowModel):
    """
    One node of the form graph.

    ``order`` is advisory: traversal follows list position plus the
    branching rules, never the stored order number.
    """

    id: str
    order: int = 0
    type: StepType = StepType.INFO
    display: DisplayContent = Field(default_factory=DisplayContent)
    input: Optional[InputConfig] = None
    collect: Optional[DataCollection] = None
    conditional_logic: Optional[ConditionalLogic] = None
    next_step_override: Optional[NextStepOverride] = None
    replay_target: Optional[str] = None
    tracking: Optional[TrackingConfig] = None

    @property
    def variable_name(self) -> Optional[str]:
        """Variable this step writes to, or None when it collects nothing."""
        if self.collect and self.collect.enabled and self.collect.variable_name:
            return self.collect.variable_name
        return None

    @property
    def data_type(self) -> Optional[Union[DataType, str]]:
        if self.input and self.input.type == InputType.TEXT:
            return self.input.data_type
        return None

    @property
    def is_replay(self) -> bool:
        return self.type == StepType.REPLAY and bool(self.replay_target)

    @property
    def conversion_event(self) -> Optional[str]:
        return self.tracking.conversion_event if self.tracking else None


# ── Form Actions ─────────────────────────────────────────────


class EmailActionConfig(FlowModel):
    recipients: list[str]


class ApiActionConfig(FlowModel):
    target_url: str
    method: HttpMethod = HttpMethod.POST
    headers: dict[str, str] = Field(default_factory=dict)


class FormAction(FlowModel):
    """A post-completion action: notify by e-mail or call a webhook."""

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    name: str
    description: Optional[str] = None
    type: ActionType
    config: Union[EmailActionConfig, ApiActionConfig]


# ── Form ─────────────────────────────────────────────────────


class FormSettings(FlowModel):
    welcome_message: Optional[str] = None
    thank_you_message: Optional[str] = None
    enable_progress_bar: bool = True
    allow_back_navigation: bool = True
    email_notifications: bool = True
    notification_email: Optional[str] = Field(
        default=None, description="Form owner's address for completion notices"
    )


class FormStats(FlowModel):
    views: int = 0
    starts: int = 0
    completions: int = 0
    completion_rate: float = 0.0

    def apply(self, counter: str) -> None:
        """Increment one counter and keep completion_rate consistent."""
        if counter not in ("views", "starts", "completions"):
            raise ValueError(f"Unknown form counter: {counter}")
        setattr(self, counter, getattr(self, counter) + 1)
        if self.starts > 0:
            self.completion_rate = self.completions / self.starts
        else:
            self.completion_rate = 0.0


class Form(FlowModel):
    id: str
    name: str
    description: Optional[str] = None
    public_url: str
    status: FormStatus = FormStatus.PUBLISHED
    steps: list[Step] = Field(default_factory=list)
    settings: FormSettings = Field(default_factory=FormSettings)
    stats: FormStats = Field(default_factory=FormStats)
    actions: list[FormAction] = Field(default_factory=list)

    def get_step(self, step_id: str) -> Optional[Step]:
        for step in self.steps:
            if step.id == step_id:
                return step
        return None


# ── Submission ───────────────────────────────────────────────


class StepAnswer(FlowModel):
    step_id: str
    answered_at: datetime = Field(default_factory=_utcnow)
    answer: Any = None
    variable_name: Optional[str] = None


class SubmissionMetadata(FlowModel):
    started_at: datetime = Field(default_factory=_utcnow)
    completed_at: Optional[datetime] = None
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    conversions: list[str] = Field(default_factory=list)
    time_spent_per_step: dict[str, float] = Field(default_factory=dict)


class Submission(FlowModel):
    """One respondent's run through a form."""

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    form_id: str
    session_id: str
    status: SubmissionStatus = SubmissionStatus.IN_PROGRESS
    data: dict[str, Any] = Field(default_factory=dict)
    step_history: list[StepAnswer] = Field(default_factory=list)
    metadata: SubmissionMetadata = Field(default_factory=SubmissionMetadata)

    @property
    def is_open(self) -> bool:
        return self.status == SubmissionStatus.IN_PROGRESS
