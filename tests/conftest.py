"""
Shared fixtures and builders for the form flow tests.

``make_step`` builds a Step from keyword shortcuts so tests read like
the form they describe:

    make_step("B", show_if=[("rating", "lessThanOrEqual", 3)])
"""

from __future__ import annotations

from typing import Any, Optional

import pytest

from formflow.actions.dispatcher import ActionOutbox
from formflow.flow_service import FlowService
from formflow.models import (
    ChoiceOption,
    Condition,
    ConditionalLogic,
    DataCollection,
    DisplayContent,
    Form,
    InputConfig,
    InputType,
    Message,
    NextStepOverride,
    NextStepRule,
    Step,
    StepType,
    TrackingConfig,
)
from formflow.store.memory import InMemoryStore


def cond(variable: str, operator: str, value: Any = None) -> Condition:
    return Condition(variable_name=variable, operator=operator, value=value)


def make_step(
    step_id: str,
    *,
    text: Optional[str] = None,
    collect: Optional[str] = None,
    data_type: Optional[str] = None,
    choices: Optional[list[Any]] = None,
    show_if: Optional[list[tuple]] = None,
    show_if_operator: str = "AND",
    rules: Optional[list[tuple[list[tuple], str]]] = None,
    rules_operator: str = "AND",
    default: Optional[str] = None,
    replay_target: Optional[str] = None,
    conversion_event: Optional[str] = None,
    country_code: Optional[str] = None,
) -> Step:
    """Build a step; ``rules`` is a list of (conditions, target_step_id)."""
    step_type = StepType.INFO
    input_config = None
    if choices is not None:
        step_type = StepType.MULTIPLE_CHOICE
        input_config = InputConfig(
            type=InputType.CHOICE,
            choices=[
                ChoiceOption(id=f"{step_id}-{i}", label=str(v), value=v)
                for i, v in enumerate(choices)
            ],
        )
    elif data_type is not None or collect is not None:
        step_type = StepType.STRING_INPUT
        input_config = InputConfig(
            type=InputType.TEXT, data_type=data_type, country_code=country_code
        )
    if replay_target is not None:
        step_type = StepType.REPLAY

    override = None
    if rules is not None or default is not None:
        override = NextStepOverride(
            rules=[
                NextStepRule(
                    conditions=[cond(*c) for c in conditions],
                    operator=rules_operator,
                    target_step_id=target,
                )
                for conditions, target in (rules or [])
            ],
            default=default,
        )

    return Step(
        id=step_id,
        type=step_type,
        display=DisplayContent(
            messages=[] if replay_target else [Message(text=text or f"Step {step_id}")]
        ),
        input=input_config,
        collect=DataCollection(variable_name=collect) if collect else None,
        conditional_logic=(
            ConditionalLogic(show_if=[cond(*c) for c in show_if], operator=show_if_operator)
            if show_if
            else None
        ),
        next_step_override=override,
        replay_target=replay_target,
        tracking=TrackingConfig(conversion_event=conversion_event) if conversion_event else None,
    )


@pytest.fixture
def rating_steps() -> list[Step]:
    """A(collect rating) -> B(rating<=3) -> C(rating<=3 AND explain=true)."""
    return [
        make_step("A", collect="rating", choices=[1, 2, 3, 4, 5]),
        make_step("B", collect="explain", choices=[True, False],
                  show_if=[("rating", "lessThanOrEqual", 3)]),
        make_step("C", collect="details", data_type="freetext",
                  show_if=[("rating", "lessThanOrEqual", 3), ("explain", "equals", True)]),
    ]


@pytest.fixture
def contact_form() -> Form:
    """Name, country, phone, email with a replay of the email step."""
    return Form(
        id="form-1",
        name="Contact",
        public_url="contact",
        steps=[
            make_step("name", text="What's your name?", collect="name", data_type="name"),
            make_step("country", text="Hi {name}, where are you?", collect="country",
                      choices=["United States|+1", "United Kingdom|+44"]),
            make_step("phone", text="Phone ({country})?", collect="phone", data_type="phone"),
            make_step("email", text="Email?", collect="email", data_type="email"),
            make_step("confirm", text="Is {email} right?", collect="emailOk",
                      choices=[True, False]),
            make_step("reask", replay_target="email",
                      show_if=[("emailOk", "equals", False)]),
            make_step("bye", text="Thanks {name}!"),
        ],
    )


@pytest.fixture
def store(contact_form) -> InMemoryStore:
    return InMemoryStore([contact_form])


@pytest.fixture
def outbox() -> ActionOutbox:
    return ActionOutbox()


@pytest.fixture
def service(store, outbox) -> FlowService:
    return FlowService(store, outbox)
