"""Outcome envelopes — the success/failure record produced per invocation.

The wire shape mirrors the platform's asynchronous-invocation destination
record (camelCase keys).  Python code uses snake_case field names; the
camelCase form is what the rule matcher reads.

Every envelope is a frozen Pydantic model: once the invoker builds it,
nothing downstream can mutate it.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Union

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel


class Condition(str, Enum):
    """Which invocation path produced the envelope."""

    SUCCESS = "Success"
    FAILURE = "Failure"


class _WireModel(BaseModel):
    """Frozen model with camelCase aliases on the wire."""

    model_config = ConfigDict(
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )


class RequestContext(_WireModel):
    request_id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    function_arn: str = ""
    condition: Condition
    approximate_invoke_count: int = 1


class ResponseContext(_WireModel):
    status_code: int = 200
    executed_version: str = "$LATEST"
    function_error: str | None = None


class SuccessPayload(_WireModel):
    """Result returned by a worker that completed normally."""

    source: str
    action: str
    message: str


class FailurePayload(_WireModel):
    """Error raised by a worker, converted to data."""

    error_type: str
    error_message: str
    stack_trace: list[str] = []


ResponsePayload = Union[SuccessPayload, FailurePayload]


class OutcomeEnvelope(_WireModel):
    """Canonical success/failure wrapper for one worker invocation.

    Invariant: ``request_context.condition`` agrees with the variant held
    in ``response_payload``.
    """

    version: str = "1.0"
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    request_context: RequestContext
    request_payload: dict[str, Any] = {}
    response_context: ResponseContext = ResponseContext()
    response_payload: ResponsePayload

    @model_validator(mode="after")
    def _condition_matches_variant(self) -> OutcomeEnvelope:
        condition = self.request_context.condition
        if condition is Condition.SUCCESS and not isinstance(
            self.response_payload, SuccessPayload
        ):
            raise ValueError("Success condition requires a success payload")
        if condition is Condition.FAILURE and not isinstance(
            self.response_payload, FailurePayload
        ):
            raise ValueError("Failure condition requires a failure payload")
        return self

    # ------------------------------------------------------------------
    # Constructors
    # ------------------------------------------------------------------

    @classmethod
    def success(
        cls,
        payload: SuccessPayload | dict[str, Any],
        *,
        request_payload: dict[str, Any] | None = None,
        function_arn: str = "",
    ) -> OutcomeEnvelope:
        if isinstance(payload, dict):
            payload = SuccessPayload.model_validate(payload)
        return cls(
            request_context=RequestContext(
                function_arn=function_arn, condition=Condition.SUCCESS
            ),
            request_payload=request_payload or {},
            response_payload=payload,
        )

    @classmethod
    def failure(
        cls,
        error_type: str,
        error_message: str,
        *,
        stack_trace: list[str] | None = None,
        request_payload: dict[str, Any] | None = None,
        function_arn: str = "",
    ) -> OutcomeEnvelope:
        return cls(
            request_context=RequestContext(
                function_arn=function_arn, condition=Condition.FAILURE
            ),
            request_payload=request_payload or {},
            response_context=ResponseContext(function_error="Unhandled"),
            response_payload=FailurePayload(
                error_type=error_type,
                error_message=error_message,
                stack_trace=stack_trace or [],
            ),
        )

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------

    @property
    def request_id(self) -> str:
        return self.request_context.request_id

    @property
    def is_success(self) -> bool:
        return self.request_context.condition is Condition.SUCCESS

    def to_wire(self) -> dict[str, Any]:
        """Return the camelCase, JSON-compatible form of the envelope."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)
