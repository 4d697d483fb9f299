"""Destined data models — all Pydantic v2, all frozen (immutable)."""

from destined.models.envelopes import (
    Condition,
    FailurePayload,
    OutcomeEnvelope,
    RequestContext,
    ResponseContext,
    SuccessPayload,
)
from destined.models.messages import (
    BusMessage,
    InboundEvent,
    InboundRecord,
    build_message_content,
)
from destined.models.responses import (
    ErrorResponseBody,
    IngressResponse,
    SuccessResponseBody,
)
from destined.models.rules import (
    DEFAULT_RULES,
    Rule,
    RuleDefinitionError,
    load_rules,
)

__all__ = [
    # envelopes
    "Condition",
    "RequestContext",
    "ResponseContext",
    "SuccessPayload",
    "FailurePayload",
    "OutcomeEnvelope",
    # messages
    "BusMessage",
    "InboundRecord",
    "InboundEvent",
    "build_message_content",
    # responses
    "SuccessResponseBody",
    "ErrorResponseBody",
    "IngressResponse",
    # rules
    "Rule",
    "RuleDefinitionError",
    "DEFAULT_RULES",
    "load_rules",
]
