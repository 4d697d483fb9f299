"""The destined worker — business logic run once per delivered batch.

The worker inspects every record's content.  Content equal to the failure
trigger aborts the whole invocation with ``ClassifiedFailure``; otherwise a
fixed success payload is returned.  The worker keeps no state between
invocations and is safe to call concurrently.
"""

from __future__ import annotations

import json
import logging
from typing import Any

from destined.models.messages import InboundEvent

logger = logging.getLogger(__name__)

DEFAULT_FAILURE_TRIGGER = "please fail"
FAILURE_MESSAGE = "Failed to send message"

SUCCESS_RESULT: dict[str, str] = {
    "source": "the-destined-lambda",
    "action": "message",
    "message": "Hey There!",
}


class ClassifiedFailure(RuntimeError):
    """Raised when a record's content matches the failure trigger.

    ``error_type`` is the type name reported in the failure envelope.
    """

    error_type = "Error"

    def __init__(self, message: str = FAILURE_MESSAGE) -> None:
        super().__init__(message)


class DestinedWorker:
    """Classifies an inbound batch as success or forced failure.

    Parameters
    ----------
    failure_trigger:
        Exact, case-sensitive content that forces a failure.
    """

    def __init__(self, failure_trigger: str = DEFAULT_FAILURE_TRIGGER) -> None:
        self._failure_trigger = failure_trigger

    @property
    def failure_trigger(self) -> str:
        return self._failure_trigger

    def handle(self, event: InboundEvent | dict[str, Any]) -> dict[str, str]:
        """Process one delivered batch.

        Raises
        ------
        ClassifiedFailure
            On the first record whose content equals the failure trigger.
            Records after it are not inspected.
        """
        _log_event(event)

        if not isinstance(event, InboundEvent):
            event = InboundEvent.model_validate(event)

        for record in event.records:
            if record.content == self._failure_trigger:
                logger.info("Failing the invocation")
                raise ClassifiedFailure()

        return dict(SUCCESS_RESULT)

    __call__ = handle


def _log_event(event: InboundEvent | dict[str, Any]) -> None:
    """Best-effort diagnostic log of the raw event; never raises."""
    if not logger.isEnabledFor(logging.INFO):
        return
    try:
        raw = event.to_wire() if isinstance(event, InboundEvent) else event
        logger.info("Event Received: %s", json.dumps(raw, default=str))
    except (TypeError, ValueError):
        logger.info("Event Received: %r", event)
