"""Shared test fixtures for destined."""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

import pytest

from destined.core.worker import SUCCESS_RESULT
from destined.models.envelopes import OutcomeEnvelope
from destined.models.messages import BusMessage, InboundEvent


class RecordingHandler:
    """A handler that remembers what it received."""

    def __init__(self, name: str = "recorder") -> None:
        self._name = name
        self.received: list[OutcomeEnvelope] = []

    @property
    def handler_name(self) -> str:
        return self._name

    def handle(self, envelope: OutcomeEnvelope) -> None:
        self.received.append(envelope)


class ExplodingHandler:
    """A handler that always raises."""

    def __init__(self, name: str = "exploding", exc_type: type = RuntimeError) -> None:
        self._name = name
        self._exc_type = exc_type
        self.calls = 0

    @property
    def handler_name(self) -> str:
        return self._name

    def handle(self, envelope: OutcomeEnvelope) -> None:
        self.calls += 1
        raise self._exc_type(f"{self._name} exploded!")


# ---------------------------------------------------------------------------
# Factories — shared across test modules
# ---------------------------------------------------------------------------


@pytest.fixture
def make_event() -> Callable[..., dict[str, Any]]:
    """Factory fixture: build a raw inbound event from message contents."""

    def _factory(*contents: str) -> dict[str, Any]:
        event = InboundEvent.from_messages(
            [BusMessage(topic_arn="arn:test", message=c) for c in contents]
        )
        return event.to_wire()

    return _factory


@pytest.fixture
def make_success_envelope() -> Callable[..., OutcomeEnvelope]:
    """Factory fixture: a success envelope, payload fields overridable."""

    def _factory(**overrides: str) -> OutcomeEnvelope:
        payload = {**SUCCESS_RESULT, **overrides}
        return OutcomeEnvelope.success(payload, function_arn="arn:test:function")

    return _factory


@pytest.fixture
def make_failure_envelope() -> Callable[..., OutcomeEnvelope]:
    """Factory fixture: a failure envelope."""

    def _factory(
        error_type: str = "Error",
        error_message: str = "Failed to send message",
    ) -> OutcomeEnvelope:
        return OutcomeEnvelope.failure(
            error_type, error_message, function_arn="arn:test:function"
        )

    return _factory


@pytest.fixture
def success_envelope(make_success_envelope) -> OutcomeEnvelope:
    return make_success_envelope()


@pytest.fixture
def failure_envelope(make_failure_envelope) -> OutcomeEnvelope:
    return make_failure_envelope()


@pytest.fixture
def make_recorder() -> Callable[..., RecordingHandler]:
    """Factory fixture: a handler that records envelopes."""
    return RecordingHandler


@pytest.fixture
def make_exploder() -> Callable[..., ExplodingHandler]:
    """Factory fixture: a handler that always raises."""
    return ExplodingHandler
