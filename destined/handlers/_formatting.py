"""Shared formatting helpers for handlers and the CLI."""

from __future__ import annotations

from destined.models.envelopes import FailurePayload, OutcomeEnvelope, SuccessPayload


def detail_lines(envelope: OutcomeEnvelope) -> list[str]:
    """Return ``"Label: value"`` lines for the envelope's payload variant."""
    payload = envelope.response_payload
    if isinstance(payload, SuccessPayload):
        return [
            f"Source: {payload.source}",
            f"Action: {payload.action}",
            f"Message: {payload.message}",
        ]
    if isinstance(payload, FailurePayload):
        return [
            f"Error Type: {payload.error_type}",
            f"Error: {payload.error_message}",
        ]
    return []


def summarize(envelope: OutcomeEnvelope) -> str:
    """One-line summary, e.g. ``"Success 1f0c... | Source: ... | ..."``."""
    head = f"{envelope.request_context.condition.value} {envelope.request_id}"
    return " | ".join([head, *detail_lines(envelope)])
