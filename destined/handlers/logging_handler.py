"""Logging handler — records each routed envelope as a log line."""

from __future__ import annotations

import logging

from destined.handlers._formatting import summarize
from destined.models.envelopes import OutcomeEnvelope

logger = logging.getLogger(__name__)


class LoggingHandler:
    """Logs a one-line summary of every envelope it receives.

    Parameters
    ----------
    name:
        Handler name, usually the destination it is bound to.
    level:
        Log level for success envelopes; failures are logged at WARNING
        or above.
    """

    def __init__(self, name: str, level: int = logging.INFO) -> None:
        self._name = name
        self._level = level

    @property
    def handler_name(self) -> str:
        return self._name

    def handle(self, envelope: OutcomeEnvelope) -> None:
        level = self._level if envelope.is_success else max(self._level, logging.WARNING)
        logger.log(level, "[%s] %s", self._name, summarize(envelope))
