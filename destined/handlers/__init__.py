"""Downstream handler protocol for destination routing.

All handlers implement the ``BaseHandler`` protocol: a ``handler_name``
property and a ``handle(envelope)`` method.  The router calls ``handle`` on
every handler bound to a matched rule.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from destined.models.envelopes import OutcomeEnvelope


@runtime_checkable
class BaseHandler(Protocol):
    """Protocol that every downstream handler must implement.

    Attributes
    ----------
    handler_name : str
        A human-readable identifier for this handler instance
        (e.g. ``"success-log"``, ``"failure-file"``).
    """

    @property
    def handler_name(self) -> str:
        """Return the name of this handler."""
        ...

    def handle(self, envelope: OutcomeEnvelope) -> object:
        """Receive a routed envelope.

        The return value is ignored.  Exceptions are caught and logged by
        the router and never reach sibling handlers.
        """
        ...
