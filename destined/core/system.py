"""System wiring — assembles bus, worker, invoker, router and ingress.

``SystemConfig`` is built once at process start and handed to
``DestinedSystem``; no component reaches for module-level state.

Flow::

    send_event(mode) -> bus.publish("please " + mode)
    drain()          -> bus.deliver() -> invoker.invoke(batch) -> router.route(envelope)
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from destined.config import DestinedSettings
from destined.core.bus import MessageBus
from destined.core.ingress import IngressAdapter
from destined.core.invoker import WorkerInvoker
from destined.core.router import DestinationRouter, RouteResult
from destined.core.worker import DestinedWorker
from destined.handlers import BaseHandler
from destined.handlers.local_file import LocalFileHandler
from destined.handlers.logging_handler import LoggingHandler
from destined.models.envelopes import OutcomeEnvelope
from destined.models.messages import InboundEvent
from destined.models.responses import IngressResponse
from destined.models.rules import DEFAULT_RULES, Rule, load_rules

logger = logging.getLogger(__name__)


class FanOutError(RuntimeError):
    """Raised after a fan-out when one or more member handlers failed."""

    def __init__(self, destination: str, errors: list[tuple[str, Exception]]) -> None:
        self.destination = destination
        self.errors = errors
        detail = "; ".join(
            f"{name}: {type(exc).__name__}: {exc}" for name, exc in errors
        )
        super().__init__(f"{len(errors)} handler(s) failed for {destination}: {detail}")


class _FanOutHandler:
    """Bundles several handlers under one destination name.

    Every member sees every envelope; one member raising does not stop the
    rest.  Failures are collected and re-raised as ``FanOutError`` once all
    members have run, so the router still records the destination as failed.
    """

    def __init__(self, name: str, handlers: list[BaseHandler]) -> None:
        self._name = name
        self._handlers = handlers

    @property
    def handler_name(self) -> str:
        return self._name

    def handle(self, envelope: OutcomeEnvelope) -> None:
        errors: list[tuple[str, Exception]] = []
        for handler in self._handlers:
            try:
                handler.handle(envelope)
            except Exception as exc:  # noqa: BLE001
                logger.error(
                    "Handler %s failed for envelope %s: %s",
                    handler.handler_name,
                    envelope.request_id,
                    exc,
                )
                errors.append((handler.handler_name, exc))

        if errors:
            raise FanOutError(self._name, errors)


@dataclass(frozen=True)
class SystemConfig:
    """Everything the system needs, assembled once."""

    settings: DestinedSettings
    bus: MessageBus
    rules: tuple[Rule, ...]
    handlers: Mapping[str, BaseHandler] = field(default_factory=dict)


def build_default_config(settings: DestinedSettings | None = None) -> SystemConfig:
    """Build the reference wiring from *settings*.

    Rules come from ``settings.rules_path`` when set, else the defaults.
    Each destination logs its envelopes, and also writes them to
    ``settings.event_output_path`` when that is set.
    """
    settings = settings or DestinedSettings()
    rules = (
        tuple(load_rules(settings.rules_path))
        if settings.rules_path
        else DEFAULT_RULES
    )

    handlers: dict[str, BaseHandler] = {}
    for destination in sorted({rule.destination for rule in rules}):
        members: list[BaseHandler] = [LoggingHandler(f"{destination}-log")]
        if settings.event_output_path is not None:
            members.append(
                LocalFileHandler(
                    f"{destination}-file",
                    Path(settings.event_output_path) / destination,
                )
            )
        handlers[destination] = _FanOutHandler(destination, members)

    bus = MessageBus(settings.topic_arn, max_depth=settings.max_queue_depth)
    return SystemConfig(settings=settings, bus=bus, rules=rules, handlers=handlers)


class DestinedSystem:
    """The whole pipeline, wired in-process.

    Parameters
    ----------
    config:
        Explicit wiring.  Defaults to ``build_default_config()``.
    """

    def __init__(self, config: SystemConfig | None = None) -> None:
        self.config = config or build_default_config()
        settings = self.config.settings

        self.bus = self.config.bus
        self.worker = DestinedWorker(failure_trigger=settings.failure_trigger)
        self.invoker = WorkerInvoker(
            self.worker,
            function_arn=settings.function_arn,
            timeout_seconds=settings.worker_timeout_seconds,
        )
        self.router = DestinationRouter(
            self.config.rules,
            self.config.handlers,
            dispatch_mode=settings.dispatch_mode,
            max_workers=settings.max_dispatch_workers,
        )
        self.ingress = IngressAdapter(self.bus, cors_origin=settings.cors_origin)
        self.bus.subscribe(self._on_delivery)

    # ------------------------------------------------------------------
    # Pipeline stages
    # ------------------------------------------------------------------

    def _on_delivery(self, event: InboundEvent) -> RouteResult:
        envelope = self.invoker.invoke(event)
        return self.router.route(envelope)

    def send_event(self, mode: str | None) -> IngressResponse:
        """Ingress step only; the message waits on the bus until ``drain``."""
        return self.ingress.send_event(mode)

    def handle_request(self, request: Mapping[str, Any]) -> IngressResponse:
        return self.ingress.handle_request(request)

    def drain(self) -> list[RouteResult]:
        """Deliver every queued message and route the resulting envelopes."""
        return self.bus.deliver(self.config.settings.delivery_batch_size)
