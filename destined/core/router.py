"""DestinationRouter — dispatches outcome envelopes to matched handlers.

Each envelope is evaluated against every registered rule.  Every handler
bound to a matched rule receives the envelope exactly once:

- zero matches: the envelope is dropped with a warning, never an error;
- several matches: all bound handlers are invoked (fan-out);
- a handler failure is logged and recorded, and never blocks or fails the
  other handlers or the router itself.

Dispatch is attempted once per handler.  Redelivery, if any, belongs to the
caller.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import TYPE_CHECKING, Literal

from pydantic import BaseModel, ConfigDict

from destined.core.matcher import match
from destined.models.envelopes import OutcomeEnvelope
from destined.models.rules import Rule

if TYPE_CHECKING:
    from destined.handlers import BaseHandler

logger = logging.getLogger(__name__)

DispatchMode = Literal["parallel", "sequential"]


class RoutingConfigError(ValueError):
    """Raised when rules and handlers are wired inconsistently."""


class RouteResult(BaseModel):
    """What happened to one routed envelope."""

    model_config = ConfigDict(frozen=True)

    request_id: str
    condition: str = ""
    matched_rules: list[str] = []
    delivered: list[str] = []
    failed: dict[str, str] = {}

    @property
    def unmatched(self) -> bool:
        return not self.matched_rules


class DestinationRouter:
    """Routes envelopes to the handlers bound to matching rules.

    Parameters
    ----------
    rules:
        Static rule set.  Rule ids must be unique.
    handlers:
        Destination name -> handler.  Every rule's destination must be bound.
    dispatch_mode:
        ``"parallel"`` (default) runs handlers on a thread pool;
        ``"sequential"`` runs them in sorted destination order.
    max_workers:
        Upper bound on concurrent handler invocations per envelope.

    Usage
    -----
    >>> router = DestinationRouter(DEFAULT_RULES, {"success": ok, "failure": bad})
    >>> router.route(envelope)
    """

    def __init__(
        self,
        rules: Iterable[Rule],
        handlers: Mapping[str, BaseHandler],
        *,
        dispatch_mode: DispatchMode = "parallel",
        max_workers: int = 8,
    ) -> None:
        self._rules: tuple[Rule, ...] = tuple(rules)
        self._handlers: dict[str, BaseHandler] = dict(handlers)
        if dispatch_mode not in ("parallel", "sequential"):
            raise RoutingConfigError(f"Unknown dispatch mode: {dispatch_mode!r}")
        if max_workers < 1:
            raise RoutingConfigError("max_workers must be at least 1")
        self._dispatch_mode = dispatch_mode
        self._max_workers = max_workers

        seen: set[str] = set()
        for rule in self._rules:
            if rule.rule_id in seen:
                raise RoutingConfigError(f"Duplicate rule id: {rule.rule_id}")
            seen.add(rule.rule_id)
            if rule.destination not in self._handlers:
                raise RoutingConfigError(
                    f"Rule {rule.rule_id} targets unbound destination "
                    f"{rule.destination!r}"
                )

        self._rules_by_id = {rule.rule_id: rule for rule in self._rules}
        logger.info(
            "Router ready: %d rules, %d destinations, %s dispatch",
            len(self._rules),
            len(self._handlers),
            dispatch_mode,
        )

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    @property
    def rules(self) -> tuple[Rule, ...]:
        return self._rules

    @property
    def destinations(self) -> list[str]:
        return sorted(self._handlers)

    @property
    def dispatch_mode(self) -> DispatchMode:
        return self._dispatch_mode

    def destinations_for(self, envelope: OutcomeEnvelope) -> list[str]:
        """Return the sorted destinations *envelope* would be sent to."""
        matched = match(envelope, self._rules)
        return sorted({self._rules_by_id[rid].destination for rid in matched})

    # ------------------------------------------------------------------
    # Routing
    # ------------------------------------------------------------------

    def route(self, envelope: OutcomeEnvelope) -> RouteResult:
        """Match *envelope* and invoke every bound handler once.

        Never raises for unmatched envelopes or handler failures.
        """
        matched = sorted(match(envelope, self._rules))
        condition = envelope.request_context.condition.value

        if not matched:
            logger.warning(
                "No rule matched envelope %s (%s); dropped",
                envelope.request_id,
                condition,
            )
            return RouteResult(request_id=envelope.request_id, condition=condition)

        destinations = sorted({self._rules_by_id[rid].destination for rid in matched})
        logger.info(
            "Envelope %s matched %s -> %s",
            envelope.request_id,
            ", ".join(matched),
            ", ".join(destinations),
        )

        if self._dispatch_mode == "sequential" or len(destinations) == 1:
            outcomes = [self._invoke(name, envelope) for name in destinations]
        else:
            outcomes = self._invoke_parallel(destinations, envelope)

        delivered = sorted(name for name, error in outcomes if error is None)
        failed = {name: error for name, error in outcomes if error is not None}

        if failed:
            logger.warning(
                "Envelope %s: %d/%d handlers succeeded, %d failed",
                envelope.request_id,
                len(delivered),
                len(destinations),
                len(failed),
            )

        return RouteResult(
            request_id=envelope.request_id,
            condition=condition,
            matched_rules=matched,
            delivered=delivered,
            failed=dict(sorted(failed.items())),
        )

    def route_batch(self, envelopes: Iterable[OutcomeEnvelope]) -> list[RouteResult]:
        """Route several envelopes in order."""
        return [self.route(envelope) for envelope in envelopes]

    __call__ = route

    # ------------------------------------------------------------------
    # Handler invocation
    # ------------------------------------------------------------------

    def _invoke(self, name: str, envelope: OutcomeEnvelope) -> tuple[str, str | None]:
        handler = self._handlers[name]
        try:
            handler.handle(envelope)
        except Exception as exc:  # noqa: BLE001
            logger.error(
                "Handler %s failed for envelope %s: %s",
                name,
                envelope.request_id,
                exc,
            )
            return name, f"{type(exc).__name__}: {exc}"
        return name, None

    def _invoke_parallel(
        self, destinations: list[str], envelope: OutcomeEnvelope
    ) -> list[tuple[str, str | None]]:
        workers = min(len(destinations), self._max_workers)
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="route") as pool:
            futures = [
                pool.submit(self._invoke, name, envelope) for name in destinations
            ]
            return [future.result() for future in as_completed(futures)]
