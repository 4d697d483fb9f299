"""Worker invoker — turns a worker's return value or raised error into data.

This is the explicit post-processing step between the worker and the
router: every invocation produces exactly one ``OutcomeEnvelope`` tagged
Success or Failure.  Worker exceptions never escape ``invoke``.

Invocations are attempted once.  A worker that exceeds its timeout budget
is abandoned and reported as a terminal failure.
"""

from __future__ import annotations

import logging
import threading
import traceback
from collections.abc import Callable
from concurrent.futures import Future, wait
from typing import Any

from pydantic import ValidationError

from destined.models.envelopes import OutcomeEnvelope
from destined.models.messages import InboundEvent

logger = logging.getLogger(__name__)

TIMEOUT_ERROR_TYPE = "Sandbox.Timedout"

WorkerFn = Callable[[Any], Any]


class WorkerInvoker:
    """Runs a worker under a timeout and wraps the outcome in an envelope.

    Parameters
    ----------
    worker:
        Callable taking the inbound event and returning a success payload.
    function_arn:
        Recorded in every envelope's request context.
    timeout_seconds:
        Budget after which the invocation is abandoned.
    """

    def __init__(
        self,
        worker: WorkerFn,
        *,
        function_arn: str = "",
        timeout_seconds: float = 300,
    ) -> None:
        self._worker = worker
        self._function_arn = function_arn
        self._timeout = timeout_seconds

    @property
    def timeout_seconds(self) -> float:
        return self._timeout

    def invoke(self, event: InboundEvent | dict[str, Any]) -> OutcomeEnvelope:
        """Invoke the worker once and return its outcome envelope."""
        request_payload = (
            event.to_wire() if isinstance(event, InboundEvent) else dict(event)
        )

        future: Future[Any] = Future()

        def _run() -> None:
            if not future.set_running_or_notify_cancel():
                return
            try:
                result = self._worker(event)
            except BaseException as exc:
                future.set_exception(exc)
            else:
                future.set_result(result)

        # Daemon thread: an abandoned invocation must not hold the process open.
        threading.Thread(target=_run, name="worker-invocation", daemon=True).start()
        done, _ = wait([future], timeout=self._timeout)

        if not done:
            message = f"Task timed out after {self._timeout:.2f} seconds"
            logger.error("Invocation aborted: %s", message)
            return OutcomeEnvelope.failure(
                TIMEOUT_ERROR_TYPE,
                message,
                request_payload=request_payload,
                function_arn=self._function_arn,
            )

        exc = future.exception()
        if exc is not None:
            return self._failure(exc, request_payload)

        try:
            envelope = OutcomeEnvelope.success(
                future.result(),
                request_payload=request_payload,
                function_arn=self._function_arn,
            )
        except ValidationError as exc:
            # Worker returned something that is not a success payload.
            return self._failure(exc, request_payload)
        logger.debug("Invocation %s succeeded", envelope.request_id)
        return envelope

    __call__ = invoke

    def _failure(
        self, exc: BaseException, request_payload: dict[str, Any]
    ) -> OutcomeEnvelope:
        error_type = getattr(exc, "error_type", None) or type(exc).__name__
        stack = [
            line.rstrip("\n")
            for line in traceback.format_exception(type(exc), exc, exc.__traceback__)
        ]
        envelope = OutcomeEnvelope.failure(
            error_type,
            str(exc) or error_type,
            stack_trace=stack,
            request_payload=request_payload,
            function_arn=self._function_arn,
        )
        logger.warning(
            "Invocation %s failed: %s: %s",
            envelope.request_id,
            error_type,
            exc,
        )
        return envelope
