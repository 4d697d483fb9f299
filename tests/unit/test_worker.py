"""Unit tests for the worker's outcome classification and the invoker."""

from __future__ import annotations

import logging
import os
import subprocess
import sys
import textwrap
import threading
import time
from pathlib import Path

import pytest

from destined.core.invoker import TIMEOUT_ERROR_TYPE, WorkerInvoker
from destined.core.worker import (
    FAILURE_MESSAGE,
    SUCCESS_RESULT,
    ClassifiedFailure,
    DestinedWorker,
)
from destined.models.envelopes import Condition, FailurePayload, SuccessPayload
from destined.models.messages import InboundEvent


class TestDestinedWorker:
    def test_success_payload(self, make_event):
        worker = DestinedWorker()
        assert worker.handle(make_event("please hello")) == {
            "source": "the-destined-lambda",
            "action": "message",
            "message": "Hey There!",
        }

    def test_trigger_raises(self, make_event):
        with pytest.raises(ClassifiedFailure, match=FAILURE_MESSAGE) as exc_info:
            DestinedWorker().handle(make_event("please fail"))
        assert exc_info.value.error_type == "Error"

    @pytest.mark.parametrize(
        "content",
        ["please Fail", "PLEASE FAIL", "please fail ", " please fail", "please  fail", "please ", "fail"],
    )
    def test_only_exact_trigger_fails(self, make_event, content):
        assert DestinedWorker().handle(make_event(content)) == SUCCESS_RESULT

    def test_empty_batch_succeeds(self):
        assert DestinedWorker().handle({"Records": []}) == SUCCESS_RESULT
        assert DestinedWorker().handle({}) == SUCCESS_RESULT

    def test_every_record_is_inspected(self, make_event):
        """The trigger in a later record still fails the batch."""
        event = make_event("please a", "please b", "please fail")
        with pytest.raises(ClassifiedFailure):
            DestinedWorker().handle(event)

    def test_batch_without_trigger_succeeds(self, make_event):
        event = make_event("please a", "please b", "please c")
        assert DestinedWorker().handle(event) == SUCCESS_RESULT

    def test_accepts_typed_event(self, make_event):
        event = InboundEvent.model_validate(make_event("please hello"))
        assert DestinedWorker().handle(event) == SUCCESS_RESULT

    def test_custom_trigger(self, make_event):
        worker = DestinedWorker(failure_trigger="please explode")
        assert worker.handle(make_event("please fail")) == SUCCESS_RESULT
        with pytest.raises(ClassifiedFailure):
            worker.handle(make_event("please explode"))

    def test_result_is_a_fresh_copy(self, make_event):
        result = DestinedWorker().handle(make_event("please x"))
        result["message"] = "mutated"
        assert SUCCESS_RESULT["message"] == "Hey There!"

    def test_logs_raw_event(self, make_event, caplog):
        with caplog.at_level(logging.INFO, logger="destined.core.worker"):
            DestinedWorker().handle(make_event("please hello"))
        assert "Event Received:" in caplog.text
        assert "please hello" in caplog.text


class TestWorkerInvoker:
    def test_success_envelope(self, make_event):
        invoker = WorkerInvoker(DestinedWorker(), function_arn="arn:fn")
        event = make_event("please hello")
        envelope = invoker.invoke(event)
        assert envelope.request_context.condition is Condition.SUCCESS
        assert envelope.request_context.function_arn == "arn:fn"
        assert isinstance(envelope.response_payload, SuccessPayload)
        assert envelope.response_payload.message == "Hey There!"
        assert envelope.request_payload == event

    def test_classified_failure_becomes_envelope(self, make_event):
        envelope = WorkerInvoker(DestinedWorker()).invoke(make_event("please fail"))
        payload = envelope.response_payload
        assert envelope.request_context.condition is Condition.FAILURE
        assert isinstance(payload, FailurePayload)
        assert payload.error_type == "Error"
        assert payload.error_message == FAILURE_MESSAGE
        assert payload.stack_trace
        assert envelope.response_context.function_error == "Unhandled"

    def test_unexpected_exception_uses_class_name(self):
        def _broken(event):
            raise KeyError("Records")

        envelope = WorkerInvoker(_broken).invoke({})
        assert envelope.response_payload.error_type == "KeyError"
        assert envelope.response_payload.error_message

    def test_invalid_return_value_is_failure(self):
        envelope = WorkerInvoker(lambda event: {"unexpected": True}).invoke({})
        assert not envelope.is_success
        assert envelope.response_payload.error_type == "ValidationError"

    def test_timeout_is_terminal_failure(self):
        release = threading.Event()

        def _slow(event):
            release.wait(5)
            return dict(SUCCESS_RESULT)

        invoker = WorkerInvoker(_slow, timeout_seconds=0.05)
        try:
            envelope = invoker.invoke({})
        finally:
            release.set()
        assert envelope.response_payload.error_type == TIMEOUT_ERROR_TYPE
        assert envelope.response_payload.error_message == "Task timed out after 0.05 seconds"
        assert envelope.request_context.approximate_invoke_count == 1

    def test_timed_out_worker_does_not_block_exit(self):
        script = textwrap.dedent(
            """
            import time
            from destined.core.invoker import WorkerInvoker

            envelope = WorkerInvoker(lambda e: time.sleep(30), timeout_seconds=0.1).invoke({})
            print(envelope.response_payload.error_type)
            """
        )
        root = Path(__file__).resolve().parents[2]
        pythonpath = [str(root), os.environ.get("PYTHONPATH", "")]
        env = {**os.environ, "PYTHONPATH": os.pathsep.join(filter(None, pythonpath))}
        started = time.monotonic()
        completed = subprocess.run(
            [sys.executable, "-c", script],
            capture_output=True,
            text=True,
            env=env,
            timeout=20,
        )
        assert completed.returncode == 0, completed.stderr
        assert completed.stdout.strip() == TIMEOUT_ERROR_TYPE
        assert time.monotonic() - started < 15

    def test_worker_runs_on_daemon_thread(self):
        seen = []

        def _record(event):
            seen.append(threading.current_thread().daemon)
            return dict(SUCCESS_RESULT)

        assert WorkerInvoker(_record).invoke({}).is_success
        assert seen == [True]

    def test_invoke_count_is_always_one(self, make_event):
        invoker = WorkerInvoker(DestinedWorker())
        for content in ("please a", "please fail"):
            envelope = invoker.invoke(make_event(content))
            assert envelope.request_context.approximate_invoke_count == 1
