"""Ingress adapter — maps client requests to bus messages and back.

``GET /SendEvent?mode=<m>`` publishes ``"please " + m``.  A successful
publish returns 200 with the success schema; a publish rejected by the
transport returns 400 with the error schema.  Both carry the same content
type and CORS headers.

``mode`` is passed through unvalidated: only the exact trigger content
changes downstream behavior.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any, Protocol

from pydantic import BaseModel

from destined.models.messages import build_message_content
from destined.models.responses import (
    ErrorResponseBody,
    IngressResponse,
    SuccessResponseBody,
)

logger = logging.getLogger(__name__)

SEND_EVENT_PATH = "/SendEvent"
PUBLISH_ERROR_TOKEN = "Error"


class Publisher(Protocol):
    def publish(self, content: str) -> str: ...


def is_publish_failure(error_text: str) -> bool:
    """Whether a transport error text maps to the 400 response."""
    return error_text.startswith(PUBLISH_ERROR_TOKEN)


class IngressAdapter:
    """Translates ingress requests into published messages.

    Parameters
    ----------
    publisher:
        Anything with ``publish(content) -> message_id``.
    cors_origin:
        Value of ``Access-Control-Allow-Origin``.
    """

    def __init__(self, publisher: Publisher, *, cors_origin: str = "*") -> None:
        self._publisher = publisher
        self._cors_origin = cors_origin

    def response_headers(self) -> dict[str, str]:
        return {
            "Content-Type": "application/json",
            "Access-Control-Allow-Origin": self._cors_origin,
            "Access-Control-Allow-Credentials": "true",
        }

    def _respond(self, status_code: int, body: BaseModel) -> IngressResponse:
        # model_dump_json escapes quotes, backslashes and control characters.
        return IngressResponse(
            status_code=status_code,
            headers=self.response_headers(),
            body=body.model_dump_json(),
        )

    def send_event(self, mode: str | None) -> IngressResponse:
        """Publish the message for *mode* and build the HTTP response."""
        content = build_message_content(mode)
        try:
            message_id = self._publisher.publish(content)
        except Exception as exc:
            # Any transport error is reported in the 400 schema, never raised.
            error_text = str(exc) or type(exc).__name__
            if not is_publish_failure(error_text):
                error_text = f"{PUBLISH_ERROR_TOKEN}: {error_text}"
            logger.error("Publish failed: %s", error_text)
            return self._respond(400, ErrorResponseBody(message=error_text))

        logger.info("Published message %s for mode=%r", message_id, mode)
        return self._respond(200, SuccessResponseBody())

    def handle_request(self, request: Mapping[str, Any]) -> IngressResponse:
        """Handle a gateway-style request mapping.

        Expects ``httpMethod``, ``path`` and optional ``queryStringParameters``.
        """
        method = str(request.get("httpMethod") or "GET").upper()
        path = str(request.get("path") or "")
        if path.rstrip("/") != SEND_EVENT_PATH or method != "GET":
            return self._respond(
                404, ErrorResponseBody(message=f"No route for {method} {path}")
            )
        params = request.get("queryStringParameters") or {}
        return self.send_event(params.get("mode"))
