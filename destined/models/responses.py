"""HTTP-shaped ingress responses and their body schemas."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

PUBLISH_OK_MESSAGE = "Message added to SNS topic"


class SuccessResponseBody(BaseModel):
    model_config = ConfigDict(frozen=True)

    message: str = PUBLISH_OK_MESSAGE


class ErrorResponseBody(BaseModel):
    model_config = ConfigDict(frozen=True)

    state: str = "error"
    message: str


class IngressResponse(BaseModel):
    """A gateway-style response: status code, headers, rendered JSON body."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    status_code: int = Field(alias="statusCode")
    headers: dict[str, str] = {}
    body: str

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300
