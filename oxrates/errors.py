from __future__ import annotations

from enum import Enum

from pydantic import BaseModel


class ApiErrorBody(BaseModel):
    """Error envelope returned by the provider on a non-200 response."""

    error: bool = True
    status: int | None = None
    message: str = ""
    description: str = ""


class ErrorKind(str, Enum):
    REQUEST = "request"
    TRANSPORT = "transport"
    PROVIDER = "provider"
    DECODE = "decode"
    RATE_NOT_FOUND = "rate_not_found"


class ApiError(Exception):
    """Structured failure of a rates call.

    Raised for errors reported by the provider as well as for ones synthesized
    locally (transport, decoding). Callers can match on the subclass or on
    ``kind``.
    """

    kind: ErrorKind = ErrorKind.PROVIDER

    def __init__(
        self,
        message: str,
        description: str = "",
        *,
        status: int = 0,
        error: bool = True,
    ) -> None:
        super().__init__(message)
        self.error = error
        self.status = status
        self.message = message
        self.description = description

    def __str__(self) -> str:
        return f"oxrates: {self.message}: {self.description}"


class MalformedRequestError(ApiError):
    kind = ErrorKind.REQUEST


class TransportError(ApiError):
    kind = ErrorKind.TRANSPORT


class ProviderError(ApiError):
    kind = ErrorKind.PROVIDER

    @classmethod
    def from_body(cls, body: ApiErrorBody, http_status: int) -> ProviderError:
        return cls(
            body.message,
            body.description,
            status=body.status if body.status is not None else http_status,
            error=body.error,
        )


class DecodeError(ApiError):
    kind = ErrorKind.DECODE


class RateNotFoundError(ApiError):
    kind = ErrorKind.RATE_NOT_FOUND
