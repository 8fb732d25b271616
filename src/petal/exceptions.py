"""Petal exceptions."""

from __future__ import annotations

import json


class PetalError(Exception):
    """Base exception for every failure routed through the error channel."""

    def __init__(
        self,
        message: str,
        *,
        status: int | None = None,
        body: object = None,
        method: str | None = None,
        url: str | None = None,
        cause: BaseException | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.status = status
        self.body = body
        self.method = method
        self.url = url
        self.cause = cause
        if cause is not None:
            self.__cause__ = cause


class PetalValidationError(PetalError):
    """Raised when a request is missing its url or method, or options are invalid."""


class PetalEncodingError(PetalError):
    """Raised when query parameters or a body cannot be encoded."""


class PetalTransportError(PetalError):
    """Raised for transport-level failures like DNS and TCP errors."""


class PetalTimeoutError(PetalTransportError):
    """Raised when a request exceeds its configured timeout."""


class PetalResponseError(PetalError):
    """Raised for HTTP non-success responses."""

    def __init__(self, status: int, body: object, *, method: str | None, url: str | None) -> None:
        dumped = json.dumps(body, indent=2, default=str)
        super().__init__(
            f"{method}: {url}\nStatus Code: {status}\n{dumped}",
            status=status,
            body=body,
            method=method,
            url=url,
        )
