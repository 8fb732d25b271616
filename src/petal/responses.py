"""Response parsing and the success/error reporting channel."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Generic, Mapping, TypeVar, Union

from .exceptions import PetalError, PetalResponseError

if TYPE_CHECKING:
    from .config import RequestConfig

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class RawResponse:
    """What a transport hands back: status, headers and undecoded bytes."""

    status: int
    headers: Mapping[str, str] = field(default_factory=dict)
    content: bytes = b""
    encoding: str | None = None

    @property
    def text(self) -> str:
        try:
            return self.content.decode(self.encoding or "utf-8", errors="replace")
        except LookupError:
            # Unknown charset label from the server.
            return self.content.decode("utf-8", errors="replace")

    @property
    def content_type(self) -> str | None:
        for key, value in self.headers.items():
            if key.lower() == "content-type":
                return value
        return None


@dataclass(frozen=True)
class Blob:
    content: bytes
    content_type: str | None = None

    @property
    def size(self) -> int:
        return len(self.content)


@dataclass(frozen=True)
class Ok(Generic[T]):
    value: T


@dataclass(frozen=True)
class Err:
    error: PetalError


Result = Union[Ok[Any], Err]


def parse_body(raw: RawResponse, response_type: str) -> Any:
    """Decode the response body; never raises."""
    if response_type == "json":
        text = raw.text
        try:
            return json.loads(text)
        except (ValueError, RecursionError):
            return text
    if response_type == "blob":
        return Blob(raw.content, raw.content_type)
    return raw.text


def dispatch_response(config: RequestConfig, raw: RawResponse) -> Result:
    body = parse_body(raw, config.response_type)
    if 200 <= raw.status < 300:
        return Ok(body)
    return Err(PetalResponseError(raw.status, body, method=config.method, url=config.url))


def deliver(config: RequestConfig, outcome: Result) -> Any:
    """Turn an outcome into the public return shape.

    With ``handle_errors`` off the body is returned and errors are raised.
    With it on, every call returns an ``(error, body)`` pair.
    """
    if not config.handle_errors:
        if isinstance(outcome, Err):
            raise outcome.error
        return outcome.value

    if isinstance(outcome, Err):
        if config.log_errors:
            logger.error("%s", outcome.error, exc_info=outcome.error)
        return outcome.error, None
    return None, outcome.value
