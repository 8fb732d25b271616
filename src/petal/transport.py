"""Transport capability and the httpx-backed implementations."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping, Protocol, Sequence, runtime_checkable

import httpx

from .exceptions import PetalTimeoutError, PetalTransportError
from .responses import RawResponse


@dataclass
class FormData:
    """Opaque multipart payload. Never merged or encoded, only substituted.

    ``files`` uses the httpx ``files=`` shapes: ``(field, content)`` where
    content is bytes, a file object or a ``(filename, content[, content_type])``
    tuple.
    """

    fields: dict[str, Any] = field(default_factory=dict)
    files: list[tuple[str, Any]] = field(default_factory=list)

    def append(self, name: str, value: Any) -> None:
        if isinstance(value, (str, int, float)):
            self.fields[name] = str(value)
        else:
            self.files.append((name, value))

    @classmethod
    def from_files(cls, files: Sequence[Any], *, name: str | None = None) -> "FormData":
        form = cls()
        prefix = name or "file"
        for index, item in enumerate(files):
            form.files.append((f"{prefix}{index + 1}", item))
        return form


@dataclass(frozen=True)
class PreparedRequest:
    method: str
    url: str
    headers: Mapping[str, str]
    body: Any = None
    timeout: float | None = None

    @property
    def timeout_seconds(self) -> float | None:
        if not self.timeout:
            return None
        return self.timeout / 1000.0


@runtime_checkable
class Transport(Protocol):
    def send(self, request: PreparedRequest) -> RawResponse: ...


@runtime_checkable
class AsyncTransport(Protocol):
    async def send(self, request: PreparedRequest) -> RawResponse: ...


def _httpx_kwargs(request: PreparedRequest) -> dict[str, Any]:
    kwargs: dict[str, Any] = {
        "method": request.method,
        "url": request.url,
        "headers": dict(request.headers),
        "timeout": request.timeout_seconds,
    }
    body = request.body
    if body is None:
        return kwargs
    if isinstance(body, FormData):
        kwargs["data"] = body.fields or None
        kwargs["files"] = body.files or None
    elif isinstance(body, (str, bytes)):
        kwargs["content"] = body
    elif isinstance(body, bytearray):
        kwargs["content"] = bytes(body)
    elif isinstance(body, Mapping):
        kwargs["data"] = dict(body)
    else:
        kwargs["content"] = body
    return kwargs


def _to_raw_response(response: httpx.Response) -> RawResponse:
    return RawResponse(
        status=response.status_code,
        headers=dict(response.headers),
        content=response.content,
        encoding=response.encoding,
    )


def _wrap_httpx_error(exc: httpx.HTTPError, request: PreparedRequest) -> PetalTransportError:
    if isinstance(exc, httpx.TimeoutException):
        return PetalTimeoutError("Request timed out", method=request.method, url=request.url, cause=exc)
    return PetalTransportError(
        f"Network error: {exc}",
        method=request.method,
        url=request.url,
        cause=exc,
    )


class HTTPXTransport:
    """Synchronous transport backed by ``httpx.Client``."""

    def __init__(self, client: httpx.Client | None = None, *, follow_redirects: bool = True) -> None:
        self._owns_client = client is None
        self._client = client or httpx.Client(follow_redirects=follow_redirects, trust_env=False)

    def send(self, request: PreparedRequest) -> RawResponse:
        try:
            response = self._client.request(**_httpx_kwargs(request))
        except httpx.HTTPError as exc:
            raise _wrap_httpx_error(exc, request) from exc
        return _to_raw_response(response)

    def close(self) -> None:
        if self._owns_client:
            self._client.close()


class AsyncHTTPXTransport:
    """Asynchronous transport backed by ``httpx.AsyncClient``."""

    def __init__(self, client: httpx.AsyncClient | None = None, *, follow_redirects: bool = True) -> None:
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(follow_redirects=follow_redirects, trust_env=False)

    async def send(self, request: PreparedRequest) -> RawResponse:
        try:
            response = await self._client.request(**_httpx_kwargs(request))
        except httpx.HTTPError as exc:
            raise _wrap_httpx_error(exc, request) from exc
        return _to_raw_response(response)

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()
