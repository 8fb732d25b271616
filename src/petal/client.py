"""Synchronous and asynchronous Petal clients."""

from __future__ import annotations

import asyncio
import logging
import os
from dataclasses import replace
from typing import Any, Mapping, Sequence

import httpx

from .config import DefaultsStore, RequestConfig, finalize_config, resolve_config
from .encoding import append_query, encode_body, encode_query
from .exceptions import PetalError, PetalTimeoutError, PetalTransportError, PetalValidationError
from .request_options import OptionsInput, RequestOptions, coerce_options
from .responses import Err, Ok, RawResponse, Result, deliver, dispatch_response
from .security import sanitize_headers
from .transport import (
    AsyncHTTPXTransport,
    AsyncTransport,
    FormData,
    HTTPXTransport,
    PreparedRequest,
    Transport,
)

logger = logging.getLogger(__name__)


def _prepare_request(config: RequestConfig) -> PreparedRequest:
    query_string = encode_query(config.query, config.query_formatter)
    body, headers = encode_body(config.method, config.body, config.headers, config.query_formatter)
    return PreparedRequest(
        method=config.method,
        url=append_query(config.url, query_string),
        headers=headers,
        body=body,
        timeout=config.timeout or None,
    )


def _transport_failure(exc: Exception, request: PreparedRequest) -> PetalTransportError:
    if isinstance(exc, (TimeoutError, asyncio.TimeoutError)):
        return PetalTimeoutError("Request timed out", method=request.method, url=request.url, cause=exc)
    return PetalTransportError(
        f"Transport failure: {exc!r}",
        method=request.method,
        url=request.url,
        cause=exc,
    )


_CHANNEL_FLAGS = (("handle_errors", "handleErrors"), ("log_errors", "logErrors"))


def _channel_config(defaults: RequestConfig, options: OptionsInput, overrides: Mapping[str, Any]) -> RequestConfig:
    """Read the error-channel flags from options that failed validation."""
    changes: dict[str, bool] = {}
    for name, alias in _CHANNEL_FLAGS:
        for source in (overrides, options):
            if isinstance(source, RequestOptions):
                if source.supplied(name):
                    changes[name] = getattr(source, name)
                    break
            elif isinstance(source, Mapping) and (name in source or alias in source):
                changes[name] = bool(source[name] if name in source else source[alias])
                break
    return replace(defaults, **changes)


def _supplies_method(options: OptionsInput, overrides: Mapping[str, Any]) -> bool:
    if "method" in overrides:
        return True
    if isinstance(options, RequestOptions):
        return options.supplied("method")
    return isinstance(options, Mapping) and "method" in options


class _BasePetal:
    default_baseurl_env_var = "PETAL_BASEURL"
    default_upload_method = "POST"

    def __init__(
        self,
        settings: OptionsInput = None,
        *,
        baseurl_env_var: str | None = default_baseurl_env_var,
        **overrides: Any,
    ) -> None:
        options = coerce_options(settings, overrides)
        env_baseurl = os.getenv(baseurl_env_var) if baseurl_env_var else None
        if env_baseurl and not options.supplied("baseurl"):
            options = coerce_options(options, {"baseurl": env_baseurl})
        self._defaults = DefaultsStore(options)

    @property
    def defaults(self) -> RequestConfig:
        return self._defaults.current

    def set_defaults(self, options: OptionsInput = None, **overrides: Any) -> RequestConfig:
        """Rebuild the defaults from the built-in base; omitted fields are reset."""
        return self._defaults.replace(coerce_options(options, overrides))

    def patch_defaults(self, options: OptionsInput = None, **overrides: Any) -> RequestConfig:
        """Merge options into the current defaults; omitted fields are kept."""
        return self._defaults.merge(coerce_options(options, overrides))

    def _start(
        self,
        options: OptionsInput,
        overrides: Mapping[str, Any],
        fixed: Mapping[str, Any],
    ) -> tuple[RequestConfig, Result]:
        defaults = self._defaults.current
        try:
            request_options = coerce_options(options, {**overrides, **fixed})
        except PetalValidationError as exc:
            return _channel_config(defaults, options, overrides), Err(exc)

        config = resolve_config(defaults, request_options)
        try:
            config = finalize_config(config)
            prepared = _prepare_request(config)
        except PetalError as exc:
            return config, Err(exc)

        logger.debug(
            "Dispatching %s %s headers=%s",
            prepared.method,
            prepared.url,
            sanitize_headers(prepared.headers),
        )
        return config, Ok(prepared)

    def _upload_fixed(
        self,
        url: str,
        files: Sequence[Any],
        options: OptionsInput,
        overrides: Mapping[str, Any],
        name: str | None,
    ) -> dict[str, Any]:
        fixed: dict[str, Any] = {"url": url, "body": FormData.from_files(files, name=name)}
        if not _supplies_method(options, overrides) and not self._defaults.current.method:
            fixed["method"] = self.default_upload_method
        return fixed

    @staticmethod
    def _finish(config: RequestConfig, raw: RawResponse, request: PreparedRequest) -> Result:
        logger.debug("Received %s for %s %s", raw.status, config.method, config.url)
        try:
            return dispatch_response(config, raw)
        except Exception as exc:
            return Err(
                PetalTransportError(
                    f"Could not read response: {exc!r}",
                    status=raw.status,
                    method=request.method,
                    url=request.url,
                    cause=exc,
                )
            )


class Petal(_BasePetal):
    """Synchronous client."""

    def __init__(
        self,
        settings: OptionsInput = None,
        *,
        transport: Transport | None = None,
        httpx_client: httpx.Client | None = None,
        baseurl_env_var: str | None = _BasePetal.default_baseurl_env_var,
        **overrides: Any,
    ) -> None:
        super().__init__(settings, baseurl_env_var=baseurl_env_var, **overrides)
        self._owns_transport = transport is None
        self._transport = transport or HTTPXTransport(httpx_client)

    def __enter__(self) -> "Petal":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def close(self) -> None:
        if self._owns_transport:
            self._transport.close()

    def _execute(self, options: OptionsInput, overrides: Mapping[str, Any], **fixed: Any) -> Any:
        config, outcome = self._start(options, overrides, fixed)
        if isinstance(outcome, Ok):
            outcome = self._send(config, outcome.value)
        return deliver(config, outcome)

    def _send(self, config: RequestConfig, request: PreparedRequest) -> Result:
        try:
            raw = self._transport.send(request)
        except PetalError as exc:
            return Err(exc)
        except Exception as exc:
            return Err(_transport_failure(exc, request))
        else:
            return self._finish(config, raw, request)

    def request(self, options: OptionsInput = None, **overrides: Any) -> Any:
        return self._execute(options, overrides)

    def get(self, url: str, options: OptionsInput = None, **overrides: Any) -> Any:
        return self._execute(options, overrides, method="GET", url=url)

    def post(self, url: str, options: OptionsInput = None, **overrides: Any) -> Any:
        return self._execute(options, overrides, method="POST", url=url)

    def put(self, url: str, options: OptionsInput = None, **overrides: Any) -> Any:
        return self._execute(options, overrides, method="PUT", url=url)

    def patch(self, url: str, options: OptionsInput = None, **overrides: Any) -> Any:
        return self._execute(options, overrides, method="PATCH", url=url)

    def delete(self, url: str, options: OptionsInput = None, **overrides: Any) -> Any:
        return self._execute(options, overrides, method="DELETE", url=url)

    def upload_files(
        self,
        url: str,
        files: Sequence[Any],
        options: OptionsInput = None,
        *,
        name: str | None = None,
        **overrides: Any,
    ) -> Any:
        fixed = self._upload_fixed(url, files, options, overrides, name)
        return self._execute(options, overrides, **fixed)


class AsyncPetal(_BasePetal):
    """Asynchronous client."""

    def __init__(
        self,
        settings: OptionsInput = None,
        *,
        transport: AsyncTransport | None = None,
        httpx_client: httpx.AsyncClient | None = None,
        baseurl_env_var: str | None = _BasePetal.default_baseurl_env_var,
        **overrides: Any,
    ) -> None:
        super().__init__(settings, baseurl_env_var=baseurl_env_var, **overrides)
        self._owns_transport = transport is None
        self._transport = transport or AsyncHTTPXTransport(httpx_client)

    async def __aenter__(self) -> "AsyncPetal":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_transport:
            await self._transport.aclose()

    async def _execute(self, options: OptionsInput, overrides: Mapping[str, Any], **fixed: Any) -> Any:
        config, outcome = self._start(options, overrides, fixed)
        if isinstance(outcome, Ok):
            outcome = await self._send(config, outcome.value)
        return deliver(config, outcome)

    async def _send(self, config: RequestConfig, request: PreparedRequest) -> Result:
        try:
            if request.timeout_seconds is None:
                raw = await self._transport.send(request)
            else:
                raw = await asyncio.wait_for(self._transport.send(request), timeout=request.timeout_seconds)
        except PetalError as exc:
            return Err(exc)
        except Exception as exc:
            return Err(_transport_failure(exc, request))
        else:
            return self._finish(config, raw, request)

    async def request(self, options: OptionsInput = None, **overrides: Any) -> Any:
        return await self._execute(options, overrides)

    async def get(self, url: str, options: OptionsInput = None, **overrides: Any) -> Any:
        return await self._execute(options, overrides, method="GET", url=url)

    async def post(self, url: str, options: OptionsInput = None, **overrides: Any) -> Any:
        return await self._execute(options, overrides, method="POST", url=url)

    async def put(self, url: str, options: OptionsInput = None, **overrides: Any) -> Any:
        return await self._execute(options, overrides, method="PUT", url=url)

    async def patch(self, url: str, options: OptionsInput = None, **overrides: Any) -> Any:
        return await self._execute(options, overrides, method="PATCH", url=url)

    async def delete(self, url: str, options: OptionsInput = None, **overrides: Any) -> Any:
        return await self._execute(options, overrides, method="DELETE", url=url)

    async def upload_files(
        self,
        url: str,
        files: Sequence[Any],
        options: OptionsInput = None,
        *,
        name: str | None = None,
        **overrides: Any,
    ) -> Any:
        fixed = self._upload_fixed(url, files, options, overrides, name)
        return await self._execute(options, overrides, **fixed)
