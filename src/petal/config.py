"""Request configuration: built-in base, defaults store and per-call resolution."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from types import MappingProxyType
from typing import Any, Mapping

from .encoding import (
    CONTENT_TYPE_JSON,
    DEFAULT_QUERY_FORMATTER,
    compose_url,
    merge_headers,
)
from .exceptions import PetalValidationError
from .request_options import RequestOptions

SCALAR_FIELDS = (
    "url",
    "baseurl",
    "method",
    "timeout",
    "response_type",
    "query_formatter",
    "handle_errors",
    "log_errors",
)

BASE_HEADERS = MappingProxyType({"content-type": CONTENT_TYPE_JSON})


@dataclass(frozen=True)
class RequestConfig:
    """A fully merged request description; also used for the defaults snapshot."""

    url: str | None = None
    baseurl: str | None = None
    method: str | None = None
    headers: Mapping[str, str] = field(default_factory=lambda: dict(BASE_HEADERS))
    query: Mapping[str, Any] = field(default_factory=dict)
    body: Any = field(default_factory=dict)
    timeout: float | None = None
    response_type: str = "json"
    query_formatter: Any = DEFAULT_QUERY_FORMATTER
    handle_errors: bool = False
    log_errors: bool = False


BASE_CONFIG = RequestConfig()


def _is_opaque(body: Any) -> bool:
    return body is not None and not isinstance(body, Mapping)


def _scalars(options: RequestOptions) -> dict[str, Any]:
    return {name: getattr(options, name) for name in SCALAR_FIELDS if options.supplied(name)}


class DefaultsStore:
    """Client-wide defaults, changed only through ``replace`` and ``merge``.

    Each mutation swaps in a new frozen snapshot without locking. A call that
    has already read ``current`` keeps its snapshot; a call racing a mutation
    may see either one.
    """

    def __init__(self, options: RequestOptions | None = None) -> None:
        self._current = BASE_CONFIG
        if options is not None:
            self.replace(options)

    @property
    def current(self) -> RequestConfig:
        return self._current

    def replace(self, options: RequestOptions) -> RequestConfig:
        body = options.body if options.supplied("body") and options.body is not None else {}
        self._current = replace(
            BASE_CONFIG,
            headers=merge_headers(BASE_HEADERS, options.headers),
            query=dict(options.query),
            body=dict(body) if isinstance(body, Mapping) else body,
            **_scalars(options),
        )
        return self._current

    def merge(self, options: RequestOptions) -> RequestConfig:
        current = self._current
        changes = _scalars(options)

        if options.supplied("headers"):
            if options.headers:
                changes["headers"] = merge_headers(current.headers, options.headers)
            else:
                changes["headers"] = dict(BASE_HEADERS)

        if options.supplied("query"):
            changes["query"] = {**current.query, **options.query} if options.query else {}

        if options.supplied("body"):
            body = options.body
            if body is None:
                changes["body"] = {}
            elif _is_opaque(body) or _is_opaque(current.body):
                changes["body"] = body
            elif body:
                changes["body"] = {**(current.body or {}), **body}
            else:
                changes["body"] = {}

        self._current = replace(current, **changes)
        return self._current


def resolve_config(defaults: RequestConfig, options: RequestOptions) -> RequestConfig:
    """Merge per-call options over a defaults snapshot."""
    changes = _scalars(options)
    # Snapshots always carry the base content-type unless a caller removed it.
    changes["headers"] = merge_headers(defaults.headers, options.headers)
    changes["query"] = {**defaults.query, **options.query}

    if not options.supplied("body"):
        changes["body"] = defaults.body
    elif _is_opaque(options.body) or options.body is None:
        changes["body"] = options.body
    else:
        base_body = defaults.body if isinstance(defaults.body, Mapping) else {}
        changes["body"] = {**base_body, **options.body}

    method = changes.get("method", defaults.method)
    if isinstance(method, str):
        changes["method"] = method.upper()

    return replace(defaults, **changes)


def finalize_config(config: RequestConfig) -> RequestConfig:
    """Compose the final URL and check the request can be sent."""
    config = replace(config, url=compose_url(config.baseurl, config.url))
    if not config.url:
        raise PetalValidationError("Missing 'url'", method=config.method)
    if not config.method:
        raise PetalValidationError("Missing 'method'", url=config.url)
    if config.timeout is not None and config.timeout < 0:
        raise PetalValidationError("timeout must not be negative", method=config.method, url=config.url)
    return config
