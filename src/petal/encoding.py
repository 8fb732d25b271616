"""Header normalisation, query/body encoding and URL composition."""

from __future__ import annotations

import json
import re
from typing import Any, Iterator, Mapping

import httpx

from .exceptions import PetalEncodingError
from .transport import FormData

CONTENT_TYPE_JSON = "application/json"
CONTENT_TYPE_URL_ENCODED = "application/x-www-form-urlencoded"
DEFAULT_QUERY_FORMATTER = "default"

BODYLESS_METHODS = frozenset({"GET", "DELETE"})

_REPEATED_SLASHES = re.compile(r"([^:]/)/+")


def normalize_headers(headers: Mapping[str, Any] | None) -> dict[str, str | None]:
    if not headers:
        return {}
    clean: dict[str, str | None] = {}
    for key, value in headers.items():
        clean[str(key).lower()] = None if value is None else str(value)
    return clean


def merge_headers(*layers: Mapping[str, Any] | None) -> dict[str, str]:
    """Merge header layers left to right; ``None`` values remove the key."""
    merged: dict[str, str | None] = {}
    for layer in layers:
        merged.update(normalize_headers(layer))
    return {key: value for key, value in merged.items() if value is not None}


def _is_sequence(value: Any) -> bool:
    return isinstance(value, (list, tuple))


def flatten_query(query: Mapping[str, Any]) -> Iterator[tuple[str, Any]]:
    """Yield ``(key, scalar)`` pairs with nested values in bracket notation."""

    def visit(key: str, value: Any) -> Iterator[tuple[str, Any]]:
        if _is_sequence(value):
            for index, item in enumerate(value):
                yield from visit(f"{key}[{index}]", item)
        elif isinstance(value, Mapping):
            for sub_key, item in value.items():
                yield from visit(f"{key}[{sub_key}]", item)
        else:
            yield key, value

    for key, value in query.items():
        yield from visit(str(key), value)


def encode_query(query: Mapping[str, Any] | None, formatter: Any = DEFAULT_QUERY_FORMATTER) -> str:
    if formatter == DEFAULT_QUERY_FORMATTER:
        if not query:
            return ""
        return str(httpx.QueryParams(list(flatten_query(query))))
    if callable(formatter):
        try:
            return formatter(dict(query or {}))
        except Exception as exc:
            raise PetalEncodingError(f"Query formatter failed: {exc}", cause=exc) from exc
    raise PetalEncodingError(f"Unsupported query parameter format: {formatter!r}")


def append_query(url: str, query_string: str) -> str:
    if not query_string:
        return url
    separator = "&" if "?" in url else "?"
    return f"{url}{separator}{query_string}"


def compose_url(baseurl: str | None, url: str | None) -> str | None:
    if baseurl and url:
        return _REPEATED_SLASHES.sub(r"\1", f"{baseurl}/{url}")
    return url


def _media_type(headers: Mapping[str, str]) -> str:
    return headers.get("content-type", "").split(";", 1)[0].strip().lower()


def _dump_json(body: Any) -> str:
    try:
        return json.dumps(body)
    except (TypeError, ValueError) as exc:
        raise PetalEncodingError(f"Body is not JSON serialisable: {exc}", cause=exc) from exc


def encode_body(
    method: str,
    body: Any,
    headers: Mapping[str, str],
    formatter: Any = DEFAULT_QUERY_FORMATTER,
) -> tuple[Any, dict[str, str]]:
    """Return the outgoing body (``None`` when omitted) and the headers to send with it."""
    out_headers = dict(headers)
    if method.upper() in BODYLESS_METHODS:
        return None, out_headers

    if isinstance(body, FormData):
        out_headers.pop("content-type", None)
        return body, out_headers

    if isinstance(body, (str, bytes, bytearray)):
        return (body or None), out_headers

    if body is None or (isinstance(body, (Mapping, list, tuple)) and not body):
        return None, out_headers

    media_type = _media_type(out_headers)
    if media_type == CONTENT_TYPE_JSON:
        return _dump_json(body), out_headers
    if isinstance(body, Mapping):
        if media_type == CONTENT_TYPE_URL_ENCODED:
            return encode_query(body, formatter), out_headers
        return body, out_headers
    raise PetalEncodingError(
        f"Cannot encode {type(body).__name__} body as {media_type or 'an unspecified content-type'}"
    )
