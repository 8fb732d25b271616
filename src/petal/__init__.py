"""Petal: an HTTP request builder with layered defaults."""

from .client import AsyncPetal, Petal
from .config import BASE_CONFIG, DefaultsStore, RequestConfig
from .encoding import compose_url, encode_body, encode_query, flatten_query, normalize_headers
from .exceptions import (
    PetalEncodingError,
    PetalError,
    PetalResponseError,
    PetalTimeoutError,
    PetalTransportError,
    PetalValidationError,
)
from .request_options import RequestOptions
from .responses import Blob, RawResponse
from .transport import (
    AsyncHTTPXTransport,
    AsyncTransport,
    FormData,
    HTTPXTransport,
    PreparedRequest,
    Transport,
)

__version__ = "0.1.0"

__all__ = [
    "AsyncHTTPXTransport",
    "AsyncPetal",
    "AsyncTransport",
    "BASE_CONFIG",
    "Blob",
    "DefaultsStore",
    "FormData",
    "HTTPXTransport",
    "Petal",
    "PetalEncodingError",
    "PetalError",
    "PetalResponseError",
    "PetalTimeoutError",
    "PetalTransportError",
    "PetalValidationError",
    "PreparedRequest",
    "RawResponse",
    "RequestConfig",
    "RequestOptions",
    "Transport",
    "compose_url",
    "encode_body",
    "encode_query",
    "flatten_query",
    "normalize_headers",
]
