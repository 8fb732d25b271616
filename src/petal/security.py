"""Helpers for keeping credentials out of debug logs."""

from __future__ import annotations

from typing import Mapping

REDACTED = "[REDACTED]"

SENSITIVE_HEADERS = frozenset(
    {
        "authorization",
        "cookie",
        "proxy-authorization",
        "set-cookie",
        "x-api-key",
        "x-auth-token",
    }
)


def sanitize_headers(headers: Mapping[str, str]) -> dict[str, str]:
    """Copy ``headers`` for logging, masking credential-bearing values.

    Names are matched case-insensitively; the original casing is kept.
    """
    return {key: REDACTED if key.lower() in SENSITIVE_HEADERS else value for key, value in headers.items()}
