from __future__ import annotations

import logging

import httpx

from petal import Petal
from petal.security import REDACTED, sanitize_headers


def test_sanitize_headers_masks_credentials_case_insensitively() -> None:
    headers = {
        "Authorization": "Bearer secret",
        "X-Auth-Token": "t0k3n",
        "set-cookie": "session=1",
        "accept": "application/json",
    }

    assert sanitize_headers(headers) == {
        "Authorization": REDACTED,
        "X-Auth-Token": REDACTED,
        "set-cookie": REDACTED,
        "accept": "application/json",
    }
    assert headers["Authorization"] == "Bearer secret"


def test_debug_log_does_not_leak_authorization(caplog) -> None:
    client = httpx.Client(transport=httpx.MockTransport(lambda request: httpx.Response(200, json={})))
    with Petal({"headers": {"Authorization": "Bearer secret"}}, httpx_client=client, baseurl_env_var=None) as petal:
        with caplog.at_level(logging.DEBUG, logger="petal.client"):
            petal.get("https://api.example.com/me")

    messages = [record.getMessage() for record in caplog.records if record.name == "petal.client"]
    assert any(REDACTED in message for message in messages)
    assert not any("Bearer secret" in message for message in messages)
