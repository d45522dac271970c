"""Tests for HTTP-based adapters."""

import asyncio

import httpx
import pytest

from rights_review.adapters.access_sheet_client import HttpxAccessSheetClient
from rights_review.adapters.jwks_client import HttpxJwksClient

SHEETS = {
    ":names": ["permissions", "roles"],
    "permissions": {"data": [{"email": "example.com", "permissions": "preview"}]},
    "roles": {"data": [{"key": "example.com", "roles": "employee", "country": "US"}]},
}


def test_access_sheet_client_fetches_and_parses() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json=SHEETS)

    client = HttpxAccessSheetClient(
        origin="https://content.example.com",
        path="/config/access",
        http_client=httpx.AsyncClient(transport=httpx.MockTransport(handler)),
        token="secret",
    )

    config = asyncio.run(client.load())

    assert str(seen[0].url) == "https://content.example.com/config/access.json"
    assert seen[0].headers["Authorization"] == "token secret"
    assert config.permissions == {"example.com": ("preview",)}
    assert config.roles["example.com"].country == "US"


def test_access_sheet_client_raises_on_error_status() -> None:
    def handler(_request: httpx.Request) -> httpx.Response:
        return httpx.Response(404, json={})

    client = HttpxAccessSheetClient(
        origin="https://content.example.com",
        path="/config/access",
        http_client=httpx.AsyncClient(transport=httpx.MockTransport(handler)),
    )

    with pytest.raises(httpx.HTTPStatusError):
        asyncio.run(client.load())


def test_access_sheet_client_create_strips_trailing_slash() -> None:
    client = HttpxAccessSheetClient.create("https://content.example.com/", "/config/access")

    assert client.origin == "https://content.example.com"
    asyncio.run(client.close())


def test_jwks_client_fetches_key_set() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == "/discovery/v2.0/keys"
        return httpx.Response(200, json={"keys": [{"kid": "key-1"}]})

    client = HttpxJwksClient(
        jwks_url="https://login.example.com/discovery/v2.0/keys",
        http_client=httpx.AsyncClient(transport=httpx.MockTransport(handler)),
    )

    assert asyncio.run(client.fetch_jwks()) == {"keys": [{"kid": "key-1"}]}
