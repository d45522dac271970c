"""Tests for container wiring."""

import asyncio

from fastapi.testclient import TestClient

from rights_review.api.app import create_app
from rights_review.containers import build_container


def test_build_container_creates_services(settings) -> None:
    container = build_container(settings)

    assert container.token_codec is not None
    assert container.id_token_validator is not None
    assert container.rights_request_service.notification_emails == (
        "rights-team@example.com",
    )
    assert container.notification_service.default_sender == "system@example.com"
    asyncio.run(container.close_resources())


def test_build_container_without_auth_settings(settings) -> None:
    container = build_container(
        settings.model_copy(update={"cookie_secret": None, "entra_jwks_url": None})
    )

    assert container.token_codec is None
    assert container.id_token_validator is None
    asyncio.run(container.close_resources())


def test_health_and_cors(container) -> None:
    client = TestClient(create_app(container))

    health = client.get("/health")
    preflight = client.options(
        "/api/rightsrequests",
        headers={
            "Origin": "https://app.example.com",
            "Access-Control-Request-Method": "POST",
        },
    )

    assert health.json() == {"status": "ok"}
    assert preflight.status_code == 200
    assert preflight.headers["access-control-allow-origin"] == "https://app.example.com"
    assert preflight.headers["access-control-allow-credentials"] == "true"
