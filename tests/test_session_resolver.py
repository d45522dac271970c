"""Tests for session creation and effective user resolution."""

import asyncio

from rights_review.services.access import AccessConfig
from rights_review.services.sessions import SessionResolver
from tests.conftest import (
    REVIEWER,
    SUBMITTER,
    SUPERUSER,
    StaticAccessConfigClient,
    make_access_config,
    make_session,
)


def _resolver(production_hosts: tuple[str, ...] = ()) -> SessionResolver:
    return SessionResolver(
        access_client=StaticAccessConfigClient(make_access_config()),
        allowed_email_domains=("example.com",),
        production_hosts=production_hosts,
    )


def _claims(email: str | None) -> dict[str, object]:
    return {
        "email": email,
        "name": "Reviewer",
        "oid": "oid-42",
        "ctry": "US",
        "EmployeeType": "Employee",
        "Company": "Example",
    }


def test_create_session_resolves_permissions_and_attributes() -> None:
    resolver = _resolver()

    session = asyncio.run(resolver.create_session(_claims("Reviewer@Example.com"), "app"))

    assert session is not None
    assert session.email == REVIEWER
    assert session.subject_id == "oid-42"
    assert session.permissions == frozenset({"preview", "rights-reviewer"})
    assert session.attributes.roles == ("employee",)
    assert session.attributes.customers == ("Customer A",)


def test_create_session_denies_missing_email() -> None:
    resolver = _resolver()

    assert asyncio.run(resolver.create_session(_claims(None), "app")) is None


def test_create_session_denies_disallowed_domain() -> None:
    resolver = _resolver()

    assert asyncio.run(resolver.create_session(_claims("x@other.com"), "app")) is None


def test_create_session_denies_without_permissions() -> None:
    resolver = SessionResolver(
        access_client=StaticAccessConfigClient(AccessConfig()),
        allowed_email_domains=("example.com",),
    )

    assert asyncio.run(resolver.create_session(_claims(SUBMITTER), "app")) is None


def test_create_session_requires_preview_on_non_production_host() -> None:
    config = AccessConfig(permissions={"nopreview@example.com": ("rr",)})
    resolver = SessionResolver(
        access_client=StaticAccessConfigClient(config),
        allowed_email_domains=("example.com",),
        production_hosts=("rights.example.com",),
    )

    denied = asyncio.run(
        resolver.create_session(_claims("nopreview@example.com"), "preview.example.net")
    )
    allowed = asyncio.run(
        resolver.create_session(_claims("nopreview@example.com"), "rights.example.com")
    )

    assert denied is None
    assert allowed is not None


def test_get_user_without_overrides_returns_session_identity() -> None:
    resolver = _resolver()
    session = make_session(REVIEWER, {"rights-reviewer"})

    user = asyncio.run(resolver.get_user(session, {}))

    assert user is not None
    assert user.email == REVIEWER
    assert user.can_sudo is False
    assert user.su is None


def test_get_user_applies_sudo_for_permitted_user() -> None:
    resolver = _resolver()
    session = make_session(SUPERUSER, {"sudo", "rights-reviewer"}, name="Root")

    user = asyncio.run(
        resolver.get_user(
            session,
            {"SUDO_EMAIL": "Reviewer@Example.com", "SUDO_COUNTRY": "DE"},
        )
    )

    assert user is not None
    assert user.email == REVIEWER
    assert user.country == "DE"
    assert user.permissions == frozenset({"preview", "rights-reviewer"})
    assert user.su is not None
    assert user.su.email == SUPERUSER
    assert user.can_sudo is True


def test_get_user_ignores_sudo_cookies_without_permission() -> None:
    resolver = _resolver()
    session = make_session(SUBMITTER, {"preview"})

    user = asyncio.run(resolver.get_user(session, {"SUDO_EMAIL": REVIEWER}))

    assert user is not None
    assert user.email == SUBMITTER
    assert user.su is None


def test_get_user_denies_disallowed_domain() -> None:
    resolver = _resolver()

    assert asyncio.run(resolver.get_user(make_session("x@other.com"), {})) is None
