"""Login flow endpoints and the authentication dependency."""

from __future__ import annotations

import logging
import uuid
from datetime import UTC, datetime
from typing import TYPE_CHECKING
from urllib.parse import urlencode, urlsplit

from fastapi import APIRouter, Depends, Request
from fastapi.responses import RedirectResponse, Response

from rights_review.domain.errors import (
    ForbiddenError,
    LoginRequiredError,
    ServiceUnavailableError,
    UnauthenticatedError,
)
from rights_review.domain.sessions import Session, User  # noqa: TC001

if TYPE_CHECKING:
    from rights_review.containers import AppContainer

logger = logging.getLogger(__name__)

COOKIE_SESSION = "Session"
COOKIE_STATE = "State"
COOKIE_ORIGINAL_URL = "OriginalURL"
STATE_COOKIE_MAX_AGE = 10 * 60

_ENTRA_BASE_URL = "https://login.microsoftonline.com"


def _container(request: Request) -> AppContainer:
    return request.app.state.container


def request_origin(request: Request) -> str:
    return f"{request.url.scheme}://{request.url.netloc}"


def _is_localhost(request: Request) -> bool:
    return request.url.hostname == "localhost"


def _cross_site_secure(request: Request) -> bool:
    # Chrome requires Secure with SameSite=None even on localhost; Safari rejects it.
    return "Chrome" in request.headers.get("user-agent", "") or not _is_localhost(
        request
    )


def _redirect(url: str) -> RedirectResponse:
    return RedirectResponse(url, status_code=302)


def login_redirect(request: Request, original_url: str) -> Response:
    """Send a browser to the login page, remembering where it wanted to go."""
    container = _container(request)
    response = _redirect(f"{request_origin(request)}{container.settings.login_page}")
    response.set_cookie(
        COOKIE_ORIGINAL_URL,
        original_url,
        httponly=True,
        samesite="none",
        secure=_cross_site_secure(request),
    )
    return response


async def with_session(request: Request) -> Session:
    """Validate the session cookie and return the signed session."""
    container = _container(request)
    if container.token_codec is None:
        raise ServiceUnavailableError("Service Unavailable")
    token = request.cookies.get(COOKIE_SESSION)
    if not token:
        logger.info("No session cookie found")
        if request.url.path.startswith("/api/"):
            raise UnauthenticatedError("User not authenticated")
        raise LoginRequiredError(str(request.url))
    session = container.token_codec.decode_session(token, issuer=request_origin(request))
    if session is None:
        raise UnauthenticatedError("Unauthorized", "Invalid or expired session")
    return session


async def with_authentication(
    request: Request, session: Session = Depends(with_session)
) -> User:
    """Resolve the effective user for the request."""
    container = _container(request)
    user = await container.session_resolver.get_user(session, dict(request.cookies))
    if user is None:
        raise ForbiddenError("Access denied")
    request.state.user = user
    return user


async def require_auth_settings(request: Request) -> None:
    """Answer 503 for the login flow while its settings are incomplete."""
    missing = _container(request).settings.missing_auth_settings()
    if missing:
        logger.error("Missing required environment variables: %s", ", ".join(missing))
        raise ServiceUnavailableError("Service Unavailable")


router = APIRouter(
    prefix="/auth", tags=["auth"], dependencies=[Depends(require_auth_settings)]
)
user_router = APIRouter(prefix="/api", tags=["user"])


@router.get("/login")
async def login(request: Request) -> Response:
    """Redirect to the identity provider with a signed state/nonce pair."""
    container = _container(request)
    settings = container.settings
    state = str(uuid.uuid4())
    nonce = str(uuid.uuid4())
    query = urlencode(
        {
            "client_id": settings.entra_client_id,
            "response_type": "id_token",
            "redirect_uri": f"{request_origin(request)}/auth/callback",
            "response_mode": "form_post",
            "scope": "openid profile",
            "state": state,
            "nonce": nonce,
        }
    )
    response = _redirect(
        f"{_ENTRA_BASE_URL}/{settings.entra_tenant_id}/oauth2/v2.0/authorize?{query}"
    )
    response.set_cookie(
        COOKIE_STATE,
        container.token_codec.encode_state(state, nonce),
        max_age=STATE_COOKIE_MAX_AGE,
        httponly=True,
        samesite="none",
        secure=_cross_site_secure(request),
    )
    return response


@router.post("/callback")
async def callback(request: Request) -> Response:
    """Validate the identity provider's form post and issue the session cookie."""
    container = _container(request)
    state_cookie = request.cookies.get(COOKIE_STATE)
    state = container.token_codec.decode_state(state_cookie) if state_cookie else None
    if state is None:
        raise UnauthenticatedError("Unauthorized", "Missing or invalid state cookie")

    form = await request.form()
    if "error" in form:
        logger.error("Identity provider login error: %s", form.get("error"))
        raise UnauthenticatedError("Unauthorized", "Error from identity provider")
    id_token = form.get("id_token")
    if not isinstance(id_token, str) or not id_token:
        raise UnauthenticatedError("Unauthorized", "No id_token in form data")
    if form.get("state") != state["state"]:
        raise UnauthenticatedError("Unauthorized", "Invalid state parameter")

    claims = await container.id_token_validator.validate(id_token, state["nonce"])
    if claims is None:
        raise UnauthenticatedError("Unauthorized", "Invalid id_token")

    session = await container.session_resolver.create_session(
        claims, request.url.hostname or ""
    )
    if session is None:
        raise ForbiddenError("Access denied")

    origin = request_origin(request)
    redirect_url = f"{origin}/"
    original_url = request.cookies.get(COOKIE_ORIGINAL_URL)
    if original_url and _same_origin(original_url, origin):
        redirect_url = original_url

    response = _redirect(redirect_url)
    response.set_cookie(
        COOKIE_SESSION,
        container.token_codec.encode_session(session, issuer=origin),
        max_age=container.token_codec.lifetime_seconds,
        httponly=True,
        samesite="lax",
        secure=not _is_localhost(request),
    )
    response.delete_cookie(COOKIE_STATE)
    response.delete_cookie(COOKIE_ORIGINAL_URL)
    return response


@router.get("/user")
async def session_user(session: Session = Depends(with_session)) -> dict[str, object]:
    """Return the decoded session fields."""
    return {
        "name": session.name,
        "email": session.email,
        "country": session.country,
        "usertype": session.employment_type,
        "company": session.company_name,
        "permissions": sorted(session.permissions),
    }


@router.get("/logout")
async def logout(request: Request) -> Response:
    """Clear the session cookie and sign out at the identity provider."""
    settings = _container(request).settings
    query = urlencode({"post_logout_redirect_uri": f"{request_origin(request)}/"})
    response = _redirect(
        f"{_ENTRA_BASE_URL}/{settings.entra_tenant_id}/oauth2/logout?{query}"
    )
    response.delete_cookie(COOKIE_SESSION)
    return response


@user_router.get("/user")
async def current_user(user: User = Depends(with_authentication)) -> dict[str, object]:
    """Return the effective user, including any sudo identity."""
    expires_in = None
    if user.expires_at is not None:
        expires_in = int((user.expires_at - datetime.now(tz=UTC)).total_seconds())
    return {
        "name": user.name,
        "email": user.email,
        "country": user.country,
        "usertype": user.employment_type,
        "company": user.company_name,
        "permissions": sorted(user.permissions),
        "attributes": user.attributes.to_claims(),
        "canSudo": user.can_sudo,
        "su": (
            {
                "name": user.su.name,
                "email": user.su.email,
                "country": user.su.country,
                "usertype": user.su.employment_type,
            }
            if user.su
            else None
        ),
        "sessionExpiresInSec": expires_in,
    }


def _same_origin(url: str, origin: str) -> bool:
    parts = urlsplit(url)
    return bool(parts.scheme and parts.netloc) and (
        f"{parts.scheme}://{parts.netloc}" == origin
    )
