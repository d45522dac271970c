"""Session creation at login and per-request user resolution."""

import logging
from dataclasses import dataclass

from rights_review.domain.sessions import Session, User
from rights_review.services.access import (
    PREVIEW,
    SUDO,
    AccessConfigClient,
    email_domain,
    resolve_attributes,
    resolve_permissions,
)

logger = logging.getLogger(__name__)

SUDO_COOKIES = ("SUDO_NAME", "SUDO_EMAIL", "SUDO_COUNTRY", "SUDO_USERTYPE")


@dataclass
class SessionResolver:
    """Derives sessions from id-token claims and effective users from sessions."""

    access_client: AccessConfigClient
    allowed_email_domains: tuple[str, ...]
    production_hosts: tuple[str, ...] = ()

    def is_email_allowed(self, email: str | None) -> bool:
        if not email:
            return False
        if email_domain(email) not in self.allowed_email_domains:
            logger.warning("User denied access because email domain is not allowed: %s", email)
            return False
        return True

    def is_restricted_host(self, host: str) -> bool:
        if not self.production_hosts:
            return False
        return host.lower() not in self.production_hosts

    async def create_session(
        self, claims: dict[str, object], host: str
    ) -> Session | None:
        """Build a session from verified id-token claims, or None to deny login."""
        raw_email = claims.get("email")
        email = str(raw_email).strip().lower() if raw_email else ""
        if not self.is_email_allowed(email):
            return None

        config = await self.access_client.load()
        permissions = resolve_permissions(config, email)
        if not permissions:
            logger.warning("User denied access because no permissions are granted: %s", email)
            return None
        if self.is_restricted_host(host) and PREVIEW not in permissions:
            logger.warning("User denied preview access on %s: %s", host, email)
            return None

        country = _optional_str(claims.get("ctry"))
        employment_type = _optional_str(claims.get("EmployeeType"))
        return Session(
            subject_id=_optional_str(claims.get("oid")),
            name=_optional_str(claims.get("name")),
            email=email,
            country=country,
            employment_type=employment_type,
            company_name=_optional_str(claims.get("Company")),
            permissions=permissions,
            attributes=resolve_attributes(config, email, employment_type, country),
        )

    async def get_user(
        self, session: Session, cookies: dict[str, str]
    ) -> User | None:
        """Resolve the effective user for a request, applying sudo when allowed."""
        if not self.is_email_allowed(session.email):
            return None

        can_sudo = session.has_permission(SUDO)
        user = User.from_session(session, can_sudo=can_sudo)
        overrides = {name: cookies.get(name, "").strip() for name in SUDO_COOKIES}
        if not any(overrides.values()):
            return user
        if not can_sudo:
            logger.warning("Sudo denied for user: %s", session.email)
            return user

        email = (overrides["SUDO_EMAIL"] or user.email).lower()
        country = overrides["SUDO_COUNTRY"] or user.country
        employment_type = overrides["SUDO_USERTYPE"] or user.employment_type
        config = await self.access_client.load()
        logger.info("Sudo: %s acting as %s", session.email, email)
        return user.impersonate(
            name=overrides["SUDO_NAME"] or user.name,
            email=email,
            country=country,
            employment_type=employment_type,
            permissions=resolve_permissions(config, email),
            attributes=resolve_attributes(config, email, employment_type, country),
        )


def _optional_str(value: object) -> str | None:
    return str(value) if value else None
