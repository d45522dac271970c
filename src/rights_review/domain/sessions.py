"""Domain models for sessions and effective users."""

from dataclasses import dataclass, field, replace
from datetime import datetime


@dataclass(frozen=True)
class UserAttributes:
    """Role and association memberships resolved from the access sheets."""

    roles: tuple[str, ...] = ()
    country: str | None = None
    customers: tuple[str, ...] = ()
    restricted_brands: tuple[str, ...] = ()

    def to_claims(self) -> dict[str, object]:
        return {
            "roles": list(self.roles),
            "country": self.country,
            "customers": list(self.customers),
            "restrictedBrands": list(self.restricted_brands),
        }

    @classmethod
    def from_claims(cls, claims: dict[str, object] | None) -> "UserAttributes":
        claims = claims or {}
        return cls(
            roles=tuple(claims.get("roles") or ()),
            country=claims.get("country") or None,
            customers=tuple(claims.get("customers") or ()),
            restricted_brands=tuple(claims.get("restrictedBrands") or ()),
        )


@dataclass(frozen=True)
class Session:
    """Signed session payload issued at login."""

    subject_id: str | None
    name: str | None
    email: str
    country: str | None
    employment_type: str | None
    company_name: str | None
    permissions: frozenset[str]
    attributes: UserAttributes = field(default_factory=UserAttributes)
    expires_at: datetime | None = None

    def has_permission(self, permission: str) -> bool:
        return permission in self.permissions


@dataclass(frozen=True)
class SuperUser:
    """Original identity of a user who is impersonating someone else."""

    name: str | None
    email: str
    country: str | None
    employment_type: str | None


@dataclass(frozen=True)
class User:
    """Effective identity for a single request."""

    subject_id: str | None
    name: str | None
    email: str
    country: str | None
    employment_type: str | None
    company_name: str | None
    permissions: frozenset[str]
    attributes: UserAttributes
    expires_at: datetime | None = None
    can_sudo: bool = False
    su: SuperUser | None = None

    @classmethod
    def from_session(cls, session: Session, can_sudo: bool = False) -> "User":
        return cls(
            subject_id=session.subject_id,
            name=session.name,
            email=session.email,
            country=session.country,
            employment_type=session.employment_type,
            company_name=session.company_name,
            permissions=session.permissions,
            attributes=session.attributes,
            expires_at=session.expires_at,
            can_sudo=can_sudo,
        )

    def has_permission(self, permission: str) -> bool:
        return permission in self.permissions

    def impersonate(  # noqa: PLR0913
        self,
        name: str | None,
        email: str,
        country: str | None,
        employment_type: str | None,
        permissions: frozenset[str],
        attributes: UserAttributes,
    ) -> "User":
        """Return a copy acting as another identity, keeping the original as su."""
        return replace(
            self,
            name=name,
            email=email,
            country=country,
            employment_type=employment_type,
            permissions=permissions,
            attributes=attributes,
            su=SuperUser(
                name=self.name,
                email=self.email,
                country=self.country,
                employment_type=self.employment_type,
            ),
        )
