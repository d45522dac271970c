"""Permission and attribute resolution from the access-control sheets."""

from dataclasses import dataclass, field
from typing import Protocol

from rights_review.domain.sessions import UserAttributes

WILDCARD = "*"

PERMISSION_ALIASES: dict[str, str] = {
    "rr": "rights-reviewer",
    "rm": "rights-manager",
    "ra": "reports-admin",
}

RIGHTS_REVIEWER = "rights-reviewer"
RIGHTS_MANAGER = "rights-manager"
REPORTS_ADMIN = "reports-admin"
PREVIEW = "preview"
SUDO = "sudo"

REVIEWER_PERMISSIONS = frozenset({RIGHTS_REVIEWER, RIGHTS_MANAGER})

BOTTLER_ROLE = "bottler"

_EMPLOYMENT_TYPE_ROLES = {
    "employee": "employee",
    "contingent worker": "contingent-worker",
    "contingent-worker": "contingent-worker",
}


@dataclass(frozen=True)
class RoleEntry:
    """Row of the roles sheet."""

    roles: tuple[str, ...] = ()
    country: str | None = None


@dataclass(frozen=True)
class AccessConfig:
    """Parsed access-control sheets keyed by ``*``, domain or email."""

    permissions: dict[str, tuple[str, ...]] = field(default_factory=dict)
    roles: dict[str, RoleEntry] = field(default_factory=dict)
    customers: dict[str, tuple[str, ...]] = field(default_factory=dict)
    restricted_brands: dict[str, tuple[str, ...]] = field(default_factory=dict)


class AccessConfigClient(Protocol):
    """Interface for loading the access configuration."""

    async def load(self) -> AccessConfig:
        """Fetch and parse the current access configuration."""


def split_cell(value: object) -> tuple[str, ...]:
    """Split a comma-separated sheet cell into trimmed, non-empty items."""
    if value is None:
        return ()
    if isinstance(value, list | tuple):
        items = [str(item) for item in value]
    else:
        items = str(value).split(",")
    return tuple(item.strip() for item in items if item.strip())


def parse_access_sheets(raw: object) -> AccessConfig:
    """Build an AccessConfig from a multi-sheet JSON document."""
    if not isinstance(raw, dict):
        return AccessConfig()
    permissions: dict[str, tuple[str, ...]] = {}
    for row in _sheet_rows(raw, "permissions"):
        key = str(row.get("email") or "").strip().lower()
        if key:
            permissions[key] = permissions.get(key, ()) + split_cell(
                row.get("permissions")
            )
    roles: dict[str, RoleEntry] = {}
    for row in _sheet_rows(raw, "roles"):
        key = str(row.get("key") or "").strip().lower()
        if key:
            country = str(row.get("country") or "").strip() or None
            roles[key] = RoleEntry(
                roles=tuple(role.lower() for role in split_cell(row.get("roles"))),
                country=country,
            )
    customers = {
        str(row.get("key")).strip().lower(): split_cell(row.get("customers"))
        for row in _sheet_rows(raw, "customers")
        if row.get("key")
    }
    restricted_brands = {
        str(row.get("key")).strip().lower(): split_cell(row.get("brands"))
        for row in _sheet_rows(raw, "restricted-brands")
        if row.get("key")
    }
    return AccessConfig(
        permissions=permissions,
        roles=roles,
        customers=customers,
        restricted_brands=restricted_brands,
    )


def expand_aliases(codes: tuple[str, ...] | list[str]) -> set[str]:
    """Expand short permission codes to their full names."""
    expanded = set()
    for code in codes:
        normalized = code.strip().lower()
        if normalized:
            expanded.add(PERMISSION_ALIASES.get(normalized, normalized))
    return expanded


def email_domain(email: str) -> str:
    return email.rsplit("@", 1)[-1].lower()


def resolve_permissions(config: AccessConfig, email: str) -> frozenset[str]:
    """Union of wildcard, domain and email grants for an identity."""
    email = email.lower()
    grants: list[str] = []
    for key in (WILDCARD, email_domain(email), email):
        grants.extend(config.permissions.get(key, ()))
    return frozenset(expand_aliases(grants))


def resolve_attributes(
    config: AccessConfig,
    email: str,
    employment_type: str | None,
    idp_country: str | None,
) -> UserAttributes:
    """Resolve role and association memberships; email rows beat domain rows."""
    email = email.lower()
    domain = email_domain(email)
    role_entry = config.roles.get(email) or config.roles.get(domain)
    roles = role_entry.roles if role_entry and role_entry.roles else ()
    if not roles and employment_type:
        derived = _EMPLOYMENT_TYPE_ROLES.get(employment_type.strip().lower())
        roles = (derived,) if derived else ()
    country = role_entry.country if role_entry else None
    if BOTTLER_ROLE in roles and not country:
        country = idp_country
    customers = config.customers.get(email, config.customers.get(domain, ()))
    brands = config.restricted_brands.get(
        email, config.restricted_brands.get(domain, ())
    )
    return UserAttributes(
        roles=roles,
        country=country,
        customers=customers,
        restricted_brands=brands,
    )


def list_reviewer_grants(config: AccessConfig) -> dict[str, str]:
    """Return email-level reviewer and manager grants as ``{email: role}``."""
    reviewers: dict[str, str] = {}
    for key, codes in config.permissions.items():
        if key == WILDCARD or "@" not in key:
            continue
        permissions = expand_aliases(codes)
        if RIGHTS_MANAGER in permissions:
            reviewers[key] = RIGHTS_MANAGER
        elif RIGHTS_REVIEWER in permissions:
            reviewers[key] = RIGHTS_REVIEWER
    return reviewers


def _sheet_rows(raw: dict[str, object], name: str) -> list[dict[str, object]]:
    sheet = raw.get(name)
    if not isinstance(sheet, dict):
        return []
    rows = sheet.get("data")
    if not isinstance(rows, list):
        return []
    return [row for row in rows if isinstance(row, dict)]
