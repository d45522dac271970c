"""Shared test fixtures."""

import json
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta

import jwt
import pytest
from cryptography.hazmat.primitives.asymmetric import rsa
from jwt.algorithms import RSAAlgorithm

from rights_review.adapters.jwks_client import JwksClient
from rights_review.config import Settings, parse_csv
from rights_review.containers import AppContainer
from rights_review.domain.sessions import Session, UserAttributes
from rights_review.services.access import AccessConfig, AccessConfigClient, RoleEntry
from rights_review.services.notifications import NotificationService
from rights_review.services.rights_requests import RightsRequestService
from rights_review.services.sessions import SessionResolver
from rights_review.services.storage import KeyValueStore, KvKey, KvNamespaces
from rights_review.services.tokens import IdTokenValidator, SessionTokenCodec

COOKIE_SECRET = "test-cookie-secret-with-enough-length"
CLIENT_ID = "client-id"
TENANT_ID = "tenant-id"
ORIGIN = "http://testserver"

SUBMITTER = "submitter@example.com"
REVIEWER = "reviewer@example.com"
OTHER_REVIEWER = "other.reviewer@example.com"
MANAGER = "manager@example.com"
ADMIN = "admin@example.com"
SUPERUSER = "root@example.com"
DISTRIBUTION = "rights-team@example.com"

SIGNING_KEY = rsa.generate_private_key(public_exponent=65537, key_size=2048)


@dataclass
class InMemoryKeyValueStore(KeyValueStore):
    """In-memory KV namespace for tests."""

    entries: dict[str, tuple[str, dict[str, object] | None, datetime | None]] = field(
        default_factory=dict
    )
    failing_keys: set[str] = field(default_factory=set)
    writes: list[str] = field(default_factory=list)

    def get(self, key: str) -> str | None:
        entry = self.entries.get(key)
        if entry is None:
            return None
        value, _, expires_at = entry
        if expires_at is not None and expires_at <= datetime.now(tz=UTC):
            return None
        return value

    def put(
        self,
        key: str,
        value: str,
        metadata: dict[str, object] | None = None,
        expiration_ttl: int | None = None,
    ) -> None:
        if any(key.startswith(prefix) for prefix in self.failing_keys):
            raise RuntimeError(f"write failed for {key}")
        expires_at = (
            datetime.now(tz=UTC) + timedelta(seconds=expiration_ttl)
            if expiration_ttl
            else None
        )
        self.entries[key] = (value, metadata, expires_at)
        self.writes.append(key)

    def delete(self, key: str) -> None:
        self.entries.pop(key, None)

    def list(self, prefix: str = "", limit: int | None = 1000) -> list[KvKey]:
        keys = [
            KvKey(name=key, metadata=metadata, expires_at=expires_at)
            for key, (_, metadata, expires_at) in sorted(self.entries.items())
            if key.startswith(prefix) and self.get(key) is not None
        ]
        return keys if limit is None else keys[:limit]


@dataclass
class StaticAccessConfigClient(AccessConfigClient):
    """Access config client returning a fixed configuration."""

    config: AccessConfig
    loads: int = 0

    async def load(self) -> AccessConfig:
        self.loads += 1
        return self.config


@dataclass
class FakeJwksClient(JwksClient):
    """JWKS client returning a fixed key set."""

    jwks: dict[str, object] = field(default_factory=lambda: {"keys": []})

    async def fetch_jwks(self) -> dict[str, object]:
        return self.jwks


def make_access_config() -> AccessConfig:
    return AccessConfig(
        permissions={
            "example.com": ("preview",),
            REVIEWER: ("rr",),
            OTHER_REVIEWER: ("rights-reviewer",),
            MANAGER: ("rm",),
            ADMIN: ("ra",),
            SUPERUSER: ("sudo", "rr"),
        },
        roles={
            "example.com": RoleEntry(roles=("employee",)),
            "bottler@example.com": RoleEntry(roles=("bottler",)),
        },
        customers={"example.com": ("Customer A",)},
        restricted_brands={},
    )


def make_session(
    email: str,
    permissions: set[str] | frozenset[str] = frozenset(),
    name: str = "Test User",
) -> Session:
    return Session(
        subject_id="oid-1",
        name=name,
        email=email,
        country="US",
        employment_type="Employee",
        company_name="Example",
        permissions=frozenset(permissions),
        attributes=UserAttributes(roles=("employee",), country="US"),
    )


def make_jwks(kid: str = "key-1") -> dict[str, object]:
    jwk = json.loads(RSAAlgorithm.to_jwk(SIGNING_KEY.public_key()))
    jwk.update({"kid": kid, "use": "sig", "alg": "RS256"})
    return {"keys": [jwk]}


def make_id_token(**overrides: object) -> str:
    """Sign an Entra-style id token with the test key."""
    now = datetime.now(tz=UTC)
    claims: dict[str, object] = {
        "aud": CLIENT_ID,
        "iss": f"https://login.microsoftonline.com/{TENANT_ID}/v2.0",
        "tid": TENANT_ID,
        "nonce": "nonce-1",
        "email": REVIEWER,
        "name": "Reviewer",
        "oid": "oid-1",
        "iat": now,
        "exp": now + timedelta(minutes=5),
    }
    claims.update(overrides)
    return jwt.encode(claims, SIGNING_KEY, algorithm="RS256", headers={"kid": "key-1"})


def make_namespaces() -> KvNamespaces:
    return KvNamespaces(
        requests=InMemoryKeyValueStore(),
        reviews=InMemoryKeyValueStore(),
        messages=InMemoryKeyValueStore(),
    )


def make_rights_request_service(
    stores: KvNamespaces | None = None,
    access_client: AccessConfigClient | None = None,
) -> RightsRequestService:
    stores = stores or make_namespaces()
    return RightsRequestService(
        stores=stores,
        notification_service=NotificationService(stores.messages),
        access_client=access_client or StaticAccessConfigClient(make_access_config()),
        notification_emails=(DISTRIBUTION,),
    )


@pytest.fixture
def settings() -> Settings:
    return Settings(
        supabase_url="https://example.supabase.co",
        supabase_service_key="service-key",
        entra_tenant_id=TENANT_ID,
        entra_client_id=CLIENT_ID,
        entra_client_secret="client-secret",
        entra_jwks_url="https://login.example.com/keys",
        cookie_secret=COOKIE_SECRET,
        content_origin="https://content.example.com",
        allowed_email_domains="example.com",
        production_hosts="testserver",
        rights_notification_emails=DISTRIBUTION,
        cors_allowed_origins="https://app.example.com",
        kv_propagation_delay_seconds=0,
        environment="test",
    )


@pytest.fixture
def stores() -> KvNamespaces:
    return make_namespaces()


@pytest.fixture
def access_client() -> StaticAccessConfigClient:
    return StaticAccessConfigClient(make_access_config())


@pytest.fixture
def token_codec() -> SessionTokenCodec:
    return SessionTokenCodec(secret=COOKIE_SECRET, audience=CLIENT_ID)


@pytest.fixture
def jwks_client() -> FakeJwksClient:
    return FakeJwksClient()


@pytest.fixture
def container(
    settings: Settings,
    stores: KvNamespaces,
    access_client: StaticAccessConfigClient,
    token_codec: SessionTokenCodec,
    jwks_client: FakeJwksClient,
) -> AppContainer:
    notification_service = NotificationService(
        stores.messages, default_sender="system@example.com"
    )
    rights_request_service = RightsRequestService(
        stores=stores,
        notification_service=notification_service,
        access_client=access_client,
        notification_emails=parse_csv(settings.rights_notification_emails),
    )
    session_resolver = SessionResolver(
        access_client=access_client,
        allowed_email_domains=parse_csv(settings.allowed_email_domains),
        production_hosts=parse_csv(settings.production_hosts),
    )

    async def close_resources() -> None:
        return None

    return AppContainer(
        settings=settings,
        stores=stores,
        access_client=access_client,
        session_resolver=session_resolver,
        token_codec=token_codec,
        id_token_validator=IdTokenValidator(
            jwks_client=jwks_client, tenant_id=TENANT_ID, client_id=CLIENT_ID
        ),
        notification_service=notification_service,
        rights_request_service=rights_request_service,
        close_resources=close_resources,
    )


@pytest.fixture
def session_cookie(token_codec: SessionTokenCodec):
    """Return a factory producing a signed session cookie value."""

    def factory(email: str, permissions: set[str] | frozenset[str] = frozenset()) -> str:
        return token_codec.encode_session(make_session(email, permissions), ORIGIN)

    return factory
