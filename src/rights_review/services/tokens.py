"""Signed session/state tokens and identity-provider id-token validation."""

import logging
import uuid
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta

import httpx
import jwt

from rights_review.adapters.jwks_client import JwksClient
from rights_review.domain.sessions import Session, UserAttributes

logger = logging.getLogger(__name__)

_SESSION_ALGORITHM = "HS256"
_ID_TOKEN_ALGORITHMS = ["RS256"]
CLOCK_SKEW_SECONDS = 5
STATE_LIFETIME_SECONDS = 10 * 60


@dataclass
class SessionTokenCodec:
    """Issues and verifies the HS256 cookies owned by this service."""

    secret: str
    audience: str
    lifetime_seconds: int = 6 * 60 * 60

    def encode_session(
        self, session: Session, issuer: str, now: datetime | None = None
    ) -> str:
        """Sign a session for the given origin."""
        issued_at = now or datetime.now(tz=UTC)
        payload = {
            "sid": str(uuid.uuid4()),
            "sub": session.subject_id,
            "name": session.name,
            "email": session.email,
            "country": session.country,
            "usertype": session.employment_type,
            "company": session.company_name,
            "permissions": sorted(session.permissions),
            "attributes": session.attributes.to_claims(),
            "iss": issuer,
            "aud": self.audience,
            "nbf": issued_at,
            "exp": issued_at + timedelta(seconds=self.lifetime_seconds),
        }
        return jwt.encode(payload, self.secret, algorithm=_SESSION_ALGORITHM)

    def decode_session(self, token: str, issuer: str) -> Session | None:
        """Verify a session cookie; return None when it is not acceptable."""
        try:
            claims = jwt.decode(
                token,
                self.secret,
                algorithms=[_SESSION_ALGORITHM],
                audience=self.audience,
                issuer=issuer,
                leeway=CLOCK_SKEW_SECONDS,
                options={"require": ["exp", "email"]},
            )
        except jwt.PyJWTError as exc:
            logger.warning("Invalid session cookie: %s", exc)
            return None
        return Session(
            subject_id=claims.get("sub"),
            name=claims.get("name"),
            email=str(claims["email"]).lower(),
            country=claims.get("country"),
            employment_type=claims.get("usertype"),
            company_name=claims.get("company"),
            permissions=frozenset(claims.get("permissions") or ()),
            attributes=UserAttributes.from_claims(claims.get("attributes")),
            expires_at=datetime.fromtimestamp(claims["exp"], tz=UTC),
        )

    def encode_state(self, state: str, nonce: str) -> str:
        """Sign the login state/nonce pair for the short-lived state cookie."""
        now = datetime.now(tz=UTC)
        payload = {
            "state": state,
            "nonce": nonce,
            "exp": now + timedelta(seconds=STATE_LIFETIME_SECONDS),
        }
        return jwt.encode(payload, self.secret, algorithm=_SESSION_ALGORITHM)

    def decode_state(self, token: str) -> dict[str, str] | None:
        try:
            claims = jwt.decode(
                token,
                self.secret,
                algorithms=[_SESSION_ALGORITHM],
                leeway=CLOCK_SKEW_SECONDS,
                options={"require": ["exp", "state", "nonce"]},
            )
        except jwt.PyJWTError as exc:
            logger.warning("Invalid state cookie: %s", exc)
            return None
        return {"state": claims["state"], "nonce": claims["nonce"]}


@dataclass
class IdTokenValidator:
    """Validates id tokens issued by Microsoft Entra ID."""

    jwks_client: JwksClient
    tenant_id: str
    client_id: str

    @property
    def issuer(self) -> str:
        return f"https://login.microsoftonline.com/{self.tenant_id}/v2.0"

    async def validate(self, raw_id_token: str, nonce: str) -> dict[str, object] | None:
        """Return the verified claims, or None when validation fails."""
        try:
            header = jwt.get_unverified_header(raw_id_token)
            jwks = jwt.PyJWKSet.from_dict(await self.jwks_client.fetch_jwks())
            signing_key = next(
                (key for key in jwks.keys if key.key_id == header.get("kid")), None
            )
            if signing_key is None:
                logger.error("No signing key matches id_token kid %s", header.get("kid"))
                return None
            claims = jwt.decode(
                raw_id_token,
                signing_key.key,
                algorithms=_ID_TOKEN_ALGORITHMS,
                audience=self.client_id,
                issuer=self.issuer,
                leeway=CLOCK_SKEW_SECONDS,
            )
        except (jwt.PyJWTError, httpx.HTTPError) as exc:
            logger.error("Error validating id_token: %s", exc)
            return None

        if claims.get("nonce") != nonce:
            logger.error("Invalid nonce in id_token")
            return None
        if claims.get("tid") != self.tenant_id:
            logger.error("Invalid tenant (tid) in id_token: %s", claims.get("tid"))
            return None
        logger.info("User login", extra={"oid": claims.get("oid")})
        return claims
