"""JSON Web Key Set client for the identity provider."""

from dataclasses import dataclass
from typing import Protocol

import httpx


class JwksClient(Protocol):
    """Interface for fetching the identity provider's signing keys."""

    async def fetch_jwks(self) -> dict[str, object]:
        """Return the raw JWKS document."""


@dataclass
class HttpxJwksClient(JwksClient):
    """HTTPX-backed JWKS client."""

    jwks_url: str
    http_client: httpx.AsyncClient

    @classmethod
    def create(cls, jwks_url: str) -> "HttpxJwksClient":
        """Create a JWKS client with a managed httpx session."""
        return cls(jwks_url=jwks_url, http_client=httpx.AsyncClient())

    async def fetch_jwks(self) -> dict[str, object]:
        """Fetch the key set."""
        response = await self.http_client.get(self.jwks_url)
        response.raise_for_status()
        return response.json()

    async def close(self) -> None:
        """Close the underlying HTTP session."""
        await self.http_client.aclose()
