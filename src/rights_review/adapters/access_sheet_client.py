"""Access-control sheet client for the content origin."""

import logging
from dataclasses import dataclass

import httpx

from rights_review.services.access import (
    AccessConfig,
    AccessConfigClient,
    parse_access_sheets,
)

logger = logging.getLogger(__name__)


@dataclass
class HttpxAccessSheetClient(AccessConfigClient):
    """HTTPX-backed loader for the published access sheets."""

    origin: str
    path: str
    http_client: httpx.AsyncClient
    token: str | None = None

    @classmethod
    def create(
        cls, origin: str, path: str, token: str | None = None
    ) -> "HttpxAccessSheetClient":
        """Create a sheet client with a managed httpx session."""
        return cls(
            origin=origin.rstrip("/"),
            path=path,
            http_client=httpx.AsyncClient(),
            token=token,
        )

    async def load(self) -> AccessConfig:
        """Fetch the sheet JSON and parse it."""
        headers = {"Cache-Control": "no-store"}
        if self.token:
            headers["Authorization"] = f"token {self.token}"
        response = await self.http_client.get(
            f"{self.origin}{self.path}.json", headers=headers
        )
        if response.is_error:
            logger.error(
                "Failed to fetch access sheet",
                extra={"status_code": response.status_code, "path": self.path},
            )
        response.raise_for_status()
        return parse_access_sheets(response.json())

    async def close(self) -> None:
        """Close the underlying HTTP session."""
        await self.http_client.aclose()
