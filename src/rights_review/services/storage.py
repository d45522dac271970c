"""Key-value storage port shared by the workflow services."""

import json
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Protocol

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class KvKey:
    """A listed key with its metadata."""

    name: str
    metadata: dict[str, object] | None = None
    expires_at: datetime | None = None


class KeyValueStore(Protocol):
    """Namespaced, eventually consistent string store."""

    def get(self, key: str) -> str | None:
        """Return the stored value, or None when missing or expired."""

    def put(
        self,
        key: str,
        value: str,
        metadata: dict[str, object] | None = None,
        expiration_ttl: int | None = None,
    ) -> None:
        """Create or replace a value."""

    def delete(self, key: str) -> None:
        """Remove a key; deleting a missing key is not an error."""

    def list(self, prefix: str = "", limit: int | None = 1000) -> list[KvKey]:
        """Return live keys starting with prefix, ordered by name.

        ``limit=None`` returns every matching key.
        """


@dataclass(frozen=True)
class KvNamespaces:
    """The logical stores used by the rights review workflow."""

    requests: KeyValueStore
    reviews: KeyValueStore
    messages: KeyValueStore


def get_json(store: KeyValueStore, key: str) -> dict[str, object] | None:
    """Read and decode a JSON object; undecodable values count as missing."""
    raw = store.get(key)
    if raw is None:
        return None
    try:
        value = json.loads(raw)
    except ValueError:
        logger.warning("Skipping undecodable value", extra={"key": key})
        return None
    return value if isinstance(value, dict) else None


def put_json(
    store: KeyValueStore,
    key: str,
    value: dict[str, object],
    metadata: dict[str, object] | None = None,
) -> None:
    store.put(key, json.dumps(value), metadata=metadata)
