"""Supabase-backed key-value store."""

from dataclasses import dataclass
from datetime import UTC, datetime, timedelta

from postgrest.exceptions import APIError
from supabase import Client

from rights_review.domain.errors import StorageError
from rights_review.services.storage import KeyValueStore, KvKey

_TABLE = "kv_entries"
PAGE_SIZE = 1000


@dataclass
class SupabaseKeyValueStore(KeyValueStore):
    """Supabase implementation of one KV namespace."""

    client: Client
    namespace: str

    def get(self, key: str) -> str | None:
        """Return the stored value, or None when missing or expired."""
        try:
            response = (
                self.client.table(_TABLE)
                .select("value, expires_at")
                .eq("namespace", self.namespace)
                .eq("key", key)
                .limit(1)
                .execute()
            )
        except APIError as exc:
            raise StorageError("Failed to read key", str(exc)) from exc
        if not response.data:
            return None
        row = response.data[0]
        if _is_expired(row.get("expires_at")):
            return None
        return row["value"]

    def put(
        self,
        key: str,
        value: str,
        metadata: dict[str, object] | None = None,
        expiration_ttl: int | None = None,
    ) -> None:
        """Upsert a value, optionally expiring after expiration_ttl seconds."""
        expires_at = (
            (datetime.now(tz=UTC) + timedelta(seconds=expiration_ttl)).isoformat()
            if expiration_ttl
            else None
        )
        try:
            self.client.table(_TABLE).upsert(
                {
                    "namespace": self.namespace,
                    "key": key,
                    "value": value,
                    "metadata": metadata,
                    "expires_at": expires_at,
                    "updated_at": datetime.now(tz=UTC).isoformat(),
                },
                on_conflict="namespace,key",
            ).execute()
        except APIError as exc:
            raise StorageError("Failed to write key", str(exc)) from exc

    def delete(self, key: str) -> None:
        """Delete a key."""
        try:
            self.client.table(_TABLE).delete().eq("namespace", self.namespace).eq(
                "key", key
            ).execute()
        except APIError as exc:
            raise StorageError("Failed to delete key", str(exc)) from exc

    def _list_page(self, prefix: str, start: int, end: int) -> list[dict[str, object]]:
        try:
            response = (
                self.client.table(_TABLE)
                .select("key, metadata, expires_at")
                .eq("namespace", self.namespace)
                .like("key", f"{_escape_like(prefix)}%")
                .order("key")
                .range(start, end)
                .execute()
            )
        except APIError as exc:
            raise StorageError("Failed to list keys", str(exc)) from exc
        return response.data or []

    def list(self, prefix: str = "", limit: int | None = 1000) -> list[KvKey]:
        """List live keys with the given prefix, paging through the table."""
        keys = []
        start = 0
        while limit is None or start < limit:
            page_size = PAGE_SIZE if limit is None else min(PAGE_SIZE, limit - start)
            rows = self._list_page(prefix, start, start + page_size - 1)
            for row in rows:
                if _is_expired(row.get("expires_at")):
                    continue
                keys.append(
                    KvKey(
                        name=row["key"],
                        metadata=row.get("metadata"),
                        expires_at=_parse_timestamp(row.get("expires_at")),
                    )
                )
            if len(rows) < page_size:
                break
            start += page_size
        return keys


def _escape_like(prefix: str) -> str:
    return prefix.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def _parse_timestamp(value: object) -> datetime | None:
    if not value:
        return None
    return datetime.fromisoformat(str(value))


def _is_expired(value: object) -> bool:
    expires_at = _parse_timestamp(value)
    return expires_at is not None and expires_at <= datetime.now(tz=UTC)
