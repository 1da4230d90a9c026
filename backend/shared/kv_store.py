"""
Durable string key/value storage used for bulletin and subscriber state.

The store is deliberately minimal: get, put, delete and a prefix scan that
pages with an opaque cursor. The Supabase implementation keeps everything in
one table:

    create table bulletin_kv (
        key   text primary key,
        value text not null
    );
"""

from abc import ABC, abstractmethod
from typing import Any, cast

from pydantic import BaseModel, Field
from supabase import Client

from shared.config import Settings
from shared.db import get_supabase_client


class KeyPage(BaseModel):
    """One page of keys from a prefix scan."""

    keys: list[str] = Field(default_factory=list)
    next_cursor: str | None = None


class KVStore(ABC):
    """Generic durable string-keyed mapping with prefix scan."""

    @abstractmethod
    def get(self, key: str) -> str | None:
        pass

    @abstractmethod
    def put(self, key: str, value: str) -> None:
        pass

    @abstractmethod
    def delete(self, key: str) -> None:
        pass

    @abstractmethod
    def list(self, prefix: str, cursor: str | None = None) -> KeyPage:
        """
        List keys starting with prefix, in key order.

        Args:
            prefix: Key prefix to scan
            cursor: Cursor from a previous page, or None for the first page

        Returns:
            KeyPage whose next_cursor is None once the scan is exhausted
        """
        pass


class SupabaseKVStore(KVStore):
    """KVStore backed by a two-column Supabase table."""

    def __init__(self, client: Client, table: str = "bulletin_kv", page_size: int = 1000):
        self.client = client
        self.table = table
        self.page_size = page_size

    @classmethod
    def from_settings(cls, settings: Settings) -> "SupabaseKVStore":
        return cls(
            get_supabase_client(settings),
            table=settings.kv_table,
            page_size=settings.kv_page_size,
        )

    def get(self, key: str) -> str | None:
        response = (
            self.client.table(self.table)
            .select("value")
            .eq("key", key)
            .limit(1)
            .execute()
        )
        if not response.data:
            return None
        row = cast(dict[str, Any], response.data[0])
        return cast(str | None, row.get("value"))

    def put(self, key: str, value: str) -> None:
        self.client.table(self.table).upsert(
            {"key": key, "value": value}, on_conflict="key"
        ).execute()

    def delete(self, key: str) -> None:
        self.client.table(self.table).delete().eq("key", key).execute()

    def list(self, prefix: str, cursor: str | None = None) -> KeyPage:
        # The cursor is the last key of the previous page
        query = (
            self.client.table(self.table)
            .select("key")
            .like("key", _escape_like(prefix) + "%")
        )
        if cursor is not None:
            query = query.gt("key", cursor)
        response = query.order("key").limit(self.page_size).execute()

        rows = cast(list[dict[str, Any]], response.data or [])
        keys = [cast(str, row["key"]) for row in rows]
        next_cursor = keys[-1] if len(keys) == self.page_size else None
        return KeyPage(keys=keys, next_cursor=next_cursor)


def _escape_like(value: str) -> str:
    """Escape LIKE wildcards so the prefix matches literally."""
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
