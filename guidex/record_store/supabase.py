"""
Supabase (PostgREST) record store over httpx.

Tables: goals, journal_entries (owner column user_id) and profiles (keyed by
the owner id). Change notifications fire after this client's own writes;
realtime channels from other sessions are not consumed.
"""
from typing import Any, Dict, List, Optional

import httpx

from guidex.exceptions import AuthError, ConfigError, StoreError
from guidex.models import now_iso
from guidex.record_store.base import (
    PROFILES,
    AuthContext,
    Record,
    RecordStore,
    logger,
    model_for,
)


class SupabaseRecordStore(RecordStore):
    """PostgREST client. Pass `client` to inject a transport (tests)."""

    def __init__(
        self,
        url: str,
        anon_key: str,
        auth: Optional[AuthContext] = None,
        client: Optional[httpx.AsyncClient] = None,
        timeout: float = 15.0,
    ):
        super().__init__(auth)
        if not url or not anon_key:
            raise ConfigError("SUPABASE_URL and SUPABASE_ANON_KEY must be set", "config/runtime.yaml")
        self.base_url = url.rstrip("/") + "/rest/v1"
        self.anon_key = anon_key
        self._client = client or httpx.AsyncClient(timeout=timeout)

    def _headers(self, extra: Optional[Dict[str, str]] = None) -> Dict[str, str]:
        token = self.auth.access_token or self.anon_key
        headers = {
            "apikey": self.anon_key,
            "Authorization": f"Bearer {token}",
            "Content-Type": "application/json",
        }
        if extra:
            headers.update(extra)
        return headers

    def _owner_filter(self, kind: str, owner_id: str) -> Dict[str, str]:
        column = "id" if kind == PROFILES else "user_id"
        return {column: f"eq.{owner_id}"}

    async def _request(
        self,
        method: str,
        kind: str,
        operation: str,
        params: Optional[Dict[str, str]] = None,
        json: Any = None,
        prefer: Optional[str] = None,
    ) -> Any:
        try:
            response = await self._client.request(
                method,
                f"{self.base_url}/{kind}",
                params=params,
                json=json,
                headers=self._headers({"Prefer": prefer} if prefer else None),
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            if status in (401, 403):
                raise AuthError(f"Store rejected credentials ({status})")
            try:
                detail = e.response.text
            except Exception:
                detail = "No details"
            raise StoreError(
                f"HTTP {status} - {detail}",
                operation=operation,
                table=kind,
                status_code=status,
            )
        except httpx.TimeoutException:
            raise StoreError("Request timed out", operation=operation, table=kind)
        except httpx.HTTPError as e:
            raise StoreError(f"Request failed: {e}", operation=operation, table=kind)

        if not response.content:
            return None
        try:
            return response.json()
        except ValueError:
            raise StoreError("Malformed JSON response", operation=operation, table=kind)

    async def list(self, kind: str) -> List[Record]:
        model = model_for(kind)
        if not self.auth.is_authenticated:
            return []
        params = {"select": "*", "order": "created_at.desc"}
        params.update(self._owner_filter(kind, self.auth.owner_id))
        rows = await self._request("GET", kind, "list", params=params) or []
        return [model.from_dict(row) for row in rows]

    async def get(self, kind: str, record_id: str) -> Optional[Record]:
        model = model_for(kind)
        if not self.auth.is_authenticated:
            return None
        params = {"select": "*", "id": f"eq.{record_id}"}
        rows = await self._request("GET", kind, "get", params=params) or []
        return model.from_dict(rows[0]) if rows else None

    async def upsert(self, kind: str, record: Record) -> Record:
        model = model_for(kind)
        owner_id = self.auth.require_owner()
        payload = record.to_dict()
        if kind == PROFILES:
            payload["id"] = owner_id
        else:
            payload["user_id"] = owner_id
        if not payload.get("created_at"):
            payload["created_at"] = now_iso()

        rows = await self._request(
            "POST",
            kind,
            "upsert",
            json=payload,
            prefer="resolution=merge-duplicates,return=representation",
        )
        logger.debug("upsert %s/%s", kind, payload.get("id"))
        await self.feed.notify(kind)
        if isinstance(rows, list) and rows:
            return model.from_dict(rows[0])
        return model.from_dict(payload)

    async def delete(self, kind: str, record_id: str) -> None:
        model_for(kind)
        self.auth.require_owner()
        await self._request("DELETE", kind, "delete", params={"id": f"eq.{record_id}"})
        await self.feed.notify(kind)

    async def close(self) -> None:
        await self._client.aclose()
