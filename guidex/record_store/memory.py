"""
In-process record store.

Records are held as dicts (serialised on write, rebuilt on read), so callers
never share objects with the store.
"""
from typing import Dict, List, Optional

from guidex.exceptions import StoreError
from guidex.models import EPOCH, now_iso, parse_timestamp
from guidex.record_store.base import (
    PROFILES,
    AuthContext,
    Record,
    RecordStore,
    logger,
    model_for,
)


class InMemoryRecordStore(RecordStore):
    """Owner-scoped dict store with change notifications."""

    def __init__(self, auth: Optional[AuthContext] = None):
        super().__init__(auth)
        # owner_id -> kind -> record_id -> payload
        self._data: Dict[str, Dict[str, Dict[str, dict]]] = {}
        self._pending_failures: Dict[str, StoreError] = {}

    def fail_next(self, operation: str, error: Optional[StoreError] = None) -> None:
        """Make the next call of `operation` (list/get/upsert/delete) fail."""
        self._pending_failures[operation] = error or StoreError(
            "Injected failure", operation=operation
        )

    def _maybe_fail(self, operation: str) -> None:
        error = self._pending_failures.pop(operation, None)
        if error is not None:
            raise error

    def _bucket(self, owner_id: str, kind: str) -> Dict[str, dict]:
        return self._data.setdefault(owner_id, {}).setdefault(kind, {})

    async def list(self, kind: str) -> List[Record]:
        model = model_for(kind)
        self._maybe_fail("list")
        if not self.auth.is_authenticated:
            return []
        payloads = list(self._bucket(self.auth.owner_id, kind).values())
        payloads.sort(key=lambda d: parse_timestamp(d.get("created_at")) or EPOCH, reverse=True)
        return [model.from_dict(d) for d in payloads]

    async def get(self, kind: str, record_id: str) -> Optional[Record]:
        model = model_for(kind)
        self._maybe_fail("get")
        if not self.auth.is_authenticated:
            return None
        payload = self._bucket(self.auth.owner_id, kind).get(record_id)
        return model.from_dict(payload) if payload is not None else None

    async def upsert(self, kind: str, record: Record) -> Record:
        model = model_for(kind)
        owner_id = self.auth.require_owner()
        self._maybe_fail("upsert")
        if not getattr(record, "id", None):
            raise StoreError("Record id is required", operation="upsert", table=kind)

        payload = record.to_dict()
        if kind == PROFILES:
            payload["id"] = owner_id
        else:
            payload["user_id"] = owner_id
        if not payload.get("created_at"):
            payload["created_at"] = now_iso()

        self._bucket(owner_id, kind)[payload["id"]] = payload
        logger.debug("upsert %s/%s", kind, payload["id"])
        await self.feed.notify(kind)
        return model.from_dict(payload)

    async def delete(self, kind: str, record_id: str) -> None:
        model_for(kind)
        owner_id = self.auth.require_owner()
        self._maybe_fail("delete")
        self._bucket(owner_id, kind).pop(record_id, None)
        await self.feed.notify(kind)
