# Record Store: owner-scoped CRUD + change notifications for goals, journal entries and profiles.
# Backends: in-process (memory) and Supabase PostgREST (supabase).

from typing import Optional

from guidex.config_manager import config
from guidex.exceptions import ConfigError
from guidex.record_store.base import (
    GOALS,
    JOURNAL_ENTRIES,
    PROFILES,
    AuthContext,
    ChangeFeed,
    RecordStore,
    Subscription,
)
from guidex.record_store.memory import InMemoryRecordStore
from guidex.record_store.supabase import SupabaseRecordStore


def create_record_store(auth: Optional[AuthContext] = None, backend: Optional[str] = None) -> RecordStore:
    """Build the store selected by STORE_BACKEND."""
    backend = (backend or config.STORE_BACKEND or "memory").lower()
    if backend == "supabase":
        return SupabaseRecordStore(
            config.SUPABASE_URL,
            config.SUPABASE_ANON_KEY,
            auth=auth,
            timeout=config.STORE_TIMEOUT_SECONDS,
        )
    if backend == "memory":
        return InMemoryRecordStore(auth)
    raise ConfigError(f"Unknown STORE_BACKEND '{backend}' (expected memory or supabase)", "config/runtime.yaml")


__all__ = [
    "GOALS",
    "JOURNAL_ENTRIES",
    "PROFILES",
    "AuthContext",
    "ChangeFeed",
    "InMemoryRecordStore",
    "RecordStore",
    "Subscription",
    "SupabaseRecordStore",
    "create_record_store",
]
