"""
Record Store contract shared by every backend.

Three record kinds (goals, journal_entries, profiles), all scoped to the
authenticated owner. Change notifications carry no payload: subscribers are
expected to re-list.
"""
import inspect
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Type, Union

from guidex.exceptions import AuthError, StoreError
from guidex.logger import get_logger
from guidex.models import Goal, JournalEntry, UserProfile

GOALS = "goals"
JOURNAL_ENTRIES = "journal_entries"
PROFILES = "profiles"

KIND_MODELS: Dict[str, Type] = {
    GOALS: Goal,
    JOURNAL_ENTRIES: JournalEntry,
    PROFILES: UserProfile,
}

Record = Union[Goal, JournalEntry, UserProfile]
ChangeCallback = Callable[[], Any]

logger = get_logger("record_store")


def model_for(kind: str) -> Type:
    try:
        return KIND_MODELS[kind]
    except KeyError:
        raise StoreError(f"Unknown record kind '{kind}'", operation="resolve", table=kind)


@dataclass
class AuthContext:
    """Who the store is acting for. Empty owner_id means signed out."""
    owner_id: Optional[str] = None
    email: str = ""
    access_token: Optional[str] = None

    @property
    def is_authenticated(self) -> bool:
        return bool(self.owner_id)

    def require_owner(self) -> str:
        if not self.owner_id:
            raise AuthError()
        return self.owner_id

    def sign_in(self, owner_id: str, email: str = "", access_token: Optional[str] = None) -> None:
        self.owner_id = owner_id
        self.email = email
        self.access_token = access_token

    def sign_out(self) -> None:
        self.owner_id = None
        self.email = ""
        self.access_token = None


class Subscription:
    """Handle returned by subscribe(); unsubscribe() is idempotent."""

    def __init__(self, feed: "ChangeFeed", kind: str, callback: ChangeCallback):
        self._feed = feed
        self.kind = kind
        self.callback = callback
        self.active = True

    def unsubscribe(self) -> None:
        if self.active:
            self._feed.remove(self)
            self.active = False


class ChangeFeed:
    """Subscriber registry. Callbacks may be plain functions or coroutines."""

    def __init__(self):
        self._subscribers: Dict[str, List[Subscription]] = {}

    def subscribe(self, kind: str, callback: ChangeCallback) -> Subscription:
        subscription = Subscription(self, kind, callback)
        self._subscribers.setdefault(kind, []).append(subscription)
        return subscription

    def remove(self, subscription: Subscription) -> None:
        bucket = self._subscribers.get(subscription.kind, [])
        if subscription in bucket:
            bucket.remove(subscription)

    def subscriber_count(self, kind: str) -> int:
        return len(self._subscribers.get(kind, []))

    async def notify(self, kind: str) -> None:
        # snapshot: callbacks may unsubscribe while we iterate
        for subscription in list(self._subscribers.get(kind, [])):
            try:
                result = subscription.callback()
                if inspect.isawaitable(result):
                    await result
            except Exception:
                logger.exception("Change subscriber for '%s' failed", kind)


class RecordStore(ABC):
    """Async owner-scoped CRUD + change subscription."""

    def __init__(self, auth: Optional[AuthContext] = None):
        self.auth = auth or AuthContext()
        self.feed = ChangeFeed()

    @abstractmethod
    async def list(self, kind: str) -> List[Record]:
        """Owner's records, newest created_at first. [] when signed out or empty."""

    @abstractmethod
    async def get(self, kind: str, record_id: str) -> Optional[Record]:
        """Single record or None."""

    @abstractmethod
    async def upsert(self, kind: str, record: Record) -> Record:
        """Insert or replace by id. AuthError when signed out, StoreError otherwise."""

    @abstractmethod
    async def delete(self, kind: str, record_id: str) -> None:
        """Delete by id. Deleting a missing id is not an error."""

    def subscribe(self, kind: str, on_change: ChangeCallback) -> Subscription:
        model_for(kind)
        return self.feed.subscribe(kind, on_change)

    async def close(self) -> None:
        """Release transport resources, if any."""
