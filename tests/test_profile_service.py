import asyncio

from guidex.exceptions import StoreError
from guidex.models import UserProfile
from guidex.profile_service import ProfileService, ProfileSync, default_profile
from guidex.record_store import PROFILES, AuthContext, InMemoryRecordStore


def test_default_profile_from_email():
    profile = default_profile("u1", "grace@example.com")
    assert profile.name == "grace"
    assert profile.streak == 1
    assert "seed=grace" in profile.avatar
    assert default_profile("u2", "").name == "Explorer"
    assert default_profile("u3", "x@example.com", name="Grace H").name == "Grace H"


def test_ensure_profile_creates_once(store):
    service = ProfileService(store)

    async def scenario():
        first = await service.ensure_profile()
        await store.upsert(PROFILES, UserProfile(id="user-1", name="Renamed", streak=9))
        second = await service.ensure_profile()
        return first, second

    first, second = asyncio.run(scenario())
    assert first.name == "ada"
    assert first.streak == 1
    assert second.name == "Renamed"
    assert second.streak == 9


def test_register_uses_same_default_streak():
    store = InMemoryRecordStore(AuthContext())
    service = ProfileService(store)
    profile = asyncio.run(service.register_profile("user-9", "lin@example.com", "Lin"))
    assert profile.streak == 1
    assert profile.name == "Lin"
    assert store.auth.owner_id == "user-9"


def test_signed_out_ensure_returns_none():
    service = ProfileService(InMemoryRecordStore(AuthContext()))
    assert asyncio.run(service.ensure_profile()) is None


def test_sync_failure_is_logged_not_raised():
    store = InMemoryRecordStore(AuthContext())
    sync = ProfileSync(ProfileService(store))

    async def scenario():
        store.fail_next("get", StoreError("offline", operation="get"))
        task = sync.on_auth_change("user-1", "ada@example.com")
        return await task

    assert asyncio.run(scenario()) is None


def test_logout_cancels_pending_sync():
    store = InMemoryRecordStore(AuthContext())
    sync = ProfileSync(ProfileService(store))

    async def scenario():
        task = sync.on_auth_change("user-1", "ada@example.com")
        await sync.on_logout()
        return task

    task = asyncio.run(scenario())
    assert task.cancelled()
    assert not store.auth.is_authenticated


def test_profile_draft_saves_through_service(store):
    service = ProfileService(store)

    async def scenario():
        profile = await service.ensure_profile()
        draft = service.profile_draft(profile)
        draft.begin_edit()
        draft.set_field("bio", "Backend engineer")
        draft.add_interest("Rust")
        await draft.commit()
        return await store.get(PROFILES, "user-1")

    saved = asyncio.run(scenario())
    assert saved.bio == "Backend engineer"
    assert saved.interests == ["Rust"]
