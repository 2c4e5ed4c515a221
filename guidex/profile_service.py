"""
Profile lifecycle: lazy creation on sign-in, explicit registration, edits.
"""
import asyncio
from datetime import datetime
from typing import Optional

from guidex.config_manager import config
from guidex.drafts import ProfileDraft
from guidex.exceptions import GuideXError
from guidex.logger import get_logger
from guidex.models import UserProfile
from guidex.record_store import PROFILES, AuthContext, RecordStore

logger = get_logger("profile")


def default_name(email: str) -> str:
    local = (email or "").split("@", 1)[0].strip()
    return local or config.DEFAULT_PROFILE_NAME


def default_profile(owner_id: str, email: str = "", name: Optional[str] = None) -> UserProfile:
    """Fresh profile for a new owner. Every creation path uses DEFAULT_STREAK."""
    display_name = (name or "").strip() or default_name(email)
    return UserProfile(
        id=owner_id,
        name=display_name,
        email=email or "",
        avatar=config.AVATAR_URL_TEMPLATE.format(seed=display_name),
        streak=config.DEFAULT_STREAK,
        overall_progress=0,
        interests=[],
        created_at=datetime.now().astimezone().isoformat(),
    )


class ProfileService:
    def __init__(self, store: RecordStore, auth: Optional[AuthContext] = None):
        self.store = store
        self.auth = auth or store.auth

    async def get_profile(self) -> Optional[UserProfile]:
        if not self.auth.is_authenticated:
            return None
        return await self.store.get(PROFILES, self.auth.owner_id)

    async def ensure_profile(self) -> Optional[UserProfile]:
        """Return the owner's profile, creating it on first sign-in."""
        if not self.auth.is_authenticated:
            return None
        existing = await self.store.get(PROFILES, self.auth.owner_id)
        if existing is not None:
            return existing
        profile = default_profile(self.auth.owner_id, self.auth.email)
        logger.info("Creating profile for %s", self.auth.owner_id)
        return await self.store.upsert(PROFILES, profile)

    async def register_profile(self, owner_id: str, email: str, name: Optional[str] = None) -> UserProfile:
        """Sign-up path: the caller supplies the display name."""
        if self.auth.owner_id != owner_id:
            self.auth.sign_in(owner_id, email)
        profile = default_profile(owner_id, email, name)
        return await self.store.upsert(PROFILES, profile)

    async def update_profile(self, profile: UserProfile) -> UserProfile:
        return await self.store.upsert(PROFILES, profile)

    def profile_draft(self, profile: UserProfile) -> ProfileDraft:
        return ProfileDraft(profile, save=self.update_profile)


class ProfileSync:
    """Runs ensure_profile in the background whenever the owner changes."""

    def __init__(self, service: ProfileService):
        self.service = service
        self._task: Optional[asyncio.Task] = None

    @property
    def task(self) -> Optional[asyncio.Task]:
        return self._task

    def on_auth_change(self, owner_id: str, email: str = "", access_token: Optional[str] = None) -> asyncio.Task:
        """Must be called from inside a running event loop."""
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self.service.auth.sign_in(owner_id, email, access_token)
        self._task = asyncio.create_task(self._run())
        return self._task

    async def _run(self) -> Optional[UserProfile]:
        try:
            return await self.service.ensure_profile()
        except GuideXError as e:
            logger.warning("Background profile sync failed: %s", e.message)
            return None

    async def on_logout(self) -> None:
        task, self._task = self._task, None
        if task is not None and not task.done():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                logger.debug("Profile sync cancelled on logout")
        self.service.auth.sign_out()
