from typing import Optional

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel

from guidex.exceptions import AuthError, GuideXError
from guidex.models import UserProfile
from web.backend.deps import clear_owner_state, get_profile_service, get_profile_sync, http_error

router = APIRouter()

EDITABLE_FIELDS = ("name", "title", "bio", "location", "website", "avatar")


class SignInRequest(BaseModel):
    owner_id: str
    email: str = ""
    access_token: Optional[str] = None


class RegisterRequest(BaseModel):
    owner_id: str
    email: str
    name: Optional[str] = None


class UpdateProfileRequest(BaseModel):
    name: Optional[str] = None
    title: Optional[str] = None
    bio: Optional[str] = None
    location: Optional[str] = None
    website: Optional[str] = None
    avatar: Optional[str] = None


class InterestRequest(BaseModel):
    interest: str


async def _require_profile() -> UserProfile:
    try:
        profile = await get_profile_service().ensure_profile()
    except GuideXError as e:
        raise http_error(e)
    if profile is None:
        raise http_error(AuthError())
    return profile


@router.post("/sign-in")
async def sign_in(request: SignInRequest):
    """Switch owner; the profile is created in the background if missing."""
    clear_owner_state()
    task = get_profile_sync().on_auth_change(request.owner_id, request.email, request.access_token)
    profile = await task
    return {"owner_id": request.owner_id, "profile": profile.to_dict() if profile else None}


@router.post("/register")
async def register(request: RegisterRequest):
    clear_owner_state()
    try:
        profile = await get_profile_service().register_profile(request.owner_id, request.email, request.name)
    except GuideXError as e:
        raise http_error(e)
    return profile.to_dict()


@router.post("/sign-out")
async def sign_out():
    await get_profile_sync().on_logout()
    clear_owner_state()
    return {"signed_out": True}


@router.get("")
async def get_profile():
    profile = await _require_profile()
    return profile.to_dict()


@router.put("")
async def update_profile(request: UpdateProfileRequest):
    profile = await _require_profile()
    draft = get_profile_service().profile_draft(profile)
    draft.begin_edit()
    try:
        for name in EDITABLE_FIELDS:
            value = getattr(request, name)
            if value is not None:
                draft.set_field(name, value)
        saved = await draft.commit()
    except GuideXError as e:
        raise http_error(e)
    return saved.to_dict()


@router.post("/interests")
async def add_interest(request: InterestRequest):
    profile = await _require_profile()
    draft = get_profile_service().profile_draft(profile)
    draft.begin_edit()
    if not draft.add_interest(request.interest):
        raise HTTPException(status_code=409, detail="Interest is empty or already listed")
    try:
        saved = await draft.commit()
    except GuideXError as e:
        raise http_error(e)
    return saved.to_dict()


@router.delete("/interests/{interest}")
async def remove_interest(interest: str):
    profile = await _require_profile()
    draft = get_profile_service().profile_draft(profile)
    draft.begin_edit()
    if not draft.remove_interest(interest):
        raise HTTPException(status_code=404, detail=f"Interest not found: {interest}")
    try:
        saved = await draft.commit()
    except GuideXError as e:
        raise http_error(e)
    return saved.to_dict()
