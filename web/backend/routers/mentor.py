from typing import Optional

from fastapi import APIRouter, Response
from fastapi.responses import StreamingResponse
from pydantic import BaseModel

from guidex.mentor import QUICK_PROMPTS
from web.backend.deps import get_mentor, get_profile_service, reset_mentor

router = APIRouter()


class ChatRequest(BaseModel):
    message: str


class SpeakRequest(BaseModel):
    text: Optional[str] = None


async def _profile_name() -> Optional[str]:
    profile = await get_profile_service().get_profile()
    return profile.name if profile else None


@router.get("/history")
async def get_history():
    mentor = get_mentor(await _profile_name())
    return {
        "messages": [m.to_dict() for m in mentor.messages],
        "streaming": mentor.streaming,
        "quick_prompts": list(QUICK_PROMPTS),
    }


@router.post("/chat")
async def chat(request: ChatRequest):
    """Stream the mentor reply as plain text fragments."""
    mentor = get_mentor(await _profile_name())
    return StreamingResponse(mentor.stream(request.message), media_type="text/plain")


@router.post("/speak")
async def speak(request: SpeakRequest):
    audio = await get_mentor().speak(request.text)
    if not audio:
        return Response(status_code=204)
    return Response(content=audio, media_type="application/octet-stream")


@router.post("/reset")
async def reset_conversation():
    mentor = reset_mentor(await _profile_name())
    return {"messages": [m.to_dict() for m in mentor.messages]}
