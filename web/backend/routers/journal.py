from typing import Any, Dict, Optional

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel

from guidex.config_manager import config
from guidex.drafts import JournalDraft
from guidex.exceptions import GuideXError
from guidex.insight import SentimentResult
from guidex.metrics import build_mood_trend
from guidex.record_store import JOURNAL_ENTRIES
from guidex.views import load_journal
from web.backend.deps import get_insight, get_store, http_error

router = APIRouter()


class AnalyzeRequest(BaseModel):
    content: str


class SaveEntryRequest(BaseModel):
    content: str
    mood: Optional[str] = None
    analysis: Optional[Dict[str, Any]] = None
    entry_id: Optional[str] = None
    analyze: bool = False


@router.get("")
async def list_entries():
    try:
        snapshot = await load_journal(get_store())
    except GuideXError as e:
        raise http_error(e)
    payload = snapshot.to_dict()
    payload["moods"] = list(config.MOODS)
    return payload


@router.get("/trend")
async def mood_trend(window: Optional[int] = None):
    store = get_store()
    try:
        entries = await store.list(JOURNAL_ENTRIES)
    except GuideXError as e:
        raise http_error(e)
    trend = build_mood_trend(entries, window)
    return {
        "sufficient": trend.sufficient,
        "points": [p.__dict__ for p in trend.points],
    }


@router.post("/analyze")
async def analyze_entry(request: AnalyzeRequest):
    """Sentiment for a draft entry. null when the mentor service cannot answer."""
    result = await get_insight().analyze_sentiment(request.content)
    return result.to_dict() if result else None


@router.post("")
async def save_entry(request: SaveEntryRequest):
    store = get_store()

    async def save(entry):
        return await store.upsert(JOURNAL_ENTRIES, entry)

    draft = JournalDraft(save=save)
    try:
        if request.entry_id:
            existing = await store.get(JOURNAL_ENTRIES, request.entry_id)
            if existing is None:
                raise HTTPException(status_code=404, detail=f"Entry not found: {request.entry_id}")
            draft.load_entry(existing)
        else:
            draft.begin_edit()
        draft.set_field("content", request.content)
        if request.mood:
            draft.set_field("mood", request.mood)
        if request.analysis is not None:
            draft.attach_analysis(SentimentResult.from_payload(request.analysis))
        elif request.analyze:
            await draft.analyze(get_insight())
        await draft.commit()
    except GuideXError as e:
        raise http_error(e)
    return draft.saved.to_dict()


@router.delete("/{entry_id}")
async def delete_entry(entry_id: str):
    try:
        await get_store().delete(JOURNAL_ENTRIES, entry_id)
    except GuideXError as e:
        raise http_error(e)
    return {"deleted": entry_id}
