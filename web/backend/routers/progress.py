from fastapi import APIRouter
from fastapi.responses import PlainTextResponse

from guidex.exceptions import GuideXError
from guidex.record_store import GOALS, PROFILES
from guidex.reports import export_report_text, generate_report, report_filename
from guidex.views import load_analytics, load_dashboard
from web.backend.deps import get_insight, get_report, get_store, get_timer, http_error, set_report

router = APIRouter()


async def _load_profile():
    store = get_store()
    if not store.auth.is_authenticated:
        return None
    return await store.get(PROFILES, store.auth.owner_id)


@router.get("/dashboard")
async def dashboard():
    try:
        snapshot = await load_dashboard(get_store(), get_timer())
    except GuideXError as e:
        raise http_error(e)
    return snapshot.to_dict()


@router.get("/analytics")
async def analytics():
    """Weekly effort, mood trend, category split and report stats."""
    try:
        snapshot = await load_analytics(get_store())
    except GuideXError as e:
        raise http_error(e)
    return snapshot.to_dict()


@router.get("/report")
async def current_report():
    return get_report().to_dict()


@router.post("/report/generate")
async def generate():
    store = get_store()
    try:
        goals = await store.list(GOALS)
        profile = await _load_profile()
        report = await generate_report(get_insight(), goals, profile, base=get_report())
    except GuideXError as e:
        raise http_error(e)
    set_report(report)
    return report.to_dict()


@router.get("/report/export", response_class=PlainTextResponse)
async def export_report():
    try:
        profile = await _load_profile()
    except GuideXError as e:
        raise http_error(e)
    report = get_report()
    text = export_report_text(report, profile.name if profile else None)
    return PlainTextResponse(
        text,
        headers={"Content-Disposition": f'attachment; filename="{report_filename(report)}"'},
    )
