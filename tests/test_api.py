import asyncio

import httpx
import pytest
from fastapi import HTTPException

import web.backend.deps as deps
import web.backend.routers.goals as goals_router
import web.backend.routers.journal as journal_router
import web.backend.routers.mentor as mentor_router
import web.backend.routers.profile as profile_router
import web.backend.routers.progress as progress_router
import web.backend.routers.session as session_router
from guidex.exceptions import StoreError
from guidex.insight import InsightService
from guidex.record_store import AuthContext, InMemoryRecordStore
from guidex.session_timer import MemoryBackend, SessionTimerState
from web.backend.app import create_app


@pytest.fixture
def api(scripted_adapter):
    store = InMemoryRecordStore(AuthContext())
    adapter = scripted_adapter(
        reply='{"strengths": ["Reading"], "weaknesses": ["Sleep"], "recommendation": "Rest.", "score": 64}',
        fragments=["Small ", "steps."],
        sentiment={"mood": "Calm", "summary": "Settled.", "sentiment": 80},
        audio=b"pcm",
    )
    deps.configure(
        store=store,
        insight=InsightService(adapter),
        timer=SessionTimerState(MemoryBackend()),
    )
    yield store
    deps.reset()


def sign_in():
    return asyncio.run(profile_router.sign_in(profile_router.SignInRequest(owner_id="user-1", email="ada@example.com")))


def test_app_registers_routers():
    paths = {route.path for route in create_app().routes}
    assert "/health" in paths
    assert "/api/v1/goals" in paths
    assert "/api/v1/mentor/chat" in paths
    assert "/api/v1/progress/report/export" in paths


def test_writes_without_sign_in_are_401(api):
    with pytest.raises(HTTPException) as exc:
        asyncio.run(goals_router.create_goal(goals_router.CreateGoalRequest(title="Learn Rust")))
    assert exc.value.status_code == 401

    with pytest.raises(HTTPException) as exc:
        asyncio.run(profile_router.get_profile())
    assert exc.value.status_code == 401


def test_sign_in_creates_profile(api):
    payload = sign_in()
    assert payload["profile"]["name"] == "ada"
    assert payload["profile"]["streak"] == 1


def test_goal_lifecycle(api):
    sign_in()
    created = asyncio.run(
        goals_router.create_goal(
            goals_router.CreateGoalRequest(title="Learn Rust", category="Coding", milestones=["Book"])
        )
    )
    goal_id = created["id"]
    task_id = created["tasks"][0]["id"]
    assert created["progress"] == 0

    toggled = asyncio.run(goals_router.toggle_task(goal_id, task_id))
    assert toggled["progress"] == 100
    assert toggled["status"] == "completed"

    listing = asyncio.run(goals_router.list_goals())
    assert listing["active"] == []
    assert [g["id"] for g in listing["completed"]] == [goal_id]
    assert listing["categories"][0] == "Coding"

    extended = asyncio.run(goals_router.add_milestone(goal_id, goals_router.MilestoneRequest(title="Project")))
    assert extended["status"] == "active"
    assert extended["progress"] == 50

    with pytest.raises(HTTPException) as exc:
        asyncio.run(goals_router.toggle_task("missing", task_id))
    assert exc.value.status_code == 404

    asyncio.run(goals_router.delete_goal(goal_id))
    assert asyncio.run(goals_router.list_goals())["completed"] == []


def test_failed_toggle_maps_to_502_and_reverts(api):
    sign_in()
    created = asyncio.run(
        goals_router.create_goal(goals_router.CreateGoalRequest(title="Learn Rust", milestones=["Book"]))
    )
    api.fail_next("upsert")
    with pytest.raises(HTTPException) as exc:
        asyncio.run(goals_router.toggle_task(created["id"], created["tasks"][0]["id"]))
    assert exc.value.status_code == 502

    listing = asyncio.run(goals_router.list_goals())
    assert listing["active"][0]["progress"] == 0
    assert listing["active"][0]["write_failed"] is True


def test_empty_goal_title_is_422(api):
    sign_in()
    with pytest.raises(HTTPException) as exc:
        asyncio.run(goals_router.create_goal(goals_router.CreateGoalRequest(title="  ")))
    assert exc.value.status_code == 422


def test_journal_analyze_and_save(api):
    sign_in()
    analysis = asyncio.run(journal_router.analyze_entry(journal_router.AnalyzeRequest(content="Walked by the sea.")))
    assert analysis == {"mood": "Calm", "summary": "Settled.", "sentiment": 80}

    saved = asyncio.run(
        journal_router.save_entry(journal_router.SaveEntryRequest(content="Walked by the sea.", analysis=analysis))
    )
    assert saved["sentiment"] == 80
    assert saved["day_key"] is not None

    listing = asyncio.run(journal_router.list_entries())
    assert [e["id"] for e in listing["entries"]] == [saved["id"]]
    assert listing["trend"]["sufficient"] is False
    assert "Calm" in listing["moods"]

    with pytest.raises(HTTPException) as exc:
        asyncio.run(journal_router.save_entry(journal_router.SaveEntryRequest(content="")))
    assert exc.value.status_code == 422


def test_session_start_stop(api):
    started = asyncio.run(session_router.start_session())
    assert started["active"] is True
    assert started["started"] is True
    assert asyncio.run(session_router.start_session())["started"] is False

    stopped = asyncio.run(session_router.stop_session())
    assert stopped["active"] is False
    assert stopped["display"] == "0m 0s"


def test_mentor_chat_streams_plain_text(api):
    sign_in()

    async def read_body():
        response = await mentor_router.chat(mentor_router.ChatRequest(message="Where do I start?"))
        assert response.media_type == "text/plain"
        chunks = [chunk async for chunk in response.body_iterator]
        return "".join(c if isinstance(c, str) else c.decode() for c in chunks)

    assert asyncio.run(read_body()) == "Small steps."
    history = asyncio.run(mentor_router.get_history())
    assert history["messages"][0]["text"].startswith("Greetings, ada.")
    assert history["messages"][-1]["text"] == "Small steps."

    audio = asyncio.run(mentor_router.speak(mentor_router.SpeakRequest()))
    assert audio.body == b"pcm"


def test_report_generate_and_export(api):
    sign_in()
    with pytest.raises(HTTPException) as exc:
        asyncio.run(progress_router.generate())
    assert exc.value.status_code == 422

    asyncio.run(goals_router.create_goal(goals_router.CreateGoalRequest(title="Learn Rust", milestones=["Book"])))
    report = asyncio.run(progress_router.generate())
    assert report["score"] == 64

    exported = asyncio.run(progress_router.export_report())
    body = exported.body.decode()
    assert "Growth Score: 64/100" in body
    assert "User: ada" in body
    assert 'filename="GuideX_Report_w-curr.txt"' in exported.headers["content-disposition"]


def test_dashboard_and_analytics(api):
    sign_in()
    asyncio.run(goals_router.create_goal(goals_router.CreateGoalRequest(title="Learn Rust", milestones=["Book", "Project"])))
    dashboard = asyncio.run(progress_router.dashboard())
    assert dashboard["overall_progress"] == 0
    assert dashboard["streak"] == 1
    assert len(dashboard["top_goals"]) == 1

    analytics = asyncio.run(progress_router.analytics())
    assert len(analytics["weekly_effort"]) == 7
    assert analytics["category_distribution"] == {"Coding": 1}


def test_profile_update_and_interests(api):
    sign_in()
    updated = asyncio.run(profile_router.update_profile(profile_router.UpdateProfileRequest(bio="Builder")))
    assert updated["bio"] == "Builder"
    assert updated["name"] == "ada"

    with_interest = asyncio.run(profile_router.add_interest(profile_router.InterestRequest(interest="Rust")))
    assert with_interest["interests"] == ["Rust"]
    with pytest.raises(HTTPException) as exc:
        asyncio.run(profile_router.add_interest(profile_router.InterestRequest(interest="Rust")))
    assert exc.value.status_code == 409

    removed = asyncio.run(profile_router.remove_interest("Rust"))
    assert removed["interests"] == []

    asyncio.run(profile_router.sign_out())
    with pytest.raises(HTTPException) as exc:
        asyncio.run(profile_router.get_profile())
    assert exc.value.status_code == 401


def test_http_routes_and_domain_error_handler(api):
    app = create_app()

    @app.get("/boom")
    async def boom():
        raise StoreError("offline", operation="list")

    async def scenario():
        transport = httpx.ASGITransport(app=app)
        async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
            health = await client.get("/health")
            index = await client.get("/api/v1")
            failed = await client.get("/boom")
            session = await client.post("/api/v1/session/start")
        return health, index, failed, session

    health, index, failed, session = asyncio.run(scenario())
    assert health.json() == {"status": "ok", "service": "GuideX"}
    assert index.json()["areas"]["mentor"] == "/api/v1/mentor"
    assert failed.status_code == 502
    assert "detail" in failed.json()
    assert session.json()["active"] is True


def test_shutdown_drops_services(api):
    asyncio.run(deps.shutdown())
    assert deps._store is None
    assert deps._insight is None


def test_blank_milestone_title_is_422(api):
    sign_in()
    created = asyncio.run(goals_router.create_goal(goals_router.CreateGoalRequest(title="Learn Rust")))
    with pytest.raises(HTTPException) as exc:
        asyncio.run(goals_router.add_milestone(created["id"], goals_router.MilestoneRequest(title="   ")))
    assert exc.value.status_code == 422


def test_save_entry_can_request_analysis(api):
    sign_in()
    saved = asyncio.run(
        journal_router.save_entry(journal_router.SaveEntryRequest(content="Long walk, slept well.", analyze=True))
    )
    assert saved["mood"] == "Calm"
    assert saved["sentiment"] == 80
    assert saved["summary"] == "Settled."

    listing = asyncio.run(journal_router.list_entries())
    assert [e["id"] for e in listing["recent"]] == [saved["id"]]
