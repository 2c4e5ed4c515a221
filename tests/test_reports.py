import asyncio
from datetime import datetime

import pytest

from guidex.exceptions import InsightError, ValidationError
from guidex.insight import InsightService
from guidex.models import Goal, Task, UserProfile
from guidex.reports import (
    WeeklyReport,
    build_report_prompt,
    export_report_text,
    generate_report,
    report_filename,
)


def sample_goals():
    return [
        Goal(
            id="g1",
            title="Learn Rust",
            tasks=[Task(id="a", title="Book", completed=True), Task(id="b", title="Project")],
        ),
        Goal(id="g2", title="Run a 10k"),
    ]


def test_prompt_lists_goal_progress():
    prompt = build_report_prompt(sample_goals(), UserProfile(id="u", name="Ada"))
    assert "user Ada" in prompt
    assert "Learn Rust: 50% completed, Run a 10k: 0% completed" in prompt
    assert "Explorer" in build_report_prompt(sample_goals(), None)


def test_generate_requires_goals(scripted_adapter):
    with pytest.raises(ValidationError):
        asyncio.run(generate_report(InsightService(scripted_adapter()), [], None))


def test_generate_parses_fenced_json(scripted_adapter):
    reply = (
        "```json\n"
        '{"strengths": ["Consistent reading"], "weaknesses": ["No running"], '
        '"recommendation": "Book two runs.", "score": 82}\n'
        "```"
    )
    report = asyncio.run(generate_report(InsightService(scripted_adapter(reply=reply)), sample_goals(), None))
    assert report.score == 82
    assert report.strengths == ["Consistent reading"]
    assert report.weaknesses == ["No running"]
    assert report.summary == "Book two runs."
    assert report.status == "draft"


def test_missing_score_defaults_to_seventy(scripted_adapter):
    reply = '{"strengths": [], "weaknesses": [], "recommendation": "Keep going."}'
    report = asyncio.run(generate_report(InsightService(scripted_adapter(reply=reply)), sample_goals(), None))
    assert report.score == 70


def test_unparsable_reply_raises(scripted_adapter):
    service = InsightService(scripted_adapter(error=InsightError("down")))
    with pytest.raises(InsightError):
        asyncio.run(generate_report(service, sample_goals(), None))


def test_export_layout():
    report = WeeklyReport(
        id="w-curr",
        score=82,
        strengths=["Consistent reading"],
        weaknesses=["No running"],
        summary="Book two runs.",
    )
    text = export_report_text(report, "Ada", datetime(2026, 10, 18, 9, 0, 0))
    lines = text.splitlines()
    assert lines[0] == "GUIDEX PERSONAL MENTOR REPORT"
    assert "User: Ada" in lines
    assert "Growth Score: 82/100" in lines
    assert "Status: DRAFT" in lines
    assert "[✓] Consistent reading" in lines
    assert "[!] No running" in lines
    assert lines[-1] == "Generated via GuideX AI on 2026-10-18 09:00:00"
    assert report_filename(report) == "GuideX_Report_w-curr.txt"
