"""
Weekly mentor reports: prompt, model call and plain-text export.
"""
from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import Any, List, Optional, Sequence

from guidex.config_manager import config
from guidex.exceptions import InsightError, ValidationError
from guidex.insight.service import InsightService
from guidex.logger import get_logger
from guidex.metrics import compute_goal_progress
from guidex.models import Goal, UserProfile
from guidex.utils import load_prompt, parse_llm_json

logger = get_logger("reports")

WAITING = "Waiting for analysis..."


@dataclass
class WeeklyReport:
    id: str = "w-curr"
    week_range: str = "Current Learning Period"
    score: int = 0
    strengths: List[str] = field(default_factory=lambda: [WAITING])
    weaknesses: List[str] = field(default_factory=lambda: [WAITING])
    summary: str = "Start tracking your goals and journaling to generate a comprehensive AI report."
    status: str = "draft"  # draft | finalized

    def to_dict(self) -> dict:
        return asdict(self)


def _profile_name(profile: Optional[UserProfile]) -> str:
    return (profile.name if profile and profile.name else "") or config.DEFAULT_PROFILE_NAME


def _string_list(value: Any) -> List[str]:
    if isinstance(value, str):
        value = [value]
    if not isinstance(value, list):
        return []
    return [str(v).strip() for v in value if str(v).strip()]


def build_report_prompt(goals: Sequence[Goal], profile: Optional[UserProfile]) -> str:
    goal_context = ", ".join(
        f"{g.title}: {compute_goal_progress(g)}% completed" for g in goals if g is not None
    )
    return load_prompt("report_request", {"name": _profile_name(profile), "goals": goal_context})


async def generate_report(
    insight: InsightService,
    goals: Sequence[Goal],
    profile: Optional[UserProfile],
    base: Optional[WeeklyReport] = None,
) -> WeeklyReport:
    """
    Ask the mentor model for a report on the current goals.

    Raises:
        ValidationError: no goals to analyse
        InsightError: the model reply is not a JSON object
    """
    goals = [g for g in (goals or []) if g is not None]
    if not goals:
        raise ValidationError("Please create some goals first so I have data to analyze.", field="goals")

    reply = await insight.complete(build_report_prompt(goals, profile))
    data = parse_llm_json(reply)
    if data is None:
        logger.warning("Report reply was not JSON: %.80s", reply)
        raise InsightError(
            "AI was unable to generate the report.",
            provider=insight.adapter.provider,
            model_name=insight.model_name,
        )

    try:
        score = int(data.get("score") or config.DEFAULT_REPORT_SCORE)
    except (TypeError, ValueError):
        score = config.DEFAULT_REPORT_SCORE

    report = base or WeeklyReport()
    return WeeklyReport(
        id=report.id,
        week_range=report.week_range,
        score=max(0, min(100, score)),
        strengths=_string_list(data.get("strengths")),
        weaknesses=_string_list(data.get("weaknesses")),
        summary=str(data.get("recommendation") or "").strip(),
        status=report.status,
    )


def report_filename(report: WeeklyReport) -> str:
    return f"GuideX_Report_{report.id}.txt"


def export_report_text(
    report: WeeklyReport,
    profile_name: Optional[str] = None,
    generated_at: Optional[datetime] = None,
) -> str:
    generated_at = generated_at or datetime.now()
    lines = [
        "GUIDEX PERSONAL MENTOR REPORT",
        "==============================",
        f"Report ID: {report.id}",
        f"User: {profile_name or config.DEFAULT_PROFILE_NAME}",
        f"Period: {report.week_range}",
        f"Growth Score: {report.score}/100",
        f"Status: {report.status.upper()}",
        "",
        "SUMMARY",
        "-------",
        report.summary,
        "",
        "KEY STRENGTHS",
        "-------------",
        *[f"[✓] {s}" for s in report.strengths],
        "",
        "AREAS FOR GROWTH",
        "----------------",
        *[f"[!] {w}" for w in report.weaknesses],
        "",
        "MENTOR RECOMMENDATION",
        "---------------------",
        "Stay focused on your primary learning objectives.",
        "Consistency is the multiplier of talent.",
        "",
        f"Generated via GuideX AI on {generated_at:%Y-%m-%d %H:%M:%S}",
    ]
    return "\n".join(lines)
