"""
Metrics Engine for GuideX.

Pure functions deriving progress percentages, weekly effort buckets, mood
trends and distributions from goal and journal collections.

Rules shared by every function here:
- Task completion counts are the only authority on whether a goal is done;
  the stored status field may lag behind and is never trusted alone.
- Functions are total: None or empty collections give zero values, and a
  missing optional field (created_at, completed_at) just means "matches no
  bucket".
"""
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from guidex.config_manager import config
from guidex.models import (
    EPOCH,
    Goal,
    GoalStatus,
    JournalEntry,
    date_label,
    parse_timestamp,
    short_label,
)

WEEKDAY_NAMES = ("Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun")


@dataclass
class TrendPoint:
    label: str
    sentiment: int
    mood: str


@dataclass
class MoodTrend:
    points: List[TrendPoint]

    @property
    def sufficient(self) -> bool:
        """A single point is not a trend."""
        return len(self.points) > 1

    def chartable(self) -> List[TrendPoint]:
        return list(self.points) if self.sufficient else []


@dataclass
class EffortBucket:
    day: str
    date_label: str
    day_key: int
    reflection_hours: float = 0.0
    deep_work_hours: float = 0.0

    @property
    def total_hours(self) -> float:
        return self.reflection_hours + self.deep_work_hours

    def to_dict(self) -> Dict[str, object]:
        return {
            "name": self.day,
            "date": self.date_label,
            "hours": self.total_hours,
            "deepWork": self.deep_work_hours,
            "reflection": self.reflection_hours,
        }


@dataclass
class ReportStats:
    total_hours: float
    completion_rate: int
    streak: int


def _present(items: Optional[Iterable]) -> list:
    return [i for i in (items or []) if i is not None]


def round_percent(done: int, total: int) -> int:
    """round(100 * done / total) with half-up rounding, in integer arithmetic."""
    if total <= 0:
        return 0
    return (200 * done + total) // (2 * total)


# ---------------------------------------------------------------------
# Goal progress
# ---------------------------------------------------------------------
def compute_goal_progress(goal: Optional[Goal]) -> int:
    if goal is None:
        return 0
    done, total = goal.task_counts()
    return round_percent(done, total)


def is_effectively_complete(goal: Optional[Goal]) -> bool:
    return compute_goal_progress(goal) == 100


def partition_goals(goals: Optional[Sequence[Goal]]) -> Tuple[List[Goal], List[Goal]]:
    """
    Split goals into (active, completed), preserving input order.

    Active means stored status "active" and progress below 100. Everything
    else is completed, including an "active" goal whose milestones are all
    checked.
    """
    active: List[Goal] = []
    completed: List[Goal] = []
    for goal in _present(goals):
        if goal.status == GoalStatus.ACTIVE and compute_goal_progress(goal) < 100:
            active.append(goal)
        else:
            completed.append(goal)
    return active, completed


def top_active_goals(goals: Optional[Sequence[Goal]], limit: Optional[int] = None) -> List[Goal]:
    limit = config.DASHBOARD_TOP_GOALS if limit is None else limit
    active, _ = partition_goals(goals)
    return active[:max(0, limit)]


def on_hold_goals(goals: Optional[Sequence[Goal]]) -> List[Goal]:
    return [
        g for g in _present(goals)
        if g.status == GoalStatus.ON_HOLD and compute_goal_progress(g) < 100
    ]


def compute_overall_progress(goals: Optional[Sequence[Goal]]) -> int:
    """
    Flat completion rate over every milestone of every goal.

    A goal with one task weighs one task, not one goal: this is not the
    mean of per-goal percentages.
    """
    done = 0
    total = 0
    for goal in _present(goals):
        goal_done, goal_total = goal.task_counts()
        done += goal_done
        total += goal_total
    return round_percent(done, total)


def build_progress_ring(goals: Optional[Sequence[Goal]]) -> Dict[str, int]:
    progress = compute_overall_progress(goals)
    return {"completed": progress, "remaining": 100 - progress}


# ---------------------------------------------------------------------
# Journal
# ---------------------------------------------------------------------
def _created_sort_key(entry: JournalEntry) -> datetime:
    return parse_timestamp(entry.created_at) or EPOCH


def sort_entries(entries: Optional[Sequence[JournalEntry]], newest_first: bool = False) -> List[JournalEntry]:
    """Stable sort by created_at; missing timestamps sort as the epoch."""
    return sorted(_present(entries), key=_created_sort_key, reverse=newest_first)


def recent_entries(entries: Optional[Sequence[JournalEntry]], limit: Optional[int] = None) -> List[JournalEntry]:
    limit = config.RECENT_JOURNAL_ENTRIES if limit is None else limit
    return sort_entries(entries, newest_first=True)[:max(0, limit)]


def latest_entry(entries: Optional[Sequence[JournalEntry]]) -> Optional[JournalEntry]:
    ordered = recent_entries(entries, 1)
    return ordered[0] if ordered else None


def build_mood_trend(
    entries: Optional[Sequence[JournalEntry]],
    window_size: Optional[int] = None,
) -> MoodTrend:
    """
    Last `window_size` entries in chronological order.

    Labels come from created_at, never from the free-text date field.
    Check `MoodTrend.sufficient` before charting.
    """
    window_size = config.ANALYTICS_TREND_WINDOW if window_size is None else window_size
    if window_size <= 0:
        return MoodTrend(points=[])

    ordered = sort_entries(entries)[-window_size:]
    points = []
    for entry in ordered:
        created = parse_timestamp(entry.created_at)
        points.append(
            TrendPoint(
                label=short_label(created.date()) if created else "",
                sentiment=entry.sentiment,
                mood=entry.mood,
            )
        )
    return MoodTrend(points=points)


# ---------------------------------------------------------------------
# Weekly effort / distribution / reports
# ---------------------------------------------------------------------
def build_weekly_effort(
    goals: Optional[Sequence[Goal]],
    entries: Optional[Sequence[JournalEntry]],
    today: Optional[date] = None,
) -> List[EffortBucket]:
    """
    Exactly seven day buckets, oldest first, ending at `today`.

    Journal entries and completed milestones are matched on the calendar-day
    ordinal, not on a re-derived display string.
    """
    if today is None:
        today = date.today()
    elif isinstance(today, datetime):
        today = today.date()

    buckets: List[EffortBucket] = []
    by_key: Dict[int, EffortBucket] = {}
    for offset in range(6, -1, -1):
        day = today - timedelta(days=offset)
        bucket = EffortBucket(
            day=WEEKDAY_NAMES[day.weekday()],
            date_label=date_label(day),
            day_key=day.toordinal(),
        )
        buckets.append(bucket)
        by_key[bucket.day_key] = bucket

    for entry in _present(entries):
        bucket = by_key.get(entry.resolve_day_key())
        if bucket is not None:
            bucket.reflection_hours += config.REFLECTION_HOURS_PER_ENTRY

    for goal in _present(goals):
        for task in goal.tasks or []:
            if not task.completed:
                continue
            completed_at = parse_timestamp(task.completed_at)
            if completed_at is None:
                continue
            bucket = by_key.get(completed_at.date().toordinal())
            if bucket is not None:
                bucket.deep_work_hours += config.DEEP_WORK_HOURS_PER_TASK

    return buckets


def build_category_distribution(goals: Optional[Sequence[Goal]]) -> Dict[str, int]:
    """Goals per category, every status counted, first-seen order."""
    counts: Dict[str, int] = {}
    for goal in _present(goals):
        counts[goal.category] = counts.get(goal.category, 0) + 1
    return counts


def compute_report_stats(
    goals: Optional[Sequence[Goal]],
    weekly_effort: Optional[Sequence[EffortBucket]],
    streak: Optional[int],
) -> ReportStats:
    total_hours = sum(b.total_hours for b in _present(weekly_effort))
    return ReportStats(
        total_hours=round(total_hours, 1),
        completion_rate=compute_overall_progress(goals),
        streak=max(0, streak or 0),
    )
