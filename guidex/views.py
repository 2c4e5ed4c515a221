"""
Page snapshots and live recomputation.

Snapshots are pure functions of the current record lists. LiveView
subscribes to record kinds and rebuilds its snapshot from a full reload on
every change notification.
"""
import asyncio
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Awaitable, Callable, Dict, Generic, Iterable, List, Optional, Sequence, Tuple, TypeVar

from guidex.config_manager import config
from guidex.exceptions import StoreError
from guidex.logger import get_logger
from guidex.metrics import (
    EffortBucket,
    MoodTrend,
    ReportStats,
    build_category_distribution,
    build_mood_trend,
    build_progress_ring,
    build_weekly_effort,
    compute_goal_progress,
    compute_overall_progress,
    compute_report_stats,
    latest_entry,
    partition_goals,
    recent_entries,
    sort_entries,
    top_active_goals,
)
from guidex.models import Goal, JournalEntry, UserProfile
from guidex.record_store import GOALS, JOURNAL_ENTRIES, PROFILES, RecordStore, Subscription
from guidex.session_timer import SessionTimerState

S = TypeVar("S")

logger = get_logger("views")


def _goal_card(goal: Goal) -> Dict[str, Any]:
    data = goal.to_dict()
    data["progress"] = compute_goal_progress(goal)
    return data


@dataclass
class DashboardSnapshot:
    top_goals: List[Goal] = field(default_factory=list)
    active_goal_count: int = 0
    overall_progress: int = 0
    progress_ring: Dict[str, int] = field(default_factory=lambda: {"completed": 0, "remaining": 100})
    streak: int = 0
    profile_name: str = ""
    latest_mood: Optional[str] = None
    session_active: bool = False
    session_readout: str = "0m 0s"

    @classmethod
    def build(
        cls,
        goals: Sequence[Goal],
        entries: Sequence[JournalEntry],
        profile: Optional[UserProfile],
        timer: Optional[SessionTimerState] = None,
    ) -> "DashboardSnapshot":
        active, _ = partition_goals(goals)
        latest = latest_entry(entries)
        return cls(
            top_goals=top_active_goals(goals),
            active_goal_count=len(active),
            overall_progress=compute_overall_progress(goals),
            progress_ring=build_progress_ring(goals),
            streak=profile.streak if profile else 0,
            profile_name=(profile.name if profile else "") or config.DEFAULT_PROFILE_NAME,
            latest_mood=latest.mood if latest else None,
            session_active=timer.is_active if timer else False,
            session_readout=timer.readout() if timer else "0m 0s",
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "top_goals": [_goal_card(g) for g in self.top_goals],
            "active_goal_count": self.active_goal_count,
            "overall_progress": self.overall_progress,
            "progress_ring": dict(self.progress_ring),
            "streak": self.streak,
            "profile_name": self.profile_name,
            "latest_mood": self.latest_mood,
            "session": {"active": self.session_active, "display": self.session_readout},
        }


@dataclass
class JournalSnapshot:
    entries: List[JournalEntry] = field(default_factory=list)  # newest first
    recent: List[JournalEntry] = field(default_factory=list)
    trend: MoodTrend = field(default_factory=lambda: MoodTrend(points=[]))

    @classmethod
    def build(cls, entries: Sequence[JournalEntry]) -> "JournalSnapshot":
        return cls(
            entries=sort_entries(entries, newest_first=True),
            recent=recent_entries(entries),
            trend=build_mood_trend(entries, config.JOURNAL_TREND_WINDOW),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "entries": [e.to_dict() for e in self.entries],
            "recent": [e.to_dict() for e in self.recent],
            "trend": {
                "sufficient": self.trend.sufficient,
                "points": [p.__dict__ for p in self.trend.points],
            },
        }


@dataclass
class AnalyticsSnapshot:
    weekly_effort: List[EffortBucket] = field(default_factory=list)
    mood_trend: MoodTrend = field(default_factory=lambda: MoodTrend(points=[]))
    category_distribution: Dict[str, int] = field(default_factory=dict)
    stats: ReportStats = field(default_factory=lambda: ReportStats(0.0, 0, 0))

    @classmethod
    def build(
        cls,
        goals: Sequence[Goal],
        entries: Sequence[JournalEntry],
        profile: Optional[UserProfile],
        today: Optional[date] = None,
    ) -> "AnalyticsSnapshot":
        effort = build_weekly_effort(goals, entries, today)
        return cls(
            weekly_effort=effort,
            mood_trend=build_mood_trend(entries, config.ANALYTICS_TREND_WINDOW),
            category_distribution=build_category_distribution(goals),
            stats=compute_report_stats(goals, effort, profile.streak if profile else 0),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "weekly_effort": [b.to_dict() for b in self.weekly_effort],
            "mood_trend": {
                "sufficient": self.mood_trend.sufficient,
                "points": [p.__dict__ for p in self.mood_trend.points],
            },
            "category_distribution": dict(self.category_distribution),
            "stats": self.stats.__dict__,
        }


async def fetch_records(store: RecordStore) -> Tuple[List[Goal], List[JournalEntry], Optional[UserProfile]]:
    """Goals, journal entries and profile of the current owner, in parallel."""
    profile_call: Awaitable[Optional[UserProfile]]
    if store.auth.is_authenticated:
        profile_call = store.get(PROFILES, store.auth.owner_id)
    else:
        profile_call = asyncio.sleep(0, result=None)
    goals, entries, profile = await asyncio.gather(
        store.list(GOALS),
        store.list(JOURNAL_ENTRIES),
        profile_call,
    )
    return goals, entries, profile


async def load_dashboard(store: RecordStore, timer: Optional[SessionTimerState] = None) -> DashboardSnapshot:
    goals, entries, profile = await fetch_records(store)
    return DashboardSnapshot.build(goals, entries, profile, timer)


async def load_analytics(store: RecordStore, today: Optional[date] = None) -> AnalyticsSnapshot:
    goals, entries, profile = await fetch_records(store)
    return AnalyticsSnapshot.build(goals, entries, profile, today)


async def load_journal(store: RecordStore) -> JournalSnapshot:
    entries = await store.list(JOURNAL_ENTRIES)
    return JournalSnapshot.build(entries)


class LiveView(Generic[S]):
    """
    A snapshot kept current by store change notifications.

    Every notification triggers a full reload, so repeated notifications
    converge on the same snapshot. A failed reload is logged and the stale
    snapshot stays visible.
    """

    def __init__(self, store: RecordStore, kinds: Iterable[str], loader: Callable[[], Awaitable[S]]):
        self.store = store
        self.loader = loader
        self.snapshot: Optional[S] = None
        self.last_error: Optional[StoreError] = None
        self.reload_count = 0
        self._generation = 0
        self._subscriptions: List[Subscription] = [store.subscribe(kind, self.reload) for kind in kinds]

    @property
    def closed(self) -> bool:
        return not self._subscriptions

    async def reload(self) -> Optional[S]:
        self._generation += 1
        generation = self._generation
        try:
            snapshot = await self.loader()
        except StoreError as e:
            self.last_error = e
            logger.warning("Live reload failed, keeping stale snapshot: %s", e.message)
            return self.snapshot

        # an older reload finishing late must not overwrite a newer one
        if generation == self._generation:
            self.snapshot = snapshot
            self.last_error = None
            self.reload_count += 1
        return self.snapshot

    def close(self) -> None:
        for subscription in self._subscriptions:
            subscription.unsubscribe()
        self._subscriptions = []
