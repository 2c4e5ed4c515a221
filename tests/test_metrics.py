from datetime import date

from guidex.metrics import (
    build_category_distribution,
    build_mood_trend,
    build_progress_ring,
    build_weekly_effort,
    compute_goal_progress,
    compute_overall_progress,
    compute_report_stats,
    is_effectively_complete,
    latest_entry,
    on_hold_goals,
    partition_goals,
    recent_entries,
    round_percent,
    sort_entries,
    top_active_goals,
)
from guidex.models import Goal, GoalStatus, JournalEntry, Task, parse_timestamp

TODAY = date(2026, 10, 18)  # a Sunday


def make_goal(goal_id, done, total, status=GoalStatus.ACTIVE, category="Coding", completed_at=None):
    tasks = [
        Task(
            id=f"{goal_id}-t{i}",
            title=f"Step {i}",
            completed=i < done,
            completed_at=completed_at if i < done else None,
        )
        for i in range(total)
    ]
    return Goal(id=goal_id, title=goal_id.title(), category=category, status=status, tasks=tasks)


def make_entry(entry_id, created_at, sentiment=50, mood="Calm", label="", day_key=None):
    return JournalEntry(
        id=entry_id,
        content="...",
        date=label,
        mood=mood,
        sentiment=sentiment,
        created_at=created_at,
        day_key=day_key,
    )


def test_round_percent_half_up():
    assert round_percent(0, 0) == 0
    assert round_percent(1, 3) == 33
    assert round_percent(2, 3) == 67
    assert round_percent(1, 8) == 13
    assert round_percent(1, 200) == 1
    assert round_percent(4, 4) == 100


def test_goal_progress_bounds_and_empty_goal():
    assert compute_goal_progress(None) == 0
    assert compute_goal_progress(make_goal("empty", 0, 0)) == 0
    assert compute_goal_progress(make_goal("half", 1, 2)) == 50
    assert compute_goal_progress(make_goal("full", 3, 3)) == 100
    assert not is_effectively_complete(make_goal("empty", 0, 0))


def test_stale_active_status_counts_as_completed():
    stale = make_goal("stale", 2, 2, status=GoalStatus.ACTIVE)
    active, completed = partition_goals([stale])
    assert active == []
    assert completed == [stale]


def test_partition_is_disjoint_and_order_preserving():
    goals = [
        make_goal("a", 0, 2),
        make_goal("b", 2, 2, status=GoalStatus.COMPLETED),
        make_goal("c", 1, 3),
        make_goal("d", 0, 1, status=GoalStatus.ON_HOLD),
    ]
    active, completed = partition_goals(goals)
    assert [g.id for g in active] == ["a", "c"]
    assert [g.id for g in completed] == ["b", "d"]
    assert len(active) + len(completed) == len(goals)
    assert [g.id for g in on_hold_goals(goals)] == ["d"]


def test_top_active_goals_limits_to_three():
    goals = [make_goal(f"g{i}", 0, 1) for i in range(5)]
    assert [g.id for g in top_active_goals(goals)] == ["g0", "g1", "g2"]
    assert top_active_goals(goals, limit=0) == []


def test_overall_progress_weights_tasks_not_goals():
    goals = [make_goal("one", 1, 1), make_goal("nine", 0, 9)]
    # per-goal mean would be 50; flat rate is 1/10
    assert compute_overall_progress(goals) == 10
    assert compute_overall_progress([]) == 0
    assert compute_overall_progress(None) == 0
    assert build_progress_ring(goals) == {"completed": 10, "remaining": 90}


def test_overall_progress_one_of_one_and_one_of_ten():
    # 2 of 11 tasks; averaging per-goal percentages would give 55
    goals = [make_goal("a", 1, 1), make_goal("b", 1, 10)]
    assert compute_overall_progress(goals) == 18


def test_sort_entries_uses_created_at_and_missing_sorts_first():
    entries = [
        make_entry("late", "2026-10-17T10:00:00"),
        make_entry("missing", None),
        make_entry("early", "2026-10-10T10:00:00"),
    ]
    assert [e.id for e in sort_entries(entries)] == ["missing", "early", "late"]
    assert [e.id for e in recent_entries(entries, 2)] == ["late", "early"]
    assert latest_entry(entries).id == "late"
    assert latest_entry([]) is None


def test_mood_trend_window_is_chronological():
    entries = [
        make_entry(f"e{i}", f"2026-10-{i + 1:02d}T08:00:00", sentiment=i * 10)
        for i in range(9)
    ]
    entries.reverse()
    trend = build_mood_trend(entries, window_size=7)
    assert len(trend.points) == 7
    assert [p.sentiment for p in trend.points] == [20, 30, 40, 50, 60, 70, 80]
    assert trend.points[0].label == "Oct 3"
    assert trend.sufficient


def test_mood_trend_single_point_is_not_chartable():
    trend = build_mood_trend([make_entry("only", "2026-10-01T08:00:00")], window_size=10)
    assert len(trend.points) == 1
    assert not trend.sufficient
    assert trend.chartable() == []
    assert build_mood_trend([], window_size=10).points == []


def test_weekly_effort_has_seven_buckets_ending_today():
    buckets = build_weekly_effort([], [], today=TODAY)
    assert len(buckets) == 7
    assert buckets[0].day == "Mon"
    assert buckets[-1].day == "Sun"
    assert buckets[-1].date_label == "Oct 18, 2026"
    assert all(b.total_hours == 0 for b in buckets)


def test_weekly_effort_buckets_by_calendar_day():
    goals = [make_goal("g", 2, 3, completed_at="2026-10-17T21:30:00")]
    entries = [
        make_entry("a", "2026-10-17T08:00:00", label="Oct 17, 2026"),
        make_entry("b", "2026-10-18T08:00:00", label="Oct 18, 2026"),
        # stored day key wins over the label
        make_entry("c", "2026-10-01T08:00:00", label="Oct 1, 2026", day_key=date(2026, 10, 18).toordinal()),
        # outside the window
        make_entry("old", "2026-09-01T08:00:00", label="Sep 1, 2026"),
    ]
    buckets = build_weekly_effort(goals, entries, today=TODAY)
    saturday, sunday = buckets[-2], buckets[-1]
    assert saturday.reflection_hours == 0.5
    assert saturday.deep_work_hours == 3.0
    assert sunday.reflection_hours == 1.0
    assert sum(b.total_hours for b in buckets) == 4.5


def test_weekly_effort_skips_tasks_without_timestamp():
    goals = [make_goal("g", 1, 1, completed_at=None)]
    buckets = build_weekly_effort(goals, None, today=TODAY)
    assert sum(b.deep_work_hours for b in buckets) == 0


def test_category_distribution_counts_every_status():
    goals = [
        make_goal("a", 0, 1, category="Coding"),
        make_goal("b", 1, 1, category="Health", status=GoalStatus.COMPLETED),
        make_goal("c", 0, 1, category="Coding", status=GoalStatus.ON_HOLD),
    ]
    assert build_category_distribution(goals) == {"Coding": 2, "Health": 1}


def test_report_stats_rounds_hours_to_one_decimal():
    goals = [make_goal("g", 1, 3, completed_at="2026-10-18T09:00:00")]
    entries = [make_entry("a", "2026-10-18T08:00:00", label="Oct 18, 2026")]
    effort = build_weekly_effort(goals, entries, today=TODAY)
    stats = compute_report_stats(goals, effort, streak=4)
    assert stats.total_hours == 2.0
    assert stats.completion_rate == 33
    assert stats.streak == 4
    assert compute_report_stats([], [], None).streak == 0


def test_trimmed_fractional_seconds_parse():
    five = parse_timestamp("2026-10-18T08:00:00.12345+00:00")
    assert five is not None
    assert five.microsecond == 123450
    assert parse_timestamp("2026-10-18T08:00:00.1").microsecond == 100000
    assert parse_timestamp("2026-10-18 08:00:00.123456789").microsecond == 123456
    assert parse_timestamp("2026-10-18T08:00:00Z") is not None
    assert parse_timestamp("Oct 18") is None


def test_store_style_timestamps_keep_trend_order():
    entries = [
        make_entry("later", "2026-10-18T09:30:00.5+00:00", sentiment=80),
        make_entry("earlier", "2026-10-16T09:30:00.12345+00:00", sentiment=40),
    ]
    trend = build_mood_trend(entries, window_size=7)
    assert [p.sentiment for p in trend.points] == [40, 80]
    assert all(p.label for p in trend.points)
    assert latest_entry(entries).id == "later"
