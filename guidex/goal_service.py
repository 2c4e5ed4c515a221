"""
Goal board: the in-memory goal list behind the goals page and dashboard.

Milestone toggles are optimistic. The toggled goal is shown at once and
marked pending; if the store write fails the goal reverts to its last
confirmed snapshot, the failed version is kept in failed_writes for a retry,
and the error is re-raised to the caller.
"""
import dataclasses
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Dict, List, Optional, Set, Tuple

from guidex.drafts import GoalCreationDraft
from guidex.exceptions import AuthError, GuideXError, StoreError, ValidationError
from guidex.logger import get_logger
from guidex.metrics import compute_goal_progress, on_hold_goals, partition_goals
from guidex.models import Goal, GoalStatus, Task, clone, new_id
from guidex.record_store import GOALS, RecordStore

logger = get_logger("goal_service")


def apply_task_toggle(goal: Goal, task_id: str, now: Optional[datetime] = None) -> Goal:
    """
    Return a copy of `goal` with one milestone flipped.

    completed_at is set when the task becomes complete and cleared when it is
    unchecked. The goal status becomes "completed" when every milestone is
    done and "active" otherwise.
    """
    updated = clone(goal)
    task = updated.find_task(task_id)
    if task is None:
        raise ValueError(f"Task not found: {task_id}")

    task.completed = not task.completed
    if task.completed:
        task.completed_at = (now or datetime.now()).astimezone().isoformat()
    else:
        task.completed_at = None

    if compute_goal_progress(updated) == 100:
        updated.status = GoalStatus.COMPLETED
    else:
        updated.status = GoalStatus.ACTIVE
    return updated


@dataclass
class FailedWrite:
    goal: Goal
    error: GuideXError


class GoalBoard:
    """Goals of the signed-in owner plus selection and pending-write state."""

    def __init__(self, store: RecordStore, clock: Callable[[], datetime] = datetime.now):
        self.store = store
        self.clock = clock
        self.goals: List[Goal] = []
        self.selected_goal_id: Optional[str] = None
        self.pending: Set[str] = set()
        self.failed_writes: Dict[str, FailedWrite] = {}
        self.last_error: Optional[GuideXError] = None
        self._confirmed: Dict[str, Goal] = {}

    # ---------------------------------------------------------------------
    # Reads
    # ---------------------------------------------------------------------
    def get(self, goal_id: str) -> Optional[Goal]:
        for goal in self.goals:
            if goal.id == goal_id:
                return goal
        return None

    def require(self, goal_id: str) -> Goal:
        goal = self.get(goal_id)
        if goal is None:
            raise ValueError(f"Goal not found: {goal_id}")
        return goal

    @property
    def selected_goal(self) -> Optional[Goal]:
        return self.get(self.selected_goal_id) if self.selected_goal_id else None

    def partition(self) -> Tuple[List[Goal], List[Goal]]:
        return partition_goals(self.goals)

    @property
    def active_goals(self) -> List[Goal]:
        return self.partition()[0]

    @property
    def completed_goals(self) -> List[Goal]:
        return self.partition()[1]

    @property
    def on_hold(self) -> List[Goal]:
        return on_hold_goals(self.goals)

    def is_pending(self, goal_id: str) -> bool:
        return goal_id in self.pending

    async def refresh(self) -> List[Goal]:
        """Reload from the store. On failure the stale list is kept."""
        try:
            goals = await self.store.list(GOALS)
        except StoreError as e:
            self.last_error = e
            logger.warning("Goal refresh failed, keeping %d cached goals: %s", len(self.goals), e.message)
            return self.goals

        # a goal with an unconfirmed optimistic write keeps its local version
        local = {g.id: g for g in self.goals if g.id in self.pending}
        self.goals = [local.get(g.id, g) for g in goals]
        self._confirmed = {g.id: clone(g) for g in goals}
        self.last_error = None
        self._fix_selection()
        return self.goals

    # ---------------------------------------------------------------------
    # Selection
    # ---------------------------------------------------------------------
    def select_goal(self, goal_id: Optional[str]) -> Optional[Goal]:
        if goal_id is not None and self.get(goal_id) is None:
            raise ValueError(f"Goal not found: {goal_id}")
        self.selected_goal_id = goal_id
        return self.selected_goal

    def _fix_selection(self) -> None:
        if self.selected_goal_id and self.get(self.selected_goal_id):
            return
        active = self.active_goals
        if active:
            self.selected_goal_id = active[0].id
        elif self.goals:
            self.selected_goal_id = self.goals[0].id
        else:
            self.selected_goal_id = None

    # ---------------------------------------------------------------------
    # Writes
    # ---------------------------------------------------------------------
    def _put(self, goal: Goal) -> None:
        for i, existing in enumerate(self.goals):
            if existing.id == goal.id:
                self.goals[i] = goal
                return
        self.goals.insert(0, goal)

    def new_goal_draft(self) -> GoalCreationDraft:
        return GoalCreationDraft(save=self.create_goal, clock=self.clock)

    async def create_goal(self, goal: Goal) -> Goal:
        if not (goal.title or "").strip():
            raise ValidationError("Goal title is required", field="title")
        saved = await self.store.upsert(GOALS, goal)
        self._put(saved)
        self._confirmed[saved.id] = clone(saved)
        self.selected_goal_id = saved.id
        logger.info("Goal created: %s (%d milestones)", saved.title, len(saved.tasks))
        return saved

    async def toggle_task(self, goal_id: str, task_id: str, now: Optional[datetime] = None) -> Goal:
        goal = self.require(goal_id)
        updated = apply_task_toggle(goal, task_id, now or self.clock())
        return await self._write_optimistic(updated)

    async def retry_failed(self, goal_id: str) -> Goal:
        failed = self.failed_writes.get(goal_id)
        if failed is None:
            raise ValueError(f"No failed write for goal {goal_id}")
        return await self._write_optimistic(clone(failed.goal))

    async def _write_optimistic(self, updated: Goal) -> Goal:
        goal_id = updated.id
        if goal_id not in self._confirmed:
            current = self.get(goal_id)
            if current is not None:
                self._confirmed[goal_id] = clone(current)

        self._put(updated)
        self.pending.add(goal_id)
        try:
            saved = await self.store.upsert(GOALS, updated)
        except (StoreError, AuthError) as e:
            confirmed = self._confirmed.get(goal_id)
            if confirmed is not None:
                self._put(clone(confirmed))
            self.failed_writes[goal_id] = FailedWrite(goal=updated, error=e)
            self.last_error = e
            logger.error("Goal write failed, reverted %s: %s", goal_id, e.message)
            raise
        finally:
            self.pending.discard(goal_id)

        self._put(saved)
        self._confirmed[goal_id] = clone(saved)
        self.failed_writes.pop(goal_id, None)
        return saved

    async def add_milestone(self, goal_id: str, title: str) -> Goal:
        """Append a milestone; the goal goes back to active."""
        value = (title or "").strip()
        if not value:
            raise ValidationError("Milestone title is required", field="title")
        goal = self.require(goal_id)
        updated = clone(goal)
        updated.tasks.append(Task(id=new_id("task"), title=value))
        updated.status = GoalStatus.ACTIVE

        saved = await self.store.upsert(GOALS, updated)
        self._put(saved)
        self._confirmed[goal_id] = clone(saved)
        return saved

    async def set_status(self, goal_id: str, status: GoalStatus) -> Goal:
        goal = self.require(goal_id)
        updated = dataclasses.replace(clone(goal), status=GoalStatus(status))
        saved = await self.store.upsert(GOALS, updated)
        self._put(saved)
        self._confirmed[goal_id] = clone(saved)
        return saved

    async def delete_goal(self, goal_id: str) -> None:
        await self.store.delete(GOALS, goal_id)
        self.goals = [g for g in self.goals if g.id != goal_id]
        self._confirmed.pop(goal_id, None)
        self.failed_writes.pop(goal_id, None)
        if self.selected_goal_id == goal_id:
            self.selected_goal_id = None
        self._fix_selection()
        logger.info("Goal deleted: %s", goal_id)


class MilestoneComposer:
    """Inline "add milestone" input under a goal. Text survives a failed save."""

    def __init__(self, board: GoalBoard, goal_id: str):
        self.board = board
        self.goal_id = goal_id
        self.title = ""
        self.last_error: Optional[GuideXError] = None

    def set_title(self, title: str) -> None:
        self.title = title

    async def submit(self) -> Optional[Goal]:
        if not self.title.strip():
            return None
        try:
            goal = await self.board.add_milestone(self.goal_id, self.title)
        except (StoreError, AuthError) as e:
            self.last_error = e
            raise
        self.title = ""
        self.last_error = None
        return goal
