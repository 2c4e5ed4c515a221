from typing import Any, Dict, List, Optional

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel

from guidex.config_manager import config
from guidex.exceptions import GuideXError, ValidationError
from guidex.goal_service import GoalBoard, MilestoneComposer
from guidex.metrics import compute_goal_progress
from guidex.models import Goal, GoalStatus
from web.backend.deps import get_goal_board, http_error

router = APIRouter()


class CreateGoalRequest(BaseModel):
    title: str
    deadline: str = ""
    category: Optional[str] = None
    milestones: List[str] = []


class MilestoneRequest(BaseModel):
    title: str


class StatusRequest(BaseModel):
    status: str


def goal_payload(goal: Goal, board: Optional[GoalBoard] = None) -> Dict[str, Any]:
    data = goal.to_dict()
    data["progress"] = compute_goal_progress(goal)
    if board is not None:
        data["pending"] = board.is_pending(goal.id)
        data["write_failed"] = goal.id in board.failed_writes
    return data


async def _board_with(goal_id: str) -> GoalBoard:
    board = get_goal_board()
    if board.get(goal_id) is None:
        await board.refresh()
    if board.get(goal_id) is None:
        raise HTTPException(status_code=404, detail=f"Goal not found: {goal_id}")
    return board


@router.get("")
async def list_goals():
    """Goals split into active / completed, plus the current selection."""
    board = get_goal_board()
    await board.refresh()
    active, completed = board.partition()
    return {
        "active": [goal_payload(g, board) for g in active],
        "completed": [goal_payload(g, board) for g in completed],
        "on_hold": [g.id for g in board.on_hold],
        "selected_goal_id": board.selected_goal_id,
        "categories": list(config.GOAL_CATEGORIES),
    }


@router.post("")
async def create_goal(request: CreateGoalRequest):
    board = get_goal_board()
    draft = board.new_goal_draft()
    draft.begin_edit()
    try:
        draft.set_field("title", request.title)
        draft.set_field("deadline", request.deadline)
        if request.category:
            draft.set_field("category", request.category)
        for title in request.milestones:
            draft.add_milestone_title(title)
        await draft.commit()
    except GuideXError as e:
        raise http_error(e)
    return goal_payload(draft.created, board)


@router.post("/{goal_id}/select")
async def select_goal(goal_id: str):
    board = await _board_with(goal_id)
    board.select_goal(goal_id)
    return {"selected_goal_id": goal_id}


@router.post("/{goal_id}/tasks/{task_id}/toggle")
async def toggle_task(goal_id: str, task_id: str):
    board = await _board_with(goal_id)
    try:
        goal = await board.toggle_task(goal_id, task_id)
    except ValueError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except GuideXError as e:
        raise http_error(e)
    return goal_payload(goal, board)


@router.post("/{goal_id}/retry")
async def retry_goal_write(goal_id: str):
    board = await _board_with(goal_id)
    try:
        goal = await board.retry_failed(goal_id)
    except ValueError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except GuideXError as e:
        raise http_error(e)
    return goal_payload(goal, board)


@router.post("/{goal_id}/milestones")
async def add_milestone(goal_id: str, request: MilestoneRequest):
    board = await _board_with(goal_id)
    composer = MilestoneComposer(board, goal_id)
    composer.set_title(request.title)
    try:
        goal = await composer.submit()
    except GuideXError as e:
        raise http_error(e)
    if goal is None:
        raise http_error(ValidationError("Milestone title is required", field="title"))
    return goal_payload(goal, board)


@router.post("/{goal_id}/status")
async def set_goal_status(goal_id: str, request: StatusRequest):
    try:
        status = GoalStatus(request.status)
    except ValueError:
        raise HTTPException(status_code=422, detail="status must be one of active | completed | on-hold")
    board = await _board_with(goal_id)
    try:
        goal = await board.set_status(goal_id, status)
    except GuideXError as e:
        raise http_error(e)
    return goal_payload(goal, board)


@router.delete("/{goal_id}")
async def delete_goal(goal_id: str):
    board = get_goal_board()
    try:
        await board.delete_goal(goal_id)
    except GuideXError as e:
        raise http_error(e)
    return {"deleted": goal_id, "selected_goal_id": board.selected_goal_id}
