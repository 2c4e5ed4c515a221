"""
Process-wide services shared by the routers.

The API serves one signed-in owner per process (local dashboard). Tests swap
collaborators with configure() and start clean with reset().
"""
from typing import Optional

from fastapi import HTTPException

from guidex.exceptions import (
    AuthError,
    ConfigError,
    GuideXError,
    InsightError,
    StoreError,
    ValidationError,
)
from guidex.goal_service import GoalBoard
from guidex.insight import InsightService, close_insight_service, get_insight_service
from guidex.logger import get_logger
from guidex.mentor import MentorConversation
from guidex.profile_service import ProfileService, ProfileSync
from guidex.record_store import AuthContext, RecordStore, create_record_store
from guidex.reports import WeeklyReport
from guidex.session_timer import SessionTimerState, get_session_timer

logger = get_logger("api")

_auth: Optional[AuthContext] = None
_store: Optional[RecordStore] = None
_insight: Optional[InsightService] = None
_timer: Optional[SessionTimerState] = None
_board: Optional[GoalBoard] = None
_profile_sync: Optional[ProfileSync] = None
_mentor: Optional[MentorConversation] = None
_report: Optional[WeeklyReport] = None


def get_auth() -> AuthContext:
    global _auth
    if _auth is None:
        _auth = AuthContext()
    return _auth


def get_store() -> RecordStore:
    global _store
    if _store is None:
        _store = create_record_store(get_auth())
    return _store


def get_insight() -> InsightService:
    return _insight or get_insight_service()


def get_timer() -> SessionTimerState:
    return _timer or get_session_timer()


def get_goal_board() -> GoalBoard:
    global _board
    if _board is None:
        _board = GoalBoard(get_store())
    return _board


def get_profile_service() -> ProfileService:
    return get_profile_sync().service


def get_profile_sync() -> ProfileSync:
    global _profile_sync
    if _profile_sync is None:
        _profile_sync = ProfileSync(ProfileService(get_store()))
    return _profile_sync


def get_mentor(profile_name: Optional[str] = None) -> MentorConversation:
    global _mentor
    if _mentor is None:
        _mentor = MentorConversation(get_insight(), profile_name)
    return _mentor


def reset_mentor(profile_name: Optional[str] = None) -> MentorConversation:
    global _mentor
    if _mentor is not None:
        _mentor.cancel()
    _mentor = MentorConversation(get_insight(), profile_name)
    return _mentor


def get_report() -> WeeklyReport:
    global _report
    if _report is None:
        _report = WeeklyReport()
    return _report


def set_report(report: WeeklyReport) -> None:
    global _report
    _report = report


def clear_owner_state() -> None:
    """Forget everything cached for the previous owner."""
    global _board, _mentor, _report
    if _mentor is not None:
        _mentor.cancel()
    _board = None
    _mentor = None
    _report = None


def configure(
    store: Optional[RecordStore] = None,
    insight: Optional[InsightService] = None,
    timer: Optional[SessionTimerState] = None,
) -> None:
    global _auth, _store, _insight, _timer, _profile_sync
    if store is not None:
        _store = store
        _auth = store.auth
        _profile_sync = None
    if insight is not None:
        _insight = insight
    if timer is not None:
        _timer = timer
    clear_owner_state()


def reset() -> None:
    global _auth, _store, _insight, _timer, _profile_sync
    _auth = None
    _store = None
    _insight = None
    _timer = None
    _profile_sync = None
    clear_owner_state()


async def shutdown() -> None:
    """Close transports held by the store and the insight adapter."""
    if _store is not None:
        await _store.close()
    if _insight is not None:
        await _insight.adapter.close()
    else:
        await close_insight_service()
    reset()


def http_error(error: GuideXError) -> HTTPException:
    """Map a domain error onto an HTTP status."""
    if isinstance(error, AuthError):
        status = 401
    elif isinstance(error, ValidationError):
        status = 422
    elif isinstance(error, (StoreError, InsightError)):
        status = 502
    elif isinstance(error, ConfigError):
        status = 500
    else:
        status = 400
    if status >= 500:
        logger.error("Request failed: %s", error.message)
    return HTTPException(status_code=status, detail=error.get_user_message())
