"""
Core data models for GuideX.
Goals with milestone checklists, journal entries and the user profile, plus
the date/timestamp helpers every other module relies on.

Wire format notes:
- Task keeps the short keys (t / c / completedAt) the goals table stores in
  its JSON column; from_dict also accepts the long names.
- UserProfile.overall_progress is canonical. overallProgress is a deprecated
  alias, accepted on read and never written.
"""
import copy
import re
import uuid
from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Any, Dict, List, Optional, TypeVar

T = TypeVar("T")

DATE_LABEL_FORMAT = "%b %d, %Y"
EPOCH = datetime(1970, 1, 1)

# Postgres trims trailing zeros from fractional seconds; fromisoformat before
# 3.11 only takes 3 or 6 digits.
_FRACTION = re.compile(r"([T ]\d{2}:\d{2}:\d{2})\.(\d+)")


class GoalStatus(str, Enum):
    ACTIVE = "active"
    COMPLETED = "completed"
    ON_HOLD = "on-hold"


def new_id(prefix: str) -> str:
    return f"{prefix}_{uuid.uuid4().hex[:8]}"


def now_iso() -> str:
    return datetime.now().astimezone().isoformat()


def clone(record: T) -> T:
    """Deep copy, so a draft never aliases the committed record."""
    return copy.deepcopy(record)


def _normalize_iso(value: str) -> str:
    text = value.strip().replace("Z", "+00:00")
    return _FRACTION.sub(lambda m: f"{m.group(1)}.{(m.group(2) + '00000')[:6]}", text, count=1)


def parse_timestamp(value: Any) -> Optional[datetime]:
    """
    Parse an ISO timestamp into a naive local datetime.

    Aware values are converted to local time first so that naive and aware
    inputs compare. Returns None for anything unparsable.
    """
    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, str) and value.strip():
        try:
            dt = datetime.fromisoformat(_normalize_iso(value))
        except ValueError:
            return None
    else:
        return None

    if dt.tzinfo is not None:
        dt = dt.astimezone().replace(tzinfo=None)
    return dt


def date_label(d: date) -> str:
    """Journal entry date label, e.g. 'Oct 18, 2026'."""
    return f"{d:%b} {d.day}, {d.year}"


def short_label(d: date) -> str:
    """Chart axis label, e.g. 'Oct 18'."""
    return f"{d:%b} {d.day}"


def parse_date_label(label: Any) -> Optional[date]:
    if not isinstance(label, str) or not label.strip():
        return None
    try:
        return datetime.strptime(label.strip(), DATE_LABEL_FORMAT).date()
    except ValueError:
        return None


def clamp_sentiment(value: Any) -> int:
    try:
        score = int(round(float(value)))
    except (TypeError, ValueError, OverflowError):
        return 0
    return max(0, min(100, score))


@dataclass
class Task:
    """A milestone inside a goal. Owned by its goal, no standalone identity."""
    id: str
    title: str
    completed: bool = False
    completed_at: Optional[str] = None  # present iff completed

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"id": self.id, "t": self.title, "c": self.completed}
        if self.completed and self.completed_at:
            data["completedAt"] = self.completed_at
        return data

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "Task":
        completed = bool(d.get("c", d.get("completed", False)))
        completed_at = d.get("completedAt", d.get("completed_at")) if completed else None
        return cls(
            id=str(d.get("id", "")),
            title=str(d.get("t", d.get("title", ""))),
            completed=completed,
            completed_at=completed_at,
        )


@dataclass
class Goal:
    id: str
    title: str
    deadline: str = ""  # ISO date, advisory only
    category: str = ""
    status: GoalStatus = GoalStatus.ACTIVE
    tasks: List[Task] = field(default_factory=list)
    created_at: Optional[str] = None
    user_id: Optional[str] = None

    def task_counts(self) -> "tuple[int, int]":
        """(done, total)"""
        tasks = self.tasks or []
        return sum(1 for t in tasks if t.completed), len(tasks)

    def find_task(self, task_id: str) -> Optional[Task]:
        for task in self.tasks or []:
            if task.id == task_id:
                return task
        return None

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "id": self.id,
            "title": self.title,
            "deadline": self.deadline,
            "category": self.category,
            "status": self.status.value,
            "tasks": [t.to_dict() for t in self.tasks],
            "created_at": self.created_at,
        }
        if self.user_id:
            data["user_id"] = self.user_id
        return data

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "Goal":
        try:
            status = GoalStatus(d.get("status") or "active")
        except ValueError:
            status = GoalStatus.ACTIVE
        return cls(
            id=str(d["id"]),
            title=d.get("title", ""),
            deadline=d.get("deadline") or "",
            category=d.get("category") or "",
            status=status,
            tasks=[Task.from_dict(t) for t in (d.get("tasks") or [])],
            created_at=d.get("created_at"),
            user_id=d.get("user_id"),
        )


@dataclass
class JournalEntry:
    id: str
    content: str
    date: str = ""  # display label, not unique, not an ordering key
    mood: str = ""
    sentiment: int = 0
    summary: str = ""
    created_at: Optional[str] = None  # authoritative ordering key
    day_key: Optional[int] = None  # date.toordinal() of the local day, set at write time
    user_id: Optional[str] = None

    def resolve_day_key(self) -> Optional[int]:
        """
        Calendar-day ordinal used for bucketing.

        Stored key first, then the date label, then created_at.
        """
        if isinstance(self.day_key, int) and self.day_key > 0:
            return self.day_key
        labelled = parse_date_label(self.date)
        if labelled:
            return labelled.toordinal()
        created = parse_timestamp(self.created_at)
        if created:
            return created.date().toordinal()
        return None

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "id": self.id,
            "date": self.date,
            "content": self.content,
            "mood": self.mood,
            "sentiment": self.sentiment,
            "summary": self.summary,
            "created_at": self.created_at,
            "day_key": self.day_key,
        }
        if self.user_id:
            data["user_id"] = self.user_id
        return data

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "JournalEntry":
        day_key = d.get("day_key")
        return cls(
            id=str(d["id"]),
            content=d.get("content") or "",
            date=d.get("date") or "",
            mood=d.get("mood") or "",
            sentiment=clamp_sentiment(d.get("sentiment", 0)),
            summary=d.get("summary") or "",
            created_at=d.get("created_at"),
            day_key=day_key if isinstance(day_key, int) else None,
            user_id=d.get("user_id"),
        )


@dataclass
class UserProfile:
    """One per authenticated owner; id is the owner id."""
    id: str
    name: str = ""
    email: str = ""
    avatar: str = ""
    streak: int = 0
    overall_progress: int = 0
    interests: List[str] = field(default_factory=list)
    title: Optional[str] = None
    bio: Optional[str] = None
    location: Optional[str] = None
    website: Optional[str] = None
    created_at: Optional[str] = None

    def add_interest(self, interest: str) -> bool:
        """Append unless blank or already present. Returns True if added."""
        value = (interest or "").strip()
        if not value or value in self.interests:
            return False
        self.interests.append(value)
        return True

    def remove_interest(self, interest: str) -> bool:
        if interest not in self.interests:
            return False
        self.interests = [i for i in self.interests if i != interest]
        return True

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "avatar": self.avatar,
            "streak": self.streak,
            "overall_progress": self.overall_progress,
            "interests": list(self.interests),
            "title": self.title,
            "bio": self.bio,
            "location": self.location,
            "website": self.website,
            "created_at": self.created_at,
        }

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "UserProfile":
        progress = d.get("overall_progress")
        if progress is None:
            progress = d.get("overallProgress", 0)
        return cls(
            id=str(d["id"]),
            name=d.get("name") or "",
            email=d.get("email") or "",
            avatar=d.get("avatar") or "",
            streak=max(0, int(d.get("streak") or 0)),
            overall_progress=int(progress or 0),
            interests=list(dict.fromkeys(d.get("interests") or [])),
            title=d.get("title"),
            bio=d.get("bio"),
            location=d.get("location"),
            website=d.get("website"),
            created_at=d.get("created_at"),
        )
