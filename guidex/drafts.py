"""
Draft editing state machine.

One DraftEditor per editable entity (goal creation form, journal composer,
profile edit). States: viewing -> editing on begin_edit(), editing -> viewing
on a successful commit() or on discard().

The draft is a deep copy of the committed record; field edits never reach
the committed record until the store write has succeeded.
"""
import dataclasses
from datetime import datetime
from enum import Enum
from typing import Any, Awaitable, Callable, Generic, List, Optional, Sequence, TypeVar

from guidex.config_manager import config
from guidex.exceptions import AuthError, GuideXError, StoreError, ValidationError
from guidex.insight.service import InsightService, SentimentResult
from guidex.logger import get_logger
from guidex.models import (
    Goal,
    GoalStatus,
    JournalEntry,
    Task,
    UserProfile,
    clone,
    date_label,
    new_id,
)

T = TypeVar("T")
SaveCallable = Callable[[Any], Awaitable[Any]]

logger = get_logger("drafts")


class DraftState(str, Enum):
    VIEWING = "viewing"
    EDITING = "editing"


class DraftEditor(Generic[T]):
    """Generic commit/discard editor around a committed record."""

    required_fields: Sequence[str] = ()

    def __init__(
        self,
        committed: T,
        save: SaveCallable,
        required_fields: Optional[Sequence[str]] = None,
    ):
        self.committed: T = committed
        self.draft: Optional[T] = None
        self.state = DraftState.VIEWING
        self.last_error: Optional[GuideXError] = None
        self.saving = False
        self._save = save
        if required_fields is not None:
            self.required_fields = tuple(required_fields)

    @property
    def is_editing(self) -> bool:
        return self.state == DraftState.EDITING

    def _require_editing(self) -> T:
        if not self.is_editing or self.draft is None:
            raise ValidationError("Not editing; call begin_edit() first")
        return self.draft

    def begin_edit(self) -> T:
        if self.is_editing and self.draft is not None:
            return self.draft
        self.draft = clone(self.committed)
        self.state = DraftState.EDITING
        self.last_error = None
        return self.draft

    def set_field(self, name: str, value: Any) -> T:
        """Replace one field on the draft; every other field is untouched."""
        draft = self._require_editing()
        field_names = {f.name for f in dataclasses.fields(draft)}
        if name not in field_names or name == "id":
            raise ValidationError(f"Unknown or read-only field '{name}'", field=name)
        self.draft = dataclasses.replace(draft, **{name: value})
        return self.draft

    def validate(self, record: T) -> None:
        for name in self.required_fields:
            value = getattr(record, name, None)
            if value is None or (isinstance(value, str) and not value.strip()):
                raise ValidationError(f"'{name}' is required", field=name)

    def build(self) -> T:
        """Record to persist. Subclasses fill in derived fields here."""
        return self._require_editing()

    async def commit(self) -> T:
        """
        Validate, persist, then promote the draft.

        ValidationError, StoreError and AuthError leave the editor in the
        editing state with the draft intact, and are re-raised.
        """
        self._require_editing()
        try:
            record = self.build()
            self.validate(record)
        except ValidationError as e:
            self.last_error = e
            raise

        self.saving = True
        try:
            saved = await self._save(record)
        except (StoreError, AuthError) as e:
            self.last_error = e
            logger.warning("Commit failed, draft kept: %s", e.message)
            raise
        finally:
            self.saving = False

        self.committed = saved if isinstance(saved, type(record)) else record
        self.draft = None
        self.state = DraftState.VIEWING
        self.last_error = None
        self._after_commit()
        return self.committed

    def _after_commit(self) -> None:
        pass

    def discard(self) -> T:
        self.draft = None
        self.state = DraftState.VIEWING
        self.last_error = None
        return self.committed

    def dismiss_error(self) -> None:
        self.last_error = None


class GoalCreationDraft(DraftEditor[Goal]):
    """New-goal form: title, deadline, category and an initial milestone list."""

    required_fields = ("title",)

    def __init__(
        self,
        save: SaveCallable,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.clock = clock
        self.milestone_titles: List[str] = []
        self.created: Optional[Goal] = None
        super().__init__(self._blank(), save)

    @staticmethod
    def _blank() -> Goal:
        return Goal(
            id=new_id("goal"),
            title="",
            category=config.GOAL_CATEGORIES[0] if config.GOAL_CATEGORIES else "",
        )

    def add_milestone_title(self, title: str) -> bool:
        self._require_editing()
        value = (title or "").strip()
        if not value:
            return False
        self.milestone_titles.append(value)
        return True

    def remove_milestone_title(self, index: int) -> None:
        self._require_editing()
        if 0 <= index < len(self.milestone_titles):
            del self.milestone_titles[index]

    def build(self) -> Goal:
        draft = self._require_editing()
        return dataclasses.replace(
            draft,
            title=(draft.title or "").strip(),
            status=GoalStatus.ACTIVE,
            tasks=[Task(id=new_id("task"), title=t) for t in self.milestone_titles],
            created_at=self.clock().astimezone().isoformat(),
        )

    def _after_commit(self) -> None:
        # the form starts blank again for the next goal
        self.created = self.committed
        self.committed = self._blank()
        self.milestone_titles = []

    def discard(self) -> Goal:
        self.milestone_titles = []
        return super().discard()


class JournalDraft(DraftEditor[JournalEntry]):
    """Journal composer. Holds an optional sentiment analysis for the text."""

    required_fields = ("content",)

    def __init__(
        self,
        save: SaveCallable,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.clock = clock
        self.analysis: Optional[SentimentResult] = None
        self.saved: Optional[JournalEntry] = None
        super().__init__(self._blank(), save)

    @staticmethod
    def _blank() -> JournalEntry:
        return JournalEntry(id=new_id("entry"), content="", mood=config.DEFAULT_MOOD)

    def load_entry(self, entry: JournalEntry) -> JournalEntry:
        """
        Re-open an existing entry. Saving keeps its id, creation time and,
        unless a new analysis is attached, its stored sentiment.
        """
        self.discard()
        self.committed = clone(entry)
        return self.begin_edit()

    def attach_analysis(self, result: Optional[SentimentResult]) -> None:
        self._require_editing()
        if result is None:
            return
        self.analysis = result
        if result.mood:
            self.set_field("mood", result.mood)

    async def analyze(self, insight: InsightService) -> Optional[SentimentResult]:
        draft = self._require_editing()
        result = await insight.analyze_sentiment(draft.content)
        self.attach_analysis(result)
        return result

    def build(self) -> JournalEntry:
        draft = self._require_editing()
        created_at = draft.created_at
        label = draft.date
        day_key = draft.day_key
        if not created_at:
            now = self.clock()
            created_at = now.astimezone().isoformat()
            day = now.date()
            label = date_label(day)
            day_key = day.toordinal()

        analysis = self.analysis
        if analysis is not None:
            mood = analysis.mood or draft.mood
            sentiment = analysis.sentiment
            summary = analysis.summary or config.DEFAULT_SUMMARY
        elif draft.created_at:
            # re-edit without a fresh analysis keeps the stored one
            mood, sentiment, summary = draft.mood, draft.sentiment, draft.summary
        else:
            mood, sentiment, summary = draft.mood, config.DEFAULT_SENTIMENT, config.DEFAULT_SUMMARY

        return dataclasses.replace(
            draft,
            date=label,
            mood=mood or config.DEFAULT_MOOD,
            sentiment=sentiment,
            summary=summary,
            created_at=created_at,
            day_key=day_key,
        )

    def _after_commit(self) -> None:
        self.saved = self.committed
        self.committed = self._blank()
        self.analysis = None

    def discard(self) -> JournalEntry:
        self.analysis = None
        return super().discard()


class ProfileDraft(DraftEditor[UserProfile]):
    """Profile edit form."""

    def add_interest(self, interest: str) -> bool:
        draft = self._require_editing()
        interests = list(draft.interests)
        value = (interest or "").strip()
        if not value or value in interests:
            return False
        self.set_field("interests", interests + [value])
        return True

    def remove_interest(self, interest: str) -> bool:
        draft = self._require_editing()
        if interest not in draft.interests:
            return False
        self.set_field("interests", [i for i in draft.interests if i != interest])
        return True
