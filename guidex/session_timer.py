"""
Focus session timer.

Two durable keys (active flag, start timestamp in epoch millis) are the only
state. Elapsed time is always recomputed from the persisted start, so the
readout survives a process restart without any in-memory bookkeeping.

States: Idle -> Active on start(), Active -> Idle on stop().
"""
import asyncio
import inspect
import json
import time
from pathlib import Path
from typing import Any, Callable, Dict, Optional, Protocol

from guidex.config_manager import config
from guidex.logger import get_logger
from guidex.paths import DATA_DIR

SESSION_ACTIVE_KEY = "guidex_session_active"
SESSION_START_KEY = "guidex_session_start"

logger = get_logger("session_timer")


class KeyValueBackend(Protocol):
    """Durable string key-value storage."""

    def get(self, key: str) -> Optional[str]:
        ...

    def set(self, key: str, value: str) -> None:
        ...

    def delete(self, key: str) -> None:
        ...


class MemoryBackend:
    """Non-durable backend for tests and ephemeral processes."""

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self._data: Dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def delete(self, key: str) -> None:
        self._data.pop(key, None)


class JsonFileBackend:
    """JSON file backend. Re-reads the file on every access."""

    def __init__(self, path: Path):
        self._path = Path(path)

    def _load(self) -> Dict[str, str]:
        if not self._path.exists():
            return {}
        try:
            with open(self._path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (json.JSONDecodeError, OSError) as e:
            logger.warning("Session state unreadable at %s: %s", self._path, e)
            return {}
        return data if isinstance(data, dict) else {}

    def _save(self, data: Dict[str, str]) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self._path.with_suffix(".tmp")
        with open(tmp_path, "w", encoding="utf-8") as f:
            json.dump(data, f, ensure_ascii=False, indent=2)
        tmp_path.replace(self._path)

    def get(self, key: str) -> Optional[str]:
        value = self._load().get(key)
        return None if value is None else str(value)

    def set(self, key: str, value: str) -> None:
        data = self._load()
        data[key] = value
        self._save(data)

    def delete(self, key: str) -> None:
        data = self._load()
        if key in data:
            del data[key]
            self._save(data)


def format_elapsed(seconds: int) -> str:
    """'{minutes}m {seconds}s', minutes uncapped."""
    seconds = max(0, int(seconds))
    return f"{seconds // 60}m {seconds % 60}s"


class SessionTimerState:
    """Process-wide focus session. One session at a time."""

    def __init__(
        self,
        backend: Optional[KeyValueBackend] = None,
        clock: Callable[[], float] = time.time,
    ):
        self.backend = backend if backend is not None else MemoryBackend()
        self.clock = clock

    def _now_ms(self) -> int:
        return int(self.clock() * 1000)

    @property
    def is_active(self) -> bool:
        return self.backend.get(SESSION_ACTIVE_KEY) == "true"

    @property
    def start_timestamp_ms(self) -> Optional[int]:
        raw = self.backend.get(SESSION_START_KEY)
        try:
            return int(raw) if raw is not None else None
        except ValueError:
            return None

    def start(self) -> bool:
        """Enter Active. Returns False (no-op) if a session is already running."""
        if self.is_active:
            return False
        self.backend.set(SESSION_START_KEY, str(self._now_ms()))
        self.backend.set(SESSION_ACTIVE_KEY, "true")
        logger.info("Focus session started")
        return True

    def stop(self) -> int:
        """Return to Idle. Returns the length of the session that just ended."""
        finished = self.elapsed_seconds()
        self.backend.set(SESSION_ACTIVE_KEY, "false")
        self.backend.delete(SESSION_START_KEY)
        if finished:
            logger.info("Focus session stopped after %s", format_elapsed(finished))
        return finished

    def elapsed_seconds(self) -> int:
        if not self.is_active:
            return 0
        start_ms = self.start_timestamp_ms
        if start_ms is None:
            return 0
        return max(0, (self._now_ms() - start_ms) // 1000)

    def readout(self) -> str:
        return format_elapsed(self.elapsed_seconds())

    def snapshot(self) -> Dict[str, Any]:
        elapsed = self.elapsed_seconds()
        return {
            "active": self.is_active,
            "elapsed_seconds": elapsed,
            "display": format_elapsed(elapsed),
        }

    async def run_ticker(
        self,
        on_tick: Callable[[str], Any],
        interval: Optional[float] = None,
    ) -> None:
        """
        Emit the readout once per interval while the session is active.

        Only sleeps between ticks, so it never waits on store or network
        calls running on the same loop.
        """
        interval = config.SESSION_TICK_SECONDS if interval is None else interval
        while self.is_active:
            result = on_tick(self.readout())
            if inspect.isawaitable(result):
                await result
            await asyncio.sleep(interval)


_timer: Optional[SessionTimerState] = None


def get_session_timer() -> SessionTimerState:
    """Process-wide timer backed by a JSON file in the data dir."""
    global _timer
    if _timer is None:
        _timer = SessionTimerState(JsonFileBackend(DATA_DIR / config.SESSION_STATE_FILE))
    return _timer


def reset_session_timer() -> None:
    """Drop the process-wide instance (tests, config changes)."""
    global _timer
    _timer = None
