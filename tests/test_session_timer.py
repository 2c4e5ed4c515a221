import asyncio

from guidex.session_timer import (
    SESSION_ACTIVE_KEY,
    SESSION_START_KEY,
    JsonFileBackend,
    MemoryBackend,
    SessionTimerState,
    format_elapsed,
)


class FakeClock:
    def __init__(self, now=1_000_000.0):
        self.now = now

    def __call__(self):
        return self.now


def test_format_elapsed():
    assert format_elapsed(0) == "0m 0s"
    assert format_elapsed(75) == "1m 15s"
    assert format_elapsed(3600) == "60m 0s"
    assert format_elapsed(-5) == "0m 0s"


def test_start_is_noop_when_active():
    clock = FakeClock()
    timer = SessionTimerState(MemoryBackend(), clock)
    assert timer.start() is True
    first_start = timer.start_timestamp_ms

    clock.now += 30
    assert timer.start() is False
    assert timer.start_timestamp_ms == first_start
    assert timer.elapsed_seconds() == 30


def test_stop_returns_duration_and_resets():
    clock = FakeClock()
    timer = SessionTimerState(MemoryBackend(), clock)
    timer.start()
    clock.now += 125
    assert timer.readout() == "2m 5s"
    assert timer.stop() == 125
    assert not timer.is_active
    assert timer.elapsed_seconds() == 0
    assert timer.backend.get(SESSION_START_KEY) is None


def test_elapsed_reconstructed_from_persisted_start(tmp_path):
    clock = FakeClock()
    path = tmp_path / "session.json"
    SessionTimerState(JsonFileBackend(path), clock).start()

    clock.now += 90
    reloaded = SessionTimerState(JsonFileBackend(path), clock)
    assert reloaded.is_active
    assert reloaded.elapsed_seconds() == 90


def test_corrupt_or_future_start_reads_zero():
    clock = FakeClock()
    corrupt = SessionTimerState(
        MemoryBackend({SESSION_ACTIVE_KEY: "true", SESSION_START_KEY: "not-a-number"}), clock
    )
    assert corrupt.is_active
    assert corrupt.elapsed_seconds() == 0

    missing = SessionTimerState(MemoryBackend({SESSION_ACTIVE_KEY: "true"}), clock)
    assert missing.elapsed_seconds() == 0

    future_ms = str(int((clock.now + 60) * 1000))
    future = SessionTimerState(
        MemoryBackend({SESSION_ACTIVE_KEY: "true", SESSION_START_KEY: future_ms}), clock
    )
    assert future.elapsed_seconds() == 0


def test_unreadable_state_file_is_idle(tmp_path):
    path = tmp_path / "session.json"
    path.write_text("{broken", encoding="utf-8")
    timer = SessionTimerState(JsonFileBackend(path), FakeClock())
    assert not timer.is_active
    assert timer.snapshot() == {"active": False, "elapsed_seconds": 0, "display": "0m 0s"}


def test_ticker_emits_until_stopped():
    clock = FakeClock()
    timer = SessionTimerState(MemoryBackend(), clock)
    timer.start()
    readouts = []

    def on_tick(readout):
        readouts.append(readout)
        clock.now += 1
        if len(readouts) == 3:
            timer.stop()

    asyncio.run(timer.run_ticker(on_tick, interval=0))
    assert readouts == ["0m 0s", "0m 1s", "0m 2s"]
