import base64
import random

import pytest

from app.core.catalog import VOICE_PROMPTS
from app.core.config import settings
from app.models.scan import ScanType
from app.services.scan_analyzers import ScanPhase, analyzer_for
from app.services.scan_sessions import (
    ScanPersistenceError, ScanSession, ScanSessionRegistry, ScanStateError, decode_chunk
)
from tests.conftest import FakeClock

FRAME = base64.b64encode(b"frame").decode()

class Recorder:
    """Persist callback that remembers what it stored."""

    def __init__(self):
        self.calls = []

    def __call__(self, session, outcome):
        self.calls.append(outcome)
        return len(self.calls)

def failing_persist(session, outcome):
    raise ScanPersistenceError("database unavailable")

def make_session(scan_type=ScanType.RETINAL, duration=20, analysis_delay=3, display_delay=2):
    return ScanSession(
        owner_id=1,
        analyzer=analyzer_for(scan_type, random.Random(3)),
        duration=duration,
        analysis_delay=analysis_delay,
        display_delay=display_delay,
    )

def running(scan_type=ScanType.RETINAL, **timing):
    session = make_session(scan_type, **timing)
    session.attach_stream(True, label="camera 1")
    session.start(0)
    return session

class TestScanSession:

    def test_full_run_persists_once(self):
        session = running()
        session.push(FRAME)
        persist = Recorder()
        completed = []
        session.on_complete = completed.append

        session.advance(25, persist)
        assert session.phase == ScanPhase.COMPLETE
        assert session.scan_id == 1

        session.advance(27, persist)
        session.advance(100, persist)
        assert len(persist.calls) == 1
        assert completed == [session]
        assert session.finished
        assert not session.stream_active
        assert persist.calls[0].risk_level.value in ("low", "medium")

    def test_stop_releases_stream_without_persisting(self):
        session = running()
        stream = session.stream
        persist = Recorder()

        session.advance(5, persist)
        session.stop()
        session.advance(500, persist)

        assert session.phase == ScanPhase.SETUP
        assert not stream.active
        assert persist.calls == []

    def test_persistence_failure_reverts_to_setup(self):
        session = running()

        session.advance(20, failing_persist)
        assert session.phase == ScanPhase.ANALYZING

        session.advance(23, failing_persist)
        assert session.phase == ScanPhase.SETUP
        assert session.notice == "Failed to complete retinal analysis."
        assert session.scan_id is None
        assert session.progress == 0

        # The camera is still on, so the scan can be retried
        session.start(30)
        assert session.phase == ScanPhase.SCANNING

    def test_capture_chunks_end_up_in_scan_data(self):
        session = running(ScanType.VOICE)
        session.push(FRAME)
        session.push("data:audio/webm;base64," + base64.b64encode(b"-more").decode())

        session.advance(20, Recorder())
        data = session.scan_data()
        assert data["audio_data"] == "data:audio/webm;base64," + base64.b64encode(b"frame-more").decode()
        assert data["recording_duration"] == 20

    def test_start_requires_stream(self):
        session = make_session()
        with pytest.raises(ScanStateError):
            session.start(0)

    def test_device_change_only_in_setup(self):
        session = running()
        with pytest.raises(ScanStateError):
            session.attach_stream(True)

    def test_snapshot_caps_elapsed(self):
        session = running(ScanType.RPPG, duration=30, analysis_delay=0)
        session.advance(40, Recorder())

        state = session.snapshot(40)
        assert state.phase == "complete"
        assert state.elapsed_seconds == 30

class TestDecodeChunk:

    def test_plain_and_data_url(self):
        assert decode_chunk(FRAME) == b"frame"
        assert decode_chunk("data:image/png;base64," + FRAME) == b"frame"

    def test_invalid(self):
        with pytest.raises(ValueError):
            decode_chunk("%%%")

class TestRegistry:

    def test_voice_prompt_rotates(self):
        registry = ScanSessionRegistry(clock=lambda: 0.0, rng=random.Random(1))

        session = registry.create(7, ScanType.VOICE, prompt_index=len(VOICE_PROMPTS) + 2)
        assert session.prompt == VOICE_PROMPTS[2]
        assert registry.create(7, ScanType.RETINAL).prompt is None

    def test_get_checks_owner(self):
        registry = ScanSessionRegistry(clock=lambda: 0.0)
        session = registry.create(7, ScanType.RETINAL)

        assert registry.get(session.id, 7) is session
        with pytest.raises(KeyError):
            registry.get(session.id, 8)

    def test_finished_sessions_pruned(self):
        registry = ScanSessionRegistry(clock=lambda: 0.0)
        session = registry.create(7, ScanType.RETINAL)
        session.finished = True

        registry.create(7, ScanType.RPPG)
        assert [s.scan_type for s in registry.for_owner(7)] == [ScanType.RPPG]

    def test_repeated_opens_keep_one_session(self):
        registry = ScanSessionRegistry(clock=lambda: 0.0)
        streams = []
        for _ in range(50):
            session = registry.create(7, ScanType.RETINAL)
            session.attach_stream(True)
            streams.append(session.stream)

        assert registry.for_owner(7) == [session]
        assert [s.active for s in streams].count(True) == 1
        assert streams[-1].active

    def test_active_scan_survives_new_session(self):
        clock = FakeClock()
        registry = ScanSessionRegistry(clock=clock)
        scanning = registry.create(7, ScanType.RPPG)
        scanning.attach_stream(True)
        scanning.start(clock())

        clock.advance(5)
        registry.get(scanning.id, 7)
        other = registry.create(7, ScanType.RETINAL)

        assert set(registry.for_owner(7)) == {scanning, other}
        assert scanning.stream_active

    def test_abandoned_scan_dropped(self):
        clock = FakeClock()
        registry = ScanSessionRegistry(clock=clock)
        scanning = registry.create(7, ScanType.RPPG)
        scanning.attach_stream(True)
        scanning.start(clock())
        stream = scanning.stream

        clock.advance(settings.SCAN_SESSION_IDLE_SECONDS + 1)
        registry.create(7, ScanType.RETINAL)

        assert scanning not in registry.for_owner(7)
        assert not stream.active

    def test_close_all_for_releases_streams(self):
        registry = ScanSessionRegistry(clock=lambda: 0.0)
        session = registry.create(7, ScanType.RETINAL)
        session.attach_stream(True)
        stream = session.stream
        registry.create(8, ScanType.RETINAL)

        assert registry.close_all_for(7) == 1
        assert not stream.active
        assert len(registry.for_owner(8)) == 1
