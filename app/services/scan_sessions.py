"""
Capture sessions for the diagnostic scans.

A session walks ``setup -> scanning/recording -> analyzing -> complete``.
Nothing runs in the background: every poll calls ``advance(now)``, which
moves the session forward according to how much time has passed, so the
clock can be swapped out in tests. Leaving the capture phase early (stop,
teardown, logout) releases the media stream and never stores a result.
"""
from typing import Callable, Dict, List, Optional
import base64
import binascii
import logging
import random
import time
import uuid

from ..core.catalog import VOICE_PROMPTS
from ..core.config import settings
from ..models.scan import ScanType
from ..schemas.scan import ScanSessionState
from .scan_analyzers import ScanAnalyzer, ScanOutcome, ScanPhase, analyzer_for

logger = logging.getLogger(__name__)

class ScanStateError(Exception):
    """Raised when an action does not fit the session's current phase."""

class ScanPersistenceError(Exception):
    """Raised by the persist callback when the result could not be stored."""

# persist(session, outcome) -> id of the stored scan
PersistCallback = Callable[["ScanSession", ScanOutcome], int]

def scan_timing(scan_type: ScanType):
    """(capture seconds, analysis seconds) for a scan type, read from settings."""
    if scan_type == ScanType.RETINAL:
        return settings.RETINAL_SCAN_SECONDS, settings.RETINAL_ANALYSIS_SECONDS
    if scan_type == ScanType.RPPG:
        return settings.RPPG_SCAN_SECONDS, settings.RPPG_ANALYSIS_SECONDS
    return settings.VOICE_RECORDING_SECONDS, settings.VOICE_ANALYSIS_SECONDS

def decode_chunk(data: str) -> bytes:
    """Decode a base64 payload, accepting an optional ``data:...;base64,`` prefix."""
    if data.startswith("data:"):
        _, _, data = data.partition(",")
    try:
        return base64.b64decode(data, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise ValueError("Capture data must be base64 encoded") from exc

class MediaStream:
    """Server-side handle for the client's camera or microphone capture."""

    def __init__(self, kind: str, label: Optional[str] = None, constraints: Optional[dict] = None):
        self.kind = kind
        self.label = label
        self.constraints = constraints or {}
        self.chunks: List[bytes] = []
        self.active = True

    def push(self, payload: bytes) -> None:
        if not self.active:
            raise ScanStateError("Media stream has been released")
        self.chunks.append(payload)

    def stop(self) -> None:
        self.active = False

class ScanSession:
    def __init__(
        self,
        owner_id: int,
        analyzer: ScanAnalyzer,
        duration: float,
        analysis_delay: float,
        display_delay: float,
        prompt: Optional[str] = None,
        on_complete: Optional[Callable[["ScanSession"], None]] = None,
    ):
        self.id = uuid.uuid4().hex
        self.owner_id = owner_id
        self.analyzer = analyzer
        self.duration = duration
        self.analysis_delay = analysis_delay
        self.display_delay = display_delay
        self.prompt = prompt
        self.on_complete = on_complete

        self.phase = ScanPhase.SETUP
        self.progress = 0.0
        self.notice: Optional[str] = None
        self.stream: Optional[MediaStream] = None
        self.real_time_data: Optional[Dict[str, float]] = None
        self.scan_id: Optional[int] = None
        self.finished = False
        self.last_seen: Optional[float] = None

        self._captured: List[bytes] = []
        self._started_at: Optional[float] = None
        self._analyzing_since: Optional[float] = None
        self._completed_at: Optional[float] = None

    @property
    def scan_type(self) -> ScanType:
        return self.analyzer.scan_type

    @property
    def stream_active(self) -> bool:
        return self.stream is not None and self.stream.active

    @property
    def in_progress(self) -> bool:
        return self.phase in (self.analyzer.capture_phase, ScanPhase.ANALYZING)

    def _set_phase(self, phase: ScanPhase) -> None:
        if phase != self.phase:
            logger.info(f"Scan session {self.id} ({self.scan_type.value}): {self.phase.value} -> {phase.value}")
            self.phase = phase

    # --- Device and capture ---

    def attach_stream(self, granted: bool, label: Optional[str] = None,
                      constraints: Optional[dict] = None) -> None:
        """Record the outcome of the client's device permission request."""
        if self.phase != ScanPhase.SETUP:
            raise ScanStateError("Device can only be changed before the scan starts")

        self._release_stream()
        if not granted:
            self.notice = (
                f"Unable to access {self.analyzer.device}. Please check permissions."
            )
            logger.warning(f"Scan session {self.id}: {self.analyzer.device} access denied")
            return

        self.stream = MediaStream(
            "audio" if self.analyzer.device == "microphone" else "video",
            label=label,
            constraints=constraints,
        )
        self.notice = None

    def push(self, data: str) -> None:
        if self.phase != self.analyzer.capture_phase:
            raise ScanStateError("Capture data is only accepted while capturing")
        self.stream.push(decode_chunk(data))

    # --- Transitions ---

    def start(self, now: float) -> None:
        if self.phase != ScanPhase.SETUP:
            raise ScanStateError("Scan already in progress")
        if not self.stream_active:
            raise ScanStateError(f"Start the {self.analyzer.device} before scanning")

        self.notice = None
        self.progress = 0.0
        self.real_time_data = None
        self._started_at = now
        self._set_phase(self.analyzer.capture_phase)

    def stop(self) -> None:
        """Abandon the scan: release the stream and go back to setup."""
        self._release_stream()
        self._reset()

    def advance(self, now: float, persist: PersistCallback) -> None:
        if self.phase == self.analyzer.capture_phase:
            elapsed = now - self._started_at
            if elapsed < self.duration:
                self.progress = round(self.analyzer.progress_cap * elapsed / self.duration, 1)
                sample = self.analyzer.live_sample()
                if sample is not None:
                    self.real_time_data = sample
                return
            self._finish_capture(self._started_at + self.duration)

        if self.phase == ScanPhase.ANALYZING:
            if now - self._analyzing_since < self.analysis_delay:
                return
            self._analyze(now, persist)

        if self.phase == ScanPhase.COMPLETE and not self.finished:
            if now - self._completed_at >= self.display_delay:
                self._fire_complete()

    def snapshot(self, now: float) -> ScanSessionState:
        elapsed = 0.0
        if self._started_at is not None:
            elapsed = min(now - self._started_at, self.duration)

        return ScanSessionState(
            session_id=self.id,
            scan_type=self.scan_type,
            phase=self.phase.value,
            progress=self.progress,
            elapsed_seconds=round(max(elapsed, 0.0), 2),
            duration_seconds=self.duration,
            stream_active=self.stream_active,
            notice=self.notice,
            real_time_data=self.real_time_data,
            prompt=self.prompt,
            scan_id=self.scan_id,
            finished=self.finished,
        )

    # --- Internals ---

    def _finish_capture(self, at: float) -> None:
        self._captured = list(self.stream.chunks) if self.stream else []
        if self.analyzer.release_after_capture:
            self._release_stream()
        self.progress = self.analyzer.analysis_progress
        self._analyzing_since = at
        self._set_phase(ScanPhase.ANALYZING)

    def _analyze(self, now: float, persist: PersistCallback) -> None:
        outcome = self.analyzer.analyze(self._captured)
        try:
            self.scan_id = persist(self, outcome)
        except ScanPersistenceError as exc:
            logger.error(f"Scan session {self.id}: could not store result: {exc}")
            self._reset()
            self.notice = f"Failed to complete {self.analyzer.label} analysis."
            return

        self.progress = 100.0
        self._completed_at = now
        self._set_phase(ScanPhase.COMPLETE)

    def _fire_complete(self) -> None:
        self.finished = True
        self._release_stream()
        if self.on_complete:
            self.on_complete(self)

    def scan_data(self) -> dict:
        return self.analyzer.scan_data(
            self._captured, self.duration, self.real_time_data, self.prompt
        )

    def _release_stream(self) -> None:
        if self.stream is not None:
            self.stream.stop()
            self.stream = None

    def _reset(self) -> None:
        self.progress = 0.0
        self.real_time_data = None
        self._captured = []
        self._started_at = None
        self._analyzing_since = None
        self._completed_at = None
        self._set_phase(ScanPhase.SETUP)

class ScanSessionRegistry:
    """All live capture sessions of this process, keyed by session id."""

    def __init__(self, clock: Callable[[], float] = time.monotonic,
                 rng: Optional[random.Random] = None):
        self.clock = clock
        self.rng = rng or random.Random(settings.SCAN_RANDOM_SEED)
        self._sessions: Dict[str, ScanSession] = {}

    def create(self, owner_id: int, scan_type: ScanType, prompt_index: int = 0) -> ScanSession:
        # Opening a scan tears down the owner's other screens unless one is still
        # capturing or analyzing and has been polled recently
        now = self.clock()
        for session in self.for_owner(owner_id):
            idle = session.last_seen is None or now - session.last_seen > settings.SCAN_SESSION_IDLE_SECONDS
            if not session.in_progress or idle:
                self.discard(session.id)

        prompt = None
        if scan_type == ScanType.VOICE:
            prompt = VOICE_PROMPTS[prompt_index % len(VOICE_PROMPTS)]

        duration, analysis_delay = scan_timing(scan_type)
        session = ScanSession(
            owner_id,
            analyzer_for(scan_type, self.rng),
            duration=duration,
            analysis_delay=analysis_delay,
            display_delay=settings.SCAN_COMPLETE_DISPLAY_SECONDS,
            prompt=prompt,
            on_complete=self._on_complete,
        )
        session.last_seen = now
        self._sessions[session.id] = session
        logger.info(f"Opened {scan_type.value} scan session {session.id} for user {owner_id}")
        return session

    def get(self, session_id: str, owner_id: int) -> ScanSession:
        session = self._sessions.get(session_id)
        if session is None or session.owner_id != owner_id:
            raise KeyError(session_id)
        session.last_seen = self.clock()
        return session

    def for_owner(self, owner_id: int) -> List[ScanSession]:
        return [s for s in self._sessions.values() if s.owner_id == owner_id]

    def discard(self, session_id: str) -> None:
        session = self._sessions.pop(session_id, None)
        if session is not None:
            session.stop()

    def close_all_for(self, owner_id: int) -> int:
        sessions = self.for_owner(owner_id)
        for session in sessions:
            self.discard(session.id)
        return len(sessions)

    def now(self) -> float:
        return self.clock()

    def _on_complete(self, session: ScanSession) -> None:
        logger.info(f"Scan session {session.id} finished with scan {session.scan_id}")

scan_sessions = ScanSessionRegistry()

def get_scan_sessions() -> ScanSessionRegistry:
    return scan_sessions
