"""
Listening session manager.

A session owns everything one capture run needs: the trajectory buffer, the
confidence histogram and the tick counters. Ticks are strictly serialized,
one extraction + append (+ match once the trajectory is long enough) at a
time, so the buffer and histogram only ever have one writer.
"""

import asyncio
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Optional

import numpy as np

from tune_finder.capture import CaptureError, FrameSource
from tune_finder.config import AnalyzerConfig
from tune_finder.models.melody import MatchRecord, SessionSummary
from tune_finder.tools.confidence import ConfidenceAggregator
from tune_finder.tools.dtw_matcher import match_trajectory
from tune_finder.tools.pitch_detection import extract_fundamental, find_nearest_pitch
from tune_finder.tools.template_library import TemplateLibrary
from tune_finder.tools.trajectory_buffer import TrajectoryBuffer

# DTW passes run off the event loop
tick_executor = ThreadPoolExecutor(max_workers=2)


class SessionStatus(Enum):
    IDLE = "idle"
    LISTENING = "listening"
    STOPPED = "stopped"
    FAILED = "failed"


@dataclass
class TickResult:
    """Outcome of one tick."""
    frequency: float
    pitch: str
    trajectory_length: int
    match: Optional[MatchRecord] = None


class ListeningSession:
    """State and tick pipeline for a single capture session."""

    def __init__(
        self,
        session_id: str,
        library: TemplateLibrary,
        config: Optional[AnalyzerConfig] = None,
        sample_rate: Optional[float] = None,
    ):
        self.session_id = session_id
        self.library = library
        self.config = config or AnalyzerConfig()
        self.sample_rate = sample_rate

        self.buffer = TrajectoryBuffer(self.config.buffer_capacity)
        self.aggregator = ConfidenceAggregator()
        self.status = SessionStatus.IDLE
        self.failure_reason: Optional[str] = None

        self.current_frequency = 0.0
        self.current_pitch = ""
        self.tick_count = 0
        self.match_count = 0
        self.dropped_ticks = 0

        self._tick_lock = asyncio.Lock()

    @property
    def is_listening(self) -> bool:
        return self.status == SessionStatus.LISTENING

    # ------------------------------------------------------------------
    # Start / stop
    # ------------------------------------------------------------------

    def start(self, sample_rate: Optional[float] = None) -> None:
        """Begin listening. Starting always clears the trajectory and tally."""
        if sample_rate is not None:
            self.sample_rate = sample_rate
        if not self.sample_rate or self.sample_rate <= 0:
            raise ValueError(f"Session {self.session_id} needs a positive sample rate")

        self.buffer.reset()
        self.aggregator.reset()
        self.current_frequency = 0.0
        self.current_pitch = ""
        self.failure_reason = None
        self.status = SessionStatus.LISTENING
        print(f"[session] {self.session_id} listening @ {self.sample_rate} Hz "
              f"(capacity={self.buffer.capacity}, min_length={self.config.min_trajectory_length})")

    def stop(self) -> None:
        """Stop scheduling ticks. A tick already running is allowed to finish."""
        if self.status == SessionStatus.LISTENING:
            self.status = SessionStatus.STOPPED
            print(f"[session] {self.session_id} stopped after {self.tick_count} ticks")

    def toggle(self, sample_rate: Optional[float] = None) -> SessionStatus:
        if self.is_listening:
            self.stop()
        else:
            self.start(sample_rate)
        return self.status

    def fail(self, reason: str) -> None:
        self.status = SessionStatus.FAILED
        self.failure_reason = reason
        print(f"[session] {self.session_id} failed: {reason}")

    # ------------------------------------------------------------------
    # Tick pipeline
    # ------------------------------------------------------------------

    def process_frame(self, frame) -> Optional[TickResult]:
        """
        Run one tick on a spectral frame.

        Returns:
            TickResult, or None when the session is not listening
        """
        if not self.is_listening:
            return None

        magnitudes = np.asarray(frame)
        frequency = extract_fundamental(
            magnitudes,
            self.sample_rate,
            self.config.transform_size,
            self.config.magnitude_floor,
            self.config.magnitude_ceiling,
        )
        pitch = find_nearest_pitch(frequency)
        length = self.buffer.append(frequency)

        self.current_frequency = frequency
        self.current_pitch = pitch
        self.tick_count += 1

        match = None
        if length >= self.config.min_trajectory_length:
            match = match_trajectory(self.buffer.points, self.library, window=self.config.dtw_window)
            if match is not None:
                self.aggregator.record(match)
                self.match_count += 1

        return TickResult(frequency=frequency, pitch=pitch, trajectory_length=length, match=match)

    async def submit_frame(self, frame) -> Optional[TickResult]:
        """Push-mode tick. Concurrent callers are serialized."""
        async with self._tick_lock:
            loop = asyncio.get_running_loop()
            return await loop.run_in_executor(tick_executor, self.process_frame, frame)

    async def run(self, source: FrameSource) -> None:
        """
        Pull frames from *source* every interval_ms until stopped or the
        source runs dry.

        Each tick is awaited before the next is admitted. Ticks that fall due
        while one is still running are dropped, not queued.

        Raises:
            CaptureError: if the source cannot be opened. The session is
                marked FAILED and no tick runs.
        """
        try:
            sample_rate = source.open()
        except CaptureError as e:
            self.fail(str(e))
            raise

        try:
            self.start(sample_rate)
            loop = asyncio.get_running_loop()
            interval = self.config.interval_seconds
            next_due = loop.time()

            while self.is_listening:
                frame = source.read_frame()
                if frame is None:
                    self.stop()
                    break

                await self.submit_frame(frame)

                next_due += interval
                now = loop.time()
                if now > next_due:
                    missed = int((now - next_due) // interval) + 1
                    self.dropped_ticks += missed
                    next_due += missed * interval
                await asyncio.sleep(max(0.0, next_due - now))
        finally:
            source.close()

    # ------------------------------------------------------------------
    # Reporting
    # ------------------------------------------------------------------

    def get_session_summary(self) -> Dict:
        """Snapshot for display/report consumers."""
        summary = SessionSummary(
            session_id=self.session_id,
            status=self.status.value,
            sample_rate=self.sample_rate,
            frequency=round(self.current_frequency, 2),
            pitch=self.current_pitch,
            trajectory=self.buffer.points,
            ranking=self.aggregator.ranking(),
            percentages=self.aggregator.percentages(),
            last_winner=self.aggregator.last_winner,
            ticks=self.tick_count,
            matches=self.match_count,
            dropped_ticks=self.dropped_ticks,
            failure_reason=self.failure_reason,
        )
        return summary.model_dump()


# Global session store, one session per connection id
active_sessions: Dict[str, ListeningSession] = {}


def get_session(session_id: str) -> Optional[ListeningSession]:
    """Get existing listening session by ID."""
    return active_sessions.get(session_id)


def create_session(
    session_id: str,
    library: TemplateLibrary,
    config: Optional[AnalyzerConfig] = None,
    sample_rate: Optional[float] = None,
) -> ListeningSession:
    """Create a new listening session, replacing any with the same ID."""
    session = ListeningSession(session_id, library, config=config, sample_rate=sample_rate)
    active_sessions[session_id] = session
    return session


def end_session(session_id: str) -> None:
    """Stop and remove a listening session."""
    session = active_sessions.pop(session_id, None)
    if session is not None:
        session.stop()
