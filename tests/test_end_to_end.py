#!/usr/bin/env python3
"""
End-to-end listening scenarios on the bundled reference melodies.

Renders a template back into spectral frames (one peak bin per tick, the
way the capture side would see a clean monophonic signal), replays them
through a session, and checks the confidence ranking.
"""

import numpy as np
import pytest

from tune_finder.capture import ReplayFrameSource
from tune_finder.config import AnalyzerConfig
from tune_finder.sessions.session_manager import ListeningSession
from tune_finder.tools.pitch_detection import extract_fundamental, find_nearest_pitch
from tune_finder.tools.template_library import load_library

SAMPLE_RATE = 44100
TRANSFORM_SIZE = 32768


def render_frame(hz: float, magnitude: int = 200) -> np.ndarray:
    """Spectral frame with a single peak at the bin closest to hz."""
    frame = np.zeros(TRANSFORM_SIZE // 2, dtype=np.uint8)
    if hz > 0:
        frame[int(round(hz * TRANSFORM_SIZE / SAMPLE_RATE))] = magnitude
    # Low background noise stays under the floor
    frame[1:40] = np.maximum(frame[1:40], 60)
    return frame


def test_capture_scenario_bin_390():
    frame = np.zeros(TRANSFORM_SIZE // 2, dtype=np.uint8)
    frame[390] = 230
    freq = extract_fundamental(frame, SAMPLE_RATE, TRANSFORM_SIZE)

    assert freq == pytest.approx(SAMPLE_RATE * 390 / TRANSFORM_SIZE)
    assert find_nearest_pitch(freq) == "C"


@pytest.mark.parametrize("name", ["Ode to Joy", "Frere Jacques"])
@pytest.mark.asyncio
async def test_playing_from_the_middle_identifies_melody(name):
    library = load_library()
    # Match only on full 16-tick windows, which line up with template chunks
    config = AnalyzerConfig(interval_ms=1, min_search_seconds=0.016, max_search_seconds=0.016).validate()
    session = ListeningSession("e2e", library, config=config)

    # Start mid-melody, aligned to the buffer window
    values = library.get(name).frequencies[16:48]
    source = ReplayFrameSource([render_frame(hz) for hz in values], SAMPLE_RATE)

    await session.run(source)

    ranking = session.aggregator.ranking()
    assert ranking[0].name == name
    assert session.aggregator.total == 2
    assert session.aggregator.percentages()[name] == pytest.approx(100.0)
    assert sum(session.aggregator.percentages().values()) == pytest.approx(100.0)
