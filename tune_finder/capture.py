"""
Boundary with the capture/transform side.

The capture side owns the audio device and the FFT. All we need from it is
one spectral frame (unsigned byte magnitudes per bin) per tick and the
session sample rate.
"""

import base64
import binascii
from abc import ABC, abstractmethod
from typing import Iterable, List, Optional

import numpy as np


class CaptureError(RuntimeError):
    """The capture side cannot supply frames (e.g. permission denied)."""


class FrameSource(ABC):
    """Supplies spectral frames for one listening session."""

    @abstractmethod
    def open(self) -> float:
        """
        Acquire the input and return its sample rate in Hz.

        Raises:
            CaptureError: if the input cannot be acquired
        """

    @abstractmethod
    def read_frame(self) -> Optional[np.ndarray]:
        """Return the latest frame, or None once the source is exhausted."""

    def close(self) -> None:
        pass


class ReplayFrameSource(FrameSource):
    """Replays prepared frames, e.g. captured from a recording."""

    def __init__(self, frames: Iterable, sample_rate: float):
        self._frames: List[np.ndarray] = [np.asarray(f, dtype=np.uint8) for f in frames]
        self.sample_rate = sample_rate
        self._position = 0
        self.is_open = False

    def open(self) -> float:
        self.is_open = True
        return self.sample_rate

    def read_frame(self) -> Optional[np.ndarray]:
        if not self.is_open:
            raise CaptureError("Frame source is not open")
        if self._position >= len(self._frames):
            return None
        frame = self._frames[self._position]
        self._position += 1
        return frame

    def close(self) -> None:
        self.is_open = False


def decode_frame(payload: str, bin_count: Optional[int] = None) -> np.ndarray:
    """
    Decode a base64 frame of unsigned byte magnitudes.

    Raises:
        ValueError: on bad base64 or a length other than bin_count
    """
    try:
        raw = base64.b64decode(payload, validate=True)
    except (binascii.Error, TypeError) as e:
        raise ValueError(f"Frame is not valid base64: {e}") from e

    frame = np.frombuffer(raw, dtype=np.uint8)
    if bin_count is not None and len(frame) != bin_count:
        raise ValueError(f"Expected {bin_count} bins, got {len(frame)}")
    return frame


def encode_frame(frame) -> str:
    return base64.b64encode(np.asarray(frame, dtype=np.uint8).tobytes()).decode("ascii")
