"""
Bounded pitch trajectory buffer.

Collects one fundamental frequency per tick. The time axis is implicit
(index * interval_ms). When the buffer is full the next append clears it
first, so a trajectory always starts fresh instead of rolling forward.
"""

from typing import List


class TrajectoryBuffer:
    """
    Time-ordered sequence of extracted frequencies with a hard reset on
    overflow.

    Parameters
    ----------
    capacity : int
        Maximum number of points held. For the default cadence this is
        ``max_search_seconds * 1000 / interval_ms`` (10 s at 100 ms = 100).
    """

    def __init__(self, capacity: int) -> None:
        if capacity < 1:
            raise ValueError(f"capacity must be >= 1, got {capacity}")

        self.capacity = capacity
        self._points: List[float] = []

        # Number of hard resets caused by overflow since creation.
        self.overflow_count: int = 0

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def append(self, frequency: float) -> int:
        """
        Push *frequency*, clearing the buffer first if it is already full.

        Returns
        -------
        int
            The buffer length after the append.
        """
        if len(self._points) >= self.capacity:
            self._points = []
            self.overflow_count += 1

        self._points.append(float(frequency))
        return len(self._points)

    def reset(self) -> None:
        """Drop every point. Used when detection is toggled back on."""
        self._points = []

    @property
    def points(self) -> List[float]:
        """Copy of the current trajectory, oldest first."""
        return list(self._points)

    @property
    def is_full(self) -> bool:
        return len(self._points) >= self.capacity

    def duration_ms(self, interval_ms: float) -> float:
        return len(self._points) * interval_ms

    def __len__(self) -> int:
        return len(self._points)

    def __repr__(self) -> str:
        return f"TrajectoryBuffer(len={len(self._points)}, capacity={self.capacity})"
