"""
Dynamic time warping matcher.

The live trajectory is compared against every window-aligned chunk of every
template. The chunk with the lowest DTW distance names the winner.
"""

from typing import Callable, Optional, Sequence

import numpy as np

from tune_finder.models.melody import MatchRecord
from tune_finder.tools.template_library import TemplateLibrary

LocalCost = Callable[[float, float], float]


def absolute_difference(a: float, b: float) -> float:
    return abs(a - b)


def _local_cost_matrix(a: np.ndarray, b: np.ndarray, distance: Optional[LocalCost]) -> np.ndarray:
    if distance is None:
        return np.abs(a[:, None] - b[None, :])

    local = np.empty((len(a), len(b)), dtype=np.float64)
    for i, x in enumerate(a):
        for j, y in enumerate(b):
            local[i, j] = distance(float(x), float(y))
    return local


def dtw_distance(
    a: Sequence[float],
    b: Sequence[float],
    distance: Optional[LocalCost] = None,
    window: Optional[int] = None,
) -> float:
    """
    DTW alignment distance between two sequences.

    cost[i][j] = local(a[i], b[j]) + min(cost[i-1][j], cost[i][j-1], cost[i-1][j-1])
    with the first row and column holding cumulative sums. The result is
    the bottom-right cell.

    Args:
        a: First sequence (any length >= 1)
        b: Second sequence (any length >= 1, may differ from a)
        distance: Local cost between two values, |a - b| when None
        window: Optional Sakoe-Chiba radius. None evaluates the full matrix.
            The radius is widened to |len(a) - len(b)| so a path always exists.

    Returns:
        The cumulative alignment cost
    """
    a = np.asarray(a, dtype=np.float64).ravel()
    b = np.asarray(b, dtype=np.float64).ravel()
    n, m = len(a), len(b)
    if n == 0 or m == 0:
        raise ValueError("DTW needs two non-empty sequences")
    if window is not None and window < 0:
        raise ValueError(f"window must be >= 0, got {window}")

    local = _local_cost_matrix(a, b, distance)
    cost = np.full((n, m), np.inf)

    radius = None if window is None else max(window, abs(n - m))

    cost[0, 0] = local[0, 0]
    for j in range(1, m):
        if radius is not None and j > radius:
            break
        cost[0, j] = cost[0, j - 1] + local[0, j]
    for i in range(1, n):
        if radius is not None and i > radius:
            break
        cost[i, 0] = cost[i - 1, 0] + local[i, 0]

    for i in range(1, n):
        if radius is None:
            j_start, j_stop = 1, m
        else:
            j_start, j_stop = max(1, i - radius), min(m, i + radius + 1)
        for j in range(j_start, j_stop):
            best_prev = min(cost[i - 1, j], cost[i, j - 1], cost[i - 1, j - 1])
            cost[i, j] = local[i, j] + best_prev

    return float(cost[n - 1, m - 1])


def match_trajectory(
    trajectory: Sequence[float],
    library: TemplateLibrary,
    distance: Optional[LocalCost] = None,
    window: Optional[int] = None,
) -> Optional[MatchRecord]:
    """
    Find the template whose best chunk is closest to the trajectory.

    Templates are walked in library order and their chunks in sequence; on
    equal distances the first one seen keeps the lead.

    Returns:
        MatchRecord for the winner, or None for an empty trajectory
    """
    if len(trajectory) == 0:
        return None

    best_distance = float('inf')
    best_name: Optional[str] = None
    evaluated = 0

    for name, chunk in library.chunks(len(trajectory)):
        score = dtw_distance(trajectory, chunk, distance=distance, window=window)
        evaluated += 1
        if score < best_distance:
            best_distance = score
            best_name = name

    if best_name is None:
        return None

    return MatchRecord(name=best_name, distance=best_distance, chunks_evaluated=evaluated)
