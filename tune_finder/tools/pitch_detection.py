"""
Pitch extraction and naming for spectral frames.

The capture side hands us one frequency-magnitude snapshot per tick (unsigned
byte magnitudes, one per FFT bin). We pick the strongest bin inside a
magnitude band and convert its index to Hz. The Hz value is then folded into
a single reference octave to get a display name.
"""

import math
from typing import Dict, Sequence, Tuple

import numpy as np

# Reference octave used for display names (C5 up to C6)
PITCH_TABLE: Dict[str, float] = {
    'C': 523.25,
    'Db': 554.37,
    'D': 587.33,
    'Eb': 622.25,
    'E': 659.25,
    'F': 698.46,
    'Gb': 739.99,
    'G': 783.99,
    'Ab': 830.61,
    'A': 880.00,
    'Bb': 932.33,
    'B': 987.77,
    'C2': 1046.50,
}

LOWEST_REFERENCE = PITCH_TABLE['C']
HIGHEST_REFERENCE = PITCH_TABLE['C2']

# Peak gating band. Below the floor is near-silence noise, the ceiling
# rejects clipping/DC artifacts.
MAGNITUDE_FLOOR = 100
MAGNITUDE_CEILING = 1100

NO_PEAK = -1

# Doubling or halving a finite double reaches the reference octave well
# within this many steps (exponent range is about 2100 binary orders).
MAX_OCTAVE_STEPS = 2200


def find_peak_bin(
    frame: Sequence[float],
    magnitude_floor: float = MAGNITUDE_FLOOR,
    magnitude_ceiling: float = MAGNITUDE_CEILING,
) -> Tuple[int, float]:
    """
    Find the strongest bin strictly inside (floor, ceiling).

    Args:
        frame: Magnitude per frequency bin
        magnitude_floor: Bins must be strictly louder than this
        magnitude_ceiling: Bins must be strictly quieter than this

    Returns:
        Tuple of (bin_index, magnitude). bin_index is -1 and magnitude is
        -inf when no bin qualifies. On equal magnitudes the lowest index wins.
    """
    magnitudes = np.asarray(frame, dtype=np.float64).ravel()
    if magnitudes.size == 0:
        return NO_PEAK, float('-inf')

    eligible = (magnitudes > magnitude_floor) & (magnitudes < magnitude_ceiling)
    if not eligible.any():
        return NO_PEAK, float('-inf')

    gated = np.where(eligible, magnitudes, -np.inf)
    # argmax returns the first occurrence of the maximum
    best_index = int(np.argmax(gated))
    return best_index, float(gated[best_index])


def bin_to_frequency(bin_index: int, sample_rate: float, transform_size: int) -> float:
    """Convert an FFT bin index to Hz."""
    return sample_rate * bin_index / transform_size


def extract_fundamental(
    frame: Sequence[float],
    sample_rate: float,
    transform_size: int,
    magnitude_floor: float = MAGNITUDE_FLOOR,
    magnitude_ceiling: float = MAGNITUDE_CEILING,
) -> float:
    """
    Extract the dominant frequency of one spectral frame.

    Args:
        frame: Magnitude per frequency bin (length transform_size / 2)
        sample_rate: Capture sample rate in Hz
        transform_size: FFT size used by the capture side
        magnitude_floor: Lower gate for eligible bins (exclusive)
        magnitude_ceiling: Upper gate for eligible bins (exclusive)

    Returns:
        Frequency in Hz, or 0.0 if no bin falls inside the gating band.
        A 0.0 result is a valid trajectory point (silence), not an error.
    """
    best_index, _ = find_peak_bin(frame, magnitude_floor, magnitude_ceiling)
    if best_index == NO_PEAK:
        return 0.0
    return bin_to_frequency(best_index, sample_rate, transform_size)


def fold_into_reference_octave(frequency: float) -> float:
    """
    Double or halve a positive frequency until it sits in [C, C2].

    Raises:
        ValueError: for non-positive or non-finite input
    """
    if not math.isfinite(frequency) or frequency <= 0:
        raise ValueError(f"Cannot fold frequency {frequency!r}")

    folded = float(frequency)
    for _ in range(MAX_OCTAVE_STEPS):
        if folded < LOWEST_REFERENCE:
            folded *= 2
        elif folded > HIGHEST_REFERENCE:
            folded /= 2
        else:
            return folded

    raise ValueError(f"Frequency {frequency!r} did not settle into the reference octave")


def find_nearest_pitch(frequency: float) -> str:
    """
    Convert a frequency (Hz) to the nearest pitch name in the reference octave.

    Ties go to the entry that comes first in PITCH_TABLE.

    Args:
        frequency: Frequency in Hz

    Returns:
        Pitch name like "Eb", or "" for zero, negative or non-finite input
    """
    if not math.isfinite(frequency) or frequency <= 0:
        return ""

    folded = fold_into_reference_octave(frequency)

    closest_pitch = ""
    min_diff = float('inf')
    for name, reference in PITCH_TABLE.items():
        diff = abs(reference - folded)
        if diff < min_diff:
            min_diff = diff
            closest_pitch = name

    return closest_pitch
