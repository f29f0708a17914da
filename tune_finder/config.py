"""
Analyzer configuration.

Defaults match the capture setup the templates were recorded with
(32768-point FFT, 100 ms ticks, 10 s search horizon). Every option can be
overridden through TUNE_FINDER_* environment variables or a .env file.
"""

import math
import os
from dataclasses import dataclass, field, fields, replace
from typing import Mapping, Optional

from dotenv import load_dotenv

ENV_PREFIX = "TUNE_FINDER_"


@dataclass(frozen=True)
class AnalyzerConfig:
    transform_size: int = 32768
    smoothing: float = 0.25  # applied upstream by the transform side
    interval_ms: int = 100
    min_search_seconds: float = 0.0
    max_search_seconds: float = 10.0
    magnitude_floor: float = 100.0
    magnitude_ceiling: float = 1100.0
    dtw_window: Optional[int] = None  # Sakoe-Chiba radius, None = full matrix
    templates_path: Optional[str] = field(default=None)

    @property
    def bin_count(self) -> int:
        return self.transform_size // 2

    @property
    def buffer_capacity(self) -> int:
        """Trajectory points kept before the buffer resets."""
        return max(1, int(_ticks(self.max_search_seconds, self.interval_ms)))

    @property
    def min_trajectory_length(self) -> int:
        """Points needed before matching starts (at least one)."""
        return max(1, math.ceil(_ticks(self.min_search_seconds, self.interval_ms)))

    @property
    def interval_seconds(self) -> float:
        return self.interval_ms / 1000.0

    def validate(self) -> "AnalyzerConfig":
        if self.transform_size < 2 or self.transform_size & (self.transform_size - 1):
            raise ValueError(f"transform_size must be a power of two, got {self.transform_size}")
        if not 0.0 <= self.smoothing < 1.0:
            raise ValueError(f"smoothing must be in [0, 1), got {self.smoothing}")
        if self.interval_ms <= 0:
            raise ValueError(f"interval_ms must be positive, got {self.interval_ms}")
        if self.min_search_seconds < 0:
            raise ValueError(f"min_search_seconds must be >= 0, got {self.min_search_seconds}")
        if self.max_search_seconds <= 0:
            raise ValueError(f"max_search_seconds must be positive, got {self.max_search_seconds}")
        if self.min_trajectory_length > self.buffer_capacity:
            raise ValueError(
                f"min_search_seconds ({self.min_search_seconds}) cannot exceed "
                f"max_search_seconds ({self.max_search_seconds})"
            )
        if self.magnitude_floor >= self.magnitude_ceiling:
            raise ValueError(
                f"magnitude_floor ({self.magnitude_floor}) must be below "
                f"magnitude_ceiling ({self.magnitude_ceiling})"
            )
        if self.dtw_window is not None and self.dtw_window < 0:
            raise ValueError(f"dtw_window must be >= 0, got {self.dtw_window}")
        return self

    def with_overrides(self, **overrides) -> "AnalyzerConfig":
        return replace(self, **overrides).validate()

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "AnalyzerConfig":
        """Build a config from TUNE_FINDER_* variables (loads .env first)."""
        if environ is None:
            load_dotenv()
            environ = os.environ

        values = {}
        for f in fields(cls):
            raw = environ.get(ENV_PREFIX + f.name.upper())
            if raw is None or raw.strip() == "":
                continue
            values[f.name] = _parse_value(f.name, raw.strip())

        return cls(**values).validate()


def _ticks(seconds: float, interval_ms: float) -> float:
    # Rounded so 0.3 s / 100 ms gives 3 ticks, not 3.0000000000000004
    return round(seconds * 1000 / interval_ms, 9)


def _parse_value(name: str, raw: str):
    try:
        if name in ("transform_size", "interval_ms", "dtw_window"):
            return int(raw)
        if name == "templates_path":
            return raw
        return float(raw)
    except ValueError:
        raise ValueError(f"Invalid value for {ENV_PREFIX}{name.upper()}: {raw!r}") from None
