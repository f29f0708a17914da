import pytest
from tune_finder.config import AnalyzerConfig


def test_defaults():
    config = AnalyzerConfig().validate()

    assert config.transform_size == 32768
    assert config.bin_count == 16384
    assert config.buffer_capacity == 100
    # Zero seconds still needs one point before matching
    assert config.min_trajectory_length == 1
    assert config.dtw_window is None

def test_min_length_rounds_up():
    config = AnalyzerConfig(min_search_seconds=0.25, interval_ms=100)
    assert config.min_trajectory_length == 3

def test_from_env():
    config = AnalyzerConfig.from_env({
        "TUNE_FINDER_TRANSFORM_SIZE": "2048",
        "TUNE_FINDER_INTERVAL_MS": "50",
        "TUNE_FINDER_MAX_SEARCH_SECONDS": "5",
        "TUNE_FINDER_MIN_SEARCH_SECONDS": "1",
        "TUNE_FINDER_DTW_WINDOW": "8",
        "TUNE_FINDER_TEMPLATES_PATH": "/srv/bgms",
        "UNRELATED": "x",
    })

    assert config.transform_size == 2048
    assert config.interval_ms == 50
    assert config.buffer_capacity == 100
    assert config.min_trajectory_length == 20
    assert config.dtw_window == 8
    assert config.templates_path == "/srv/bgms"

def test_from_env_ignores_blank_values():
    config = AnalyzerConfig.from_env({"TUNE_FINDER_DTW_WINDOW": "  "})
    assert config.dtw_window is None

def test_from_env_bad_number():
    with pytest.raises(ValueError, match="TUNE_FINDER_INTERVAL_MS"):
        AnalyzerConfig.from_env({"TUNE_FINDER_INTERVAL_MS": "fast"})

@pytest.mark.parametrize("overrides", [
    {"transform_size": 1000},
    {"interval_ms": 0},
    {"min_search_seconds": 20.0},
    {"magnitude_floor": 200.0, "magnitude_ceiling": 150.0},
    {"dtw_window": -1},
    {"smoothing": 1.5},
])
def test_invalid_configs(overrides):
    with pytest.raises(ValueError):
        AnalyzerConfig(**overrides).validate()

def test_with_overrides_validates():
    config = AnalyzerConfig().with_overrides(max_search_seconds=2)
    assert config.buffer_capacity == 20
    with pytest.raises(ValueError):
        AnalyzerConfig().with_overrides(interval_ms=-5)
