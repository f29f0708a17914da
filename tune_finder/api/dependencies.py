"""
Shared, lazily-loaded service state.

The config and template library are read once per process. Tests swap them
through ``app.dependency_overrides``.
"""

from typing import Optional

from tune_finder.config import AnalyzerConfig
from tune_finder.tools.template_library import TemplateLibrary, load_library

_config: Optional[AnalyzerConfig] = None
_library: Optional[TemplateLibrary] = None


def get_config() -> AnalyzerConfig:
    global _config
    if _config is None:
        _config = AnalyzerConfig.from_env()
        print(f"[config] {_config}")
    return _config


def get_library() -> TemplateLibrary:
    global _library
    if _library is None:
        config = get_config()
        _library = load_library(config.templates_path, interval_ms=config.interval_ms)
    return _library
