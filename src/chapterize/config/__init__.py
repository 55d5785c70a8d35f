"""Configuration package for chapterize."""

from chapterize.config.settings import (
    CalibreConfig,
    ExtractionConfig,
    Settings,
    clear_settings_cache,
    load_settings,
)

__all__ = [
    "CalibreConfig",
    "ExtractionConfig",
    "Settings",
    "clear_settings_cache",
    "load_settings",
]
