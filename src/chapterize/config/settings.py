"""Extraction settings loader.

Loads configuration from config/chapterize.yaml (or the file named by the
CHAPTERIZE_CONFIG environment variable), merged over built-in defaults.

Usage:
    from chapterize.config.settings import load_settings

    settings = load_settings()
    settings.extraction.star_min_part_chars
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any

import structlog
import yaml

logger = structlog.get_logger(__name__)

CONFIG_FILE = Path("config/chapterize.yaml")
CONFIG_ENV_VAR = "CHAPTERIZE_CONFIG"

# calibre's ebook-convert --chapter-mark choices
CHAPTER_MARKS = ("pagebreak", "rule", "both", "none")


@dataclass
class ExtractionConfig:
    """Heuristic thresholds for chapter extraction.

    The numeric defaults are empirical; they are exposed so unusual books can
    be tuned without code changes.
    """

    min_original_chapters: int = 3
    min_chapter_words: int = 50
    star_min_part_chars: int = 500
    star_min_parts: int = 3
    heading_min_matches: int = 3
    heading_min_part_chars: int = 100
    heading_min_parts: int = 3
    title_scan_lines: int = 5
    keep_html: bool = False


@dataclass
class CalibreConfig:
    """Settings for the ebook-convert fallback."""

    bin_path: str | None = None
    timeout_seconds: float = 300
    chapter_xpath: str = "//h:h1|//h:h2|//h:h3"
    level1_toc: str = "//h:h1"
    level2_toc: str = "//h:h2"
    chapter_mark: str = "pagebreak"


@dataclass
class Settings:
    """Application-wide configuration."""

    extraction: ExtractionConfig = field(default_factory=ExtractionConfig)
    calibre: CalibreConfig = field(default_factory=CalibreConfig)


# Module-level cache
_cached_settings: Settings | None = None


def _build_section(cls: type, data: dict[str, Any] | None, section: str) -> Any:
    """Instantiate a config dataclass from a YAML mapping, ignoring unknown keys."""
    data = data or {}
    if not isinstance(data, dict):
        raise ValueError(f"La sección '{section}' debe ser un diccionario")

    known = {f.name for f in fields(cls)}
    unknown = sorted(set(data) - known)
    if unknown:
        logger.warning("settings.unknown_keys", section=section, keys=unknown)

    return cls(**{k: v for k, v in data.items() if k in known})


def _parse_settings(data: dict[str, Any]) -> Settings:
    """Parse a configuration dictionary into Settings."""
    extraction = _build_section(ExtractionConfig, data.get("extraction"), "extraction")
    calibre = _build_section(CalibreConfig, data.get("calibre"), "calibre")

    if calibre.chapter_mark not in CHAPTER_MARKS:
        raise ValueError(
            f"chapter_mark inválido: '{calibre.chapter_mark}' "
            f"(opciones: {', '.join(CHAPTER_MARKS)})"
        )

    return Settings(extraction=extraction, calibre=calibre)


def _config_path(path: Path | None) -> Path:
    if path is not None:
        return path
    env_path = os.environ.get(CONFIG_ENV_VAR)
    if env_path:
        return Path(env_path)
    return CONFIG_FILE


def load_settings(path: Path | None = None, force_reload: bool = False) -> Settings:
    """Load settings, falling back to defaults when no file exists.

    Args:
        path: Explicit YAML file. Bypasses the cache.
        force_reload: If True, ignore cached settings and reload from file.

    Returns:
        Settings object with all values.

    Raises:
        ValueError: If the file contains invalid values
    """
    global _cached_settings

    if path is None and _cached_settings is not None and not force_reload:
        return _cached_settings

    config_path = _config_path(path)
    data: dict[str, Any]

    if config_path.exists():
        logger.debug("settings.loading", source=str(config_path))
        data = yaml.safe_load(config_path.read_text(encoding="utf-8")) or {}
    else:
        logger.info("settings.using_defaults", missing=str(config_path))
        data = {}

    settings = _parse_settings(data)
    if path is None:
        _cached_settings = settings
    return settings


def clear_settings_cache() -> None:
    """Clear the settings cache."""
    global _cached_settings
    _cached_settings = None
