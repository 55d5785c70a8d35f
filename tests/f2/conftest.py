"""Fixtures for F2 tests - entry classification and text segmentation."""

import pytest

from chapterize.config.settings import ExtractionConfig


def _paragraph(seed: str, words: int = 150) -> str:
    return " ".join(f"{seed}{i}" for i in range(words))


@pytest.fixture
def make_paragraph():
    """Factory building a paragraph of N distinct words."""
    return _paragraph


@pytest.fixture
def extraction_config() -> ExtractionConfig:
    return ExtractionConfig()


@pytest.fixture
def chapter_headed_text() -> str:
    """Three "Chapter N" sections with no preamble."""
    return "\n\n".join(f"Chapter {n}\n\n{_paragraph(f'w{n}_', 40)}" for n in (1, 2, 3))


@pytest.fixture
def star_separated_text() -> str:
    """Three long sections separated by "* * *" lines."""
    sections = [_paragraph(seed, 120) for seed in ("alpha", "beta", "gamma")]
    return "\n\n* * *\n\n".join(sections)
