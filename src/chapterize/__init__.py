"""chapterize - chapter extraction for ebooks."""

__version__ = "0.1.0"
