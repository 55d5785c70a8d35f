"""Exception hierarchy for chapter extraction.

Every error raised by the extraction pipeline derives from ChapterizeError.
Parse, not-found, insufficient-data, invalid-archive and conversion errors are
fallback triggers: the orchestrator logs them and moves on to the next strategy.
Only ExtractionTimeoutError is meant to reach the caller mid-pipeline.
"""

from __future__ import annotations

from pathlib import Path


class ChapterizeError(Exception):
    """Base exception for chapter extraction errors."""

    pass


class ParseError(ChapterizeError):
    """Raised when a navigation document cannot be decoded."""

    pass


class NcxParseError(ParseError):
    """Raised when an NCX document is malformed."""

    def __init__(self, detail: str = ""):
        self.detail = detail
        msg = "NCX inválido o corrupto"
        if detail:
            msg += f" ({detail})"
        super().__init__(msg)


class OpfParseError(ParseError):
    """Raised when an OPF package document is malformed."""

    def __init__(self, detail: str = ""):
        self.detail = detail
        msg = "OPF inválido o corrupto"
        if detail:
            msg += f" ({detail})"
        super().__init__(msg)


class NotFoundError(ChapterizeError):
    """Raised when a navigation document or content file is missing."""

    pass


class NcxNotFoundError(NotFoundError):
    """Raised when the archive has no NCX navigation document."""

    def __init__(self, source: str = ""):
        self.source = source
        msg = "No se encontró archivo NCX"
        if source:
            msg += f" en {source}"
        super().__init__(msg)


class ContentNotFoundError(NotFoundError):
    """Raised when an href points to a file absent from the archive."""

    def __init__(self, file_path: str):
        self.file_path = file_path
        super().__init__(f"Archivo de capítulo no encontrado: {file_path}")


class CoverNotFoundError(NotFoundError):
    """Raised when ebook-meta finishes without writing a cover image."""

    def __init__(self, source: str = ""):
        self.source = source
        msg = "No se pudo extraer la portada (el libro puede no tenerla)"
        if source:
            msg += f": {source}"
        super().__init__(msg)


class InsufficientDataError(ChapterizeError):
    """Raised when a strategy yields fewer chapters than it needs to be trusted."""

    def __init__(self, message: str, found: int = 0, required: int = 1):
        self.found = found
        self.required = required
        super().__init__(message)


class InvalidEpubError(ChapterizeError):
    """Raised when an EPUB archive is invalid or corrupted."""

    def __init__(self, file_path: Path, detail: str = ""):
        self.file_path = file_path
        msg = f"EPUB inválido o corrupto: {file_path.name}"
        if detail:
            msg += f" ({detail})"
        super().__init__(msg)


class ConversionError(ChapterizeError):
    """Raised when ebook-convert is missing, fails or times out."""

    def __init__(self, message: str, output: str = ""):
        self.output = output
        super().__init__(message)


class ExtractionTimeoutError(ChapterizeError):
    """Raised when the caller's deadline expires between pipeline stages."""

    def __init__(self, stage: str):
        self.stage = stage
        super().__init__(f"Tiempo de extracción agotado antes de: {stage}")
