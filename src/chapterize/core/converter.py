"""Wrappers around calibre's command-line tools.

ebook-convert feeds the fallback strategies:
- to_epub: re-render any supported format as EPUB with an auto-generated NCX
- to_text: render plain text with page breaks between detected chapters

ebook-meta reads book-level data:
- metadata: the book's OPF (--to-opf), parsed into Metadata
- extract_cover: the cover image (--get-cover)

Requires calibre on the system (brew install calibre / apt install calibre).
"""

from __future__ import annotations

import re
import shutil
import subprocess
import tempfile
from pathlib import Path

import structlog

from chapterize.config.settings import CalibreConfig
from chapterize.core.models import Metadata
from chapterize.core.opf_parser import parse_opf
from chapterize.exceptions import ConversionError, CoverNotFoundError

logger = structlog.get_logger(__name__)

EBOOK_CONVERT = "ebook-convert"
EBOOK_META = "ebook-meta"
VERSION_TIMEOUT = 10
VERSION_PATTERN = re.compile(r"calibre\s+(\d+\.\d+\.\d+)")

# Input formats ebook-convert can read
SUPPORTED_FORMATS = (
    "azw", "azw1", "azw3", "azw4", "cb7", "cbc", "cbr", "cbz",
    "chm", "docx", "epub", "fb2", "fbz", "html", "htmlz", "imp",
    "kepub", "lit", "lrf", "lrx", "mobi", "odt", "oebzip", "opf",
    "pdb", "pdf", "pml", "pmlz", "pobi", "prc", "rar", "rb",
    "rtf", "snb", "tpz", "txt", "txtz", "updb", "zip",
)


def is_supported_format(path: Path) -> bool:
    return path.suffix.lower().lstrip(".") in SUPPORTED_FORMATS


class CalibreConverter:
    """Runs ebook-convert and ebook-meta as subprocesses."""

    def __init__(self, config: CalibreConfig | None = None):
        self.config = config or CalibreConfig()
        self.executable = self._detect_executable(EBOOK_CONVERT)
        self.meta_executable = self._detect_executable(EBOOK_META)

    def _detect_executable(self, tool: str) -> str | None:
        if self.config.bin_path:
            candidate = Path(self.config.bin_path).expanduser() / tool
            if candidate.exists():
                return str(candidate)
            logger.warning("converter.bin_path_missing", bin_path=self.config.bin_path, tool=tool)
        return shutil.which(tool)

    @property
    def available(self) -> bool:
        return self.executable is not None

    @property
    def meta_available(self) -> bool:
        return self.meta_executable is not None

    def version(self) -> str:
        """Return the installed calibre version (e.g. "8.16.2").

        Raises:
            ConversionError: If ebook-convert is missing or the version is unreadable
        """
        output = self._run(["--version"], timeout=VERSION_TIMEOUT)
        match = VERSION_PATTERN.search(output)
        if not match:
            raise ConversionError(f"No se pudo leer la versión de calibre: {output.strip()}")
        return match.group(1)

    def to_epub(self, source: Path, output: Path, timeout: float | None = None) -> Path:
        """Convert `source` to EPUB with calibre's chapter/TOC detection."""
        args = [
            str(source),
            str(output),
            "--chapter", self.config.chapter_xpath,
            "--use-auto-toc",
            "--level1-toc", self.config.level1_toc,
            "--level2-toc", self.config.level2_toc,
        ]
        self._run(args, timeout=timeout)
        return self._check_output(output)

    def to_text(
        self,
        source: Path,
        output: Path,
        chapter_mark: str | None = None,
        timeout: float | None = None,
    ) -> Path:
        """Convert `source` to plain text, marking chapters with `chapter_mark`."""
        mark = chapter_mark or self.config.chapter_mark
        self._run([str(source), str(output), "--chapter-mark", mark], timeout=timeout)
        return self._check_output(output)

    def metadata(self, source: Path, timeout: float | None = None) -> Metadata:
        """Read the book's metadata through `ebook-meta --to-opf`.

        Raises:
            ConversionError: If ebook-meta is missing, fails or writes no OPF
            OpfParseError: If the OPF it writes is malformed
        """
        with tempfile.TemporaryDirectory(prefix="chapterize-meta-") as tmp_dir:
            opf_path = Path(tmp_dir) / "metadata.opf"
            self._run([str(source), "--to-opf", str(opf_path)], timeout=timeout, tool=EBOOK_META)
            if not opf_path.exists():
                raise ConversionError(f"ebook-meta no generó {opf_path.name}")
            metadata = parse_opf(opf_path.read_bytes())

        logger.info("converter.metadata_read", source=source.name, title=metadata.title)
        return metadata

    def extract_cover(self, source: Path, output: Path, timeout: float | None = None) -> Path:
        """Write the book's cover image to `output` through `ebook-meta --get-cover`.

        Raises:
            ConversionError: If ebook-meta is missing or fails
            CoverNotFoundError: If ebook-meta wrote no image
        """
        output.parent.mkdir(parents=True, exist_ok=True)
        self._run([str(source), "--get-cover", str(output)], timeout=timeout, tool=EBOOK_META)
        if not output.exists():
            raise CoverNotFoundError(source.name)

        logger.info("converter.cover_extracted", source=source.name, output=str(output))
        return output

    def _check_output(self, output: Path) -> Path:
        if not output.exists():
            raise ConversionError(f"ebook-convert no generó {output.name}")
        return output

    def _run(
        self,
        args: list[str],
        timeout: float | None = None,
        tool: str = EBOOK_CONVERT,
    ) -> str:
        executable = self.meta_executable if tool == EBOOK_META else self.executable
        if executable is None:
            raise ConversionError(
                f"calibre no encontrado: {tool} no está en PATH. "
                "Instalar con: brew install calibre"
            )

        effective_timeout = timeout if timeout is not None else self.config.timeout_seconds
        logger.debug("converter.run", tool=tool, args=args, timeout=effective_timeout)

        try:
            result = subprocess.run(
                [executable, *args],
                capture_output=True,
                text=True,
                timeout=effective_timeout,
            )
        except subprocess.TimeoutExpired:
            raise ConversionError(
                f"{tool} excedió el tiempo límite ({effective_timeout:.0f}s)"
            )
        except OSError as e:
            raise ConversionError(f"No se pudo ejecutar {tool}: {e}")

        output = (result.stdout or "") + (result.stderr or "")
        if result.returncode != 0:
            logger.warning("converter.failed", tool=tool, returncode=result.returncode)
            raise ConversionError(
                f"{tool} falló (código {result.returncode})",
                output=output.strip(),
            )
        return output
