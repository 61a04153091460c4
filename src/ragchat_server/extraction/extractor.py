"""
Text Extraction

Turns uploaded file bytes into plain text for the ingestion pipeline.

Supported formats
-----------------
- ``.txt``: decoded as UTF-8; undecodable bytes are replaced
- ``.pdf``: text of every page, extracted with PyMuPDF

Anything else raises ``UnsupportedFormatError``, which the ingestion
orchestrator records as a per-file ``unsupported-format`` result rather than
aborting the batch.
"""

from __future__ import annotations

import logging
from pathlib import PurePath
from typing import Iterable, Optional

import fitz  # PyMuPDF

from ..config import settings
from ..core.errors import ExtractionError, UnsupportedFormatError

logger = logging.getLogger("ragchat.extraction")

KNOWN_EXTENSIONS = (".txt", ".pdf")


class TextExtractor:
    """
    Extension-dispatched plain-text extractor.
    """

    def __init__(self, extensions: Optional[Iterable[str]] = None) -> None:
        """
        Parameters
        ----------
        extensions : Optional[Iterable[str]]
            Enabled extensions (lower case, with the dot). Defaults to
            settings.supported_extensions. Unknown extensions are ignored.
        """
        enabled = extensions if extensions is not None else settings.supported_extension_list
        self.extensions = tuple(e for e in enabled if e in KNOWN_EXTENSIONS)

    def extract(self, filename: str, content: bytes) -> str:
        """
        Return the plain text of one uploaded file.

        Raises
        ------
        UnsupportedFormatError
            If the file extension is not enabled.
        ExtractionError
            If the file cannot be read.
        """
        ext = PurePath(filename).suffix.lower()

        if ext not in self.extensions:
            raise UnsupportedFormatError(f"Unsupported file format: {ext or filename}")

        if ext == ".pdf":
            return self._extract_pdf(filename, content)

        return content.decode("utf-8", errors="replace")

    @staticmethod
    def _extract_pdf(filename: str, content: bytes) -> str:
        try:
            with fitz.open(stream=content, filetype="pdf") as doc:
                pages = [page.get_text() for page in doc]
        except Exception as exc:
            logger.warning("Failed to read PDF %s: %s", filename, exc)
            raise ExtractionError(f"Unreadable PDF {filename}: {exc}") from exc

        return "\n".join(pages)
