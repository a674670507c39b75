"""
Document surfaces: per-page coordinate spaces the annotations live on.
"""
import logging
from abc import ABC, abstractmethod
from typing import List, Optional, Tuple

import fitz  # PyMuPDF

from ..errors import MarkupError

logger = logging.getLogger(__name__)


class DocumentSurface(ABC):
    """Page count and page sizes of the annotated document. Pages are 1-based."""

    @property
    @abstractmethod
    def page_count(self) -> int: ...

    @abstractmethod
    def page_size(self, page: int) -> Optional[Tuple[float, float]]:
        """Width and height of a page in document units, or None if out of range."""


class FixedSurface(DocumentSurface):
    """Surface with explicit page sizes, for hosts without a document file."""

    def __init__(self, sizes: List[Tuple[float, float]]):
        self.sizes = list(sizes)

    @property
    def page_count(self) -> int:
        return len(self.sizes)

    def page_size(self, page: int) -> Optional[Tuple[float, float]]:
        if 1 <= page <= len(self.sizes):
            return self.sizes[page - 1]
        return None


class PdfDocumentSurface(DocumentSurface):
    """Surface backed by a PDF opened with PyMuPDF."""

    def __init__(self):
        self.doc: Optional[fitz.Document] = None
        self.file_path: Optional[str] = None

    def load_pdf(self, file_path: str) -> None:
        """
        Load a PDF file.

        Args:
            file_path: Path to the PDF file

        Raises:
            MarkupError: If the file cannot be opened
        """
        try:
            doc = fitz.open(file_path)
        except (RuntimeError, ValueError, OSError) as e:
            raise MarkupError(f"Failed to load PDF {file_path}: {e}") from e

        self.close()
        self.doc = doc
        self.file_path = file_path
        logger.info("Loaded %s (%d pages)", file_path, len(doc), extra={"document": file_path})

    def load_bytes(self, data: bytes) -> None:
        """Load a PDF held in memory."""
        try:
            doc = fitz.open(stream=data, filetype="pdf")
        except (RuntimeError, ValueError) as e:
            raise MarkupError(f"Failed to load PDF from memory: {e}") from e
        self.close()
        self.doc = doc
        self.file_path = None

    def close(self) -> None:
        if self.doc is not None:
            self.doc.close()
        self.doc = None
        self.file_path = None

    @property
    def page_count(self) -> int:
        return len(self.doc) if self.doc else 0

    def page_size(self, page: int) -> Optional[Tuple[float, float]]:
        if not self.doc or not 1 <= page <= len(self.doc):
            return None
        rect = self.doc.load_page(page - 1).rect
        return rect.width, rect.height

    def render_page(self, page: int, zoom: float = 1.0) -> Optional[fitz.Pixmap]:
        """
        Rasterize a page.

        Args:
            page: 1-based page number
            zoom: Scale factor (1.0 = 72 dpi)

        Returns:
            RGB pixmap, or None if the page is out of range
        """
        if not self.doc or not 1 <= page <= len(self.doc):
            return None
        mat = fitz.Matrix(zoom, zoom)
        return self.doc.load_page(page - 1).get_pixmap(matrix=mat, alpha=False)
