"""PyMuPDF-backed paginator that slices a loaded PDF into sub-documents."""

from __future__ import annotations

from pathlib import Path
from typing import Iterator, Sequence

import fitz

from .errors import DocumentError

__all__ = ["DocumentPaginator", "looks_like_pdf"]

PDF_MEDIA_TYPE = "application/pdf"


def looks_like_pdf(data: bytes) -> bool:
    """Return whether ``data`` carries a PDF header near its start."""

    return b"%PDF-" in data[:1024]


class DocumentPaginator:
    """Own an opened PDF and produce standalone PDFs for page subsets.

    Every :meth:`extract_pages` call builds a fresh document from the
    in-memory source, so calls are independent of one another.
    """

    def __init__(self, document: fitz.Document) -> None:
        self._document = document
        self._page_count = document.page_count

    @classmethod
    def from_bytes(cls, data: bytes) -> "DocumentPaginator":
        if not data:
            raise DocumentError("The PDF file is empty.")
        if not looks_like_pdf(data):
            raise DocumentError("Please upload a PDF file.")
        try:
            document = fitz.open(stream=data, filetype="pdf")
        except RuntimeError as exc:
            raise DocumentError(
                "Could not load the PDF. It might be corrupted or protected. "
                f"Error: {exc}"
            ) from exc
        if document.needs_pass or document.is_encrypted:
            document.close()
            raise DocumentError(
                "Could not load the PDF. It is password protected."
            )
        return cls(document)

    @classmethod
    def open(cls, path: Path) -> "DocumentPaginator":
        try:
            data = Path(path).read_bytes()
        except OSError as exc:
            raise DocumentError(f"Failed to read the PDF file: {exc}") from exc
        return cls.from_bytes(data)

    def count_pages(self) -> int:
        return self._page_count

    def extract_pages(self, indices: Sequence[int]) -> bytes:
        """Serialize the given pages, in order, as a new PDF document."""

        pages = list(indices)
        if not pages:
            raise DocumentError("At least one page index is required.")
        for index in pages:
            if isinstance(index, bool) or not isinstance(index, int):
                raise DocumentError(f"Invalid page index: {index!r}")
            if not 0 <= index < self._page_count:
                raise DocumentError(
                    f"Page index {index} is out of range for a "
                    f"{self._page_count}-page document."
                )

        target = fitz.open()
        try:
            for first, last in _runs(pages):
                target.insert_pdf(
                    self._document, from_page=first, to_page=last
                )
            return target.tobytes(deflate=True)
        except RuntimeError as exc:
            raise DocumentError(f"Failed to copy PDF pages: {exc}") from exc
        finally:
            target.close()

    def close(self) -> None:
        self._document.close()

    def __enter__(self) -> "DocumentPaginator":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


def _runs(pages: Sequence[int]) -> Iterator[tuple[int, int]]:
    """Group ascending consecutive indices so each run is copied at once."""

    first = last = pages[0]
    for index in pages[1:]:
        if index == last + 1:
            last = index
            continue
        yield first, last
        first = last = index
    yield first, last
