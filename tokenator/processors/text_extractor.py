"""Plain-text extraction from supported document formats."""

import codecs
import io
from abc import ABC, abstractmethod
from collections.abc import Iterator

import docx
import pymupdf
from docx.table import Table
from docx.text.paragraph import Paragraph

from tokenator.errors import ExtractionError, UnsupportedFormatError
from tokenator.models.results import InputFile


class TextExtractor(ABC):
    """Base class for format-specific text extractors."""

    format_name: str = ""

    @abstractmethod
    def extract(self, data: bytes) -> str:
        """Extract plain text from raw file bytes.

        Args:
            data: Raw file content.

        Returns:
            Extracted text, without whitespace or Unicode normalization.
        """
        pass


class PlainTextExtractor(TextExtractor):
    """Decodes text files as UTF-8, replacing invalid bytes."""

    format_name = "text"

    def extract(self, data: bytes) -> str:
        if data.startswith(codecs.BOM_UTF8):
            data = data[len(codecs.BOM_UTF8) :]
        return data.decode("utf-8", errors="replace")


class PDFTextExtractor(TextExtractor):
    """Concatenates the text spans of every page in page order.

    Spans on the same page are joined with a single space and each page is
    terminated by a newline. No de-hyphenation or layout reconstruction.
    """

    format_name = "PDF"

    def extract(self, data: bytes) -> str:
        with pymupdf.open(stream=data, filetype="pdf") as doc:
            return "".join(" ".join(self._page_fragments(page)) + "\n" for page in doc)

    def _page_fragments(self, page: pymupdf.Page) -> list[str]:
        page_dict = page.get_text("dict")
        fragments = []

        for block in page_dict.get("blocks", []):
            # Only text blocks (type 0), skip image blocks (type 1)
            if block.get("type") != 0:
                continue

            for line in block.get("lines", []):
                for span in line.get("spans", []):
                    fragments.append(span.get("text", ""))

        return fragments


class DocxTextExtractor(TextExtractor):
    """Extracts raw paragraph text from Word documents.

    Table cells are emitted as ordinary paragraphs; images and styling are ignored.
    Every paragraph is followed by a blank line.
    """

    format_name = "DOCX"

    def extract(self, data: bytes) -> str:
        document = docx.Document(io.BytesIO(data))
        return "".join(paragraph.text + "\n\n" for paragraph in self._iter_paragraphs(document))

    def _iter_paragraphs(self, container) -> Iterator[Paragraph]:
        """Yield paragraphs in body order, descending into tables."""
        for item in container.iter_inner_content():
            if isinstance(item, Paragraph):
                yield item
            elif isinstance(item, Table):
                yield from self._iter_table_paragraphs(item)

    def _iter_table_paragraphs(self, table: Table) -> Iterator[Paragraph]:
        # Merged cells are returned once per grid position; visit each only once
        seen = set()
        for row in table.rows:
            for cell in row.cells:
                # Keep the elements themselves so they stay alive and distinct
                tc = cell._tc
                if tc in seen:
                    continue
                seen.add(tc)
                yield from self._iter_paragraphs(cell)


EXTRACTORS: dict[str, TextExtractor] = {
    "txt": PlainTextExtractor(),
    "md": PlainTextExtractor(),
    "pdf": PDFTextExtractor(),
    "docx": DocxTextExtractor(),
}

SUPPORTED_EXTENSIONS = tuple(EXTRACTORS)


def get_extractor(file_name: str) -> TextExtractor:
    """Select an extractor from the file name's extension (case-insensitive).

    Raises:
        UnsupportedFormatError: If the extension is not supported.
    """
    extension = InputFile(name=file_name).extension
    if extension not in EXTRACTORS:
        raise UnsupportedFormatError(file_name, extension)
    return EXTRACTORS[extension]


def extract_text(file: InputFile) -> str:
    """Extract plain text from a file.

    Raises:
        UnsupportedFormatError: If the extension is not supported. Raised before any I/O.
        ExtractionError: If the file cannot be read or parsed.
    """
    extractor = get_extractor(file.name)

    try:
        data = file.read_bytes()
    except OSError as e:
        raise ExtractionError(f"Failed to read '{file.name}': {e}") from e

    try:
        return extractor.extract(data)
    except Exception as e:
        raise ExtractionError(f"Failed to parse {extractor.format_name} file '{file.name}': {e}") from e
