"""Unit tests for text extraction."""

import io
from pathlib import Path
from unittest.mock import MagicMock, patch

import docx
import pymupdf
import pytest

from tokenator.errors import ExtractionError, UnsupportedFormatError
from tokenator.models.results import InputFile
from tokenator.processors.text_extractor import (
    SUPPORTED_EXTENSIONS,
    DocxTextExtractor,
    PDFTextExtractor,
    PlainTextExtractor,
    extract_text,
    get_extractor,
)


def _make_pdf(*page_texts: str) -> bytes:
    """Build a PDF in memory with one line of text per page."""
    doc = pymupdf.open()
    for text in page_texts:
        page = doc.new_page()
        page.insert_text((72, 72), text, fontsize=12)
    data = doc.tobytes()
    doc.close()
    return data


def _make_docx(paragraphs: list[str], table: list[list[str]] | None = None) -> bytes:
    """Build a DOCX in memory from paragraphs and an optional trailing table."""
    document = docx.Document()
    for text in paragraphs:
        document.add_paragraph(text)
    if table:
        docx_table = document.add_table(rows=len(table), cols=len(table[0]))
        for row_ix, row in enumerate(table):
            for col_ix, value in enumerate(row):
                docx_table.cell(row_ix, col_ix).text = value
    buffer = io.BytesIO()
    document.save(buffer)
    return buffer.getvalue()


@pytest.fixture
def mock_pdf_doc():
    """Create a mock PyMuPDF document with several text runs per page."""
    page1 = MagicMock()
    page1.get_text.return_value = {
        "blocks": [
            {
                "type": 0,
                "lines": [
                    {"spans": [{"text": "Chapter 1:"}, {"text": "Intro-"}]},
                    {"spans": [{"text": "duction"}]},
                ],
            },
            {"type": 1},  # image block
        ]
    }
    page2 = MagicMock()
    page2.get_text.return_value = {"blocks": [{"type": 0, "lines": [{"spans": [{"text": "The end"}]}]}]}

    doc = MagicMock()
    doc.__enter__.return_value = doc
    doc.__iter__ = lambda self: iter([page1, page2])
    return doc


class TestGetExtractor:
    """Tests for extension-based dispatch."""

    def test_supported_extensions(self):
        assert set(SUPPORTED_EXTENSIONS) == {"txt", "md", "pdf", "docx"}

    @pytest.mark.parametrize(
        "name,expected_type",
        [
            ("notes.txt", PlainTextExtractor),
            ("README.md", PlainTextExtractor),
            ("paper.PDF", PDFTextExtractor),
            ("letter.DocX", DocxTextExtractor),
        ],
    )
    def test_dispatch_is_case_insensitive(self, name, expected_type):
        assert isinstance(get_extractor(name), expected_type)

    @pytest.mark.parametrize("name", ["report.xyz", "image.png", "Makefile", "legacy.doc"])
    def test_unsupported_extension(self, name):
        with pytest.raises(UnsupportedFormatError):
            get_extractor(name)


class TestExtractText:
    """Tests for extract_text."""

    def test_plain_text(self):
        file = InputFile(name="notes.txt", content="héllo\nworld".encode())

        assert extract_text(file) == "héllo\nworld"

    def test_markdown_strips_bom(self):
        file = InputFile(name="doc.md", content=b"\xef\xbb\xbf# Title")

        assert extract_text(file) == "# Title"

    def test_invalid_utf8_is_replaced(self):
        file = InputFile(name="notes.txt", content=b"ab\xffcd")

        assert extract_text(file) == "ab�cd"

    def test_whitespace_is_preserved(self):
        file = InputFile(name="notes.txt", content=b"  a\r\n\tb  ")

        assert extract_text(file) == "  a\r\n\tb  "

    def test_unsupported_fails_before_io(self, tmp_path: Path):
        """An unsupported extension is rejected without reading the (missing) file."""
        file = InputFile.from_path(tmp_path / "does-not-exist.xyz")

        with pytest.raises(UnsupportedFormatError, match="xyz"):
            extract_text(file)

    def test_missing_file_raises_extraction_error(self, tmp_path: Path):
        file = InputFile.from_path(tmp_path / "missing.txt")

        with pytest.raises(ExtractionError, match="Failed to read"):
            extract_text(file)

    def test_pdf_pages_in_order(self):
        file = InputFile(name="paper.pdf", content=_make_pdf("First page", "Second page"))

        text = extract_text(file)

        assert text.count("\n") == 2
        assert text.index("First page") < text.index("Second page")
        assert text.endswith("\n")

    def test_pdf_fragments_joined_with_spaces(self, mock_pdf_doc):
        with patch("tokenator.processors.text_extractor.pymupdf.open", return_value=mock_pdf_doc):
            text = extract_text(InputFile(name="paper.pdf", content=b"%PDF-1.4"))

        # No de-hyphenation, image blocks skipped, one newline per page
        assert text == "Chapter 1: Intro- duction\nThe end\n"

    def test_pdf_without_pages_yields_empty_text(self):
        doc = MagicMock()
        doc.__enter__.return_value = doc
        doc.__iter__ = lambda self: iter([])

        with patch("tokenator.processors.text_extractor.pymupdf.open", return_value=doc):
            assert extract_text(InputFile(name="empty.pdf", content=b"%PDF-1.4")) == ""

    def test_corrupt_pdf_raises_extraction_error(self):
        file = InputFile(name="broken.pdf", content=b"this is not a pdf")

        with pytest.raises(ExtractionError, match="PDF"):
            extract_text(file)

    def test_docx_paragraphs(self):
        file = InputFile(name="letter.docx", content=_make_docx(["Dear reader,", "Thanks."]))

        assert extract_text(file) == "Dear reader,\n\nThanks.\n\n"

    def test_docx_tables_as_plain_text(self):
        content = _make_docx(["Summary"], table=[["Name", "Score"], ["Ada", "10"]])

        text = extract_text(InputFile(name="table.docx", content=content))

        assert text.startswith("Summary\n\n")
        for cell in ["Name", "Score", "Ada", "10"]:
            assert f"{cell}\n\n" in text
        assert text.index("Name") < text.index("Score") < text.index("Ada") < text.index("10")

    def test_docx_large_table_keeps_every_cell(self):
        rows = [[f"r{r}c{c}" for c in range(4)] for r in range(40)]
        content = _make_docx([], table=rows)

        text = extract_text(InputFile(name="large.docx", content=content))

        missing = [cell for row in rows for cell in row if f"{cell}\n\n" not in text]
        assert missing == []
        assert text.count("\n\n") == 160

    def test_docx_merged_cell_emitted_once(self):
        document = docx.Document()
        table = document.add_table(rows=12, cols=3)
        for row_ix in range(12):
            for col_ix in range(3):
                table.cell(row_ix, col_ix).text = f"r{row_ix}c{col_ix}"
        merged = table.cell(5, 0).merge(table.cell(5, 1))
        merged.text = "merged"
        buffer = io.BytesIO()
        document.save(buffer)

        text = extract_text(InputFile(name="merged.docx", content=buffer.getvalue()))

        assert text.count("merged\n\n") == 1
        assert "r5c2\n\n" in text
        assert "r11c2\n\n" in text
        # 12 rows x 3 cells, minus the one absorbed by the merge
        assert text.count("\n\n") == 35

    def test_corrupt_docx_raises_extraction_error(self):
        file = InputFile(name="broken.docx", content=b"not a zip archive")

        with pytest.raises(ExtractionError, match="DOCX"):
            extract_text(file)
