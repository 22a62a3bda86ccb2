import os

import pytest

from conftest import LONG_PARAGRAPHS, build_docx, build_pdf, build_pptx
from document.document_loader import (
    DocumentFormat,
    DocumentLoader,
    LegacyOfficeExtractor,
    PptxExtractor,
    TextExtractor,
    clean_text,
    resolve_format,
)
from utils.errors import (
    ExtractionFailed,
    FileTooLarge,
    InsufficientContent,
    UnsupportedFormat,
)

DOCX_MIME = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"
PPTX_MIME = "application/vnd.openxmlformats-officedocument.presentationml.presentation"


class RaisingExtractor(TextExtractor):
    label = "broken"

    def extract(self, file_path):
        assert os.path.exists(file_path)
        raise RuntimeError("corrupt file")


class StaticExtractor(TextExtractor):
    def __init__(self, text):
        self.text = text
        self.seen_path = None

    def extract(self, file_path):
        self.seen_path = file_path
        return self.text


def test_clean_text_collapses_whitespace_and_drops_blank_lines():
    raw = "  Title\t\tline  \r\n\n\n   body   text here \n \t \nend  "
    assert clean_text(raw) == "Title line\nbody text here\nend"


def test_clean_text_empty():
    assert clean_text("") == ""
    assert clean_text(" \n\t\n ") == ""


@pytest.mark.parametrize(
    "content_type, filename, expected",
    [
        ("application/pdf", "notes.bin", DocumentFormat.PDF),
        ("application/msword", "notes.doc", DocumentFormat.DOC),
        (DOCX_MIME, "notes.docx", DocumentFormat.DOCX),
        ("application/vnd.ms-powerpoint", "deck.ppt", DocumentFormat.PPT),
        (PPTX_MIME + "; charset=binary", "deck.pptx", DocumentFormat.PPTX),
        ("application/octet-stream", "Deck.PPTX", DocumentFormat.PPTX),
        (None, "lecture.pdf", DocumentFormat.PDF),
    ],
)
def test_resolve_format(content_type, filename, expected):
    assert resolve_format(content_type, filename) == expected


@pytest.mark.parametrize(
    "content_type, filename",
    [
        ("text/plain", "notes.txt"),
        ("text/plain", "notes.pdf"),
        ("application/octet-stream", "archive.zip"),
        ("image/png", None),
    ],
)
def test_resolve_format_rejects_unsupported(content_type, filename):
    with pytest.raises(UnsupportedFormat):
        resolve_format(content_type, filename)


def test_extract_pdf():
    lines = [f"Line {i} explains how the water cycle moves water around" for i in range(6)]
    text = DocumentLoader().extract(build_pdf(lines), "application/pdf", "water.pdf")
    assert "water cycle" in text
    assert len(text) >= 100


def test_near_empty_pdf_is_insufficient():
    data = build_pdf(["Hi"])
    with pytest.raises(InsufficientContent):
        DocumentLoader().extract(data, "application/pdf", "empty.pdf")


def test_extract_docx_includes_tables():
    data = build_docx(LONG_PARAGRAPHS, table_rows=[["Organelle", "Chloroplast"]])
    text = DocumentLoader().extract(data, DOCX_MIME, "bio.docx")
    assert "Calvin cycle" in text
    assert "Organelle Chloroplast" in text


def test_extract_pptx_includes_titles_bodies_and_notes():
    data = build_pptx(
        [
            ("Plate tectonics", "Lithospheric plates float on the asthenosphere.", "Mention Wegener"),
            ("Boundaries", "Divergent, convergent and transform boundaries shape the crust.", None),
        ]
    )
    text = DocumentLoader().extract(data, PPTX_MIME, "geo.pptx")
    assert "Plate tectonics" in text
    assert "asthenosphere" in text
    assert "Mention Wegener" in text
    assert "transform boundaries" in text


def test_unsupported_format_fails_before_writing_anything(tmp_path):
    loader = DocumentLoader(temp_dir=str(tmp_path))
    with pytest.raises(UnsupportedFormat):
        loader.extract(b"plain text" * 50, "text/plain", "notes.txt")
    assert os.listdir(tmp_path) == []


def test_oversize_upload_rejected():
    loader = DocumentLoader(max_bytes=1024)
    with pytest.raises(FileTooLarge):
        loader.extract(b"x" * 2048, "application/pdf", "big.pdf")


def test_zero_byte_upload_is_insufficient():
    with pytest.raises(InsufficientContent):
        DocumentLoader().extract(b"", "application/pdf", "empty.pdf")


def test_temp_file_removed_after_success(tmp_path):
    extractor = StaticExtractor("A sufficiently long body of text. " * 10)
    loader = DocumentLoader(
        extractors={DocumentFormat.PDF: extractor}, temp_dir=str(tmp_path)
    )
    loader.extract(b"%PDF-1.4", "application/pdf", "a.pdf")
    assert extractor.seen_path.endswith(".pdf")
    assert os.listdir(tmp_path) == []


def test_temp_file_removed_after_extractor_error(tmp_path):
    loader = DocumentLoader(
        extractors={DocumentFormat.PDF: RaisingExtractor()}, temp_dir=str(tmp_path)
    )
    with pytest.raises(ExtractionFailed) as exc_info:
        loader.extract(b"%PDF-1.4 garbage", "application/pdf", "bad.pdf")
    assert "broken" in exc_info.value.message
    assert os.listdir(tmp_path) == []


def test_temp_file_removed_when_content_insufficient(tmp_path):
    loader = DocumentLoader(
        extractors={DocumentFormat.PDF: StaticExtractor("tiny")}, temp_dir=str(tmp_path)
    )
    with pytest.raises(InsufficientContent):
        loader.extract(b"%PDF-1.4", "application/pdf", "tiny.pdf")
    assert os.listdir(tmp_path) == []


def test_corrupt_pdf_fails_without_affecting_other_formats():
    loader = DocumentLoader()
    with pytest.raises(ExtractionFailed):
        loader.extract(b"this is not a pdf at all" * 10, "application/pdf", "bad.pdf")

    text = loader.extract(build_docx(LONG_PARAGRAPHS), DOCX_MIME, "ok.docx")
    assert "Photosynthesis" in text


def test_legacy_format_without_converter(tmp_path):
    legacy = LegacyOfficeExtractor(
        DocumentFormat.PPTX, PptxExtractor(), soffice_bin="no-such-soffice-binary"
    )
    loader = DocumentLoader(
        extractors={DocumentFormat.PPT: legacy}, temp_dir=str(tmp_path)
    )
    with pytest.raises(ExtractionFailed) as exc_info:
        loader.extract(b"\xd0\xcf\x11\xe0" * 100, "application/vnd.ms-powerpoint", "old.ppt")
    assert ".pptx" in exc_info.value.message
    assert os.listdir(tmp_path) == []
