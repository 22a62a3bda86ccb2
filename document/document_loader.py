"""Turns uploaded office documents into normalized plain text.

Each supported format has its own extractor; the loader resolves the format
from the declared MIME type, writes the bytes to a temporary file, runs the
matching extractor and removes every temporary file it created.
"""

import os
import re
import shutil
import subprocess
import tempfile
from abc import ABC, abstractmethod
from enum import Enum
from typing import Dict, Optional

import docx
import pypdf
from pptx import Presentation

from logger import get_logger
from utils.config import (
    MAX_UPLOAD_BYTES,
    MIN_TEXT_LENGTH,
    SOFFICE_BIN,
    SOFFICE_TIMEOUT_SECONDS,
)
from utils.errors import (
    ExtractionFailed,
    FileTooLarge,
    InsufficientContent,
    QuizError,
    UnsupportedFormat,
)

logger = get_logger(__name__)


class DocumentFormat(str, Enum):
    PDF = "pdf"
    DOC = "doc"
    DOCX = "docx"
    PPT = "ppt"
    PPTX = "pptx"

    @property
    def suffix(self) -> str:
        return f".{self.value}"


MIME_TYPES = {
    "application/pdf": DocumentFormat.PDF,
    "application/msword": DocumentFormat.DOC,
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document": DocumentFormat.DOCX,
    "application/vnd.ms-powerpoint": DocumentFormat.PPT,
    "application/vnd.openxmlformats-officedocument.presentationml.presentation": DocumentFormat.PPTX,
}

GENERIC_MIME_TYPES = {"", "application/octet-stream", "binary/octet-stream"}

EXTENSIONS = {fmt.suffix: fmt for fmt in DocumentFormat}

HORIZONTAL_SPACE = re.compile(r"[^\S\n]+")


def resolve_format(content_type: Optional[str], filename: Optional[str]) -> DocumentFormat:
    """Maps the declared MIME type to a format. The filename extension is
    only consulted when the client sent a generic MIME type."""
    mime = (content_type or "").split(";")[0].strip().lower()
    if mime in MIME_TYPES:
        return MIME_TYPES[mime]
    if mime in GENERIC_MIME_TYPES and filename:
        ext = os.path.splitext(filename)[1].lower()
        if ext in EXTENSIONS:
            return EXTENSIONS[ext]
    logger.warning(f"Unsupported upload: content_type={content_type!r} filename={filename!r}")
    raise UnsupportedFormat()


def clean_text(text: str) -> str:
    """Collapses whitespace runs inside lines, drops blank lines and trims."""
    if not text:
        return ""
    text = text.replace("\r\n", "\n").replace("\r", "\n").replace("\x0b", "\n")
    lines = (HORIZONTAL_SPACE.sub(" ", line).strip() for line in text.split("\n"))
    return "\n".join(line for line in lines if line).strip()


class TextExtractor(ABC):
    """One extraction strategy per document format."""

    label = "document"

    @abstractmethod
    def extract(self, file_path: str) -> str:
        """Returns the raw text of the file at file_path."""


class PdfExtractor(TextExtractor):
    label = "PDF"

    def extract(self, file_path: str) -> str:
        reader = pypdf.PdfReader(file_path)
        pages = []
        for page in reader.pages:
            pages.append(page.extract_text() or "")
        return "\n".join(pages)


class DocxExtractor(TextExtractor):
    label = "Word"

    def extract(self, file_path: str) -> str:
        document = docx.Document(file_path)
        parts = [paragraph.text for paragraph in document.paragraphs]
        for table in document.tables:
            for row in table.rows:
                parts.append(" ".join(cell.text for cell in row.cells))
        return "\n".join(parts)


class PptxExtractor(TextExtractor):
    label = "PowerPoint"

    def extract(self, file_path: str) -> str:
        presentation = Presentation(file_path)
        parts = []
        for slide in presentation.slides:
            for shape in slide.shapes:
                if shape.has_text_frame:
                    parts.append(shape.text_frame.text)
                elif getattr(shape, "has_table", False) and shape.has_table:
                    for row in shape.table.rows:
                        parts.append(" ".join(cell.text for cell in row.cells))
            if slide.has_notes_slide:
                parts.append(slide.notes_slide.notes_text_frame.text)
        return "\n".join(parts)


class LegacyOfficeExtractor(TextExtractor):
    """Converts .doc/.ppt to their OOXML counterpart with headless
    LibreOffice, then hands the converted file to the OOXML extractor."""

    def __init__(
        self,
        target: DocumentFormat,
        delegate: TextExtractor,
        soffice_bin: str = SOFFICE_BIN,
        timeout: int = SOFFICE_TIMEOUT_SECONDS,
    ):
        self.target = target
        self.delegate = delegate
        self.soffice_bin = soffice_bin
        self.timeout = timeout
        self.label = f"legacy {delegate.label}"

    def extract(self, file_path: str) -> str:
        soffice = shutil.which(self.soffice_bin)
        if soffice is None:
            raise ExtractionFailed(
                f"Legacy {self.delegate.label} files are not supported on this server. "
                f"Please upload a .{self.target.value} file."
            )

        out_dir = tempfile.mkdtemp(prefix="quiz-convert-")
        try:
            proc = subprocess.run(
                [
                    soffice,
                    "--headless",
                    "--convert-to",
                    self.target.value,
                    "--outdir",
                    out_dir,
                    file_path,
                ],
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                timeout=self.timeout,
            )
            base = os.path.splitext(os.path.basename(file_path))[0]
            converted = os.path.join(out_dir, base + self.target.suffix)
            if proc.returncode != 0 or not os.path.exists(converted):
                logger.error(
                    f"soffice conversion failed ({proc.returncode}): "
                    f"{proc.stderr.decode(errors='ignore')[:200]}"
                )
                raise ExtractionFailed(
                    f"Failed to extract text from {self.label} file"
                )
            return self.delegate.extract(converted)
        finally:
            shutil.rmtree(out_dir, ignore_errors=True)


def default_extractors() -> Dict[DocumentFormat, TextExtractor]:
    docx_extractor = DocxExtractor()
    pptx_extractor = PptxExtractor()
    return {
        DocumentFormat.PDF: PdfExtractor(),
        DocumentFormat.DOCX: docx_extractor,
        DocumentFormat.PPTX: pptx_extractor,
        DocumentFormat.DOC: LegacyOfficeExtractor(DocumentFormat.DOCX, docx_extractor),
        DocumentFormat.PPT: LegacyOfficeExtractor(DocumentFormat.PPTX, pptx_extractor),
    }


class DocumentLoader:
    """Loads uploaded document bytes into cleaned plain text."""

    def __init__(
        self,
        extractors: Optional[Dict[DocumentFormat, TextExtractor]] = None,
        min_text_length: int = MIN_TEXT_LENGTH,
        max_bytes: int = MAX_UPLOAD_BYTES,
        temp_dir: Optional[str] = None,
    ):
        self.extractors = extractors if extractors is not None else default_extractors()
        self.min_text_length = min_text_length
        self.max_bytes = max_bytes
        self.temp_dir = temp_dir

    def extract(
        self,
        data: bytes,
        content_type: Optional[str],
        filename: Optional[str] = None,
    ) -> str:
        """Extracts cleaned text from an uploaded document.

        Args:
            data: Raw file bytes
            content_type: Declared MIME type of the upload
            filename: Original filename, used only for generic MIME types

        Returns:
            Normalized plain text

        Raises:
            UnsupportedFormat, FileTooLarge, ExtractionFailed, InsufficientContent
        """
        fmt = resolve_format(content_type, filename)
        if len(data) > self.max_bytes:
            raise FileTooLarge(
                f"File size exceeds {self.max_bytes // (1024 * 1024)}MB limit"
            )
        if not data:
            raise InsufficientContent("Uploaded file is empty")

        extractor = self.extractors.get(fmt)
        if extractor is None:
            raise UnsupportedFormat()

        logger.info(f"Extracting {fmt.value} document: {filename} ({len(data)} bytes)")
        fd, file_path = tempfile.mkstemp(suffix=fmt.suffix, dir=self.temp_dir)
        try:
            with os.fdopen(fd, "wb") as buffer:
                buffer.write(data)
            raw_text = extractor.extract(file_path)
        except QuizError:
            raise
        except Exception as e:
            logger.exception(f"Error extracting {fmt.value} document {filename}: {e}")
            raise ExtractionFailed(
                f"Failed to extract text from {extractor.label} file"
            ) from e
        finally:
            if os.path.exists(file_path):
                os.remove(file_path)

        text = clean_text(raw_text)
        if len(text) < self.min_text_length:
            logger.warning(
                f"Extracted only {len(text)} chars from {filename}, "
                f"minimum is {self.min_text_length}"
            )
            raise InsufficientContent()

        logger.info(f"Extracted {len(text)} chars from {filename}")
        return text
