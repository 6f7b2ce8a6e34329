"""Document text extraction for supported study-material formats."""
from __future__ import annotations

import asyncio
import io
import logging
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Sequence

import pymupdf
from docx import Document

from examiq.config import settings
from examiq.errors import DocumentError, ExtractionFailed, UnsupportedFormat
from examiq.models.generation import DocumentFailure, DocumentFormat, ExtractedText, UploadedDocument

logger = logging.getLogger(__name__)

EXTENSION_FORMATS = {
    ".txt": DocumentFormat.PLAIN_TEXT,
    ".text": DocumentFormat.PLAIN_TEXT,
    ".md": DocumentFormat.MARKDOWN,
    ".markdown": DocumentFormat.MARKDOWN,
    ".pdf": DocumentFormat.PDF,
    ".docx": DocumentFormat.DOCX,
}

MIME_FORMATS = {
    "text/plain": DocumentFormat.PLAIN_TEXT,
    "text/markdown": DocumentFormat.MARKDOWN,
    "text/x-markdown": DocumentFormat.MARKDOWN,
    "application/pdf": DocumentFormat.PDF,
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document": DocumentFormat.DOCX,
}


@dataclass
class ExtractionBatch:
    """Texts recovered from a batch of uploads plus the per-file failures."""

    texts: List[ExtractedText] = field(default_factory=list)
    failures: List[DocumentFailure] = field(default_factory=list)


def infer_format(filename: str, content_type: Optional[str] = None) -> Optional[DocumentFormat]:
    """Map a filename extension (preferred) or MIME type to a declared format."""
    extension = Path(filename or "").suffix.lower()
    if extension in EXTENSION_FORMATS:
        return EXTENSION_FORMATS[extension]
    if content_type:
        return MIME_FORMATS.get(content_type.split(";")[0].strip().lower())
    return None


def _normalize_text(text: str) -> str:
    text = text.replace("\x00", " ")
    text = re.sub(r"[ \t]+\n", "\n", text)
    text = re.sub(r"\n{3,}", "\n\n", text)
    text = re.sub(r"[ \t]{2,}", " ", text)
    return text.strip()


class TextExtractor(ABC):
    """Converts the raw bytes of one document format into text."""

    format: DocumentFormat

    @abstractmethod
    def extract_text(self, data: bytes) -> str:
        """Return the raw text of one document."""


class PlainTextExtractor(TextExtractor):
    format = DocumentFormat.PLAIN_TEXT

    def extract_text(self, data: bytes) -> str:
        try:
            return data.decode("utf-8-sig")
        except UnicodeDecodeError:
            return data.decode("latin-1")


class MarkdownExtractor(PlainTextExtractor):
    # Markdown is passed through as-is; the backend reads markup fine.
    format = DocumentFormat.MARKDOWN


class PDFExtractor(TextExtractor):
    """Page-by-page text recovery with PyMuPDF."""

    format = DocumentFormat.PDF

    def extract_text(self, data: bytes) -> str:
        doc = pymupdf.open(stream=data, filetype="pdf")
        try:
            text_parts: List[str] = []
            for index in range(doc.page_count):
                page_text = doc[index].get_text().strip()
                if page_text:
                    text_parts.append(page_text)
            return "\n\n".join(text_parts)
        finally:
            doc.close()


class DocxExtractor(TextExtractor):
    """Paragraph and table text recovery with python-docx."""

    format = DocumentFormat.DOCX

    def extract_text(self, data: bytes) -> str:
        document = Document(io.BytesIO(data))
        text_parts: List[str] = []

        for paragraph in document.paragraphs:
            content = paragraph.text.strip()
            if content:
                text_parts.append(content)

        for table in document.tables:
            for row in table.rows:
                cells = [cell.text.strip() for cell in row.cells if cell.text.strip()]
                if cells:
                    text_parts.append(" | ".join(cells))

        return "\n\n".join(text_parts)


EXTRACTORS: Dict[DocumentFormat, TextExtractor] = {
    extractor.format: extractor
    for extractor in (PlainTextExtractor(), MarkdownExtractor(), PDFExtractor(), DocxExtractor())
}


def extract(document: UploadedDocument) -> ExtractedText:
    """
    Extract plain text from one uploaded document.

    Args:
        document: Uploaded bytes tagged with a declared format

    Returns:
        ExtractedText with normalized, non-empty text

    Raises:
        UnsupportedFormat: No format declared, or no extractor for it
        ExtractionFailed: File is corrupt, too large, or yields no text
    """
    if document.format is None or document.format not in EXTRACTORS:
        raise UnsupportedFormat(
            document.name,
            f"Unsupported format for '{document.name}'. "
            "Supported formats: .txt, .md, .pdf, .docx",
        )

    if len(document.data) > settings.MAX_UPLOAD_BYTES:
        raise ExtractionFailed(
            document.name,
            f"'{document.name}' exceeds the {settings.MAX_UPLOAD_BYTES} byte upload limit",
        )

    extractor = EXTRACTORS[document.format]
    try:
        raw_text = extractor.extract_text(document.data)
    except Exception as e:
        raise ExtractionFailed(
            document.name, f"Could not read '{document.name}' as {document.format.value}: {e}"
        ) from e

    text = _normalize_text(raw_text)
    if not text:
        raise ExtractionFailed(document.name, f"No text could be extracted from '{document.name}'")

    return ExtractedText(source_name=document.name, text=text)


async def extract_documents(documents: Sequence[UploadedDocument]) -> ExtractionBatch:
    """
    Extract every document off the event loop, collecting per-file failures.

    A failing document never aborts its siblings; its failure is reported in
    the returned batch. Successful texts keep upload order.
    """
    results = await asyncio.gather(
        *(asyncio.to_thread(extract, document) for document in documents),
        return_exceptions=True,
    )

    batch = ExtractionBatch()
    for document, result in zip(documents, results):
        if isinstance(result, DocumentError):
            logger.warning(f"Skipping document {document.name}: {result.message}")
            batch.failures.append(
                DocumentFailure(
                    source_name=document.name,
                    error=result.error_code,
                    message=result.message,
                )
            )
        elif isinstance(result, BaseException):
            raise result
        else:
            batch.texts.append(result)

    return batch
