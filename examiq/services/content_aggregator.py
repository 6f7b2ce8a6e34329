"""Merges pasted text and extracted documents into one generation input."""
from typing import Sequence

from examiq.models.generation import ExtractedText

SEPARATOR = "\n\n"


def aggregate(manual_text: str, extracted_texts: Sequence[ExtractedText]) -> str:
    """
    Join manual text and document texts with a blank line between parts.

    Manual text comes first, then documents in upload order. Blank parts are
    skipped, so the result never starts or ends with a separator.
    """
    parts = [manual_text or ""] + [extracted.text for extracted in extracted_texts]
    return SEPARATOR.join(part.strip() for part in parts if part and part.strip())
