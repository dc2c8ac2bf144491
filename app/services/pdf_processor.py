import io
import re

import structlog
from pypdf import PdfReader
from pypdf.errors import PyPdfError

from app import config

logger = structlog.get_logger()


class PdfExtractionError(ValueError):
    pass


# -------------------- PDF TEXT EXTRACTION --------------------

def extract_text_from_pdf(data: bytes) -> str:
    """Extract text from every page of a PDF with pypdf"""
    try:
        reader = PdfReader(io.BytesIO(data))
        if reader.is_encrypted:
            reader.decrypt("")
        text_parts = [page.extract_text() or "" for page in reader.pages]
    except (PyPdfError, ValueError, KeyError) as e:
        logger.warning("pdf_extraction_failed", error=str(e), size=len(data))
        raise PdfExtractionError(f"Could not read PDF: {e}") from e

    text = "\n".join(text_parts)
    logger.info("pdf_text_extracted", pages=len(text_parts), chars=len(text))
    return text


# -------------------- CLEANING / NORMALIZATION --------------------

def normalize_text(raw_text: str) -> str:
    text = raw_text.replace("\x00", "")
    text = re.sub(r"[ \t]+", " ", text)
    text = re.sub(r"\n{3,}", "\n\n", text)
    return text.strip()


def truncate_text(text: str, max_chars: int = config.MAX_PDF_CHARS) -> str:
    """Cap the text sent to the model at ``max_chars`` characters"""
    if len(text) <= max_chars:
        return text
    logger.info("pdf_text_truncated", chars=len(text), max_chars=max_chars)
    return text[:max_chars]
