import fitz
from core.entities import PdfText
from util.timing import timed
import logging

logger = logging.getLogger(__name__)


def extract_pdf_text(file_bytes: bytes, max_pages: int = 50) -> PdfText:
    """
    Return the plain text of at most `max_pages` pages, pages joined by newlines.

    Only the text layer is read (no rendering, no images), which bounds cost
    on large or image-heavy files. Raises whatever PyMuPDF raises for bytes
    that are not a PDF; callers decide how to report it.
    """
    parts: list[str] = []
    with timed(logger, "pdf.open", bytes=len(file_bytes)):
        doc = fitz.open(stream=file_bytes, filetype="pdf")
    with doc:
        page_count = doc.page_count
        pages = min(page_count, max(0, max_pages))
        with timed(logger, "pdf.parse", pages=pages, total=page_count):
            for i in range(pages):
                txt = (doc.load_page(i).get_text("text") or "").strip()
                if txt:
                    parts.append(txt)
    if pages < page_count:
        logger.info("pdf.pages.capped read=%d total=%d", pages, page_count)
    text = "\n".join(parts)
    logger.info("pdf.text pages=%d chars=%d", pages, len(text))
    return PdfText(text=text, pages_read=pages, page_count=page_count)
