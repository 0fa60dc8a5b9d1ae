"""
Text extraction from stored documents.

Plain text and JSON are decoded directly, PDFs go through PyMuPDF and
Word files through python-docx.
"""
import io
import logging

logger = logging.getLogger(__name__)

EXTRACTABLE_TYPES = (
    'text/',
    'application/pdf',
    'application/msword',
    'application/vnd.openxmlformats-officedocument.wordprocessingml.document',
    'application/vnd.ms-excel',
    'application/vnd.openxmlformats-officedocument.spreadsheetml.sheet',
    'application/json',
)

DOCX_TYPE = 'application/vnd.openxmlformats-officedocument.wordprocessingml.document'


class ExtractionError(Exception):
    """Raised when a file's text cannot be read."""


def is_content_extractable(file_type: str) -> bool:
    file_type = file_type or ''
    return any(t in file_type for t in EXTRACTABLE_TYPES)


def extract_text(data: bytes, file_type: str) -> str:
    """
    Return the text content of a file.

    Raises:
        ExtractionError: unsupported type or unreadable content
    """
    file_type = file_type or ''

    if file_type.startswith('text/') or file_type == 'application/json':
        return _decode(data)
    if file_type == 'application/pdf':
        return _extract_pdf(data)
    if file_type == DOCX_TYPE:
        return _extract_docx(data)

    raise ExtractionError(f"Text extraction is not supported for {file_type}")


def _decode(data: bytes) -> str:
    for encoding in ('utf-8', 'utf-16', 'latin-1'):
        try:
            return data.decode(encoding)
        except UnicodeDecodeError:
            continue
    raise ExtractionError("Unable to decode text content")


def _extract_pdf(data: bytes) -> str:
    import fitz

    try:
        with fitz.open(stream=data, filetype="pdf") as pdf:
            pages = [page.get_text() for page in pdf]
    except Exception as e:
        raise ExtractionError(f"Unable to read PDF: {e}") from e

    text = "\n".join(p.strip() for p in pages if p.strip())
    if not text:
        # Scanned PDFs have no text layer
        raise ExtractionError("PDF contains no extractable text")
    return text


def _extract_docx(data: bytes) -> str:
    from docx import Document as DocxDocument

    try:
        doc = DocxDocument(io.BytesIO(data))
    except Exception as e:
        raise ExtractionError(f"Unable to read Word document: {e}") from e

    paragraphs = [p.text for p in doc.paragraphs if p.text.strip()]
    for table in doc.tables:
        for row in table.rows:
            cells = [cell.text.strip() for cell in row.cells if cell.text.strip()]
            if cells:
                paragraphs.append(" | ".join(cells))
    return "\n".join(paragraphs)
