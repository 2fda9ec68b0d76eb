# doctalk/validation.py
"""Upload gate: PDF type check and size bound, applied before ingestion."""
import logging
from pathlib import Path

from starlette.datastructures import UploadFile

from doctalk.config import Settings
from doctalk.errors import FileTooLarge, InvalidFileType
from doctalk.ingest import IncomingFile

logger = logging.getLogger(__name__)

READ_CHUNK = 1024 * 64


def is_pdf_upload(filename: str, content_type: str, settings: Settings) -> bool:
    """
    A PDF MIME type is enough, and so is a .pdf name: some browsers send
    PDFs as application/octet-stream.
    """
    mime = (content_type or "").lower()
    ext = Path((filename or "").lower()).suffix
    return mime in settings.allowed_content_types or ext in settings.allowed_extensions


async def read_upload(upload: UploadFile, settings: Settings) -> IncomingFile:
    filename = Path(upload.filename or "uploaded.pdf").name
    content_type = upload.content_type or "application/octet-stream"
    if not is_pdf_upload(filename, content_type, settings):
        logger.info("Rejected %s with content type %s", filename, content_type)
        raise InvalidFileType(filename=filename)

    max_size = settings.max_upload_size
    buf = bytearray()
    while True:
        chunk = await upload.read(READ_CHUNK)
        if not chunk:
            break
        buf.extend(chunk)
        if len(buf) > max_size:
            raise FileTooLarge(f"File too large. Max size is {settings.max_upload_size_label}.", filename=filename)
    # a .pdf accepted by name (e.g. sent as octet-stream) is stored as a PDF
    stored_type = content_type.lower() if content_type.lower() in settings.allowed_content_types else "application/pdf"
    return IncomingFile(filename=filename, content_type=stored_type, data=bytes(buf))
