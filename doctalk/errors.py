# doctalk/errors.py
"""
Error kinds surfaced by the ingestion pipeline and the document endpoints.

Each error carries the HTTP status it maps to so the web layer can render
any of them with a single exception handler.
"""
from typing import Optional


class DocTalkError(Exception):
    status_code = 500
    default_message = "Internal server error"

    def __init__(self, message: Optional[str] = None, filename: Optional[str] = None):
        self.message = message or self.default_message
        self.filename = filename
        super().__init__(self.message)


class NoFilesProvided(DocTalkError):
    status_code = 400
    default_message = "No file uploaded"


class InvalidFileType(DocTalkError):
    status_code = 400
    default_message = "Only PDF files are allowed"


class FileTooLarge(DocTalkError):
    status_code = 413
    default_message = "File too large"


class ExtractionError(DocTalkError):
    status_code = 422
    default_message = "Could not extract text from PDF"


class UploadError(DocTalkError):
    status_code = 502
    default_message = "File storage failed"


class PersistenceError(DocTalkError):
    status_code = 500
    default_message = "Failed to save document"


class DocumentNotFound(DocTalkError):
    status_code = 404
    default_message = "Document not found"
