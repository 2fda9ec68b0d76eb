# doctalk/models.py
import enum
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Sequence

from sqlalchemy import Column, String, TIMESTAMP, JSON, Enum as SAEnum
from sqlalchemy.orm import declarative_base, validates

Base = declarative_base()

PDF_FILE_TYPE = "pdf"


class DocumentStatus(str, enum.Enum):
    UPLOADED = "uploaded"    # record exists, no extracted text
    PROCESSED = "processed"  # extraction and storage both succeeded


def _new_id() -> str:
    return str(uuid.uuid4())


def _utcnow() -> datetime:
    # microsecond resolution keeps newest-first ordering stable within one second
    return datetime.now(timezone.utc)


def build_pages(contents: Sequence[str]) -> List[Dict[str, Any]]:
    """Number cleaned page texts 1..N in order."""
    return [{"page": i + 1, "content": text} for i, text in enumerate(contents)]


def _check_pages(pages: Sequence[Dict[str, Any]]) -> None:
    for expected, entry in enumerate(pages, start=1):
        if entry.get("page") != expected:
            raise ValueError(f"page entries must be numbered 1..N without gaps (got {entry.get('page')!r} at {expected})")
        if not isinstance(entry.get("content"), str):
            raise ValueError(f"page {expected} content must be a string")


class Document(Base):
    __tablename__ = "documents"
    id = Column(String(36), primary_key=True, default=_new_id)
    owner = Column(String(64), nullable=False, index=True)        # subject id from the identity token
    original_name = Column(String, nullable=False)
    file_type = Column(String(16), nullable=False, default=PDF_FILE_TYPE)
    storage_path = Column(String, nullable=False)                  # public object-store URL
    status = Column(
        SAEnum(DocumentStatus, name="document_status", values_callable=lambda e: [m.value for m in e]),
        nullable=False,
        default=DocumentStatus.UPLOADED,
    )
    extracted_text = Column(JSON, nullable=False, default=lambda: {"pages": []})
    created_at = Column(TIMESTAMP(timezone=True), default=_utcnow, nullable=False, index=True)
    updated_at = Column(TIMESTAMP(timezone=True), default=_utcnow, onupdate=_utcnow, nullable=False)

    @classmethod
    def new(
        cls,
        owner: str,
        original_name: str,
        storage_path: str,
        pages: Optional[Sequence[Dict[str, Any]]] = None,
    ) -> "Document":
        """
        Build a record in a valid state.

        With pages the record is ``processed``; without (or with an empty
        list, e.g. a zero-page PDF) it is ``uploaded``. Invalid input raises
        ValueError before anything reaches the database.
        """
        if not owner:
            raise ValueError("owner is required")
        if not original_name:
            raise ValueError("original_name is required")
        if not storage_path:
            raise ValueError("storage_path is required")
        pages = list(pages or [])
        _check_pages(pages)
        status = DocumentStatus.PROCESSED if pages else DocumentStatus.UPLOADED
        return cls(
            id=_new_id(),
            owner=owner,
            original_name=original_name,
            file_type=PDF_FILE_TYPE,
            storage_path=storage_path,
            # extracted_text goes first: the status validator reads it
            extracted_text={"pages": pages},
            status=status,
        )

    @validates("status")
    def _validate_status(self, key, value):
        status = DocumentStatus(value)
        if status is DocumentStatus.PROCESSED and not (self.extracted_text or {}).get("pages"):
            raise ValueError("a processed document needs at least one extracted page")
        return status

    @validates("owner", "storage_path")
    def _validate_write_once(self, key, value):
        current = getattr(self, key)
        if current is not None and current != value:
            raise ValueError(f"{key} cannot be changed once set")
        return value

    @validates("file_type")
    def _validate_file_type(self, key, value):
        if value != PDF_FILE_TYPE:
            raise ValueError(f"unsupported file type: {value!r}")
        return value

    @property
    def pages(self) -> List[Dict[str, Any]]:
        return list((self.extracted_text or {}).get("pages", []))
