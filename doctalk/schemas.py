# doctalk/schemas.py
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from doctalk.models import DocumentStatus


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


class PageEntry(_CamelModel):
    page: int = Field(..., ge=1)
    content: str


class ExtractedText(_CamelModel):
    pages: List[PageEntry] = Field(default_factory=list)


class DocumentOut(_CamelModel):
    id: str
    owner: str
    original_name: str
    file_type: str
    storage_path: str
    status: DocumentStatus
    extracted_text: ExtractedText
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class UploadResponse(BaseModel):
    message: str
    count: int
    documents: List[DocumentOut]


class DocumentListResponse(BaseModel):
    count: int
    documents: List[DocumentOut]


class DocumentResponse(BaseModel):
    document: DocumentOut


class DeleteResponse(BaseModel):
    message: str
    id: str
