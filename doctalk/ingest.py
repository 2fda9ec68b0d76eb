# doctalk/ingest.py
"""
Ingestion pipeline:
 - extract text by page from an in-memory PDF
 - clean each page's text
 - stream the original bytes to the object store
 - persist a processed Document pointing at the stored copy

Files in one call are handled strictly one after another, in submission
order. The first failure aborts the call: documents already persisted
earlier in the same call stay persisted, there is no batch rollback.
Nothing is retried.
"""
import asyncio
import logging
from dataclasses import dataclass, field
from typing import List, Optional, Sequence

from prometheus_client import Counter

from doctalk.config import Settings
from doctalk.documents import DocumentStore
from doctalk.errors import DocTalkError, NoFilesProvided, PersistenceError
from doctalk.extract import PdfTextExtractor
from doctalk.models import Document, build_pages
from doctalk.storage import ObjectStoreUploader

logger = logging.getLogger(__name__)

documents_ingested = Counter("doctalk_documents_ingested_total", "Documents extracted, stored and persisted")
ingests_failed = Counter("doctalk_ingests_failed_total", "Ingestion failures", ["kind"])


@dataclass
class IncomingFile:
    filename: str
    content_type: str   # already checked by the upload gate; stored with the object
    data: bytes


@dataclass
class IngestionResult:
    documents: List[Document] = field(default_factory=list)

    @property
    def count(self) -> int:
        return len(self.documents)


class IngestionService:
    def __init__(
        self,
        settings: Settings,
        store: DocumentStore,
        uploader: ObjectStoreUploader,
        extractor: Optional[PdfTextExtractor] = None,
    ):
        self.settings = settings
        self.store = store
        self.uploader = uploader
        self.extractor = extractor or PdfTextExtractor()

    async def ingest(self, owner: str, files: Sequence[IncomingFile]) -> IngestionResult:
        if not files:
            raise NoFilesProvided()

        result = IngestionResult()
        for position, incoming in enumerate(files, start=1):
            try:
                doc = await self.ingest_one(owner, incoming)
            except DocTalkError as e:
                ingests_failed.labels(kind=type(e).__name__).inc()
                logger.warning(
                    "Ingest aborted at file %d/%d (%s) for owner=%s: %s; %d earlier document(s) kept",
                    position, len(files), incoming.filename, owner, e.message, result.count,
                )
                if e.filename is None:
                    e.filename = incoming.filename
                raise
            result.documents.append(doc)

        logger.info("Ingested %d document(s) for owner=%s", result.count, owner)
        return result

    async def ingest_one(self, owner: str, incoming: IncomingFile) -> Document:
        logger.info("Started ingest of %s (%d bytes) for owner=%s", incoming.filename, len(incoming.data), owner)

        # 1) Extract + clean pages; runs before the upload so a bad PDF never reaches the store
        contents = await asyncio.to_thread(self.extractor.extract_clean_pages, incoming.data, incoming.filename)

        # 2) Upload the exact bytes that were parsed
        url = await asyncio.to_thread(
            self.uploader.upload, incoming.data, self.settings.storage_folder, incoming.content_type
        )

        # 3) Assemble and persist
        try:
            doc = Document.new(
                owner=owner,
                original_name=incoming.filename,
                storage_path=url,
                pages=build_pages(contents),
            )
        except ValueError as e:
            raise PersistenceError(f"Invalid document record for {incoming.filename}: {e}", filename=incoming.filename) from e

        doc = await self.store.create(doc)
        documents_ingested.inc()
        logger.info("Completed ingest of %s as doc_id=%s (pages=%d)", incoming.filename, doc.id, len(contents))
        return doc
