# doctalk/main.py
import logging
from typing import List

from fastapi import FastAPI, HTTPException, Response, Request, Depends
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.datastructures import UploadFile

from prometheus_client import generate_latest, CONTENT_TYPE_LATEST, Counter

from doctalk.auth import get_current_owner, get_settings
from doctalk.config import Settings, settings
from doctalk.db import init_models, close_engine, get_async_session, ping
from doctalk.documents import DocumentStore
from doctalk.errors import DocTalkError, NoFilesProvided
from doctalk.extract import PdfTextExtractor, get_strategy
from doctalk.ingest import IngestionService
from doctalk.schemas import (
    DeleteResponse,
    DocumentListResponse,
    DocumentOut,
    DocumentResponse,
    UploadResponse,
)
from doctalk.storage import ObjectStoreUploader
from doctalk.validation import read_upload

logger = logging.getLogger("uvicorn.error")

app = FastAPI(title="DocTalk", version="1.0.0")

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Prometheus counters
uploads_total = Counter("doctalk_uploads_total", "Upload requests received")
upload_files_total = Counter("doctalk_upload_files_total", "Files received in upload requests")

_uploader = None


def get_uploader(settings: Settings = Depends(get_settings)) -> ObjectStoreUploader:
    global _uploader
    if _uploader is None:
        _uploader = ObjectStoreUploader(settings)
    return _uploader


def get_extractor(settings: Settings = Depends(get_settings)) -> PdfTextExtractor:
    return PdfTextExtractor(get_strategy(settings.extraction_strategy))


def get_store(session: AsyncSession = Depends(get_async_session)) -> DocumentStore:
    return DocumentStore(session)


def get_ingestion_service(
    settings: Settings = Depends(get_settings),
    store: DocumentStore = Depends(get_store),
    uploader: ObjectStoreUploader = Depends(get_uploader),
    extractor: PdfTextExtractor = Depends(get_extractor),
) -> IngestionService:
    return IngestionService(settings, store, uploader, extractor)


@app.on_event("startup")
async def startup():
    await init_models()


@app.on_event("shutdown")
async def shutdown():
    await close_engine()


@app.exception_handler(DocTalkError)
def doctalk_exception_handler(request: Request, exc: DocTalkError):
    body = {"message": exc.message}
    if exc.filename:
        body["file"] = exc.filename
    return JSONResponse(body, status_code=exc.status_code)


@app.exception_handler(HTTPException)
def http_exception_handler(request: Request, exc: HTTPException):
    return JSONResponse({"message": exc.detail}, status_code=exc.status_code)


@app.get("/api/health")
async def health(session: AsyncSession = Depends(get_async_session)):
    try:
        await ping(session)
    except Exception as e:
        logger.exception("Database ping failed")
        return JSONResponse({"status": "degraded", "message": "Database unavailable", "database": str(e)}, status_code=503)
    return {"status": "OK", "message": "Server running"}


@app.get("/metrics")
def metrics(settings: Settings = Depends(get_settings)):
    if not settings.prometheus_enabled:
        raise HTTPException(status_code=404, detail="Metrics disabled")
    return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)


@app.post("/api/documents/upload", status_code=201, response_model=UploadResponse)
async def upload_documents(
    request: Request,
    owner: str = Depends(get_current_owner),
    settings: Settings = Depends(get_settings),
    service: IngestionService = Depends(get_ingestion_service),
):
    uploads_total.inc()
    # files are accepted under any form field name
    form = await request.form()
    uploads: List[UploadFile] = [value for _, value in form.multi_items() if isinstance(value, UploadFile)]
    if not uploads:
        raise NoFilesProvided()
    upload_files_total.inc(len(uploads))

    # gate every file before any of them is processed
    incoming = [await read_upload(upload, settings) for upload in uploads]

    result = await service.ingest(owner, incoming)
    documents = [DocumentOut.model_validate(doc) for doc in result.documents]
    message = "Document uploaded successfully" if result.count == 1 else "Documents uploaded successfully"
    return UploadResponse(message=message, count=result.count, documents=documents)


@app.get("/api/documents", response_model=DocumentListResponse)
async def list_documents(
    owner: str = Depends(get_current_owner),
    store: DocumentStore = Depends(get_store),
):
    docs = await store.list_for_owner(owner)
    return DocumentListResponse(count=len(docs), documents=[DocumentOut.model_validate(d) for d in docs])


@app.get("/api/documents/{doc_id}", response_model=DocumentResponse)
async def get_document(
    doc_id: str,
    owner: str = Depends(get_current_owner),
    store: DocumentStore = Depends(get_store),
):
    doc = await store.get_for_owner(doc_id, owner)
    return DocumentResponse(document=DocumentOut.model_validate(doc))


@app.delete("/api/documents/{doc_id}", response_model=DeleteResponse)
async def delete_document(
    doc_id: str,
    owner: str = Depends(get_current_owner),
    store: DocumentStore = Depends(get_store),
):
    deleted = await store.delete_for_owner(doc_id, owner)
    return DeleteResponse(message="Document deleted", id=deleted)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("doctalk.main:app", host=settings.host, port=settings.port)
