"""Ingestion orchestrator tests."""

import pytest
from unittest.mock import MagicMock

from doctalk.documents import DocumentStore
from doctalk.errors import ExtractionError, NoFilesProvided, UploadError
from doctalk.ingest import IncomingFile, IngestionService
from doctalk.models import DocumentStatus
from tests.helpers import build_pdf


def _pdf(name, pages):
    return IncomingFile(filename=name, content_type="application/pdf", data=build_pdf(pages))


async def _all_documents(db_sessionmaker, owner):
    async with db_sessionmaker() as session:
        return await DocumentStore(session).list_for_owner(owner)


async def test_two_files_processed_in_submission_order(settings, uploader, minio_client, db_sessionmaker):
    async with db_sessionmaker() as session:
        service = IngestionService(settings, DocumentStore(session), uploader)
        result = await service.ingest("U1", [
            _pdf("A.pdf", [["Hello"], ["World"]]),
            _pdf("B.pdf", [["Solo"]]),
        ])

    assert result.count == 2
    doc_a, doc_b = result.documents
    assert doc_a.original_name == "A.pdf"
    assert doc_a.pages == [{"page": 1, "content": "Hello"}, {"page": 2, "content": "World"}]
    assert doc_b.original_name == "B.pdf"
    assert doc_b.pages == [{"page": 1, "content": "Solo"}]
    for doc in result.documents:
        assert doc.status == DocumentStatus.PROCESSED
        assert doc.owner == "U1"
        assert doc.file_type == "pdf"
        assert doc.storage_path.startswith("https://files.example.com/documents/doctalk/documents/")

    assert minio_client.put_object.call_count == 2
    assert len(await _all_documents(db_sessionmaker, "U1")) == 2


async def test_stored_bytes_are_the_parsed_bytes(settings, uploader, minio_client, db_sessionmaker):
    incoming = _pdf("A.pdf", [["Hello"]])
    async with db_sessionmaker() as session:
        result = await IngestionService(settings, DocumentStore(session), uploader).ingest("U1", [incoming])

    _, object_name, stream = minio_client.put_object.call_args.args
    assert stream.getvalue() == incoming.data
    assert result.documents[0].storage_path.endswith(object_name)


async def test_page_count_matches_pdf(settings, uploader, db_sessionmaker):
    pages = [[f"page {n}"] for n in range(1, 8)]
    async with db_sessionmaker() as session:
        result = await IngestionService(settings, DocumentStore(session), uploader).ingest("U1", [_pdf("seven.pdf", pages)])

    entries = result.documents[0].pages
    assert [e["page"] for e in entries] == list(range(1, 8))
    assert [e["content"] for e in entries] == [f"page {n}" for n in range(1, 8)]


async def test_zero_files_rejected(settings, uploader, minio_client, db_sessionmaker):
    async with db_sessionmaker() as session:
        with pytest.raises(NoFilesProvided):
            await IngestionService(settings, DocumentStore(session), uploader).ingest("U1", [])

    minio_client.put_object.assert_not_called()
    assert await _all_documents(db_sessionmaker, "U1") == []


async def test_invalid_pdf_creates_nothing_and_uploads_nothing(settings, uploader, minio_client, db_sessionmaker):
    broken = IncomingFile(filename="broken.pdf", content_type="application/pdf", data=b"not a pdf")
    async with db_sessionmaker() as session:
        with pytest.raises(ExtractionError) as exc_info:
            await IngestionService(settings, DocumentStore(session), uploader).ingest("U1", [broken])

    assert exc_info.value.filename == "broken.pdf"
    minio_client.put_object.assert_not_called()
    assert await _all_documents(db_sessionmaker, "U1") == []


async def test_upload_failure_keeps_earlier_documents_only(settings, uploader, minio_client, db_sessionmaker):
    confirmed = MagicMock(etag="etag-1")
    minio_client.put_object.side_effect = [confirmed, ConnectionError("bucket unreachable")]

    async with db_sessionmaker() as session:
        service = IngestionService(settings, DocumentStore(session), uploader)
        with pytest.raises(UploadError) as exc_info:
            await service.ingest("U1", [
                _pdf("first.pdf", [["one"]]),
                _pdf("second.pdf", [["two"]]),
                _pdf("third.pdf", [["three"]]),
            ])

    assert exc_info.value.filename == "second.pdf"
    # third file never attempted
    assert minio_client.put_object.call_count == 2
    remaining = await _all_documents(db_sessionmaker, "U1")
    assert [d.original_name for d in remaining] == ["first.pdf"]


async def test_extraction_failure_mid_batch(settings, uploader, minio_client, db_sessionmaker):
    files = [
        _pdf("good.pdf", [["fine"]]),
        IncomingFile(filename="bad.pdf", content_type="application/pdf", data=b"%PDF-1.7 truncated"),
    ]
    async with db_sessionmaker() as session:
        with pytest.raises(ExtractionError):
            await IngestionService(settings, DocumentStore(session), uploader).ingest("U1", files)

    assert minio_client.put_object.call_count == 1
    assert [d.original_name for d in await _all_documents(db_sessionmaker, "U1")] == ["good.pdf"]


async def test_zero_page_pdf_stored_as_uploaded(settings, uploader, db_sessionmaker):
    async with db_sessionmaker() as session:
        result = await IngestionService(settings, DocumentStore(session), uploader).ingest("U1", [_pdf("empty.pdf", [])])

    doc = result.documents[0]
    assert doc.status == DocumentStatus.UPLOADED
    assert doc.pages == []


async def test_non_empty_pdf_never_processed_without_pages(settings, uploader, db_sessionmaker):
    async with db_sessionmaker() as session:
        result = await IngestionService(settings, DocumentStore(session), uploader).ingest(
            "U1", [_pdf("blank.pdf", [[], []])]
        )

    doc = result.documents[0]
    assert doc.status == DocumentStatus.PROCESSED
    assert doc.pages == [{"page": 1, "content": ""}, {"page": 2, "content": ""}]


async def test_incoming_content_type_stored_with_object(settings, uploader, minio_client, db_sessionmaker):
    incoming = IncomingFile(filename="x.pdf", content_type="application/x-pdf", data=build_pdf([["x"]]))
    async with db_sessionmaker() as session:
        await IngestionService(settings, DocumentStore(session), uploader).ingest("U1", [incoming])

    assert minio_client.put_object.call_args.kwargs["content_type"] == "application/x-pdf"
