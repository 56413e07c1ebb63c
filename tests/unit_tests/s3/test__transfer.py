import io
import logging

import pytest

from pdf_gateway.errors import NotFound, PayloadTooLarge, StoreFailure
from pdf_gateway.s3.client import ObjectStore
from pdf_gateway.s3.delete_objects import delete_document
from pdf_gateway.s3.read_objects import DocumentStream, list_documents, transfer_out
from pdf_gateway.s3.sign_objects import sign_document_url
from pdf_gateway.s3.write_objects import transfer_in
from tests.consts import TEST_BUCKET_NAME, TEST_PDF_CONTENT
from tests.fixtures.s3_fixtures import seconds_until_expiry

MiB = 1024 * 1024


async def read_all(stream: DocumentStream) -> bytes:
    return b"".join([chunk async for chunk in stream.iter_bytes()])


async def test_transfer_in_then_out_round_trip(object_store):
    document = await transfer_in(
        object_store,
        io.BytesIO(TEST_PDF_CONTENT),
        key="documents/1-report.pdf",
        original_name="report.pdf",
        max_bytes=10 * MiB,
    )

    assert document.key == "documents/1-report.pdf"
    assert document.size_bytes == len(TEST_PDF_CONTENT)
    assert document.content_type == "application/pdf"
    assert document.location == f"https://{TEST_BUCKET_NAME}.s3.us-east-1.amazonaws.com/documents/1-report.pdf"

    stream = await transfer_out(object_store, "documents/1-report.pdf", chunk_size=100)
    assert stream.content_length == len(TEST_PDF_CONTENT)
    assert await read_all(stream) == TEST_PDF_CONTENT


async def test_transfer_in_multipart_round_trip(object_store, s3_client):
    content = bytes(range(256)) * (6 * MiB // 256)

    document = await transfer_in(
        object_store, io.BytesIO(content), key="documents/2-big.pdf", original_name="big.pdf", max_bytes=10 * MiB
    )

    assert document.size_bytes == 6 * MiB
    body = s3_client.get_object(Bucket=TEST_BUCKET_NAME, Key="documents/2-big.pdf")["Body"].read()
    assert body == content


async def test_transfer_in_too_large_small_upload_writes_nothing(object_store, s3_client):
    with pytest.raises(PayloadTooLarge):
        await transfer_in(
            object_store, io.BytesIO(b"x" * 4096), key="documents/3-a.pdf", original_name="a.pdf", max_bytes=1024
        )

    assert s3_client.list_objects_v2(Bucket=TEST_BUCKET_NAME)["KeyCount"] == 0


async def test_transfer_in_too_large_multipart_upload_is_aborted(object_store, s3_client):
    content = b"x" * (10 * MiB + 1)

    with pytest.raises(PayloadTooLarge):
        await transfer_in(
            object_store, io.BytesIO(content), key="documents/4-a.pdf", original_name="a.pdf", max_bytes=10 * MiB
        )

    assert s3_client.list_objects_v2(Bucket=TEST_BUCKET_NAME)["KeyCount"] == 0
    assert not s3_client.list_multipart_uploads(Bucket=TEST_BUCKET_NAME).get("Uploads")


async def test_transfer_out_missing_key(object_store):
    with pytest.raises(NotFound):
        await transfer_out(object_store, "documents/0-missing.pdf")


def test_document_stream_headers():
    stream = DocumentStream("documents/1-a.pdf", body=io.BytesIO(), content_length=42)
    assert stream.headers == {
        "Content-Type": "application/pdf",
        "Content-Disposition": "inline",
        "Content-Length": "42",
    }


class FlakyBody:
    """Body that hands out one chunk and then loses the connection."""

    def __init__(self):
        self.closed = False

    def iter_chunks(self, chunk_size):
        yield b"%PDF-1.4"
        raise ConnectionResetError("connection reset by peer")

    def close(self):
        self.closed = True


async def test_document_stream_late_failure_cuts_body_short():
    body = FlakyBody()
    stream = DocumentStream("documents/1-a.pdf", body=body, content_length=1000)
    received = []

    with pytest.raises(StoreFailure):
        async for chunk in stream.iter_bytes():
            received.append(chunk)

    assert received == [b"%PDF-1.4"]
    assert body.closed


class CountingBody:
    def __init__(self, data: bytes):
        self._data = data
        self.close_calls = 0

    def iter_chunks(self, chunk_size):
        yield self._data

    def close(self):
        self.close_calls += 1


def test_document_stream_close_without_iterating():
    body = CountingBody(b"%PDF-1.4")
    stream = DocumentStream("documents/1-a.pdf", body=body, content_length=8)

    stream.close()
    stream.close()

    assert body.close_calls == 1


async def test_document_stream_closes_body_once_after_full_read():
    body = CountingBody(b"%PDF-1.4")
    stream = DocumentStream("documents/1-a.pdf", body=body, content_length=8)

    assert await read_all(stream) == b"%PDF-1.4"
    stream.close()

    assert body.close_calls == 1


async def test_delete_then_get_is_not_found(object_store, s3_client):
    s3_client.put_object(Bucket=TEST_BUCKET_NAME, Key="documents/5-a.pdf", Body=b"%PDF")

    await delete_document(object_store, "documents/5-a.pdf")

    with pytest.raises(NotFound):
        await transfer_out(object_store, "documents/5-a.pdf")


async def test_delete_is_idempotent(object_store):
    await delete_document(object_store, "documents/6-never.pdf")
    await delete_document(object_store, "documents/6-never.pdf")


async def test_list_documents_respects_max_items(object_store, s3_client):
    for i in range(12):
        s3_client.put_object(Bucket=TEST_BUCKET_NAME, Key=f"documents/{i}-f.pdf", Body=b"%PDF")

    entries = await list_documents(object_store, max_items=10)

    assert len(entries) == 10
    assert all(entry.key.startswith("documents/") for entry in entries)
    assert all(entry.size_bytes == 4 for entry in entries)


async def test_list_documents_empty_bucket(object_store):
    assert await list_documents(object_store, max_items=10) == []


async def test_sign_document_url(object_store):
    url = await sign_document_url(object_store, "documents/7-a.pdf", ttl_seconds=60)
    assert "documents/7-a.pdf" in url
    assert seconds_until_expiry(url) == pytest.approx(60, abs=30)


def test_object_url_with_custom_endpoint():
    store = ObjectStore("docs", s3_client=object(), endpoint_url="http://localhost:9000/")
    assert store.object_url("documents/1-a b.pdf") == "http://localhost:9000/docs/documents/1-a%20b.pdf"


async def test_transfer_in_logs_key_and_size(object_store, caplog):
    caplog.set_level(logging.INFO, logger="pdf_gateway.utils.decorators")

    await transfer_in(
        object_store, io.BytesIO(TEST_PDF_CONTENT), key="documents/8-a.pdf", original_name="a.pdf", max_bytes=MiB
    )

    messages = [record.getMessage() for record in caplog.records if record.name == "pdf_gateway.utils.decorators"]
    assert len(messages) == 1
    assert "transfer_in of documents/8-a.pdf completed" in messages[0]
    assert f"{len(TEST_PDF_CONTENT)} bytes" in messages[0]


async def test_transfer_in_failure_logs_key(object_store, caplog):
    caplog.set_level(logging.INFO, logger="pdf_gateway.utils.decorators")

    with pytest.raises(PayloadTooLarge):
        await transfer_in(
            object_store, io.BytesIO(b"x" * 4096), key="documents/9-a.pdf", original_name="a.pdf", max_bytes=1024
        )

    errors = [record for record in caplog.records if record.levelno == logging.ERROR]
    assert any("transfer_in of documents/9-a.pdf failed" in record.getMessage() for record in errors)
