"""Streaming uploads into the bucket--the "C" in CRUD."""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import BinaryIO

from pdf_gateway.intake import PDF_CONTENT_TYPE, SizeLimitedReader
from pdf_gateway.s3.client import ObjectStore
from pdf_gateway.utils.decorators import async_log_transfer_time

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StoredDocument:
    """A document as it exists in the bucket right after a successful upload."""

    key: str
    original_name: str
    size_bytes: int
    location: str
    uploaded_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    content_type: str = PDF_CONTENT_TYPE


@async_log_transfer_time
async def transfer_in(
    store: ObjectStore,
    source: BinaryIO,
    key: str,
    original_name: str,
    max_bytes: int,
    field_name: str = "file",
) -> StoredDocument:
    """
    Stream ``source`` into the bucket under ``key``.

    :param store: The bucket to write to.
    :param source: Binary file-like object; read incrementally, never in full.
    :param key: Destination key, usually from :func:`pdf_gateway.keys.derive_key`.
    :param original_name: The filename the client uploaded.
    :param max_bytes: Size ceiling; crossing it raises ``PayloadTooLarge`` mid-stream.
    :param field_name: Multipart field the file arrived in, stored as object metadata.
    """
    reader = SizeLimitedReader(source, max_bytes)
    logger.info("Streaming upload of '%s' to key %s", original_name, key)

    await store.put_stream(
        key,
        reader,
        metadata={"fieldName": field_name},
        content_type=PDF_CONTENT_TYPE,
    )

    logger.info("Stored %s (%d bytes)", key, reader.bytes_read)
    return StoredDocument(
        key=key,
        original_name=original_name,
        size_bytes=reader.bytes_read,
        location=store.object_url(key),
    )
