"""Functions for reading objects from the bucket--the "R" in CRUD."""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, AsyncIterator, Dict, List, Optional

from starlette.concurrency import iterate_in_threadpool

from pdf_gateway.errors import StoreFailure
from pdf_gateway.intake import PDF_CONTENT_TYPE
from pdf_gateway.s3.client import ObjectStore

logger = logging.getLogger(__name__)

DEFAULT_CHUNK_SIZE = 64 * 1024


@dataclass(frozen=True)
class ObjectEntry:
    key: str
    size_bytes: int
    last_modified: datetime


class DocumentStream:
    """
    An opened object, ready to be piped into a response.

    Headers are known before the first byte is sent. Once iteration has
    started the status is committed: a failure from S3 can only cut the body
    short (re-raised as ``StoreFailure``), it cannot turn into a 404.
    """

    def __init__(self, key: str, body, content_length: Optional[int], chunk_size: int = DEFAULT_CHUNK_SIZE):
        self.key = key
        self.content_length = content_length
        self._body = body
        self._chunk_size = chunk_size
        self._closed = False

    @property
    def headers(self) -> Dict[str, str]:
        headers = {
            "Content-Type": PDF_CONTENT_TYPE,
            "Content-Disposition": "inline",
        }
        if self.content_length is not None:
            headers["Content-Length"] = str(self.content_length)
        return headers

    async def iter_bytes(self) -> AsyncIterator[bytes]:
        sent = 0
        try:
            async for chunk in iterate_in_threadpool(self._body.iter_chunks(self._chunk_size)):
                sent += len(chunk)
                yield chunk
        except Exception as err:
            logger.error("Stream for %s terminated after %d bytes: %s", self.key, sent, err)
            raise StoreFailure(f"Stream for '{self.key}' terminated early: {err}") from err
        finally:
            self.close()

    def close(self) -> None:
        """Release the S3 connection. Safe to call more than once."""
        if not self._closed:
            self._closed = True
            self._body.close()


async def transfer_out(store: ObjectStore, key: str, chunk_size: int = DEFAULT_CHUNK_SIZE) -> DocumentStream:
    """
    Open ``key`` for streaming.

    :raises NotFound: if nothing is stored under ``key``; raised before any
        response header has been written.
    """
    response = await store.get_stream(key)
    return DocumentStream(
        key=key,
        body=response["Body"],
        content_length=response.get("ContentLength"),
        chunk_size=chunk_size,
    )


async def list_documents(store: ObjectStore, max_items: int) -> List[ObjectEntry]:
    """Snapshot of at most ``max_items`` objects; no pagination beyond the first page."""
    contents: List[Dict[str, Any]] = await store.list(max_keys=max_items)
    return [
        ObjectEntry(key=item["Key"], size_bytes=item["Size"], last_modified=item["LastModified"])
        for item in contents[:max_items]
    ]
