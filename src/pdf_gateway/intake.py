"""Admission checks applied to an upload before and while it streams to S3."""

import logging
from typing import BinaryIO, Optional

from starlette.datastructures import Headers
from starlette.responses import JSONResponse
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from pdf_gateway.errors import PayloadTooLarge, UnsupportedMediaType

logger = logging.getLogger(__name__)

PDF_CONTENT_TYPE = "application/pdf"


def check_content_type(content_type: Optional[str]) -> None:
    """
    Accept only a declared type of exactly ``application/pdf``.

    The declared type comes from the client and can be spoofed; this filters,
    it does not secure anything.
    """
    if content_type != PDF_CONTENT_TYPE:
        logger.info("Rejected upload with declared content type %r", content_type)
        raise UnsupportedMediaType("unsupported media type")


class SizeLimitedReader:
    """
    Read-only file-like wrapper that fails once more than ``max_bytes`` pass through.

    Deliberately exposes neither ``seek`` nor ``tell``, so boto3 treats it as a
    non-seekable stream and only ever holds one part in memory.
    """

    def __init__(self, source: BinaryIO, max_bytes: int):
        self._source = source
        self.max_bytes = max_bytes
        self.bytes_read = 0

    def read(self, size: int = -1) -> bytes:
        if size is None or size < 0:
            # never slurp the whole source; one byte past the ceiling is enough to decide
            size = self.max_bytes - self.bytes_read + 1
        chunk = self._source.read(size)
        self.bytes_read += len(chunk)
        if self.bytes_read > self.max_bytes:
            raise PayloadTooLarge(f"File exceeds the maximum allowed size of {self.max_bytes} bytes")
        return chunk

    def readable(self) -> bool:
        return True


class UploadBodyLimit:
    """
    ASGI middleware that caps the raw request body of the upload route.

    Form parsing spools the whole multipart body before the handler runs, so
    the ceiling has to be enforced here as well. A declared ``Content-Length``
    over the limit is refused without reading the body; chunked bodies are
    counted as they arrive and refused as soon as they cross it.
    """

    def __init__(self, app: ASGIApp, path: str, max_body_bytes: int):
        self.app = app
        self.path = path
        self.max_body_bytes = max_body_bytes

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http" or scope["method"] != "POST" or scope["path"] != self.path:
            await self.app(scope, receive, send)
            return

        declared = Headers(scope=scope).get("content-length")
        if declared is not None and declared.isdigit() and int(declared) > self.max_body_bytes:
            logger.info("Refused upload declaring %s bytes (limit %d)", declared, self.max_body_bytes)
            await self._refuse(scope, receive, send)
            return

        received = 0
        exceeded = False

        async def counting_receive() -> Message:
            nonlocal received, exceeded
            message = await receive()
            if message["type"] == "http.request":
                received += len(message.get("body", b""))
                if received > self.max_body_bytes:
                    exceeded = True
                    raise PayloadTooLarge(self._details())
            return message

        async def guarded_send(message: Message) -> None:
            # whatever the app answers to the aborted body is replaced by the 413
            if not exceeded:
                await send(message)

        try:
            await self.app(scope, counting_receive, guarded_send)
        except Exception:
            if not exceeded:
                raise

        if exceeded:
            logger.info("Refused chunked upload after %d bytes (limit %d)", received, self.max_body_bytes)
            await self._refuse(scope, receive, send)

    def _details(self) -> str:
        return f"Request body exceeds the maximum allowed size of {self.max_body_bytes} bytes"

    async def _refuse(self, scope: Scope, receive: Receive, send: Send) -> None:
        error = PayloadTooLarge(self._details(), summary="Upload failed")
        response = JSONResponse(status_code=error.status_code, content=error.to_body())
        await response(scope, receive, send)
