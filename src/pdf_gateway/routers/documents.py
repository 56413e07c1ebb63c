import logging
from typing import Optional

from fastapi import APIRouter, File, Request, UploadFile, status
from fastapi.responses import StreamingResponse
from starlette.background import BackgroundTask

from pdf_gateway.errors import NotFound, PayloadTooLarge, ValidationError, error_boundary
from pdf_gateway.intake import PDF_CONTENT_TYPE, check_content_type
from pdf_gateway.keys import decode_key, derive_key
from pdf_gateway.s3.client import ObjectStore
from pdf_gateway.s3.delete_objects import delete_document
from pdf_gateway.s3.read_objects import list_documents, transfer_out
from pdf_gateway.s3.sign_objects import sign_document_url
from pdf_gateway.s3.write_objects import transfer_in
from pdf_gateway.schemas import (
    DeleteFileResponse,
    ErrorResponse,
    FileEntry,
    ListFilesResponse,
    SignedUrlResponse,
    UploadedFile,
    UploadResponse,
)
from pdf_gateway.settings import Settings

logger = logging.getLogger(__name__)

UPLOAD_FIELD_NAME = "file"

router = APIRouter()


def resolve_path_key(request: Request, route_marker: str) -> str:
    """
    Pull the object key out of the request path, percent-decoded exactly once.

    Starlette has already decoded ``request.path_params``; decoding that value
    again would corrupt keys containing ``%``. The raw path is used instead.

    :param route_marker: The literal path segment preceding the key, e.g. "/pdf/".
    """
    raw_path = request.scope.get("raw_path")
    if raw_path is None:
        # no raw path from the server: its decoded value is the single decode
        key = request.path_params.get("key", "")
        if not key:
            raise ValidationError("No file key provided", summary="No file key provided")
        return key

    settings: Settings = request.app.state.settings
    try:
        path = raw_path.split(b"?", 1)[0].decode("utf-8")
    except UnicodeDecodeError as err:
        raise ValidationError("Request path is not valid UTF-8", summary="Malformed file key") from err

    marker = f"{settings.api_prefix}{route_marker}"
    position = path.find(marker)
    raw_key = path[position + len(marker):] if position >= 0 else ""
    return decode_key(raw_key)


@router.get(
    "/list-files",
    response_model=ListFilesResponse,
    responses={status.HTTP_500_INTERNAL_SERVER_ERROR: {"model": ErrorResponse}},
)
async def list_files(request: Request) -> ListFilesResponse:
    """List the first page of stored documents."""
    settings: Settings = request.app.state.settings
    store: ObjectStore = request.app.state.object_store

    with error_boundary("Failed to list files"):
        entries = await list_documents(store, max_items=settings.list_max_keys)

    return ListFilesResponse(
        files=[
            FileEntry(key=entry.key, size=entry.size_bytes, last_modified=entry.last_modified)
            for entry in entries
        ]
    )


@router.post(
    "/upload",
    response_model=UploadResponse,
    responses={
        status.HTTP_400_BAD_REQUEST: {"model": ErrorResponse, "description": "No file in the request."},
        status.HTTP_413_CONTENT_TOO_LARGE: {"model": ErrorResponse},
        status.HTTP_415_UNSUPPORTED_MEDIA_TYPE: {"model": ErrorResponse, "description": "Not a PDF."},
        status.HTTP_500_INTERNAL_SERVER_ERROR: {"model": ErrorResponse},
    },
)
async def upload_file(
    request: Request,
    file: Optional[UploadFile] = File(None, description="The PDF to store"),
) -> UploadResponse:
    """
    Upload a PDF.

    The file is streamed to S3 under ``documents/<unix-millis>-<filename>``.
    Only a declared type of ``application/pdf`` is accepted, up to
    ``max_upload_bytes``.
    """
    settings: Settings = request.app.state.settings
    store: ObjectStore = request.app.state.object_store

    with error_boundary("Upload failed"):
        if file is None or not file.filename:
            raise ValidationError("No file uploaded", summary="No file uploaded")

        check_content_type(file.content_type)
        if file.size is not None and file.size > settings.max_upload_bytes:
            raise PayloadTooLarge(f"File exceeds the maximum allowed size of {settings.max_upload_bytes} bytes")

        key = derive_key(file.filename)
        document = await transfer_in(
            store,
            file.file,
            key=key,
            original_name=file.filename,
            max_bytes=settings.max_upload_bytes,
            field_name=UPLOAD_FIELD_NAME,
        )

    return UploadResponse(
        file=UploadedFile(
            filename=document.original_name,
            url=document.location,
            key=document.key,
            size=document.size_bytes,
            uploaded_at=document.uploaded_at,
        )
    )


@router.get(
    "/pdf/{key:path}",
    response_class=StreamingResponse,
    responses={
        status.HTTP_200_OK: {
            "description": "The PDF, served inline.",
            "content": {PDF_CONTENT_TYPE: {"schema": {"type": "string", "format": "binary"}}},
        },
        status.HTTP_400_BAD_REQUEST: {"model": ErrorResponse},
        status.HTTP_404_NOT_FOUND: {"model": ErrorResponse},
        status.HTTP_500_INTERNAL_SERVER_ERROR: {"model": ErrorResponse},
    },
)
async def serve_pdf(request: Request, key: str) -> StreamingResponse:
    """
    Stream a stored PDF inline.

    Note: once the first byte is sent the 200 is committed; a later S3 failure
    cuts the body short rather than producing an error response.
    """
    settings: Settings = request.app.state.settings
    store: ObjectStore = request.app.state.object_store

    with error_boundary("Failed to serve PDF", summaries={NotFound: "PDF not found"}):
        object_key = resolve_path_key(request, "/pdf/")
        logger.info("PDF request for key: %s", object_key)
        document = await transfer_out(store, object_key, chunk_size=settings.download_chunk_bytes)

    return StreamingResponse(
        content=document.iter_bytes(),
        media_type=PDF_CONTENT_TYPE,
        headers=document.headers,
        background=BackgroundTask(document.close),
    )


@router.get(
    "/file/{key:path}",
    response_model=SignedUrlResponse,
    responses={status.HTTP_500_INTERNAL_SERVER_ERROR: {"model": ErrorResponse}},
)
async def get_file_url(request: Request, key: str) -> SignedUrlResponse:
    """Presigned GET URL for a stored file, valid for ``signed_url_ttl_seconds``."""
    settings: Settings = request.app.state.settings
    store: ObjectStore = request.app.state.object_store

    with error_boundary("Failed to get file URL"):
        object_key = resolve_path_key(request, "/file/")
        url = await sign_document_url(store, object_key, ttl_seconds=settings.signed_url_ttl_seconds)

    return SignedUrlResponse(url=url)


@router.delete(
    "/file/{key:path}",
    response_model=DeleteFileResponse,
    responses={
        status.HTTP_400_BAD_REQUEST: {"model": ErrorResponse},
        status.HTTP_500_INTERNAL_SERVER_ERROR: {"model": ErrorResponse},
    },
)
async def delete_file(request: Request, key: str) -> DeleteFileResponse:
    """
    Delete a stored file.

    Deleting a key that does not exist succeeds as well.
    """
    store: ObjectStore = request.app.state.object_store

    with error_boundary("Failed to delete file from S3"):
        object_key = resolve_path_key(request, "/file/")
        logger.info("Delete request received for key: %s", object_key)
        await delete_document(store, object_key)

    return DeleteFileResponse()
