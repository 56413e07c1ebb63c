from textwrap import dedent
import logging
from typing import Optional

import pydantic
from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.routing import APIRoute
from fastapi.middleware.cors import CORSMiddleware

from pdf_gateway.errors import (
    GatewayError,
    handle_broad_exceptions,
    handle_gateway_errors,
    handle_pydantic_validation_errors,
    handle_request_validation_errors,
)
from pdf_gateway.intake import UploadBodyLimit
from pdf_gateway.routers.documents import router as documents_router
from pdf_gateway.routers.health import router as health_router
from pdf_gateway.s3.client import ObjectStore
from pdf_gateway.settings import Settings, get_settings

# Set up logging
logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def configure_logging(level: str) -> None:
    """Configure root logging once for the process."""
    logging.basicConfig(level=level, format=LOG_FORMAT)
    logging.getLogger("pdf_gateway").setLevel(level)


def create_app(settings: Optional[Settings] = None, object_store: Optional[ObjectStore] = None) -> FastAPI:
    """Create a FastAPI application."""
    settings = settings or get_settings()

    app = FastAPI(
        title="PDF Gateway",
        summary="Upload, stream, list and delete PDF documents stored in S3",
        version="v1",
        description=dedent(
            """\
        | Endpoint | Notes |
        | --- | --- |
        | `POST /upload` | multipart field `file`, PDF only |
        | `GET /pdf/{key}` | streams the document inline; percent-encode the key |
        | `GET /file/{key}` | presigned URL, one hour by default |
        """
        ),
        docs_url="/",  # its easier to find the docs when they live on the base url
        generate_unique_id_function=custom_generate_unique_id,
    )

    app.add_middleware(
        UploadBodyLimit,
        path=f"{settings.api_prefix}/upload",
        max_body_bytes=settings.max_upload_bytes + settings.upload_body_allowance_bytes,
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization", "X-Requested-With"],
    )
    app.state.settings = settings
    app.state.object_store = object_store or ObjectStore.from_settings(settings)
    logger.info("Serving bucket %s under prefix '%s'", settings.s3_bucket_name, settings.api_prefix)

    app.include_router(health_router, prefix=settings.api_prefix, tags=["health"])
    app.include_router(documents_router, prefix=settings.api_prefix, tags=["documents"])

    app.add_exception_handler(GatewayError, handle_gateway_errors)
    app.add_exception_handler(RequestValidationError, handle_request_validation_errors)
    app.add_exception_handler(
        exc_class_or_status_code=pydantic.ValidationError,
        handler=handle_pydantic_validation_errors,
    )
    app.middleware("http")(handle_broad_exceptions)

    return app


def custom_generate_unique_id(route: APIRoute):
    """
    Generate prettier `operationId`s in the OpenAPI schema.

    These become the function names in generated client SDKs.
    """
    return f"{route.tags[0]}-{route.name}"


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    configure_logging(settings.log_level)
    uvicorn.run(create_app(settings), host=settings.host, port=settings.port)
