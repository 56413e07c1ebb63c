"""
Error taxonomy for the gateway and its translation into JSON responses.

Every endpoint runs its body inside :func:`error_boundary`, so whatever goes
wrong reaches the client as ``{"error": ..., "details": ...}`` with the status
code of the matching :class:`GatewayError` subclass.
"""

import logging
from contextlib import contextmanager
from typing import Any, Dict, Iterator, Optional, Type

import pydantic
from botocore.exceptions import BotoCoreError, ClientError
from fastapi import Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)

NOT_FOUND_ERROR_CODES = {"NoSuchKey", "NotFound", "404"}


class GatewayError(Exception):
    """Base class for every failure the gateway reports to clients."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(
        self,
        details: str,
        summary: Optional[str] = None,
        code: Optional[str] = None,
    ):
        super().__init__(details)
        self.details = details
        self.summary = summary
        self.code = code

    def to_body(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {"error": self.summary or self.details, "details": self.details}
        if self.code:
            body["code"] = self.code
        return body


class ValidationError(GatewayError):
    """Bad or missing input; the client's fault."""

    status_code = status.HTTP_400_BAD_REQUEST


class UnsupportedMediaType(ValidationError):
    """Declared content type is not application/pdf."""

    status_code = status.HTTP_415_UNSUPPORTED_MEDIA_TYPE


class NotFound(GatewayError):
    """The requested object does not exist in the bucket."""

    status_code = status.HTTP_404_NOT_FOUND


class PayloadTooLarge(GatewayError):
    """The upload stream went past the size ceiling."""

    status_code = status.HTTP_413_CONTENT_TOO_LARGE


class StoreFailure(GatewayError):
    """The object store was unreachable or rejected the operation."""


class Unknown(GatewayError):
    """Anything that does not fit the categories above."""


def translate_store_error(err: Exception, key: Optional[str] = None) -> GatewayError:
    """Map a botocore exception onto the gateway taxonomy."""
    if isinstance(err, ClientError):
        error = err.response.get("Error", {})
        code = str(error.get("Code", ""))
        message = error.get("Message") or str(err)
        if code in NOT_FOUND_ERROR_CODES:
            return NotFound(f"No object stored under key '{key}'" if key else message, code=code)
        return StoreFailure(message, code=code or None)
    if isinstance(err, BotoCoreError):
        return StoreFailure(str(err), code=type(err).__name__)
    return Unknown(str(err))


@contextmanager
def error_boundary(
    summary: str,
    summaries: Optional[Dict[Type[GatewayError], str]] = None,
) -> Iterator[None]:
    """
    Stamp ``summary`` on gateway errors raised inside the block and wrap
    anything else into :class:`Unknown`.

    :param summary: Short, endpoint-specific description, e.g. "Failed to list files".
    :param summaries: Per-error-class overrides, e.g. ``{NotFound: "PDF not found"}``.
    """
    try:
        yield
    except GatewayError as err:
        if err.summary is None:
            err.summary = next(
                (text for error_cls, text in (summaries or {}).items() if isinstance(err, error_cls)),
                summary,
            )
        raise
    except (ClientError, BotoCoreError) as err:
        translated = translate_store_error(err)
        translated.summary = summary
        raise translated from err
    except Exception as err:
        logger.exception("%s: unexpected error", summary)
        raise Unknown(str(err) or type(err).__name__, summary=summary) from err


async def handle_gateway_errors(request: Request, exc: GatewayError) -> JSONResponse:
    """Render a :class:`GatewayError` as a JSON error body."""
    log = logger.warning if exc.status_code < 500 else logger.error
    log("%s %s -> %s: %s", request.method, request.url.path, exc.status_code, exc.details)
    return JSONResponse(status_code=exc.status_code, content=exc.to_body())


async def handle_pydantic_validation_errors(request: Request, exc: pydantic.ValidationError) -> JSONResponse:
    """Response models failing validation are a server bug, not a client error."""
    logger.error("Response validation failed for %s: %s", request.url.path, exc)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"error": "Internal server error", "details": str(exc)},
    )


async def handle_broad_exceptions(request: Request, call_next):
    """Last line of defence: nothing escapes the app without a JSON body."""
    try:
        return await call_next(request)
    except Exception as err:
        logger.exception("Unhandled error for %s %s", request.method, request.url.path)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"error": "Internal server error", "details": str(err)},
        )


async def handle_request_validation_errors(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Malformed requests get the same JSON shape as every other client error."""
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"error": "Invalid request", "details": str(exc.errors())},
    )
