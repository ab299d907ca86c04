from __future__ import annotations

from fastapi import Request, status
from fastapi.responses import JSONResponse

from .logging import get_logger


logger = get_logger(component="errors")


class TubelyError(Exception):
    """Base class for request-scoped failures rendered as JSON error bodies."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    code: str = "internal_error"

    def __init__(self, message: str | None = None, *, code: str | None = None):
        self.code = code or self.code
        self.message = message or self.code
        super().__init__(self.message)


class BadRequest(TubelyError):
    status_code = status.HTTP_400_BAD_REQUEST
    code = "bad_request"


class Unauthorized(TubelyError):
    status_code = status.HTTP_401_UNAUTHORIZED
    code = "unauthorized"


class Forbidden(TubelyError):
    status_code = status.HTTP_403_FORBIDDEN
    code = "forbidden"


class NotFound(TubelyError):
    status_code = status.HTTP_404_NOT_FOUND
    code = "not_found"


class ProcessingFailure(TubelyError):
    """An external media tool failed or produced unusable output.

    ``stderr`` keeps the tool's diagnostic output for the server log; it is
    never copied into the response body.
    """

    status_code = 422
    code = "processing_failed"

    def __init__(self, message: str | None = None, *, stderr: str = "", code: str | None = None):
        super().__init__(message, code=code)
        self.stderr = stderr


class ProbeFailure(ProcessingFailure):
    code = "probe_failed"


class TranscodeFailure(ProcessingFailure):
    code = "transcode_failed"


class StorageFailure(TubelyError):
    status_code = status.HTTP_502_BAD_GATEWAY
    code = "storage_failed"


async def tubely_error_handler(request: Request, exc: TubelyError) -> JSONResponse:
    if isinstance(exc, ProcessingFailure):
        logger.error("processing_failed", path=request.url.path, code=exc.code, message=exc.message, stderr=exc.stderr)
    elif exc.status_code >= 500:
        logger.error("request_failed", path=request.url.path, code=exc.code, message=exc.message)
    else:
        logger.info("request_rejected", path=request.url.path, code=exc.code, status=exc.status_code)
    return JSONResponse(status_code=exc.status_code, content={"error": exc.code, "detail": exc.message})


__all__ = [
    "TubelyError",
    "BadRequest",
    "Unauthorized",
    "Forbidden",
    "NotFound",
    "ProcessingFailure",
    "ProbeFailure",
    "TranscodeFailure",
    "StorageFailure",
    "tubely_error_handler",
]
