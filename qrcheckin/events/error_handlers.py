import logging

from fastapi import Request
from fastapi.responses import JSONResponse

from qrcheckin.events.dtos import (
    AttendeeNotFoundError,
    BatchAlreadyRunningError,
    CheckInPipelineError,
    CredentialRejectedError,
    EventNotFoundError,
)

logger = logging.getLogger(__name__)


def status_code_for(exc: CheckInPipelineError) -> int:
    if isinstance(exc, (EventNotFoundError, AttendeeNotFoundError)):
        return 404
    if isinstance(exc, BatchAlreadyRunningError):
        return 409
    return 400


async def pipeline_error_handler(request: Request, exc: CheckInPipelineError) -> JSONResponse:
    content = {"detail": str(exc)}
    # Lets the scanner tell a bad QR code, a wrong event and an unknown attendee apart
    if isinstance(exc, CredentialRejectedError):
        content["code"] = exc.code

    status_code = status_code_for(exc)
    logger.info("%s %s -> %d: %s", request.method, request.url.path, status_code, exc)
    return JSONResponse(status_code=status_code, content=content)
