from uuid import UUID

from fastapi import APIRouter, Depends, File, Response, UploadFile
from pydantic import BaseModel

from qrcheckin.events.coordinator import EventCoordinator
from qrcheckin.events.dependencies import get_event_coordinator
from qrcheckin.events.features.upload_attendees.template import TEMPLATE_FILENAME, XLSX_MEDIA_TYPE
from qrcheckin.events.urls import UPLOAD_ATTENDEES_URL, UPLOAD_TEMPLATE_URL

router = APIRouter()


class UploadAttendeesResponse(BaseModel):
    success_count: int
    failed_count: int
    errors: list[str] = []


@router.post(UPLOAD_ATTENDEES_URL, response_model=UploadAttendeesResponse)
async def upload_attendees(
    event_id: UUID,
    file: UploadFile = File(...),
    coordinator: EventCoordinator = Depends(get_event_coordinator),
) -> UploadAttendeesResponse:
    """
    Import attendees from a CSV or Excel file.

    Required columns: name (or first and last name) and email.
    Rows that fail validation are reported in `errors` and skipped.
    """
    content = await file.read()
    result = await coordinator.upload_attendees(event_id, file.filename or "", content)
    return UploadAttendeesResponse(
        success_count=result.success_count,
        failed_count=result.failed_count,
        errors=result.errors,
    )


@router.get(UPLOAD_TEMPLATE_URL, response_class=Response)
async def download_upload_template(
    event_id: UUID,
    coordinator: EventCoordinator = Depends(get_event_coordinator),
) -> Response:
    """Excel template with the accepted columns and a few sample rows."""
    content = await coordinator.upload_template(event_id)
    return Response(
        content=content,
        media_type=XLSX_MEDIA_TYPE,
        headers={"Content-Disposition": f"attachment; filename={TEMPLATE_FILENAME}"},
    )
