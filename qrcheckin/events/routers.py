from fastapi import APIRouter

from .features.check_in.router import router as check_in_router
from .features.manage_events.router import router as manage_events_router
from .features.send_credentials.router import router as send_credentials_router
from .features.upload_attendees.router import router as upload_attendees_router

router = APIRouter()

router.include_router(manage_events_router)
router.include_router(upload_attendees_router)
router.include_router(send_credentials_router)
router.include_router(check_in_router)
