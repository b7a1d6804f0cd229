from fastapi import APIRouter

from .features.admin_overrides.router import router as admin_overrides_router
from .features.get_guest_info.router import router as get_guest_info_router
from .features.update_rsvp.router import router as update_rsvp_router

router = APIRouter()

router.include_router(get_guest_info_router)
router.include_router(update_rsvp_router)
router.include_router(admin_overrides_router)
