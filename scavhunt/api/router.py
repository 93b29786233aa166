from fastapi import APIRouter
from scavhunt.api import hunts, users

router = APIRouter()
router.include_router(hunts.router, prefix="/hunts", tags=["Hunts"])
# Mount used by the first release of the API.
router.include_router(hunts.router, prefix="/scavhunt", tags=["Hunts"], include_in_schema=False)
router.include_router(users.router, prefix="/users", tags=["Users"])
