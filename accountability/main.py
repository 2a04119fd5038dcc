import logging

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from .common import app, get_current_user
from .exceptions import NotFound
from .init_db import get_db
from .routers.partnerships.endpoints import router as PartnershipsEndpoints
from .routers.progress.endpoints import router as ProgressEndpoints
from .routers.nudges.endpoints import router as NudgesEndpoints
from .routers.habits.endpoints import router as HabitsEndpoints
from .routers.websocket.endpoints import router as WebSocketEndpoints
from .schemas.notifications import NotificationResponse
from .schemas.partnerships import PartnerProfile
from .services.notification_service import get_notifications
from .services.user_service import get_user_by_id

logger = logging.getLogger(__name__)

# Include routers
app.include_router(PartnershipsEndpoints)
app.include_router(ProgressEndpoints)
app.include_router(NudgesEndpoints)
app.include_router(HabitsEndpoints)
app.include_router(WebSocketEndpoints)

@app.get("/me", response_model=PartnerProfile)
async def get_current_user_info(
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    user = await get_user_by_id(db, current_user["uid"])
    if user is None:
        raise NotFound("User not found in database")
    return user

@app.get("/notifications", response_model=list[NotificationResponse])
async def list_notifications(
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    return await get_notifications(db, current_user)

@app.get("/health")
async def health():
    return {"status": "ok"}
