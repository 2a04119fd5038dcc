import logging
from datetime import datetime
from typing import Dict
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from accountability.init_db import get_db
from accountability.common import get_current_user
from accountability.schemas.nudges import LastNudgeTimesRequest, NudgeAvailability, NudgeCreate, NudgeResponse
from accountability.services.nudge_service import get_nudge_availability, last_nudge_times_for_user, send_nudge

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/nudges", tags=["nudges"])

@router.post("/last", response_model=Dict[str, datetime])
async def last_nudge_times_api(
    request: LastNudgeTimesRequest,
    db: AsyncSession = Depends(get_db),
    current_user: dict = Depends(get_current_user)
):
    """Most recent nudge time for each of the caller's partnerships in the request."""
    return await last_nudge_times_for_user(request.partnership_ids, db, current_user)

@router.get("/{partnership_id}", response_model=NudgeAvailability)
async def nudge_availability_api(
    partnership_id: str,
    db: AsyncSession = Depends(get_db),
    current_user: dict = Depends(get_current_user)
):
    return await get_nudge_availability(partnership_id, db, current_user)

@router.post("/{partnership_id}", response_model=NudgeResponse)
async def send_nudge_api(
    partnership_id: str,
    nudge: NudgeCreate,
    db: AsyncSession = Depends(get_db),
    current_user: dict = Depends(get_current_user)
):
    """
    Nudge the other partner. Returns 429 with a Retry-After header while
    the three hour cooldown is running.
    """
    return await send_nudge(partnership_id, nudge, db, current_user)
