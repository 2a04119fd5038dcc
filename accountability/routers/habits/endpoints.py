import logging
from typing import List
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from accountability.init_db import get_db
from accountability.common import get_current_user
from accountability.schemas.partnerships import PartnershipResponse
from accountability.services.habit_service import delete_custom_habit, list_habit_partnerships

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/habits", tags=["habits"])

@router.get("/custom/{habit_id}/partnerships", response_model=List[PartnershipResponse])
async def habit_partnerships_api(
    habit_id: str,
    db: AsyncSession = Depends(get_db),
    current_user: dict = Depends(get_current_user)
):
    """Partnerships that deleting this habit would cancel."""
    return await list_habit_partnerships(habit_id, db, current_user)

@router.delete("/custom/{habit_id}")
async def delete_custom_habit_api(
    habit_id: str,
    db: AsyncSession = Depends(get_db),
    current_user: dict = Depends(get_current_user)
):
    return await delete_custom_habit(habit_id, db, current_user)
