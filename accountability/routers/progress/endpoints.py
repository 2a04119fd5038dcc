import logging
from datetime import date
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from accountability.init_db import get_db
from accountability.common import get_current_user
from accountability.schemas.progress import PartnerProgressResponse, ProgressStatus, ProgressUpdate
from accountability.services.progress_service import clear_progress, read_progress, record_progress

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/progress", tags=["progress"])

@router.put("/{partnership_id}", response_model=PartnerProgressResponse)
async def record_progress_api(
    partnership_id: str,
    update: ProgressUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: dict = Depends(get_current_user)
):
    """
    Record the current user's completion for a day.

    Args:
        partnership_id: Partnership the habit is tracked in
        update: ProgressUpdate with the date and completion flag
        db: Database session
        current_user: Currently authenticated user

    Returns:
        PartnerProgressResponse: The stored progress row
    """
    return await record_progress(partnership_id, update, db, current_user)

@router.delete("/{partnership_id}/{progress_date}")
async def clear_progress_api(
    partnership_id: str,
    progress_date: date,
    db: AsyncSession = Depends(get_db),
    current_user: dict = Depends(get_current_user)
):
    deleted = await clear_progress(partnership_id, progress_date, db, current_user)
    return {"deleted": deleted}

@router.get("/{partnership_id}/{user_id}", response_model=ProgressStatus)
async def get_progress_api(
    partnership_id: str,
    user_id: str,
    progress_date: date,
    db: AsyncSession = Depends(get_db),
    current_user: dict = Depends(get_current_user)
):
    """Either partner's completion for a day. Only participants may read it."""
    return await read_progress(partnership_id, user_id, progress_date, db, current_user)
