import logging
from datetime import date
from typing import List
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from accountability.init_db import get_db
from accountability.common import get_current_user
from accountability.schemas.partnerships import (
    PartnershipDetailResponse,
    PartnershipInviteCreate,
    PartnershipResponse,
)
from accountability.schemas.progress import ProgressStatus
from accountability.services.partnership_service import (
    accept_invite,
    cancel_invite,
    decline_invite,
    list_active_partnerships,
    list_pending_invites,
    remove_partnership,
    send_invite,
)
from accountability.services.progress_service import check_partner_completion

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/partnerships", tags=["partnerships"])

@router.post("/invites", response_model=PartnershipResponse)
async def send_invite_api(
    invite: PartnershipInviteCreate,
    db: AsyncSession = Depends(get_db),
    current_user: dict = Depends(get_current_user)
):
    """
    Invite another user to track a habit together.

    Re-sending an invite for the same habit returns the existing partnership
    instead of creating a second one.
    """
    return await send_invite(invite, db, current_user)

@router.get("/invites/pending", response_model=List[PartnershipDetailResponse])
async def list_pending_invites_api(
    db: AsyncSession = Depends(get_db),
    current_user: dict = Depends(get_current_user)
):
    return await list_pending_invites(db, current_user)

@router.get("/active", response_model=List[PartnershipDetailResponse])
async def list_active_partnerships_api(
    db: AsyncSession = Depends(get_db),
    current_user: dict = Depends(get_current_user)
):
    return await list_active_partnerships(db, current_user)

@router.post("/{partnership_id}/accept", response_model=PartnershipResponse)
async def accept_invite_api(
    partnership_id: str,
    db: AsyncSession = Depends(get_db),
    current_user: dict = Depends(get_current_user)
):
    """
    Accept an invite. The habit is mirrored onto the invitee's account;
    mirroring problems do not fail the request.
    """
    return await accept_invite(partnership_id, db, current_user)

@router.post("/{partnership_id}/decline", response_model=PartnershipResponse)
async def decline_invite_api(
    partnership_id: str,
    db: AsyncSession = Depends(get_db),
    current_user: dict = Depends(get_current_user)
):
    return await decline_invite(partnership_id, db, current_user)

@router.post("/{partnership_id}/cancel", response_model=PartnershipResponse)
async def cancel_invite_api(
    partnership_id: str,
    db: AsyncSession = Depends(get_db),
    current_user: dict = Depends(get_current_user)
):
    return await cancel_invite(partnership_id, db, current_user)

@router.delete("/{partnership_id}", response_model=PartnershipResponse)
async def remove_partnership_api(
    partnership_id: str,
    db: AsyncSession = Depends(get_db),
    current_user: dict = Depends(get_current_user)
):
    return await remove_partnership(partnership_id, db, current_user)

@router.get("/{partnership_id}/partner-progress", response_model=ProgressStatus)
async def partner_progress_api(
    partnership_id: str,
    progress_date: date,
    db: AsyncSession = Depends(get_db),
    current_user: dict = Depends(get_current_user)
):
    """Whether the other partner completed the habit on `progress_date`."""
    return await check_partner_completion(partnership_id, progress_date, db, current_user)
