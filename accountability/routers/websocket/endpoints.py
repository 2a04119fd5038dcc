import logging
from fastapi import APIRouter, WebSocket, WebSocketDisconnect
from accountability.core.websocket.websocket_manager import manager
from accountability.database import AsyncSessionLocal
from accountability.schemas.progress import ProgressChange
from accountability.schemas.websocket import WebSocketMessageType
from accountability.services.partnership_service import list_active_partnership_ids
from accountability.services.progress_service import subscribe_to_progress
from accountability.services.user_service import get_user_by_id

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/ws", tags=["web-socket"])

@router.websocket("/progress/{user_id}")
async def progress_websocket(
    websocket: WebSocket,
    user_id: str
):
    """
    Stream partner progress for every active partnership of the user.

    Flow:
        1. Verifies the user and loads their accepted partnerships; later
           acceptances and removals update the stream without a reconnect
        2. Establishes the WebSocket connection
        3. Forwards matching progress changes until disconnection
        4. Releases the progress subscription on the way out
    """
    async with AsyncSessionLocal() as db:
        user = await get_user_by_id(db, user_id)
        partnership_ids = await list_active_partnership_ids(db, user_id) if user else []

    if not user:
        logger.warning(f"User {user_id} not found")
        await websocket.close(code=1000)
        return

    await manager.connect(websocket, user_id)
    logger.info(f"Progress WebSocket connected for user {user_id}")

    async def forward(change: ProgressChange):
        await manager.send_notification(user_id, {
            "type": WebSocketMessageType.PARTNER_PROGRESS.value,
            **change.model_dump(mode="json"),
        })

    subscription = subscribe_to_progress(partnership_ids, forward, owner_id=user_id)
    try:
        while True:
            message = await websocket.receive_json()
            if message.get("type") == WebSocketMessageType.HEARTBEAT.value:
                logger.debug(f"Received heartbeat response from user {user_id}")
            else:
                logger.warning(f"Unsupported message type: {message.get('type')}")
    except WebSocketDisconnect:
        logger.info(f"User {user_id} disconnected from progress WebSocket")
    except Exception as e:
        logger.error(f"Error on progress WebSocket for user {user_id}: {str(e)}")
    finally:
        subscription.unsubscribe()
        await manager.disconnect(websocket, user_id, reason="progress stream closed")
