import json
import logging
from typing import Any, Dict, List, Optional

import httpx
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from accountability.config import settings
from accountability.core.websocket.websocket_manager import manager
from accountability.models import DeviceToken, Notification
from accountability.schemas.notifications import NotificationType
from accountability.schemas.websocket import WebSocketMessageType

logger = logging.getLogger(__name__)

# (title, message) per kind; messages are formatted with the payload
NOTIFICATION_TEMPLATES = {
    NotificationType.HABIT_INVITE: (
        "New habit invite",
        "{from_name} invited you to track {habit_name} together.",
    ),
    NotificationType.HABIT_INVITE_ACCEPTED: (
        "Invite accepted",
        "{from_name} accepted your invite to track {habit_name} together.",
    ),
    NotificationType.HABIT_NUDGE: (
        "You've been nudged",
        "{from_name} nudged you to complete {habit_name}.",
    ),
    NotificationType.PARTNERSHIP_CANCELLED: (
        "Partnership cancelled",
        "{from_name} deleted a habit you were tracking together. Partnership cancelled.",
    ),
}


def render_notification(kind: NotificationType, payload: Dict[str, Any]) -> tuple:
    title, template = NOTIFICATION_TEMPLATES[kind]
    values = {"from_name": "Your partner", "habit_name": "your habit"}
    values.update({k: v for k, v in payload.items() if v is not None})
    return title, template.format(**values)


async def send_push_notifications(device_tokens: List[DeviceToken], notification: Notification) -> List[Dict[str, Any]]:
    """
    Post one push request per device token to the push relay.

    The relay forwards `data` to the app so a tap opens the right screen.
    Failures are collected per token, never raised.
    """
    results = []
    if not device_tokens:
        return results

    relay_url = settings.push_notification_url.get_secret_value()
    async with httpx.AsyncClient(timeout=10.0) as client:
        for device in device_tokens:
            short_token = f"{device.token[:10]}..."
            result = {"device_token": device.token}
            try:
                response = await client.post(relay_url, json={
                    "deviceToken": device.token,
                    "title": notification.title,
                    "message": notification.message,
                    "badge": 1,
                    "data": {"notificationId": notification.id, "type": notification.type},
                })
                result["status_code"] = response.status_code
                if not response.is_success:
                    logger.warning(f"Push relay returned {response.status_code} for device {short_token}")
            except httpx.HTTPError as e:
                logger.warning(f"Push relay unreachable for device {short_token}: {e}")
                result["error"] = str(e)
            results.append(result)

    return results


async def dispatch(
    db: AsyncSession,
    user_id: str,
    kind: NotificationType,
    payload: Dict[str, Any],
    from_user_id: Optional[str] = None,
) -> Optional[Notification]:
    """
    Record a notification and deliver it over WebSocket or push.

    Fire-and-forget: every failure is logged and swallowed so the calling
    operation never fails because of notification delivery.

    Args:
        db: AsyncSession for database operations
        user_id: Recipient
        kind: Notification kind, selects the title and message template
        payload: Template values plus structured data stored with the notification
        from_user_id: Sender, if any

    Returns:
        Notification: The stored notification, or None if it could not be stored
    """
    title, message = render_notification(kind, payload)
    try:
        notification = Notification(
            user_id=user_id,
            from_user_id=from_user_id,
            type=kind.value,
            title=title,
            message=message,
            data=json.dumps(payload, default=str)
        )
        db.add(notification)
        await db.commit()
        await db.refresh(notification)
    except Exception:
        logger.exception(f"Failed to store {kind.value} notification for user {user_id}")
        await db.rollback()
        return None

    if manager.is_user_online(user_id):
        try:
            await manager.send_notification(user_id, {
                "id": notification.id,
                "type": WebSocketMessageType.NOTIFICATION.value,
                "kind": kind.value,
                "title": title,
                "message": message,
                "from_user_id": from_user_id,
                "data": payload,
            })
        except Exception as e:
            logger.warning(f"Failed to send WebSocket notification: {e}")
    else:
        try:
            result = await db.execute(
                select(DeviceToken).where(
                    DeviceToken.is_active == True,
                    DeviceToken.user_id == user_id,
                    DeviceToken.platform == "ios"
                )
            )
            device_tokens = result.scalars().all()
            if not device_tokens:
                logger.info(f"No active iOS device tokens found for user {user_id}")
            responses = await send_push_notifications(device_tokens, notification)
            logger.info(f"Push notifications sent: {len(responses)} responses")
        except Exception:
            logger.exception("Error while sending push notifications.")

    return notification


async def get_notifications(db: AsyncSession, current_user: dict) -> List[Notification]:
    """Unread notifications for the current user, newest first."""
    result = await db.execute(
        select(Notification).where(
            Notification.user_id == current_user['uid'],
            Notification.is_read == False
        ).order_by(Notification.created_at.desc())
    )
    return result.scalars().all()
