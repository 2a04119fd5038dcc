from enum import Enum

class WebSocketMessageType(str, Enum):
    HEARTBEAT = "HEARTBEAT"
    NOTIFICATION = "notification"
    PARTNER_PROGRESS = "partnerProgress"
