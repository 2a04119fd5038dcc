from .user import User
from .habits import CustomHabit, UserCoreHabit, CoreHabitSchedule
from .partnership import Partnership
from .partner_progress import PartnerProgress
from .nudge import Nudge
from .notifications import Notification
from .device_token import DeviceToken

__all__ = ["User", "CustomHabit", "UserCoreHabit", "CoreHabitSchedule", "Partnership", "PartnerProgress", "Nudge", "Notification", "DeviceToken"]
