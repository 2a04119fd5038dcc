from .habit_catalog_service import resolve_core_habit_name, get_custom_habit_definition
from .partnership_service import send_invite, accept_invite, decline_invite, cancel_invite, remove_partnership
from .progress_service import record_progress, get_progress, read_progress, subscribe_to_progress
from .nudge_service import can_nudge, send_nudge, get_last_nudge_time, get_last_nudge_times

__all__ = [
    "resolve_core_habit_name", "get_custom_habit_definition",
    "send_invite", "accept_invite", "decline_invite", "cancel_invite", "remove_partnership",
    "record_progress", "get_progress", "read_progress", "subscribe_to_progress",
    "can_nudge", "send_nudge", "get_last_nudge_time", "get_last_nudge_times",
]
