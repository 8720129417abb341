"""
Domain layer - Pure business logic, no I/O.
"""

from .models import AppState, AvailabilityRule, Booking, Role, Snapshot, SpecialSchedule
from .slot_resolver import resolve_slots

__all__ = [
    "AppState",
    "AvailabilityRule",
    "Booking",
    "Role",
    "Snapshot",
    "SpecialSchedule",
    "resolve_slots",
]
