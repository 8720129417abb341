"""
Derivation of the bookable slots for a date.

Pure functions over immutable collections: no I/O, no clock. The caller
supplies the date, so the same inputs always give the same slots.
"""

from typing import Optional, Sequence, Tuple

from .calendar import DateLike, date_key, weekday_index
from .models import AvailabilityRule, Booking, SpecialSchedule


def find_override(
    date: DateLike,
    overrides: Sequence[SpecialSchedule]
) -> Optional[SpecialSchedule]:
    """Return the special schedule for ``date``, if one was created."""
    key = date_key(date)
    for override in overrides:
        if override.date == key:
            return override
    return None


def has_override(date: DateLike, overrides: Sequence[SpecialSchedule]) -> bool:
    return find_override(date, overrides) is not None


def find_rule(
    day_of_week: int,
    rules: Sequence[AvailabilityRule]
) -> Optional[AvailabilityRule]:
    for rule in rules:
        if rule.day_of_week == day_of_week:
            return rule
    return None


def resolve_slots(
    date: DateLike,
    rules: Sequence[AvailabilityRule],
    overrides: Sequence[SpecialSchedule]
) -> Tuple[str, ...]:
    """
    Compute the ordered slot labels bookable on ``date``.

    Algorithm:
    1. A special schedule for the date wins: nothing if it is disabled,
       otherwise its slots exactly as stored
    2. Otherwise the weekly rule for the date's weekday applies
    3. No rule for that weekday means no slots

    Args:
        date: Date or ``YYYY-MM-DD`` string
        rules: Weekly availability rules
        overrides: Per-date special schedules

    Returns:
        Tuple of slot labels (possibly empty)
    """
    override = find_override(date, overrides)
    if override is not None:
        return () if override.is_disabled else tuple(override.slots)

    rule = find_rule(weekday_index(date), rules)
    return tuple(rule.slots) if rule else ()


def bookings_for_date(date: DateLike, bookings: Sequence[Booking]) -> Tuple[Booking, ...]:
    """Bookings on ``date`` ordered by slot label."""
    key = date_key(date)
    return tuple(
        sorted((b for b in bookings if b.date == key), key=lambda b: b.time_slot)
    )


def find_booking(
    date: DateLike,
    time_slot: str,
    bookings: Sequence[Booking]
) -> Optional[Booking]:
    """Return the booking holding ``time_slot`` on ``date``, if any."""
    key = date_key(date)
    for booking in bookings:
        if booking.date == key and booking.time_slot == time_slot:
            return booking
    return None
