"""
Copy-on-write transforms of the three booking collections.

Every function takes a tuple and returns a new tuple; the input is never
touched, so the caller can keep the previous snapshot around for comparison.
Rejected actions raise a ``ValidationError`` subclass and produce nothing.
"""

import secrets
import string
import time
from typing import Optional, Sequence, Tuple

from .calendar import DateLike, date_key
from .exceptions import BookingRejected, InvalidSlotLabel, ValidationError
from .models import DEFAULT_RULES, AvailabilityRule, Booking, Snapshot, SpecialSchedule
from .slot_resolver import find_booking, find_override, find_rule, resolve_slots

_ID_ALPHABET = string.ascii_lowercase + string.digits


def _now_ms() -> int:
    return int(time.time() * 1000)


def new_booking_id(now_ms: int) -> str:
    """Time-based id with a random suffix, e.g. ``id-1715000000000-k3j9x0a1b``."""
    suffix = "".join(secrets.choice(_ID_ALPHABET) for _ in range(9))
    return f"id-{now_ms}-{suffix}"


def _clean_label(label: str) -> str:
    cleaned = (label or "").strip()
    if not cleaned:
        raise InvalidSlotLabel("Time slot label must not be empty.")
    return cleaned


def _check_weekday(day_of_week: int) -> None:
    if day_of_week not in range(7):
        raise ValidationError(f"Day of week must be between 0 (Sun) and 6 (Sat), got {day_of_week}")


# Bookings

def add_booking(
    bookings: Sequence[Booking],
    date: DateLike,
    time_slot: str,
    band_name: str,
    *,
    now_ms: Optional[int] = None
) -> Tuple[Booking, ...]:
    """
    Book ``time_slot`` on ``date`` for ``band_name``.

    Args:
        bookings: Current bookings
        date: Date or ``YYYY-MM-DD`` string
        time_slot: Slot label, e.g. "16:00-17:00"
        band_name: Who is booking; surrounding whitespace is dropped
        now_ms: Creation timestamp, defaults to the current time

    Returns:
        New tuple with the booking appended

    Raises:
        BookingRejected: If the name is blank or the slot is already taken
    """
    name = (band_name or "").strip()
    if not name:
        raise BookingRejected("Please enter a band name.")

    key = date_key(date)
    if find_booking(key, time_slot, bookings) is not None:
        raise BookingRejected(f"{key} {time_slot} is already booked.")

    created_at = _now_ms() if now_ms is None else now_ms
    booking = Booking(
        id=new_booking_id(created_at),
        date=key,
        time_slot=time_slot,
        band_name=name,
        created_at=created_at,
    )
    return tuple(bookings) + (booking,)


def remove_booking(bookings: Sequence[Booking], booking_id: str) -> Tuple[Booking, ...]:
    """Drop the booking with ``booking_id``; unknown ids leave the collection as is."""
    return tuple(b for b in bookings if b.id != booking_id)


# Weekly rules

def add_rule_slot(
    rules: Sequence[AvailabilityRule],
    day_of_week: int,
    label: str
) -> Tuple[AvailabilityRule, ...]:
    """
    Offer ``label`` on every ``day_of_week``.

    Appends to the existing rule (kept sorted) or creates a one-slot rule.
    A label the rule already has is not added twice.
    """
    _check_weekday(day_of_week)
    label = _clean_label(label)

    existing = find_rule(day_of_week, rules)
    if existing is None:
        return tuple(rules) + (AvailabilityRule(day_of_week=day_of_week, slots=(label,)),)

    if label in existing.slots:
        return tuple(rules)

    updated = AvailabilityRule(
        day_of_week=day_of_week,
        slots=tuple(sorted(existing.slots + (label,))),
    )
    return tuple(updated if r.day_of_week == day_of_week else r for r in rules)


def remove_rule_slot(
    rules: Sequence[AvailabilityRule],
    day_of_week: int,
    label: str
) -> Tuple[AvailabilityRule, ...]:
    """Stop offering ``label`` on ``day_of_week``. The rule survives even when emptied."""
    return tuple(
        AvailabilityRule(
            day_of_week=r.day_of_week,
            slots=tuple(s for s in r.slots if s != label),
        )
        if r.day_of_week == day_of_week else r
        for r in rules
    )


# Per-date overrides

def _put_override(
    overrides: Sequence[SpecialSchedule],
    override: SpecialSchedule
) -> Tuple[SpecialSchedule, ...]:
    """Replace the override for the same date in place, or append it."""
    if find_override(override.date, overrides) is None:
        return tuple(overrides) + (override,)
    return tuple(override if o.date == override.date else o for o in overrides)


def add_override_slot(
    overrides: Sequence[SpecialSchedule],
    rules: Sequence[AvailabilityRule],
    date: DateLike,
    label: str
) -> Tuple[SpecialSchedule, ...]:
    """
    Add ``label`` on one specific date.

    The first customization of a date copies the weekly default into a new
    special schedule; from then on the date no longer follows the rule.
    Adding a slot always reopens a closed date. A label already offered on
    that date is not added twice.
    """
    label = _clean_label(label)
    key = date_key(date)

    existing = find_override(key, overrides)
    if existing is not None:
        base = existing.slots
    else:
        base = resolve_slots(key, rules, ())

    if label in base:
        if existing is not None and existing.is_disabled:
            return _put_override(
                overrides,
                SpecialSchedule(date=key, slots=base, is_disabled=False),
            )
        return tuple(overrides)

    return _put_override(
        overrides,
        SpecialSchedule(date=key, slots=tuple(sorted(base + (label,))), is_disabled=False),
    )


def remove_override_slot(
    overrides: Sequence[SpecialSchedule],
    rules: Sequence[AvailabilityRule],
    date: DateLike,
    label: str
) -> Tuple[SpecialSchedule, ...]:
    """
    Remove ``label`` from one specific date.

    Works from the existing special schedule or, when there is none yet, from
    the weekly default. Removing the last slot disables the date.
    """
    key = date_key(date)

    existing = find_override(key, overrides)
    if existing is not None:
        base = existing.slots
    else:
        base = resolve_slots(key, rules, ())

    remaining = tuple(s for s in base if s != label)
    return _put_override(
        overrides,
        SpecialSchedule(date=key, slots=remaining, is_disabled=not remaining),
    )


def reset_override(
    overrides: Sequence[SpecialSchedule],
    date: DateLike
) -> Tuple[SpecialSchedule, ...]:
    """Forget the special schedule for ``date`` so the weekly rule applies again."""
    key = date_key(date)
    return tuple(o for o in overrides if o.date != key)


def wipe_all(rules: Sequence[AvailabilityRule] = DEFAULT_RULES) -> Snapshot:
    """The dataset a fresh installation starts with: no bookings, no overrides."""
    return Snapshot(bookings=(), rules=tuple(rules), special_schedules=())
