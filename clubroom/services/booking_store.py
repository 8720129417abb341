"""
Application state holder for the booking client.

``BookingStore`` owns the explicit ``AppState`` and is the only place where
the domain mutations are applied. After every change the complete new
snapshot is handed to the sync gateway, which pushes it in the background;
the store never waits for that push.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

from ..domain import mutations
from ..domain.calendar import DateLike, date_key, is_past, month_grid
from ..domain.exceptions import BookingRejected
from ..domain.models import DEFAULT_RULES, AppState, AvailabilityRule, Booking, Role, Snapshot
from ..domain.slot_resolver import (
    bookings_for_date,
    find_booking,
    find_override,
    resolve_slots,
)
from .sync_gateway import SyncGateway

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SlotView:
    """One slot of a day and who holds it."""
    time_slot: str
    booking: Optional[Booking] = None


@dataclass(frozen=True)
class DayView:
    """Everything shown when a single day is opened."""
    date: str
    slots: Tuple[SlotView, ...]
    has_override: bool
    is_disabled: bool
    is_past: bool


@dataclass(frozen=True)
class DayCell:
    """Summary of a day inside the month grid."""
    date: str
    day: int
    slot_count: int
    bookings: Tuple[Booking, ...]
    has_override: bool
    is_past: bool


class BookingStore:
    """
    Holds the current dataset and applies user actions to it.

    Rejected actions raise before anything changes. Accepted actions replace
    the snapshot (the old one stays available as ``previous``) and trigger a
    full push.
    """

    def __init__(
        self,
        gateway: SyncGateway,
        state: Optional[AppState] = None,
        default_rules: Sequence[AvailabilityRule] = DEFAULT_RULES,
    ) -> None:
        self._gateway = gateway
        self._default_rules = tuple(default_rules)
        self.state = state or AppState(snapshot=mutations.wipe_all(self._default_rules))
        self.previous: Optional[Snapshot] = None

    @property
    def snapshot(self) -> Snapshot:
        return self.state.snapshot

    @property
    def role(self) -> Role:
        return self.state.role

    # Loading

    def refresh(self) -> bool:
        """
        Replace the local dataset with the remote one.

        Collections missing from the remote document keep their current value,
        so a brand-new store starts out with the default weekly rules.

        Returns:
            True if the remote data was loaded, False if the fetch failed and
            the previous state was kept
        """
        self.state.is_loading = True
        try:
            snapshot = self._gateway.fetch_all(base=self.state.snapshot)
        finally:
            self.state.is_loading = False

        if snapshot is None:
            return False

        self.previous = self.state.snapshot
        self.state.snapshot = snapshot
        return True

    load = refresh

    def _commit(self, snapshot: Snapshot) -> Snapshot:
        self.previous = self.state.snapshot
        self.state.snapshot = snapshot
        self._gateway.push_all(snapshot)
        return snapshot

    # Roles

    def set_role(self, role: Role) -> None:
        self.state.role = role

    def toggle_role(self) -> Role:
        self.state.role = self.state.role.toggled()
        return self.state.role

    # Reading

    def slots_for(self, date: DateLike) -> Tuple[str, ...]:
        return resolve_slots(date, self.snapshot.rules, self.snapshot.special_schedules)

    def day_view(self, date: DateLike, today: Optional[DateLike] = None) -> DayView:
        """Slots of ``date`` paired with their bookings."""
        key = date_key(date)
        override = find_override(key, self.snapshot.special_schedules)
        slots = tuple(
            SlotView(time_slot=slot, booking=find_booking(key, slot, self.snapshot.bookings))
            for slot in self.slots_for(key)
        )
        return DayView(
            date=key,
            slots=slots,
            has_override=override is not None,
            is_disabled=bool(override and override.is_disabled),
            is_past=is_past(key, today) if today is not None else False,
        )

    def month_view(self, year: int, month: int, today: DateLike) -> List[List[Optional[DayCell]]]:
        """
        Sunday-first grid of the month, ``None`` for padding cells.
        """
        weeks: List[List[Optional[DayCell]]] = []

        for week in month_grid(year, month):
            row: List[Optional[DayCell]] = []
            for day in week:
                if day is None:
                    row.append(None)
                    continue
                key = date_key(day)
                row.append(DayCell(
                    date=key,
                    day=day.day,
                    slot_count=len(self.slots_for(key)),
                    bookings=bookings_for_date(key, self.snapshot.bookings),
                    has_override=find_override(key, self.snapshot.special_schedules) is not None,
                    is_past=is_past(key, today),
                ))
            weeks.append(row)

        return weeks

    # Bookings

    def book(self, date: DateLike, time_slot: str, band_name: str) -> Booking:
        """
        Reserve ``time_slot`` on ``date``.

        Raises:
            BookingRejected: If the slot is not offered that day, is taken,
                or the band name is blank
        """
        key = date_key(date)
        if time_slot not in self.slots_for(key):
            raise BookingRejected(f"{time_slot} is not offered on {key}.")

        bookings = mutations.add_booking(self.snapshot.bookings, key, time_slot, band_name)
        self._commit(self.snapshot.replace(bookings=bookings))

        booking = bookings[-1]
        logger.info("Booked %s %s for %s", booking.date, booking.time_slot, booking.band_name)
        return booking

    def cancel(self, booking_id: str) -> Optional[Booking]:
        """
        Remove a booking.

        Returns:
            The removed booking, or None if the id was unknown
        """
        removed = next((b for b in self.snapshot.bookings if b.id == booking_id), None)
        bookings = mutations.remove_booking(self.snapshot.bookings, booking_id)
        self._commit(self.snapshot.replace(bookings=bookings))
        return removed

    # Weekly rules

    def add_rule_slot(self, day_of_week: int, label: str) -> Snapshot:
        rules = mutations.add_rule_slot(self.snapshot.rules, day_of_week, label)
        return self._commit(self.snapshot.replace(rules=rules))

    def remove_rule_slot(self, day_of_week: int, label: str) -> Snapshot:
        rules = mutations.remove_rule_slot(self.snapshot.rules, day_of_week, label)
        return self._commit(self.snapshot.replace(rules=rules))

    # Per-date overrides

    def add_override_slot(self, date: DateLike, label: str) -> Snapshot:
        specials = mutations.add_override_slot(
            self.snapshot.special_schedules, self.snapshot.rules, date, label
        )
        return self._commit(self.snapshot.replace(special_schedules=specials))

    def remove_override_slot(self, date: DateLike, label: str) -> Snapshot:
        specials = mutations.remove_override_slot(
            self.snapshot.special_schedules, self.snapshot.rules, date, label
        )
        return self._commit(self.snapshot.replace(special_schedules=specials))

    def reset_override(self, date: DateLike) -> Snapshot:
        """Return ``date`` to the weekly default. Ask the user before calling this."""
        specials = mutations.reset_override(self.snapshot.special_schedules, date)
        return self._commit(self.snapshot.replace(special_schedules=specials))

    def wipe_all(self) -> Snapshot:
        """Throw away every booking and override and restore the default rules."""
        logger.info("Wiping all data")
        return self._commit(mutations.wipe_all(self._default_rules))
