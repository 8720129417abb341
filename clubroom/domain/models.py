"""
Domain models for bookings, weekly availability rules and per-date overrides.

All records are immutable; collections are tuples so that every change
produces a new snapshot and older snapshots stay comparable.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from .exceptions import RemoteStoreError


WEEKDAY_NAMES = ("Sun", "Mon", "Tue", "Wed", "Thu", "Fri", "Sat")

TIME_OPTIONS = (
    "15:00-16:00",
    "16:00-17:00",
    "17:00-18:00",
    "18:00-19:00",
)


class Role(str, Enum):
    """Who is using the client. Decides which actions are offered, nothing more."""
    MEMBER = "member"
    ADVISOR = "advisor"

    def toggled(self) -> "Role":
        return Role.ADVISOR if self is Role.MEMBER else Role.MEMBER


@dataclass(frozen=True)
class Booking:
    """
    A band's reservation of one time slot on one date.

    Invariant: at most one booking exists per (date, time_slot).
    """
    id: str
    date: str  # YYYY-MM-DD
    time_slot: str  # e.g. "16:00-17:00"
    band_name: str
    created_at: int  # epoch milliseconds

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "date": self.date,
            "timeSlot": self.time_slot,
            "bandName": self.band_name,
            "createdAt": self.created_at,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Booking":
        return cls(
            id=str(data["id"]),
            date=str(data["date"]),
            time_slot=str(data["timeSlot"]),
            band_name=str(data["bandName"]),
            created_at=int(data.get("createdAt", 0)),
        )


@dataclass(frozen=True)
class AvailabilityRule:
    """Default slots offered on every date falling on ``day_of_week``."""
    day_of_week: int  # 0=Sunday, 6=Saturday
    slots: Tuple[str, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return {"dayOfWeek": self.day_of_week, "slots": list(self.slots)}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AvailabilityRule":
        return cls(
            day_of_week=int(data["dayOfWeek"]),
            slots=tuple(str(s) for s in data.get("slots", [])),
        )


@dataclass(frozen=True)
class SpecialSchedule:
    """
    Per-date replacement of the weekly rule.

    Once created, the slots are a snapshot: later edits to the weekly rule
    do not reach this date until the override is reset.
    """
    date: str  # YYYY-MM-DD
    slots: Tuple[str, ...] = ()
    is_disabled: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "date": self.date,
            "slots": list(self.slots),
            "isDisabled": self.is_disabled,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SpecialSchedule":
        return cls(
            date=str(data["date"]),
            slots=tuple(str(s) for s in data.get("slots", [])),
            is_disabled=bool(data.get("isDisabled", False)),
        )


DEFAULT_RULES: Tuple[AvailabilityRule, ...] = (
    AvailabilityRule(day_of_week=1, slots=("16:00-17:00", "17:00-18:00")),
    AvailabilityRule(day_of_week=2, slots=("16:00-17:00", "17:00-18:00")),
    AvailabilityRule(day_of_week=4, slots=("16:00-17:00", "17:00-18:00")),
    AvailabilityRule(day_of_week=5, slots=("17:00-18:00",)),
)


@dataclass(frozen=True)
class Snapshot:
    """
    The complete dataset as stored remotely: every push sends one of these.
    """
    bookings: Tuple[Booking, ...] = ()
    rules: Tuple[AvailabilityRule, ...] = DEFAULT_RULES
    special_schedules: Tuple[SpecialSchedule, ...] = ()

    def replace(self, **changes: Any) -> "Snapshot":
        """Return a copy with some collections swapped out."""
        values = {
            "bookings": self.bookings,
            "rules": self.rules,
            "special_schedules": self.special_schedules,
        }
        values.update(changes)
        return Snapshot(**values)

    def to_document(self) -> Dict[str, List[Dict[str, Any]]]:
        """Serialize to the JSON document exchanged with the remote store."""
        return {
            "bookings": [b.to_dict() for b in self.bookings],
            "rules": [r.to_dict() for r in self.rules],
            "specialSchedules": [s.to_dict() for s in self.special_schedules],
        }

    @classmethod
    def from_document(
        cls,
        document: Dict[str, Any],
        base: Optional["Snapshot"] = None
    ) -> "Snapshot":
        """
        Parse a remote document.

        Args:
            document: Decoded JSON with optional ``bookings``, ``rules`` and
                ``specialSchedules`` lists
            base: Where collections missing from the document come from.
                Without a base they are empty. An empty list in the document
                is not missing.

        Returns:
            Snapshot instance

        Raises:
            RemoteStoreError: If the document or one of its records is malformed
        """
        if not isinstance(document, dict):
            raise RemoteStoreError("Remote document must be a JSON object.")

        if base is None:
            base = cls(rules=())

        try:
            bookings = base.bookings
            if document.get("bookings") is not None:
                bookings = tuple(Booking.from_dict(b) for b in document["bookings"])

            rules = base.rules
            if document.get("rules") is not None:
                rules = tuple(AvailabilityRule.from_dict(r) for r in document["rules"])

            specials = base.special_schedules
            if document.get("specialSchedules") is not None:
                specials = tuple(
                    SpecialSchedule.from_dict(s) for s in document["specialSchedules"]
                )
        except (KeyError, TypeError, ValueError, AttributeError) as exc:
            raise RemoteStoreError(f"Malformed record in remote document: {exc}") from exc

        return cls(bookings=bookings, rules=rules, special_schedules=specials)


@dataclass
class AppState:
    """
    Everything the presentation layer reads: the current dataset plus UI flags.
    """
    snapshot: Snapshot = field(default_factory=Snapshot)
    role: Role = Role.MEMBER
    is_loading: bool = False
