"""
Booking policy data.

All studio-specific rules (which bookings need a deposit, how far ahead a
client must book, which hours batch generation skips) are read from
settings once and exposed through ``BookingPolicy``. Nothing else in the
codebase compares category or location strings directly.
"""
from dataclasses import dataclass, field
from datetime import time, timedelta
from typing import Iterable, List, Optional
from zoneinfo import ZoneInfo

from lash_studio.core.config import settings


def normalize(value: Optional[str]) -> str:
    """Case- and whitespace-insensitive key for categories and locations"""
    return (value or "").strip().lower()


def parse_hhmm(value: str) -> time:
    hours, minutes = value.split(":")
    return time(int(hours), int(minutes))


@dataclass(frozen=True)
class BookingPolicy:
    locations: List[str]
    deposit_categories: List[str]
    deposit_locations: List[str]
    deposit_amount: int
    currency: str = "BRL"
    timezone: str = "America/Bahia"
    lead_time_hours: int = 24
    past_slot_grace_minutes: int = 10
    slot_interval_minutes: int = 60
    lunch_break_start: str = "12:00"
    lunch_break_end: str = "13:59"
    max_services: int = 3
    category_order: List[str] = field(default_factory=list)
    cancellation_contact_url: str = ""

    @classmethod
    def from_settings(cls, config=settings) -> "BookingPolicy":
        return cls(
            locations=list(config.LOCATIONS),
            deposit_categories=list(config.DEPOSIT_CATEGORIES),
            deposit_locations=list(config.DEPOSIT_LOCATIONS),
            deposit_amount=config.DEPOSIT_AMOUNT,
            currency=config.CURRENCY,
            timezone=config.TIMEZONE,
            lead_time_hours=config.BOOKING_LEAD_TIME_HOURS,
            past_slot_grace_minutes=config.PAST_SLOT_GRACE_MINUTES,
            slot_interval_minutes=config.SLOT_INTERVAL_MINUTES,
            lunch_break_start=config.LUNCH_BREAK_START,
            lunch_break_end=config.LUNCH_BREAK_END,
            max_services=config.MAX_SERVICES_PER_BOOKING,
            category_order=list(config.CATEGORY_ORDER),
            cancellation_contact_url=config.CANCELLATION_CONTACT_URL,
        )

    # ==================== LOCATIONS ====================

    def resolve_location(self, location: Optional[str]) -> Optional[str]:
        """Return the configured spelling of a location, or None if unknown"""
        key = normalize(location)
        for known in self.locations:
            if normalize(known) == key:
                return known
        return None

    # ==================== DEPOSIT ====================

    def requires_deposit(self, categories: Iterable[str], location: Optional[str]) -> bool:
        """A deposit is due iff any category is a deposit category and the location is a deposit location"""
        if normalize(location) not in {normalize(loc) for loc in self.deposit_locations}:
            return False
        deposit_categories = {normalize(c) for c in self.deposit_categories}
        return any(normalize(category) in deposit_categories for category in categories)

    def remaining_balance(self, total_price: int) -> int:
        """Amount collected in person after the deposit"""
        return max(total_price - self.deposit_amount, 0)

    def blocks_cancellation(self, appointment) -> bool:
        """Deposit-paying bookings are only cancelled out of band"""
        categories = (appointment.service_categories or "").split(",")
        return self.requires_deposit(categories, appointment.location)

    # ==================== TIME ====================

    @property
    def tz(self) -> ZoneInfo:
        return ZoneInfo(self.timezone)

    @property
    def lead_time(self) -> timedelta:
        return timedelta(hours=self.lead_time_hours)

    @property
    def past_slot_grace(self) -> timedelta:
        return timedelta(minutes=self.past_slot_grace_minutes)

    @property
    def lunch_break(self):
        return parse_hhmm(self.lunch_break_start), parse_hhmm(self.lunch_break_end)

    # ==================== CATALOG ====================

    def category_rank(self, category: str) -> tuple:
        """Sort key: preferred categories in configured order, then the rest alphabetically"""
        order = [normalize(c) for c in self.category_order]
        key = normalize(category)
        if key in order:
            return (0, order.index(key), "")
        return (1, 0, key)


def get_booking_policy() -> BookingPolicy:
    return BookingPolicy.from_settings(settings)
