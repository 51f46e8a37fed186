"""
Slot management utilities.

The admin publishes bookable (date, time, location) slots. Clients only
ever see the open ones, filtered by a minimum lead time; booking an
appointment flips its slot to unavailable through a conditional update so
that two concurrent bookings can never both win the same slot.

Dates are stored as ``YYYY-MM-DD`` and times as ``HH:MM`` strings, so
lexicographic order equals chronological order.
"""
import logging
import re
from datetime import date, datetime, time, timedelta
from typing import List, Optional, Tuple

from sqlalchemy import func, or_, and_
from sqlalchemy.orm import Session

from lash_studio.core.booking_policy import BookingPolicy, get_booking_policy, normalize
from lash_studio.core.exceptions import SlotNotFoundError, SlotTakenError, ValidationError
from lash_studio.models.models import Appointment, AvailableSlot

logger = logging.getLogger(__name__)

DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
TIME_RE = re.compile(r"^\d{1,2}:\d{2}$")


# ==================== PARSING ====================

def parse_date(value: Optional[str]) -> Optional[date]:
    """Parse YYYY-MM-DD, returning None for anything else"""
    if not value or not DATE_RE.match(value):
        return None
    try:
        return datetime.strptime(value, "%Y-%m-%d").date()
    except ValueError:
        return None


def parse_time(value: Optional[str]) -> Optional[time]:
    """Parse H:MM or HH:MM, returning None for anything else"""
    if not value or not TIME_RE.match(value):
        return None
    hours, minutes = (int(part) for part in value.split(":"))
    if hours > 23 or minutes > 59:
        return None
    return time(hours, minutes)


def format_time(value: time) -> str:
    return f"{value.hour:02d}:{value.minute:02d}"


def require_date(value: Optional[str], field: str = "date") -> str:
    parsed = parse_date(value)
    if parsed is None:
        raise ValidationError({field: "Invalid date format. Use YYYY-MM-DD"})
    return parsed.isoformat()


def require_time(value: Optional[str], field: str = "time") -> str:
    parsed = parse_time(value)
    if parsed is None:
        raise ValidationError({field: "Invalid time format. Use HH:MM"})
    return format_time(parsed)


def require_location(value: Optional[str], policy: BookingPolicy, field: str = "location") -> str:
    location = policy.resolve_location(value)
    if location is None:
        raise ValidationError({field: f"Location must be one of: {', '.join(policy.locations)}"})
    return location


def local_now(policy: BookingPolicy, now: Optional[datetime] = None) -> datetime:
    """Current wall-clock time at the studio. Naive datetimes are taken as studio-local."""
    if now is None:
        return datetime.now(policy.tz)
    if now.tzinfo is None:
        return now.replace(tzinfo=policy.tz)
    return now.astimezone(policy.tz)


def _location_filter(location: str):
    return func.lower(AvailableSlot.location) == normalize(location)


# ==================== QUERIES ====================

def list_slots(db: Session, slot_date: str, location: Optional[str] = None) -> List[AvailableSlot]:
    """All slots of a date (optionally one location), in time order"""
    query = db.query(AvailableSlot).filter(AvailableSlot.date == slot_date)
    if location:
        query = query.filter(_location_filter(location))
    return query.order_by(AvailableSlot.time, AvailableSlot.id).all()


def list_open_times(
    db: Session,
    slot_date: str,
    location: Optional[str] = None,
    now: Optional[datetime] = None,
    policy: Optional[BookingPolicy] = None,
) -> List[str]:
    """
    Open HH:MM times for a date, sorted ascending, honouring the lead time.

    With cutoff = now + lead time (studio timezone): dates before the
    cutoff's date yield nothing, the cutoff's own date drops times earlier
    than the cutoff's time of day, later dates are not filtered.
    """
    policy = policy or get_booking_policy()
    requested = parse_date(slot_date)
    if requested is None:
        raise ValidationError({"date": "Invalid date format. Use YYYY-MM-DD"})

    cutoff = local_now(policy, now) + policy.lead_time
    if requested < cutoff.date():
        return []

    query = db.query(AvailableSlot.time).filter(
        AvailableSlot.date == requested.isoformat(),
        AvailableSlot.is_available.is_(True),
    )
    if location:
        query = query.filter(_location_filter(location))

    times = sorted({row.time for row in query.all()})
    if requested == cutoff.date():
        cutoff_time = cutoff.time().replace(tzinfo=None)
        times = [t for t in times if parse_time(t) >= cutoff_time]
    return times


def find_slots(db: Session, slot_date: str, slot_time: str, location: str) -> List[AvailableSlot]:
    """Every slot matching (date, time, location); more than one only when the admin created duplicates"""
    return db.query(AvailableSlot).filter(
        AvailableSlot.date == slot_date,
        AvailableSlot.time == slot_time,
        _location_filter(location),
    ).order_by(AvailableSlot.id).all()


def get_slot(db: Session, slot_id: int) -> AvailableSlot:
    slot = db.query(AvailableSlot).filter(AvailableSlot.id == slot_id).first()
    if not slot:
        raise SlotNotFoundError("Slot not found")
    return slot


# ==================== CREATION ====================

def create_slot(
    db: Session,
    slot_date: str,
    slot_time: str,
    location: str,
    is_available: bool = True,
    reject_past: bool = False,
    now: Optional[datetime] = None,
    policy: Optional[BookingPolicy] = None,
    commit: bool = True,
) -> AvailableSlot:
    """Insert a slot. No uniqueness check: avoiding duplicates is up to the caller."""
    policy = policy or get_booking_policy()
    errors = {}
    parsed_date = parse_date(slot_date)
    parsed_time = parse_time(slot_time)
    resolved_location = policy.resolve_location(location)
    if parsed_date is None:
        errors["date"] = "Invalid date format. Use YYYY-MM-DD"
    if parsed_time is None:
        errors["time"] = "Invalid time format. Use HH:MM"
    if resolved_location is None:
        errors["location"] = f"Location must be one of: {', '.join(policy.locations)}"
    if errors:
        raise ValidationError(errors, "Invalid slot data")

    if reject_past:
        slot_moment = datetime.combine(parsed_date, parsed_time, tzinfo=policy.tz)
        if slot_moment < local_now(policy, now):
            raise ValidationError({"time": "Cannot add a time that has already passed"}, "Invalid slot data")

    slot = AvailableSlot(
        date=parsed_date.isoformat(),
        time=format_time(parsed_time),
        location=resolved_location,
        is_available=is_available,
    )
    db.add(slot)
    if commit:
        db.commit()
        db.refresh(slot)
    return slot


def generate_batch_times(
    start: time,
    end: time,
    interval_minutes: int,
    skip_window: Optional[Tuple[time, time]] = None,
) -> List[str]:
    """
    Times from start to end inclusive, one per interval, leaving out any
    time inside skip_window (inclusive on both ends).
    """
    times = []
    current = datetime.combine(date.min, start)
    last = datetime.combine(date.min, end)
    step = timedelta(minutes=interval_minutes)
    while current <= last:
        moment = current.time()
        if not (skip_window and skip_window[0] <= moment <= skip_window[1]):
            times.append(format_time(moment))
        current += step
    return times


def create_slot_batch(
    db: Session,
    slot_date: str,
    start_time: str,
    end_time: str,
    location: str,
    policy: Optional[BookingPolicy] = None,
) -> List[AvailableSlot]:
    """Stamp out one slot per interval between start and end, skipping the lunch break"""
    policy = policy or get_booking_policy()
    errors = {}
    start = parse_time(start_time)
    end = parse_time(end_time)
    if start is None:
        errors["start_time"] = "Invalid time format. Use HH:MM"
    if end is None:
        errors["end_time"] = "Invalid time format. Use HH:MM"
    if start is not None and end is not None and end <= start:
        errors["end_time"] = "End time must be after start time"
    if errors:
        raise ValidationError(errors, "Invalid slot data")

    times = generate_batch_times(start, end, policy.slot_interval_minutes, policy.lunch_break)
    slots = [
        create_slot(db, slot_date, t, location, policy=policy, commit=False)
        for t in times
    ]
    db.commit()
    for slot in slots:
        db.refresh(slot)
    logger.info(f"Created {len(slots)} slots for {slot_date} at {location}")
    return slots


# ==================== AVAILABILITY ====================

def set_availability(db: Session, slot_id: int, is_available: bool) -> AvailableSlot:
    slot = get_slot(db, slot_id)
    slot.is_available = is_available
    db.commit()
    db.refresh(slot)
    return slot


def claim_slot(db: Session, slot_id: int) -> bool:
    """
    Atomically flip a slot from available to unavailable.
    Returns False when another request already took it. Does not commit.
    """
    updated = db.query(AvailableSlot).filter(
        AvailableSlot.id == slot_id,
        AvailableSlot.is_available.is_(True),
    ).update({AvailableSlot.is_available: False}, synchronize_session=False)
    return updated == 1


def reserve_slot(db: Session, slot_date: str, slot_time: str, location: str) -> AvailableSlot:
    """
    Claim the open slot at (date, time, location) inside the caller's transaction.

    Raises SlotNotFoundError when no such slot was ever published and
    SlotTakenError when every matching slot is already taken.
    """
    candidates = find_slots(db, slot_date, slot_time, location)
    if not candidates:
        raise SlotNotFoundError()
    for slot in candidates:
        if claim_slot(db, slot.id):
            db.refresh(slot)
            return slot
    raise SlotTakenError()


def release_slot(db: Session, slot_id: Optional[int]) -> None:
    """Make a consumed slot bookable again. Does not commit."""
    if slot_id is None:
        return
    db.query(AvailableSlot).filter(AvailableSlot.id == slot_id).update(
        {AvailableSlot.is_available: True}, synchronize_session=False
    )


# ==================== DELETION ====================

def _delete_slot_ids(db: Session, slot_ids: List[int]) -> int:
    if not slot_ids:
        return 0
    db.query(Appointment).filter(Appointment.slot_id.in_(slot_ids)).update(
        {Appointment.slot_id: None}, synchronize_session=False
    )
    deleted = db.query(AvailableSlot).filter(AvailableSlot.id.in_(slot_ids)).delete(
        synchronize_session=False
    )
    db.commit()
    db.expire_all()
    return deleted


def delete_slot(db: Session, slot_id: int) -> None:
    get_slot(db, slot_id)
    _delete_slot_ids(db, [slot_id])


def delete_slots_for_date(
    db: Session,
    slot_date: str,
    location: Optional[str] = None,
    only_available: bool = True,
) -> int:
    """Bulk delete a date's slots; booked slots survive unless only_available is False"""
    query = db.query(AvailableSlot.id).filter(AvailableSlot.date == slot_date)
    if location:
        query = query.filter(_location_filter(location))
    if only_available:
        query = query.filter(AvailableSlot.is_available.is_(True))
    deleted = _delete_slot_ids(db, [row.id for row in query.all()])
    logger.info(f"Deleted {deleted} slots for {slot_date} (only_available={only_available})")
    return deleted


def purge_elapsed_slots(
    db: Session,
    now: Optional[datetime] = None,
    policy: Optional[BookingPolicy] = None,
) -> int:
    """Delete every slot whose time is already within the grace period of now"""
    policy = policy or get_booking_policy()
    cutoff = local_now(policy, now) + policy.past_slot_grace
    cutoff_date = cutoff.date().isoformat()
    cutoff_time = format_time(cutoff.time())

    rows = db.query(AvailableSlot.id).filter(
        or_(
            AvailableSlot.date < cutoff_date,
            and_(AvailableSlot.date == cutoff_date, AvailableSlot.time < cutoff_time),
        )
    ).all()
    deleted = _delete_slot_ids(db, [row.id for row in rows])
    if deleted:
        logger.info(f"Purged {deleted} elapsed slots (cutoff {cutoff_date} {cutoff_time})")
    return deleted
