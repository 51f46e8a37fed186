"""Report service - monthly and annual booking summaries for the admin"""

import csv
import logging
import re
from io import StringIO
from typing import Dict, Iterable, List, Optional

from fastapi.responses import StreamingResponse
from sqlalchemy.orm import Session

from lash_studio.core.booking_policy import BookingPolicy, get_booking_policy
from lash_studio.core.exceptions import ValidationError
from lash_studio.models.models import Appointment

logger = logging.getLogger(__name__)

MONTH_RE = re.compile(r"^\d{4}-(0[1-9]|1[0-2])$")
YEAR_RE = re.compile(r"^\d{4}$")


def _rate(part: int, whole: int) -> float:
    return round(part * 100 / whole, 1) if whole else 0.0


def summarize(appointments: Iterable[Appointment]) -> dict:
    """Counts, revenue (cents) and attendance for a group of appointments"""
    appointments = list(appointments)
    total = len(appointments)
    no_shows = sum(1 for a in appointments if a.client_showed_up is False)
    showed_up = sum(1 for a in appointments if a.client_showed_up is True)
    first_time = sum(1 for a in appointments if a.is_first_time)
    return {
        "appointments": total,
        "revenue": sum(a.service_price or 0 for a in appointments),
        "no_shows": no_shows,
        "showed_up": showed_up,
        "no_show_rate": _rate(no_shows, total),
        "show_up_rate": _rate(showed_up, total),
        "first_time": first_time,
        "returning": total - first_time,
    }


class ReportService:
    """Read-only aggregation over appointments"""

    def __init__(self, db: Session, policy: Optional[BookingPolicy] = None):
        self.db = db
        self.policy = policy or get_booking_policy()

    def _appointments_with_prefix(self, prefix: str) -> List[Appointment]:
        return self.db.query(Appointment).filter(
            Appointment.date.like(f"{prefix}-%")
        ).order_by(Appointment.date, Appointment.time, Appointment.id).all()

    def monthly(self, month: str) -> dict:
        """Per-location and overall metrics for a YYYY-MM month"""
        if not month or not MONTH_RE.match(month):
            raise ValidationError({"month": "Invalid month format. Use YYYY-MM"}, "Invalid report parameters")
        appointments = self._appointments_with_prefix(month)

        locations: Dict[str, dict] = {}
        for location in self.policy.locations:
            locations[location] = summarize(a for a in appointments if a.location == location)
        for location in sorted({a.location for a in appointments} - set(locations)):
            locations[location] = summarize(a for a in appointments if a.location == location)

        return {"month": month, "locations": locations, "total": summarize(appointments)}

    def annual(self, year: str) -> dict:
        if not year or not YEAR_RE.match(year):
            raise ValidationError({"year": "Invalid year format. Use YYYY"}, "Invalid report parameters")
        months = [self.monthly(f"{year}-{m:02d}") for m in range(1, 13)]
        return {
            "year": year,
            "months": months,
            "total": summarize(self._appointments_with_prefix(year)),
        }

    def monthly_csv(self, month: str) -> StreamingResponse:
        """Export one month's appointments as CSV"""
        if not month or not MONTH_RE.match(month):
            raise ValidationError({"month": "Invalid month format. Use YYYY-MM"}, "Invalid report parameters")
        appointments = self._appointments_with_prefix(month)

        output = StringIO()
        writer = csv.writer(output)
        writer.writerow([
            "ID",
            "Date",
            "Time",
            "Location",
            "Services",
            "Price",
            "Client Name",
            "Phone",
            "Email",
            "First Time",
            "Showed Up",
            "Deposit Paid",
            "Notes",
        ])
        for a in appointments:
            writer.writerow([
                a.id,
                a.date,
                a.time,
                a.location,
                a.service_name,
                f"{a.service_price / 100:.2f}",
                a.client_name,
                a.client_phone,
                a.client_email,
                "yes" if a.is_first_time else "no",
                "" if a.client_showed_up is None else ("yes" if a.client_showed_up else "no"),
                "yes" if a.deposit_paid else "no",
                a.notes or "",
            ])

        output.seek(0)
        filename = f"appointments_{month}.csv"
        logger.info(f"CSV export: {filename} ({len(appointments)} appointments)")
        return StreamingResponse(
            iter([output.getvalue()]),
            media_type="text/csv",
            headers={
                "Content-Disposition": f"attachment; filename={filename}",
                "Cache-Control": "no-cache",
            },
        )
