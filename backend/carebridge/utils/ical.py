"""iCalendar invites and "add to Google Calendar" links for appointments."""

from datetime import datetime
from typing import Optional
from urllib.parse import urlencode

from carebridge.utils.dates import local_to_utc, utc_now

_ICAL_FORMAT = "%Y%m%dT%H%M%SZ"


def _escape(value: str) -> str:
    return (
        value.replace("\\", "\\\\")
        .replace(";", "\\;")
        .replace(",", "\\,")
        .replace("\r\n", "\\n")
        .replace("\n", "\\n")
    )


def generate_ical_invite(
    uid: str,
    title: str,
    start_time: datetime,
    end_time: datetime,
    time_zone: str,
    description: Optional[str] = None,
    location: Optional[str] = None,
    organizer_email_address: Optional[str] = None,
) -> str:
    """
    Build a single-event VCALENDAR document.

    ``start_time`` and ``end_time`` are wall-clock times in ``time_zone``;
    they are written as UTC.
    """
    lines = [
        "BEGIN:VCALENDAR",
        "VERSION:2.0",
        "PRODID:-//CareBridge//Appointments//EN",
        "CALSCALE:GREGORIAN",
        "METHOD:REQUEST",
        "BEGIN:VEVENT",
        f"UID:{uid}",
        f"DTSTAMP:{utc_now().strftime(_ICAL_FORMAT)}",
        f"DTSTART:{local_to_utc(start_time, time_zone).strftime(_ICAL_FORMAT)}",
        f"DTEND:{local_to_utc(end_time, time_zone).strftime(_ICAL_FORMAT)}",
        f"SUMMARY:{_escape(title)}",
    ]
    if description:
        lines.append(f"DESCRIPTION:{_escape(description)}")
    if location:
        lines.append(f"LOCATION:{_escape(location)}")
    if organizer_email_address:
        lines.append(f"ORGANIZER:mailto:{organizer_email_address}")
    lines.extend(["END:VEVENT", "END:VCALENDAR"])
    return "\r\n".join(lines) + "\r\n"


def generate_google_calendar_url(
    title: str,
    start_time: datetime,
    end_time: datetime,
    time_zone: str,
    description: Optional[str] = None,
    location: Optional[str] = None,
) -> str:
    dates = (
        f"{local_to_utc(start_time, time_zone).strftime(_ICAL_FORMAT)}/"
        f"{local_to_utc(end_time, time_zone).strftime(_ICAL_FORMAT)}"
    )
    params = {"action": "TEMPLATE", "text": title, "dates": dates, "ctz": time_zone}
    if description:
        params["details"] = description
    if location:
        params["location"] = location
    return f"https://calendar.google.com/calendar/render?{urlencode(params)}"
