"""Summaries of text/calendar parts."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date

from icalendar import Calendar


@dataclass
class EventSummary:
    summary: str | None
    start: date | None
    end: date | None
    timezone: str | None
    location: str | None
    organizer: str | None
    attendees: list[str]


def parse_events(data: bytes) -> list[EventSummary]:
    cal = Calendar.from_ical(data)
    events = []
    for component in cal.walk("VEVENT"):
        start = component.get("dtstart")
        end = component.get("dtend")
        attendees = component.get("attendee") or []
        if not isinstance(attendees, list):
            attendees = [attendees]
        events.append(
            EventSummary(
                summary=_text(component.get("summary")),
                start=start.dt if start else None,
                end=end.dt if end else None,
                timezone=_timezone(start.dt if start else None),
                location=_text(component.get("location")),
                organizer=_address(component.get("organizer")),
                attendees=[_address(item) for item in attendees],
            )
        )
    return events


def format_events(events: list[EventSummary]) -> str:
    blocks = []
    for event in events:
        lines = [f"Event: {event.summary or '(no title)'}"]
        if event.start:
            lines.append(f"Start: {event.start.isoformat()}")
        if event.end:
            lines.append(f"End: {event.end.isoformat()}")
        if event.timezone:
            lines.append(f"Timezone: {event.timezone}")
        if event.location:
            lines.append(f"Location: {event.location}")
        if event.organizer:
            lines.append(f"Organizer: {event.organizer}")
        if event.attendees:
            lines.append("Attendees: " + ", ".join(event.attendees))
        blocks.append("\n".join(lines))
    return "\n\n".join(blocks)


def _timezone(value) -> str | None:
    tzinfo = getattr(value, "tzinfo", None)
    return str(tzinfo) if tzinfo else None


def _text(value) -> str | None:
    return str(value) if value else None


def _address(value) -> str | None:
    if not value:
        return None
    text = str(value)
    if text.lower().startswith("mailto:"):
        return text[len("mailto:"):]
    return text
