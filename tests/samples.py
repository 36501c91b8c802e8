"""Sample feed content shared by tests."""


def calendar(*vevents: str) -> str:
    """Wrap VEVENT blocks in a calendar."""
    lines = ["BEGIN:VCALENDAR", "VERSION:2.0", "PRODID:-//Test//EN"]
    for vevent in vevents:
        lines.append("BEGIN:VEVENT")
        lines.extend(line.strip() for line in vevent.strip().splitlines())
        lines.append("END:VEVENT")
    lines.append("END:VCALENDAR")
    return "\r\n".join(lines) + "\r\n"


CONTRA_VEVENT = r"""
UID:1@cdss.org
URL:https://cdss.org/event/tuesday-contra/
SUMMARY:Tuesday Contra with Supertrad
DESCRIPTION:Caller: Lisa Greenleaf<br>Music by Supertrad &amp; friends
LOCATION:Scout Hall\, 123 Main St\, Jamaica Plain\, MA\, 02130\, United States
CATEGORIES:Contra Dance,Live Music
ORGANIZER;CN="Tuesday Dance Society":mailto:info@example.com
DTSTART;TZID=America/New_York:20240618T190000
DTEND;TZID=America/New_York:20240618T220000
"""
