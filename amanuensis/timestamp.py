"""Separa o prefixo de data/hora das linhas de log."""

import re
from datetime import datetime

DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# M/D/YY H:MM:SSa mensagem
_RE_TIMESTAMP = re.compile(
    r"^(?P<month>\d{1,2})/(?P<day>\d{1,2})/(?P<year>\d{2}) "
    r"(?P<hour>\d{1,2}):(?P<minute>\d{2}):(?P<second>\d{2})(?P<ampm>[ap]) "
)


def parse_timestamp(line: str) -> tuple[datetime | None, str]:
    """Retorna (datetime, mensagem). Sem timestamp valido, a linha inteira e a mensagem."""
    if not (found := _RE_TIMESTAMP.match(line)):
        return None, line

    hour = int(found["hour"])
    if hour > 12:
        return None, line
    match found["ampm"]:
        case "a":
            hour = 0 if hour == 12 else hour
        case "p":
            hour = hour if hour == 12 else hour + 12

    try:
        dt = datetime(
            2000 + int(found["year"]),
            int(found["month"]),
            int(found["day"]),
            hour,
            int(found["minute"]),
            int(found["second"]),
        )
    except ValueError:
        return None, line
    return dt, line[found.end():]


def format_timestamp(dt: datetime | None) -> str:
    return dt.strftime(DATE_FORMAT) if dt is not None else ""
