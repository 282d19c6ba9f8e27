"""
HumanitZ log line parser.

Every HMZLog.log line carries the same envelope::

    (5/6/2024 14:30) <event body>

Day, month, hour and minute are not zero padded. Server locale is ignored: the
instant is always read as UTC.
"""

import logging
import re
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Iterator, Optional

logger = logging.getLogger(__name__)

BYTE_ORDER_MARK = '\ufeff'

# Shared by the event log envelope and the connect log trailer
TIMESTAMP_GROUPS = r'(?P<day>\d{1,2})/(?P<month>\d{1,2})/(?P<year>\d{4})\s+(?P<hour>\d{1,2}):(?P<minute>\d{1,2})'

LINE_PATTERN = re.compile(rf'^\({TIMESTAMP_GROUPS}\)\s+(?P<body>.+)$')


@dataclass(frozen=True)
class LogLine:
    """A log line that matched the envelope."""
    timestamp: datetime
    body: str


def clean_line(raw_line: str) -> str:
    """Strip a leading byte-order mark and surrounding whitespace."""
    if raw_line.startswith(BYTE_ORDER_MARK):
        raw_line = raw_line[1:]
    return raw_line.strip()


def timestamp_from_match(match) -> datetime:
    """
    Build a UTC datetime from a match carrying the TIMESTAMP_GROUPS named groups.

    Raises:
        ValueError: If the fields do not form a valid calendar date or time.
    """
    return datetime(
        int(match.group('year')),
        int(match.group('month')),
        int(match.group('day')),
        int(match.group('hour')),
        int(match.group('minute')),
        tzinfo=timezone.utc,
    )


def parse_line(raw_line: str) -> Optional[LogLine]:
    """
    Parse one raw log line.

    Args:
        raw_line: Line as read from the log, possibly with BOM and line ending

    Returns:
        LogLine with the UTC instant and the event body, or None when the line
        does not match the envelope (the caller counts it as skipped).
    """
    line = clean_line(raw_line)
    match = LINE_PATTERN.match(line)
    if not match:
        return None

    try:
        timestamp = timestamp_from_match(match)
    except ValueError as e:
        logger.debug(f"Invalid timestamp in line '{line[:80]}': {e}")
        return None

    return LogLine(timestamp=timestamp, body=match.group('body'))


def iter_raw_lines(content: str) -> Iterator[str]:
    """Yield the non-blank lines of a log buffer."""
    for raw_line in content.split('\n'):
        if clean_line(raw_line):
            yield raw_line


def to_iso(timestamp: Optional[datetime]) -> Optional[str]:
    """
    Format an instant the way the persisted JSON stores it.

    >>> to_iso(datetime(2024, 6, 5, 14, 30, tzinfo=timezone.utc))
    '2024-06-05T14:30:00.000Z'
    """
    if timestamp is None:
        return None
    if timestamp.tzinfo is not None:
        timestamp = timestamp.astimezone(timezone.utc)
    return timestamp.strftime('%Y-%m-%dT%H:%M:%S.') + f"{timestamp.microsecond // 1000:03d}Z"


def from_iso(value: Optional[str]) -> Optional[datetime]:
    """Parse an ISO instant written by to_iso (or any ISO 8601 string with a Z suffix)."""
    if not value:
        return None
    try:
        return datetime.fromisoformat(value.replace('Z', '+00:00'))
    except ValueError:
        logger.debug(f"Unparseable instant: {value}")
        return None
