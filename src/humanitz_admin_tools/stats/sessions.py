"""
Playtime reconstruction for HumanitZ.

Two ways to get playtime:

* from PlayerConnectedLog.txt, pairing Connected/Disconnected lines into sessions
* when that file is missing, by clustering build/loot/raid activity from
  HMZLog.log into estimated sessions (30 minute gap, 15 minutes padding each)

Neither mode computes concurrent-player peaks; the previous ``peaks`` block of
playtime.json is carried over as it was.
"""

import copy
import logging
import re
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

from ..log.line_parser import TIMESTAMP_GROUPS, clean_line, from_iso, timestamp_from_match, to_iso

logger = logging.getLogger(__name__)

SESSION_GAP = timedelta(minutes=30)
SESSION_PADDING = timedelta(minutes=15)

ACTION_CONNECTED = 'Connected'
ACTION_DISCONNECTED = 'Disconnected'

CONNECT_LINE_PATTERN = re.compile(
    r'^Player (?P<action>Connected|Disconnected)\s+(?P<name>.+?)\s+NetID\((?P<steam_id>\d{17})[^)]*\)\s*'
    rf'\({TIMESTAMP_GROUPS}\)'
)


def _ms(delta: timedelta) -> int:
    return int(delta.total_seconds() * 1000)


@dataclass(frozen=True)
class SessionEvent:
    """One line of the connect log."""
    action: str
    name: str
    steam_id: str
    timestamp: datetime


@dataclass(frozen=True)
class Session:
    """A closed play session; end is always after start."""
    start: datetime
    end: datetime

    def __post_init__(self):
        if self.end <= self.start:
            raise ValueError(f"Session must end after it starts ({self.start} - {self.end})")

    @property
    def duration_ms(self) -> int:
        return _ms(self.end - self.start)


@dataclass(frozen=True)
class ActivityWindow:
    """An estimated session: first to last observed action, plus padding."""
    start: datetime
    end: datetime
    padding: timedelta = SESSION_PADDING

    @property
    def duration_ms(self) -> int:
        return _ms(self.end - self.start + self.padding)


@dataclass
class ConnectCounts:
    connects: int = 0
    disconnects: int = 0


@dataclass
class PlaytimeRecord:
    """Derived playtime for one Steam ID."""
    name: str
    total_ms: int = 0
    sessions: int = 0
    first_seen: Optional[datetime] = None
    last_login: Optional[datetime] = None
    last_seen: Optional[datetime] = None
    intervals: List[Union[Session, ActivityWindow]] = None

    def __post_init__(self):
        if self.intervals is None:
            self.intervals = []

    @classmethod
    def from_sessions(cls, name: str, sessions: Sequence[Session]) -> 'PlaytimeRecord':
        record = cls(name.strip(), intervals=list(sessions))
        record.total_ms = sum(session.duration_ms for session in sessions)
        record.sessions = len(sessions)
        if sessions:
            record.first_seen = min(session.start for session in sessions)
            record.last_seen = max(session.end for session in sessions)
            record.last_login = sessions[-1].start
        return record

    def to_dict(self) -> Dict[str, Any]:
        return {
            'name': self.name,
            'totalMs': self.total_ms,
            'sessions': self.sessions,
            'firstSeen': to_iso(self.first_seen),
            'lastLogin': to_iso(self.last_login),
            'lastSeen': to_iso(self.last_seen),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any], default_name: str = '') -> 'PlaytimeRecord':
        return cls(
            name=str(data.get('name') or default_name),
            total_ms=int(data.get('totalMs') or 0),
            sessions=int(data.get('sessions') or 0),
            first_seen=from_iso(data.get('firstSeen')),
            last_login=from_iso(data.get('lastLogin')),
            last_seen=from_iso(data.get('lastSeen')),
        )


@dataclass
class PlaytimeResult:
    """Output of one reconstruction: the playtime.json document plus connect counters."""
    tracking_since: datetime
    players: Dict[str, PlaytimeRecord] = field(default_factory=dict)
    peaks: Dict[str, Any] = field(default_factory=dict)
    connect_counts: Dict[str, ConnectCounts] = field(default_factory=dict)
    event_count: int = 0
    estimated: bool = False

    @property
    def total_ms(self) -> int:
        return sum(record.total_ms for record in self.players.values())

    def to_dict(self) -> Dict[str, Any]:
        return {
            'trackingSince': to_iso(self.tracking_since),
            'players': {steam_id: record.to_dict() for steam_id, record in self.players.items()},
            'peaks': self.peaks,
        }


def default_peaks(now: datetime) -> Dict[str, Any]:
    """Empty peaks block, used when no playtime.json has been written before."""
    return {
        'allTimePeak': 0,
        'allTimePeakDate': None,
        'todayPeak': 0,
        'todayDate': now.astimezone(timezone.utc).strftime('%Y-%m-%d'),
        'uniqueToday': [],
    }


def parse_connect_log(content: Optional[str]) -> List[SessionEvent]:
    """Parse PlayerConnectedLog.txt into events, in file order. Unrecognised lines are skipped."""
    events = []
    if not content:
        return events

    for raw_line in content.splitlines():
        line = clean_line(raw_line)
        if not line:
            continue
        match = CONNECT_LINE_PATTERN.match(line)
        if not match:
            continue
        try:
            timestamp = timestamp_from_match(match)
        except ValueError:
            logger.debug(f"Invalid timestamp in connect log line: {line[:80]}")
            continue
        events.append(SessionEvent(match.group('action'), match.group('name').strip(),
                                   match.group('steam_id'), timestamp))

    return events


def cluster_activity(timestamps: Sequence[datetime], gap: timedelta = SESSION_GAP) -> List[Tuple[datetime, datetime]]:
    """
    Group timestamps into (first, last) clusters.

    Consecutive timestamps at most ``gap`` apart share a cluster; a larger gap
    starts a new one. Input order does not matter.
    """
    ordered = sorted(timestamps)
    if not ordered:
        return []

    clusters = []
    start = end = ordered[0]
    for timestamp in ordered[1:]:
        if timestamp - end > gap:
            clusters.append((start, end))
            start = timestamp
        end = timestamp
    clusters.append((start, end))
    return clusters


class SessionReconstructor:
    """
    Builds PlaytimeResult objects.

    Args:
        previous_peaks: ``peaks`` block of the last written playtime.json, if any
        now: Wall-clock instant used when the input has no events at all
    """

    def __init__(self, previous_peaks: Optional[Dict[str, Any]] = None, now: Optional[datetime] = None):
        self.now = now or datetime.now(timezone.utc)
        self.previous_peaks = previous_peaks

    def _peaks(self) -> Dict[str, Any]:
        if self.previous_peaks:
            return copy.deepcopy(self.previous_peaks)
        return default_peaks(self.now)

    def from_connect_log(self, content: Optional[str]) -> PlaytimeResult:
        return self.reconstruct(parse_connect_log(content))

    def reconstruct(self, events: Sequence[SessionEvent]) -> PlaytimeResult:
        """
        Pair connect/disconnect events into sessions.

        A Connected opens a session for its Steam ID, replacing one that is still
        open. A Disconnected closes the open session, if there is one. Sessions
        still open when the feed ends are closed at the instant of the last event
        in the feed. Non-positive durations are dropped.
        """
        names: Dict[str, str] = {}
        sessions: Dict[str, List[Session]] = {}
        open_starts: Dict[str, datetime] = {}
        counts: Dict[str, ConnectCounts] = {}

        for event in events:
            names[event.steam_id] = event.name
            sessions.setdefault(event.steam_id, [])
            player_counts = counts.setdefault(event.steam_id, ConnectCounts())

            if event.action == ACTION_CONNECTED:
                open_starts[event.steam_id] = event.timestamp
                player_counts.connects += 1
                continue

            player_counts.disconnects += 1
            start = open_starts.pop(event.steam_id, None)
            if start is None:
                logger.debug(f"Disconnect without open session for {event.name} ({event.steam_id})")
            elif event.timestamp > start:
                sessions[event.steam_id].append(Session(start, event.timestamp))

        if events:
            last_instant = events[-1].timestamp
            for steam_id, start in open_starts.items():
                if last_instant > start:
                    sessions[steam_id].append(Session(start, last_instant))

        result = PlaytimeResult(
            tracking_since=min((event.timestamp for event in events), default=self.now),
            peaks=self._peaks(),
            connect_counts=counts,
            event_count=len(events),
        )
        for steam_id, player_sessions in sessions.items():
            result.players[steam_id] = PlaytimeRecord.from_sessions(names[steam_id], player_sessions)

        logger.info(f"Reconstructed playtime for {len(result.players)} player(s) from {len(events)} connect event(s)")
        return result

    def estimate(self, activity: Dict[str, Any], gap: timedelta = SESSION_GAP) -> PlaytimeResult:
        """
        Estimate playtime from activity timestamps.

        Args:
            activity: Steam ID -> object with ``name`` and ``timestamps``
                (see PlayerStatsAggregator.activity)
            gap: Largest gap between two actions of the same session

        Returns:
            A PlaytimeResult flagged as estimated, with no connect counts.
        """
        result = PlaytimeResult(tracking_since=self.now, peaks=self._peaks(), estimated=True)
        earliest = None

        for steam_id, trail in activity.items():
            timestamps = sorted(trail.timestamps)
            if not timestamps:
                continue
            if earliest is None or timestamps[0] < earliest:
                earliest = timestamps[0]

            windows = [ActivityWindow(start, end) for start, end in cluster_activity(timestamps, gap)]
            result.players[steam_id] = PlaytimeRecord(
                name=trail.name.strip(),
                total_ms=sum(window.duration_ms for window in windows),
                sessions=len(windows),
                first_seen=timestamps[0],
                last_login=timestamps[-1],
                last_seen=timestamps[-1],
                intervals=windows,
            )

        if earliest is not None:
            result.tracking_since = earliest

        logger.info(f"Estimated playtime for {len(result.players)} player(s) from log activity")
        return result
