"""
Player stats aggregator.

Feeds every line of an HMZLog.log snapshot through the line parser and the event
classifier, and accumulates the results into one PlayerRecord per Steam ID (or a
ProvisionalRecord per display name when the line carries no Steam ID).

One aggregator is owned by exactly one import run.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Optional

from ..log.event_classifier import (
    EVENT_ADMIN, EVENT_BUILD, EVENT_CHEAT, EVENT_DAMAGE, EVENT_DEATH, EVENT_LOOT, EVENT_RAID,
    NON_PLAYER_ATTACKERS, ClassifiedEvent, classify_body,
)
from ..log.line_parser import iter_raw_lines, parse_line
from .records import PlayerRecord, ProvisionalRecord

logger = logging.getLogger(__name__)


@dataclass
class ParseCounts:
    """Per-kind counters for one log snapshot."""
    deaths: int = 0
    builds: int = 0
    damage: int = 0
    loots: int = 0
    raids: int = 0
    admin: int = 0
    cheat: int = 0
    skipped: int = 0
    unclassified: int = 0
    filtered: int = 0


@dataclass
class ActivityTrail:
    """Timestamps of build, loot and raid actions for one Steam ID."""
    name: str
    timestamps: List[datetime] = field(default_factory=list)


class PlayerStatsAggregator:
    """
    Accumulates classified HMZLog events into player records.

    Attributes:
        players: Steam ID -> PlayerRecord
        provisional: display name -> ProvisionalRecord for name-only actors
        activity: Steam ID -> ActivityTrail, input for playtime estimation
        counts: ParseCounts for the lines seen so far
    """

    def __init__(self):
        self.players: Dict[str, PlayerRecord] = {}
        self.provisional: Dict[str, ProvisionalRecord] = {}
        self.activity: Dict[str, ActivityTrail] = {}
        self.counts = ParseCounts()
        self.total_events = 0
        self.earliest_event: Optional[datetime] = None
        self.latest_event: Optional[datetime] = None

        self._handlers = {
            EVENT_DEATH: self._handle_death,
            EVENT_BUILD: self._handle_build,
            EVENT_DAMAGE: self._handle_damage,
            EVENT_LOOT: self._handle_loot,
            EVENT_RAID: self._handle_raid,
            EVENT_ADMIN: self._handle_admin,
            EVENT_CHEAT: self._handle_cheat,
        }

    def ingest(self, content: str) -> ParseCounts:
        """
        Process a complete log buffer.

        Args:
            content: Text of HMZLog.log (a leading BOM is tolerated)

        Returns:
            The updated ParseCounts.
        """
        for raw_line in iter_raw_lines(content):
            self.ingest_line(raw_line)

        logger.info(f"Parsed {self.total_events} event line(s), {self.counts.skipped} skipped, "
                    f"{len(self.players)} player(s) with Steam ID, {len(self.provisional)} name-only")
        return self.counts

    def ingest_line(self, raw_line: str) -> Optional[ClassifiedEvent]:
        log_line = parse_line(raw_line)
        if log_line is None:
            self.counts.skipped += 1
            return None

        self.total_events += 1
        if self.earliest_event is None or log_line.timestamp < self.earliest_event:
            self.earliest_event = log_line.timestamp
        if self.latest_event is None or log_line.timestamp > self.latest_event:
            self.latest_event = log_line.timestamp

        event = classify_body(log_line.body, log_line.timestamp)
        if event is None:
            self.counts.unclassified += 1
            return None

        self.apply(event)
        return event

    def apply(self, event: ClassifiedEvent) -> None:
        """Attribute one classified event to its player record."""
        self._track_activity(event)
        if event.ignored:
            self.counts.filtered += 1
            return
        self._handlers[event.kind](event)

    def get_or_create(self, steam_id: str, name: str, timestamp: Optional[datetime] = None) -> PlayerRecord:
        """Record for a Steam ID, created if needed; its name becomes the latest one seen."""
        record = self.players.get(steam_id)
        if record is None:
            record = PlayerRecord(name)
            self.players[steam_id] = record
        else:
            record.rename(name, timestamp)
        return record

    def get_or_create_by_name(self, name: str):
        """
        Record for a name-only actor.

        A Steam ID record whose current name matches (case-insensitive) is
        preferred; otherwise the provisional record for that exact name is used.
        """
        lower = name.lower()
        for record in self.players.values():
            if record.name.lower() == lower:
                return record
        if name not in self.provisional:
            self.provisional[name] = ProvisionalRecord(name)
        return self.provisional[name]

    def _track_activity(self, event: ClassifiedEvent) -> None:
        if event.kind not in (EVENT_BUILD, EVENT_LOOT, EVENT_RAID):
            return
        if not event.actor_id or event.actor_name in NON_PLAYER_ATTACKERS:
            return
        trail = self.activity.get(event.actor_id)
        if trail is None:
            trail = ActivityTrail(event.actor_name)
            self.activity[event.actor_id] = trail
        trail.name = event.actor_name
        trail.timestamps.append(event.timestamp)

    def _handle_death(self, event: ClassifiedEvent) -> None:
        record = self.get_or_create_by_name(event.actor_name)
        record.deaths += 1
        record.touch(event.timestamp)
        self.counts.deaths += 1

    def _handle_build(self, event: ClassifiedEvent) -> None:
        record = self.get_or_create(event.actor_id, event.actor_name, event.timestamp)
        record.add_build(event.details['item'])
        record.touch(event.timestamp)
        self.counts.builds += 1

    def _handle_damage(self, event: ClassifiedEvent) -> None:
        record = self.get_or_create_by_name(event.actor_name)
        category = event.details['category']
        record.damage_taken[category] = record.damage_taken.get(category, 0) + 1
        record.touch(event.timestamp)
        self.counts.damage += 1

    def _handle_loot(self, event: ClassifiedEvent) -> None:
        record = self.get_or_create(event.actor_id, event.actor_name, event.timestamp)
        record.containers_looted += 1
        record.touch(event.timestamp)
        self.counts.loots += 1

    def _handle_raid(self, event: ClassifiedEvent) -> None:
        destroyed = event.details.get('destroyed', False)

        if event.actor_id:
            attacker = self.get_or_create(event.actor_id, event.actor_name, event.timestamp)
            attacker.raids_out += 1
            if destroyed:
                attacker.destroyed_out += 1
            attacker.touch(event.timestamp)

        # Owners only get raidsIn once they already have a record from this log
        owner = self.players.get(event.owner_id)
        if owner is not None:
            owner.raids_in += 1
            if destroyed:
                owner.destroyed_in += 1
            owner.touch(event.timestamp)

        self.counts.raids += 1

    def _handle_admin(self, event: ClassifiedEvent) -> None:
        record = self.get_or_create_by_name(event.actor_name)
        record.admin_access += 1
        record.touch(event.timestamp)
        self.counts.admin += 1

    def _handle_cheat(self, event: ClassifiedEvent) -> None:
        record = self.get_or_create(event.actor_id, event.actor_name, event.timestamp)
        record.add_cheat_flag(event.details['type'], event.timestamp)
        record.touch(event.timestamp)
        self.counts.cheat += 1
        logger.warning(f"Anti-cheat flag for {event.actor_name} ({event.actor_id}): {event.details['type']}")
