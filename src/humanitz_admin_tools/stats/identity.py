"""
Identity resolution for HumanitZ players.

Most HumanitZ log lines carry a 17-digit Steam ID next to the player name, but
deaths, admin access and damage lines only carry the display name. This module
ties those names back to Steam IDs using three sources, in order of authority:

1. PlayerIDMapped.txt (``<steam id>_+_|<guid>@<name>`` per line)
2. names already attached to Steam ID records from the current log
3. names from the playtime records

An actor is either Resolved (a Steam ID is known) or Provisional (only a name).
"""

import logging
import re
from dataclasses import dataclass
from datetime import datetime
from typing import Dict, Iterable, Iterator, List, NamedTuple, Optional, Tuple, Union

from ..log.line_parser import clean_line
from .records import PlayerRecord, unresolved_key

logger = logging.getLogger(__name__)

ID_MAP_PATTERN = re.compile(r'^(?P<steam_id>\d{17})_\+_\|[^@]+@(?P<name>.+)$')

STEAM_ID_LENGTH = 17


@dataclass(frozen=True)
class Resolved:
    """An actor with a known Steam ID."""
    steam_id: str

    @property
    def storage_key(self) -> str:
        return self.steam_id


@dataclass(frozen=True)
class Provisional:
    """An actor known only by display name."""
    name: str

    @property
    def storage_key(self) -> str:
        return unresolved_key(self.name)


Identity = Union[Resolved, Provisional]


def is_durable_key(key: str) -> bool:
    """True if a players-mapping key is a Steam ID rather than a synthetic name key."""
    return len(key) == STEAM_ID_LENGTH and key.isdigit()


class FeedEntry(NamedTuple):
    steam_id: str
    name: str


def parse_id_map_feed(content: Optional[str]) -> List[FeedEntry]:
    """
    Parse PlayerIDMapped.txt.

    Lines that do not match the expected shape are skipped. Entries are returned
    in file order, so for repeated names or IDs the last entry is the newest.
    """
    entries = []
    if not content:
        return entries

    for raw_line in content.splitlines():
        line = clean_line(raw_line)
        if not line:
            continue
        match = ID_MAP_PATTERN.match(line)
        if not match:
            logger.debug(f"Skipping ID map line: {line[:80]}")
            continue
        entries.append(FeedEntry(match.group('steam_id'), match.group('name').strip()))

    return entries


class IdentityMap:
    """Case-insensitive display name to Steam ID lookup."""

    def __init__(self):
        self._ids: Dict[str, str] = {}
        self._names: Dict[str, str] = {}

    @classmethod
    def from_entries(cls, entries: Iterable[FeedEntry]) -> 'IdentityMap':
        identity_map = cls()
        # Within the feed a later line replaces an earlier one
        identity_map.merge(((entry.name, entry.steam_id) for entry in entries), overwrite=True)
        return identity_map

    @classmethod
    def from_feed(cls, content: Optional[str]) -> 'IdentityMap':
        return cls.from_entries(parse_id_map_feed(content))

    def add(self, name: str, steam_id: str, overwrite: bool = False) -> bool:
        """
        Map a name to a Steam ID.

        An existing mapping for the same name is kept unless overwrite is set.

        Returns:
            True if the map changed.
        """
        name = (name or '').strip()
        if not name or not steam_id:
            return False
        key = name.lower()
        if key in self._ids and (not overwrite or self._ids[key] == steam_id):
            return False
        self._ids[key] = steam_id
        self._names[key] = name
        return True

    def merge(self, pairs: Iterable[Tuple[str, str]], overwrite: bool = False) -> int:
        """Add (name, steam_id) pairs; returns how many changed the map."""
        return sum(1 for name, steam_id in pairs if self.add(name, steam_id, overwrite=overwrite))

    def lookup(self, name: str) -> Optional[str]:
        return self._ids.get((name or '').strip().lower())

    def names_for(self, steam_id: str) -> List[str]:
        return [self._names[key] for key, value in self._ids.items() if value == steam_id]

    def items(self) -> Iterator[Tuple[str, str]]:
        """Yield (display name, steam_id) pairs."""
        for key, steam_id in self._ids.items():
            yield self._names[key], steam_id

    def __contains__(self, name: str) -> bool:
        return self.lookup(name) is not None

    def __len__(self) -> int:
        return len(self._ids)


class IdentityResolver:
    """
    Resolves name-only actors against an IdentityMap and folds their
    provisional counters into the matching Steam ID records.
    """

    def __init__(self, identity_map: Optional[IdentityMap] = None):
        self.identity_map = identity_map or IdentityMap()

    def build_map(self, players: Dict[str, PlayerRecord], playtime_players: Optional[Dict[str, object]] = None) -> int:
        """
        Augment the map with names from this run's Steam ID records, then from
        playtime records. Names the map already holds are left alone.

        Args:
            players: Steam ID -> PlayerRecord from the aggregator
            playtime_players: Steam ID -> object with a ``name`` attribute

        Returns:
            Number of names added.
        """
        added = self.identity_map.merge(
            (record.name, steam_id) for steam_id, record in players.items() if is_durable_key(steam_id))
        if playtime_players:
            added += self.identity_map.merge(
                (getattr(record, 'name', ''), steam_id)
                for steam_id, record in playtime_players.items() if is_durable_key(steam_id))
        logger.debug(f"Identity map holds {len(self.identity_map)} name(s), {added} added from this run")
        return added

    def resolve(self, name: str) -> Identity:
        steam_id = self.identity_map.lookup(name)
        if steam_id:
            return Resolved(steam_id)
        return Provisional(name)

    def resolve_provisionals(self, players: Dict[str, PlayerRecord], provisionals: Dict[str, object]) -> int:
        """
        Fold every resolvable provisional record into its Steam ID record.

        The target record is created when the Steam ID has not been seen in the
        log yet. Resolved entries are removed from ``provisionals``; whatever is
        left could not be resolved.

        Returns:
            Number of provisional records merged.
        """
        merged = 0
        for name in list(provisionals):
            identity = self.resolve(name)
            if not isinstance(identity, Resolved):
                continue

            provisional = provisionals.pop(name)
            target = players.get(identity.steam_id)
            if target is None:
                target = PlayerRecord(name)
                players[identity.steam_id] = target
            target.absorb(provisional)
            merged += 1
            logger.debug(f"Resolved '{name}' to {identity.steam_id}")

        if provisionals:
            logger.warning(f"{len(provisionals)} name-only record(s) could not be resolved to a Steam ID")
        return merged

    def apply_feed_names(self, players: Dict[str, PlayerRecord], entries: Iterable[FeedEntry],
                         until: Optional[datetime] = None) -> int:
        """
        Rename records whose Steam ID the ID map lists under a different name.

        Returns:
            Number of records renamed (case-only changes are not counted).
        """
        latest: Dict[str, str] = {}
        for entry in entries:
            latest[entry.steam_id] = entry.name

        renamed = 0
        for steam_id, name in latest.items():
            record = players.get(steam_id)
            if record is None:
                continue
            old_name = record.name
            if record.rename(name, until):
                renamed += 1
                logger.info(f"Renamed {steam_id}: {old_name} -> {name}")
        return renamed
