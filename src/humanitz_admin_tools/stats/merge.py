"""
Merge and validation of HumanitZ player stats.

MergeEngine turns one run's aggregator and playtime result into the canonical
player-stats document. validate_against_store() compares a freshly computed set
of records with the last persisted player-stats.json without writing anything.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional, Tuple

from .aggregator import PlayerStatsAggregator
from .identity import FeedEntry, IdentityResolver, is_durable_key
from .records import (
    VALIDATED_FIELDS, PlayerRecord, ProvisionalRecord, is_unresolved_key, unresolved_key,
)
from .sessions import PlaytimeResult

logger = logging.getLogger(__name__)

# Labels used in validation output
FIELD_LABELS = {
    'deaths': 'deaths',
    'builds': 'builds',
    'raidsOut': 'raidsOut',
    'containersLooted': 'loots',
}


@dataclass
class MergeResult:
    """Canonical records produced by one merge."""
    players: Dict[str, PlayerRecord]
    unresolved: Dict[str, ProvisionalRecord]
    playtime: PlaytimeResult
    merged_count: int = 0
    renamed_count: int = 0

    def stats_document(self) -> Dict[str, Any]:
        """The player-stats.json document, including synthetic ``name:`` entries."""
        players = {steam_id: record.to_dict() for steam_id, record in self.players.items()}
        for name, provisional in self.unresolved.items():
            players[unresolved_key(name)] = provisional.to_unresolved_dict()
        return {'players': players}

    def playtime_document(self) -> Dict[str, Any]:
        return self.playtime.to_dict()


class MergeEngine:
    """
    Reconciles the event aggregator with the playtime view.

    Args:
        resolver: IdentityResolver holding the map built from PlayerIDMapped.txt
        feed_entries: Parsed ID map entries, used to pick up renames
    """

    def __init__(self, resolver: Optional[IdentityResolver] = None, feed_entries: Iterable[FeedEntry] = ()):
        self.resolver = resolver or IdentityResolver()
        self.feed_entries = list(feed_entries)

    def merge(self, aggregator: PlayerStatsAggregator, playtime: PlaytimeResult,
              now: Optional[datetime] = None) -> MergeResult:
        """
        Merge one run.

        1. resolve provisional (name-only) records into Steam ID records
        2. apply ID map renames
        3. copy connect/disconnect counters from the playtime view, creating a
           minimal record for Steam IDs the event log never mentioned

        Counters are assigned rather than added in step 3, so merging the same
        input again leaves them unchanged.
        """
        players = aggregator.players

        self.resolver.build_map(players, playtime.players)
        merged = self.resolver.resolve_provisionals(players, aggregator.provisional)
        if merged:
            logger.info(f"Merged {merged} name-only record(s) into Steam ID records")

        renamed = self.resolver.apply_feed_names(players, self.feed_entries, until=aggregator.latest_event or now)

        for steam_id, counts in playtime.connect_counts.items():
            record = players.get(steam_id)
            if record is None:
                playtime_record = playtime.players.get(steam_id)
                record = PlayerRecord(playtime_record.name if playtime_record else steam_id)
                players[steam_id] = record
            record.connects = counts.connects
            record.disconnects = counts.disconnects

        for name, provisional in aggregator.provisional.items():
            logger.warning(f"Unresolved name-only record \"{name}\" - deaths: {provisional.deaths}")

        return MergeResult(
            players=players,
            unresolved=aggregator.provisional,
            playtime=playtime,
            merged_count=merged,
            renamed_count=renamed,
        )


def load_players(document: Optional[Dict[str, Any]]) -> Dict[str, PlayerRecord]:
    """
    Normalize the players mapping of a persisted player-stats.json.

    Every field missing from an entry gets its empty or zero default.
    """
    players = {}
    for key, entry in ((document or {}).get('players') or {}).items():
        if isinstance(entry, dict):
            players[key] = PlayerRecord.from_dict(entry, default_name=key)
    return players


@dataclass
class PlayerDiff:
    """Tracked counters that differ between the persisted and the fresh record."""
    steam_id: str
    name: str
    changes: List[Tuple[str, Any, Any]] = field(default_factory=list)

    def describe(self) -> str:
        return ', '.join(f"{FIELD_LABELS.get(key, key)}: {old} vs {new}" for key, old, new in self.changes)


@dataclass
class ValidationReport:
    orphans: List[Tuple[str, str]] = field(default_factory=list)
    missing: List[Tuple[str, str]] = field(default_factory=list)
    diffs: List[PlayerDiff] = field(default_factory=list)

    @property
    def discrepancies(self) -> int:
        return len(self.missing) + len(self.diffs)

    def log_report(self) -> None:
        logger.info("--- Validation ---")
        if self.orphans:
            logger.info(f"Orphaned name: records: {len(self.orphans)}")
            for key, name in self.orphans:
                logger.info(f"  {key} ({name})")
        else:
            logger.info("No orphaned name: records")

        for steam_id, name in self.missing:
            logger.info(f"MISSING: {name} ({steam_id})")
        for diff in self.diffs:
            logger.info(f"DIFF {diff.name}: {diff.describe()}")

        if self.discrepancies == 0:
            logger.info("All player stats match the log data")
        else:
            logger.warning(f"{self.discrepancies} discrepancy(ies) found. Run without --validate to rebuild data files.")


def validate_against_store(players: Dict[str, PlayerRecord], persisted: Optional[Dict[str, Any]]) -> ValidationReport:
    """
    Compare freshly computed Steam ID records with a persisted player-stats document.

    Args:
        players: Steam ID -> PlayerRecord from this run
        persisted: Parsed player-stats.json (None or {} when there is none)

    Returns:
        ValidationReport; its discrepancies count is 0 when the store is consistent.
    """
    existing_players = (persisted or {}).get('players') or {}
    report = ValidationReport()

    for key, entry in existing_players.items():
        if is_unresolved_key(key):
            name = entry.get('name', '') if isinstance(entry, dict) else ''
            report.orphans.append((key, name))

    for steam_id, record in players.items():
        if not is_durable_key(steam_id):
            continue
        existing = existing_players.get(steam_id)
        if not isinstance(existing, dict):
            report.missing.append((steam_id, record.name))
            continue

        fresh = record.to_dict()
        changes = [(key, existing.get(key), fresh[key]) for key in VALIDATED_FIELDS if existing.get(key) != fresh[key]]
        if changes:
            report.diffs.append(PlayerDiff(steam_id, record.name, changes))

    return report
