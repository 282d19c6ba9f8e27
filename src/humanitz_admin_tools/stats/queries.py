"""
Lookups and leaderboards over player-stats and playtime records.
"""

from typing import Dict, List, Optional, Tuple

from .identity import is_durable_key
from .records import PlayerRecord
from .sessions import PlaytimeRecord


def find_player(players: Dict[str, PlayerRecord], query: str) -> Optional[Tuple[str, PlayerRecord]]:
    """
    Find a player by Steam ID or name.

    Names are matched case-insensitively in this order: exact current name,
    exact previous name, partial current name, partial previous name.

    Returns:
        (key, record) or None.
    """
    query = (query or '').strip()
    if not query:
        return None
    if query in players:
        return query, players[query]

    lower = query.lower()

    def history(record):
        return [str(entry.get('name', '')).lower() for entry in record.name_history]

    searches = (
        lambda record: record.name.lower() == lower,
        lambda record: lower in history(record),
        lambda record: lower in record.name.lower(),
        lambda record: any(lower in name for name in history(record)),
    )
    for matches in searches:
        for key, record in players.items():
            if matches(record):
                return key, record
    return None


def activity_leaderboard(players: Dict[str, PlayerRecord], limit: Optional[int] = None,
                         include_unresolved: bool = True) -> List[Tuple[str, PlayerRecord]]:
    """Records sorted by deaths + builds + raidsOut + containersLooted, highest first."""
    entries = [(key, record) for key, record in players.items() if include_unresolved or is_durable_key(key)]
    entries.sort(key=lambda item: item[1].activity_score, reverse=True)
    return entries[:limit] if limit else entries


def playtime_leaderboard(players: Dict[str, PlaytimeRecord], limit: Optional[int] = None) -> List[Tuple[str, PlaytimeRecord]]:
    entries = sorted(players.items(), key=lambda item: item[1].total_ms, reverse=True)
    return entries[:limit] if limit else entries


def format_duration(ms: int) -> str:
    """
    >>> format_duration(5400000)
    '1h 30m'
    >>> format_duration(600000)
    '10m'
    """
    hours, remainder = divmod(int(ms), 3600000)
    minutes = remainder // 60000
    if hours > 0:
        return f"{hours}h {minutes}m"
    return f"{minutes}m"
