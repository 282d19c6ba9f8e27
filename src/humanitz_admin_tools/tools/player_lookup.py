"""
HumanitZ Player Lookup

Looks up one player in the persisted player-stats.json and playtime.json, or
prints the activity and playtime leaderboards.
"""

import argparse
import json
import logging
import os
import sys
from typing import Any, Dict, List, Optional

from ..base import HumanitZTool, JSONTool
from ..stats.merge import load_players
from ..stats.queries import activity_leaderboard, find_player, format_duration, playtime_leaderboard
from ..stats.sessions import PlaytimeRecord
from .stats_importer import PLAYTIME_FILE, STATS_FILE

logger = logging.getLogger(__name__)


class PlayerLookup(JSONTool):
    """Read-only queries over the persisted stats files."""

    def __init__(self, config: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(config)
        self.leaderboard_size = int(self.get_config('stats.leaderboard_size', 10))
        self.players = {}
        self.playtime = {}

    def load(self) -> None:
        stats_path = self.data_path(STATS_FILE)
        playtime_path = self.data_path(PLAYTIME_FILE)

        self.players = load_players(self._load_document(stats_path))
        playtime_players = self._load_document(playtime_path).get('players') or {}
        self.playtime = {
            steam_id: PlaytimeRecord.from_dict(entry, default_name=steam_id)
            for steam_id, entry in playtime_players.items() if isinstance(entry, dict)
        }
        logger.debug(f"Loaded {len(self.players)} stats and {len(self.playtime)} playtime record(s)")

    def _load_document(self, file_path: str) -> Dict[str, Any]:
        if not os.path.exists(file_path):
            logger.warning(f"{os.path.basename(file_path)} not found in {self.data_dir}")
            return {}
        try:
            data = self.read_json(file_path)
        except (json.JSONDecodeError, OSError) as e:
            logger.warning(f"Ignoring unreadable {os.path.basename(file_path)}: {e}")
            return {}
        return data if isinstance(data, dict) else {}

    def lookup(self, query: str) -> Optional[Dict[str, Any]]:
        """
        Find a player by Steam ID or (partial) name.

        Returns:
            Summary dictionary with the stats record and playtime, or None.
        """
        found = find_player(self.players, query)
        if found is None:
            return None

        key, record = found
        summary = {'key': key, 'stats': record.to_dict(), 'playtime': None}
        playtime = self.playtime.get(key)
        if playtime is not None:
            summary['playtime'] = dict(playtime.to_dict(), formatted=format_duration(playtime.total_ms))
        return summary

    def activity_top(self, limit: Optional[int] = None) -> List[Dict[str, Any]]:
        return [
            {'key': key, 'name': record.name, 'activity': record.activity_score, 'deaths': record.deaths,
             'builds': record.builds, 'raidsOut': record.raids_out, 'containersLooted': record.containers_looted}
            for key, record in activity_leaderboard(self.players, limit or self.leaderboard_size)
        ]

    def playtime_top(self, limit: Optional[int] = None) -> List[Dict[str, Any]]:
        return [
            {'key': steam_id, 'name': record.name, 'totalMs': record.total_ms,
             'playtime': format_duration(record.total_ms), 'sessions': record.sessions}
            for steam_id, record in playtime_leaderboard(self.playtime, limit or self.leaderboard_size)
        ]

    def log_player(self, summary: Dict[str, Any]) -> None:
        stats = summary['stats']
        logger.info(f"{stats['name']} ({summary['key']})")
        if stats['nameHistory']:
            logger.info(f"  Previous names: {', '.join(entry.get('name', '') for entry in stats['nameHistory'])}")
        logger.info(f"  Deaths: {stats['deaths']}  Builds: {stats['builds']}  Loots: {stats['containersLooted']}")
        logger.info(f"  Raids out/in: {stats['raidsOut']}/{stats['raidsIn']}  "
                    f"Destroyed out/in: {stats['destroyedOut']}/{stats['destroyedIn']}")
        if stats['damageTaken']:
            damage = ', '.join(f"{source}: {hits}" for source, hits in
                               sorted(stats['damageTaken'].items(), key=lambda item: item[1], reverse=True))
            logger.info(f"  Damage taken: {damage}")
        if stats['cheatFlags']:
            logger.info(f"  Anti-cheat flags: {len(stats['cheatFlags'])}")
        if summary['playtime']:
            playtime = summary['playtime']
            logger.info(f"  Playtime: {playtime['formatted']} over {playtime['sessions']} session(s)")
        logger.info(f"  Last event: {stats['lastEvent'] or 'never'}")

    def run(self, query: Optional[str] = None, limit: Optional[int] = None) -> Dict[str, Any]:
        self.load()

        if query:
            summary = self.lookup(query)
            if summary is None:
                logger.warning(f"No player matching '{query}'")
                return {'success': False, 'query': query}
            self.log_player(summary)
            return {'success': True, 'query': query, 'player': summary}

        activity = self.activity_top(limit)
        playtime = self.playtime_top(limit)

        logger.info("Most active players:")
        for rank, entry in enumerate(activity, 1):
            logger.info(f"  {rank:>2}. {entry['name']:<20} {entry['activity']:>6}")
        logger.info("Most playtime:")
        for rank, entry in enumerate(playtime, 1):
            logger.info(f"  {rank:>2}. {entry['name']:<20} {entry['playtime']:>10}  ({entry['sessions']} sessions)")

        return {'success': True, 'activity': activity, 'playtime': playtime}


def main():
    parser = argparse.ArgumentParser(description="Look up HumanitZ players in the imported stats.")
    parser.add_argument("player", nargs="?", help="Steam ID or (partial) player name. Omit to show leaderboards.")
    parser.add_argument("--top", type=int, default=None, help="Number of leaderboard entries to show")
    HumanitZTool.add_standard_arguments(parser)
    args = parser.parse_args()

    config = PlayerLookup.load_config(args.profile)
    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    result = PlayerLookup(config).run(args.player, args.top)
    return 0 if result['success'] else 1


if __name__ == "__main__":
    sys.exit(main())
