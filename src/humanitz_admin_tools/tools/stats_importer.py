"""
HumanitZ Player Stats Importer

Rebuilds player-stats.json and playtime.json from the full server logs:

1. download HMZLog.log, PlayerConnectedLog.txt and PlayerIDMapped.txt (or use the
   cached copies with --local)
2. parse the event log into per-player counters
3. reconstruct playtime from the connect log, or estimate it from log activity
4. resolve name-only records to Steam IDs and merge everything
5. back up the previous JSON files and write the new ones

With --validate nothing is written; the freshly computed stats are compared with
the current player-stats.json instead.
"""

import argparse
import json
import logging
import os
import sys
from typing import Any, Dict, Optional

import requests

from ..base import HumanitZTool, JSONTool
from ..errors import MissingEventLogError, StatsImportError
from ..log.log_downloader import HumanitZLogDownloader
from ..stats.merge import validate_against_store
from ..stats.pipeline import PipelineResult, run_pipeline
from ..stats.queries import format_duration, playtime_leaderboard
from .stats_report import StatsReportTool

logger = logging.getLogger(__name__)

STATS_FILE = 'player-stats.json'
PLAYTIME_FILE = 'playtime.json'


class PlayerStatsImporter(JSONTool):
    """Imports HumanitZ player stats and playtime from the server logs."""

    def __init__(self, config: Optional[Dict[str, Any]] = None,
                 downloader: Optional[HumanitZLogDownloader] = None) -> None:
        super().__init__(config)
        self._downloader = downloader
        self.stats_file = self.data_path(STATS_FILE)
        self.playtime_file = self.data_path(PLAYTIME_FILE)
        self.leaderboard_size = int(self.get_config('stats.leaderboard_size', 10))

    @property
    def downloader(self) -> HumanitZLogDownloader:
        if self._downloader is None:
            self._downloader = HumanitZLogDownloader(self.config)
        return self._downloader

    def load_persisted(self, file_path: str) -> Dict[str, Any]:
        """Read a previously written JSON document; a missing or broken file counts as empty."""
        if not os.path.exists(file_path):
            return {}
        try:
            data = self.read_json(file_path)
        except (json.JSONDecodeError, OSError) as e:
            logger.warning(f"Ignoring unreadable {os.path.basename(file_path)}: {e}")
            return {}
        if not isinstance(data, dict):
            logger.warning(f"Ignoring {os.path.basename(file_path)}: not a JSON object")
            return {}
        return data

    def backup_and_save(self, file_path: str, data: Dict[str, Any]) -> str:
        if os.path.exists(file_path):
            self.backup_file(file_path)
        return self.write_json(data, file_path)

    def log_summary(self, result: PipelineResult) -> None:
        counts = result.aggregator.counts
        logger.info("--- Parsing HMZLog.log ---")
        logger.info(f"Events:     {result.aggregator.total_events}")
        logger.info(f"Deaths:     {counts.deaths}")
        logger.info(f"Builds:     {counts.builds}")
        logger.info(f"Damage:     {counts.damage}")
        logger.info(f"Loots:      {counts.loots}")
        logger.info(f"Raids:      {counts.raids}")
        logger.info(f"Admin:      {counts.admin}")
        logger.info(f"Anti-cheat: {counts.cheat}")
        logger.info(f"Skipped:    {counts.skipped}")
        logger.info(f"Players:    {len(result.merge.players)} (with Steam ID)")
        logger.info(f"Unresolved: {len(result.merge.unresolved)}")
        if result.playtime.estimated:
            logger.info("Playtime is estimated. For accurate playtime, make sure PlayerConnectedLog.txt is available.")

    def log_playtime_leaderboard(self, result: PipelineResult) -> None:
        players = result.playtime.players
        if not players:
            return
        logger.info("Playtime Leaderboard:")
        for _, record in playtime_leaderboard(players, self.leaderboard_size):
            logger.info(f"  {record.name:<20} {format_duration(record.total_ms):>10}  ({record.sessions} sessions)")
        if len(players) > self.leaderboard_size:
            logger.info(f"  ... and {len(players) - self.leaderboard_size} more")

    def run(self, local: bool = False, validate: bool = False, find: bool = False,
            csv: bool = False, excel: bool = False, chart: bool = False) -> Dict[str, Any]:
        """
        Run the import.

        Raises:
            MissingEventLogError: If no event log could be obtained.
            RemoteFetchError: If the file server is unreachable and nothing is cached.
        """
        if find:
            found = self.downloader.explore_directories()
            return {'success': True, 'mode': 'find', 'found': found}

        inputs = self.downloader.run(local=local)
        if not inputs.event_log:
            raise MissingEventLogError("No log file available. Run with --find to locate files on the server.")

        result = run_pipeline(
            inputs.event_log,
            connect_log=inputs.connect_log,
            id_map=inputs.id_map,
            previous_playtime=self.load_persisted(self.playtime_file),
        )
        self.log_summary(result)

        if validate:
            report = validate_against_store(result.merge.players, self.load_persisted(self.stats_file))
            report.log_report()
            return {'success': True, 'mode': 'validate', 'discrepancies': report.discrepancies}

        self.backup_and_save(self.stats_file, result.stats_document())
        self.backup_and_save(self.playtime_file, result.playtime_document())
        self.log_playtime_leaderboard(result)

        reports = {}
        if csv or excel or chart:
            reports = StatsReportTool(self.config).run(result.merge.players, result.playtime.players,
                                                       csv=csv, excel=excel, chart=chart)

        logger.info("--- Import Complete ---")
        logger.info(f"Players (stats):    {len(result.stats_document()['players'])}")
        logger.info(f"Players (playtime): {len(result.playtime.players)}")
        logger.info(f"Total playtime:     {format_duration(result.playtime.total_ms)}")
        if result.aggregator.earliest_event:
            logger.info(f"Data since:         {result.aggregator.earliest_event.strftime('%d/%m/%Y')}")

        return {
            'success': True,
            'mode': 'import',
            'stats_file': self.stats_file,
            'playtime_file': self.playtime_file,
            'players': len(result.merge.players),
            'unresolved': len(result.merge.unresolved),
            'reports': reports,
        }


def main():
    """
    Main entry point for the stats importer command line tool.
    """
    parser = argparse.ArgumentParser(
        description="Rebuild HumanitZ player stats and playtime from the full server logs.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    %(prog)s --profile my_server
    %(prog)s --local --validate
    %(prog)s --find

Configuration:
    - paths.data_dir: Directory for cached logs and the JSON data files
    - humanitz.log_path / humanitz.connect_log_path / humanitz.id_map_path: Remote file locations
        """
    )
    mode_group = parser.add_mutually_exclusive_group()
    mode_group.add_argument("--find", action="store_true",
                            help="Explore the server directories and list candidate log files")
    mode_group.add_argument("--validate", action="store_true",
                            help="Compare the log data with the current player-stats.json without writing")
    parser.add_argument("--local", action="store_true",
                        help="Use cached files from the data directory instead of downloading")
    parser.add_argument("--csv", action="store_true", help="Also export CSV reports")
    parser.add_argument("--excel", action="store_true", help="Also export an Excel workbook")
    parser.add_argument("--chart", action="store_true", help="Also save a playtime bar chart")

    HumanitZTool.add_standard_arguments(parser)
    args = parser.parse_args()

    try:
        config = PlayerStatsImporter.load_config(args.profile)
        if args.verbose:
            logging.getLogger().setLevel(logging.DEBUG)
            logger.debug("Verbose logging enabled via command line flag")

        importer = PlayerStatsImporter(config)
        result = importer.run(local=args.local, validate=args.validate, find=args.find,
                              csv=args.csv, excel=args.excel, chart=args.chart)

        if args.console:
            logger.info(f"Stats import completed: {result}")

        return 0 if result.get('success') else 1

    except (StatsImportError, requests.RequestException) as e:
        logger.error(f"Error: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
