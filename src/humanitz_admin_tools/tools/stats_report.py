"""
HumanitZ Stats Report Tool

Exports player stats and playtime as CSV, as an Excel workbook, and as a bar
chart of the top players by playtime.
"""

import logging
import os
from typing import Any, Dict, List, Optional

import matplotlib.pyplot as plt

try:
    import pandas as pd
    import openpyxl
except ImportError:
    raise ImportError("This tool requires pandas and openpyxl. Install with: pip install pandas openpyxl")

from ..base import FileBasedTool
from ..log.line_parser import to_iso
from ..stats.queries import activity_leaderboard, format_duration, playtime_leaderboard
from ..stats.records import PlayerRecord
from ..stats.sessions import PlaytimeRecord

logger = logging.getLogger(__name__)

__all__ = ['StatsReportTool']

STATS_HEADERS = [
    'Steam ID', 'Name', 'Deaths', 'Builds', 'Raids Out', 'Raids In', 'Destroyed Out', 'Destroyed In',
    'Containers Looted', 'Connects', 'Disconnects', 'Admin Access', 'Cheat Flags', 'Activity', 'Last Event',
]
PLAYTIME_HEADERS = ['Rank', 'Steam ID', 'Name', 'Playtime', 'Total Ms', 'Sessions', 'First Seen', 'Last Seen']

CHART_DPI = 150


class StatsReportTool(FileBasedTool):
    """Builds report files from player-stats and playtime records."""

    def __init__(self, config: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(config)
        self.initialize_directories()
        self.leaderboard_size = int(self.get_config('stats.leaderboard_size', 10))

    def stats_rows(self, players: Dict[str, PlayerRecord]) -> List[Dict[str, Any]]:
        rows = []
        for key, record in activity_leaderboard(players):
            rows.append({
                'Steam ID': key,
                'Name': record.name,
                'Deaths': record.deaths,
                'Builds': record.builds,
                'Raids Out': record.raids_out,
                'Raids In': record.raids_in,
                'Destroyed Out': record.destroyed_out,
                'Destroyed In': record.destroyed_in,
                'Containers Looted': record.containers_looted,
                'Connects': record.connects,
                'Disconnects': record.disconnects,
                'Admin Access': record.admin_access,
                'Cheat Flags': len(record.cheat_flags),
                'Activity': record.activity_score,
                'Last Event': to_iso(record.last_event) or '',
            })
        return rows

    def playtime_rows(self, players: Dict[str, PlaytimeRecord], limit: Optional[int] = None) -> List[Dict[str, Any]]:
        rows = []
        for rank, (steam_id, record) in enumerate(playtime_leaderboard(players, limit), 1):
            rows.append({
                'Rank': rank,
                'Steam ID': steam_id,
                'Name': record.name,
                'Playtime': format_duration(record.total_ms),
                'Total Ms': record.total_ms,
                'Sessions': record.sessions,
                'First Seen': to_iso(record.first_seen) or '',
                'Last Seen': to_iso(record.last_seen) or '',
            })
        return rows

    def damage_rows(self, players: Dict[str, PlayerRecord]) -> List[Dict[str, Any]]:
        """One row per player and damage category."""
        rows = []
        for key, record in players.items():
            for category, hits in sorted(record.damage_taken.items()):
                rows.append({'Steam ID': key, 'Name': record.name, 'Source': category, 'Hits': hits})
        return rows

    def export_csv(self, players: Dict[str, PlayerRecord], playtime: Dict[str, PlaytimeRecord]) -> List[str]:
        """Write the stats table and the playtime leaderboard as CSV files in the output directory."""
        return [
            self.write_csv(self.stats_rows(players), self.generate_timestamped_filename('player_stats', 'csv'),
                           STATS_HEADERS),
            self.write_csv(self.playtime_rows(playtime), self.generate_timestamped_filename('playtime', 'csv'),
                           PLAYTIME_HEADERS),
        ]

    def export_excel(self, players: Dict[str, PlayerRecord], playtime: Dict[str, PlaytimeRecord],
                     excel_path: Optional[str] = None) -> str:
        """
        Write a workbook with 'Player Stats', 'Playtime' and 'Damage Taken' sheets.

        Returns:
            Absolute path of the workbook.
        """
        if excel_path is None:
            excel_path = os.path.join(self.output_dir or 'output', self.generate_timestamped_filename('player_stats', 'xlsx'))
        excel_path = self.resolve_path(excel_path)
        os.makedirs(os.path.dirname(excel_path), exist_ok=True)

        sheets = {
            'Player Stats': pd.DataFrame(self.stats_rows(players), columns=STATS_HEADERS),
            'Playtime': pd.DataFrame(self.playtime_rows(playtime), columns=PLAYTIME_HEADERS),
            'Damage Taken': pd.DataFrame(self.damage_rows(players), columns=['Steam ID', 'Name', 'Source', 'Hits']),
        }

        with pd.ExcelWriter(excel_path, engine='openpyxl') as writer:
            for sheet_name, df in sheets.items():
                df.to_excel(writer, sheet_name=sheet_name, index=False)
                worksheet = writer.sheets[sheet_name]
                for idx, column in enumerate(df.columns, 1):
                    letter = openpyxl.utils.get_column_letter(idx)
                    width = max([len(str(column))] + [len(str(value)) for value in df[column]])
                    worksheet.column_dimensions[letter].width = min(width + 2, 40)
                    if column == 'Steam ID':
                        # Steam IDs exceed float precision, keep them as text
                        for cell in worksheet[letter][1:]:
                            cell.number_format = '@'

        logger.info(f"Excel report written to {excel_path}")
        return excel_path

    def plot_playtime(self, playtime: Dict[str, PlaytimeRecord], output_path: Optional[str] = None,
                      limit: Optional[int] = None) -> Optional[str]:
        """Save a horizontal bar chart of the top players by playtime (hours)."""
        top = playtime_leaderboard(playtime, limit or self.leaderboard_size)
        if not top:
            logger.warning("No playtime data to plot")
            return None

        if output_path is None:
            output_path = os.path.join(self.output_dir or 'output', self.generate_timestamped_filename('playtime', 'png'))
        output_path = self.resolve_path(output_path)
        os.makedirs(os.path.dirname(output_path), exist_ok=True)

        names = [record.name for _, record in reversed(top)]
        hours = [record.total_ms / 3600000 for _, record in reversed(top)]

        plt.figure(figsize=(10, max(3, len(top) * 0.5)))
        plt.barh(names, hours, color='steelblue')
        plt.xlabel('Hours played')
        plt.title('Playtime Leaderboard', fontsize=14, fontweight='bold')
        plt.tight_layout()
        plt.savefig(output_path, dpi=CHART_DPI, facecolor='white')
        plt.close()

        logger.info(f"Playtime chart saved to {output_path}")
        return output_path

    def run(self, players: Dict[str, PlayerRecord], playtime: Dict[str, PlaytimeRecord],
            csv: bool = True, excel: bool = False, chart: bool = False) -> Dict[str, Any]:
        result = {'csv': [], 'excel': None, 'chart': None}
        if csv:
            result['csv'] = self.export_csv(players, playtime)
        if excel:
            result['excel'] = self.export_excel(players, playtime)
        if chart:
            result['chart'] = self.plot_playtime(playtime)
        return result
