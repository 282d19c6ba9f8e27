"""
HumanitZ Admin Tools

Command line tools for importing, reporting and looking up player stats.
"""

from .player_lookup import PlayerLookup
from .stats_importer import PlayerStatsImporter
from .stats_report import StatsReportTool

__all__ = [
    'PlayerLookup',
    'PlayerStatsImporter',
    'StatsReportTool',
]
