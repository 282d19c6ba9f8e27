#!/usr/bin/env python3
"""
Tests for the CSV, Excel and chart exports.
"""

import csv
import os
import sys
import tempfile
from datetime import datetime, timezone

os.environ.setdefault('MPLBACKEND', 'Agg')

sys.path.insert(0, os.path.join(os.path.dirname(__file__), 'src'))

from openpyxl import load_workbook

from humanitz_admin_tools.stats.records import PlayerRecord
from humanitz_admin_tools.stats.sessions import PlaytimeRecord
from humanitz_admin_tools.tools.stats_report import PLAYTIME_HEADERS, STATS_HEADERS, StatsReportTool

BOB = '76561198000000001'
ALICE = '76561198000000002'


def _config(root):
    return {
        'general': {
            'log_download_path': os.path.join(root, 'logs'),
            'output_path': os.path.join(root, 'output'),
        },
        'paths': {'data_dir': os.path.join(root, 'data')},
    }


def _players():
    bob = PlayerRecord('Bob', deaths=3, damage_taken={'Zombie': 4, 'Wolf': 1})
    bob.touch(datetime(2024, 6, 5, 14, 30, tzinfo=timezone.utc))
    return {
        BOB: bob,
        ALICE: PlayerRecord('Alice', builds=7),
        'name:Zed': PlayerRecord('Zed', deaths=1),
    }


def _playtime():
    return {
        BOB: PlaytimeRecord('Bob', total_ms=5400000, sessions=2),
        ALICE: PlaytimeRecord('Alice', total_ms=600000, sessions=1),
    }


def test_rows():
    with tempfile.TemporaryDirectory() as root:
        tool = StatsReportTool(_config(root))

        stats = tool.stats_rows(_players())
        playtime = tool.playtime_rows(_playtime())
        damage = tool.damage_rows(_players())

    assert [row['Steam ID'] for row in stats] == [ALICE, BOB, 'name:Zed']
    assert list(stats[0].keys()) == STATS_HEADERS
    assert stats[1]['Last Event'] == '2024-06-05T14:30:00.000Z'
    assert [row['Rank'] for row in playtime] == [1, 2]
    assert playtime[0]['Playtime'] == '1h 30m'
    assert list(playtime[0].keys()) == PLAYTIME_HEADERS
    assert damage == [
        {'Steam ID': BOB, 'Name': 'Bob', 'Source': 'Wolf', 'Hits': 1},
        {'Steam ID': BOB, 'Name': 'Bob', 'Source': 'Zombie', 'Hits': 4},
    ]


def test_export_csv():
    with tempfile.TemporaryDirectory() as root:
        tool = StatsReportTool(_config(root))

        stats_path, playtime_path = tool.export_csv(_players(), _playtime())

        assert os.path.dirname(stats_path) == os.path.join(root, 'output')
        with open(stats_path, newline='', encoding='utf-8') as f:
            rows = list(csv.DictReader(f))
        assert len(rows) == 3
        assert rows[0]['Name'] == 'Alice'
        assert os.path.exists(playtime_path)


def test_export_excel():
    with tempfile.TemporaryDirectory() as root:
        tool = StatsReportTool(_config(root))

        path = tool.export_excel(_players(), _playtime(), os.path.join(root, 'report.xlsx'))

        workbook = load_workbook(path)
        assert workbook.sheetnames == ['Player Stats', 'Playtime', 'Damage Taken']
        sheet = workbook['Player Stats']
        assert sheet['A1'].value == 'Steam ID'
        assert sheet['A2'].value == ALICE
        assert workbook['Damage Taken'].max_row == 3


def test_plot_playtime():
    with tempfile.TemporaryDirectory() as root:
        tool = StatsReportTool(_config(root))

        path = tool.plot_playtime(_playtime(), os.path.join(root, 'chart.png'))

        assert path == os.path.join(root, 'chart.png')
        assert os.path.getsize(path) > 0
        assert tool.plot_playtime({}) is None


def test_run_only_builds_requested_reports():
    with tempfile.TemporaryDirectory() as root:
        tool = StatsReportTool(_config(root))

        result = tool.run(_players(), _playtime(), csv=False, excel=True)

        assert result['csv'] == []
        assert result['chart'] is None
        assert os.path.exists(result['excel'])


if __name__ == "__main__":
    test_rows()
    test_export_csv()
    test_export_excel()
    test_plot_playtime()
    print("Stats report tests passed")
