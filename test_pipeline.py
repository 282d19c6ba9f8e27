#!/usr/bin/env python3
"""
Tests for the end-to-end import pass over in-memory inputs.
"""

import os
import sys
from datetime import datetime, timezone

sys.path.insert(0, os.path.join(os.path.dirname(__file__), 'src'))

import pytest

from humanitz_admin_tools.errors import MissingEventLogError, StatsImportError
from humanitz_admin_tools.stats.pipeline import run_pipeline

ALICE = '76561198000000002'
NOW = datetime(2030, 1, 1, tzinfo=timezone.utc)

EVENT_LOG = (
    f'(5/6/2024 14:00) Alice({ALICE}_+_|abc) finished building BP_WoodWall_C_1\n'
    f'(5/6/2024 14:10) Alice({ALICE}_+_|abc) finished building BP_WoodWall_C_2\n'
)


def test_missing_event_log_raises():
    for event_log in (None, ''):
        with pytest.raises(MissingEventLogError):
            run_pipeline(event_log, now=NOW)

    assert issubclass(MissingEventLogError, StatsImportError)


def test_without_connect_log_playtime_is_estimated():
    result = run_pipeline(EVENT_LOG, now=NOW)

    assert result.playtime.estimated
    # 10 minutes of activity plus 15 minutes padding
    assert result.playtime.players[ALICE].total_ms == 1500000
    assert result.playtime_document()['trackingSince'] == '2024-06-05T14:00:00.000Z'
    assert result.stats_document()['players'][ALICE]['connects'] == 0


def test_connect_log_takes_precedence():
    connect_log = (
        f'Player Connected Alice NetID({ALICE}_+_|abc) (5/6/2024 13:00)\n'
        f'Player Disconnected Alice NetID({ALICE}_+_|abc) (5/6/2024 15:00)\n'
    )

    result = run_pipeline(EVENT_LOG, connect_log=connect_log, now=NOW)

    assert not result.playtime.estimated
    assert result.playtime.players[ALICE].total_ms == 2 * 3600000
    assert result.stats_document()['players'][ALICE]['connects'] == 1


def test_previous_peaks_are_carried_over():
    previous = {'trackingSince': '2024-01-01T00:00:00.000Z', 'players': {},
                'peaks': {'allTimePeak': 12, 'allTimePeakDate': '2024-03-01'}}

    result = run_pipeline(EVENT_LOG, previous_playtime=previous, now=NOW)

    assert result.playtime_document()['peaks'] == {'allTimePeak': 12, 'allTimePeakDate': '2024-03-01'}


def test_default_peaks_without_history():
    result = run_pipeline(EVENT_LOG, now=NOW)

    assert result.playtime_document()['peaks']['allTimePeak'] == 0
    assert result.playtime_document()['peaks']['uniqueToday'] == []


def test_identity_map_is_exposed():
    result = run_pipeline(EVENT_LOG, id_map=f'{ALICE}_+_|x@Alice\n', now=NOW)

    assert result.identity_map.lookup('alice') == ALICE


if __name__ == "__main__":
    test_without_connect_log_playtime_is_estimated()
    test_connect_log_takes_precedence()
    test_previous_peaks_are_carried_over()
    print("Pipeline tests passed")
