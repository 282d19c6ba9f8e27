#!/usr/bin/env python3
"""
Tests for PlayerIDMapped.txt parsing and name to Steam ID resolution.
"""

import os
import sys
from datetime import datetime, timezone

sys.path.insert(0, os.path.join(os.path.dirname(__file__), 'src'))

from humanitz_admin_tools.stats.identity import (
    FeedEntry, IdentityMap, IdentityResolver, Provisional, Resolved, is_durable_key, parse_id_map_feed,
)
from humanitz_admin_tools.stats.records import PlayerRecord, ProvisionalRecord
from humanitz_admin_tools.stats.sessions import PlaytimeRecord

BOB = '76561198000000001'
ALICE = '76561198000000002'
CAROL = '76561198000000003'

T1 = datetime(2024, 6, 5, 14, 0, tzinfo=timezone.utc)
T2 = datetime(2024, 6, 5, 15, 0, tzinfo=timezone.utc)


def test_parse_feed_handles_bom_crlf_and_bad_lines():
    content = (
        f'\ufeff{BOB}_+_|a1b2c3@Bob\r\n'
        'garbage line\r\n'
        '\r\n'
        f'12345_+_|short@Shorty\r\n'
        f'{ALICE}_+_|d4e5@Alice Smith\r\n'
    )

    entries = parse_id_map_feed(content)

    assert entries == [FeedEntry(BOB, 'Bob'), FeedEntry(ALICE, 'Alice Smith')]
    assert parse_id_map_feed(None) == []
    assert parse_id_map_feed('') == []


def test_feed_later_line_wins():
    content = f'{BOB}_+_|x@Shared\n{ALICE}_+_|y@Shared\n'

    identity_map = IdentityMap.from_feed(content)

    assert identity_map.lookup('Shared') == ALICE
    assert len(identity_map) == 1


def test_lookup_is_case_insensitive():
    identity_map = IdentityMap.from_feed(f'{BOB}_+_|x@Bob\n')

    assert identity_map.lookup('bob') == BOB
    assert identity_map.lookup(' BOB ') == BOB
    assert 'Bob' in identity_map
    assert 'Carol' not in identity_map
    assert list(identity_map.items()) == [('Bob', BOB)]
    assert identity_map.names_for(BOB) == ['Bob']


def test_add_keeps_existing_mapping_unless_overwrite():
    identity_map = IdentityMap()

    assert identity_map.add('Bob', BOB)
    assert not identity_map.add('bob', ALICE)
    assert identity_map.lookup('Bob') == BOB

    assert identity_map.add('Bob', ALICE, overwrite=True)
    assert identity_map.lookup('Bob') == ALICE
    assert not identity_map.add('', BOB)


def test_build_map_does_not_override_feed():
    identity_map = IdentityMap.from_feed(f'{BOB}_+_|x@Bob\n')
    resolver = IdentityResolver(identity_map)
    players = {
        ALICE: PlayerRecord('Bob'),
        CAROL: PlayerRecord('Carol'),
        'name:Zed': PlayerRecord('Zed'),
    }
    playtime = {
        '76561198000000009': PlaytimeRecord('Dana'),
    }

    added = resolver.build_map(players, playtime)

    assert added == 2
    assert identity_map.lookup('Bob') == BOB
    assert identity_map.lookup('Carol') == CAROL
    assert identity_map.lookup('Dana') == '76561198000000009'
    assert identity_map.lookup('Zed') is None


def test_resolve_identity():
    resolver = IdentityResolver(IdentityMap.from_feed(f'{BOB}_+_|x@Bob\n'))

    assert resolver.resolve('BOB') == Resolved(BOB)
    assert resolver.resolve('Zed') == Provisional('Zed')
    assert Resolved(BOB).storage_key == BOB
    assert Provisional('Zed').storage_key == 'name:Zed'


def test_durable_keys():
    assert is_durable_key(BOB)
    assert not is_durable_key('name:Bob')
    assert not is_durable_key('1234')


def test_resolve_provisionals_creates_target_record():
    resolver = IdentityResolver(IdentityMap.from_feed(f'{BOB}_+_|x@Bob\n'))
    players = {}
    provisional = ProvisionalRecord('Bob', deaths=1)
    provisional.touch(T1)
    provisionals = {'Bob': provisional, 'Zed': ProvisionalRecord('Zed', deaths=2)}

    merged = resolver.resolve_provisionals(players, provisionals)

    assert merged == 1
    assert players[BOB].name == 'Bob'
    assert players[BOB].deaths == 1
    assert players[BOB].last_event == T1
    assert list(provisionals) == ['Zed']


def test_resolve_provisionals_only_advances_last_event():
    resolver = IdentityResolver(IdentityMap.from_feed(f'{BOB}_+_|x@Bob\n'))
    target = PlayerRecord('Bob', deaths=2)
    target.touch(T2)
    players = {BOB: target}
    earlier = ProvisionalRecord('Bob', deaths=1)
    earlier.touch(T1)

    resolver.resolve_provisionals(players, {'Bob': earlier})

    assert target.deaths == 3
    assert target.last_event == T2


def test_apply_feed_names_records_history():
    resolver = IdentityResolver()
    players = {BOB: PlayerRecord('OldBob'), ALICE: PlayerRecord('alice')}
    entries = [
        FeedEntry(BOB, 'MiddleBob'),
        FeedEntry(BOB, 'NewBob'),
        FeedEntry(ALICE, 'Alice'),
        FeedEntry(CAROL, 'Carol'),
    ]

    renamed = resolver.apply_feed_names(players, entries, until=T2)

    assert renamed == 1
    assert players[BOB].name == 'NewBob'
    assert players[BOB].name_history == [{'name': 'OldBob', 'until': '2024-06-05T15:00:00.000Z'}]
    assert players[ALICE].name == 'Alice'
    assert players[ALICE].name_history == []
    assert CAROL not in players


if __name__ == "__main__":
    test_parse_feed_handles_bom_crlf_and_bad_lines()
    test_feed_later_line_wins()
    test_build_map_does_not_override_feed()
    test_resolve_provisionals_creates_target_record()
    test_apply_feed_names_records_history()
    print("Identity tests passed")
