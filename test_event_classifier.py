#!/usr/bin/env python3
"""
Tests for HMZLog.log event body classification.
"""

import os
import sys
from datetime import datetime, timezone

sys.path.insert(0, os.path.join(os.path.dirname(__file__), 'src'))

from humanitz_admin_tools.log.event_classifier import (
    EVENT_ADMIN, EVENT_BUILD, EVENT_CHEAT, EVENT_DAMAGE, EVENT_DEATH, EVENT_KINDS, EVENT_LOOT, EVENT_RAID,
    EVENT_RULES, classify_body, parse_amount,
)

TS = datetime(2024, 6, 5, 14, 30, tzinfo=timezone.utc)

ALICE = '76561198000000002'
OWNER = '76561198000000003'


def test_death():
    event = classify_body('Player died (Bob)', TS)

    assert event.kind == EVENT_DEATH
    assert event.actor_name == 'Bob'
    assert event.actor_id is None
    assert event.timestamp == TS
    assert not event.ignored


def test_build_simplifies_item_name():
    event = classify_body(f'Alice({ALICE}_+_|abc) finished building BP_Rain_Collector_C_2147481234', TS)

    assert event.kind == EVENT_BUILD
    assert event.actor_name == 'Alice'
    assert event.actor_id == ALICE
    assert event.details['item'] == 'Rain Collector'
    assert event.details['raw_item'] == 'BP_Rain_Collector_C_2147481234'


def test_damage_is_categorised():
    event = classify_body('Alice took 12.5 damage from BP_PawnZombie2_C_123', TS)

    assert event.kind == EVENT_DAMAGE
    assert event.actor_name == 'Alice'
    assert event.details['amount'] == 12.5
    assert event.details['category'] == 'Zombie'
    assert not event.ignored


def test_non_positive_damage_is_filtered():
    for amount in ('0', '0.0', '.'):
        event = classify_body(f'Alice took {amount} damage from BP_Wolf_C_1', TS)
        assert event.kind == EVENT_DAMAGE
        assert event.ignored, amount


def test_parse_amount():
    assert parse_amount('12.5') == 12.5
    assert parse_amount('3.') == 3.0
    assert parse_amount('.5') == 0.5
    assert parse_amount('1.2.3') == 1.2
    assert parse_amount('.') == 0.0


def test_loot():
    event = classify_body(f'Alice ({ALICE}_+_|abc) looted a container (Storage) owner by {OWNER}', TS)

    assert event.kind == EVENT_LOOT
    assert event.actor_id == ALICE
    assert event.owner_id == OWNER
    assert not event.ignored


def test_self_loot_is_filtered():
    event = classify_body(f'Alice ({ALICE}_+_|abc) looted a container (Storage) owner by {ALICE}', TS)

    assert event.kind == EVENT_LOOT
    assert event.ignored


def test_raid_with_attacker_id():
    body = f'Building (WoodWall) owned by ({OWNER}_+_|def) damaged (25.0) by Alice({ALICE}_+_|abc)'
    event = classify_body(body, TS)

    assert event.kind == EVENT_RAID
    assert event.actor_name == 'Alice'
    assert event.actor_id == ALICE
    assert event.owner_id == OWNER
    assert event.details['building'] == 'WoodWall'
    assert event.details['destroyed'] is False
    assert not event.ignored


def test_raid_destroyed_marker():
    body = f'Building (WoodWall) owned by ({OWNER}_+_|def) damaged (25.0) by Alice({ALICE}_+_|abc) (Destroyed)'
    event = classify_body(body, TS)

    assert event.details['destroyed'] is True
    assert event.actor_id == ALICE


def test_raid_filters():
    decay = classify_body(f'Building (WoodWall) owned by ({OWNER}_+_|def) damaged (5.0) by Decayfalse', TS)
    zeek = classify_body(f'Building (WoodWall) owned by ({OWNER}_+_|def) damaged (5.0) by Zeek', TS)
    own = classify_body(f'Building (WoodWall) owned by ({ALICE}_+_|abc) damaged (5.0) by Alice({ALICE}_+_|abc)', TS)
    no_owner = classify_body(f'Building (WoodWall) owned by (Unknown) damaged (5.0) by Alice({ALICE}_+_|abc)', TS)

    assert decay.ignored and decay.reason == 'non-player attacker'
    assert zeek.ignored and zeek.reason == 'non-player attacker'
    assert own.ignored and own.reason == 'own building'
    assert no_owner.ignored and no_owner.reason == 'no owner id'


def test_raid_without_attacker_id_still_counts():
    event = classify_body(f'Building (WoodWall) owned by ({OWNER}_+_|def) damaged (5.0) by Zombie', TS)

    assert event.kind == EVENT_RAID
    assert event.actor_id is None
    assert event.actor_name == 'Zombie'
    assert not event.ignored


def test_admin_access():
    event = classify_body('Carol gained admin access!', TS)

    assert event.kind == EVENT_ADMIN
    assert event.actor_name == 'Carol'


def test_cheat_flags():
    stack = classify_body('Stack limit detected in drop function (Dave - 76561198000000004)', TS)
    odd = classify_body('Odd behavior detected, possible Cheat (Eve - 76561198000000005) at location', TS)

    assert stack.kind == EVENT_CHEAT
    assert stack.actor_name == 'Dave'
    assert stack.actor_id == '76561198000000004'
    assert stack.details['type'] == 'Stack limit detected in drop function'

    assert odd.kind == EVENT_CHEAT
    assert odd.actor_name == 'Eve'
    assert odd.details['type'] == 'Odd behavior detected, possible Cheat'


def test_unknown_body_is_not_classified():
    assert classify_body('Server restarted', TS) is None
    assert classify_body('', TS) is None


def test_every_kind_has_a_rule():
    assert {rule.kind for rule in EVENT_RULES} == set(EVENT_KINDS)


def test_first_matching_rule_wins():
    # Matches both the death and the damage shapes; death comes first
    body = 'Player died (Bob took 5 damage from Zed)'
    event = classify_body(body, TS)

    assert event.kind == EVENT_DEATH
    assert event.actor_name == 'Bob took 5 damage from Zed'

    damage_first = [rule for rule in EVENT_RULES if rule.kind == EVENT_DAMAGE] + list(EVENT_RULES)
    assert classify_body(body, TS, damage_first).kind == EVENT_DAMAGE


if __name__ == "__main__":
    test_death()
    test_build_simplifies_item_name()
    test_damage_is_categorised()
    test_raid_filters()
    test_first_matching_rule_wins()
    print("Event classifier tests passed")
