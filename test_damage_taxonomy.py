#!/usr/bin/env python3
"""
Tests for damage source classification and blueprint name cleanup.
"""

import os
import sys

sys.path.insert(0, os.path.join(os.path.dirname(__file__), 'src'))

from humanitz_admin_tools.log.damage_taxonomy import (
    CATEGORIES, DAMAGE_SOURCE_RULES, classify_damage_source, simplify_blueprint_name,
)

EXPECTED_CATEGORIES = {
    'BP_Dogzombie_C_2147480001': 'Dog Zombie',
    'BP_ZombieBear_C_2147480002': 'Zombie Bear',
    'BP_ZombieMutant_C_2147480003': 'Mutant',
    'BP_ZombieRunnerBrute_C_2147480004': 'Runner Brute',
    'BP_ZombieRunner_C_2147480005': 'Runner',
    'BP_ZombieBrute_C_2147480006': 'Brute',
    'BP_ZombiePudge_C_2147480007': 'Bloater',
    'BP_BellyToxic_C_2147480008': 'Bloater',
    'BP_ZombiePolice_C_2147480009': 'Armoured',
    'BP_ZombieHazmat_C_2147480010': 'Armoured',
    'BP_PawnZombie2_C_2147480011': 'Zombie',
    'BP_KaiHuman_C_2147480012': 'Bandit',
    'BP_Wolf_C_2147480013': 'Wolf',
    'BP_Bear_C_2147480014': 'Bear',
    'BP_Deer_C_2147480015': 'Deer',
    'BP_Snake_C_2147480016': 'Snake',
    'BP_Spider_C_2147480017': 'Spider',
    'BP_Human_C_2147480018': 'NPC',
}


def test_creature_categories():
    for source, category in EXPECTED_CATEGORIES.items():
        assert classify_damage_source(source) == category, source


def test_overlapping_rules_resolve_to_most_specific():
    # Runner Brute contains both "Runner" and "Brute"
    assert classify_damage_source('BP_BruteRunner_C_1') == 'Runner Brute'
    # Zombie bears are not plain bears or zombies
    assert classify_damage_source('BP_ZombieBear_C_1') == 'Zombie Bear'
    # Bandits are humans, but the bandit rule comes first
    assert classify_damage_source('BP_KaiHuman_C_1') == 'Bandit'


def test_rules_are_case_insensitive():
    assert classify_damage_source('bp_pawnzombie_c_1') == 'Zombie'
    assert classify_damage_source('BP_WOLF_C_1') == 'Wolf'


def test_player_and_other_fallbacks():
    assert classify_damage_source('SomePlayer') == 'Player'
    assert classify_damage_source('BP_Car_C_2147480099') == 'Other'


def test_rules_are_exposed_as_ordered_data():
    assert DAMAGE_SOURCE_RULES[0].category == 'Dog Zombie'
    assert DAMAGE_SOURCE_RULES[-1].category == 'NPC'
    assert CATEGORIES[-2:] == ('Player', 'Other')

    rule = next(rule for rule in DAMAGE_SOURCE_RULES if rule.category == 'Runner')
    assert rule.matches('BP_ZombieRunner_C_1')
    assert not rule.matches('BP_Wolf_C_1')

    # A reordered rule list gives the generic category first
    reordered = [rule for rule in DAMAGE_SOURCE_RULES if rule.category == 'Zombie']
    assert classify_damage_source('BP_ZombieRunner_C_1', reordered) == 'Zombie'


def test_simplify_blueprint_name():
    assert simplify_blueprint_name('BP_Rain_Collector_C_2147481234') == 'Rain Collector'
    assert simplify_blueprint_name('BP_WoodWall_C') == 'WoodWall'
    assert simplify_blueprint_name('BP_Metal_Door_C_2147481234_Upgraded') == 'Metal Door'
    assert simplify_blueprint_name('Campfire') == 'Campfire'


if __name__ == "__main__":
    test_creature_categories()
    test_overlapping_rules_resolve_to_most_specific()
    test_player_and_other_fallbacks()
    test_simplify_blueprint_name()
    print("Damage taxonomy tests passed")
