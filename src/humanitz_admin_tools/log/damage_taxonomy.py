"""
Damage source taxonomy for HumanitZ.

Maps the raw attacker token of a damage line (e.g. ``BP_PawnZombie2_C_123``,
``BP_Wolf_C_456`` or a player name) to a coarse category. Categories overlap, so
the rules are evaluated top to bottom and the first match wins: a runner brute
must be caught before the plain runner and brute rules, zombie bears before bears.
"""

import re
from dataclasses import dataclass
from typing import Pattern, Sequence

BLUEPRINT_PREFIX = 'BP_'

PLAYER_CATEGORY = 'Player'
OTHER_CATEGORY = 'Other'


@dataclass(frozen=True)
class DamageSourceRule:
    """One ordered taxonomy rule: a case-insensitive pattern and the category it yields."""
    category: str
    pattern: Pattern

    def matches(self, source: str) -> bool:
        return bool(self.pattern.search(source))


def _rule(category: str, regexp: str) -> DamageSourceRule:
    return DamageSourceRule(category, re.compile(regexp, re.IGNORECASE))


DAMAGE_SOURCE_RULES = (
    _rule('Dog Zombie', r'Dogzombie'),
    _rule('Zombie Bear', r'ZombieBear'),
    _rule('Mutant', r'Mutant'),
    _rule('Runner Brute', r'Runner.*Brute|Brute.*Runner|RunnerBrute'),
    _rule('Runner', r'Runner'),
    _rule('Brute', r'Brute'),
    _rule('Bloater', r'Pudge|BellyToxic'),
    _rule('Armoured', r'Police|Cop|MilitaryArmoured|Camo|Hazmat'),
    _rule('Zombie', r'Zombie'),
    _rule('Bandit', r'KaiHuman'),
    _rule('Wolf', r'Wolf'),
    _rule('Bear', r'Bear'),
    _rule('Deer', r'Deer'),
    _rule('Snake', r'Snake'),
    _rule('Spider', r'Spider'),
    _rule('NPC', r'Human'),
)

CATEGORIES = tuple(rule.category for rule in DAMAGE_SOURCE_RULES) + (PLAYER_CATEGORY, OTHER_CATEGORY)


def classify_damage_source(source: str, rules: Sequence[DamageSourceRule] = DAMAGE_SOURCE_RULES) -> str:
    """
    Classify a raw damage source token.

    Args:
        source: Raw attacker token from the damage line
        rules: Ordered rules to evaluate (defaults to DAMAGE_SOURCE_RULES)

    Returns:
        The category of the first matching rule. Tokens without a blueprint
        prefix that match nothing are players; unmatched blueprints are "Other".
    """
    for rule in rules:
        if rule.matches(source):
            return rule.category
    if not source.startswith(BLUEPRINT_PREFIX):
        return PLAYER_CATEGORY
    return OTHER_CATEGORY


def simplify_blueprint_name(raw_name: str) -> str:
    """
    Turn a blueprint class name into a readable item name.

    >>> simplify_blueprint_name('BP_Rain_Collector_C_2147481234')
    'Rain Collector'
    """
    name = re.sub(r'^BP_', '', raw_name)
    name = re.sub(r'_C_\d+.*$', '', name)
    name = re.sub(r'_C$', '', name)
    return name.replace('_', ' ').strip()
