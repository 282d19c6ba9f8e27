"""
HumanitZ event classifier.

Turns the body of an HMZLog.log line into a ClassifiedEvent. Rules are kept as an
ordered tuple (EVENT_RULES) and evaluated top to bottom; the first rule whose
pattern matches owns the line and later rules are never tried, even when the
matching rule then filters the event out (zero damage, self loot, decay raids).
"""

import logging
import re
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Dict, Optional, Pattern, Sequence

from .damage_taxonomy import classify_damage_source, simplify_blueprint_name

logger = logging.getLogger(__name__)

# Event kinds
EVENT_DEATH = 'death'
EVENT_BUILD = 'build'
EVENT_DAMAGE = 'damage'
EVENT_LOOT = 'loot'
EVENT_RAID = 'raid'
EVENT_ADMIN = 'admin'
EVENT_CHEAT = 'cheat'

EVENT_KINDS = (EVENT_DEATH, EVENT_BUILD, EVENT_DAMAGE, EVENT_LOOT, EVENT_RAID, EVENT_ADMIN, EVENT_CHEAT)

# Raid attackers that are the world, not a player
NON_PLAYER_ATTACKERS = frozenset({'Decayfalse', 'Zeek'})

STEAM_ID_PATTERN = re.compile(r'^(\d{17})')


@dataclass
class ClassifiedEvent:
    """
    A log body matched by one of the classification rules.

    ``ignored`` events matched a rule but must not change any counter; ``reason``
    says which filter applied. They are still returned so activity-based playtime
    estimation can see that the actor was online.
    """
    kind: str
    timestamp: datetime
    actor_name: Optional[str] = None
    actor_id: Optional[str] = None
    owner_id: Optional[str] = None
    details: Dict[str, Any] = field(default_factory=dict)
    ignored: bool = False
    reason: Optional[str] = None


@dataclass(frozen=True)
class EventRule:
    """An ordered classification rule: the body pattern and the extractor for its payload."""
    kind: str
    pattern: Pattern
    extract: Callable[[Any, datetime], ClassifiedEvent]

    def apply(self, body: str, timestamp: datetime) -> Optional[ClassifiedEvent]:
        match = self.pattern.match(body)
        if not match:
            return None
        return self.extract(match, timestamp)


def parse_amount(text: str) -> float:
    """Read the leading number of a damage amount; anything unreadable counts as 0."""
    match = re.match(r'\d+(?:\.\d*)?|\.\d+', text)
    return float(match.group()) if match else 0.0


def _extract_death(match, timestamp: datetime) -> ClassifiedEvent:
    return ClassifiedEvent(EVENT_DEATH, timestamp, actor_name=match.group('name').strip())


def _extract_build(match, timestamp: datetime) -> ClassifiedEvent:
    raw_item = match.group('item').strip()
    return ClassifiedEvent(
        EVENT_BUILD, timestamp,
        actor_name=match.group('name').strip(),
        actor_id=match.group('steam_id'),
        details={'item': simplify_blueprint_name(raw_item), 'raw_item': raw_item},
    )


def _extract_damage(match, timestamp: datetime) -> ClassifiedEvent:
    amount = parse_amount(match.group('amount'))
    source = match.group('source').strip()
    event = ClassifiedEvent(
        EVENT_DAMAGE, timestamp,
        actor_name=match.group('name').strip(),
        details={'amount': amount, 'source': source, 'category': classify_damage_source(source)},
    )
    if amount <= 0:
        event.ignored = True
        event.reason = 'non-positive damage'
    return event


def _extract_loot(match, timestamp: datetime) -> ClassifiedEvent:
    event = ClassifiedEvent(
        EVENT_LOOT, timestamp,
        actor_name=match.group('name').strip(),
        actor_id=match.group('steam_id'),
        owner_id=match.group('owner_id'),
    )
    if event.actor_id == event.owner_id:
        event.ignored = True
        event.reason = 'own container'
    return event


def _extract_raid(match, timestamp: datetime) -> ClassifiedEvent:
    owner_match = STEAM_ID_PATTERN.match(match.group('owner').strip())
    event = ClassifiedEvent(
        EVENT_RAID, timestamp,
        actor_name=match.group('attacker').strip(),
        actor_id=match.group('attacker_id'),
        owner_id=owner_match.group(1) if owner_match else None,
        details={
            'building': match.group('building'),
            'destroyed': bool(match.group('destroyed')),
        },
    )
    if event.actor_name in NON_PLAYER_ATTACKERS:
        event.ignored = True
        event.reason = 'non-player attacker'
    elif event.actor_id and event.owner_id and event.actor_id == event.owner_id:
        event.ignored = True
        event.reason = 'own building'
    elif not event.owner_id:
        event.ignored = True
        event.reason = 'no owner id'
    return event


def _extract_admin(match, timestamp: datetime) -> ClassifiedEvent:
    return ClassifiedEvent(EVENT_ADMIN, timestamp, actor_name=match.group('name').strip())


def _extract_cheat(match, timestamp: datetime) -> ClassifiedEvent:
    return ClassifiedEvent(
        EVENT_CHEAT, timestamp,
        actor_name=match.group('name').strip(),
        actor_id=match.group('steam_id'),
        details={'type': match.group('flag_type').strip()},
    )


EVENT_RULES = (
    EventRule(EVENT_DEATH, re.compile(r'^Player died \((?P<name>.+)\)$'), _extract_death),
    EventRule(
        EVENT_BUILD,
        re.compile(r'^(?P<name>.+?)\((?P<steam_id>\d{17})[^)]*\)\s*finished building\s+(?P<item>.+)$'),
        _extract_build,
    ),
    EventRule(
        EVENT_DAMAGE,
        re.compile(r'^(?P<name>.+?)\s+took\s+(?P<amount>[\d.]+)\s+damage from\s+(?P<source>.+)$'),
        _extract_damage,
    ),
    EventRule(
        EVENT_LOOT,
        re.compile(r'^(?P<name>.+?)\s*\((?P<steam_id>\d{17})[^)]*\)\s*looted a container\s*\([^)]+\)\s*'
                   r'owner by\s*(?P<owner_id>\d{17})'),
        _extract_loot,
    ),
    EventRule(
        EVENT_RAID,
        re.compile(r'^Building \((?P<building>[^)]+)\) owned by \((?P<owner>[^)]*)\) damaged \([\d.]+\) by '
                   r'(?P<attacker>.+?)(?:\((?P<attacker_id>\d{17})[^)]*\))?(?P<destroyed>\s*\(Destroyed\))?$'),
        _extract_raid,
    ),
    EventRule(EVENT_ADMIN, re.compile(r'^(?P<name>.+?)\s+gained admin access!$'), _extract_admin),
    EventRule(
        EVENT_CHEAT,
        re.compile(r'^(?P<flag_type>Stack limit detected in drop function|Odd behavior.*?Cheat)\s*'
                   r'\((?P<name>.+?)\s*-\s*(?P<steam_id>\d{17})'),
        _extract_cheat,
    ),
)


def classify_body(body: str, timestamp: datetime,
                  rules: Sequence[EventRule] = EVENT_RULES) -> Optional[ClassifiedEvent]:
    """
    Classify an event body.

    Args:
        body: Event body (the part after the timestamp envelope)
        timestamp: UTC instant of the line
        rules: Ordered rules to evaluate (defaults to EVENT_RULES)

    Returns:
        The event produced by the first matching rule, or None for bodies no rule
        models (those are tolerated, not errors).
    """
    for rule in rules:
        event = rule.apply(body, timestamp)
        if event is not None:
            if event.ignored:
                logger.debug(f"Filtered {rule.kind} event ({event.reason}): {body}")
            return event
    return None
