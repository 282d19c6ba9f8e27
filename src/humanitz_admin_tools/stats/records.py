"""
Player record model for HumanitZ stats.

PlayerRecord is the canonical per-player entry of player-stats.json, keyed by
Steam ID. ProvisionalRecord holds what the log attributes to a bare display name
(deaths, damage, admin access) until that name can be tied to a Steam ID.

Records are snake_case in Python and camelCase in the persisted JSON; to_dict()
and from_dict() are the only places that know about the JSON spelling.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

from ..log.line_parser import from_iso, to_iso

# Key prefix for records that could never be tied to a Steam ID
UNRESOLVED_PREFIX = 'name:'

# Counters compared by the validation report, in JSON spelling
VALIDATED_FIELDS = ('deaths', 'builds', 'raidsOut', 'containersLooted')

_COUNTER_FIELDS = (
    ('deaths', 'deaths'),
    ('builds', 'builds'),
    ('raids_out', 'raidsOut'),
    ('raids_in', 'raidsIn'),
    ('destroyed_out', 'destroyedOut'),
    ('destroyed_in', 'destroyedIn'),
    ('containers_looted', 'containersLooted'),
    ('connects', 'connects'),
    ('disconnects', 'disconnects'),
    ('admin_access', 'adminAccess'),
)


def unresolved_key(name: str) -> str:
    return f"{UNRESOLVED_PREFIX}{name}"


def is_unresolved_key(key: str) -> bool:
    return key.startswith(UNRESOLVED_PREFIX)


def _advance(current: Optional[datetime], candidate: Optional[datetime]) -> Optional[datetime]:
    """Return the later of two instants, treating None as 'never'."""
    if candidate is None:
        return current
    if current is None or candidate > current:
        return candidate
    return current


def _count(value: Any) -> int:
    try:
        return max(int(value or 0), 0)
    except (TypeError, ValueError):
        return 0


@dataclass
class ProvisionalRecord:
    """Partial counters for an actor known only by display name."""
    name: str
    deaths: int = 0
    admin_access: int = 0
    damage_taken: Dict[str, int] = field(default_factory=dict)
    last_event: Optional[datetime] = None

    def touch(self, timestamp: datetime) -> None:
        self.last_event = _advance(self.last_event, timestamp)

    def to_unresolved_dict(self) -> Dict[str, Any]:
        """Full player-stats entry for a name that never resolved to a Steam ID."""
        record = PlayerRecord(self.name)
        record.absorb(self)
        return record.to_dict()


@dataclass
class PlayerRecord:
    """
    Canonical stats for one player.

    Counters only ever grow during a run. last_event never moves backwards, so
    events may be attributed out of order without corrupting it.
    """
    name: str
    name_history: List[Dict[str, Optional[str]]] = field(default_factory=list)
    deaths: int = 0
    builds: int = 0
    build_items: Dict[str, int] = field(default_factory=dict)
    raids_out: int = 0
    raids_in: int = 0
    destroyed_out: int = 0
    destroyed_in: int = 0
    containers_looted: int = 0
    damage_taken: Dict[str, int] = field(default_factory=dict)
    connects: int = 0
    disconnects: int = 0
    admin_access: int = 0
    cheat_flags: List[Dict[str, Optional[str]]] = field(default_factory=list)
    last_event: Optional[datetime] = None

    def rename(self, new_name: str, until: Optional[datetime] = None) -> bool:
        """
        Change the display name, recording the previous one in name_history.

        A change of letter case only is not a rename: the name is updated but no
        history entry is written.

        Returns:
            True if a history entry was appended.
        """
        new_name = new_name.strip()
        if not new_name or new_name == self.name:
            return False
        if new_name.lower() == self.name.lower():
            self.name = new_name
            return False
        if self.name:
            self.name_history.append({'name': self.name, 'until': to_iso(until)})
        self.name = new_name
        return True

    def touch(self, timestamp: datetime) -> None:
        self.last_event = _advance(self.last_event, timestamp)

    def add_build(self, item: str) -> None:
        self.builds += 1
        self.build_items[item] = self.build_items.get(item, 0) + 1

    def add_damage(self, category: str, hits: int = 1) -> None:
        self.damage_taken[category] = self.damage_taken.get(category, 0) + hits

    def add_cheat_flag(self, flag_type: str, timestamp: datetime) -> None:
        self.cheat_flags.append({'type': flag_type, 'timestamp': to_iso(timestamp)})

    def absorb(self, provisional: ProvisionalRecord) -> None:
        """Fold a provisional record's counters into this record."""
        self.deaths += provisional.deaths
        self.admin_access += provisional.admin_access
        for category, hits in provisional.damage_taken.items():
            self.add_damage(category, hits)
        self.touch(provisional.last_event)

    @property
    def activity_score(self) -> int:
        return self.deaths + self.builds + self.raids_out + self.containers_looted

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            'name': self.name,
            'nameHistory': [dict(entry) for entry in self.name_history],
        }
        for attr, key in _COUNTER_FIELDS[:2]:
            data[key] = getattr(self, attr)
        data['buildItems'] = dict(self.build_items)
        for attr, key in _COUNTER_FIELDS[2:7]:
            data[key] = getattr(self, attr)
        data['damageTaken'] = dict(self.damage_taken)
        for attr, key in _COUNTER_FIELDS[7:]:
            data[key] = getattr(self, attr)
        data['cheatFlags'] = [dict(flag) for flag in self.cheat_flags]
        data['lastEvent'] = to_iso(self.last_event)
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any], default_name: str = '') -> 'PlayerRecord':
        """
        Build a record from a persisted entry, defaulting every absent field.

        Args:
            data: Entry of the persisted players mapping
            default_name: Name to use when the entry carries none (usually the key)
        """
        record = cls(str(data.get('name') or default_name))
        for attr, key in _COUNTER_FIELDS:
            setattr(record, attr, _count(data.get(key)))
        record.name_history = [dict(entry) for entry in data.get('nameHistory') or [] if isinstance(entry, dict)]
        record.build_items = {str(k): _count(v) for k, v in (data.get('buildItems') or {}).items()}
        record.damage_taken = {str(k): _count(v) for k, v in (data.get('damageTaken') or {}).items()}
        record.cheat_flags = [dict(flag) for flag in data.get('cheatFlags') or [] if isinstance(flag, dict)]
        record.last_event = from_iso(data.get('lastEvent'))
        return record
