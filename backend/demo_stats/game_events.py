from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional, Union

from demo_stats.exceptions import EventParsingError, SchemaMismatch

logger = logging.getLogger(__name__)

TEAM_TERRORIST = 2
TEAM_CT = 3

IGNORED_EVENTS = frozenset({
    "player_footstep",
    "weapon_fire",
    "weapon_reload",
    "player_hurt",
    "item_pickup",
})


class KeyKind(Enum):
    """Populated slot of a game event key, in wire field order"""
    STRING = "val_string"
    FLOAT = "val_float"
    LONG = "val_long"
    SHORT = "val_short"
    BYTE = "val_byte"
    BOOL = "val_bool"
    UINT64 = "val_uint64"
    WSTRING = "val_wstring"
    EMPTY = None


@dataclass(frozen=True)
class KeyValue:
    """One game event field value together with its type tag"""
    kind: KeyKind
    value: Any = None

    @classmethod
    def from_proto(cls, key) -> KeyValue:
        for kind in KeyKind:
            if kind is not KeyKind.EMPTY and key.HasField(kind.value):
                return cls(kind, getattr(key, kind.value))
        return cls(KeyKind.EMPTY)

    def __str__(self) -> str:
        if self.kind is KeyKind.EMPTY:
            return "[empty]"
        if self.kind is KeyKind.WSTRING:
            return f"[wstring] {self.value.decode('utf-8', errors='replace')}"
        return f"[{self.kind.name.lower()}] {self.value}"


@dataclass(frozen=True)
class EventDescriptor:
    event_id: int
    name: str
    keys: Dict[int, str] = field(default_factory=dict)


# Typed events

@dataclass(frozen=True)
class Filtered:
    pass


@dataclass(frozen=True)
class BeginNewMatch:
    pass


@dataclass(frozen=True)
class RoundStart:
    pass


@dataclass(frozen=True)
class RoundOfficiallyEnded:
    pass


@dataclass(frozen=True)
class RoundEnd:
    t_won: bool


@dataclass(frozen=True)
class ItemEquip:
    user_id: int
    item: str


@dataclass(frozen=True)
class PlayerSpawn:
    user_id: int
    terrorist: bool


@dataclass(frozen=True)
class PlayerDeath:
    victim: int
    killer: Optional[int] = None
    assister: Optional[int] = None
    flash_assist: bool = False
    weapon: str = ""


@dataclass(frozen=True)
class Other:
    name: str


Event = Union[
    Filtered, BeginNewMatch, RoundStart, RoundOfficiallyEnded, RoundEnd,
    ItemEquip, PlayerSpawn, PlayerDeath, Other,
]


def read_event_names(event_list) -> Dict[int, EventDescriptor]:
    """Build the descriptor table from a CSVCMsg_GameEventList"""
    result = {}
    for descriptor in event_list.descriptors:
        if not (descriptor.HasField("eventid") and descriptor.HasField("name")):
            continue
        keys = {
            i: key.name
            for i, key in enumerate(descriptor.keys)
            if key.HasField("name")
        }
        result[descriptor.eventid] = EventDescriptor(descriptor.eventid, descriptor.name, keys)
    logger.debug(f"Loaded {len(result)} game event descriptors")
    return result


def _optional_id(value: Optional[int]) -> Optional[int]:
    return value if value is not None and value > 0 else None


class EventContext:
    """Turns raw game events into typed events using a descriptor table"""

    def __init__(self, events: Optional[Dict[int, EventDescriptor]] = None):
        self.events = events or {}

    def __len__(self) -> int:
        return len(self.events)

    def parse_game_event(self, ev) -> Event:
        descriptor = self.events.get(ev.eventid) if ev.HasField("eventid") else None
        if descriptor is None:
            if ev.HasField("event_name"):
                logger.debug(ev.event_name)
                return Other(ev.event_name)
            raise SchemaMismatch(f"Game event {ev.eventid} has no descriptor and no name")

        name = descriptor.name
        if name in IGNORED_EVENTS:
            return Filtered()

        fields: Dict[str, KeyValue] = {}
        for i, key in enumerate(ev.keys):
            key_name = descriptor.keys.get(i)
            if key_name is not None:
                fields[key_name] = KeyValue.from_proto(key)

        if logger.isEnabledFor(logging.DEBUG):
            logger.debug(name)
            for key_name, value in fields.items():
                logger.debug(f"- {key_name} = {value}")

        return self._typed_event(name, fields)

    @staticmethod
    def _typed_event(name: str, fields: Dict[str, KeyValue]) -> Event:
        def value(key: str, default: Any = None) -> Any:
            kv = fields.get(key)
            return default if kv is None or kv.value is None else kv.value

        def required(key: str) -> Any:
            result = value(key)
            if result is None:
                raise EventParsingError(name, f"missing field '{key}'")
            return result

        if name == "begin_new_match":
            return BeginNewMatch()
        if name in ("round_announce_match_start", "round_start"):
            return RoundStart()
        if name == "round_officially_ended":
            return RoundOfficiallyEnded()
        if name == "round_end":
            winner = value("winner")
            if winner not in (TEAM_TERRORIST, TEAM_CT):
                raise EventParsingError(name, f"invalid winner {winner}")
            return RoundEnd(t_won=winner == TEAM_TERRORIST)
        if name == "item_equip":
            return ItemEquip(user_id=required("userid"), item=required("item"))
        if name == "player_spawn":
            user_id = required("userid")
            team = required("teamnum")
            if team not in (TEAM_TERRORIST, TEAM_CT):
                return Filtered()
            return PlayerSpawn(user_id=user_id, terrorist=team == TEAM_TERRORIST)
        if name == "player_death":
            return PlayerDeath(
                victim=required("userid"),
                killer=_optional_id(value("attacker")),
                assister=_optional_id(value("assister")),
                flash_assist=bool(value("assistedflash", False)),
                weapon=value("weapon", ""),
            )
        return Other(name)
