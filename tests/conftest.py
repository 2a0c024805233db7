"""Shared builders for synthetic demo data."""

import struct

import pytest

from demo_stats import netmessages
from demo_stats.demo_header_parser import DemoHeader
from demo_stats.player_info import PlayerInfo


class BitWriter:
    """Least-significant-bit-first writer mirroring BitReader"""

    def __init__(self):
        self.value = 0
        self.bits = 0

    def write_bits(self, value: int, count: int) -> 'BitWriter':
        self.value |= (value & ((1 << count) - 1)) << self.bits
        self.bits += count
        return self

    def write_bit(self, flag: bool) -> 'BitWriter':
        return self.write_bits(int(flag), 1)

    def write_bytes(self, data: bytes) -> 'BitWriter':
        for byte in data:
            self.write_bits(byte, 8)
        return self

    def write_c_string(self, data: bytes) -> 'BitWriter':
        return self.write_bytes(data + b'\0')

    def to_bytes(self) -> bytes:
        return self.value.to_bytes((self.bits + 7) // 8, 'little')


def varint(value: int) -> bytes:
    out = bytearray()
    while True:
        byte = value & 0x7F
        value >>= 7
        if value:
            out.append(byte | 0x80)
        else:
            out.append(byte)
            return bytes(out)


def frame(cmd: int, message) -> bytes:
    body = message if isinstance(message, bytes) else message.SerializeToString()
    return varint(cmd) + varint(len(body)) + body


def player_info_bytes(user_id: int, name: str, xuid: int = 0, guid: str = "") -> bytes:
    return struct.pack(
        '>Qq128si32sI128sBB4IB',
        0, xuid, name.encode(), user_id, guid.encode(), 0, b'', 0, 0, 0, 0, 0, 0, 0,
    )


def header_bytes(
    server_name: str = "Kanaliiga #2",
    client_name: str = "GOTV Demo",
    map_name: str = "de_vertigo",
    directory: str = "csgo",
    playback_time: float = 100.0,
    ticks: int = 12800,
    frames: int = 6400,
    magic: bytes = b'HL2DEMO',
    demo_protocol: int = 4,
) -> bytes:
    return struct.pack(
        '<8sii260s260s260s260sfiii',
        magic, demo_protocol, 13769,
        server_name.encode(), client_name.encode(), map_name.encode(), directory.encode(),
        playback_time, ticks, frames, 447407,
    )


def record(cmd_type: int, tick: int, payload: bytes = None) -> bytes:
    data = struct.pack('<iB', tick, 0)
    out = bytes([cmd_type]) + data
    if cmd_type in (1, 2):
        out += b'\0' * 152 + struct.pack('<II', 0, 0)
    if payload is not None:
        out += struct.pack('<I', len(payload)) + payload
    return out


def packet(tick: int, *frames: bytes) -> bytes:
    return record(2, tick, b''.join(frames))


def stop(tick: int = 0) -> bytes:
    return record(7, tick)


# Event ids used by event_list()
EVENT_IDS = {
    "begin_new_match": 1,
    "round_start": 2,
    "round_end": 3,
    "round_officially_ended": 4,
    "item_equip": 5,
    "player_spawn": 6,
    "player_death": 7,
    "weapon_fire": 8,
    "bomb_planted": 9,
    "round_announce_match_start": 10,
}

EVENT_KEYS = {
    "round_end": ["winner", "reason", "message"],
    "item_equip": ["userid", "item"],
    "player_spawn": ["userid", "teamnum"],
    "player_death": ["userid", "attacker", "assister", "assistedflash", "weapon"],
    "weapon_fire": ["userid", "weapon"],
    "bomb_planted": ["userid", "site"],
}


def event_list():
    msg = netmessages.CSVCMsg_GameEventList()
    for name, event_id in EVENT_IDS.items():
        descriptor = msg.descriptors.add(eventid=event_id, name=name)
        for key in EVENT_KEYS.get(name, []):
            descriptor.keys.add(type=1, name=key)
    return msg


def game_event(name: str, **values):
    """Build a CSVCMsg_GameEvent with keys in descriptor order"""
    msg = netmessages.CSVCMsg_GameEvent(eventid=EVENT_IDS[name])
    for key in EVENT_KEYS.get(name, []):
        value = values.get(key)
        if value is None:
            msg.keys.add()
        elif isinstance(value, bool):
            msg.keys.add(type=6, val_bool=value)
        elif isinstance(value, str):
            msg.keys.add(type=1, val_string=value)
        elif key in ("winner",):
            msg.keys.add(type=5, val_byte=value)
        else:
            msg.keys.add(type=4, val_short=value)
    return msg


def userinfo_table_data(players, start_index: int = 0) -> bytes:
    """String data for a userinfo table holding `players` (user_id, name, xuid)"""
    writer = BitWriter().write_bit(False)
    for i, (user_id, name, xuid) in enumerate(players):
        if i == 0:
            writer.write_bit(False).write_bits(start_index, 6)
        else:
            writer.write_bit(True)
        writer.write_bit(True).write_bit(False).write_c_string(str(user_id).encode())
        data = player_info_bytes(user_id, name, xuid)
        writer.write_bit(True).write_bits(len(data), 14).write_bytes(data)
    return writer.to_bytes()


def create_userinfo(players, max_entries: int = 64):
    return netmessages.CSVCMsg_CreateStringTable(
        name="userinfo",
        max_entries=max_entries,
        num_entries=len(players),
        user_data_fixed_size=False,
        user_data_size=0,
        user_data_size_bits=0,
        flags=0,
        string_data=userinfo_table_data(players),
    )


@pytest.fixture
def header() -> DemoHeader:
    # 64 ticks per second
    return DemoHeader(playback_time=100.0, ticks=12800, frames=6400)


@pytest.fixture
def make_info():
    def _make(user_id: int, xuid: int = 0, name: str = None) -> PlayerInfo:
        return PlayerInfo(
            xuid=xuid,
            name=name or f"Player {user_id}",
            user_id=user_id,
            guid=f"STEAMGUID-{user_id}",
            friends_name=f"FriendsName{user_id}",
        )
    return _make
