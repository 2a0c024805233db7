import logging
import math
from collections import deque
from dataclasses import dataclass, field
from typing import Deque, Dict, Optional, Tuple

from demo_stats.bitreader import BitReader
from demo_stats.exceptions import FormatError
from demo_stats.player_info import PlayerInfo

logger = logging.getLogger(__name__)

PLAYER_TABLE_NAME = "userinfo"

SUBSTRING_BITS = 5
MAX_USERDATA_BITS = 14
MAX_HISTORY = 32


@dataclass
class StringTable:
    """Decode state of a string table that persists between updates"""
    name: str
    max_entries: int
    user_data_fixed_size: bool = False
    user_data_size_bits: Optional[int] = None
    entry_index: int = -1
    entries: Dict[int, Tuple[bytes, bytes]] = field(default_factory=dict)

    @property
    def entry_bits(self) -> int:
        return math.ceil(math.log2(self.max_entries)) if self.max_entries > 1 else 0

    @property
    def is_player_table(self) -> bool:
        return self.name == PLAYER_TABLE_NAME

    def _read_user_data(self, reader: BitReader) -> bytes:
        if self.user_data_fixed_size:
            # Fixed size user data is networked as a bit count, not a byte length
            bits = self.user_data_size_bits
            value = 0
            shift = 0
            while shift < bits:
                chunk = min(32, bits - shift)
                value |= reader.read_bits(chunk) << shift
                shift += chunk
            return value.to_bytes((bits + 7) // 8, 'little')

        size = reader.read_bits(MAX_USERDATA_BITS)
        return reader.read(size)

    def decode(self, num_entries: int, data: bytes) -> Dict[int, PlayerInfo]:
        """
        Apply `num_entries` delta encoded entries from `data`.

        Returns the PlayerInfo records whose user data was written, keyed by
        entry index.
        """
        players: Dict[int, PlayerInfo] = {}
        reader = BitReader.from_bytes(data)
        history: Deque[bytes] = deque(maxlen=MAX_HISTORY)

        if reader.read_bit():
            raise FormatError(f"Dictionary encoding unsupported in table {self.name}", 0)

        for _ in range(num_entries):
            self.entry_index += 1
            if not reader.read_bit():
                self.entry_index = reader.read_bits(self.entry_bits)

            if not 0 <= self.entry_index < self.max_entries:
                raise FormatError(
                    f"Entry index {self.entry_index} out of range for table "
                    f"{self.name} with {self.max_entries} entries",
                    reader.offset
                )

            user_data = b''
            if reader.read_bit():
                if reader.read_bit():
                    index = reader.read_bits(SUBSTRING_BITS)
                    if index >= len(history):
                        raise FormatError(
                            f"History index {index} too large (history size {len(history)})",
                            reader.offset
                        )
                    bytes_to_copy = reader.read_bits(SUBSTRING_BITS)
                    last = history[index]
                    if bytes_to_copy > len(last):
                        raise FormatError(
                            f"Substring length {bytes_to_copy} exceeds history entry of {len(last)} bytes",
                            reader.offset
                        )
                    entry = last[:bytes_to_copy] + reader.read_c_string()
                else:
                    entry = reader.read_c_string()
            else:
                # Content unchanged, keep whatever the entry already holds
                entry, user_data = self.entries.get(self.entry_index, (b'', b''))

            if reader.read_bit():
                user_data = self._read_user_data(reader)
                if self.is_player_table:
                    info = PlayerInfo.from_bytes(self.entry_index, user_data)
                    logger.debug(f"Player info for entry {self.entry_index}: {info.name} ({info.user_id})")
                    players[self.entry_index] = info

            self.entries[self.entry_index] = (entry, user_data)
            history.append(entry)

        return players


def create_string_table(msg) -> Optional[Tuple[StringTable, Dict[int, PlayerInfo]]]:
    """Build the player table from a CSVCMsg_CreateStringTable, ignoring other tables"""
    logger.debug(f"String table created: {msg.name}")
    if msg.name != PLAYER_TABLE_NAME:
        return None

    fixed_size = msg.user_data_fixed_size
    size_bits = msg.user_data_size_bits or None
    if fixed_size and size_bits is None:
        raise FormatError(f"Table {msg.name} has fixed size user data without a bit size")

    table = StringTable(
        name=msg.name,
        max_entries=msg.max_entries,
        user_data_fixed_size=fixed_size,
        user_data_size_bits=size_bits,
    )
    players = table.decode(msg.num_entries, msg.string_data)
    return table, players


def update_string_table(table: StringTable, msg) -> Dict[int, PlayerInfo]:
    return table.decode(msg.num_changed_entries, msg.string_data)
