from dataclasses import dataclass, asdict
from typing import Any, Dict, Tuple

from demo_stats.bitreader import BitReader

MAX_PLAYER_NAME_LENGTH = 128
SIGNED_GUID_LEN = 32
MAX_CUSTOM_FILES = 4


@dataclass(frozen=True)
class PlayerInfo:
    """Player identity record stored as user data of the userinfo string table"""

    # 8 + 8 + 128 + 4 + 32 + 4 + 128 + 1 + 1 + 4 * 4 + 1
    SIZE = 331

    version: int = 0
    xuid: int = 0
    name: str = ""
    user_id: int = 0
    guid: str = ""
    friends_id: int = 0
    friends_name: str = ""
    fake: bool = False
    proxy: bool = False
    custom_files_crc: Tuple[int, int, int, int] = (0, 0, 0, 0)
    files_downloaded: int = 0
    entity_id: int = 0

    @classmethod
    def from_bytes(cls, entry_index: int, data: bytes) -> 'PlayerInfo':
        """Decode the big-endian record; raises TruncationError on short data"""
        reader = BitReader.from_bytes(data)
        return cls(
            version=reader.read_u64_be(),
            xuid=reader.read_i64_be(),
            name=reader.read_fixed_c_string(MAX_PLAYER_NAME_LENGTH),
            user_id=reader.read_i32_be(),
            guid=reader.read_fixed_c_string(SIGNED_GUID_LEN),
            friends_id=reader.read_u32_be(),
            friends_name=reader.read_fixed_c_string(MAX_PLAYER_NAME_LENGTH),
            fake=reader.read_u8() != 0,
            proxy=reader.read_u8() != 0,
            custom_files_crc=tuple(reader.read_u32_be() for _ in range(MAX_CUSTOM_FILES)),
            files_downloaded=reader.read_u8(),
            entity_id=entry_index,
        )

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)
