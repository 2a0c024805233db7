# demo_header_parser.py

import logging
from dataclasses import dataclass, asdict
from pathlib import Path
from typing import Any, ClassVar, Dict, Union

from demo_stats.bitreader import BitReader
from demo_stats.exceptions import FormatError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DemoHeader:
    """
    HL2DEMO file header.
    References:
    - HL2DEMO format: https://developer.valvesoftware.com/wiki/DEM_Format
    - String fields are fixed 260-byte NUL-padded buffers
    """

    MAGIC: ClassVar[str] = "HL2DEMO"
    DEMO_PROTOCOL: ClassVar[int] = 4
    MAGIC_SIZE: ClassVar[int] = 8
    STRING_LENGTH: ClassVar[int] = 260
    HEADER_SIZE: ClassVar[int] = 1072
    DEFAULT_TICK_RATE: ClassVar[float] = 64.0

    magic: str = MAGIC
    demo_protocol: int = DEMO_PROTOCOL
    network_protocol: int = 0
    server_name: str = ""
    client_name: str = ""
    map_name: str = ""
    game_directory: str = ""
    playback_time: float = 0.0
    ticks: int = 0
    frames: int = 0
    signon_length: int = 0

    @property
    def tick_rate(self) -> float:
        """Frames per second of playback, used for every tick to seconds conversion"""
        if self.playback_time <= 0:
            return self.DEFAULT_TICK_RATE
        return self.frames / self.playback_time

    def as_seconds(self, ticks: int) -> float:
        return ticks / self.tick_rate

    @classmethod
    def from_reader(cls, reader: BitReader) -> 'DemoHeader':
        """Read and validate the header at the reader's position"""
        magic = reader.read_fixed_c_string(cls.MAGIC_SIZE)
        if magic != cls.MAGIC:
            raise FormatError(f"Invalid demo file magic: '{magic}', expected '{cls.MAGIC}'", 0)

        demo_protocol = reader.read_i32()
        if demo_protocol != cls.DEMO_PROTOCOL:
            raise FormatError(
                f"Unsupported demo protocol {demo_protocol}, expected {cls.DEMO_PROTOCOL}",
                cls.MAGIC_SIZE
            )

        header = cls(
            magic=magic,
            demo_protocol=demo_protocol,
            network_protocol=reader.read_i32(),
            server_name=reader.read_fixed_c_string(cls.STRING_LENGTH),
            client_name=reader.read_fixed_c_string(cls.STRING_LENGTH),
            map_name=reader.read_fixed_c_string(cls.STRING_LENGTH),
            game_directory=reader.read_fixed_c_string(cls.STRING_LENGTH),
            playback_time=reader.read_f32(),
            ticks=reader.read_i32(),
            frames=reader.read_i32(),
            signon_length=reader.read_i32(),
        )
        if header.playback_time <= 0:
            logger.warning(
                f"Playback time {header.playback_time} is not positive, "
                f"assuming {cls.DEFAULT_TICK_RATE} ticks/second"
            )
        logger.debug(f"Parsed header: {header}")
        return header

    @classmethod
    def from_bytes(cls, raw_data: bytes) -> 'DemoHeader':
        return cls.from_reader(BitReader.from_bytes(raw_data))

    @classmethod
    def from_file(cls, demo_path: Union[str, Path]) -> 'DemoHeader':
        """Create header directly from a demo file"""
        path = Path(demo_path)
        if not path.exists():
            raise FileNotFoundError(f"Demo file not found: {path}")

        with path.open('rb') as f:
            return cls.from_bytes(f.read(cls.HEADER_SIZE))

    def to_dict(self) -> Dict[str, Any]:
        """Convert header to a dictionary format for serialization"""
        return asdict(self)

    def __str__(self) -> str:
        return (
            f"{self.magic} demo (protocol {self.demo_protocol}/{self.network_protocol})\n"
            f"Map: {self.map_name}\n"
            f"Server: {self.server_name}\n"
            f"Duration: {self.playback_time:.2f}s\n"
            f"Ticks: {self.ticks}"
        )
