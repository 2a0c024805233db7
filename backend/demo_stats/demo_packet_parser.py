# demo_packet_parser.py

import logging
from dataclasses import dataclass
from enum import IntEnum
from typing import Iterator, Optional, Tuple

from demo_stats.bitreader import BitReader
from demo_stats.exceptions import FormatError, TruncationError

logger = logging.getLogger(__name__)

Vector = Tuple[float, float, float]


class CmdType(IntEnum):
    """Outer per-tick record types of an HL2DEMO file"""
    SIGNON = 1
    PACKET = 2
    SYNCTICK = 3
    CONSOLECMD = 4
    USERCMD = 5
    DATATABLES = 6
    STOP = 7
    CUSTOMDATA = 8
    STRINGTABLES = 9


UNSUPPORTED_TYPES = {
    CmdType.CONSOLECMD,
    CmdType.USERCMD,
    CmdType.CUSTOMDATA,
    CmdType.STRINGTABLES,
}


@dataclass(frozen=True)
class PacketHeader:
    cmd_type: CmdType
    tick: int
    player_slot: int

    @classmethod
    def from_reader(cls, reader: BitReader) -> 'PacketHeader':
        offset = reader.offset
        raw_type = reader.read_u8()
        try:
            cmd_type = CmdType(raw_type)
        except ValueError:
            raise FormatError(f"Unexpected command type: {raw_type}", offset) from None
        return cls(cmd_type=cmd_type, tick=reader.read_i32(), player_slot=reader.read_u8())


@dataclass(frozen=True)
class SplitView:
    flags: int
    view_origin: Vector
    view_angles: Vector
    local_view_angles: Vector
    view_origin2: Vector
    view_angles2: Vector
    local_view_angles2: Vector


@dataclass(frozen=True)
class DemoCmdInfo:
    """Camera information carried by SignOn and Packet records"""
    SPLITSCREEN_CLIENTS = 2

    splits: Tuple[SplitView, ...]

    @staticmethod
    def _read_vector(reader: BitReader) -> Vector:
        return (reader.read_f32(), reader.read_f32(), reader.read_f32())

    @classmethod
    def from_reader(cls, reader: BitReader) -> 'DemoCmdInfo':
        splits = []
        for _ in range(cls.SPLITSCREEN_CLIENTS):
            flags = reader.read_i32()
            vectors = [cls._read_vector(reader) for _ in range(6)]
            splits.append(SplitView(flags, *vectors))
        return cls(splits=tuple(splits))


@dataclass
class DemoPacket:
    """Represents one outer record and its payload"""
    cmd_type: CmdType
    tick: int
    player_slot: int
    data: bytes = b''
    # File offset of the first payload byte
    data_offset: int = 0


class DemoPacketParser:
    """Sequential reader for the outer records following the header"""

    def __init__(self, reader: BitReader):
        self.reader = reader
        self.packets_read = 0

    def read_packet(self) -> Optional[DemoPacket]:
        """Read the next payload-carrying record, or None when the demo ends"""
        while True:
            start = self.reader.offset
            try:
                header = PacketHeader.from_reader(self.reader)
            except TruncationError:
                if self.reader.offset == start:
                    logger.warning(f"Demo ended at offset {start} without a stop record")
                    return None
                raise

            cmd_type = header.cmd_type
            if cmd_type == CmdType.STOP:
                logger.info(f"Reached stop record at tick {header.tick}")
                return None
            if cmd_type == CmdType.SYNCTICK:
                continue
            if cmd_type in UNSUPPORTED_TYPES:
                raise FormatError(f"Unsupported record type {cmd_type.name}", start)

            if cmd_type in (CmdType.SIGNON, CmdType.PACKET):
                DemoCmdInfo.from_reader(self.reader)
                self.reader.read_u32()  # sequence in
                self.reader.read_u32()  # sequence out

            size = self.reader.read_u32()
            data_offset = self.reader.offset
            data = self.reader.read(size)
            self.packets_read += 1

            if cmd_type == CmdType.DATATABLES:
                logger.debug(f"Skipping {size} bytes of data tables at tick {header.tick}")
                continue

            return DemoPacket(cmd_type, header.tick, header.player_slot, data, data_offset)

    def __iter__(self) -> Iterator[DemoPacket]:
        while True:
            packet = self.read_packet()
            if packet is None:
                return
            yield packet
