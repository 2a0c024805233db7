import logging
import os
from pathlib import Path
from typing import BinaryIO, Optional, Union

from demo_stats.bitreader import BitReader
from demo_stats.commands import CommandFramer
from demo_stats.demo_header_parser import DemoHeader
from demo_stats.demo_packet_parser import DemoPacketParser
from demo_stats.exceptions import DemoParserException
from demo_stats.match_state import MatchResult, MatchState

logger = logging.getLogger(__name__)


def parse_game(stream: BinaryIO, framer: Optional[CommandFramer] = None) -> MatchResult:
    """Run one forward pass over a demo stream and return the final rosters"""
    framer = framer or CommandFramer()
    reader = BitReader(stream)

    header = DemoHeader.from_reader(reader)
    logger.info(f"Tickrate: {header.tick_rate:.2f} ticks/second")

    state = MatchState(header)
    packets = DemoPacketParser(reader)
    for packet in packets:
        state.current_tick = packet.tick
        for cmd in framer.parse(packet.data, packet.data_offset):
            state.handle_command(cmd)

    logger.info(f"Finished parsing - Processed {packets.packets_read} packets in {state.current_round} rounds")
    state.print_stats()
    return state.result()


class DemoParser:
    """Parses an HL2DEMO file into per-player match statistics"""

    def __init__(self, demo_path: Union[str, Path]):
        self.demo_path = os.path.abspath(demo_path)
        if not os.path.exists(self.demo_path):
            raise FileNotFoundError(f"Demo file not found: {demo_path}")
        self.result: Optional[MatchResult] = None
        logger.info(f"Initialized parser for {demo_path}")

    def parse(self) -> MatchResult:
        try:
            with open(self.demo_path, 'rb') as demo_file:
                self.result = parse_game(demo_file)
        except DemoParserException as e:
            logger.error(f"Error parsing demo {self.demo_path}: {e}")
            raise
        return self.result
