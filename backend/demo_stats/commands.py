import logging
from dataclasses import dataclass
from enum import IntEnum
from typing import Any, Callable, Iterator, Mapping

from google.protobuf.message import DecodeError

from demo_stats import netmessages
from demo_stats.bitreader import BitReader
from demo_stats.exceptions import FormatError, TruncationError

logger = logging.getLogger(__name__)


class CommandType(IntEnum):
    """Network message ids the aggregator understands (SVC_Messages)"""
    CREATE_STRING_TABLE = netmessages.svc_CreateStringTable
    UPDATE_STRING_TABLE = netmessages.svc_UpdateStringTable
    USER_MESSAGE = netmessages.svc_UserMessage
    GAME_EVENT = netmessages.svc_GameEvent
    GAME_EVENT_LIST = netmessages.svc_GameEventList


def _protobuf_decoder(message_class) -> Callable[[bytes], Any]:
    def decode(data: bytes):
        message = message_class()
        message.ParseFromString(data)
        return message
    return decode


DEFAULT_DECODERS: Mapping[int, Callable[[bytes], Any]] = {
    CommandType.CREATE_STRING_TABLE: _protobuf_decoder(netmessages.CSVCMsg_CreateStringTable),
    CommandType.UPDATE_STRING_TABLE: _protobuf_decoder(netmessages.CSVCMsg_UpdateStringTable),
    CommandType.USER_MESSAGE: _protobuf_decoder(netmessages.CSVCMsg_UserMessage),
    CommandType.GAME_EVENT: _protobuf_decoder(netmessages.CSVCMsg_GameEvent),
    CommandType.GAME_EVENT_LIST: _protobuf_decoder(netmessages.CSVCMsg_GameEventList),
}


@dataclass(frozen=True)
class Command:
    kind: int
    message: Any


class CommandFramer:
    """Splits a packet payload into varint framed (id, length, body) records"""

    def __init__(self, decoders: Mapping[int, Callable[[bytes], Any]] = DEFAULT_DECODERS):
        self.decoders = decoders

    def parse(self, data: bytes, offset: int = 0) -> Iterator[Command]:
        """Yield the commands in `data`; `offset` is its position in the demo file"""
        reader = BitReader.from_bytes(data, offset)
        while True:
            start = reader.offset
            try:
                cmd = reader.read_var_u32()
            except TruncationError:
                return

            size = reader.read_var_u32()
            body = reader.read(size)

            decoder = self.decoders.get(cmd)
            if decoder is None:
                continue

            try:
                message = decoder(body)
            except DecodeError as e:
                raise FormatError(f"Could not decode message {cmd}: {e}", start) from e

            yield Command(cmd, message)


def parse_commands(data: bytes) -> Iterator[Command]:
    return CommandFramer().parse(data)
