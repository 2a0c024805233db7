import pytest

from conftest import frame, varint
from demo_stats import netmessages
from demo_stats.commands import CommandFramer, CommandType, parse_commands
from demo_stats.exceptions import FormatError, TruncationError


def test_parse_known_commands():
    update = netmessages.CSVCMsg_UpdateStringTable(table_id=3, num_changed_entries=1, string_data=b'\x01')
    event = netmessages.CSVCMsg_GameEvent(eventid=7)
    data = frame(CommandType.UPDATE_STRING_TABLE, update) + frame(CommandType.GAME_EVENT, event)

    commands = list(parse_commands(data))
    assert [c.kind for c in commands] == [CommandType.UPDATE_STRING_TABLE, CommandType.GAME_EVENT]
    assert commands[0].message.table_id == 3
    assert commands[0].message.string_data == b'\x01'
    assert commands[1].message.eventid == 7


def test_unknown_commands_are_skipped():
    event = netmessages.CSVCMsg_GameEvent(eventid=1)
    data = frame(4, b'\x08\x01') + frame(CommandType.GAME_EVENT, event) + frame(200, b'x' * 300)

    commands = list(parse_commands(data))
    assert len(commands) == 1
    assert commands[0].message.eventid == 1


def test_empty_payload():
    assert list(parse_commands(b'')) == []


def test_truncated_body():
    data = varint(CommandType.GAME_EVENT) + varint(10) + b'\x08\x01'
    with pytest.raises(TruncationError):
        list(parse_commands(data))


def test_truncated_length():
    with pytest.raises(TruncationError):
        list(parse_commands(varint(CommandType.GAME_EVENT)))


def test_undecodable_body():
    good = frame(CommandType.GAME_EVENT, netmessages.CSVCMsg_GameEvent(eventid=1))
    # Field 1 declared as length delimited with a length past the end
    data = good + frame(CommandType.GAME_EVENT, b'\x0a\x05ab')
    with pytest.raises(FormatError) as excinfo:
        list(parse_commands(data))
    assert excinfo.value.offset == len(good)


def test_custom_decoders():
    framer = CommandFramer({99: lambda body: body.upper()})
    commands = list(framer.parse(frame(99, b'abc') + frame(CommandType.GAME_EVENT, b'')))
    assert [(c.kind, c.message) for c in commands] == [(99, b'ABC')]


def test_errors_report_file_offsets():
    good = frame(CommandType.GAME_EVENT, netmessages.CSVCMsg_GameEvent(eventid=1))
    with pytest.raises(FormatError) as excinfo:
        list(CommandFramer().parse(good + frame(CommandType.GAME_EVENT, b'\x0a\x05ab'), offset=1242))
    assert excinfo.value.offset == 1242 + len(good)

    data = varint(CommandType.GAME_EVENT) + varint(10) + b'\x08\x01'
    with pytest.raises(TruncationError) as excinfo:
        list(CommandFramer().parse(data, offset=2000))
    assert excinfo.value.offset == 2000 + len(data)
