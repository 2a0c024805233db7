import pytest

from conftest import EVENT_IDS, event_list, game_event
from demo_stats import netmessages
from demo_stats.exceptions import EventParsingError, SchemaMismatch
from demo_stats.game_events import (
    BeginNewMatch,
    EventContext,
    Filtered,
    ItemEquip,
    KeyKind,
    KeyValue,
    Other,
    PlayerDeath,
    PlayerSpawn,
    RoundEnd,
    RoundOfficiallyEnded,
    RoundStart,
    read_event_names,
)


@pytest.fixture
def context():
    return EventContext(read_event_names(event_list()))


def test_read_event_names():
    events = read_event_names(event_list())
    assert len(events) == len(EVENT_IDS)
    death = events[EVENT_IDS["player_death"]]
    assert death.name == "player_death"
    assert death.keys == {0: "userid", 1: "attacker", 2: "assister", 3: "assistedflash", 4: "weapon"}


def test_descriptors_without_id_are_skipped():
    msg = netmessages.CSVCMsg_GameEventList()
    msg.descriptors.add(name="nameless_id")
    msg.descriptors.add(eventid=3)
    assert read_event_names(msg) == {}


@pytest.mark.parametrize("name, expected", [
    ("begin_new_match", BeginNewMatch()),
    ("round_start", RoundStart()),
    ("round_announce_match_start", RoundStart()),
    ("round_officially_ended", RoundOfficiallyEnded()),
])
def test_marker_events(context, name, expected):
    assert context.parse_game_event(game_event(name)) == expected


@pytest.mark.parametrize("winner, t_won", [(2, True), (3, False)])
def test_round_end(context, winner, t_won):
    assert context.parse_game_event(game_event("round_end", winner=winner)) == RoundEnd(t_won=t_won)


@pytest.mark.parametrize("winner", [None, 0, 1])
def test_round_end_invalid_winner(context, winner):
    with pytest.raises(EventParsingError) as excinfo:
        context.parse_game_event(game_event("round_end", winner=winner))
    assert excinfo.value.event_name == "round_end"
    assert isinstance(excinfo.value, SchemaMismatch)


def test_item_equip(context):
    event = context.parse_game_event(game_event("item_equip", userid=4, item="flashbang"))
    assert event == ItemEquip(user_id=4, item="flashbang")


def test_item_equip_missing_item(context):
    with pytest.raises(EventParsingError):
        context.parse_game_event(game_event("item_equip", userid=4))


@pytest.mark.parametrize("team, expected", [
    (2, PlayerSpawn(user_id=5, terrorist=True)),
    (3, PlayerSpawn(user_id=5, terrorist=False)),
    (1, Filtered()),
    (0, Filtered()),
])
def test_player_spawn(context, team, expected):
    assert context.parse_game_event(game_event("player_spawn", userid=5, teamnum=team)) == expected


def test_player_death(context):
    msg = game_event(
        "player_death", userid=3, attacker=7, assister=9, assistedflash=True, weapon="ak47",
    )
    assert context.parse_game_event(msg) == PlayerDeath(
        victim=3, killer=7, assister=9, flash_assist=True, weapon="ak47",
    )


def test_player_death_world_kill(context):
    msg = game_event("player_death", userid=3, attacker=0, assister=0, weapon="world")
    assert context.parse_game_event(msg) == PlayerDeath(victim=3, weapon="world")


def test_player_death_missing_victim(context):
    with pytest.raises(EventParsingError):
        context.parse_game_event(game_event("player_death", attacker=7))


def test_ignored_events_are_filtered(context):
    assert context.parse_game_event(game_event("weapon_fire", userid=1, weapon="ak47")) == Filtered()


def test_unhandled_known_event(context):
    assert context.parse_game_event(game_event("bomb_planted", userid=1, site=2)) == Other("bomb_planted")


def test_unknown_event_with_name(context):
    msg = netmessages.CSVCMsg_GameEvent(eventid=500, event_name="hltv_status")
    assert context.parse_game_event(msg) == Other("hltv_status")


def test_unknown_event_without_name(context):
    with pytest.raises(SchemaMismatch):
        context.parse_game_event(netmessages.CSVCMsg_GameEvent(eventid=500))


def test_events_before_event_list():
    with pytest.raises(SchemaMismatch):
        EventContext().parse_game_event(game_event("round_start"))


@pytest.mark.parametrize("fields, kind, value, text", [
    ({"val_string": "ak47"}, KeyKind.STRING, "ak47", "[string] ak47"),
    ({"val_short": 12}, KeyKind.SHORT, 12, "[short] 12"),
    ({"val_bool": False}, KeyKind.BOOL, False, "[bool] False"),
    ({"val_wstring": b'caf\xc3\xa9'}, KeyKind.WSTRING, b'caf\xc3\xa9', "[wstring] café"),
    ({}, KeyKind.EMPTY, None, "[empty]"),
])
def test_key_value(fields, kind, value, text):
    key = netmessages.CSVCMsg_GameEvent().keys.add(**fields)
    kv = KeyValue.from_proto(key)
    assert kv.kind is kind
    assert kv.value == value
    assert str(kv) == text
