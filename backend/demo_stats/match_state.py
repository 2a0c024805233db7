from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Any, Dict, List, Optional, Tuple, Union

from demo_stats import netmessages
from demo_stats.commands import Command, CommandType
from demo_stats.demo_header_parser import DemoHeader
from demo_stats.game_events import (
    BeginNewMatch,
    EventContext,
    Filtered,
    ItemEquip,
    Other,
    PlayerDeath,
    PlayerSpawn,
    RoundEnd,
    RoundOfficiallyEnded,
    RoundStart,
    read_event_names,
)
from demo_stats.player import UTILITY_ITEMS, Player
from demo_stats.player_info import PlayerInfo
from demo_stats.string_tables import StringTable, create_string_table, update_string_table

logger = logging.getLogger(__name__)

TRADE_TIME_LIMIT_IN_SECONDS = 18.2
UTILITY_IN_HAND_SECONDS = 2.5
HALFTIME_ROUND = 16
WINNING_SCORE = 16


class RoundStatus(Enum):
    """KAST status of a player within the current round"""
    KILLED = auto()
    ASSISTED = auto()
    SURVIVED = auto()
    TRADED = auto()


@dataclass(frozen=True)
class Died:
    killer: int
    tick: int


PlayerRoundState = Union[RoundStatus, Died]


@dataclass
class MatchResult:
    header: DemoHeader
    score: Tuple[int, int]
    rounds: int
    winners: List[Player] = field(default_factory=list)
    losers: List[Player] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'header': self.header.to_dict(),
            'score': list(self.score),
            'rounds': self.rounds,
            'winners': [p.to_dict() for p in self.winners],
            'losers': [p.to_dict() for p in self.losers],
        }


def _roster_key(player: Player):
    return (-player.kills, -player.assists, player.deaths, player.info.xuid, player.name)


class MatchState:
    """Match aggregator fed with the decoded command stream of one demo"""

    def __init__(self, header: DemoHeader):
        self.header = header
        self.player_table: Optional[StringTable] = None
        self.table_id = 0
        self.current_tick = 0
        self.current_round = 0
        self.score: Tuple[int, int] = (0, 0)

        self.events = EventContext()
        self.players: Dict[int, Player] = {}
        self.current_round_player_state: Dict[int, PlayerRoundState] = {}
        # user id -> True when on the terrorist side
        self.teams: Dict[int, bool] = {}

    def as_seconds(self, ticks: int) -> float:
        return self.header.as_seconds(ticks)

    def current_time(self) -> str:
        second = int(self.as_seconds(self.current_tick))
        return f"{second // 60}m {second % 60}s"

    def find_player_by_xuid(self, xuid: int) -> Optional[int]:
        if not xuid:
            return None
        return next((i for i, p in self.players.items() if p.info.xuid == xuid), None)

    def _player(self, user_id: int, role: str) -> Optional[Player]:
        player = self.players.get(user_id)
        if player is None:
            logger.warning(f"Did not find player who {role} with id {user_id}")
        return player

    def _name(self, user_id: Optional[int]) -> str:
        player = self.players.get(user_id)
        return player.name if player else "?"

    # Commands

    def handle_command(self, cmd: Command) -> None:
        if cmd.kind == CommandType.CREATE_STRING_TABLE:
            self._handle_create_string_table(cmd.message)
        elif cmd.kind == CommandType.UPDATE_STRING_TABLE:
            self._handle_update_string_table(cmd.message)
        elif cmd.kind == CommandType.USER_MESSAGE:
            self._handle_user_message(cmd.message)
        elif cmd.kind == CommandType.GAME_EVENT:
            self.handle_game_event(cmd.message)
        elif cmd.kind == CommandType.GAME_EVENT_LIST:
            self.events = EventContext(read_event_names(cmd.message))

    def _handle_create_string_table(self, msg) -> None:
        created = create_string_table(msg)
        if created is not None:
            self.player_table, players = created
            for info in players.values():
                self.players[info.user_id] = Player(info)
        elif self.player_table is None:
            self.table_id += 1

    def _handle_update_string_table(self, msg) -> None:
        if self.player_table is None or msg.table_id != self.table_id:
            return
        for info in update_string_table(self.player_table, msg).values():
            self._upsert_player(info)

    def _upsert_player(self, info: PlayerInfo) -> None:
        previous = self.find_player_by_xuid(info.xuid)
        if previous is not None:
            player = self.players.pop(previous)
            player.info = info
            if previous != info.user_id:
                logger.debug(f"{player.name} moved from user id {previous} to {info.user_id}")
            self.players[info.user_id] = player
        elif info.user_id in self.players:
            player = self.players[info.user_id]
            player.info = info
            player.name = info.name
        else:
            self.players[info.user_id] = Player(info)

    def _handle_user_message(self, msg) -> None:
        if msg.msg_type != netmessages.CS_UM_SayText2:
            return
        say_text = netmessages.CCSUsrMsg_SayText2()
        say_text.ParseFromString(msg.msg_data)
        logger.debug(f"[{self.current_time()}] {say_text.msg_name}: {list(say_text.params)}")

    # Game events

    def handle_game_event(self, ev) -> None:
        event = self.events.parse_game_event(ev)

        if isinstance(event, Filtered):
            pass
        elif isinstance(event, BeginNewMatch):
            self.clear_stats()
        elif isinstance(event, RoundStart):
            self.handle_round_start()
        elif isinstance(event, RoundOfficiallyEnded):
            self.update_player_kast_score()
            self.clear_kast()
        elif isinstance(event, RoundEnd):
            self.handle_round_end(event.t_won)
        elif isinstance(event, ItemEquip):
            self.equip(event.user_id, event.item)
        elif isinstance(event, PlayerSpawn):
            self.teams[event.user_id] = event.terrorist
        elif isinstance(event, PlayerDeath):
            utility = self.utility_in_hand(event.victim)
            if utility is not None:
                item, age = utility
                logger.debug(f"{self._name(event.victim)}, (utility in hand = {item}, age = {age:.1f}s)")
            self.update_stats(event.victim, event.killer, event.assister, event.flash_assist, event.weapon)
        elif isinstance(event, Other):
            logger.debug(f"{event.name} {self.current_time()}")

    def clear_stats(self) -> None:
        logger.debug("Match restarted, clearing statistics")
        self.current_round = 0
        self.score = (0, 0)
        self.players = {i: p.reset() for i, p in self.players.items()}

    def handle_round_start(self) -> None:
        self.current_round += 1
        logger.debug(f"Round {self.current_round} ({self.current_time()})")
        if self.current_round == HALFTIME_ROUND:
            logger.debug("Swapping sides")
            self.score = (self.score[1], self.score[0])

    def handle_round_end(self, t_won: bool) -> None:
        if t_won:
            logger.debug("T win")
            self.score = (self.score[0] + 1, self.score[1])
        else:
            logger.debug("CT win")
            self.score = (self.score[0], self.score[1] + 1)
        if WINNING_SCORE in self.score:
            self.update_player_kast_score()
        logger.debug(f"Score: {self.score}")

    def update_player_kast_score(self) -> None:
        for user_id, state in self.current_round_player_state.items():
            if isinstance(state, Died):
                continue
            player = self._player(user_id, "finished the round")
            if player is not None:
                player.kast += 1

    def clear_kast(self) -> None:
        self.current_round_player_state = {i: RoundStatus.SURVIVED for i in self.players}

    def equip(self, user_id: int, item: str) -> None:
        player = self._player(user_id, "equipped an item")
        if player is not None:
            player.equip(item, self.current_tick)

    def utility_in_hand(self, user_id: int) -> Optional[Tuple[str, float]]:
        """Utility the player equipped during the last few seconds and still holds"""
        player = self.players.get(user_id)
        if player is None or player.equipped not in UTILITY_ITEMS:
            return None
        age = self.as_seconds(self.current_tick - player.utility_tick)
        if age < UTILITY_IN_HAND_SECONDS:
            return player.equipped, age
        return None

    def update_kast(self, killer: Optional[int], assister: Optional[int], victim: int) -> None:
        states = self.current_round_player_state
        if killer is not None and killer != victim:
            states[killer] = RoundStatus.KILLED
        if assister is not None:
            states[assister] = RoundStatus.ASSISTED
        if states.get(victim, RoundStatus.SURVIVED) == RoundStatus.SURVIVED:
            states[victim] = Died(killer if killer is not None else 0, self.current_tick)

        for traded_id, state in states.items():
            if not isinstance(state, Died) or state.killer != victim:
                continue
            trade_time = self.as_seconds(self.current_tick - state.tick)
            if trade_time < TRADE_TIME_LIMIT_IN_SECONDS:
                logger.debug(
                    f"[{killer}]{self._name(killer)} traded [{traded_id}]{self._name(traded_id)} "
                    f"by killing [{victim}]{self._name(victim)} ({trade_time:.1f}s)"
                )
                states[traded_id] = RoundStatus.TRADED
            else:
                logger.debug(
                    f"[{killer}]{self._name(killer)} was too late to trade [{traded_id}]{self._name(traded_id)} "
                    f"by killing [{victim}]{self._name(victim)} ({trade_time:.1f}s)"
                )

    def update_stats(
        self,
        victim: int,
        killer: Optional[int],
        assister: Optional[int],
        flash_assist: bool,
        weapon: str = "",
    ) -> None:
        self.update_kast(killer, assister, victim)
        kill = killer if killer is not None else victim

        killer_team = self.teams.get(kill)
        victim_team = self.teams.get(victim)
        if killer_team is None or victim_team is None:
            logger.debug(f"No team for kill {kill} -> {victim} with {weapon}, not scored")
            return
        assist_team = self.teams.get(assister) if assister is not None else None

        # Suicides and team kills are not credited
        if kill != victim and killer_team != victim_team:
            player = self._player(kill, "killed")
            if player is not None:
                player.kills += 1

        if assister is not None and assist_team is not None:
            player = self._player(assister, "assisted")
            if player is not None:
                same_team = assist_team == victim_team
                if flash_assist and not same_team:
                    player.flash_assists += 1
                elif not flash_assist and same_team:
                    player.assists -= 1
                elif not flash_assist:
                    player.assists += 1

        player = self._player(victim, "died")
        if player is not None:
            player.deaths += 1

    # Readout

    def team(self, terrorist: bool) -> List[Player]:
        players = [
            player for user_id, player in self.players.items()
            if self.teams.get(user_id) == terrorist
        ]
        return sorted(players, key=_roster_key)

    def print_stats(self) -> None:
        logger.info(f"Score: {self.score[0]} - {self.score[1]}")
        rounds = sum(self.score)
        for number, terrorist in enumerate((False, True), start=1):
            logger.info(f"Team {number}:")
            for player in self.team(terrorist):
                kast = 100.0 * player.kast / rounds if rounds else 0.0
                logger.info(
                    f"[{player.info.user_id:2}]{player.name:16}"
                    f"(k/a/d {player.kills:3} {player.assists:3} {player.deaths:3} "
                    f"({player.flash_assists} f) KAST: {kast:.0f}%)"
                )

    def result(self) -> MatchResult:
        team_a = self.team(True)
        team_b = self.team(False)
        if self.score[0] > self.score[1]:
            winners, losers = team_a, team_b
        else:
            winners, losers = team_b, team_a
        if winners:
            logger.info(f"Winner team: team with {winners[0].name}")
        return MatchResult(
            header=self.header,
            score=self.score,
            rounds=self.current_round,
            winners=winners,
            losers=losers,
        )
