import logging
import sqlite3
import struct
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterable, List, Sequence, Tuple, Union

from demo_stats.demo_header_parser import DemoHeader
from demo_stats.player import Player

logger = logging.getLogger(__name__)

DEFAULT_RANK = 1000.0
POINT_POOL = 100.0

TABLES = [
    """
    CREATE TABLE IF NOT EXISTS game (
        id INTEGER PRIMARY KEY
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS player (
        xuid INTEGER PRIMARY KEY,
        name TEXT NOT NULL,
        rank REAL NOT NULL,
        game_count INTEGER NOT NULL
    )
    """,
]


class StableHasher:
    """Order sensitive 64-bit hash that does not change between runs"""

    MASK = (1 << 64) - 1

    def __init__(self):
        self.state = 0

    def write(self, data: bytes) -> None:
        for byte in data:
            self.state = (((self.state << 1) | (self.state >> 63)) & self.MASK) ^ byte

    def write_str(self, value: str) -> None:
        self.write(value.encode('utf-8'))
        self.write(b'\xff')

    def write_int(self, value: int) -> None:
        self.write(struct.pack('<q', value))

    def finish(self) -> int:
        return self.state


def _hash_roster(hasher: StableHasher, players: Sequence[Player]) -> None:
    hasher.write_int(len(players))
    for player in players:
        hasher.write_str(player.name)
        hasher.write_int(player.info.xuid)
        for stat in (player.kills, player.assists, player.flash_assists, player.deaths):
            hasher.write_int(stat)


def match_hash(header: DemoHeader, winners: Sequence[Player], losers: Sequence[Player]) -> int:
    """Signed 64-bit identity of a match, used to skip demos already counted"""
    hasher = StableHasher()
    hasher.write_str(header.server_name)
    hasher.write_str(header.client_name)
    hasher.write_str(header.map_name)
    hasher.write_int(header.ticks)
    _hash_roster(hasher, winners)
    _hash_roster(hasher, losers)
    return struct.unpack('<q', struct.pack('<Q', hasher.finish()))[0]


@dataclass
class DbPlayer:
    xuid: int
    name: str
    rank: float = DEFAULT_RANK
    game_count: int = 0


class RankManager:
    """Persists rank adjustments per player across matches"""

    def __init__(self, db_path: Union[str, Path] = "ranks.db"):
        self.db_path = str(db_path)
        self.conn = sqlite3.connect(self.db_path)
        self.conn.row_factory = sqlite3.Row
        self.init_database()

    def init_database(self) -> None:
        with self.conn:
            for table in TABLES:
                self.conn.execute(table)

    def close(self) -> None:
        self.conn.close()

    def fetch_player(self, xuid: int) -> DbPlayer:
        row = self.conn.execute(
            "SELECT xuid, name, rank, game_count FROM player WHERE xuid = ?", (xuid,)
        ).fetchone()
        if row is None:
            return DbPlayer(xuid=xuid, name="")
        return DbPlayer(xuid=row["xuid"], name=row["name"], rank=row["rank"], game_count=row["game_count"])

    def team_rank(self, team: Iterable[Player]) -> Tuple[float, Dict[int, DbPlayer]]:
        """Team strength is the sum of member ranks plus the best member rank"""
        ranks = {p.info.xuid: self.fetch_player(p.info.xuid) for p in team}
        if not ranks:
            return 0.0, ranks
        values = [p.rank for p in ranks.values()]
        return sum(values) + max(values), ranks

    def _update_team_ranks(self, ranks: Dict[int, DbPlayer], players: List[Player], points: float) -> None:
        total_kills = sum(p.kills for p in players) or 1

        for player in players:
            db_player = ranks[player.info.xuid]
            if points < 0:
                share = (total_kills - player.kills) / total_kills
            else:
                share = player.kills / total_kills

            self.conn.execute(
                "INSERT OR REPLACE INTO player (xuid, name, rank, game_count) VALUES (?, ?, ?, ?)",
                (player.info.xuid, player.name, db_player.rank + points * share, db_player.game_count + 1),
            )

    def update_ranks(self, header: DemoHeader, winners: List[Player], losers: List[Player]) -> bool:
        """Apply the match result once; returns False if the match was already recorded"""
        game_hash = match_hash(header, winners, losers)

        with self.conn:
            exists = self.conn.execute("SELECT id FROM game WHERE id = ?", (game_hash,)).fetchone()
            if exists is not None:
                logger.warning(f"Already found game {game_hash}")
                return False

            self.conn.execute("INSERT INTO game (id) VALUES (?)", (game_hash,))

            winner_rank, winner_ranks = self.team_rank(winners)
            loser_rank, loser_ranks = self.team_rank(losers)
            surprise = loser_rank / winner_rank if winner_rank else 1.0

            winner_gains = POINT_POOL * surprise
            loser_loses = -POINT_POOL * surprise
            logger.debug(
                f"winner rank {winner_rank:.1f}, loser rank {loser_rank:.1f}, "
                f"surprise {surprise:.3f}, gains {winner_gains:.1f}, loses {loser_loses:.1f}"
            )

            self._update_team_ranks(winner_ranks, winners, winner_gains)
            self._update_team_ranks(loser_ranks, losers, loser_loses)

        logger.info(f"Ranks updated for game {game_hash}")
        return True
