from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from demo_stats.player_info import PlayerInfo

UTILITY_ITEMS = frozenset({
    "hegrenade",
    "incgrenade",
    "smokegrenade",
    "flashbang",
    "molotov",
})


@dataclass
class Player:
    """Per match statistics of one player"""
    info: PlayerInfo = field(default_factory=PlayerInfo)
    name: str = ""

    kills: int = 0
    assists: int = 0
    flash_assists: int = 0
    deaths: int = 0
    kast: int = 0

    equipped: str = "knife"
    latest_utility: Optional[str] = None
    utility_tick: int = 0

    def __post_init__(self):
        if not self.name:
            self.name = self.info.name

    def reset(self) -> 'Player':
        """Fresh statistics, same identity"""
        return Player(info=self.info)

    def equip(self, item: str, tick: int) -> None:
        if item in UTILITY_ITEMS:
            self.latest_utility = item
            self.utility_tick = tick
        self.equipped = item

    def to_dict(self) -> Dict[str, Any]:
        return {
            'name': self.name,
            'xuid': self.info.xuid,
            'user_id': self.info.user_id,
            'kills': self.kills,
            'assists': self.assists,
            'flash_assists': self.flash_assists,
            'deaths': self.deaths,
            'kast': self.kast,
        }
