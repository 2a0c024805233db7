# demo_analyzer.py

import argparse
import logging
import sys
from typing import List, Optional

from demo_stats import config
from demo_stats.exceptions import DemoParserException
from demo_stats.match_state import MatchResult
from demo_stats.parser import DemoParser
from demo_stats.ranks import RankManager

logger = logging.getLogger(__name__)


def print_analysis_results(result: MatchResult) -> None:
    """Print analysis results in a formatted way"""
    header = result.header
    print("\nDemo Analysis Results")
    print("=" * 50)

    print("\nHeader Information:")
    print("-" * 20)
    print(f"Map: {header.map_name}")
    print(f"Server: {header.server_name}")
    print(f"Client: {header.client_name}")
    print(f"Demo Protocol: {header.demo_protocol}")
    print(f"Network Protocol: {header.network_protocol}")
    print(f"Duration: {header.playback_time:.1f}s ({header.tick_rate:.1f} ticks/s)")

    print(f"\nScore: {result.score[0]} - {result.score[1]}")
    for title, team in (("Winners", result.winners), ("Losers", result.losers)):
        print(f"\n{title}:")
        print("-" * 20)
        for player in team:
            print(
                f"{player.name:16} K {player.kills:3}  A {player.assists:3}  "
                f"D {player.deaths:3}  FA {player.flash_assists:2}  KAST {player.kast:2}"
            )


def build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Match statistics from a CS:GO demo")
    parser.add_argument("demo", help="Path to the .dem file")
    parser.add_argument(
        "--ranks-db",
        default=config.RANKS_DB_PATH,
        help="SQLite database for rank updates (empty to skip)",
    )
    parser.add_argument("--log-level", default=config.LOG_LEVEL, help="Logging level")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_arg_parser().parse_args(argv)
    logging.basicConfig(level=args.log_level.upper(), format=config.LOG_FORMAT)

    try:
        result = DemoParser(args.demo).parse()
    except (DemoParserException, FileNotFoundError) as e:
        print(f"\nError analyzing demo: {e}")
        logger.error("Analysis failed", exc_info=True)
        return 1

    print_analysis_results(result)

    if args.ranks_db:
        ranks = RankManager(args.ranks_db)
        try:
            if not ranks.update_ranks(result.header, result.winners, result.losers):
                print("\nMatch already recorded, ranks unchanged")
        finally:
            ranks.close()
    return 0


if __name__ == "__main__":
    sys.exit(main())
