#!/usr/bin/env python3
"""
CLI script to watch bots play calling whist.

Plays a complete game between CPU players with no pauses and prints
every round's calls and results followed by the final standings.
"""

import argparse
import random
import sys
import time

from whist.bots.autopilot import Autopilot
from whist.bots.base_bot import BotDifficulty
from whist.constants import MAX_PLAYERS, MIN_PLAYERS
from whist.models.enums import GameFormat
from whist.models.round_config import config_for
from whist.services.simulator import create_cpu_game, play_out


def print_rounds(game) -> None:
    for result in game.round_history:
        config = config_for(result.round_number)
        trump = config.trump.value if config.trump else "no trump"
        print(f"\n{'=' * 60}")
        print(f"ROUND {result.round_number}: {config.card_count} cards, {trump}")
        print(f"{'=' * 60}")

        for r in result.player_results:
            mark = "made" if r.call == r.tricks_won else "missed"
            print(
                f"  {r.player_name}: called {r.call}, won {r.tricks_won} ({mark}) | "
                f"{r.round_score:+d}"
            )


def print_standings(game) -> None:
    print(f"\n{'=' * 60}")
    print("GAME OVER")
    print(f"{'=' * 60}\n")

    print("FINAL STANDINGS:")
    print("-" * 40)
    for rank, player in enumerate(game.get_leaderboard(), 1):
        extras = ""
        if player.keller is not None:
            extras = f" (halo {player.keller.halo_score}, brucie x{player.keller.brucie_multiplier})"
        print(f"  {rank}. {player.name}: {player.score} points{extras}")

    winner = game.get_winner()
    if winner:
        print(f"\nWinner: {winner.name} with {winner.score} points")


def main():
    """Main entry point."""
    parser = argparse.ArgumentParser(description="Watch bots play calling whist")
    parser.add_argument("--players", type=int, default=4, help="Number of players (2-7)")
    parser.add_argument(
        "--format",
        choices=[f.value for f in GameFormat],
        default=GameFormat.TRADITIONAL.value,
        help="Ruleset to play",
    )
    parser.add_argument(
        "--difficulty",
        choices=[d.value for d in BotDifficulty],
        default=BotDifficulty.MEDIUM.value,
        help="Bot strength",
    )
    parser.add_argument("--seed", type=int, default=None, help="Seed for a repeatable game")

    args = parser.parse_args()

    if not (MIN_PLAYERS <= args.players <= MAX_PLAYERS):
        print(f"Error: Must have {MIN_PLAYERS}-{MAX_PLAYERS} players")
        sys.exit(1)

    start_time = time.time()
    rng = random.Random(args.seed)
    game = create_cpu_game(args.players, GameFormat(args.format), rng)
    play_out(game, Autopilot(BotDifficulty(args.difficulty), rng))

    print_rounds(game)
    print_standings(game)
    print(f"\nGame duration: {time.time() - start_time:.2f} seconds")


if __name__ == "__main__":
    main()
