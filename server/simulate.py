"""
Hanabi Simulation Runner

Plays games with a random legal-action bot, checks that every finished
game replays to the same state, and reports aggregate results.
No server/websocket needed - runs games directly.

Usage:
    python simulate.py [num_games] [num_players] [--seed N]

Examples:
    python simulate.py 10             # Run 10 games with 4 players each
    python simulate.py 50 2           # Run 50 games with 2 players each
    python simulate.py 20 3 --seed 7  # Reproducible run
"""

import random
import sys
from typing import Optional

from game import Game
from models.actions import ActionType, PlayerAction
from models.game_config import GameConfig
from models.game_state import rebuild_state


class SimulationStats:
    """Track simulation statistics."""

    def __init__(self):
        self.games_played = 0
        self.wins = 0
        self.total_turns = 0
        self.scores: list[int] = []
        self.fuse_losses = 0
        self.replay_failures = 0
        self.actions: dict[str, int] = {}

    def record_action(self, action: PlayerAction):
        key = action.action_type.value
        self.actions[key] = self.actions.get(key, 0) + 1

    def record_game(self, game: Game, replay_ok: bool):
        state = game.state
        self.games_played += 1
        self.total_turns += state.turn
        self.scores.append(state.outcome.score)
        if state.outcome.won:
            self.wins += 1
        elif state.remaining_fuse_count == 0:
            self.fuse_losses += 1
        if not replay_ok:
            self.replay_failures += 1

    def report(self) -> str:
        games = max(1, self.games_played)
        lines = [
            "=" * 50,
            "SIMULATION RESULTS",
            "=" * 50,
            f"Games played: {self.games_played}",
            f"Win rate: {self.wins / games * 100:.1f}%",
            f"Average score: {sum(self.scores) / games:.2f}",
            f"Best score: {max(self.scores, default=0)}",
            f"Average turns: {self.total_turns / games:.1f}",
            f"Lost to fuses: {self.fuse_losses}",
            f"Replay mismatches (should be 0): {self.replay_failures}",
            "",
            "ACTION BREAKDOWN:",
        ]

        total = sum(self.actions.values())
        for action_type in ActionType:
            count = self.actions.get(action_type.value, 0)
            pct = count / max(1, total) * 100
            lines.append(f"  {action_type.value}: {count} ({pct:.1f}%)")

        return "\n".join(lines)


def choose_action(game: Game, rng: random.Random) -> PlayerAction:
    """Pick a random legal action for the current player."""
    legal = game.legal_actions(game.state.current_player)
    if not legal:
        raise RuntimeError(f"No legal action at turn {game.state.turn}")
    return rng.choice(legal)


def replay_matches(game: Game) -> bool:
    """Whether the action log and the effect history both rebuild the final state."""
    state = game.state
    replayed = Game.replay(state.config, game.actions)
    rebuilt = rebuild_state(state.config, state.history)
    return replayed.state == state and rebuilt == state


def run_game(config: GameConfig, rng: random.Random, stats: SimulationStats) -> Game:
    game = Game(game_id=f"sim-{config.seed}")
    game.start(config)

    while game.outcome is None:
        player_index = game.state.current_player
        action = choose_action(game, rng)
        game.play(player_index, action)
        stats.record_action(action)

    stats.record_game(game, replay_matches(game))
    return game


def run_simulation(
    num_games: int = 10,
    num_players: int = 4,
    seed: Optional[int] = None,
    verbose: bool = True,
) -> SimulationStats:
    """Run multiple games and report statistics."""
    rng = random.Random(seed)
    stats = SimulationStats()

    print(f"\nRunning {num_games} games with {num_players} players each...")
    print("=" * 50)

    for i in range(num_games):
        config = GameConfig.for_players(num_players, seed=rng.randrange(2**63))
        game = run_game(config, rng, stats)

        if verbose:
            outcome = game.outcome
            result = "win" if outcome.won else "fail"
            print(f"Game {i + 1}/{num_games}: {result}, score {outcome.score}, "
                  f"{game.state.turn} turns")

    print("\n")
    print(stats.report())
    return stats


def parse_args(argv: list[str]) -> tuple[int, int, Optional[int]]:
    """Parse ``[num_games] [num_players] [--seed N]``."""
    args = list(argv)
    seed = None
    if "--seed" in args:
        index = args.index("--seed")
        seed = int(args[index + 1])
        del args[index:index + 2]

    num_games = int(args[0]) if len(args) > 0 else 10
    num_players = int(args[1]) if len(args) > 1 else 4
    return num_games, num_players, seed


if __name__ == "__main__":
    num_games, num_players, seed = parse_args(sys.argv[1:])
    run_simulation(num_games, num_players, seed)
