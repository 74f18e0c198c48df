"""
Tests for the headless simulation runner.

Run with: pytest test_simulate.py -v
"""

import random

from models.game_config import GameConfig
from simulate import SimulationStats, parse_args, replay_matches, run_game, run_simulation


def test_run_game_finishes_and_replays():
    stats = SimulationStats()
    game = run_game(GameConfig.for_players(3, seed=6), random.Random(6), stats)

    assert game.outcome is not None
    assert replay_matches(game)
    assert stats.games_played == 1
    assert stats.replay_failures == 0
    assert sum(stats.actions.values()) == len(game.actions)


def test_run_simulation_report(capsys):
    stats = run_simulation(num_games=3, num_players=2, seed=1, verbose=False)

    assert stats.games_played == 3
    assert stats.replay_failures == 0
    out = capsys.readouterr().out
    assert "SIMULATION RESULTS" in out
    assert "Replay mismatches (should be 0): 0" in out


def test_same_seed_same_results():
    a = run_simulation(num_games=2, num_players=4, seed=9, verbose=False)
    b = run_simulation(num_games=2, num_players=4, seed=9, verbose=False)
    assert a.scores == b.scores


def test_parse_args():
    assert parse_args([]) == (10, 4, None)
    assert parse_args(["20", "3", "--seed", "7"]) == (20, 3, 7)
    assert parse_args(["--seed", "5", "8"]) == (8, 4, 5)
