"""Stores package for Hanabi game persistence."""

from .game_store import (
    GameStore,
    ConcurrencyError,
    get_game_store,
    close_game_store,
)

__all__ = [
    "GameStore",
    "ConcurrencyError",
    "get_game_store",
    "close_game_store",
]
