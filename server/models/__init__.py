"""Models package for Hanabi."""

from .cards import Card, CardFace, CardSuit, Hint, HintKind, Slot
from .actions import ActionType, HintAction, PlayedCardResult, PlayerAction
from .effects import EffectType, GameEffect
from .events import EventType, GameEvent
from .game_config import GameConfig
from .game_state import GameOutcome, GameState, Player, check_outcome, rebuild_state

__all__ = [
    "Card",
    "CardFace",
    "CardSuit",
    "Hint",
    "HintKind",
    "Slot",
    "ActionType",
    "HintAction",
    "PlayedCardResult",
    "PlayerAction",
    "EffectType",
    "GameEffect",
    "EventType",
    "GameEvent",
    "GameConfig",
    "GameOutcome",
    "GameState",
    "Player",
    "check_outcome",
    "rebuild_state",
]
