"""
Public event log for Hanabi games.

Every accepted action produces one PLAYER_ACTION event carrying the action
and the effects it caused; the action that ends the game is followed by a
GAME_OVER event. Nothing in an event is hidden information: draw effects
name the slot, never the card drawn. The log is therefore safe to send to
every player as a shared feed.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Optional
import json

from models.actions import PlayedCardResult, PlayerAction
from models.effects import GameEffect


class EventType(str, Enum):
    """Public event types."""

    PLAYER_ACTION = "player_action"
    GAME_OVER = "game_over"


@dataclass
class GameEvent:
    """
    A publicly observable record.

    Attributes:
        event_type: The type of event (from EventType enum).
        sequence_num: Position in the game's public log, starting at 1.
        turn: Turn number the event happened on.
        timestamp: When the event occurred (UTC).
        player_index: Acting player for PLAYER_ACTION events.
        data: Event-specific payload data.
    """

    event_type: EventType
    sequence_num: int
    turn: int
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    player_index: Optional[int] = None
    data: dict = field(default_factory=dict)

    def to_dict(self) -> dict:
        """Serialize event to dictionary for JSON transport."""
        return {
            "event_type": self.event_type.value,
            "sequence_num": self.sequence_num,
            "turn": self.turn,
            "timestamp": self.timestamp.isoformat(),
            "player_index": self.player_index,
            "data": self.data,
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict())

    @classmethod
    def from_dict(cls, d: dict) -> "GameEvent":
        timestamp = d["timestamp"]
        if isinstance(timestamp, str):
            timestamp = datetime.fromisoformat(timestamp)

        return cls(
            event_type=EventType(d["event_type"]),
            sequence_num=d["sequence_num"],
            turn=d["turn"],
            timestamp=timestamp,
            player_index=d.get("player_index"),
            data=d.get("data", {}),
        )

    @classmethod
    def from_json(cls, json_str: str) -> "GameEvent":
        return cls.from_dict(json.loads(json_str))


# =============================================================================
# Event Factory Functions
# =============================================================================


def player_action(
    sequence_num: int,
    turn: int,
    player_index: int,
    action: PlayerAction,
    effects: list[GameEffect],
    played_card_result: Optional[PlayedCardResult] = None,
) -> GameEvent:
    """
    Create a PlayerAction event.

    Args:
        sequence_num: Position in the public log.
        turn: Turn the action was taken on.
        player_index: Who acted.
        action: The accepted action.
        effects: The effects it applied, in order.
        played_card_result: Result tag for play_card actions.
    """
    return GameEvent(
        event_type=EventType.PLAYER_ACTION,
        sequence_num=sequence_num,
        turn=turn,
        player_index=player_index,
        data={
            "action": action.to_dict(),
            "effects": [e.to_dict() for e in effects],
            "played_card_result": played_card_result.value if played_card_result else None,
        },
    )


def game_over(sequence_num: int, turn: int, outcome: dict) -> GameEvent:
    """
    Create a GameOver event.

    Args:
        outcome: GameOutcome.to_dict() of the finished game.
    """
    return GameEvent(
        event_type=EventType.GAME_OVER,
        sequence_num=sequence_num,
        turn=turn,
        data={"outcome": outcome},
    )
