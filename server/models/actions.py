"""
Player actions for Hanabi.

A PlayerAction is a request. It only changes the game once the engine
has validated it and turned it into effects (see game.py).

Three actions exist:
    - play_card(slot): try to place a card from your hand on the board
    - discard_card(slot): discard a card to regain a hint token
    - give_hint(target, hint): tell a teammate which of their cards
      share a suit or a face
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from models.cards import Card, CardFace, CardSuit, Hint


class ActionType(str, Enum):
    """All player action types."""

    PLAY_CARD = "play_card"
    DISCARD_CARD = "discard_card"
    GIVE_HINT = "give_hint"


class PlayedCardResult(str, Enum):
    """Outcome of a play_card action, reported back to the transport layer."""

    ACCEPTED = "accepted"
    COMPLETED_SET = "completed_set"
    REJECTED = "rejected"


@dataclass(frozen=True)
class HintAction:
    """
    The criterion a hint is given on: a suit or a face, never both.
    """

    suit: Optional[CardSuit] = None
    face: Optional[CardFace] = None

    def __post_init__(self) -> None:
        if (self.suit is None) == (self.face is None):
            raise ValueError("A hint names exactly one of suit or face")

    @classmethod
    def same_suit(cls, suit: CardSuit) -> "HintAction":
        return cls(suit=suit)

    @classmethod
    def same_face(cls, face: CardFace) -> "HintAction":
        return cls(face=face)

    def matches(self, card: Card) -> bool:
        """Whether ``card`` satisfies this criterion."""
        if self.suit is not None:
            return card.suit == self.suit
        return card.face == self.face

    def hint_for(self, card: Card) -> Hint:
        """The positive or negative hint this criterion attaches to ``card``."""
        if self.suit is not None:
            return Hint.is_suit(self.suit) if self.matches(card) else Hint.is_not_suit(self.suit)
        return Hint.is_face(self.face) if self.matches(card) else Hint.is_not_face(self.face)

    def to_dict(self) -> dict:
        if self.suit is not None:
            return {"suit": self.suit.value}
        return {"face": int(self.face)}

    @classmethod
    def from_dict(cls, d: dict) -> "HintAction":
        try:
            if "suit" in d:
                return cls.same_suit(CardSuit(d["suit"]))
            return cls.same_face(CardFace(int(d["face"])))
        except (KeyError, TypeError, ValueError) as e:
            raise ValueError(f"Invalid hint action: {d!r}") from e


@dataclass(frozen=True)
class PlayerAction:
    """
    A player's intent for their turn.

    Attributes:
        action_type: Which of the three actions this is.
        slot_index: Hand slot for play_card / discard_card.
        target: Player index receiving a give_hint.
        hint: Criterion for give_hint.
    """

    action_type: ActionType
    slot_index: Optional[int] = None
    target: Optional[int] = None
    hint: Optional[HintAction] = None

    def to_dict(self) -> dict:
        d: dict = {"action_type": self.action_type.value}
        if self.action_type == ActionType.GIVE_HINT:
            d["target"] = self.target
            d["hint"] = self.hint.to_dict()
        else:
            d["slot_index"] = self.slot_index
        return d

    @classmethod
    def from_dict(cls, d: dict) -> "PlayerAction":
        """
        Parse an action from client or store data.

        Raises:
            ValueError: If the payload is malformed.
        """
        try:
            action_type = ActionType(d["action_type"])
            if action_type == ActionType.GIVE_HINT:
                return give_hint(int(d["target"]), HintAction.from_dict(d["hint"]))
            return cls(action_type=action_type, slot_index=int(d["slot_index"]))
        except (KeyError, TypeError) as e:
            raise ValueError(f"Invalid player action: {d!r}") from e

    def describe(self) -> str:
        """Short human-readable description for logs."""
        if self.action_type == ActionType.PLAY_CARD:
            return f"play slot {self.slot_index}"
        if self.action_type == ActionType.DISCARD_CARD:
            return f"discard slot {self.slot_index}"
        criterion = self.hint.suit.value if self.hint.suit is not None else int(self.hint.face)
        return f"hint player {self.target} about {criterion}"


def play_card(slot_index: int) -> PlayerAction:
    return PlayerAction(ActionType.PLAY_CARD, slot_index=slot_index)


def discard_card(slot_index: int) -> PlayerAction:
    return PlayerAction(ActionType.DISCARD_CARD, slot_index=slot_index)


def give_hint(target: int, hint: HintAction) -> PlayerAction:
    return PlayerAction(ActionType.GIVE_HINT, target=target, hint=hint)
