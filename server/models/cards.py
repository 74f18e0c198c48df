"""
Card, hint and slot value types for Hanabi.

All types here are immutable values compared by content. They carry no
game behavior beyond conversion to and from JSON-ready dicts, which is
what the wire protocol, the event log and the game store exchange.
"""

from dataclasses import dataclass, field
from enum import Enum, IntEnum
from typing import Optional

from constants import SUIT_ORDER, MAX_FACE


class CardFace(IntEnum):
    """Card face value. Faces are ordered: ONE < TWO < ... < FIVE."""

    ONE = 1
    TWO = 2
    THREE = 3
    FOUR = 4
    FIVE = 5

    @property
    def is_final(self) -> bool:
        """Whether this face completes a suit stack."""
        return self.value == MAX_FACE


class CardSuit(str, Enum):
    """Card suits. Unordered categories; declaration order is the canonical one."""

    RED = "red"
    GREEN = "green"
    YELLOW = "yellow"
    WHITE = "white"
    BLUE = "blue"

    @classmethod
    def in_play(cls, num_suits: int) -> list["CardSuit"]:
        """The first ``num_suits`` suits in canonical order."""
        return [cls(name) for name in SUIT_ORDER[:num_suits]]


@dataclass(frozen=True)
class Card:
    """
    A single card.

    Attributes:
        face: Face value 1-5.
        suit: One of the five suits.
    """

    face: CardFace
    suit: CardSuit

    @property
    def sort_key(self) -> tuple[int, int]:
        """Stable ordering key: suit order first, then face."""
        return (SUIT_ORDER.index(self.suit.value), int(self.face))

    def to_dict(self) -> dict:
        return {"face": int(self.face), "suit": self.suit.value}

    @classmethod
    def from_dict(cls, d: dict) -> "Card":
        try:
            return cls(face=CardFace(int(d["face"])), suit=CardSuit(d["suit"]))
        except (KeyError, TypeError, ValueError) as e:
            raise ValueError(f"Invalid card: {d!r}") from e

    def __str__(self) -> str:
        return f"{self.suit.value} {int(self.face)}"


class HintKind(str, Enum):
    """The four kinds of hint that can be attached to a slot."""

    IS_SUIT = "is_suit"
    IS_FACE = "is_face"
    IS_NOT_SUIT = "is_not_suit"
    IS_NOT_FACE = "is_not_face"


@dataclass(frozen=True)
class Hint:
    """
    A piece of public knowledge about the card in a slot.

    Exactly one of ``suit`` / ``face`` is set, matching ``kind``.
    """

    kind: HintKind
    suit: Optional[CardSuit] = None
    face: Optional[CardFace] = None

    @classmethod
    def is_suit(cls, suit: CardSuit) -> "Hint":
        return cls(HintKind.IS_SUIT, suit=suit)

    @classmethod
    def is_not_suit(cls, suit: CardSuit) -> "Hint":
        return cls(HintKind.IS_NOT_SUIT, suit=suit)

    @classmethod
    def is_face(cls, face: CardFace) -> "Hint":
        return cls(HintKind.IS_FACE, face=face)

    @classmethod
    def is_not_face(cls, face: CardFace) -> "Hint":
        return cls(HintKind.IS_NOT_FACE, face=face)

    @property
    def is_positive(self) -> bool:
        return self.kind in (HintKind.IS_SUIT, HintKind.IS_FACE)

    def to_dict(self) -> dict:
        d: dict = {"kind": self.kind.value}
        if self.suit is not None:
            d["suit"] = self.suit.value
        if self.face is not None:
            d["face"] = int(self.face)
        return d

    @classmethod
    def from_dict(cls, d: dict) -> "Hint":
        try:
            kind = HintKind(d["kind"])
            if kind in (HintKind.IS_SUIT, HintKind.IS_NOT_SUIT):
                return cls(kind, suit=CardSuit(d["suit"]))
            return cls(kind, face=CardFace(int(d["face"])))
        except (KeyError, TypeError, ValueError) as e:
            raise ValueError(f"Invalid hint: {d!r}") from e


@dataclass(frozen=True)
class Slot:
    """
    A hand position holding a card and the hints known about it.

    An empty hand position is represented by ``None`` in the hand, not by
    a Slot. Hints are an ordered set: insertion order, no duplicates.
    """

    card: Card
    hints: tuple[Hint, ...] = field(default_factory=tuple)

    def with_hint(self, hint: Hint) -> "Slot":
        """Return a copy with ``hint`` appended (no-op if already known)."""
        if hint in self.hints:
            return self
        return Slot(card=self.card, hints=self.hints + (hint,))

    def to_dict(self) -> dict:
        return {
            "card": self.card.to_dict(),
            "hints": [h.to_dict() for h in self.hints],
        }

    @classmethod
    def from_dict(cls, d: dict) -> "Slot":
        return cls(
            card=Card.from_dict(d["card"]),
            hints=tuple(Hint.from_dict(h) for h in d.get("hints", [])),
        )
