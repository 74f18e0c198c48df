"""
Effect definitions for the Hanabi rules engine.

An effect is an atomic, irreversible state delta. Effects are the only
way GameState changes:
- The engine validates an action, then plans an ordered list of effects
- Effects are applied one by one, in order, and appended to the history
- Replaying the history on a freshly shuffled initial state rebuilds
  the exact same GameState

Effects are never reordered or coalesced.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from models.cards import Card, Hint


class EffectType(str, Enum):
    """All possible effect types."""

    DRAW_CARD = "draw_card"
    REMOVE_CARD = "remove_card"
    ADD_TO_DISCARD = "add_to_discard"
    PLACE_ON_BOARD = "place_on_board"
    HINT_CARD = "hint_card"
    DEC_HINT = "dec_hint"
    INC_HINT = "inc_hint"
    BURN_FUSE = "burn_fuse"
    NEXT_TURN = "next_turn"
    MARK_LAST_TURN = "mark_last_turn"


@dataclass(frozen=True)
class GameEffect:
    """
    A single state delta.

    Which optional fields are set depends on ``effect_type``; use the
    factory functions below rather than building effects by hand.

    Attributes:
        effect_type: The kind of delta.
        player_index: Hand owner for draw/remove/hint effects, new current
            player for next_turn.
        slot_index: Hand slot for draw/remove/hint effects.
        card: Card for add_to_discard / place_on_board.
        hint: Hint for hint_card.
        turn: Last playable turn for mark_last_turn.
    """

    effect_type: EffectType
    player_index: Optional[int] = None
    slot_index: Optional[int] = None
    card: Optional[Card] = None
    hint: Optional[Hint] = None
    turn: Optional[int] = None

    def to_dict(self) -> dict:
        """Serialize effect to a JSON-ready dict, omitting unset fields."""
        d: dict = {"effect_type": self.effect_type.value}
        if self.player_index is not None:
            d["player_index"] = self.player_index
        if self.slot_index is not None:
            d["slot_index"] = self.slot_index
        if self.card is not None:
            d["card"] = self.card.to_dict()
        if self.hint is not None:
            d["hint"] = self.hint.to_dict()
        if self.turn is not None:
            d["turn"] = self.turn
        return d

    @classmethod
    def from_dict(cls, d: dict) -> "GameEffect":
        """Deserialize effect from dictionary."""
        try:
            return cls(
                effect_type=EffectType(d["effect_type"]),
                player_index=d.get("player_index"),
                slot_index=d.get("slot_index"),
                card=Card.from_dict(d["card"]) if "card" in d else None,
                hint=Hint.from_dict(d["hint"]) if "hint" in d else None,
                turn=d.get("turn"),
            )
        except KeyError as e:
            raise ValueError(f"Invalid effect: {d!r}") from e


# =============================================================================
# Effect Factory Functions
# =============================================================================


def draw_card(player_index: int, slot_index: int) -> GameEffect:
    """Move the front card of the draw pile into an empty hand slot."""
    return GameEffect(EffectType.DRAW_CARD, player_index=player_index, slot_index=slot_index)


def remove_card(player_index: int, slot_index: int) -> GameEffect:
    """Empty a hand slot. The slot's hints go with the card."""
    return GameEffect(EffectType.REMOVE_CARD, player_index=player_index, slot_index=slot_index)


def add_to_discard(card: Card) -> GameEffect:
    return GameEffect(EffectType.ADD_TO_DISCARD, card=card)


def place_on_board(card: Card) -> GameEffect:
    return GameEffect(EffectType.PLACE_ON_BOARD, card=card)


def hint_card(player_index: int, slot_index: int, hint: Hint) -> GameEffect:
    """Attach a hint to the card in a slot."""
    return GameEffect(
        EffectType.HINT_CARD,
        player_index=player_index,
        slot_index=slot_index,
        hint=hint,
    )


def dec_hint() -> GameEffect:
    return GameEffect(EffectType.DEC_HINT)


def inc_hint() -> GameEffect:
    return GameEffect(EffectType.INC_HINT)


def burn_fuse() -> GameEffect:
    return GameEffect(EffectType.BURN_FUSE)


def next_turn(next_player: int) -> GameEffect:
    """
    Advance the turn counter and hand the turn to ``next_player``.

    The next player is recorded so the log reads without the state, but
    application always derives it from the seat order.
    """
    return GameEffect(EffectType.NEXT_TURN, player_index=next_player)


def mark_last_turn(last_turn: int) -> GameEffect:
    """Record the last playable turn once the draw pile runs out."""
    return GameEffect(EffectType.MARK_LAST_TURN, turn=last_turn)
