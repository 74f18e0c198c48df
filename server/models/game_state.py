"""
Authoritative game state and effect application.

GameState is the single source of truth for one Hanabi game. It changes
only by applying GameEffects, one at a time, through ``apply``. Every
applied effect is appended to ``history``, so:

    rebuild_state(state.config, state.history) == state

holds for any state reached this way (replay determinism).

Usage:
    state = GameState.initial(config)
    for effect in effects:
        state.apply(effect)
    print(state.current_player, state.outcome)
"""

from dataclasses import dataclass, field
from typing import Optional

from constants import MAX_FACE
import deck
from models.cards import Card, CardSuit, Slot
from models.effects import GameEffect
from models.effects import EffectType
from models.game_config import GameConfig


@dataclass(frozen=True)
class GameOutcome:
    """
    Terminal classification of a game.

    Attributes:
        won: True when every suit in play was completed.
        score: Sum of the suit stack heights at the end of the game.
    """

    won: bool
    score: int

    @classmethod
    def win(cls, score: int) -> "GameOutcome":
        return cls(won=True, score=score)

    @classmethod
    def fail(cls, score: int) -> "GameOutcome":
        return cls(won=False, score=score)

    def to_dict(self) -> dict:
        return {"result": "win" if self.won else "fail", "score": self.score}

    @classmethod
    def from_dict(cls, d: dict) -> "GameOutcome":
        return cls(won=d["result"] == "win", score=int(d["score"]))


@dataclass
class Player:
    """
    A seat's hand. ``None`` marks an empty slot (played or discarded and
    not refilled because the draw pile ran out).
    """

    hand: list[Optional[Slot]] = field(default_factory=list)

    def cards(self) -> list[tuple[int, Slot]]:
        """(slot_index, slot) for every slot holding a card."""
        return [(index, slot) for index, slot in enumerate(self.hand) if slot is not None]

    def to_dict(self) -> dict:
        return {"hand": [slot.to_dict() if slot else None for slot in self.hand]}


@dataclass
class GameState:
    """
    Full game state.

    Attributes:
        config: Immutable table settings.
        draw_pile: Undrawn cards; index 0 is the next draw.
        played_cards: Cards committed to the board, in play order.
        discard_pile: Discarded and misplayed cards, in order.
        players: Hands, indexed by seat.
        remaining_fuse_count: Fuses left; 0 ends the game.
        remaining_hint_count: Hint tokens available.
        turn: Turns taken since the deal.
        current_player: Seat whose turn it is.
        last_turn: Last playable turn, set once the draw pile empties.
        outcome: Set once the game is over, never changed afterwards.
        history: Every effect applied so far, in order.
    """

    config: GameConfig
    draw_pile: list[Card] = field(default_factory=list)
    played_cards: list[Card] = field(default_factory=list)
    discard_pile: list[Card] = field(default_factory=list)
    players: list[Player] = field(default_factory=list)
    remaining_fuse_count: int = 0
    remaining_hint_count: int = 0
    turn: int = 0
    current_player: int = 0
    last_turn: Optional[int] = None
    outcome: Optional[GameOutcome] = None
    history: list[GameEffect] = field(default_factory=list)

    @classmethod
    def initial(cls, config: GameConfig) -> "GameState":
        """
        The pre-deal state: shuffled draw pile, empty hands, full counters.
        """
        return cls(
            config=config,
            draw_pile=deck.build_deck(config),
            players=[Player(hand=[None] * config.hand_size) for _ in range(config.num_players)],
            remaining_fuse_count=config.num_fuses,
            remaining_hint_count=config.num_hints,
            turn=0,
            current_player=config.starting_player,
        )

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    @property
    def num_players(self) -> int:
        return len(self.players)

    @property
    def suits_in_play(self) -> list[CardSuit]:
        return CardSuit.in_play(self.config.num_suits)

    def board_height(self, suit: CardSuit) -> int:
        """Highest face placed for ``suit``, 0 if none."""
        return max((int(c.face) for c in self.played_cards if c.suit == suit), default=0)

    def board_heights(self) -> dict[CardSuit, int]:
        return {suit: self.board_height(suit) for suit in self.suits_in_play}

    def score(self) -> int:
        return sum(self.board_heights().values())

    def all_suits_complete(self) -> bool:
        return all(height == MAX_FACE for height in self.board_heights().values())

    def slot(self, player_index: int, slot_index: int) -> Optional[Slot]:
        return self.players[player_index].hand[slot_index]

    def to_dict(self) -> dict:
        """Full, unredacted state. Only for finished games and debugging."""
        return {
            "config": self.config.to_dict(),
            "draw_pile": [c.to_dict() for c in self.draw_pile],
            "played_cards": [c.to_dict() for c in self.played_cards],
            "discard_pile": [c.to_dict() for c in self.discard_pile],
            "players": [p.to_dict() for p in self.players],
            "remaining_fuse_count": self.remaining_fuse_count,
            "remaining_hint_count": self.remaining_hint_count,
            "turn": self.turn,
            "current_player": self.current_player,
            "last_turn": self.last_turn,
            "outcome": self.outcome.to_dict() if self.outcome else None,
            "history": [e.to_dict() for e in self.history],
        }

    # -------------------------------------------------------------------------
    # Effect application
    # -------------------------------------------------------------------------

    def apply(self, effect: GameEffect) -> "GameState":
        """
        Apply one effect, record it, and re-evaluate the outcome.

        Args:
            effect: The effect to apply.

        Returns:
            self for chaining.

        Raises:
            ValueError: If the game is already over or the effect does not
                fit the current state.
        """
        if self.outcome is not None:
            raise ValueError("Game is over; state is read-only")

        handler = getattr(self, f"_apply_{effect.effect_type.value}", None)
        if handler is None:
            raise ValueError(f"Unknown effect type: {effect.effect_type}")

        handler(effect)
        self.history.append(effect)
        self.outcome = check_outcome(self)
        return self

    def _hand_slot(self, effect: GameEffect) -> tuple[list[Optional[Slot]], int]:
        """Resolve and bounds-check the hand slot an effect refers to."""
        if effect.player_index is None or not 0 <= effect.player_index < self.num_players:
            raise ValueError(f"Invalid player index in {effect}")
        hand = self.players[effect.player_index].hand
        if effect.slot_index is None or not 0 <= effect.slot_index < len(hand):
            raise ValueError(f"Invalid slot index in {effect}")
        return hand, effect.slot_index

    def _apply_draw_card(self, effect: GameEffect) -> None:
        hand, slot_index = self._hand_slot(effect)
        if not self.draw_pile:
            raise ValueError("Cannot draw from an empty draw pile")
        if hand[slot_index] is not None:
            raise ValueError(f"Slot {slot_index} is not empty")
        hand[slot_index] = Slot(card=self.draw_pile.pop(0))

    def _apply_remove_card(self, effect: GameEffect) -> None:
        hand, slot_index = self._hand_slot(effect)
        if hand[slot_index] is None:
            raise ValueError(f"Slot {slot_index} is already empty")
        hand[slot_index] = None

    def _apply_add_to_discard(self, effect: GameEffect) -> None:
        self.discard_pile.append(effect.card)

    def _apply_place_on_board(self, effect: GameEffect) -> None:
        self.played_cards.append(effect.card)

    def _apply_hint_card(self, effect: GameEffect) -> None:
        hand, slot_index = self._hand_slot(effect)
        slot = hand[slot_index]
        if slot is None:
            raise ValueError(f"Cannot hint empty slot {slot_index}")
        hand[slot_index] = slot.with_hint(effect.hint)

    def _apply_dec_hint(self, effect: GameEffect) -> None:
        if self.remaining_hint_count <= 0:
            raise ValueError("No hint tokens left")
        self.remaining_hint_count -= 1

    def _apply_inc_hint(self, effect: GameEffect) -> None:
        self.remaining_hint_count = min(self.config.num_hints, self.remaining_hint_count + 1)

    def _apply_burn_fuse(self, effect: GameEffect) -> None:
        if self.remaining_fuse_count <= 0:
            raise ValueError("No fuses left")
        self.remaining_fuse_count -= 1

    def _apply_next_turn(self, effect: GameEffect) -> None:
        self.turn += 1
        self.current_player = (self.current_player + 1) % self.num_players

    def _apply_mark_last_turn(self, effect: GameEffect) -> None:
        if self.last_turn is not None:
            raise ValueError("Last turn is already marked")
        self.last_turn = effect.turn


def _check_effect_handlers() -> None:
    missing = [t.value for t in EffectType if not hasattr(GameState, f"_apply_{t.value}")]
    if missing:
        raise RuntimeError(f"GameState has no handler for effect types: {missing}")


_check_effect_handlers()


def check_outcome(state: GameState) -> Optional[GameOutcome]:
    """
    Evaluate whether the game has ended.

    Pure function of the state. A completed board wins even if the same
    action also ran out the clock.

    Returns:
        Win when every suit in play reached 5; Fail when the fuses are
        gone or the final round has elapsed; otherwise None.
    """
    if state.all_suits_complete():
        return GameOutcome.win(state.score())
    if state.remaining_fuse_count <= 0:
        return GameOutcome.fail(state.score())
    if state.last_turn is not None and state.turn > state.last_turn:
        return GameOutcome.fail(state.score())
    return None


def rebuild_state(config: GameConfig, effects: list[GameEffect]) -> GameState:
    """
    Rebuild game state by replaying effects on the initial state.

    Args:
        config: The game's configuration (fixes the shuffle).
        effects: Effects in application order.

    Returns:
        Reconstructed GameState.
    """
    state = GameState.initial(config)
    for effect in effects:
        state.apply(effect)
    return state
