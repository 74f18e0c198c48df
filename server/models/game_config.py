"""
Immutable per-game configuration.

A GameConfig plus the ordered list of accepted actions is everything
needed to reconstruct a game: the seed fixes the shuffle, the rest fixes
the table. It is what the game store persists per game id.
"""

from dataclasses import asdict, dataclass

from constants import (
    DEFAULT_NUM_FUSES,
    DEFAULT_NUM_HINTS,
    SUIT_ORDER,
    deck_size,
    hand_size_for,
)


@dataclass(frozen=True)
class GameConfig:
    """
    Table settings for one game.

    Attributes:
        num_players: Number of seats.
        hand_size: Slots per hand.
        num_fuses: Starting (and maximum) fuse count.
        num_hints: Starting (and maximum) hint token count.
        starting_player: Seat index that takes the first turn.
        seed: Shuffle seed. Same seed, same deck order.
        num_suits: How many suits are in play (first N of the canonical order).
        reject_trivial_hints: House rule - reject hints that match every
            card or no card in the target's hand.
    """

    num_players: int
    hand_size: int
    num_fuses: int = DEFAULT_NUM_FUSES
    num_hints: int = DEFAULT_NUM_HINTS
    starting_player: int = 0
    seed: int = 0
    num_suits: int = len(SUIT_ORDER)
    reject_trivial_hints: bool = False

    @classmethod
    def for_players(cls, num_players: int, seed: int, **overrides) -> "GameConfig":
        """Standard table for ``num_players`` with the usual hand size."""
        values = {
            "num_players": num_players,
            "hand_size": hand_size_for(num_players),
            "seed": seed,
        }
        values.update(overrides)
        return cls(**values)

    @property
    def deck_size(self) -> int:
        return deck_size(self.num_suits)

    def validate(self, strict: bool = False) -> None:
        """
        Check the configuration is playable.

        The engine only needs the basic checks. ``strict`` additionally
        requires the deck to be large enough to fill every hand, a policy
        the lobby applies before starting a game.

        Raises:
            ValueError: Describing the first problem found.
        """
        if self.num_players < 1:
            raise ValueError("num_players must be at least 1")
        if self.hand_size < 1:
            raise ValueError("hand_size must be at least 1")
        if not 1 <= self.num_suits <= len(SUIT_ORDER):
            raise ValueError(f"num_suits must be between 1 and {len(SUIT_ORDER)}")
        if self.num_fuses < 1:
            raise ValueError("num_fuses must be at least 1")
        if self.num_hints < 0:
            raise ValueError("num_hints cannot be negative")
        if not 0 <= self.starting_player < self.num_players:
            raise ValueError("starting_player is not a seat at this table")
        if strict and self.num_players * self.hand_size > self.deck_size:
            raise ValueError(
                f"{self.num_players} hands of {self.hand_size} need more than "
                f"{self.deck_size} cards"
            )

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, d: dict) -> "GameConfig":
        return cls(
            num_players=int(d["num_players"]),
            hand_size=int(d["hand_size"]),
            num_fuses=int(d.get("num_fuses", DEFAULT_NUM_FUSES)),
            num_hints=int(d.get("num_hints", DEFAULT_NUM_HINTS)),
            starting_player=int(d.get("starting_player", 0)),
            seed=int(d.get("seed", 0)),
            num_suits=int(d.get("num_suits", len(SUIT_ORDER))),
            reject_trivial_hints=bool(d.get("reject_trivial_hints", False)),
        )
