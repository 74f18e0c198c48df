"""
Card and table constants for Hanabi.

This module is the single source of truth for deck composition and
default table settings. Defaults can be overridden through config.py
(environment variables), but the deck composition is fixed.

Deck Composition (per suit):
    - Face 1: 3 copies
    - Faces 2-4: 2 copies each
    - Face 5: 1 copy
    = 10 cards per suit, 50 cards with all five suits
"""

# =============================================================================
# Deck Composition
# =============================================================================

# Suits in canonical order. Games using fewer suits take a prefix of this list.
SUIT_ORDER: list[str] = ["red", "green", "yellow", "white", "blue"]

FACE_VALUES: list[int] = [1, 2, 3, 4, 5]

COPIES_PER_FACE: dict[int, int] = {
    1: 3,
    2: 2,
    3: 2,
    4: 2,
    5: 1,
}

MAX_FACE: int = 5

CARDS_PER_SUIT: int = sum(COPIES_PER_FACE.values())


# =============================================================================
# Table Defaults
# =============================================================================

DEFAULT_NUM_FUSES: int = 3
DEFAULT_NUM_HINTS: int = 8

MIN_PLAYERS: int = 2
MAX_PLAYERS: int = 5

# Hand size by player count
HAND_SIZES: dict[int, int] = {
    2: 5,
    3: 5,
    4: 4,
    5: 4,
}
DEFAULT_HAND_SIZE: int = 4


def hand_size_for(num_players: int) -> int:
    """Standard hand size for a table of the given size."""
    return HAND_SIZES.get(num_players, DEFAULT_HAND_SIZE)


def deck_size(num_suits: int = len(SUIT_ORDER)) -> int:
    """Number of cards in a deck using the first ``num_suits`` suits."""
    return CARDS_PER_SUIT * num_suits
