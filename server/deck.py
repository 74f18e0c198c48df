"""
Deck building, seeded shuffling and dealing for Hanabi.

For event sourcing, the shuffle is keyed solely by ``GameConfig.seed``:
the same seed always yields the same deck order, enabling exact game
replay. Shuffling uses its own ``random.Random`` instance and never
touches the module-level random state.
"""

import random
from typing import Optional

from constants import COPIES_PER_FACE
from models.cards import Card, CardFace, CardSuit, Slot
from models.game_config import GameConfig


class SeededShuffler:
    """
    Deterministic Fisher-Yates shuffle driven by a private PRNG.

    Each call to ``shuffle`` continues the generator's sequence, so a
    fresh shuffler must be created per deck to reproduce an order.
    """

    def __init__(self, seed: int) -> None:
        self.seed = seed
        self._rng = random.Random(seed)

    def shuffle(self, items: list) -> list:
        """Return a new list holding ``items`` in shuffled order."""
        result = list(items)
        for index in range(len(result)):
            swap = self._rng.randrange(index, len(result))
            result[index], result[swap] = result[swap], result[index]
        return result


def standard_deck(num_suits: int) -> list[Card]:
    """The unshuffled deck composition, face-major then suit order."""
    suits = CardSuit.in_play(num_suits)
    return [
        Card(face=face, suit=suit)
        for face in CardFace
        for suit in suits
        for _ in range(COPIES_PER_FACE[int(face)])
    ]


def build_deck(config: GameConfig) -> list[Card]:
    """
    Build and shuffle the deck for a game.

    Args:
        config: Game configuration; only ``seed`` and ``num_suits`` matter.

    Returns:
        Cards in draw order (index 0 is drawn first).
    """
    return SeededShuffler(config.seed).shuffle(standard_deck(config.num_suits))


def deal_order(config: GameConfig) -> list[tuple[int, int]]:
    """
    (player_index, slot_index) pairs in the order cards are dealt.

    One pass per slot; each pass gives a card to every player in seat
    order beginning at the starting player.
    """
    seats = [
        (config.starting_player + offset) % config.num_players
        for offset in range(config.num_players)
    ]
    return [(seat, slot) for slot in range(config.hand_size) for seat in seats]


def deal_initial_hands(
    deck: list[Card],
    config: GameConfig,
) -> tuple[list[list[Optional[Slot]]], list[Card]]:
    """
    Deal starting hands from the front of ``deck``.

    Dealing degrades gracefully: if the deck runs out, the remaining
    slots stay empty and the draw pile is empty.

    Returns:
        Tuple of (hands indexed by player then slot, remaining draw pile).
    """
    hands: list[list[Optional[Slot]]] = [
        [None] * config.hand_size for _ in range(config.num_players)
    ]
    pile = list(deck)
    for player_index, slot_index in deal_order(config):
        if not pile:
            break
        hands[player_index][slot_index] = Slot(card=pile.pop(0))
    return hands, pile
