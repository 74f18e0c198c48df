"""
Per-viewer game snapshots.

A player cannot see their own cards but sees everyone else's, so every
snapshot is built for one viewer:
    - the viewer's own hand is a MeView: hints only, no card identity
    - every other hand is a TeammateView: cards plus hints
    - the draw pile is reduced to a count

Snapshots are built fresh per viewer per update by ``project`` and are
never mutated afterwards. Once the game is finished the full state is
attached as ``revealed_state`` so the end screen can show every hand.
"""

from dataclasses import dataclass, field
from typing import Optional, Union

from game import Game, GamePhase
from models.cards import Card, Hint, Slot
from models.events import GameEvent
from models.game_config import GameConfig
from models.game_state import GameOutcome, GameState


@dataclass(frozen=True)
class MeView:
    """
    The viewer's own hand.

    Attributes:
        player_index: The viewer's seat.
        name: Display name.
        hints: Per slot, the hints known about the card, or None if the
            slot is empty.
    """

    player_index: int
    name: str
    hints: tuple[Optional[tuple[Hint, ...]], ...]

    def to_dict(self) -> dict:
        return {
            "kind": "me",
            "player_index": self.player_index,
            "name": self.name,
            "hand": [
                None if slot_hints is None else {"hints": [h.to_dict() for h in slot_hints]}
                for slot_hints in self.hints
            ],
        }


@dataclass(frozen=True)
class TeammateView:
    """A teammate's hand, cards visible."""

    player_index: int
    name: str
    hand: tuple[Optional[Slot], ...]

    def to_dict(self) -> dict:
        return {
            "kind": "teammate",
            "player_index": self.player_index,
            "name": self.name,
            "hand": [slot.to_dict() if slot else None for slot in self.hand],
        }


PlayerView = Union[MeView, TeammateView]


@dataclass(frozen=True)
class GameStateSnapshot:
    """
    Everything one viewer is allowed to know about a game.

    Attributes:
        viewer_index: Seat this snapshot was built for.
        config: Table settings.
        phase: Whole-game phase.
        players: One view per seat, in seat order.
        played_cards: Cards on the board, in play order.
        board_heights: Top face per suit in play.
        discard_pile: Discarded and misplayed cards.
        draw_pile_count: Cards left to draw.
        remaining_fuse_count: Fuses left.
        remaining_hint_count: Hint tokens left.
        turn: Turns taken since the deal.
        current_player: Seat to act, None once finished.
        last_turn: Last playable turn once the draw pile is empty.
        outcome: Set once finished.
        events: Public event log.
        revealed_state: Full state dict, only once finished.
    """

    viewer_index: int
    config: GameConfig
    phase: GamePhase
    players: tuple[PlayerView, ...]
    played_cards: tuple[Card, ...]
    board_heights: dict[str, int]
    discard_pile: tuple[Card, ...]
    draw_pile_count: int
    remaining_fuse_count: int
    remaining_hint_count: int
    turn: int
    current_player: Optional[int]
    last_turn: Optional[int]
    outcome: Optional[GameOutcome]
    events: tuple[GameEvent, ...] = field(default_factory=tuple)
    revealed_state: Optional[dict] = None

    @property
    def me(self) -> MeView:
        return self.players[self.viewer_index]

    def to_dict(self) -> dict:
        return {
            "viewer_index": self.viewer_index,
            "config": self.config.to_dict(),
            "phase": self.phase.value,
            "players": [p.to_dict() for p in self.players],
            "played_cards": [c.to_dict() for c in self.played_cards],
            "board_heights": dict(self.board_heights),
            "discard_pile": [c.to_dict() for c in self.discard_pile],
            "draw_pile_count": self.draw_pile_count,
            "remaining_fuse_count": self.remaining_fuse_count,
            "remaining_hint_count": self.remaining_hint_count,
            "num_rounds": self.turn,
            "current_player": self.current_player,
            "last_turn": self.last_turn,
            "outcome": self.outcome.to_dict() if self.outcome else None,
            "events": [e.to_dict() for e in self.events],
            "revealed_state": self.revealed_state,
        }


def _phase_of(state: GameState) -> GamePhase:
    if state.outcome is not None:
        return GamePhase.FINISHED
    if state.last_turn is not None:
        return GamePhase.FINAL_ROUND
    return GamePhase.IN_PROGRESS


def project(
    state: GameState,
    viewer: int,
    names: Optional[list[str]] = None,
    events: Optional[list[GameEvent]] = None,
) -> GameStateSnapshot:
    """
    Build the snapshot ``viewer`` is allowed to see.

    Args:
        state: Authoritative state. Not modified.
        viewer: Seat index of the receiving player.
        names: Display names by seat; defaults to "Player N".
        events: Public event log to include.

    Raises:
        ValueError: If ``viewer`` is not a seat in this game.
    """
    if not 0 <= viewer < state.num_players:
        raise ValueError(f"No player at index {viewer}")
    names = names or [f"Player {i + 1}" for i in range(state.num_players)]

    views: list[PlayerView] = []
    for index, player in enumerate(state.players):
        name = names[index] if index < len(names) else f"Player {index + 1}"
        if index == viewer:
            views.append(MeView(
                player_index=index,
                name=name,
                hints=tuple(slot.hints if slot else None for slot in player.hand),
            ))
        else:
            views.append(TeammateView(player_index=index, name=name, hand=tuple(player.hand)))

    finished = state.outcome is not None
    return GameStateSnapshot(
        viewer_index=viewer,
        config=state.config,
        phase=_phase_of(state),
        players=tuple(views),
        played_cards=tuple(state.played_cards),
        board_heights={suit.value: h for suit, h in state.board_heights().items()},
        discard_pile=tuple(state.discard_pile),
        draw_pile_count=len(state.draw_pile),
        remaining_fuse_count=state.remaining_fuse_count,
        remaining_hint_count=state.remaining_hint_count,
        turn=state.turn,
        current_player=None if finished else state.current_player,
        last_turn=state.last_turn,
        outcome=state.outcome,
        events=tuple(events or ()),
        revealed_state=state.to_dict() if finished else None,
    )


def project_game(game: Game, viewer: int, names: Optional[list[str]] = None) -> GameStateSnapshot:
    """Snapshot of a started game, including its public event log."""
    if game.state is None:
        raise ValueError("Game has not started")
    return project(game.state, viewer, names=names, events=game.events)
