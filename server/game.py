"""
Rules engine for Hanabi.

This module is the authoritative state machine: it validates a player's
action against the current GameState, plans the ordered effects the action
causes, applies them, and records what happened.

Hanabi Rules Summary:
    - Cooperative: everyone wins or loses together
    - You see every hand except your own
    - On your turn: play a card, discard a card, or give a hint
    - A played card must be exactly one higher than its suit's stack,
      otherwise it is discarded and a fuse burns
    - Discarding regains a hint token; completing a suit (a 5) does too
    - Giving a hint costs a token and tells a teammate, for every card in
      their hand, whether it has the named suit (or face)
    - The game ends when every suit reaches 5 (win), when the fuses run
      out, or one full round after the draw pile empties (fail)

Game Flow:
    NOT_STARTED -> IN_PROGRESS -> FINAL_ROUND -> FINISHED
    (FINISHED can be reached from IN_PROGRESS directly by winning or
    burning the last fuse.)

Validation never mutates state: a rejected action raises an EngineError
and leaves the game exactly as it was.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from deck import deal_order
from models import effects as fx
from models import events
from models.actions import (
    ActionType,
    HintAction,
    PlayedCardResult,
    PlayerAction,
    discard_card,
    give_hint,
    play_card,
)
from models.cards import CardFace, CardSuit, Slot
from models.effects import GameEffect
from models.events import GameEvent
from models.game_config import GameConfig
from models.game_state import GameOutcome, GameState


logger = logging.getLogger(__name__)


# =============================================================================
# Errors
# =============================================================================


class EngineError(Exception):
    """Base class for rejected actions. The game state is unchanged."""

    code = "engine_error"


class InvalidTurnError(EngineError):
    """The acting player is not the current player."""

    code = "invalid_turn"


class PreconditionNotMetError(EngineError):
    """The action is not allowed in the current state."""

    code = "precondition_not_met"


class OutOfRangeError(PreconditionNotMetError):
    """A slot or player index is outside valid bounds."""

    code = "out_of_range"


class TerminalStateError(EngineError):
    """The game is already over."""

    code = "terminal_state"


# =============================================================================
# Results
# =============================================================================


class GamePhase(str, Enum):
    """
    Whole-game phase, derived from the state.

    FINAL_ROUND starts the moment the draw pile empties.
    """

    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    FINAL_ROUND = "final_round"
    FINISHED = "finished"


@dataclass(frozen=True)
class ActionRecord:
    """
    One accepted action, as persisted. Config plus the ordered records
    is enough to rebuild the game with ``Game.replay``.
    """

    turn: int
    player_index: int
    action: PlayerAction

    def to_dict(self) -> dict:
        return {
            "turn": self.turn,
            "player_index": self.player_index,
            "action": self.action.to_dict(),
        }

    @classmethod
    def from_dict(cls, d: dict) -> "ActionRecord":
        return cls(
            turn=int(d["turn"]),
            player_index=int(d["player_index"]),
            action=PlayerAction.from_dict(d["action"]),
        )


@dataclass
class EffectBatch:
    """
    Result of one accepted action.

    Attributes:
        player_index: Who acted.
        action: The accepted action.
        turn: Turn the action was taken on.
        effects: Effects applied, in application order.
        played_card_result: Set for play_card actions.
        outcome: Set if this action ended the game.
    """

    player_index: int
    action: PlayerAction
    turn: int
    effects: list[GameEffect] = field(default_factory=list)
    played_card_result: Optional[PlayedCardResult] = None
    outcome: Optional[GameOutcome] = None

    def to_dict(self) -> dict:
        return {
            "player_index": self.player_index,
            "action": self.action.to_dict(),
            "turn": self.turn,
            "effects": [e.to_dict() for e in self.effects],
            "played_card_result": (
                self.played_card_result.value if self.played_card_result else None
            ),
            "outcome": self.outcome.to_dict() if self.outcome else None,
        }


# =============================================================================
# Game
# =============================================================================


@dataclass
class Game:
    """
    One Hanabi game: state plus the accepted-action and public event logs.

    Attributes:
        game_id: Identifier used in logs; the engine does not interpret it.
        state: Authoritative state, None until ``start``.
        actions: Every accepted action in order.
        events: Public event log (actions with their effects, game over).
    """

    game_id: Optional[str] = None
    state: Optional[GameState] = None
    actions: list[ActionRecord] = field(default_factory=list)
    events: list[GameEvent] = field(default_factory=list)

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    def start(self, config: GameConfig) -> GameState:
        """
        Shuffle and deal.

        The deal is applied as DrawCard effects so that it is part of the
        effect history and replays like everything else.

        Raises:
            ValueError: If the config is not playable.
            PreconditionNotMetError: If the game was already started.
        """
        if self.state is not None:
            raise PreconditionNotMetError("Game has already started")
        config.validate()

        state = GameState.initial(config)
        for player_index, slot_index in deal_order(config):
            if not state.draw_pile:
                break
            for effect in self._draw_effects(state, player_index, slot_index):
                state.apply(effect)

        self.state = state
        logger.debug(
            "Game %s started: %d players, seed %d, %d cards in draw pile",
            self.game_id, config.num_players, config.seed, len(state.draw_pile),
        )
        return state

    @classmethod
    def replay(
        cls,
        config: GameConfig,
        records: list[ActionRecord],
        game_id: Optional[str] = None,
    ) -> "Game":
        """
        Rebuild a game from its config and ordered action history.

        Raises:
            ValueError: If a record does not match the rebuilt state or
                its action is rejected. The message names the turn.
        """
        game = cls(game_id=game_id)
        game.start(config)
        for record in records:
            if record.turn != game.state.turn:
                raise ValueError(
                    f"Action recorded for turn {record.turn} but game is at turn "
                    f"{game.state.turn}"
                )
            try:
                game.play(record.player_index, record.action)
            except EngineError as e:
                raise ValueError(f"Action at turn {record.turn} failed to replay: {e}") from e
        return game

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    @property
    def phase(self) -> GamePhase:
        if self.state is None:
            return GamePhase.NOT_STARTED
        if self.state.outcome is not None:
            return GamePhase.FINISHED
        if self.state.last_turn is not None:
            return GamePhase.FINAL_ROUND
        return GamePhase.IN_PROGRESS

    @property
    def outcome(self) -> Optional[GameOutcome]:
        return self.state.outcome if self.state else None

    @property
    def current_player_index(self) -> Optional[int]:
        if self.state is None or self.state.outcome is not None:
            return None
        return self.state.current_player

    def legal_actions(self, player_index: int) -> list[PlayerAction]:
        """Every action ``player_index`` could take right now."""
        state = self.state
        if state is None or state.outcome is not None or state.current_player != player_index:
            return []

        candidates: list[PlayerAction] = []
        for slot_index in range(state.config.hand_size):
            candidates.append(play_card(slot_index))
            candidates.append(discard_card(slot_index))
        for target in range(state.num_players):
            for suit in CardSuit:
                candidates.append(give_hint(target, HintAction.same_suit(suit)))
            for face in CardFace:
                candidates.append(give_hint(target, HintAction.same_face(face)))

        legal = []
        for action in candidates:
            try:
                self.validate(player_index, action)
            except EngineError:
                continue
            legal.append(action)
        return legal

    # -------------------------------------------------------------------------
    # Validation
    # -------------------------------------------------------------------------

    def validate(self, player_index: int, action: PlayerAction) -> None:
        """
        Check an action without touching state.

        Raises:
            TerminalStateError: The game is over.
            OutOfRangeError: A player or slot index is out of bounds.
            InvalidTurnError: It is not ``player_index``'s turn.
            PreconditionNotMetError: The action is not allowed right now.
        """
        state = self.state
        if state is None:
            raise PreconditionNotMetError("Game has not started")
        if state.outcome is not None:
            raise TerminalStateError("Game is over")
        if not 0 <= player_index < state.num_players:
            raise OutOfRangeError(f"No player at index {player_index}")
        if player_index != state.current_player:
            raise InvalidTurnError(
                f"It is player {state.current_player}'s turn, not player {player_index}'s"
            )

        if action.action_type in (ActionType.PLAY_CARD, ActionType.DISCARD_CARD):
            self._validate_slot(state, player_index, action.slot_index)
            if (
                action.action_type == ActionType.DISCARD_CARD
                and state.remaining_hint_count >= state.config.num_hints
            ):
                raise PreconditionNotMetError("Cannot discard while hint tokens are full")
        elif action.action_type == ActionType.GIVE_HINT:
            self._validate_hint(state, player_index, action)
        else:
            raise PreconditionNotMetError(f"Unknown action type: {action.action_type}")

    @staticmethod
    def _validate_slot(state: GameState, player_index: int, slot_index: Optional[int]) -> Slot:
        if slot_index is None or not 0 <= slot_index < state.config.hand_size:
            raise OutOfRangeError(f"No slot at index {slot_index}")
        slot = state.slot(player_index, slot_index)
        if slot is None:
            raise PreconditionNotMetError(f"Slot {slot_index} is empty")
        return slot

    @staticmethod
    def _validate_hint(state: GameState, player_index: int, action: PlayerAction) -> None:
        if action.hint is None:
            raise PreconditionNotMetError("A hint needs a suit or a face")
        if state.remaining_hint_count <= 0:
            raise PreconditionNotMetError("No hint tokens left")
        target = action.target
        if target is None or not 0 <= target < state.num_players:
            raise OutOfRangeError(f"No player at index {target}")
        if target == player_index:
            raise PreconditionNotMetError("Cannot give a hint to yourself")

        # A target with an empty hand can still be hinted: only the token is spent
        if state.config.reject_trivial_hints:
            cards = state.players[target].cards()
            matches = sum(1 for _, slot in cards if action.hint.matches(slot.card))
            if matches == 0 or matches == len(cards):
                raise PreconditionNotMetError("Hint must match some but not all cards")

    # -------------------------------------------------------------------------
    # Planning
    # -------------------------------------------------------------------------

    def plan(
        self, player_index: int, action: PlayerAction
    ) -> tuple[list[GameEffect], Optional[PlayedCardResult]]:
        """
        Validate an action and compute its effects without applying them.

        Returns:
            Tuple of (effects in application order, played-card result).
        """
        self.validate(player_index, action)
        state = self.state

        if action.action_type == ActionType.PLAY_CARD:
            return self._plan_play(state, player_index, action.slot_index)
        if action.action_type == ActionType.DISCARD_CARD:
            return self._plan_discard(state, player_index, action.slot_index), None
        return self._plan_hint(state, player_index, action), None

    def _plan_play(
        self, state: GameState, player_index: int, slot_index: int
    ) -> tuple[list[GameEffect], PlayedCardResult]:
        card = state.slot(player_index, slot_index).card
        planned = [fx.remove_card(player_index, slot_index)]

        if int(card.face) == state.board_height(card.suit) + 1:
            planned.append(fx.place_on_board(card))
            if card.face.is_final:
                result = PlayedCardResult.COMPLETED_SET
                if state.remaining_hint_count < state.config.num_hints:
                    planned.append(fx.inc_hint())
            else:
                result = PlayedCardResult.ACCEPTED
        else:
            planned.append(fx.add_to_discard(card))
            planned.append(fx.burn_fuse())
            result = PlayedCardResult.REJECTED

        planned.extend(self._draw_effects(state, player_index, slot_index))
        planned.append(fx.next_turn(self._next_player(state)))
        return planned, result

    def _plan_discard(
        self, state: GameState, player_index: int, slot_index: int
    ) -> list[GameEffect]:
        card = state.slot(player_index, slot_index).card
        planned = [
            fx.remove_card(player_index, slot_index),
            fx.add_to_discard(card),
        ]
        if state.remaining_hint_count < state.config.num_hints:
            planned.append(fx.inc_hint())
        planned.extend(self._draw_effects(state, player_index, slot_index))
        planned.append(fx.next_turn(self._next_player(state)))
        return planned

    def _plan_hint(
        self, state: GameState, player_index: int, action: PlayerAction
    ) -> list[GameEffect]:
        target = action.target
        planned = [
            fx.hint_card(target, slot_index, action.hint.hint_for(slot.card))
            for slot_index, slot in state.players[target].cards()
        ]
        planned.append(fx.dec_hint())
        planned.append(fx.next_turn(self._next_player(state)))
        return planned

    @staticmethod
    def _draw_effects(state: GameState, player_index: int, slot_index: int) -> list[GameEffect]:
        """DrawCard into the slot if possible, marking the last turn if it empties the pile."""
        if not state.draw_pile:
            return []
        drawn = [fx.draw_card(player_index, slot_index)]
        if len(state.draw_pile) == 1 and state.last_turn is None:
            drawn.append(fx.mark_last_turn(state.turn + state.num_players))
        return drawn

    @staticmethod
    def _next_player(state: GameState) -> int:
        return (state.current_player + 1) % state.num_players

    # -------------------------------------------------------------------------
    # Application
    # -------------------------------------------------------------------------

    def play(self, player_index: int, action: PlayerAction) -> EffectBatch:
        """
        Validate, plan and apply one action.

        Effects are applied in order. If an effect ends the game, the rest
        of the planned effects are dropped.

        Args:
            player_index: Acting player.
            action: Requested action.

        Returns:
            EffectBatch describing what was applied.

        Raises:
            EngineError: If the action is rejected. State is unchanged.
        """
        try:
            planned, result = self.plan(player_index, action)
        except EngineError as e:
            logger.debug(
                "Game %s: rejected %s from player %d: %s",
                self.game_id, action.describe(), player_index, e,
            )
            raise

        state = self.state
        turn = state.turn
        applied: list[GameEffect] = []
        for effect in planned:
            state.apply(effect)
            applied.append(effect)
            if state.outcome is not None:
                break

        batch = EffectBatch(
            player_index=player_index,
            action=action,
            turn=turn,
            effects=applied,
            played_card_result=result,
            outcome=state.outcome,
        )
        self.actions.append(ActionRecord(turn=turn, player_index=player_index, action=action))
        self._record_events(batch)

        logger.debug(
            "Game %s turn %d: player %d %s (%d effects)",
            self.game_id, turn, player_index, action.describe(), len(applied),
        )
        if state.outcome is not None:
            logger.info(
                "Game %s over after %d turns: %s, score %d",
                self.game_id, state.turn,
                "win" if state.outcome.won else "fail", state.outcome.score,
            )
        return batch

    def _record_events(self, batch: EffectBatch) -> None:
        self.events.append(events.player_action(
            sequence_num=len(self.events) + 1,
            turn=batch.turn,
            player_index=batch.player_index,
            action=batch.action,
            effects=batch.effects,
            played_card_result=batch.played_card_result,
        ))
        if batch.outcome is not None:
            self.events.append(events.game_over(
                sequence_num=len(self.events) + 1,
                turn=batch.turn,
                outcome=batch.outcome.to_dict(),
            ))
