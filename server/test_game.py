"""
Test suite for the Hanabi rules engine.

Covers:
- Dealing through the effect log
- Validation and the error taxonomy
- Effect planning for play, discard and hint
- Final round and end-of-game detection
- Rejected actions never changing state
- Replay of finished games

Run with: pytest test_game.py -v
"""

import copy
import random

import pytest

from deck import build_deck, deal_initial_hands
from game import (
    ActionRecord,
    EngineError,
    Game,
    GamePhase,
    InvalidTurnError,
    OutOfRangeError,
    PreconditionNotMetError,
    TerminalStateError,
)
from models.actions import (
    ActionType,
    HintAction,
    PlayedCardResult,
    discard_card,
    give_hint,
    play_card,
)
from models.cards import Card, CardFace, CardSuit, Hint, Slot
from models.effects import EffectType, hint_card
from models.events import EventType
from models.game_config import GameConfig
from models.game_state import GameState, Player, rebuild_state


# =============================================================================
# Helpers
# =============================================================================

def c(suit: str, face: int) -> Card:
    return Card(face=CardFace(face), suit=CardSuit(suit))


def make_game(
    hands,
    draw_pile=(),
    played=(),
    num_suits=5,
    num_hints=8,
    remaining_hints=None,
    num_fuses=3,
    remaining_fuses=None,
    reject_trivial_hints=False,
) -> Game:
    """Build a game around a hand-picked state instead of a shuffled deal."""
    config = GameConfig(
        num_players=len(hands),
        hand_size=len(hands[0]),
        num_fuses=num_fuses,
        num_hints=num_hints,
        num_suits=num_suits,
        reject_trivial_hints=reject_trivial_hints,
    )
    state = GameState(
        config=config,
        draw_pile=list(draw_pile),
        played_cards=list(played),
        players=[Player(hand=[Slot(card) if card else None for card in hand]) for hand in hands],
        remaining_fuse_count=num_fuses if remaining_fuses is None else remaining_fuses,
        remaining_hint_count=num_hints if remaining_hints is None else remaining_hints,
        turn=0,
        current_player=0,
    )
    return Game(game_id="test", state=state)


def effect_types(batch) -> list[EffectType]:
    return [e.effect_type for e in batch.effects]


def play_random_game(seed: int, num_players: int = 3) -> Game:
    rng = random.Random(seed)
    game = Game(game_id=f"random-{seed}")
    game.start(GameConfig.for_players(num_players, seed=seed))
    while game.outcome is None:
        player = game.state.current_player
        game.play(player, rng.choice(game.legal_actions(player)))
    return game


# =============================================================================
# Start / Deal
# =============================================================================

class TestStart:

    def test_deal_matches_deal_initial_hands(self):
        config = GameConfig.for_players(3, seed=42)
        game = Game()
        state = game.start(config)

        hands, pile = deal_initial_hands(build_deck(config), config)
        assert [p.hand for p in state.players] == hands
        assert state.draw_pile == pile

    def test_deal_is_recorded_as_draw_effects(self):
        config = GameConfig.for_players(4, seed=1)
        state = Game().start(config)

        assert len(state.history) == 4 * 4
        assert all(e.effect_type == EffectType.DRAW_CARD for e in state.history)
        assert rebuild_state(config, state.history) == state

    def test_initial_counters(self):
        config = GameConfig.for_players(2, seed=5, starting_player=1)
        game = Game()
        state = game.start(config)

        assert state.turn == 0
        assert state.current_player == 1
        assert state.remaining_hint_count == 8
        assert state.remaining_fuse_count == 3
        assert state.outcome is None
        assert game.phase == GamePhase.IN_PROGRESS

    def test_not_started_phase(self):
        assert Game().phase == GamePhase.NOT_STARTED
        assert Game().current_player_index is None

    def test_cannot_start_twice(self):
        game = Game()
        game.start(GameConfig.for_players(2, seed=0))
        with pytest.raises(PreconditionNotMetError):
            game.start(GameConfig.for_players(2, seed=0))

    def test_invalid_config_rejected(self):
        with pytest.raises(ValueError):
            Game().start(GameConfig(num_players=2, hand_size=0))

    def test_deck_too_small_deals_partially(self):
        """Dealing degrades gracefully and marks the final round."""
        config = GameConfig(num_players=5, hand_size=5, num_suits=2)
        state = Game().start(config)

        assert state.draw_pile == []
        dealt = sum(len(p.cards()) for p in state.players)
        assert dealt == 20
        assert state.last_turn == config.num_players

    def test_play_before_start_rejected(self):
        with pytest.raises(PreconditionNotMetError):
            Game().play(0, play_card(0))


# =============================================================================
# Validation
# =============================================================================

class TestValidation:

    def setup_method(self):
        self.game = make_game(
            hands=[
                [c("red", 1), c("green", 2), None],
                [c("blue", 1), c("white", 3), c("red", 2)],
            ],
            draw_pile=[c("yellow", 1)],
            remaining_hints=4,
        )

    def test_wrong_turn(self):
        with pytest.raises(InvalidTurnError):
            self.game.validate(1, play_card(0))

    def test_player_index_out_of_range(self):
        with pytest.raises(OutOfRangeError):
            self.game.validate(2, play_card(0))

    def test_slot_out_of_range(self):
        with pytest.raises(OutOfRangeError):
            self.game.validate(0, play_card(3))
        with pytest.raises(OutOfRangeError):
            self.game.validate(0, discard_card(-1))

    def test_out_of_range_is_a_precondition_error(self):
        with pytest.raises(PreconditionNotMetError):
            self.game.validate(0, give_hint(5, HintAction.same_suit(CardSuit.RED)))

    def test_empty_slot(self):
        with pytest.raises(PreconditionNotMetError) as exc:
            self.game.validate(0, play_card(2))
        assert not isinstance(exc.value, OutOfRangeError)

    def test_hint_self(self):
        with pytest.raises(PreconditionNotMetError):
            self.game.validate(0, give_hint(0, HintAction.same_face(CardFace.ONE)))

    def test_hint_without_tokens(self):
        self.game.state.remaining_hint_count = 0
        with pytest.raises(PreconditionNotMetError):
            self.game.validate(0, give_hint(1, HintAction.same_face(CardFace.ONE)))

    def test_error_codes(self):
        assert InvalidTurnError.code == "invalid_turn"
        assert PreconditionNotMetError.code == "precondition_not_met"
        assert OutOfRangeError.code == "out_of_range"
        assert TerminalStateError.code == "terminal_state"

    def test_valid_actions_pass(self):
        self.game.validate(0, play_card(0))
        self.game.validate(0, discard_card(1))
        self.game.validate(0, give_hint(1, HintAction.same_suit(CardSuit.RED)))

    @pytest.mark.parametrize("player_index,action", [
        (1, play_card(0)),
        (0, play_card(2)),
        (0, play_card(7)),
        (5, discard_card(0)),
        (0, give_hint(0, HintAction.same_suit(CardSuit.RED))),
        (0, give_hint(9, HintAction.same_suit(CardSuit.RED))),
    ])
    def test_rejection_leaves_state_unchanged(self, player_index, action):
        before = copy.deepcopy(self.game.state)
        with pytest.raises(EngineError):
            self.game.play(player_index, action)
        assert self.game.state == before
        assert self.game.actions == []
        assert self.game.events == []


# =============================================================================
# Play card
# =============================================================================

class TestPlayCard:

    def test_accepted_play(self):
        game = make_game(
            hands=[[c("red", 1), c("blue", 2)], [c("green", 1), c("green", 2)]],
            draw_pile=[c("white", 4), c("white", 5)],
        )
        batch = game.play(0, play_card(0))

        assert batch.played_card_result == PlayedCardResult.ACCEPTED
        assert effect_types(batch) == [
            EffectType.REMOVE_CARD,
            EffectType.PLACE_ON_BOARD,
            EffectType.DRAW_CARD,
            EffectType.NEXT_TURN,
        ]
        state = game.state
        assert state.played_cards == [c("red", 1)]
        assert state.players[0].hand[0] == Slot(c("white", 4))
        assert state.draw_pile == [c("white", 5)]
        assert state.turn == 1
        assert state.current_player == 1

    def test_rejected_play_burns_fuse(self):
        game = make_game(
            hands=[[c("red", 3), c("blue", 2)], [c("green", 1), c("green", 2)]],
            draw_pile=[c("white", 4), c("white", 5)],
        )
        batch = game.play(0, play_card(0))

        assert batch.played_card_result == PlayedCardResult.REJECTED
        assert effect_types(batch) == [
            EffectType.REMOVE_CARD,
            EffectType.ADD_TO_DISCARD,
            EffectType.BURN_FUSE,
            EffectType.DRAW_CARD,
            EffectType.NEXT_TURN,
        ]
        assert game.state.discard_pile == [c("red", 3)]
        assert game.state.remaining_fuse_count == 2
        assert game.state.played_cards == []

    def test_play_must_be_exactly_next_face(self):
        game = make_game(
            hands=[[c("red", 3), c("red", 2)], [c("green", 1), c("green", 2)]],
            draw_pile=[c("white", 4), c("white", 5)],
            played=[c("red", 1)],
        )
        assert game.play(0, play_card(0)).played_card_result == PlayedCardResult.REJECTED
        game.play(1, play_card(0))
        assert game.play(0, play_card(1)).played_card_result == PlayedCardResult.ACCEPTED
        assert game.state.board_height(CardSuit.RED) == 2

    def test_completed_set_grants_hint(self):
        game = make_game(
            hands=[[c("red", 5), c("blue", 2)], [c("green", 1), c("green", 2)]],
            draw_pile=[c("white", 4), c("white", 5)],
            played=[c("red", 1), c("red", 2), c("red", 3), c("red", 4)],
            remaining_hints=3,
        )
        batch = game.play(0, play_card(0))

        assert batch.played_card_result == PlayedCardResult.COMPLETED_SET
        assert EffectType.INC_HINT in effect_types(batch)
        assert game.state.remaining_hint_count == 4

    def test_completed_set_at_max_hints_has_no_inc_hint(self):
        game = make_game(
            hands=[[c("red", 5), c("blue", 2)], [c("green", 1), c("green", 2)]],
            draw_pile=[c("white", 4), c("white", 5)],
            played=[c("red", 1), c("red", 2), c("red", 3), c("red", 4)],
        )
        batch = game.play(0, play_card(0))

        assert batch.played_card_result == PlayedCardResult.COMPLETED_SET
        assert EffectType.INC_HINT not in effect_types(batch)
        assert game.state.remaining_hint_count == 8

    def test_no_draw_when_pile_empty(self):
        game = make_game(
            hands=[[c("red", 1), c("blue", 2)], [c("green", 1), c("green", 2)]],
        )
        batch = game.play(0, play_card(0))

        assert EffectType.DRAW_CARD not in effect_types(batch)
        assert game.state.players[0].hand[0] is None

    def test_hints_leave_with_the_card(self):
        game = make_game(
            hands=[[c("red", 1), c("blue", 2)], [c("green", 1), c("green", 2)]],
            draw_pile=[c("white", 4), c("white", 5), c("white", 1)],
        )
        game.play(0, give_hint(1, HintAction.same_face(CardFace.ONE)))
        assert game.state.players[1].hand[0].hints == (Hint.is_face(CardFace.ONE),)

        game.play(1, play_card(0))
        assert game.state.players[1].hand[0] == Slot(c("white", 4))


# =============================================================================
# Discard
# =============================================================================

class TestDiscard:

    def test_discard_when_hints_full_rejected(self):
        game = make_game(
            hands=[[c("red", 1), c("blue", 2)], [c("green", 1), c("green", 2)]],
            draw_pile=[c("white", 4)],
        )
        before = copy.deepcopy(game.state)

        with pytest.raises(PreconditionNotMetError):
            game.play(0, discard_card(0))
        assert game.state == before

    def test_discard(self):
        game = make_game(
            hands=[[c("red", 1), c("blue", 2)], [c("green", 1), c("green", 2)]],
            draw_pile=[c("white", 4), c("white", 3)],
            remaining_hints=5,
        )
        batch = game.play(0, discard_card(1))

        assert batch.played_card_result is None
        assert effect_types(batch) == [
            EffectType.REMOVE_CARD,
            EffectType.ADD_TO_DISCARD,
            EffectType.INC_HINT,
            EffectType.DRAW_CARD,
            EffectType.NEXT_TURN,
        ]
        assert game.state.discard_pile == [c("blue", 2)]
        assert game.state.remaining_hint_count == 6
        assert game.state.players[0].hand[1] == Slot(c("white", 4))


# =============================================================================
# Hints
# =============================================================================

class TestGiveHint:

    def test_suit_hint_marks_every_slot(self):
        game = make_game(
            hands=[
                [c("blue", 1), c("blue", 2), c("white", 1)],
                [c("red", 1), c("green", 3), c("red", 4)],
            ],
        )
        batch = game.play(0, give_hint(1, HintAction.same_suit(CardSuit.RED)))

        red = CardSuit.RED
        assert batch.effects[:3] == [
            hint_card(1, 0, Hint.is_suit(red)),
            hint_card(1, 1, Hint.is_not_suit(red)),
            hint_card(1, 2, Hint.is_suit(red)),
        ]
        assert effect_types(batch)[3:] == [EffectType.DEC_HINT, EffectType.NEXT_TURN]

        hand = game.state.players[1].hand
        assert hand[0].hints == (Hint.is_suit(red),)
        assert hand[1].hints == (Hint.is_not_suit(red),)
        assert hand[2].hints == (Hint.is_suit(red),)
        assert game.state.remaining_hint_count == 7
        assert game.state.current_player == 1

    def test_face_hint_skips_empty_slots(self):
        game = make_game(
            hands=[
                [c("blue", 1), c("blue", 2), c("white", 1)],
                [c("red", 1), None, c("red", 4)],
            ],
        )
        batch = game.play(0, give_hint(1, HintAction.same_face(CardFace.FOUR)))

        hinted = [e for e in batch.effects if e.effect_type == EffectType.HINT_CARD]
        assert [e.slot_index for e in hinted] == [0, 2]
        assert hinted[0].hint == Hint.is_not_face(CardFace.FOUR)
        assert hinted[1].hint == Hint.is_face(CardFace.FOUR)

    def test_repeated_hint_not_duplicated(self):
        game = make_game(
            hands=[
                [c("blue", 1), c("blue", 2)],
                [c("red", 1), c("green", 3)],
            ],
        )
        hint = give_hint(1, HintAction.same_suit(CardSuit.RED))
        game.play(0, hint)
        game.play(1, give_hint(0, HintAction.same_face(CardFace.ONE)))
        game.play(0, hint)

        assert game.state.players[1].hand[0].hints == (Hint.is_suit(CardSuit.RED),)
        assert game.state.remaining_hint_count == 5

    def test_trivial_hints_allowed_by_default(self):
        game = make_game(
            hands=[[c("blue", 1), c("blue", 2)], [c("red", 1), c("red", 3)]],
        )
        game.play(0, give_hint(1, HintAction.same_suit(CardSuit.RED)))
        assert game.state.remaining_hint_count == 7

    @pytest.mark.parametrize("hint", [
        HintAction.same_suit(CardSuit.RED),
        HintAction.same_suit(CardSuit.YELLOW),
    ])
    def test_trivial_hints_rejected_when_configured(self, hint):
        game = make_game(
            hands=[[c("blue", 1), c("blue", 2)], [c("red", 1), c("red", 3)]],
            reject_trivial_hints=True,
        )
        with pytest.raises(PreconditionNotMetError):
            game.play(0, give_hint(1, hint))

    def test_informative_hint_allowed_with_trivial_rule(self):
        game = make_game(
            hands=[[c("blue", 1), c("blue", 2)], [c("red", 1), c("red", 3)]],
            reject_trivial_hints=True,
        )
        game.play(0, give_hint(1, HintAction.same_face(CardFace.THREE)))
        assert game.state.remaining_hint_count == 7

    def test_hint_to_empty_hand_spends_token(self):
        game = make_game(hands=[[c("blue", 1), c("blue", 2)], [None, None]])
        batch = game.play(0, give_hint(1, HintAction.same_suit(CardSuit.RED)))

        assert effect_types(batch) == [EffectType.DEC_HINT, EffectType.NEXT_TURN]
        assert game.state.remaining_hint_count == 7
        assert game.state.current_player == 1

    def test_hint_to_empty_hand_is_trivial(self):
        game = make_game(
            hands=[[c("blue", 1), c("blue", 2)], [None, None]],
            reject_trivial_hints=True,
        )
        with pytest.raises(PreconditionNotMetError):
            game.play(0, give_hint(1, HintAction.same_face(CardFace.ONE)))

    def test_hint_for_suit_out_of_play(self):
        game = make_game(
            hands=[[c("red", 1), c("red", 2)], [c("green", 1), c("red", 3)]],
            num_suits=2,
        )
        hint = give_hint(1, HintAction.same_suit(CardSuit.BLUE))
        assert hint in game.legal_actions(0)

        batch = game.play(0, hint)
        hinted = [e.hint for e in batch.effects if e.effect_type == EffectType.HINT_CARD]
        assert hinted == [Hint.is_not_suit(CardSuit.BLUE)] * 2


# =============================================================================
# Game end
# =============================================================================

class TestGameEnd:

    def test_fail_by_last_fuse(self):
        game = make_game(
            hands=[[c("red", 3), c("blue", 2)], [c("green", 1), c("green", 2)]],
            draw_pile=[c("white", 4)],
            num_fuses=1,
        )
        batch = game.play(0, play_card(0))

        assert batch.outcome is not None
        assert not batch.outcome.won
        assert batch.outcome.score == 0
        assert effect_types(batch) == [
            EffectType.REMOVE_CARD,
            EffectType.ADD_TO_DISCARD,
            EffectType.BURN_FUSE,
        ]
        assert game.state.remaining_fuse_count == 0
        assert game.phase == GamePhase.FINISHED
        assert game.current_player_index is None
        assert len(game.state.history) == 3

    def test_fail_score_counts_board(self):
        game = make_game(
            hands=[[c("red", 3), c("blue", 2)], [c("green", 1), c("green", 2)]],
            played=[c("blue", 1), c("green", 1), c("green", 2)],
            num_fuses=1,
        )
        assert game.play(0, play_card(0)).outcome.score == 3

    def test_no_action_after_game_over(self):
        game = make_game(
            hands=[[c("red", 3), c("blue", 2)], [c("green", 1), c("green", 2)]],
            num_fuses=1,
        )
        game.play(0, play_card(0))
        before = copy.deepcopy(game.state)

        with pytest.raises(TerminalStateError):
            game.play(0, play_card(1))
        with pytest.raises(TerminalStateError):
            game.play(1, play_card(0))
        assert game.state == before
        assert game.legal_actions(0) == []

    def test_state_is_read_only_after_outcome(self):
        game = make_game(
            hands=[[c("red", 3), c("blue", 2)], [c("green", 1), c("green", 2)]],
            num_fuses=1,
        )
        game.play(0, play_card(0))
        with pytest.raises(ValueError):
            game.state.apply(game.state.history[-1])

    def test_game_over_event(self):
        game = make_game(
            hands=[[c("red", 3), c("blue", 2)], [c("green", 1), c("green", 2)]],
            num_fuses=1,
        )
        game.play(0, play_card(0))

        assert [e.event_type for e in game.events] == [EventType.PLAYER_ACTION, EventType.GAME_OVER]
        assert game.events[1].data["outcome"] == {"result": "fail", "score": 0}
        assert [e.sequence_num for e in game.events] == [1, 2]

    def test_win_with_two_suits(self):
        filler = [c("red", 1)] * 10
        game = make_game(
            hands=[
                [c("red", 1), c("red", 2), c("red", 3), c("red", 4), c("red", 5)],
                [c("green", 1), c("green", 2), c("green", 3), c("green", 4), c("green", 5)],
            ],
            draw_pile=filler,
            num_suits=2,
        )

        for slot in range(5):
            batch = game.play(0, play_card(slot))
            assert batch.played_card_result != PlayedCardResult.REJECTED
            if slot < 4:
                assert batch.outcome is None
                game.play(1, play_card(slot))

        batch = game.play(1, play_card(4))
        assert batch.played_card_result == PlayedCardResult.COMPLETED_SET
        assert batch.outcome is not None
        assert batch.outcome.won
        assert batch.outcome.score == 10
        assert effect_types(batch)[-1] == EffectType.PLACE_ON_BOARD
        assert game.phase == GamePhase.FINISHED

    def test_final_round(self):
        game = make_game(
            hands=[[c("red", 1), c("blue", 2)], [c("green", 1), c("green", 2)]],
            draw_pile=[c("white", 4)],
            remaining_hints=5,
        )
        batch = game.play(0, discard_card(0))

        types = effect_types(batch)
        assert types[types.index(EffectType.DRAW_CARD) + 1] == EffectType.MARK_LAST_TURN
        assert batch.effects[types.index(EffectType.MARK_LAST_TURN)].turn == 2
        assert game.state.last_turn == 2
        assert game.phase == GamePhase.FINAL_ROUND

        batch = game.play(1, give_hint(0, HintAction.same_suit(CardSuit.BLUE)))
        assert batch.outcome is None

        batch = game.play(0, give_hint(1, HintAction.same_suit(CardSuit.GREEN)))
        assert batch.outcome is not None
        assert not batch.outcome.won
        assert game.state.turn == 3

    def test_win_beats_final_round(self):
        """Completing the board on the last turn still wins."""
        game = make_game(
            hands=[[c("red", 5), c("blue", 2)], [c("green", 1), c("green", 2)]],
            played=[c("red", 1), c("red", 2), c("red", 3), c("red", 4)],
            num_suits=1,
        )
        game.state.last_turn = 0
        batch = game.play(0, play_card(0))
        assert batch.outcome.won


# =============================================================================
# Whole-game properties
# =============================================================================

class TestGameProperties:

    @pytest.mark.parametrize("seed", [1, 2, 3, 4, 5])
    def test_turn_and_resource_invariants(self, seed):
        rng = random.Random(seed)
        config = GameConfig.for_players(2 + seed % 4, seed=seed)
        game = Game()
        game.start(config)

        while game.outcome is None:
            state = game.state
            previous = state.current_player
            action = rng.choice(game.legal_actions(previous))
            batch = game.play(previous, action)

            assert 0 <= state.remaining_hint_count <= config.num_hints
            assert 0 <= state.remaining_fuse_count <= config.num_fuses
            if batch.outcome is None:
                assert state.current_player == (previous + 1) % config.num_players
                assert batch.effects[-1].effect_type == EffectType.NEXT_TURN

    @pytest.mark.parametrize("seed", [11, 12, 13])
    def test_replay_reproduces_state(self, seed):
        game = play_random_game(seed)
        config = game.state.config

        assert rebuild_state(config, game.state.history) == game.state
        replayed = Game.replay(config, game.actions)
        assert replayed.state == game.state
        assert [e.data for e in replayed.events] == [e.data for e in game.events]

    def test_replay_rejects_tampered_history(self):
        game = play_random_game(21, num_players=2)
        records = list(game.actions)
        # Every game lasts at least three turns, it takes three misplays to lose
        bad = records[1]
        records[1] = ActionRecord(
            turn=bad.turn,
            player_index=(bad.player_index + 1) % 2,
            action=bad.action,
        )

        with pytest.raises(ValueError, match="turn 1"):
            Game.replay(game.state.config, records)

    def test_replay_rejects_turn_gap(self):
        game = play_random_game(22, num_players=2)
        with pytest.raises(ValueError, match="turn"):
            Game.replay(game.state.config, game.actions[1:])

    def test_same_seed_same_game(self):
        assert play_random_game(31).state == play_random_game(31).state

    def test_legal_actions(self):
        game = make_game(
            hands=[[c("red", 1), None], [c("green", 1), c("green", 2)]],
            num_suits=2,
        )
        legal = game.legal_actions(0)

        assert play_card(0) in legal
        assert play_card(1) not in legal
        assert not any(a.action_type == ActionType.DISCARD_CARD for a in legal)
        hints = [a for a in legal if a.action_type == ActionType.GIVE_HINT]
        assert len(hints) == 5 + 5
        assert all(a.target == 1 for a in hints)
        assert game.legal_actions(1) == []

    def test_batch_and_record_serialization(self):
        game = make_game(
            hands=[[c("red", 1), c("blue", 2)], [c("green", 1), c("green", 2)]],
            draw_pile=[c("white", 4)],
        )
        batch = game.play(0, play_card(0))

        d = batch.to_dict()
        assert d["played_card_result"] == "accepted"
        assert d["outcome"] is None
        assert d["effects"][0] == {"effect_type": "remove_card", "player_index": 0, "slot_index": 0}
        assert ActionRecord.from_dict(game.actions[0].to_dict()) == game.actions[0]
