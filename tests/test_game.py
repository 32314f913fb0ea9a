import logging

import pytest

from thirteen.game import (
    create_game_state,
    current_player,
    deal_round,
    get_active_players,
    get_winner,
    is_human_eliminated,
    is_human_turn,
    next_player_index,
    pass_action,
    play_cards,
    start_next_round,
)
from thirteen.models import NewRoundRecord, PassRecord, Phase, PlayerType, PlayRecord, RoundEndRecord, TrickResetRecord
from thirteen.seating import SeatRing

from .helpers import cards, combo, make_state


def test_create_game_state_defaults():
    state = create_game_state(deal_round(1))
    assert state.current_player_index == 0
    assert state.dealer_index == 3
    assert state.phase == Phase.PLAYING
    assert state.players[0].type == PlayerType.HUMAN
    assert [p.name for p in state.players[1:]] == ["CPU 1", "CPU 2", "CPU 3"]
    assert all(p.score == 0 and not p.is_eliminated for p in state.players)
    assert is_human_turn(state)


def test_create_game_state_needs_four_hands():
    with pytest.raises(ValueError):
        create_game_state(deal_round(1)[:3])


def test_play_moves_turn_and_records_history():
    state = make_state(["3d 5c", "4d 6c", "7d 8c", "9d 10c"])
    result = play_cards(state, cards("3d"))
    assert result.success and not result.player_won
    new = result.new_state
    assert new.current_player_index == 1
    assert new.current_play == combo("3d")
    assert new.last_played_by == 0
    assert new.players[0].hand == tuple(cards("5c"))
    assert new.version > state.version
    assert isinstance(new.move_history[-1], PlayRecord)
    # Input state is untouched.
    assert state.players[0].hand == tuple(cards("3d 5c"))


def test_trick_resets_to_last_player_after_everyone_passes():
    state = make_state(["3d 5c", "4d 6c", "7d 8c", "9d 10c"])
    for labels in ["3d", "4d", "7d", "9d"]:
        state = play_cards(state, cards(labels)).new_state
    for _ in range(3):
        state = pass_action(state)

    assert state.current_player_index == 3
    assert state.current_play is None
    assert state.last_played_by is None
    assert state.pass_count == 0
    assert not any(p.has_passed for p in state.players)
    assert state.move_history[-1] == TrickResetRecord(lead_player=3)
    assert [type(r) for r in state.move_history[-4:-1]] == [PassRecord] * 3


def test_passing_on_an_empty_table_hands_the_lead_on():
    state = make_state(["3d 5c", "4d 6c", "7d 8c", "9d 10c"])
    for _ in range(3):
        state = pass_action(state)
    assert state.current_player_index == 3
    assert isinstance(state.move_history[-1], TrickResetRecord)


def test_pair_finishes_the_round():
    state = make_state(["7d 7c", "4d 4c 9s", "6d 6c Js", "3d 3c Qs"], starting_seat=1)
    state = play_cards(state, cards("4d 4c")).new_state
    state = play_cards(state, cards("6d 6c")).new_state
    assert play_cards(state, cards("3d 3c")).error == "Must play a stronger combination"
    state = pass_action(state)
    result = play_cards(state, cards("7d 7c"))

    assert result.success and result.player_won
    final = result.new_state
    assert final.phase == Phase.ROUND_END
    assert final.round_winner == 0
    assert [p.score for p in final.players] == [0, 1, 1, 3]
    assert all(p.hand == () for p in final.players)
    assert isinstance(final.move_history[-1], RoundEndRecord)


@pytest.mark.parametrize(
    "labels, error",
    [
        ("", "No cards selected"),
        ("3d 3d", "Duplicate cards selected"),
        ("2s", "Cards not in hand"),
        ("3d 5c", "Invalid combination"),
    ],
)
def test_play_errors_leave_state_unchanged(labels, error):
    state = make_state(["3d 5c", "4d 6c", "7d 8c", "9d 10c"])
    result = play_cards(state, cards(labels))
    assert not result.success
    assert result.error == error
    assert result.new_state is state


def test_turn_skips_eliminated_seats():
    state = make_state(["3d 5c", "", "7d 8c", "9d 10c"], scores=[0, 30, 0, 0], eliminated=[1])
    state = play_cards(state, cards("3d")).new_state
    assert state.current_player_index == 2
    assert current_player(state).name == "CPU 2"
    assert is_human_eliminated(state, 1)
    assert not is_human_eliminated(state)


def test_no_eligible_seat_keeps_current_player(caplog):
    state = make_state(["3d", "", "", ""], eliminated=[1, 2, 3])
    with caplog.at_level(logging.WARNING, logger="thirteen"):
        assert next_player_index(state) == 0
    assert "No eligible seat" in caplog.text


def test_actions_outside_play_are_refused():
    state = make_state(["7d", "4d 4c", "6d", "3d"])
    finished = play_cards(state, cards("7d")).new_state
    assert finished.phase == Phase.ROUND_END
    with pytest.raises(RuntimeError):
        pass_action(finished)
    assert play_cards(finished, cards("4d")).error == "Round is not in progress"
    with pytest.raises(RuntimeError):
        start_next_round(state, deal_round(2))


def test_next_round_rotates_dealer_and_skips_eliminated_leader():
    state = make_state(["7d", "4d 4c", "", "3d"], scores=[0, 0, 26, 0], eliminated=[2])
    ended = play_cards(state, cards("7d")).new_state
    assert ended.dealer_index == 3

    nxt = start_next_round(ended, deal_round(5))
    assert nxt.round_number == 2
    assert nxt.dealer_index == 0
    assert nxt.current_player_index == 1
    assert nxt.phase == Phase.PLAYING
    assert nxt.players[2].hand == ()
    assert all(len(nxt.players[seat].hand) == 13 for seat in (0, 1, 3))
    assert nxt.move_history[-1] == NewRoundRecord(round_number=2, dealer=0)

    # The leader falls on the seat after the dealer, unless that seat is out.
    state = make_state(["7d", "4d", "", "3d"], starting_seat=3, scores=[0, 0, 26, 0], eliminated=[2])
    ended = play_cards(state, cards("3d")).new_state
    assert ended.dealer_index == 2
    nxt = start_next_round(ended, deal_round(6))
    assert nxt.dealer_index == 3
    assert nxt.current_player_index == 0


def test_game_over_refuses_another_round():
    state = make_state(["7d", "4d 4c 5c", "", ""], scores=[0, 23, 30, 30], eliminated=[2, 3])
    over = play_cards(state, cards("7d")).new_state
    assert over.phase == Phase.GAME_OVER
    assert get_winner(over).id == 0
    assert [p.id for p in get_active_players(over)] == [0]
    with pytest.raises(RuntimeError, match="Game is over"):
        start_next_round(over, deal_round(1))


def test_seat_ring_wraps_around():
    ring = SeatRing(4)
    assert ring.step(3) == 0
    assert ring.step(0, -1) == 3
    assert ring.rotation_from(2) == [2, 3, 0, 1]
    assert ring.next_after(3, lambda seat: True) == 0
    assert ring.next_after(1, lambda seat: seat == 1) is None
    assert ring.first_from(2, lambda seat: seat == 2) == 2
    assert ring.first_from(2, lambda seat: seat == 1) == 1
