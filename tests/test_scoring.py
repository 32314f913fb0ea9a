import pytest

from thirteen.cards import RANKS
from thirteen.models import ELIMINATION_SCORE, Phase
from thirteen.scoring import end_round, penalty_for, standings

from .helpers import make_state


def hand_of(size: int) -> str:
    """``size`` distinct spades and hearts, enough for any test hand."""
    labels = [f"{rank}s" for rank in RANKS] + [f"{rank}h" for rank in RANKS]
    return " ".join(labels[:size])


@pytest.mark.parametrize("cards_left, penalty", [(0, 0), (1, 1), (9, 9), (10, 20), (13, 26)])
def test_penalty_doubles_from_ten_cards(cards_left, penalty):
    assert penalty_for(cards_left) == penalty


def test_penalty_threshold_is_configurable():
    assert penalty_for(5, threshold=5) == 10
    assert penalty_for(4, threshold=5) == 4


def test_losers_pay_and_winner_is_untouched():
    state = make_state(["", hand_of(9), hand_of(10), hand_of(1)], scores=[20, 0, 0, 5])
    result = end_round(state, 0)
    assert [p.score for p in result.players] == [20, 9, 20, 6]
    assert result.phase == Phase.ROUND_END
    assert result.round_winner == 0


def test_elimination_boundary():
    state = make_state(["", hand_of(9), hand_of(9), hand_of(1)], scores=[0, 15, 16, 0])
    result = end_round(state, 0)
    assert result.players[1].score == ELIMINATION_SCORE - 1
    assert not result.players[1].is_eliminated
    assert result.players[2].score == ELIMINATION_SCORE
    assert result.players[2].is_eliminated


def test_eliminated_players_are_not_scored_again():
    state = make_state(["", hand_of(2), "", hand_of(3)], scores=[0, 0, 40, 0], eliminated=[2])
    result = end_round(state, 0)
    assert result.players[2].score == 40
    assert result.players[2].is_eliminated


def test_last_survivor_ends_the_game():
    state = make_state(["", hand_of(13), hand_of(3), ""], scores=[0, 0, 22, 30], eliminated=[3])
    result = end_round(state, 0)
    assert result.phase == Phase.GAME_OVER
    assert [p.is_eliminated for p in result.players] == [False, True, True, True]


def test_custom_elimination_score():
    state = make_state(["", hand_of(2), hand_of(2), hand_of(2)])
    result = end_round(state, 0, elimination_score=2)
    assert result.phase == Phase.GAME_OVER


def test_scores_never_decrease():
    state = make_state(["", hand_of(4), hand_of(7), hand_of(12)], scores=[3, 1, 4, 1])
    result = end_round(state, 0)
    for before, after in zip(state.players, result.players):
        assert after.score >= before.score


def test_standings_put_survivors_first():
    state = make_state(["", hand_of(1), hand_of(5), ""], scores=[3, 1, 4, 30], eliminated=[3])
    order = [p.id for p in standings(end_round(state, 0))]
    assert order == [1, 0, 2, 3]
