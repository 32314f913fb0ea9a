import json

import pytest

from thirteen.codec import (
    combination_from_payload,
    combination_to_payload,
    move_from_payload,
    state_from_payload,
    state_to_payload,
)
from thirteen.game import play_cards
from thirteen.history import describe_move, describe_moves
from thirteen.models import (
    NewRoundRecord,
    PassRecord,
    PlayRecord,
    RoundEndRecord,
    ScoreLine,
    TrickResetRecord,
)

from .helpers import cards, combo, make_state, play_out


def test_state_survives_json_round_trip():
    state = play_out(seed=4, stop_after_rounds=2)
    wire = json.loads(json.dumps(state_to_payload(state)))
    assert state_from_payload(wire) == state


def test_payload_uses_camel_case_and_labels():
    state = play_cards(make_state(["3d 5c", "4d", "7d", "9d"]), cards("3d")).new_state
    payload = state_to_payload(state)
    assert payload["currentPlayerIndex"] == 1
    assert payload["lastPlayedBy"] == 0
    assert payload["currentPlay"]["cards"] == ["3♦"]
    assert payload["players"][0]["hand"] == ["5♣"]
    assert payload["moveHistory"][-1]["type"] == "PLAY"


def test_tampered_combination_is_rejected():
    payload = combination_to_payload(combo("7h 7s"))
    payload["type"] = "TRIPLE"
    with pytest.raises(ValueError):
        combination_from_payload(payload)


def test_unknown_move_type_is_rejected():
    with pytest.raises(ValueError, match="Unknown move type"):
        move_from_payload({"type": "teleport", "playerIndex": 0})


def test_describe_move_covers_every_record():
    players = make_state(["3d", "4d", "5d", "6d"]).players
    lines = describe_moves(
        [
            PlayRecord(player_index=0, cards=tuple(cards("3d")), combination=combo("3d")),
            PassRecord(player_index=1),
            TrickResetRecord(lead_player=2),
            RoundEndRecord(
                winner_index=0,
                scores=(
                    ScoreLine(id=0, score=0, eliminated=False),
                    ScoreLine(id=1, score=26, eliminated=True),
                    ScoreLine(id=2, score=3, eliminated=False),
                    ScoreLine(id=3, score=1, eliminated=False),
                ),
            ),
            NewRoundRecord(round_number=2, dealer=3),
        ],
        players,
    )
    assert lines == [
        "You played Single [3♦]",
        "CPU 1 passed",
        "Everyone passed; CPU 2 leads",
        "You won the round; eliminated: CPU 1",
        "Round 2 begins; CPU 3 deals",
    ]


def test_describe_move_refuses_unknown_records():
    with pytest.raises(TypeError):
        describe_move(object(), [])
