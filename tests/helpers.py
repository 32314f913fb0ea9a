from __future__ import annotations

import json
import random
from dataclasses import replace
from typing import Any, Dict, List, Optional, Sequence, Tuple

from practice.bots import make_ai_decision
from thirteen.cards import Card, parse_cards
from thirteen.combos import Combination, classify
from thirteen.game import create_game_state, deal_round, pass_action, play_cards, start_next_round
from thirteen.models import ActionKind, GameState, Phase, PlayerType


def cards(text: str) -> List[Card]:
    """``cards("3d 3c 10s")`` -> the three cards."""
    return parse_cards(text.split())


def combo(text: str) -> Combination:
    result = classify(cards(text))
    assert result is not None, f"{text} is not a combination"
    return result


def make_state(
    hands: Sequence[str],
    starting_seat: int = 0,
    *,
    scores: Optional[Sequence[int]] = None,
    eliminated: Sequence[int] = (),
    all_human: bool = False,
) -> GameState:
    """Build a game from literal hands; eliminated seats get an empty hand."""
    parsed = [cards(text) for text in hands]
    types = [PlayerType.HUMAN] * 4 if all_human else None
    state = create_game_state(parsed, starting_seat, seat_types=types)
    players = list(state.players)
    for seat in range(4):
        changes: Dict[str, Any] = {}
        if scores is not None:
            changes["score"] = scores[seat]
        if seat in eliminated:
            changes.update(is_eliminated=True, hand=())
        players[seat] = replace(players[seat], **changes)
    return replace(state, players=tuple(players))


# Fake sockets so we can exercise async paths without opening real connections.
class DummyWebSocket:
    def __init__(self) -> None:
        self.sent: List[str] = []
        self.closed = False

    async def send(self, message: str) -> None:
        self.sent.append(message)

    async def close(self, *args, **kwargs) -> None:
        self.closed = True

    def messages(self, msg_type: Optional[str] = None) -> List[Dict[str, Any]]:
        decoded = [json.loads(raw) for raw in self.sent]
        if msg_type is None:
            return decoded
        return [message for message in decoded if message["type"] == msg_type]


class RecordingSender:
    """Stands in for the relay connection a HostSession or ReplicaSession writes to."""

    def __init__(self) -> None:
        self.sent: List[Tuple[str, Dict[str, Any]]] = []

    async def __call__(self, msg_type: str, payload: Dict[str, Any]) -> None:
        self.sent.append((msg_type, payload))

    def of_type(self, msg_type: str) -> List[Dict[str, Any]]:
        return [payload for kind, payload in self.sent if kind == msg_type]


def play_out(seed: int, stop_after_rounds: int = 100) -> GameState:
    """Let four computer seats play with the engine alone; every play must validate."""
    rng = random.Random(seed)
    state = create_game_state(deal_round(seed), 0, seat_types=[PlayerType.AI] * 4)
    for _ in range(20_000):
        if state.phase == Phase.GAME_OVER or state.round_number > stop_after_rounds:
            return state
        if state.phase == Phase.ROUND_END:
            state = start_next_round(state, deal_round(rng.randrange(10**6)))
            continue
        decision = make_ai_decision(state.current_player, state.current_play, state, rng)
        if decision.action == ActionKind.PLAY:
            result = play_cards(state, decision.cards)
            assert result.success, result.error
            state = result.new_state
        else:
            state = pass_action(state)
    raise AssertionError("game did not finish")
