from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, List, Optional

from relay.protocol import STATE_MESSAGES, MessageType, message_type
from thirteen.cards import Card, cards_to_labels, hand_contains
from thirteen.codec import state_from_payload
from thirteen.combos import validate_play
from thirteen.models import ActionKind, GameState, Phase

from .host import Sender

LOGGER = logging.getLogger("netplay_replica")

NOT_STARTED = "Game has not started"
NOT_SEATED = "You do not hold a seat"
NOT_YOUR_TURN = "Not your turn"


class ReplicaSession:
    """A non-host participant: mirrors the host's state and sends intents."""

    def __init__(self, send: Sender, member_id: Optional[str] = None) -> None:
        self.send = send
        self.member_id = member_id
        self.state: Optional[GameState] = None
        self.seats: List[Dict[str, Any]] = []
        self.seat: Optional[int] = None
        self.last_rejection: Optional[str] = None

    async def handle_message(self, message: Dict[str, Any]) -> bool:
        """Apply one relay message; returns True when the local state was replaced."""
        kind = message_type(message)
        if kind == MessageType.HELLO:
            self.member_id = message.get("memberId")
        elif kind in STATE_MESSAGES:
            try:
                state = state_from_payload(message["state"])
            except (KeyError, TypeError, ValueError) as exc:
                LOGGER.warning("Ignoring unreadable state from host: %s", exc)
                return False
            self.state = state
            self.seats = list(message.get("seats") or [])
            self.seat = self._own_seat()
            return True
        elif kind == MessageType.SYNC_SEATS:
            self.seats = list(message.get("seats") or [])
            self.seat = self._own_seat()
        elif kind == MessageType.MOVE_REJECTED:
            self.last_rejection = message.get("reason")
            LOGGER.info("Host rejected move: %s", self.last_rejection)
        return False

    def _own_seat(self) -> Optional[int]:
        for entry in self.seats:
            if self.member_id is not None and entry.get("memberId") == self.member_id:
                return int(entry["seat"])
        return None

    @property
    def is_my_turn(self) -> bool:
        return (
            self.state is not None
            and self.seat is not None
            and self.state.phase == Phase.PLAYING
            and self.state.current_player_index == self.seat
        )

    def precheck(self, cards: Iterable[Card]) -> Optional[str]:
        """Refuse selections the host would reject anyway."""
        if self.state is None:
            return NOT_STARTED
        if self.seat is None:
            return NOT_SEATED
        if not self.is_my_turn:
            return NOT_YOUR_TURN
        selected = list(cards)
        if not hand_contains(self.state.players[self.seat].hand, selected):
            return "Cards not in hand"
        validation = validate_play(selected, self.state.current_play)
        return None if validation.valid else validation.reason

    async def request_play(self, cards: Iterable[Card]) -> Optional[str]:
        selected = list(cards)
        problem = self.precheck(selected)
        if problem is not None:
            return problem
        await self._request(ActionKind.PLAY, selected)
        return None

    async def request_pass(self) -> Optional[str]:
        if self.state is None:
            return NOT_STARTED
        if self.seat is None:
            return NOT_SEATED
        if not self.is_my_turn:
            return NOT_YOUR_TURN
        await self._request(ActionKind.PASS, [])
        return None

    async def _request(self, action: ActionKind, cards: List[Card]) -> None:
        assert self.state is not None
        self.last_rejection = None
        await self.send(
            MessageType.REQUEST_MOVE.value,
            {
                "action": action.value,
                "data": {
                    "cards": cards_to_labels(cards),
                    "actingSeatIndex": self.seat,
                    "stateVersion": self.state.version,
                },
            },
        )
