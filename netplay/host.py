from __future__ import annotations

import asyncio
import logging
import random
from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, List, Optional, Set, Tuple

from practice.bots import make_ai_decision
from relay.protocol import MessageType, message_type
from thirteen.cards import Card, parse_cards
from thirteen.codec import state_to_payload
from thirteen.game import create_game_state, deal_round, get_winner, pass_action, play_cards, start_next_round
from thirteen.models import NUM_SEATS, ActionKind, GameState, Phase, PlayerType, TableConfig

LOGGER = logging.getLogger("netplay_host")

# HostSession is the only writer of the game state in a networked game.
# Remote players send intents through the relay; the host validates them
# against the engine and rebroadcasts the whole state after every change.

Sender = Callable[[str, Dict[str, Any]], Awaitable[None]]
StateListener = Callable[[GameState], None]


class SeatKind(str, Enum):
    HOST = "host"
    REMOTE = "remote"
    AI = "ai"


class IntentStatus(str, Enum):
    APPLIED = "applied"
    DROPPED = "dropped"
    REJECTED = "rejected"


@dataclass
class SeatOccupant:
    seat: int
    kind: SeatKind
    member_id: Optional[str] = None
    name: str = ""

    def to_payload(self) -> Dict[str, Any]:
        return {"seat": self.seat, "kind": self.kind.value, "memberId": self.member_id, "name": self.name}


@dataclass(frozen=True)
class MoveIntent:
    seat: int
    action: ActionKind
    cards: Tuple[Card, ...] = ()
    member_id: Optional[str] = None
    state_version: Optional[int] = None


def ai_name(seat: int) -> str:
    return f"CPU {seat}"


class HostSession:
    def __init__(
        self,
        send: Sender,
        *,
        host_member_id: Optional[str] = None,
        host_name: str = "Host",
        config: TableConfig = TableConfig(),
        host_plays: bool = True,
        rng: Optional[random.Random] = None,
        on_state: Optional[StateListener] = None,
    ) -> None:
        self.send = send
        self.host_member_id = host_member_id
        self.config = config
        self.rng = rng or random.Random()
        self.on_state = on_state
        self.lock = asyncio.Lock()
        self.state: Optional[GameState] = None
        self.roster: List[SeatOccupant] = [
            SeatOccupant(seat=seat, kind=SeatKind.AI, name=ai_name(seat)) for seat in range(NUM_SEATS)
        ]
        if host_plays:
            self.roster[0] = SeatOccupant(seat=0, kind=SeatKind.HOST, member_id=host_member_id, name=host_name)
        self.departed: Dict[str, int] = {}
        self.last_rejection: Optional[str] = None
        self.tasks: Set[asyncio.Task] = set()

    @property
    def host_seat(self) -> Optional[int]:
        for occupant in self.roster:
            if occupant.kind == SeatKind.HOST:
                return occupant.seat
        return None

    def seat_of(self, member_id: Optional[str]) -> Optional[int]:
        if member_id is None:
            return None
        for occupant in self.roster:
            if occupant.member_id == member_id:
                return occupant.seat
        return None

    def roster_payload(self) -> List[Dict[str, Any]]:
        return [occupant.to_payload() for occupant in self.roster]

    # ------------------------------------------------------------------
    # Lifecycle

    async def start_game(self, seed: Optional[int] = None, starting_seat: int = 0) -> GameState:
        async with self.lock:
            if self.state is not None and self.state.phase != Phase.GAME_OVER:
                raise RuntimeError("Game already in progress")
            hands = deal_round(seed if seed is not None else self.rng.randrange(2**32))
            self.state = create_game_state(
                hands,
                starting_seat,
                names=[occupant.name for occupant in self.roster],
                seat_types=[self._player_type(occupant) for occupant in self.roster],
            )
            LOGGER.info("Game started; seat %s leads", starting_seat)
            await self._publish(MessageType.SEND_INITIAL_STATE)
            self._schedule_followups()
            return self.state

    async def drain(self) -> None:
        """Wait until no AI turn or round deal is pending."""
        while self.tasks:
            await asyncio.gather(*list(self.tasks))

    async def close(self) -> None:
        for task in list(self.tasks):
            task.cancel()
        await asyncio.gather(*list(self.tasks), return_exceptions=True)
        self.tasks.clear()

    # ------------------------------------------------------------------
    # Relay traffic

    async def handle_message(self, message: Dict[str, Any]) -> None:
        kind = message_type(message)
        if kind == MessageType.REQUEST_MOVE:
            intent = self._parse_intent(message)
            if intent is not None:
                await self.submit(intent)
        elif kind == MessageType.PLAYER_JOINED:
            await self._on_joined(message)
        elif kind == MessageType.PLAYER_LEFT:
            await self._on_left(message)
        else:
            LOGGER.debug("Ignoring %s", message.get("type"))

    def _parse_intent(self, message: Dict[str, Any]) -> Optional[MoveIntent]:
        data = message.get("data") or {}
        try:
            action = ActionKind(message.get("action"))
            seat = int(data["actingSeatIndex"])
            cards = tuple(parse_cards(data.get("cards") or []))
            version = data.get("stateVersion")
            version = int(version) if version is not None else None
        except (KeyError, TypeError, ValueError) as exc:
            LOGGER.debug("Dropping malformed move request from %s: %s", message.get("from"), exc)
            return None
        return MoveIntent(seat=seat, action=action, cards=cards, member_id=message.get("from"), state_version=version)

    async def play_local(self, cards: Tuple[Card, ...]) -> IntentStatus:
        """Submit a play for the host's own seat."""
        return await self.submit(self._local_intent(ActionKind.PLAY, tuple(cards)))

    async def pass_local(self) -> IntentStatus:
        return await self.submit(self._local_intent(ActionKind.PASS))

    def _local_intent(self, action: ActionKind, cards: Tuple[Card, ...] = ()) -> MoveIntent:
        seat = self.host_seat
        return MoveIntent(
            seat=seat if seat is not None else -1,
            action=action,
            cards=cards,
            member_id=self.host_member_id,
        )

    async def submit(self, intent: MoveIntent) -> IntentStatus:
        async with self.lock:
            state = self.state
            reason = self._drop_reason(state, intent)
            if reason is not None:
                LOGGER.debug("Dropped intent seat=%s from=%s: %s", intent.seat, intent.member_id, reason)
                return IntentStatus.DROPPED
            assert state is not None

            if intent.action == ActionKind.PASS:
                await self._commit(pass_action(state))
                return IntentStatus.APPLIED

            result = play_cards(state, intent.cards)
            if not result.success:
                LOGGER.warning("Rejected play seat=%s cards=%s: %s", intent.seat, list(intent.cards), result.error)
                self.last_rejection = result.error
                if intent.member_id is not None and intent.member_id != self.host_member_id:
                    await self.send(
                        MessageType.MOVE_REJECTED.value,
                        {"to": intent.member_id, "reason": result.error, "seat": intent.seat},
                    )
                return IntentStatus.REJECTED
            await self._commit(result.new_state)
            return IntentStatus.APPLIED

    def _drop_reason(self, state: Optional[GameState], intent: MoveIntent) -> Optional[str]:
        if state is None or state.phase != Phase.PLAYING:
            return "round not in progress"
        if intent.seat != state.current_player_index:
            return "not that seat's turn"
        occupant = self.roster[intent.seat]
        if occupant.kind == SeatKind.AI or occupant.member_id != intent.member_id:
            return "sender does not hold the seat"
        if intent.state_version is not None and intent.state_version < state.version:
            return f"stale version {intent.state_version} < {state.version}"
        return None

    async def _on_joined(self, message: Dict[str, Any]) -> None:
        member_id = message.get("memberId")
        name = str(message.get("name") or "Player")
        if not member_id or member_id == self.host_member_id:
            return
        async with self.lock:
            if self.seat_of(member_id) is not None:
                return
            seat = self._claimable_seat(name)
            if seat is None:
                LOGGER.warning("No computer seat free for %s; joining as spectator", name)
                return
            self.departed.pop(name, None)
            self.roster[seat] = SeatOccupant(seat=seat, kind=SeatKind.REMOTE, member_id=member_id, name=name)
            LOGGER.info("%s takes seat %s", name, seat)
            await self._roster_changed(seat)

    def _claimable_seat(self, name: str) -> Optional[int]:
        previous = self.departed.get(name)
        if previous is not None and self.roster[previous].kind == SeatKind.AI:
            return previous
        for occupant in self.roster:
            if occupant.kind != SeatKind.AI:
                continue
            if self.state is not None and self.state.players[occupant.seat].is_eliminated:
                continue
            return occupant.seat
        return None

    async def _on_left(self, message: Dict[str, Any]) -> None:
        member_id = message.get("memberId")
        async with self.lock:
            seat = self.seat_of(member_id)
            if seat is None or self.roster[seat].kind != SeatKind.REMOTE:
                return
            name = self.roster[seat].name
            self.departed[name] = seat
            self.roster[seat] = SeatOccupant(seat=seat, kind=SeatKind.AI, name=ai_name(seat))
            LOGGER.info("%s left seat %s; computer takes over", name, seat)
            await self._roster_changed(seat)

    async def _roster_changed(self, seat: int) -> None:
        occupant = self.roster[seat]
        if self.state is None or self.state.phase == Phase.GAME_OVER:
            # No game to update; guests still need to see who sits where.
            await self.send(MessageType.SYNC_SEATS.value, {"seats": self.roster_payload()})
            return
        players = self.state.with_player(seat, name=occupant.name, type=self._player_type(occupant))
        await self._commit(self.state.evolve(players=players))

    @staticmethod
    def _player_type(occupant: SeatOccupant) -> PlayerType:
        return PlayerType.AI if occupant.kind == SeatKind.AI else PlayerType.HUMAN

    # ------------------------------------------------------------------
    # Transitions; callers hold the lock.

    async def _commit(self, new_state: GameState) -> None:
        self.state = new_state
        await self._publish(MessageType.SYNC_GAME_STATE)
        if new_state.phase == Phase.GAME_OVER:
            winner = get_winner(new_state)
            LOGGER.info("Game over; winner %s", winner.name if winner else None)
        self._schedule_followups()

    async def _publish(self, msg_type: MessageType) -> None:
        if self.state is None:
            return
        payload = {"state": state_to_payload(self.state), "seats": self.roster_payload()}
        await self.send(msg_type.value, payload)
        if self.on_state is not None:
            self.on_state(self.state)

    def _schedule_followups(self) -> None:
        state = self.state
        if state is None:
            return
        if state.phase == Phase.ROUND_END:
            self._spawn(self._deal_next_round(state.version))
        elif state.phase == Phase.PLAYING and self.roster[state.current_player_index].kind == SeatKind.AI:
            self._spawn(self._ai_turn(state.version))

    def _spawn(self, coro: Awaitable[None]) -> None:
        task = asyncio.create_task(coro)
        self.tasks.add(task)
        task.add_done_callback(self.tasks.discard)

    async def _ai_turn(self, version: int) -> None:
        await asyncio.sleep(self.config.ai_turn_delay_ms / 1000)
        async with self.lock:
            state = self.state
            if state is None or state.version != version or state.phase != Phase.PLAYING:
                return
            seat = state.current_player_index
            if self.roster[seat].kind != SeatKind.AI:
                return
            player = state.players[seat]
            decision = make_ai_decision(player, state.current_play, state, self.rng)
            new_state = None
            if decision.action == ActionKind.PLAY:
                result = play_cards(state, decision.cards)
                if result.success:
                    new_state = result.new_state
                else:
                    LOGGER.warning("Computer seat %s chose an illegal play (%s); passing", seat, result.error)
            await self._commit(new_state or pass_action(state))

    async def _deal_next_round(self, version: int) -> None:
        await asyncio.sleep(self.config.round_end_delay_ms / 1000)
        async with self.lock:
            state = self.state
            if state is None or state.version != version or state.phase != Phase.ROUND_END:
                return
            new_state = start_next_round(state, deal_round(self.rng.randrange(2**32)))
            LOGGER.info("Round %s dealt; seat %s leads", new_state.round_number, new_state.current_player_index)
            await self._commit(new_state)
