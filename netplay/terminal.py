from __future__ import annotations

import asyncio
from typing import Any, Awaitable, Callable, Dict, List, Optional

from practice.console import (
    HINT_WORDS,
    PASS_WORDS,
    QUIT_WORDS,
    parse_selection,
    render_hints,
    render_last_moves,
    render_standings,
    render_table,
)
from thirteen.cards import Card
from thirteen.game import get_winner
from thirteen.models import GameState, Phase

PlayFn = Callable[[List[Card]], Awaitable[Optional[str]]]
PassFn = Callable[[], Awaitable[Optional[str]]]
ChatFn = Callable[[str], Awaitable[None]]

PROMPT = "Play cards (positions or labels), [p]ass, [h]int, say <text>, [q]uit: "


class TerminalTable:
    """Prompts one seated player whenever the replicated state says it is their turn."""

    def __init__(
        self,
        play: PlayFn,
        pass_turn: PassFn,
        chat: Optional[ChatFn] = None,
        output: Callable[[str], None] = print,
    ) -> None:
        self.play = play
        self.pass_turn = pass_turn
        self.chat = chat
        self.output = output
        self.state: Optional[GameState] = None
        self.seat: Optional[int] = None
        self.turn = asyncio.Event()

    def show(self, state: GameState, seat: Optional[int]) -> None:
        previous = self.state
        self.state, self.seat = state, seat
        if previous is not None and state.version > previous.version:
            fresh = max(0, len(state.move_history) - len(previous.move_history))
            for line in render_last_moves(state, fresh):
                self.output(line)
        if state.phase == Phase.ROUND_END:
            self.output(render_standings(state))
        if self._my_turn() or state.phase == Phase.GAME_OVER:
            self.output(render_table(state, seat))
            self.turn.set()

    def notify(self, text: str) -> None:
        self.output(text)

    def retry(self, reason: str) -> None:
        self.output(f"{reason}. Try again.")
        self.turn.set()

    def _my_turn(self) -> bool:
        state = self.state
        return (
            state is not None
            and self.seat is not None
            and state.phase == Phase.PLAYING
            and state.current_player_index == self.seat
        )

    async def run(self) -> None:
        while True:
            await self.turn.wait()
            self.turn.clear()
            state = self.state
            if state is not None and state.phase == Phase.GAME_OVER:
                winner = get_winner(state)
                self.output(f"Game over. {winner.name if winner else 'Nobody'} wins.")
                return
            if not self._my_turn() or state is None or self.seat is None:
                continue
            text = (await asyncio.to_thread(input, PROMPT)).strip()
            if text.lower() in QUIT_WORDS:
                return
            problem = await self._dispatch(text, state, self.seat)
            if problem:
                self.retry(problem)

    async def _dispatch(self, text: str, state: GameState, seat: int) -> Optional[str]:
        lowered = text.lower()
        if lowered in HINT_WORDS:
            self.output(render_hints(state, seat))
            self.turn.set()
            return None
        if lowered.startswith("say "):
            if self.chat is not None:
                await self.chat(text[4:])
            self.turn.set()
            return None
        if lowered in PASS_WORDS:
            return await self.pass_turn()
        try:
            cards = parse_selection(lowered, state.players[seat].hand)
        except ValueError as exc:
            return str(exc)
        return await self.play(cards)


def format_lobbies(lobbies: List[Dict[str, Any]]) -> str:
    if not lobbies:
        return "No public lobbies."
    rows = [f"{'ID':<11} {'NAME':<20} {'HOST':<12} PLAYERS"]
    for lobby in lobbies:
        rows.append(
            f"{lobby.get('id', ''):<11} {lobby.get('name', ''):<20} {lobby.get('host', ''):<12} "
            f"{lobby.get('current', 0)}/{lobby.get('max', 0)}"
        )
    return "\n".join(rows)
