from __future__ import annotations

import logging
import random
import time
from typing import Callable, Optional

from thirteen.game import (
    create_game_state,
    current_player,
    deal_round,
    get_winner,
    is_human_eliminated,
    is_human_turn,
    pass_action,
    play_cards,
    start_next_round,
)
from thirteen.models import ActionKind, GameState, Phase, PlayerType, TableConfig

from .bots import make_ai_decision
from .console import (
    HINT_WORDS,
    PASS_WORDS,
    QUIT_WORDS,
    parse_selection,
    render_hints,
    render_last_moves,
    render_standings,
    render_table,
)

LOGGER = logging.getLogger("practice")

HUMAN_SEAT = 0


class PracticeQuit(Exception):
    pass


class PracticeGame:
    """One human at the terminal against three computer seats."""

    def __init__(
        self,
        name: str = "You",
        seed: Optional[int] = None,
        config: TableConfig = TableConfig(),
        prompt: Callable[[str], str] = input,
        output: Callable[[str], None] = print,
    ) -> None:
        self.name = name
        self.config = config
        self.rng = random.Random(seed)
        self.prompt = prompt
        self.output = output
        self.state: Optional[GameState] = None
        self.knocked_out = False

    def run(self) -> GameState:
        names = [self.name] + [f"CPU {idx}" for idx in range(1, self.config.seats)]
        types = [PlayerType.HUMAN] + [PlayerType.AI] * (self.config.seats - 1)
        state = create_game_state(self._deal(), HUMAN_SEAT, names=names, seat_types=types)
        self.state = state
        self.output(render_table(state, HUMAN_SEAT))

        try:
            while state.phase != Phase.GAME_OVER:
                if state.phase == Phase.ROUND_END:
                    state = self._next_round(state)
                elif is_human_turn(state):
                    state = self._human_turn(state)
                else:
                    state = self._ai_turn(state)
                self.state = state
        except PracticeQuit:
            self.output("Leaving the table.")
            return state

        winner = get_winner(state)
        self.output(render_standings(state))
        if winner is not None:
            self.output("You win!" if winner.id == HUMAN_SEAT else f"{winner.name} wins the game.")
        return state

    def _deal(self):
        return deal_round(self.rng.randrange(2**32))

    def _next_round(self, state: GameState) -> GameState:
        self.output(render_standings(state))
        if is_human_eliminated(state, HUMAN_SEAT) and not self.knocked_out:
            self.knocked_out = True
            self.output("You are out; the computer seats play on.")
        self._pause(self.config.round_end_delay_ms)
        state = start_next_round(state, self._deal())
        LOGGER.info("Round %s dealt; seat %s leads", state.round_number, state.current_player_index)
        self.output(render_table(state, HUMAN_SEAT))
        return state

    def _ai_turn(self, state: GameState) -> GameState:
        seat = state.current_player_index
        self._pause(self.config.ai_turn_delay_ms)
        decision = make_ai_decision(current_player(state), state.current_play, state, self.rng)
        if decision.action == ActionKind.PLAY:
            result = play_cards(state, decision.cards)
            if result.success:
                return self._show(result.new_state, state)
            LOGGER.warning("AI seat %s proposed an illegal play (%s); passing", seat, result.error)
        return self._show(pass_action(state), state)

    def _human_turn(self, state: GameState) -> GameState:
        hand = state.players[HUMAN_SEAT].hand
        while True:
            text = self.prompt("Play cards (positions or labels), [p]ass, [h]int, [q]uit: ").strip().lower()
            if text in QUIT_WORDS:
                raise PracticeQuit()
            if text in HINT_WORDS:
                self.output(render_hints(state, HUMAN_SEAT))
                continue
            if text in PASS_WORDS:
                return self._show(pass_action(state), state)
            try:
                cards = parse_selection(text, hand)
            except ValueError as exc:
                self.output(str(exc))
                continue
            result = play_cards(state, cards)
            if not result.success:
                self.output(f"{result.error}. Try again.")
                continue
            return self._show(result.new_state, state)

    def _show(self, new_state: GameState, old_state: GameState) -> GameState:
        fresh = len(new_state.move_history) - len(old_state.move_history)
        for line in render_last_moves(new_state, fresh):
            self.output(line)
        if new_state.phase == Phase.PLAYING and is_human_turn(new_state):
            self.output(render_table(new_state, HUMAN_SEAT))
        return new_state

    def _pause(self, delay_ms: int) -> None:
        if delay_ms > 0:
            time.sleep(delay_ms / 1000)
