from __future__ import annotations

import logging
from dataclasses import replace
from typing import Iterable, List, Optional, Sequence, Tuple

from .cards import Card, build_deck, deal_hands, hand_contains, remove_cards, sort_hand
from .combos import validate_play
from .models import (
    HAND_SIZE,
    NUM_SEATS,
    GameState,
    NewRoundRecord,
    PassRecord,
    Phase,
    Player,
    PlayerType,
    PlayRecord,
    PlayResult,
    TrickResetRecord,
)
from .scoring import end_round
from .seating import SeatRing

# Turn and trick rules. Every function takes a GameState and returns a new
# one; nothing here touches sockets, timers or randomness beyond dealing.

LOGGER = logging.getLogger("thirteen")

SEATS = SeatRing(NUM_SEATS)

ROUND_NOT_IN_PROGRESS = "Round is not in progress"


def deal_round(seed: Optional[int] = None) -> List[Tuple[Card, ...]]:
    return deal_hands(build_deck(seed), seats=NUM_SEATS, hand_size=HAND_SIZE)


def create_game_state(
    hands: Sequence[Iterable[Card]],
    starting_seat: int = 0,
    names: Optional[Sequence[str]] = None,
    seat_types: Optional[Sequence[PlayerType]] = None,
) -> GameState:
    if len(hands) != NUM_SEATS:
        raise ValueError(f"Expected {NUM_SEATS} hands, got {len(hands)}")
    players = []
    for idx, hand in enumerate(hands):
        default_type = PlayerType.HUMAN if idx == 0 else PlayerType.AI
        default_name = "You" if idx == 0 else f"CPU {idx}"
        players.append(
            Player(
                id=idx,
                name=names[idx] if names else default_name,
                type=seat_types[idx] if seat_types else default_type,
                hand=sort_hand(hand),
            )
        )
    return GameState(
        players=tuple(players),
        current_player_index=starting_seat,
        dealer_index=SEATS.step(starting_seat, -1),
    )


# Turn order -----------------------------------------------------------


def next_player_index(state: GameState) -> int:
    current = state.current_player_index
    nxt = SEATS.next_after(
        current,
        lambda seat: not state.players[seat].is_eliminated and not state.players[seat].has_passed,
    )
    if nxt is None:
        # The trick should already have been reset before we got here.
        LOGGER.warning("No eligible seat after %s; keeping current player", current)
        return current
    return nxt


def should_reset_trick(state: GameState) -> bool:
    still_in = [p for p in state.players if not p.is_eliminated and not p.has_passed]
    return len(still_in) <= 1


def reset_trick(state: GameState) -> GameState:
    lead = state.last_played_by if state.last_played_by is not None else state.current_player_index
    players = tuple(replace(p, has_passed=False, last_play=None) for p in state.players)
    return state.evolve(
        players=players,
        current_play=None,
        last_played_by=None,
        current_player_index=lead,
        pass_count=0,
        move_history=state.move_history + (TrickResetRecord(lead_player=lead),),
    )


def _advance_turn(state: GameState) -> GameState:
    state = state.evolve(current_player_index=next_player_index(state))
    if should_reset_trick(state):
        state = reset_trick(state)
    return state


# Actions --------------------------------------------------------------


def play_cards(state: GameState, cards: Iterable[Card]) -> PlayResult:
    selected = list(cards)
    error = _play_error(state, selected)
    if error:
        return PlayResult(success=False, new_state=state, error=error)

    validation = validate_play(selected, state.current_play)
    if not validation.valid or validation.combination is None:
        return PlayResult(success=False, new_state=state, error=validation.reason)

    seat = state.current_player_index
    actor = state.players[seat]
    remaining = remove_cards(actor.hand, selected)
    record = PlayRecord(player_index=seat, cards=sort_hand(selected), combination=validation.combination)
    state = state.evolve(
        players=state.with_player(seat, hand=remaining, last_play=validation.combination),
        current_play=validation.combination,
        last_played_by=seat,
        pass_count=0,
        move_history=state.move_history + (record,),
    )

    if not remaining:
        LOGGER.info("Seat %s (%s) emptied their hand in round %s", seat, actor.name, state.round_number)
        return PlayResult(success=True, new_state=end_round(state, seat), player_won=True)

    return PlayResult(success=True, new_state=_advance_turn(state))


def _play_error(state: GameState, selected: List[Card]) -> Optional[str]:
    if state.phase != Phase.PLAYING:
        return ROUND_NOT_IN_PROGRESS
    if not selected:
        return "No cards selected"
    if len(set(selected)) != len(selected):
        return "Duplicate cards selected"
    if not hand_contains(state.current_player.hand, selected):
        return "Cards not in hand"
    return None


def pass_action(state: GameState) -> GameState:
    if state.phase != Phase.PLAYING:
        raise RuntimeError(ROUND_NOT_IN_PROGRESS)
    seat = state.current_player_index
    state = state.evolve(
        players=state.with_player(seat, has_passed=True),
        pass_count=state.pass_count + 1,
        move_history=state.move_history + (PassRecord(player_index=seat),),
    )
    return _advance_turn(state)


def start_next_round(state: GameState, new_hands: Sequence[Iterable[Card]]) -> GameState:
    if state.phase == Phase.PLAYING:
        raise RuntimeError("Round still in progress")
    if state.phase == Phase.GAME_OVER:
        raise RuntimeError("Game is over")
    if len(new_hands) != NUM_SEATS:
        raise ValueError(f"Expected {NUM_SEATS} hands, got {len(new_hands)}")

    dealer = SEATS.step(state.dealer_index)
    leader = SEATS.first_from(SEATS.step(dealer), lambda seat: not state.players[seat].is_eliminated)
    if leader is None:
        raise RuntimeError("No active players left to deal to")

    players = tuple(
        replace(
            p,
            hand=() if p.is_eliminated else sort_hand(new_hands[idx]),
            has_passed=False,
            last_play=None,
        )
        for idx, p in enumerate(state.players)
    )
    round_number = state.round_number + 1
    return state.evolve(
        players=players,
        current_player_index=leader,
        dealer_index=dealer,
        current_play=None,
        last_played_by=None,
        round_number=round_number,
        phase=Phase.PLAYING,
        pass_count=0,
        move_history=state.move_history + (NewRoundRecord(round_number=round_number, dealer=dealer),),
    )


# Queries --------------------------------------------------------------


def current_player(state: GameState) -> Player:
    return state.current_player


def is_human_turn(state: GameState) -> bool:
    player = state.current_player
    return player.type == PlayerType.HUMAN and not player.is_eliminated


def get_active_players(state: GameState) -> List[Player]:
    return [player for player in state.players if not player.is_eliminated]


def get_winner(state: GameState) -> Optional[Player]:
    if state.phase != Phase.GAME_OVER:
        return None
    active = get_active_players(state)
    return active[0] if len(active) == 1 else None


def is_human_eliminated(state: GameState, seat: int = 0) -> bool:
    return state.players[seat].is_eliminated
