from __future__ import annotations

from typing import Iterable, List, Optional, Sequence

from thirteen.cards import Card, parse_label
from thirteen.combos import describe_combo, find_beating_plays
from thirteen.history import describe_move
from thirteen.models import GameState, Phase
from thirteen.scoring import standings

# Plain-text rendering shared by the practice game and the netplay client.

PASS_WORDS = {"p", "pass"}
HINT_WORDS = {"h", "hint", "?"}
QUIT_WORDS = {"q", "quit", "exit"}


def format_cards(cards: Iterable[Card]) -> str:
    return " ".join(card.label for card in cards) or "-"


def format_hand(hand: Sequence[Card]) -> str:
    return "  ".join(f"{idx}:{card.label}" for idx, card in enumerate(hand))


def render_table(state: GameState, viewer: Optional[int] = None) -> str:
    lines = [f"--- Round {state.round_number} ({state.phase.value}) ---"]
    for seat, player in enumerate(state.players):
        marker = ">" if seat == state.current_player_index and state.phase == Phase.PLAYING else " "
        if player.is_eliminated:
            status = "OUT"
        elif player.has_passed:
            status = "passed"
        else:
            status = f"{player.cards_left} cards"
        lines.append(f"{marker} [{seat}] {player.name:<12} score={player.score:<3} {status}")
    owner = state.players[state.last_played_by].name if state.last_played_by is not None else None
    table = describe_combo(state.current_play)
    lines.append(f"Table: {table}" + (f" by {owner}" if owner else ""))
    if viewer is not None and state.players[viewer].hand:
        lines.append(f"Your hand: {format_hand(state.players[viewer].hand)}")
    return "\n".join(lines)


def render_last_moves(state: GameState, count: int = 4) -> List[str]:
    if count <= 0:
        return []
    return [describe_move(record, state.players) for record in state.move_history[-count:]]


def render_standings(state: GameState) -> str:
    rows = []
    for place, player in enumerate(standings(state), start=1):
        flag = " (eliminated)" if player.is_eliminated else ""
        rows.append(f"{place}. {player.name}: {player.score}{flag}")
    return "\n".join(rows)


def render_hints(state: GameState, seat: int, limit: int = 5) -> str:
    plays = find_beating_plays(state.players[seat].hand, state.current_play)
    if not plays:
        return "No legal play; you can only pass."
    shown = ", ".join(format_cards(combo.cards) for combo in plays[:limit])
    more = f" (+{len(plays) - limit} more)" if len(plays) > limit else ""
    return f"Playable: {shown}{more}"


def parse_selection(text: str, hand: Sequence[Card]) -> List[Card]:
    """Turn "0 1" (hand positions) or "3d 3c" (labels) into cards."""
    cards: List[Card] = []
    for token in text.replace(",", " ").split():
        if token.isdigit():
            idx = int(token)
            if idx >= len(hand):
                raise ValueError(f"No card at position {idx}")
            cards.append(hand[idx])
        else:
            cards.append(parse_label(token))
    if not cards:
        raise ValueError("Select at least one card")
    return cards
