"""Rules engine for the card game "13" shared by practice and netplay modes."""

from .cards import RANKS, SUITS, Card, build_deck, deal_hands, parse_cards
from .combos import ComboType, Combination, PlayValidation, beats, classify, find_beating_plays, validate_play
from .game import (
    create_game_state,
    deal_round,
    get_active_players,
    get_winner,
    is_human_turn,
    pass_action,
    play_cards,
    start_next_round,
)
from .models import ActionKind, GameState, Phase, Player, PlayerType, PlayResult, TableConfig
from .scoring import end_round

__all__ = [
    "Card",
    "RANKS",
    "SUITS",
    "build_deck",
    "deal_hands",
    "parse_cards",
    "ComboType",
    "Combination",
    "PlayValidation",
    "beats",
    "classify",
    "find_beating_plays",
    "validate_play",
    "create_game_state",
    "deal_round",
    "get_active_players",
    "get_winner",
    "is_human_turn",
    "pass_action",
    "play_cards",
    "start_next_round",
    "end_round",
    "ActionKind",
    "GameState",
    "Phase",
    "Player",
    "PlayerType",
    "PlayResult",
    "TableConfig",
]
