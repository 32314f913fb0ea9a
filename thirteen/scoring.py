from __future__ import annotations

import logging
from dataclasses import replace
from typing import List

from .models import (
    ELIMINATION_SCORE,
    PENALTY_THRESHOLD,
    GameState,
    Phase,
    Player,
    RoundEndRecord,
    ScoreLine,
)

LOGGER = logging.getLogger("thirteen")


def penalty_for(cards_remaining: int, threshold: int = PENALTY_THRESHOLD) -> int:
    """Penalty points for a loser: one per card, doubled at ``threshold`` or more."""
    if cards_remaining >= threshold:
        return cards_remaining * 2
    return cards_remaining


def end_round(
    state: GameState,
    winner: int,
    *,
    elimination_score: int = ELIMINATION_SCORE,
    penalty_threshold: int = PENALTY_THRESHOLD,
) -> GameState:
    """Score everyone left holding cards and eliminate anyone over the ceiling.

    The winner's score is untouched. Eliminated seats from earlier rounds are
    carried over as they are. Every hand is cleared for the next deal.
    """
    players: List[Player] = []
    for idx, player in enumerate(state.players):
        if idx == winner or player.is_eliminated:
            players.append(replace(player, hand=()))
            continue
        score = player.score + penalty_for(len(player.hand), penalty_threshold)
        eliminated = score >= elimination_score
        if eliminated:
            LOGGER.info("Seat %s (%s) eliminated with %s points", idx, player.name, score)
        players.append(replace(player, hand=(), score=score, is_eliminated=eliminated))

    active = [player for player in players if not player.is_eliminated]
    phase = Phase.GAME_OVER if len(active) == 1 else Phase.ROUND_END

    record = RoundEndRecord(
        winner_index=winner,
        scores=tuple(ScoreLine(id=p.id, score=p.score, eliminated=p.is_eliminated) for p in players),
    )
    return state.evolve(
        players=tuple(players),
        phase=phase,
        round_winner=winner,
        move_history=state.move_history + (record,),
    )


def standings(state: GameState) -> List[Player]:
    """Players ordered for a scoreboard: survivors first, then by score."""
    return sorted(state.players, key=lambda p: (p.is_eliminated, p.score, p.id))
