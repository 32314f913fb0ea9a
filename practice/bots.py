from __future__ import annotations

import random
from collections import defaultdict
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Tuple

from thirteen.cards import Card, sort_hand
from thirteen.combos import Combination, ComboType, classify, combo_sort_key, find_beating_plays
from thirteen.models import ActionKind, GameState, Player

_RNG = random.Random()
_HIGH_CARD_VALUE = 9  # Queen and up


@dataclass(frozen=True)
class AIDecision:
    action: ActionKind
    cards: Tuple[Card, ...] = ()


PASS = AIDecision(ActionKind.PASS)


def _by_rank(hand: Sequence[Card]) -> Dict[int, List[Card]]:
    groups: Dict[int, List[Card]] = defaultdict(list)
    for card in sorted(hand):
        groups[card.rank_value].append(card)
    return dict(sorted(groups.items()))


def _five_card_candidates(hand: Sequence[Card]) -> List[Combination]:
    """Straights, flushes and full houses that can be built from ``hand``."""
    if len(hand) < 5:
        return []
    found: List[Combination] = []
    groups = _by_rank(hand)

    # Straights: lowest suit of each rank across every five-rank window.
    values = list(groups)
    for start in values:
        window = [start + offset for offset in range(5)]
        if all(value in groups for value in window):
            combo = classify(groups[value][0] for value in window)
            if combo:
                found.append(combo)

    by_suit: Dict[str, List[Card]] = defaultdict(list)
    for card in sorted(hand):
        by_suit[card.suit].append(card)
    for cards in by_suit.values():
        if len(cards) >= 5:
            combo = classify(cards[:5])
            if combo:
                found.append(combo)

    triples = [cards[:3] for cards in groups.values() if len(cards) >= 3]
    pairs = [cards[:2] for cards in groups.values() if len(cards) >= 2]
    for triple in triples:
        for pair in pairs:
            if pair[0].rank != triple[0].rank:
                combo = classify(triple + pair)
                if combo:
                    found.append(combo)
    return found


def _lead(hand: Sequence[Card]) -> AIDecision:
    cards_left = len(hand)
    if cards_left == 1:
        return AIDecision(ActionKind.PLAY, tuple(hand))

    # Shed sets from the bottom; pairs only once the hand is getting short.
    for cards in _by_rank(hand).values():
        if len(cards) >= 3 or (len(cards) == 2 and cards_left < 8):
            return AIDecision(ActionKind.PLAY, tuple(cards))

    if cards_left >= 5:
        candidates = _five_card_candidates(hand)
        if candidates:
            return AIDecision(ActionKind.PLAY, min(candidates, key=combo_sort_key).cards)

    return AIDecision(ActionKind.PLAY, (min(hand),))


def _should_play(player: Player, options: List[Combination], table: Combination, rng: random.Random) -> bool:
    cards_left = player.cards_left
    if cards_left <= 2:
        return True
    if cards_left <= 5:
        if options[0].type in (ComboType.FOUR_OF_A_KIND, ComboType.TRIPLE):
            return True
        return rng.random() > 0.5
    if table.type == ComboType.SINGLE and table.rank < 6:
        return rng.random() > 0.4
    high_cards = sum(1 for card in player.hand if card.rank_value >= _HIGH_CARD_VALUE)
    if high_cards >= 5:
        return rng.random() > 0.7
    return rng.random() > 0.5


def make_ai_decision(
    player: Player,
    table: Optional[Combination],
    state: Optional[GameState] = None,
    rng: Optional[random.Random] = None,
) -> AIDecision:
    """Pick a play for a computer seat.

    The caller still runs the play through the validator; this function is
    only a policy and never mutates ``state``.
    """
    rng = rng or _RNG
    hand = sort_hand(player.hand)
    if not hand:
        return PASS
    if table is None:
        return _lead(hand)

    options = find_beating_plays(hand, table)
    if not options:
        return PASS
    if not _should_play(player, options, table, rng):
        return PASS

    # Followers must match the table size, so the cheapest beating play is spent.
    return AIDecision(ActionKind.PLAY, options[0].cards)
