from __future__ import annotations

import itertools
from collections import Counter
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from .cards import RANK_VALUE, Card


class ComboType(str, Enum):
    SINGLE = "SINGLE"
    PAIR = "PAIR"
    TRIPLE = "TRIPLE"
    FOUR_OF_A_KIND = "FOUR_OF_A_KIND"
    STRAIGHT = "STRAIGHT"
    FLUSH = "FLUSH"
    FULL_HOUSE = "FULL_HOUSE"
    STRAIGHT_FLUSH = "STRAIGHT_FLUSH"
    ROYAL_FLUSH = "ROYAL_FLUSH"


# Ladder for 5-card hands only. Smaller combinations never cross types.
FIVE_CARD_STRENGTH: Dict[ComboType, int] = {
    ComboType.STRAIGHT: 0,
    ComboType.FLUSH: 1,
    ComboType.FULL_HOUSE: 2,
    ComboType.STRAIGHT_FLUSH: 3,
    ComboType.ROYAL_FLUSH: 4,
}

COMBO_NAMES: Dict[ComboType, str] = {
    ComboType.SINGLE: "Single",
    ComboType.PAIR: "Pair",
    ComboType.TRIPLE: "Triple",
    ComboType.FOUR_OF_A_KIND: "Four of a Kind",
    ComboType.STRAIGHT: "Straight",
    ComboType.FLUSH: "Flush",
    ComboType.FULL_HOUSE: "Full House",
    ComboType.STRAIGHT_FLUSH: "Straight Flush",
    ComboType.ROYAL_FLUSH: "Royal Flush",
}

_SET_TYPES = {1: ComboType.SINGLE, 2: ComboType.PAIR, 3: ComboType.TRIPLE, 4: ComboType.FOUR_OF_A_KIND}
_TOP_RANK = RANK_VALUE["2"]

INVALID_COMBINATION = "Invalid combination"
MUST_BEAT = "Must play a stronger combination"
VALID_PLAY = "Valid play"


@dataclass(frozen=True)
class Combination:
    type: ComboType
    rank: int
    high_card: Card
    cards: Tuple[Card, ...]
    pair_rank: Optional[int] = None
    strength: Optional[int] = None

    @property
    def size(self) -> int:
        return len(self.cards)

    @property
    def is_five_card(self) -> bool:
        return self.type in FIVE_CARD_STRENGTH

    @property
    def name(self) -> str:
        return COMBO_NAMES[self.type]


@dataclass(frozen=True)
class PlayValidation:
    valid: bool
    reason: str
    combination: Optional[Combination]


def classify(cards: Iterable[Card]) -> Optional[Combination]:
    """Identify the combination formed by ``cards`` or return None if illegal."""
    ordered = tuple(sorted(cards))
    if not ordered:
        return None
    if len(ordered) in _SET_TYPES:
        return _classify_set(ordered)
    if len(ordered) == 5:
        return _classify_five(ordered)
    return None


def _classify_set(cards: Tuple[Card, ...]) -> Optional[Combination]:
    if any(card.rank != cards[0].rank for card in cards):
        return None
    return Combination(
        type=_SET_TYPES[len(cards)],
        rank=cards[0].rank_value,
        high_card=cards[-1],
        cards=cards,
    )


def _classify_five(cards: Tuple[Card, ...]) -> Optional[Combination]:
    is_flush = len({card.suit for card in cards}) == 1
    is_straight = _is_straight(cards)
    high = cards[-1]

    if is_flush and is_straight:
        combo_type = ComboType.ROYAL_FLUSH if high.rank_value == _TOP_RANK else ComboType.STRAIGHT_FLUSH
        return _five(combo_type, high.rank_value, high, cards)

    counts = Counter(card.rank for card in cards)
    if sorted(counts.values()) == [2, 3]:
        triple_rank = next(rank for rank, count in counts.items() if count == 3)
        pair_rank = next(rank for rank, count in counts.items() if count == 2)
        triple_high = max(card for card in cards if card.rank == triple_rank)
        return _five(
            ComboType.FULL_HOUSE,
            RANK_VALUE[triple_rank],
            triple_high,
            cards,
            pair_rank=RANK_VALUE[pair_rank],
        )

    if is_flush:
        return _five(ComboType.FLUSH, high.rank_value, high, cards)
    if is_straight:
        return _five(ComboType.STRAIGHT, high.rank_value, high, cards)
    return None


def _five(
    combo_type: ComboType,
    rank: int,
    high_card: Card,
    cards: Tuple[Card, ...],
    pair_rank: Optional[int] = None,
) -> Combination:
    return Combination(
        type=combo_type,
        rank=rank,
        high_card=high_card,
        cards=cards,
        pair_rank=pair_rank,
        strength=FIVE_CARD_STRENGTH[combo_type],
    )


def _is_straight(cards: Sequence[Card]) -> bool:
    # No wraparound: K-A-2-3-4 is not a run because 2 sits above A.
    values = [card.rank_value for card in cards]
    return all(b == a + 1 for a, b in zip(values, values[1:]))


def beats(candidate: Optional[Combination], incumbent: Optional[Combination]) -> bool:
    """Return True if ``candidate`` strictly beats ``incumbent``."""
    if candidate is None or incumbent is None:
        return False

    if candidate.is_five_card and incumbent.is_five_card:
        if candidate.strength != incumbent.strength:
            return candidate.strength > incumbent.strength
        if candidate.rank != incumbent.rank:
            return candidate.rank > incumbent.rank
        if candidate.type == ComboType.FULL_HOUSE and candidate.pair_rank != incumbent.pair_rank:
            return candidate.pair_rank > incumbent.pair_rank
        return candidate.high_card > incumbent.high_card

    if candidate.type != incumbent.type or candidate.size != incumbent.size:
        return False
    if candidate.rank != incumbent.rank:
        return candidate.rank > incumbent.rank
    return candidate.high_card > incumbent.high_card


def validate_play(selected: Iterable[Card], table: Optional[Combination]) -> PlayValidation:
    combo = classify(selected)
    if combo is None:
        return PlayValidation(valid=False, reason=INVALID_COMBINATION, combination=None)
    if table is None:
        return PlayValidation(valid=True, reason=VALID_PLAY, combination=combo)
    if not beats(combo, table):
        return PlayValidation(valid=False, reason=MUST_BEAT, combination=combo)
    return PlayValidation(valid=True, reason=VALID_PLAY, combination=combo)


def find_beating_plays(hand: Sequence[Card], table: Optional[Combination]) -> List[Combination]:
    """Every legal play from ``hand`` against ``table``, weakest first.

    With an empty table every combination of one to five cards is returned.
    """
    sizes = (table.size,) if table is not None else (1, 2, 3, 4, 5)
    plays: List[Combination] = []
    for size in sizes:
        for cards in itertools.combinations(sorted(set(hand)), size):
            result = validate_play(cards, table)
            if result.valid and result.combination is not None:
                plays.append(result.combination)
    plays.sort(key=combo_sort_key)
    return plays


def combo_sort_key(combo: Combination) -> Tuple[int, int, int, int, Tuple[int, int]]:
    return (
        combo.size,
        combo.strength if combo.strength is not None else -1,
        combo.rank,
        combo.pair_rank if combo.pair_rank is not None else -1,
        combo.high_card.sort_key,
    )


def describe_combo(combo: Optional[Combination]) -> str:
    if combo is None:
        return "nothing"
    labels = " ".join(card.label for card in combo.cards)
    return f"{combo.name} [{labels}]"
