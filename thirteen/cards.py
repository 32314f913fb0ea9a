from __future__ import annotations

import random
from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Sequence, Tuple

RANKS = ("3", "4", "5", "6", "7", "8", "9", "10", "J", "Q", "K", "A", "2")
SUITS = ("♦", "♣", "♥", "♠")

RANK_VALUE = {rank: idx for idx, rank in enumerate(RANKS)}
SUIT_VALUE = {suit: idx for idx, suit in enumerate(SUITS)}

SUIT_NAMES = {"♦": "Diamonds", "♣": "Clubs", "♥": "Hearts", "♠": "Spades"}
_SUIT_ALIASES = {"d": "♦", "c": "♣", "h": "♥", "s": "♠"}
_RANK_ALIASES = {"t": "10", "j": "J", "q": "Q", "k": "K", "a": "A"}


@dataclass(frozen=True, order=True)
class Card:
    # Ordering compares sort_key only; rank/suit are excluded from the
    # generated comparisons.
    sort_key: Tuple[int, int] = field(init=False, repr=False)
    rank: str = field(compare=False)
    suit: str = field(compare=False)

    def __post_init__(self) -> None:
        if self.rank not in RANK_VALUE:
            raise ValueError(f"Invalid rank: {self.rank}")
        if self.suit not in SUIT_VALUE:
            raise ValueError(f"Invalid suit: {self.suit}")
        object.__setattr__(self, "sort_key", (RANK_VALUE[self.rank], SUIT_VALUE[self.suit]))

    @property
    def rank_value(self) -> int:
        return RANK_VALUE[self.rank]

    @property
    def suit_value(self) -> int:
        return SUIT_VALUE[self.suit]

    @property
    def label(self) -> str:
        return f"{self.rank}{self.suit}"

    def __str__(self) -> str:
        return self.label


def build_deck(seed: Optional[int] = None) -> List[Card]:
    rng = random.Random(seed)
    deck = [Card(rank, suit) for suit in SUITS for rank in RANKS]
    rng.shuffle(deck)
    return deck


def deal_hands(deck: Sequence[Card], seats: int = 4, hand_size: int = 13) -> List[Tuple[Card, ...]]:
    """Deal one card at a time round the table and return each hand sorted."""
    if len(deck) < seats * hand_size:
        raise ValueError("Not enough cards left in deck")
    hands: List[List[Card]] = [[] for _ in range(seats)]
    for idx in range(seats * hand_size):
        hands[idx % seats].append(deck[idx])
    return [sort_hand(hand) for hand in hands]


def sort_hand(cards: Iterable[Card]) -> Tuple[Card, ...]:
    return tuple(sorted(cards))


def remove_cards(hand: Sequence[Card], cards: Iterable[Card]) -> Tuple[Card, ...]:
    to_remove = set(cards)
    return tuple(card for card in hand if card not in to_remove)


def hand_contains(hand: Sequence[Card], cards: Iterable[Card]) -> bool:
    held = set(hand)
    return all(card in held for card in cards)


def cards_to_labels(cards: Iterable[Card]) -> List[str]:
    return [card.label for card in cards]


def parse_label(label: str) -> Card:
    text = label.strip()
    if len(text) < 2:
        raise ValueError(f"Invalid card label: {label}")
    rank_raw, suit_raw = text[:-1], text[-1]
    suit = _SUIT_ALIASES.get(suit_raw.lower(), suit_raw)
    rank = _RANK_ALIASES.get(rank_raw.lower(), rank_raw.upper())
    return Card(rank, suit)


def parse_cards(labels: Sequence[str]) -> List[Card]:
    return [parse_label(label) for label in labels]
