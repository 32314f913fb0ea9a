from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import ClassVar, Optional, Tuple, Union

from .cards import Card
from .combos import Combination

NUM_SEATS = 4
HAND_SIZE = 13
ELIMINATION_SCORE = 25
PENALTY_THRESHOLD = 10


class Phase(str, Enum):
    PLAYING = "PLAYING"
    ROUND_END = "ROUND_END"
    GAME_OVER = "GAME_OVER"


class PlayerType(str, Enum):
    HUMAN = "HUMAN"
    AI = "AI"


class ActionKind(str, Enum):
    PLAY = "play"
    PASS = "pass"


class MoveKind(str, Enum):
    PLAY = "PLAY"
    PASS = "PASS"
    ROUND_RESET = "ROUND_RESET"
    ROUND_END = "ROUND_END"
    NEW_ROUND = "NEW_ROUND"


@dataclass(frozen=True)
class TableConfig:
    seats: int = NUM_SEATS
    hand_size: int = HAND_SIZE
    ai_turn_delay_ms: int = 1_000
    round_end_delay_ms: int = 2_000

    def __post_init__(self) -> None:
        if self.seats != NUM_SEATS or self.hand_size != HAND_SIZE:
            raise ValueError("Only 4 seats with 13 cards each are supported")


@dataclass(frozen=True)
class Player:
    id: int
    name: str
    type: PlayerType
    hand: Tuple[Card, ...] = ()
    score: int = 0
    is_eliminated: bool = False
    has_passed: bool = False
    last_play: Optional[Combination] = None

    @property
    def is_active(self) -> bool:
        return not self.is_eliminated

    @property
    def cards_left(self) -> int:
        return len(self.hand)


# Move log entries. The set is closed: every consumer handles all five kinds.


@dataclass(frozen=True)
class PlayRecord:
    kind: ClassVar[MoveKind] = MoveKind.PLAY
    player_index: int
    cards: Tuple[Card, ...]
    combination: Combination


@dataclass(frozen=True)
class PassRecord:
    kind: ClassVar[MoveKind] = MoveKind.PASS
    player_index: int


@dataclass(frozen=True)
class TrickResetRecord:
    kind: ClassVar[MoveKind] = MoveKind.ROUND_RESET
    lead_player: int


@dataclass(frozen=True)
class ScoreLine:
    id: int
    score: int
    eliminated: bool


@dataclass(frozen=True)
class RoundEndRecord:
    kind: ClassVar[MoveKind] = MoveKind.ROUND_END
    winner_index: int
    scores: Tuple[ScoreLine, ...]


@dataclass(frozen=True)
class NewRoundRecord:
    kind: ClassVar[MoveKind] = MoveKind.NEW_ROUND
    round_number: int
    dealer: int


MoveRecord = Union[PlayRecord, PassRecord, TrickResetRecord, RoundEndRecord, NewRoundRecord]


@dataclass(frozen=True)
class GameState:
    players: Tuple[Player, ...]
    current_player_index: int
    dealer_index: int
    current_play: Optional[Combination] = None
    last_played_by: Optional[int] = None
    round_number: int = 1
    phase: Phase = Phase.PLAYING
    pass_count: int = 0
    move_history: Tuple[MoveRecord, ...] = field(default_factory=tuple)
    round_winner: Optional[int] = None
    version: int = 0

    @property
    def current_player(self) -> Player:
        return self.players[self.current_player_index]

    def evolve(self, **changes: object) -> "GameState":
        """Copy with ``changes`` applied and the version bumped."""
        return replace(self, version=self.version + 1, **changes)

    def with_player(self, index: int, **changes: object) -> Tuple[Player, ...]:
        return tuple(
            replace(player, **changes) if idx == index else player
            for idx, player in enumerate(self.players)
        )


@dataclass(frozen=True)
class PlayResult:
    success: bool
    new_state: GameState
    player_won: bool = False
    error: Optional[str] = None
