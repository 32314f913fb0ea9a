from __future__ import annotations

from typing import Iterable, List, Sequence

from .combos import describe_combo
from .models import (
    MoveRecord,
    NewRoundRecord,
    PassRecord,
    Player,
    PlayRecord,
    RoundEndRecord,
    TrickResetRecord,
)


def describe_move(record: MoveRecord, players: Sequence[Player]) -> str:
    """One log line for a move record."""
    if isinstance(record, PlayRecord):
        return f"{_name(players, record.player_index)} played {describe_combo(record.combination)}"
    if isinstance(record, PassRecord):
        return f"{_name(players, record.player_index)} passed"
    if isinstance(record, TrickResetRecord):
        return f"Everyone passed; {_name(players, record.lead_player)} leads"
    if isinstance(record, RoundEndRecord):
        out = [line for line in record.scores if line.eliminated]
        text = f"{_name(players, record.winner_index)} won the round"
        if out:
            text += "; eliminated: " + ", ".join(_name(players, line.id) for line in out)
        return text
    if isinstance(record, NewRoundRecord):
        return f"Round {record.round_number} begins; {_name(players, record.dealer)} deals"
    raise TypeError(f"Unknown move record: {record!r}")


def describe_moves(records: Iterable[MoveRecord], players: Sequence[Player]) -> List[str]:
    return [describe_move(record, players) for record in records]


def _name(players: Sequence[Player], seat: int) -> str:
    if 0 <= seat < len(players):
        return players[seat].name
    return f"Seat {seat}"
