"""JSON-safe payloads for the replicated game state.

Keys are camelCase and cards travel as labels ("10♠"). Decoding rebuilds
combinations through the classifier, so a payload can never smuggle in a
combination the rules would not produce.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from .cards import cards_to_labels, parse_cards
from .combos import Combination, ComboType, classify
from .models import (
    GameState,
    MoveKind,
    MoveRecord,
    NewRoundRecord,
    PassRecord,
    Phase,
    Player,
    PlayerType,
    PlayRecord,
    RoundEndRecord,
    ScoreLine,
    TrickResetRecord,
)


def combination_to_payload(combo: Optional[Combination]) -> Optional[Dict[str, Any]]:
    if combo is None:
        return None
    return {
        "type": combo.type.value,
        "rank": combo.rank,
        "highCard": combo.high_card.label,
        "cards": cards_to_labels(combo.cards),
        "pairRank": combo.pair_rank,
        "strength": combo.strength,
    }


def combination_from_payload(payload: Optional[Dict[str, Any]]) -> Optional[Combination]:
    if payload is None:
        return None
    combo = classify(parse_cards(payload["cards"]))
    if combo is None or combo.type != ComboType(payload["type"]):
        raise ValueError(f"Inconsistent combination payload: {payload!r}")
    return combo


def move_to_payload(record: MoveRecord) -> Dict[str, Any]:
    body: Dict[str, Any] = {"type": record.kind.value}
    if isinstance(record, PlayRecord):
        body.update(
            playerIndex=record.player_index,
            cards=cards_to_labels(record.cards),
            combination=combination_to_payload(record.combination),
        )
    elif isinstance(record, PassRecord):
        body.update(playerIndex=record.player_index)
    elif isinstance(record, TrickResetRecord):
        body.update(leadPlayer=record.lead_player)
    elif isinstance(record, RoundEndRecord):
        body.update(
            winnerIndex=record.winner_index,
            scores=[{"id": line.id, "score": line.score, "eliminated": line.eliminated} for line in record.scores],
        )
    elif isinstance(record, NewRoundRecord):
        body.update(roundNumber=record.round_number, dealer=record.dealer)
    else:
        raise TypeError(f"Unknown move record: {record!r}")
    return body


def move_from_payload(payload: Dict[str, Any]) -> MoveRecord:
    try:
        kind = MoveKind(payload.get("type"))
    except ValueError:
        raise ValueError(f"Unknown move type: {payload.get('type')!r}") from None

    if kind == MoveKind.PLAY:
        combo = combination_from_payload(payload["combination"])
        assert combo is not None
        return PlayRecord(
            player_index=int(payload["playerIndex"]),
            cards=tuple(parse_cards(payload["cards"])),
            combination=combo,
        )
    if kind == MoveKind.PASS:
        return PassRecord(player_index=int(payload["playerIndex"]))
    if kind == MoveKind.ROUND_RESET:
        return TrickResetRecord(lead_player=int(payload["leadPlayer"]))
    if kind == MoveKind.ROUND_END:
        return RoundEndRecord(
            winner_index=int(payload["winnerIndex"]),
            scores=tuple(
                ScoreLine(id=int(line["id"]), score=int(line["score"]), eliminated=bool(line["eliminated"]))
                for line in payload["scores"]
            ),
        )
    return NewRoundRecord(round_number=int(payload["roundNumber"]), dealer=int(payload["dealer"]))


def player_to_payload(player: Player) -> Dict[str, Any]:
    return {
        "id": player.id,
        "name": player.name,
        "type": player.type.value,
        "hand": cards_to_labels(player.hand),
        "score": player.score,
        "isEliminated": player.is_eliminated,
        "hasPassed": player.has_passed,
        "lastPlay": combination_to_payload(player.last_play),
    }


def player_from_payload(payload: Dict[str, Any]) -> Player:
    return Player(
        id=int(payload["id"]),
        name=str(payload["name"]),
        type=PlayerType(payload["type"]),
        hand=tuple(sorted(parse_cards(payload.get("hand", [])))),
        score=int(payload.get("score", 0)),
        is_eliminated=bool(payload.get("isEliminated", False)),
        has_passed=bool(payload.get("hasPassed", False)),
        last_play=combination_from_payload(payload.get("lastPlay")),
    )


def state_to_payload(state: GameState) -> Dict[str, Any]:
    return {
        "players": [player_to_payload(player) for player in state.players],
        "currentPlayerIndex": state.current_player_index,
        "dealerIndex": state.dealer_index,
        "currentPlay": combination_to_payload(state.current_play),
        "lastPlayedBy": state.last_played_by,
        "roundNumber": state.round_number,
        "phase": state.phase.value,
        "passCount": state.pass_count,
        "moveHistory": [move_to_payload(record) for record in state.move_history],
        "roundWinner": state.round_winner,
        "version": state.version,
    }


def state_from_payload(payload: Dict[str, Any]) -> GameState:
    players: List[Player] = [player_from_payload(item) for item in payload["players"]]
    return GameState(
        players=tuple(players),
        current_player_index=int(payload["currentPlayerIndex"]),
        dealer_index=int(payload["dealerIndex"]),
        current_play=combination_from_payload(payload.get("currentPlay")),
        last_played_by=payload.get("lastPlayedBy"),
        round_number=int(payload.get("roundNumber", 1)),
        phase=Phase(payload.get("phase", Phase.PLAYING.value)),
        pass_count=int(payload.get("passCount", 0)),
        move_history=tuple(move_from_payload(item) for item in payload.get("moveHistory", [])),
        round_winner=payload.get("roundWinner"),
        version=int(payload.get("version", 0)),
    )
