from __future__ import annotations

import json
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional

PROTOCOL_VERSION = 1


class MessageType(str, Enum):
    # client -> relay
    GET_PUBLIC_LOBBIES = "get_public_lobbies"
    CREATE_LOBBY = "create_lobby"
    JOIN_LOBBY = "join_lobby"
    SEND_INITIAL_STATE = "send_initial_state"
    SYNC_GAME_STATE = "sync_game_state"
    SYNC_SEATS = "sync_seats"
    REQUEST_MOVE = "request_move"
    MOVE_REJECTED = "move_rejected"
    SEND_CHAT = "send_chat"
    # relay -> client
    HELLO = "hello"
    PUBLIC_LOBBIES_UPDATE = "public_lobbies_update"
    PUBLIC_LOBBIES_UPDATE_TRIGGER = "public_lobbies_update_trigger"
    LOBBY_JOINED = "lobby_joined"
    PLAYER_JOINED = "player_joined"
    PLAYER_LEFT = "player_left"
    RECEIVE_CHAT = "receive_chat"
    ERROR_MESSAGE = "error_message"


STATE_MESSAGES = frozenset({MessageType.SEND_INITIAL_STATE, MessageType.SYNC_GAME_STATE})


def envelope(msg_type: str, payload: Optional[Dict[str, Any]] = None) -> str:
    body: Dict[str, Any] = {
        "type": msg_type.value if isinstance(msg_type, MessageType) else msg_type,
        "v": PROTOCOL_VERSION,
        "ts": datetime.now(timezone.utc).isoformat(),
    }
    body.update(payload or {})
    return json.dumps(body)


def decode(raw: Any) -> Dict[str, Any]:
    """Parse one frame; anything that is not a JSON object becomes ``{}``."""
    try:
        message = json.loads(raw)
    except (TypeError, ValueError):
        return {}
    return message if isinstance(message, dict) else {}


def message_type(message: Dict[str, Any]) -> Optional[MessageType]:
    try:
        return MessageType(message.get("type"))
    except ValueError:
        return None
