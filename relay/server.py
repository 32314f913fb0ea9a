from __future__ import annotations

import asyncio
import logging
import uuid
from dataclasses import dataclass
from http import HTTPStatus
from typing import Any, Awaitable, Callable, Dict, Iterable, Optional

import websockets
from websockets.server import WebSocketServerProtocol

from .lobby import Lobby, LobbyError, LobbyRegistry
from .protocol import STATE_MESSAGES, MessageType, decode, envelope, message_type

LOGGER = logging.getLogger("relay")

# RelayServer only moves messages between lobby members. It never looks inside
# game state; the hosting client is the single authority for the rules.

_ENVELOPE_KEYS = {"type", "v", "ts"}


@dataclass
class Connection:
    member_id: str
    websocket: WebSocketServerProtocol


Handler = Callable[[Connection, Dict[str, Any]], Awaitable[None]]


def _payload(message: Dict[str, Any]) -> Dict[str, Any]:
    return {key: value for key, value in message.items() if key not in _ENVELOPE_KEYS}


class RelayServer:
    def __init__(self, registry: Optional[LobbyRegistry] = None) -> None:
        self.registry = registry or LobbyRegistry()
        self.connections: Dict[str, Connection] = {}
        self.lock = asyncio.Lock()
        self.handlers: Dict[MessageType, Handler] = {
            MessageType.GET_PUBLIC_LOBBIES: self._handle_get_public_lobbies,
            MessageType.CREATE_LOBBY: self._handle_create_lobby,
            MessageType.JOIN_LOBBY: self._handle_join_lobby,
            MessageType.SEND_INITIAL_STATE: self._handle_state,
            MessageType.SYNC_GAME_STATE: self._handle_state,
            MessageType.SYNC_SEATS: self._handle_seats,
            MessageType.REQUEST_MOVE: self._handle_request_move,
            MessageType.MOVE_REJECTED: self._handle_move_rejected,
            MessageType.SEND_CHAT: self._handle_chat,
        }

    async def start(self, host: str = "0.0.0.0", port: int = 8765) -> None:
        async with websockets.serve(self._handle_connection, host, port, process_request=_process_request):
            LOGGER.info("Relay listening on %s:%s", host, port)
            await asyncio.Future()

    async def register(self, websocket: WebSocketServerProtocol) -> Connection:
        connection = Connection(member_id=uuid.uuid4().hex[:12], websocket=websocket)
        self.connections[connection.member_id] = connection
        await self._send_json(websocket, MessageType.HELLO, {"memberId": connection.member_id})
        return connection

    async def _handle_connection(self, websocket: WebSocketServerProtocol) -> None:
        connection = await self.register(websocket)
        LOGGER.info("Member %s connected", connection.member_id)
        try:
            async for raw in websocket:
                await self.handle_message(connection, decode(raw))
        except websockets.ConnectionClosed:
            pass
        finally:
            await self.disconnect(connection)
        LOGGER.info("Member %s disconnected", connection.member_id)

    async def handle_message(self, connection: Connection, message: Dict[str, Any]) -> None:
        handler = self.handlers.get(message_type(message))
        if handler is None:
            await self._send_error(connection.websocket, code="UNKNOWN_TYPE", msg="Unsupported message type")
            return
        try:
            await handler(connection, message)
        except LobbyError as exc:
            await self._send_error(connection.websocket, code=exc.code, msg=exc.msg)

    async def disconnect(self, connection: Connection) -> None:
        self.connections.pop(connection.member_id, None)
        async with self.lock:
            left = self.registry.leave(connection.member_id)
        if left is None:
            return
        lobby, member = left
        if self.registry.get(lobby.lobby_id) is lobby:
            await self._send_to_lobby(
                lobby,
                MessageType.PLAYER_LEFT,
                {"memberId": member.member_id, "name": member.name, "players": lobby.player_names()},
            )
        if not lobby.is_private:
            await self._broadcast_lobby_trigger()

    # ------------------------------------------------------------------
    # Lobby messages

    async def _handle_get_public_lobbies(self, connection: Connection, message: Dict[str, Any]) -> None:
        async with self.lock:
            summaries = self.registry.public_summaries()
        await self._send_json(connection.websocket, MessageType.PUBLIC_LOBBIES_UPDATE, {"lobbies": summaries})

    async def _handle_create_lobby(self, connection: Connection, message: Dict[str, Any]) -> None:
        async with self.lock:
            lobby = self.registry.create(
                str(message.get("lobbyName") or ""),
                str(message.get("playerName") or ""),
                connection.member_id,
                is_private=bool(message.get("isPrivate")),
            )
        await self._send_json(
            connection.websocket,
            MessageType.LOBBY_JOINED,
            {
                "lobbyId": lobby.lobby_id,
                "lobbyName": lobby.name,
                "isHost": True,
                "players": lobby.player_names(),
            },
        )
        if not lobby.is_private:
            await self._broadcast_lobby_trigger()

    async def _handle_join_lobby(self, connection: Connection, message: Dict[str, Any]) -> None:
        lobby_id = message.get("lobbyId")
        if not isinstance(lobby_id, str) or not lobby_id.strip():
            raise LobbyError("BAD_SCHEMA", "lobbyId required")
        async with self.lock:
            lobby, member, rejoined = self.registry.join(
                lobby_id, str(message.get("playerName") or ""), connection.member_id
            )
            cached = dict(lobby.game_state) if lobby.game_state else None

        await self._send_json(
            connection.websocket,
            MessageType.LOBBY_JOINED,
            {
                "lobbyId": lobby.lobby_id,
                "lobbyName": lobby.name,
                "isHost": member.is_host,
                "players": lobby.player_names(),
                "rejoined": rejoined,
            },
        )
        await self._send_to_lobby(
            lobby,
            MessageType.PLAYER_JOINED,
            {
                "memberId": member.member_id,
                "name": member.name,
                "players": lobby.player_names(),
                "rejoined": rejoined,
            },
        )
        if cached is not None:
            msg_type = cached.pop("type")
            await self._send_json(connection.websocket, msg_type, cached)
        if not lobby.is_private:
            await self._broadcast_lobby_trigger()

    # ------------------------------------------------------------------
    # Game traffic

    def _require_lobby(self, connection: Connection) -> Lobby:
        lobby = self.registry.lobby_for(connection.member_id)
        if lobby is None:
            raise LobbyError("NOT_IN_LOBBY", "Join a lobby first")
        return lobby

    async def _handle_state(self, connection: Connection, message: Dict[str, Any]) -> None:
        kind = message_type(message)
        assert kind in STATE_MESSAGES
        async with self.lock:
            lobby = self._require_lobby(connection)
            if lobby.host_id != connection.member_id:
                raise LobbyError("NOT_HOST", "Only the host can publish game state")
            payload = _payload(message)
            lobby.game_state = {"type": kind.value, **payload}
        await self._send_to_lobby(lobby, kind, payload, exclude=connection.member_id)

    async def _handle_seats(self, connection: Connection, message: Dict[str, Any]) -> None:
        async with self.lock:
            lobby = self._require_lobby(connection)
            if lobby.host_id != connection.member_id:
                raise LobbyError("NOT_HOST", "Only the host can assign seats")
        await self._send_to_lobby(lobby, MessageType.SYNC_SEATS, _payload(message), exclude=connection.member_id)

    async def _handle_request_move(self, connection: Connection, message: Dict[str, Any]) -> None:
        async with self.lock:
            lobby = self._require_lobby(connection)
            host = lobby.host
            target = self.connections.get(host.member_id) if host.connected else None
        if target is None:
            raise LobbyError("HOST_UNAVAILABLE", "Host is not connected")
        payload = {**_payload(message), "from": connection.member_id}
        await self._send_json(target.websocket, MessageType.REQUEST_MOVE, payload)

    async def _handle_move_rejected(self, connection: Connection, message: Dict[str, Any]) -> None:
        async with self.lock:
            lobby = self._require_lobby(connection)
            if lobby.host_id != connection.member_id:
                raise LobbyError("NOT_HOST", "Only the host can reject moves")
            recipient = message.get("to")
            member = lobby.members.get(recipient) if isinstance(recipient, str) else None
            target = self.connections.get(member.member_id) if member and member.connected else None
        if target is None:
            LOGGER.debug("Dropping move_rejected for absent member %s", recipient)
            return
        await self._send_json(target.websocket, MessageType.MOVE_REJECTED, _payload(message))

    async def _handle_chat(self, connection: Connection, message: Dict[str, Any]) -> None:
        text = message.get("message")
        if not isinstance(text, str) or not text.strip():
            raise LobbyError("BAD_SCHEMA", "message required")
        async with self.lock:
            lobby = self._require_lobby(connection)
            sender = lobby.members[connection.member_id].name
        await self._send_to_lobby(
            lobby,
            MessageType.RECEIVE_CHAT,
            {"from": sender, "memberId": connection.member_id, "message": text.strip()},
        )

    # ------------------------------------------------------------------
    # Sending

    async def _send_to_lobby(
        self,
        lobby: Lobby,
        msg_type: MessageType,
        payload: Dict[str, Any],
        exclude: Optional[str] = None,
    ) -> None:
        async with self.lock:
            targets = [
                self.connections[member.member_id].websocket
                for member in lobby.connected_members()
                if member.member_id != exclude and member.member_id in self.connections
            ]
        await self._send_many(targets, msg_type, payload)

    async def _broadcast_lobby_trigger(self) -> None:
        targets = [connection.websocket for connection in self.connections.values()]
        await self._send_many(targets, MessageType.PUBLIC_LOBBIES_UPDATE_TRIGGER, {})

    async def _send_many(
        self,
        targets: Iterable[WebSocketServerProtocol],
        msg_type: MessageType,
        payload: Dict[str, Any],
    ) -> None:
        targets = list(targets)
        if not targets:
            return
        message = envelope(msg_type, payload)
        await asyncio.gather(*(socket.send(message) for socket in targets), return_exceptions=True)

    async def _send_json(self, websocket: WebSocketServerProtocol, msg_type: Any, payload: Dict[str, Any]) -> None:
        try:
            await websocket.send(envelope(msg_type, payload))
        except websockets.ConnectionClosed:
            pass

    async def _send_error(self, websocket: WebSocketServerProtocol, code: str, msg: str) -> None:
        await self._send_json(websocket, MessageType.ERROR_MESSAGE, {"code": code, "msg": msg})


async def _process_request(path, request_headers):
    """Return a simple HTTP response for health checks."""

    upgrade_header = request_headers.get("Upgrade", "").lower()
    if upgrade_header == "websocket":
        return None

    if path in {"/", "/health", "/healthz"}:
        body = b"relay running\n"
        status = HTTPStatus.OK
    else:
        body = b"not found\n"
        status = HTTPStatus.NOT_FOUND
    headers = [
        ("Content-Type", "text/plain; charset=utf-8"),
        ("Content-Length", str(len(body))),
    ]
    return status, headers, body
