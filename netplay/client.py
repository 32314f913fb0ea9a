from __future__ import annotations

import asyncio
import logging
from typing import Any, AsyncIterator, Dict, List, Optional

import websockets
from websockets import WebSocketClientProtocol

from relay.protocol import MessageType, decode, envelope, message_type

LOGGER = logging.getLogger("netplay_client")


class RelayError(Exception):
    def __init__(self, code: str, msg: str) -> None:
        super().__init__(msg)
        self.code = code
        self.msg = msg


class RelayClient:
    """Thin wrapper over one relay connection."""

    def __init__(self, url: str) -> None:
        self.url = url
        self.websocket: Optional[WebSocketClientProtocol] = None
        self.member_id: Optional[str] = None

    async def connect(self, timeout: float = 5.0) -> str:
        self.websocket = await websockets.connect(self.url)
        hello = await asyncio.wait_for(self.recv(), timeout=timeout)
        if message_type(hello) != MessageType.HELLO:
            raise RelayError("BAD_HELLO", f"Expected hello, got {hello.get('type')!r}")
        self.member_id = hello.get("memberId")
        LOGGER.info("Connected to %s as %s", self.url, self.member_id)
        return self.member_id

    async def send(self, msg_type: str, payload: Optional[Dict[str, Any]] = None) -> None:
        assert self.websocket is not None
        await self.websocket.send(envelope(msg_type, payload))

    async def recv(self) -> Dict[str, Any]:
        assert self.websocket is not None
        return decode(await self.websocket.recv())

    async def messages(self) -> AsyncIterator[Dict[str, Any]]:
        assert self.websocket is not None
        try:
            async for raw in self.websocket:
                yield decode(raw)
        except websockets.ConnectionClosed:
            return

    async def wait_for(self, *types: MessageType) -> Dict[str, Any]:
        """Read until one of ``types`` arrives; relay errors are raised."""
        while True:
            message = await self.recv()
            kind = message_type(message)
            if kind == MessageType.ERROR_MESSAGE:
                raise RelayError(str(message.get("code")), str(message.get("msg")))
            if kind in types:
                return message

    async def create_lobby(self, lobby_name: str, player_name: str, is_private: bool = False) -> str:
        await self.send(
            MessageType.CREATE_LOBBY.value,
            {"lobbyName": lobby_name, "playerName": player_name, "isPrivate": is_private},
        )
        joined = await self.wait_for(MessageType.LOBBY_JOINED)
        return str(joined["lobbyId"])

    async def join_lobby(self, lobby_id: str, player_name: str) -> Dict[str, Any]:
        await self.send(MessageType.JOIN_LOBBY.value, {"lobbyId": lobby_id, "playerName": player_name})
        return await self.wait_for(MessageType.LOBBY_JOINED)

    async def list_lobbies(self) -> List[Dict[str, Any]]:
        await self.send(MessageType.GET_PUBLIC_LOBBIES.value)
        update = await self.wait_for(MessageType.PUBLIC_LOBBIES_UPDATE)
        return list(update.get("lobbies") or [])

    async def close(self) -> None:
        if self.websocket is not None:
            await self.websocket.close()
