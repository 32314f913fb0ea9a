from __future__ import annotations

import logging
import random
import string
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

LOGGER = logging.getLogger("relay")

MAX_PLAYERS = 4
LOBBY_ID_LENGTH = 6
PUBLIC_PREFIX = "PUB-"
_ID_ALPHABET = string.ascii_uppercase + string.digits


class LobbyError(Exception):
    def __init__(self, code: str, msg: str) -> None:
        super().__init__(msg)
        self.code = code
        self.msg = msg


@dataclass
class Member:
    member_id: str
    name: str
    connected: bool = True
    is_host: bool = False


@dataclass
class Lobby:
    lobby_id: str
    name: str
    is_private: bool
    host_id: str
    members: Dict[str, Member] = field(default_factory=dict)
    # Last state message from the host, replayed to late joiners.
    game_state: Optional[Dict[str, Any]] = None
    max_players: int = MAX_PLAYERS

    @property
    def host(self) -> Member:
        return self.members[self.host_id]

    def connected_members(self) -> List[Member]:
        return [member for member in self.members.values() if member.connected]

    def member_named(self, name: str) -> Optional[Member]:
        wanted = name.casefold()
        for member in self.members.values():
            if member.name.casefold() == wanted:
                return member
        return None

    def player_names(self) -> List[str]:
        return [member.name for member in self.connected_members()]

    def summary(self) -> Dict[str, Any]:
        return {
            "id": self.lobby_id,
            "name": self.name,
            "host": self.host.name,
            "current": len(self.connected_members()),
            "max": self.max_players,
        }


class LobbyRegistry:
    """All open lobbies of one relay process."""

    def __init__(self, rng: Optional[random.Random] = None, max_players: int = MAX_PLAYERS) -> None:
        self.rng = rng or random.Random()
        self.max_players = max_players
        self.lobbies: Dict[str, Lobby] = {}
        self.member_lobby: Dict[str, str] = {}

    def _new_lobby_id(self, is_private: bool) -> str:
        while True:
            code = "".join(self.rng.choice(_ID_ALPHABET) for _ in range(LOBBY_ID_LENGTH))
            lobby_id = code if is_private else PUBLIC_PREFIX + code
            if lobby_id not in self.lobbies:
                return lobby_id

    def create(self, lobby_name: str, player_name: str, member_id: str, is_private: bool = False) -> Lobby:
        if member_id in self.member_lobby:
            raise LobbyError("ALREADY_JOINED", "Already in a lobby")
        player_name = player_name.strip() or "Host"
        lobby_id = self._new_lobby_id(is_private)
        lobby = Lobby(
            lobby_id=lobby_id,
            name=lobby_name.strip() or f"{player_name}'s game",
            is_private=is_private,
            host_id=member_id,
            max_players=self.max_players,
        )
        lobby.members[member_id] = Member(member_id=member_id, name=player_name, is_host=True)
        self.lobbies[lobby_id] = lobby
        self.member_lobby[member_id] = lobby_id
        LOGGER.info("Lobby %s (%s) created by %s", lobby_id, lobby.name, player_name)
        return lobby

    def join(self, lobby_id: str, player_name: str, member_id: str) -> Tuple[Lobby, Member, bool]:
        """Seat ``member_id`` in the lobby; the flag is True for a rejoin."""
        lobby = self.lobbies.get(lobby_id.strip().upper())
        if lobby is None:
            raise LobbyError("LOBBY_NOT_FOUND", "Lobby not found")
        current = lobby.members.get(member_id)
        if current is not None and current.connected:
            raise LobbyError("ALREADY_JOINED", "Already in this lobby")
        if member_id in self.member_lobby:
            raise LobbyError("ALREADY_JOINED", "Already in a lobby")
        player_name = player_name.strip() or "Player"

        previous = lobby.member_named(player_name)
        if previous is not None:
            if previous.connected:
                raise LobbyError("NAME_TAKEN", "Name already in use")
            member = self._rebind(lobby, previous, member_id)
            LOGGER.info("%s rejoined lobby %s", member.name, lobby.lobby_id)
            return lobby, member, True

        if len(lobby.connected_members()) >= lobby.max_players:
            raise LobbyError("LOBBY_FULL", "Lobby is full")
        if len(lobby.members) >= lobby.max_players:
            # Make room by forgetting a departed guest; a departed host keeps its slot.
            stale = next((m for m in lobby.members.values() if not m.connected and not m.is_host), None)
            if stale is not None:
                del lobby.members[stale.member_id]

        member = Member(member_id=member_id, name=player_name)
        lobby.members[member_id] = member
        self.member_lobby[member_id] = lobby.lobby_id
        LOGGER.info("%s joined lobby %s", player_name, lobby.lobby_id)
        return lobby, member, False

    def _rebind(self, lobby: Lobby, previous: Member, member_id: str) -> Member:
        del lobby.members[previous.member_id]
        member = Member(member_id=member_id, name=previous.name, is_host=previous.is_host)
        lobby.members[member_id] = member
        if previous.is_host:
            lobby.host_id = member_id
        self.member_lobby[member_id] = lobby.lobby_id
        return member

    def leave(self, member_id: str) -> Optional[Tuple[Lobby, Member]]:
        lobby_id = self.member_lobby.pop(member_id, None)
        if lobby_id is None:
            return None
        lobby = self.lobbies.get(lobby_id)
        if lobby is None:
            return None
        member = lobby.members[member_id]
        member.connected = False
        LOGGER.info("%s left lobby %s", member.name, lobby_id)
        if not lobby.connected_members():
            del self.lobbies[lobby_id]
            LOGGER.info("Lobby %s closed", lobby_id)
        return lobby, member

    def get(self, lobby_id: str) -> Optional[Lobby]:
        return self.lobbies.get(lobby_id)

    def lobby_for(self, member_id: str) -> Optional[Lobby]:
        lobby_id = self.member_lobby.get(member_id)
        return self.lobbies.get(lobby_id) if lobby_id else None

    def public_summaries(self) -> List[Dict[str, Any]]:
        return [lobby.summary() for lobby in self.lobbies.values() if not lobby.is_private]
