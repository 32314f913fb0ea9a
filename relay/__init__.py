"""Lobby relay: forwards messages between the host and guests of each game."""

from .lobby import Lobby, LobbyError, LobbyRegistry, Member
from .server import RelayServer

__all__ = ["Lobby", "LobbyError", "LobbyRegistry", "Member", "RelayServer"]
