"""Networked play: the authoritative host, guest replicas and the relay client."""

from .host import HostSession, IntentStatus, MoveIntent, SeatKind, SeatOccupant
from .replica import ReplicaSession

__all__ = ["HostSession", "IntentStatus", "MoveIntent", "ReplicaSession", "SeatKind", "SeatOccupant"]
