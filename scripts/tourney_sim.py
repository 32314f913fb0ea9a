#!/usr/bin/env python3
"""Play a series of computer-only games through a real relay.

The relay runs in-process. For every game a dealer-only host opens a private
lobby, a few computer guests join it over WebSockets and play through the
replica protocol, and the remaining seats are driven by the host's own bots.

Example:
    python scripts/tourney_sim.py --games 5 --guests 2
"""

from __future__ import annotations

import argparse
import asyncio
import contextlib
import logging
import random
from collections import Counter
from typing import Optional

from netplay.client import RelayClient
from netplay.host import HostSession, SeatKind
from netplay.replica import ReplicaSession
from practice.bots import make_ai_decision
from relay.protocol import MessageType, message_type
from relay.server import RelayServer
from thirteen.game import get_winner
from thirteen.models import ActionKind, GameState, Phase, TableConfig

LOGGER = logging.getLogger("tourney_sim")


async def _guest_move(replica: ReplicaSession, rng: random.Random) -> None:
    state = replica.state
    assert state is not None and replica.seat is not None
    decision = make_ai_decision(state.players[replica.seat], state.current_play, state, rng)
    if decision.action == ActionKind.PLAY:
        problem = await replica.request_play(decision.cards)
        if problem is None:
            return
        LOGGER.warning("Guest seat %s: local check refused play (%s)", replica.seat, problem)
    await replica.request_pass()


async def run_guest(url: str, lobby_id: str, name: str, rng: random.Random) -> None:
    """Join a lobby and play computer moves until the game ends."""

    client = RelayClient(url)
    member_id = await client.connect()
    await client.join_lobby(lobby_id, name)
    replica = ReplicaSession(client.send, member_id=member_id)
    try:
        async for message in client.messages():
            if message_type(message) == MessageType.MOVE_REJECTED:
                await replica.request_pass()
                continue
            if not await replica.handle_message(message):
                continue
            assert replica.state is not None
            if replica.state.phase == Phase.GAME_OVER:
                break
            if replica.is_my_turn:
                await _guest_move(replica, rng)
    finally:
        await client.close()


async def play_game(url: str, game_no: int, guests: int, seed: int, timeout: float) -> Optional[GameState]:
    client = RelayClient(url)
    member_id = await client.connect()
    lobby_id = await client.create_lobby(f"sim-{game_no}", "Dealer", is_private=True)

    finished = asyncio.Event()

    def on_state(state: GameState) -> None:
        if state.phase == Phase.GAME_OVER:
            finished.set()

    session = HostSession(
        client.send,
        host_member_id=member_id,
        host_name="Dealer",
        config=TableConfig(ai_turn_delay_ms=0, round_end_delay_ms=0),
        host_plays=False,
        rng=random.Random(seed),
        on_state=on_state,
    )

    async def pump() -> None:
        async for message in client.messages():
            await session.handle_message(message)

    reader = asyncio.create_task(pump())
    guest_tasks = [
        asyncio.create_task(run_guest(url, lobby_id, f"Guest {idx + 1}", random.Random(seed * 31 + idx)))
        for idx in range(guests)
    ]
    try:
        async def seated() -> None:
            while sum(1 for occ in session.roster if occ.kind == SeatKind.REMOTE) < guests:
                await asyncio.sleep(0.05)

        await asyncio.wait_for(seated(), timeout=timeout)
        await session.start_game(seed)
        await asyncio.wait_for(finished.wait(), timeout=timeout)
        return session.state
    except asyncio.TimeoutError:
        LOGGER.warning("Game %s timed out", game_no)
        for task in guest_tasks:
            task.cancel()
        return None
    finally:
        await asyncio.gather(*guest_tasks, return_exceptions=True)
        reader.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await reader
        await session.close()
        await client.close()


async def run_simulation(args: argparse.Namespace) -> None:
    relay = RelayServer()
    server_task = asyncio.create_task(relay.start(args.host, args.port))
    await asyncio.sleep(0.5)  # give the socket time to bind

    url = f"ws://{args.host}:{args.port}"
    wins: Counter = Counter()
    try:
        for game_no in range(1, args.games + 1):
            state = await play_game(url, game_no, args.guests, args.seed + game_no, args.timeout)
            if state is None:
                continue
            winner = get_winner(state)
            name = winner.name if winner else "nobody"
            wins[name] += 1
            LOGGER.info("Game %s won by %s after %s rounds", game_no, name, state.round_number)
    finally:
        server_task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await server_task

    for name, count in wins.most_common():
        print(f"{name:<10} {count}")


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Run computer-only 13 games through a local relay")
    parser.add_argument("--host", default="127.0.0.1")
    parser.add_argument("--port", type=int, default=9001)
    parser.add_argument("--games", type=int, default=3)
    parser.add_argument("--guests", type=int, default=2, choices=range(0, 4), help="Computer guests joining over the relay")
    parser.add_argument("--timeout", type=float, default=60.0, help="max seconds per game")
    parser.add_argument("--seed", type=int, default=42)
    parser.add_argument("--log-level", default="INFO")
    return parser.parse_args()


def main() -> None:
    args = parse_args()
    logging.basicConfig(level=getattr(logging, args.log_level.upper(), logging.INFO))
    try:
        asyncio.run(run_simulation(args))
    except KeyboardInterrupt:
        LOGGER.info("Simulation interrupted; shutting down")


if __name__ == "__main__":
    main()
