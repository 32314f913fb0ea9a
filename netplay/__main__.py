import argparse
import asyncio
import contextlib
import logging
from typing import List, Optional

from relay.protocol import MessageType, message_type
from thirteen.cards import Card
from thirteen.models import TableConfig

from .client import RelayClient, RelayError
from .host import HostSession, IntentStatus
from .replica import ReplicaSession
from .terminal import TerminalTable, format_lobbies

LOGGER = logging.getLogger("netplay")


async def _chat(client: RelayClient, text: str) -> None:
    await client.send(MessageType.SEND_CHAT.value, {"message": text})


def _describe_room(message) -> Optional[str]:
    kind = message_type(message)
    if kind == MessageType.RECEIVE_CHAT:
        return f"<{message.get('from')}> {message.get('message')}"
    if kind == MessageType.PLAYER_JOINED:
        return f"{message.get('name')} joined ({', '.join(message.get('players', []))})"
    if kind == MessageType.PLAYER_LEFT:
        return f"{message.get('name')} left"
    if kind == MessageType.ERROR_MESSAGE:
        return f"Relay error {message.get('code')}: {message.get('msg')}"
    return None


async def run_host(args: argparse.Namespace) -> None:
    client = RelayClient(args.url)
    member_id = await client.connect()
    lobby_name = args.lobby_name or f"{args.name}'s table"
    lobby_id = await client.create_lobby(lobby_name, args.name, is_private=args.private)
    print(f"Lobby {lobby_id} is open. Share the id, then press Enter to deal.")

    table: Optional[TerminalTable] = None

    def on_state(state) -> None:
        if table is not None:
            table.show(state, session.host_seat)

    config = TableConfig(ai_turn_delay_ms=args.ai_delay_ms, round_end_delay_ms=args.round_delay_ms)
    session = HostSession(
        client.send,
        host_member_id=member_id,
        host_name=args.name,
        config=config,
        host_plays=not args.dealer_only,
        on_state=on_state,
    )

    async def host_play(cards: List[Card]) -> Optional[str]:
        status = await session.play_local(tuple(cards))
        if status == IntentStatus.REJECTED:
            return session.last_rejection
        return "Not your turn" if status == IntentStatus.DROPPED else None

    async def host_pass() -> Optional[str]:
        status = await session.pass_local()
        return "Not your turn" if status == IntentStatus.DROPPED else None

    table = TerminalTable(host_play, host_pass, chat=lambda text: _chat(client, text))

    async def pump() -> None:
        async for message in client.messages():
            note = _describe_room(message)
            if note:
                table.notify(note)
            await session.handle_message(message)

    reader = asyncio.create_task(pump())
    try:
        await asyncio.to_thread(input)
        await session.start_game(args.seed)
        await table.run()
    finally:
        reader.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await reader
        await session.close()
        await client.close()


async def run_join(args: argparse.Namespace) -> None:
    client = RelayClient(args.url)
    member_id = await client.connect()
    joined = await client.join_lobby(args.lobby_id, args.name)
    print(f"Joined {joined.get('lobbyName')} ({joined.get('lobbyId')}). Waiting for the host to deal.")

    replica = ReplicaSession(client.send, member_id=member_id)
    table = TerminalTable(replica.request_play, replica.request_pass, chat=lambda text: _chat(client, text))

    async def pump() -> None:
        async for message in client.messages():
            note = _describe_room(message)
            if note:
                table.notify(note)
            seat = replica.seat
            if await replica.handle_message(message):
                assert replica.state is not None
                table.show(replica.state, replica.seat)
            elif message_type(message) == MessageType.MOVE_REJECTED:
                table.retry(str(message.get("reason")))
            elif replica.seat != seat:
                table.notify(f"You hold seat {replica.seat}." if replica.seat is not None else "You are watching.")

    reader = asyncio.create_task(pump())
    try:
        await table.run()
    finally:
        reader.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await reader
        await client.close()


async def run_list(args: argparse.Namespace) -> None:
    client = RelayClient(args.url)
    await client.connect()
    try:
        print(format_lobbies(await client.list_lobbies()))
        if not args.watch:
            return
        async for message in client.messages():
            kind = message_type(message)
            if kind == MessageType.PUBLIC_LOBBIES_UPDATE_TRIGGER:
                await client.send(MessageType.GET_PUBLIC_LOBBIES.value)
            elif kind == MessageType.PUBLIC_LOBBIES_UPDATE:
                print(format_lobbies(message.get("lobbies") or []))
    finally:
        await client.close()


def main() -> None:
    parser = argparse.ArgumentParser(description="Play 13 over a lobby relay")
    parser.add_argument("--url", default="ws://127.0.0.1:8765")
    parser.add_argument("--name", default="Player")
    parser.add_argument("--log-level", default="WARNING")
    sub = parser.add_subparsers(dest="command", required=True)

    host = sub.add_parser("host", help="Open a lobby and run the authoritative game")
    host.add_argument("--lobby-name", default=None)
    host.add_argument("--private", action="store_true", help="Hide the lobby from the public list")
    host.add_argument("--seed", type=int, default=None)
    host.add_argument("--ai-delay-ms", type=int, default=1000)
    host.add_argument("--round-delay-ms", type=int, default=2000)
    host.add_argument("--dealer-only", action="store_true", help="Do not take a seat; deal for guests and computers")

    join = sub.add_parser("join", help="Join an existing lobby")
    join.add_argument("lobby_id")

    listing = sub.add_parser("list", help="Show public lobbies")
    listing.add_argument("--watch", action="store_true", help="Keep printing the list whenever it changes")

    args = parser.parse_args()
    logging.basicConfig(level=getattr(logging, args.log_level.upper(), logging.WARNING))

    runner = {"host": run_host, "join": run_join, "list": run_list}[args.command]
    try:
        asyncio.run(runner(args))
    except RelayError as exc:
        LOGGER.error("Relay refused the request: %s (%s)", exc.msg, exc.code)
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    main()
