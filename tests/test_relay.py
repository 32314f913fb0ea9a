import asyncio
import random

import pytest
from websockets.datastructures import Headers

from relay.lobby import PUBLIC_PREFIX, LobbyError, LobbyRegistry
from relay.protocol import decode, envelope, message_type
from relay.server import RelayServer, _process_request

from .helpers import DummyWebSocket


def make_server(max_players=4):
    return RelayServer(LobbyRegistry(rng=random.Random(7), max_players=max_players))


async def connect(server):
    socket = DummyWebSocket()
    connection = await server.register(socket)
    return connection, socket


async def open_lobby(server, name="Ann", private=False):
    connection, socket = await connect(server)
    await server.handle_message(
        connection, {"type": "create_lobby", "lobbyName": "Friday", "playerName": name, "isPrivate": private}
    )
    lobby_id = socket.messages("lobby_joined")[-1]["lobbyId"]
    return connection, socket, lobby_id


async def join(server, lobby_id, name):
    connection, socket = await connect(server)
    await server.handle_message(connection, {"type": "join_lobby", "lobbyId": lobby_id, "playerName": name})
    return connection, socket


def error_codes(socket):
    return [message["code"] for message in socket.messages("error_message")]


def test_envelope_and_decode():
    message = decode(envelope("sync_game_state", {"state": {}}))
    assert message["type"] == "sync_game_state"
    assert message["v"] == 1
    assert "ts" in message
    assert decode("not json") == {}
    assert decode("[1, 2]") == {}
    assert message_type({"type": "bogus"}) is None


def test_register_says_hello():
    async def scenario():
        server = make_server()
        connection, socket = await connect(server)
        return connection, socket

    connection, socket = asyncio.run(scenario())
    assert socket.messages("hello")[0]["memberId"] == connection.member_id
    assert len(connection.member_id) == 12


def test_public_and_private_lobby_ids():
    async def scenario():
        server = make_server()
        _, public_socket, public_id = await open_lobby(server, "Ann")
        _, _, private_id = await open_lobby(server, "Bea", private=True)
        watcher, watcher_socket = await connect(server)
        await server.handle_message(watcher, {"type": "get_public_lobbies"})
        return public_socket, public_id, private_id, watcher_socket

    public_socket, public_id, private_id, watcher_socket = asyncio.run(scenario())
    assert public_id.startswith(PUBLIC_PREFIX)
    assert len(public_id) == len(PUBLIC_PREFIX) + 6
    assert not private_id.startswith(PUBLIC_PREFIX)
    assert len(private_id) == 6
    joined = public_socket.messages("lobby_joined")[0]
    assert joined["isHost"] is True
    assert joined["players"] == ["Ann"]
    assert public_socket.messages("public_lobbies_update_trigger")
    lobbies = watcher_socket.messages("public_lobbies_update")[0]["lobbies"]
    assert [lobby["id"] for lobby in lobbies] == [public_id]
    assert lobbies[0]["current"] == 1
    assert lobbies[0]["max"] == 4


def test_join_announces_new_member_to_the_room():
    async def scenario():
        server = make_server()
        _, host_socket, lobby_id = await open_lobby(server)
        guest, guest_socket = await join(server, lobby_id.lower(), "Bea")
        return host_socket, guest, guest_socket

    host_socket, guest, guest_socket = asyncio.run(scenario())
    announced = host_socket.messages("player_joined")[0]
    assert announced["memberId"] == guest.member_id
    assert announced["name"] == "Bea"
    assert announced["players"] == ["Ann", "Bea"]
    assert announced["rejoined"] is False
    joined = guest_socket.messages("lobby_joined")[0]
    assert joined["isHost"] is False
    assert joined["lobbyName"] == "Friday"


def test_host_state_is_forwarded_cached_and_replayed():
    async def scenario():
        server = make_server()
        host, host_socket, lobby_id = await open_lobby(server)
        guest, guest_socket = await join(server, lobby_id, "Bea")
        await server.handle_message(host, {"type": "send_initial_state", "state": {"version": 1}, "seats": []})
        await server.handle_message(host, {"type": "sync_game_state", "state": {"version": 2}, "seats": []})
        late, late_socket = await join(server, lobby_id, "Cal")
        await server.handle_message(guest, {"type": "sync_game_state", "state": {"version": 99}})
        return host_socket, guest_socket, late_socket

    host_socket, guest_socket, late_socket = asyncio.run(scenario())
    assert [m["state"]["version"] for m in guest_socket.messages("send_initial_state")] == [1]
    assert [m["state"]["version"] for m in guest_socket.messages("sync_game_state")] == [2]
    assert not host_socket.messages("sync_game_state")
    assert [m["state"]["version"] for m in late_socket.messages("sync_game_state")] == [2]
    assert error_codes(guest_socket) == ["NOT_HOST"]


def test_seat_announcements_come_from_the_host_only():
    async def scenario():
        server = make_server()
        host, host_socket, lobby_id = await open_lobby(server)
        guest, guest_socket = await join(server, lobby_id, "Bea")
        seats = [{"seat": 1, "kind": "remote", "memberId": guest.member_id, "name": "Bea"}]
        await server.handle_message(host, {"type": "sync_seats", "seats": seats})
        await server.handle_message(guest, {"type": "sync_seats", "seats": []})
        late, late_socket = await join(server, lobby_id, "Cal")
        return host_socket, guest_socket, late_socket, seats

    host_socket, guest_socket, late_socket, seats = asyncio.run(scenario())
    assert [m["seats"] for m in guest_socket.messages("sync_seats")] == [seats]
    assert not host_socket.messages("sync_seats")
    assert not late_socket.messages("sync_seats")
    assert error_codes(guest_socket) == ["NOT_HOST"]


def test_move_requests_reach_host_with_sender():
    async def scenario():
        server = make_server()
        host, host_socket, lobby_id = await open_lobby(server)
        guest, guest_socket = await join(server, lobby_id, "Bea")
        data = {"cards": [], "actingSeatIndex": 1, "stateVersion": 4}
        await server.handle_message(guest, {"type": "request_move", "action": "pass", "data": data})
        await server.disconnect(host)
        await server.handle_message(guest, {"type": "request_move", "action": "pass", "data": data})
        return host, guest, host_socket, guest_socket

    host, guest, host_socket, guest_socket = asyncio.run(scenario())
    forwarded = host_socket.messages("request_move")
    assert len(forwarded) == 1
    assert forwarded[0]["from"] == guest.member_id
    assert forwarded[0]["data"]["actingSeatIndex"] == 1
    left = guest_socket.messages("player_left")[0]
    assert left["memberId"] == host.member_id
    assert left["players"] == ["Bea"]
    assert error_codes(guest_socket) == ["HOST_UNAVAILABLE"]


def test_move_rejection_goes_to_one_member():
    async def scenario():
        server = make_server()
        host, _, lobby_id = await open_lobby(server)
        guest, guest_socket = await join(server, lobby_id, "Bea")
        other, other_socket = await join(server, lobby_id, "Cal")
        rejection = {"type": "move_rejected", "to": guest.member_id, "reason": "Invalid combination", "seat": 1}
        await server.handle_message(host, rejection)
        await server.handle_message(other, rejection)
        return guest_socket, other_socket

    guest_socket, other_socket = asyncio.run(scenario())
    assert [m["reason"] for m in guest_socket.messages("move_rejected")] == ["Invalid combination"]
    assert not other_socket.messages("move_rejected")
    assert error_codes(other_socket) == ["NOT_HOST"]


def test_unknown_and_out_of_lobby_messages_get_errors():
    async def scenario():
        server = make_server()
        connection, socket = await connect(server)
        await server.handle_message(connection, {"type": "launch_rockets"})
        await server.handle_message(connection, {})
        await server.handle_message(connection, {"type": "hello"})
        await server.handle_message(connection, {"type": "send_chat", "message": "hi"})
        await server.handle_message(connection, {"type": "request_move", "action": "pass"})
        await server.handle_message(connection, {"type": "join_lobby", "playerName": "Ann"})
        await server.handle_message(connection, {"type": "join_lobby", "lobbyId": "NOPE42", "playerName": "Ann"})
        return socket

    socket = asyncio.run(scenario())
    assert error_codes(socket) == [
        "UNKNOWN_TYPE",
        "UNKNOWN_TYPE",
        "UNKNOWN_TYPE",
        "NOT_IN_LOBBY",
        "NOT_IN_LOBBY",
        "BAD_SCHEMA",
        "LOBBY_NOT_FOUND",
    ]


def test_chat_reaches_everyone_in_the_lobby():
    async def scenario():
        server = make_server()
        host, host_socket, lobby_id = await open_lobby(server)
        guest, guest_socket = await join(server, lobby_id, "Bea")
        await server.handle_message(guest, {"type": "send_chat", "message": "  good game  "})
        await server.handle_message(guest, {"type": "send_chat", "message": "   "})
        return guest, host_socket, guest_socket

    guest, host_socket, guest_socket = asyncio.run(scenario())
    for socket in (host_socket, guest_socket):
        chat = socket.messages("receive_chat")
        assert [(m["from"], m["memberId"], m["message"]) for m in chat] == [("Bea", guest.member_id, "good game")]
    assert error_codes(guest_socket) == ["BAD_SCHEMA"]


def test_registry_join_errors():
    registry = LobbyRegistry(rng=random.Random(1), max_players=2)
    lobby = registry.create("", "Ann", "m1")
    assert lobby.name == "Ann's game"
    registry.join(lobby.lobby_id, "Bea", "m2")

    with pytest.raises(LobbyError) as full:
        registry.join(lobby.lobby_id, "Cal", "m3")
    assert full.value.code == "LOBBY_FULL"

    with pytest.raises(LobbyError) as taken:
        registry.join(lobby.lobby_id, "bea", "m3")
    assert taken.value.code == "NAME_TAKEN"

    with pytest.raises(LobbyError) as again:
        registry.join(lobby.lobby_id, "Bea", "m2")
    assert again.value.code == "ALREADY_JOINED"

    with pytest.raises(LobbyError) as busy:
        registry.create("Other", "Ann", "m1")
    assert busy.value.code == "ALREADY_JOINED"

    with pytest.raises(LobbyError) as missing:
        registry.join("ZZZZZZ", "Cal", "m3")
    assert missing.value.code == "LOBBY_NOT_FOUND"


def test_departed_guest_frees_a_place():
    registry = LobbyRegistry(rng=random.Random(1), max_players=2)
    lobby = registry.create("Duo", "Ann", "m1")
    registry.join(lobby.lobby_id, "Bea", "m2")
    registry.leave("m2")
    _, member, rejoined = registry.join(lobby.lobby_id, "Cal", "m3")
    assert not rejoined
    assert member.name == "Cal"
    assert sorted(m.name for m in lobby.members.values()) == ["Ann", "Cal"]


def test_rejoin_by_name_restores_member_and_host_role():
    registry = LobbyRegistry(rng=random.Random(1))
    lobby = registry.create("Game", "Ann", "m1")
    registry.join(lobby.lobby_id, "Bea", "m2")

    registry.leave("m2")
    _, member, rejoined = registry.join(lobby.lobby_id, "BEA", "m3")
    assert rejoined
    assert member.name == "Bea"
    assert "m2" not in lobby.members

    registry.leave("m1")
    assert registry.get(lobby.lobby_id) is lobby
    _, host, rejoined = registry.join(lobby.lobby_id, "Ann", "m4")
    assert rejoined
    assert host.is_host
    assert lobby.host_id == "m4"
    assert lobby.player_names() == ["Bea", "Ann"]


def test_lobby_closes_when_everyone_leaves():
    registry = LobbyRegistry(rng=random.Random(1))
    public = registry.create("Open", "Ann", "m1")
    private = registry.create("Closed", "Bea", "m2", is_private=True)
    assert [summary["id"] for summary in registry.public_summaries()] == [public.lobby_id]

    registry.join(public.lobby_id, "Cal", "m3")
    registry.leave("m1")
    assert registry.get(public.lobby_id) is public
    registry.leave("m3")
    assert registry.get(public.lobby_id) is None
    assert registry.lobby_for("m3") is None
    assert registry.leave("m3") is None
    assert registry.get(private.lobby_id) is private


def test_health_check_responses():
    async def scenario():
        health = await _process_request("/health", Headers())
        missing = await _process_request("/nope", Headers())
        upgrade = await _process_request("/", Headers({"Upgrade": "websocket"}))
        return health, missing, upgrade

    health, missing, upgrade = asyncio.run(scenario())
    assert health[0] == 200
    assert health[2] == b"relay running\n"
    assert missing[0] == 404
    assert upgrade is None
