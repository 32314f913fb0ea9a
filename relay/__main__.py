import argparse
import asyncio
import logging

from .lobby import LobbyRegistry
from .server import RelayServer

logging.basicConfig(level=logging.INFO)


def main() -> None:
    parser = argparse.ArgumentParser(description="Lobby relay for networked 13 games")
    parser.add_argument("--host", default="0.0.0.0")
    parser.add_argument("--port", type=int, default=8765)
    parser.add_argument("--max-players", type=int, default=4, help="Members allowed per lobby")
    args = parser.parse_args()

    server = RelayServer(LobbyRegistry(max_players=args.max_players))
    try:
        asyncio.run(server.start(host=args.host, port=args.port))
    except KeyboardInterrupt:
        logging.getLogger("relay").info("Relay stopped")


if __name__ == "__main__":
    main()
