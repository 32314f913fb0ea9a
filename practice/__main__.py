import argparse
import logging

from thirteen.models import TableConfig

from .session import PracticeGame


def main() -> None:
    parser = argparse.ArgumentParser(description="Play 13 against three computer opponents")
    parser.add_argument("--name", default="You")
    parser.add_argument("--seed", type=int, default=None, help="Seed for reproducible deals")
    parser.add_argument("--ai-delay-ms", type=int, default=1000, help="Pause before each computer move")
    parser.add_argument("--round-delay-ms", type=int, default=2000, help="Pause between rounds")
    parser.add_argument("--verbose", action="store_true", help="Show engine log lines")
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO if args.verbose else logging.WARNING)

    config = TableConfig(ai_turn_delay_ms=args.ai_delay_ms, round_end_delay_ms=args.round_delay_ms)
    game = PracticeGame(name=args.name, seed=args.seed, config=config)
    try:
        game.run()
    except (EOFError, KeyboardInterrupt):
        print()


if __name__ == "__main__":
    main()
