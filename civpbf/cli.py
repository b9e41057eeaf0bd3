"""
civpbf CLI - Command-line interface for the session server.

Usage:
    civpbf serve [--host HOST] [--port PORT]   Run the REST API
    civpbf deck <ruleset>                      Show a ruleset's deck sizes
"""

import argparse
import logging
import sys

from .config import Settings, configure_logging
from .engine_core.errors import GameError

logger = logging.getLogger(__name__)


def main(argv=None):
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        description="civpbf - Play-by-forum civilization sessions",
        prog="civpbf",
    )
    subparsers = parser.add_subparsers(dest="command", help="Commands")

    # Serve command
    serve_parser = subparsers.add_parser("serve", help="Run the REST API")
    serve_parser.add_argument("--host", default="127.0.0.1", help="Bind address")
    serve_parser.add_argument("--port", type=int, default=8000, help="Port")

    # Deck command
    deck_parser = subparsers.add_parser("deck", help="Show a ruleset's deck sizes")
    deck_parser.add_argument("ruleset", help="base, fame_and_fortune, ...")

    args = parser.parse_args(argv)

    try:
        settings = Settings.from_env()
        configure_logging(settings)
        if args.command == "serve":
            return cmd_serve(args, settings)
        elif args.command == "deck":
            return cmd_deck(args)
    except GameError as e:
        print(f"Error: {e.message}", file=sys.stderr)
        return 1

    parser.print_help()
    return 1


def cmd_serve(args, settings: Settings) -> int:
    """Run the API with uvicorn."""
    try:
        import uvicorn
    except ImportError:
        print("Error: uvicorn not installed. Install with: pip install uvicorn")
        return 1

    from .api import create_app

    logger.info("Starting civpbf (%s) on %s:%d", settings.env, args.host, args.port)
    uvicorn.run(
        create_app(settings=settings),
        host=args.host,
        port=args.port,
        log_level=settings.log_level.lower(),
    )
    return 0


def cmd_deck(args) -> int:
    """Print the number of items per category."""
    from .deck_catalog import DeckSourceCache

    source = DeckSourceCache().get(args.ruleset)
    sizes = source.deck_sizes

    print(f"Ruleset: {source.ruleset.value}")
    for category, size in sizes.items():
        print(f"  {category.label:<18} {size:>3}")
    print(f"  {'Total':<18} {sum(sizes.values()):>3}")
    print(f"Techs: {len(source.techs)}")
    print(f"Social policies: {len(source.social_policies)}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
