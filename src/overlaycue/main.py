"""Subcommand dispatcher for overlaycue.

Usage:
    overlaycue validate --scenario scenario.json [--strict] [--check-assets]
    overlaycue timeline --scenario scenario.json --end 10 [--step 0.5] [--fps 30]
    overlaycue --log-level DEBUG timeline --scenario scenario.json --end 10
"""

import argparse
import logging
import sys


def main(args=None):
    parser = argparse.ArgumentParser(
        prog="overlaycue",
        description="Overlay scenario validation and offline playback sampling.",
    )
    parser.add_argument(
        "--log-level", default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging verbosity (default: WARNING)",
    )
    subparsers = parser.add_subparsers(dest="command")

    # Register subcommands. Each delegates to its own module's main().
    subparsers.add_parser("validate", help="Resolve and validate a scenario document")
    subparsers.add_parser("timeline", help="Sample mounted cues and channels over time")

    # Parse only the subcommand name, pass the rest to the subcommand's parser.
    parsed, remaining = parser.parse_known_args(args)

    if parsed.command is None:
        parser.print_help()
        sys.exit(1)

    logging.basicConfig(
        level=getattr(logging, parsed.log_level),
        format="%(levelname)s %(name)s: %(message)s",
    )

    if parsed.command == "validate":
        from .cli import main as validate_main
        validate_main(remaining)
    elif parsed.command == "timeline":
        from .timeline_cli import main as timeline_main
        timeline_main(remaining)


if __name__ == "__main__":
    main()
