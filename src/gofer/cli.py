"""
gofer command line entry point.

    gofer [gopher://host[:port]/<type><selector>] [--verbose]

Usually started by the OS as the gopher:// protocol handler.
"""

import argparse
import logging
import sys
from typing import List, Optional

from rich.console import Console

from ..utils.logging import configure_debug_logging, setup_logger, silence_external_loggers
from .coordinator import InstanceCoordinator
from .exceptions import ForwardingError


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="gofer - a gopher helper for web browsers")
    parser.add_argument("uri", nargs="?", help="gopher:// URI to open")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable verbose logging")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for gofer."""
    args = build_parser().parse_args(argv)

    setup_logger("src", level=logging.INFO)
    silence_external_loggers()
    if args.verbose:
        configure_debug_logging()

    console = Console(stderr=True)

    try:
        return InstanceCoordinator().run(args.uri)
    except ForwardingError as e:
        console.print(str(e), style="bold red", markup=False)
        return 1
    except KeyboardInterrupt:
        console.print("\ngofer interrupted by user", style="yellow")
        return 1


if __name__ == "__main__":
    sys.exit(main())
