"""
CLI module for cvm.
"""

import logging
import os
import signal
import sys
from typing import List, NoReturn, Optional

from .commands import CommandRegistry, prepare_context
from .config import get_config
from .constants import DEBUG_ENV
from .errors import CvmError

logger = logging.getLogger(__name__)

INTERRUPT_MESSAGE = (
    "\nInterrupted by user. Please remove any unfinished downloads (if any) "
    "using `cvm remove <version>`."
)


def setup_logging(debug: bool = False) -> None:
    """Setup logging configuration."""
    level = logging.DEBUG if debug else logging.INFO
    logging.basicConfig(
        level=level, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )


def debug_from_env() -> bool:
    return os.environ.get(DEBUG_ENV, "").strip().lower() in ("1", "true", "yes", "on")


def _raise_interrupt(signum: int, frame: object) -> NoReturn:
    raise KeyboardInterrupt


def main(argv: Optional[List[str]] = None) -> int:
    """
    Main entry point for the CLI.
    """
    args = sys.argv[1:] if argv is None else argv
    registry = CommandRegistry()

    # No arguments shows help
    if not args:
        print(registry.format_help())
        return 0

    command_name = args[0]
    command = registry.get_command(command_name)
    if command is None:
        print(f"Unknown command: {command_name}")
        print(registry.format_help())
        return 1

    if not command.needs_context:
        return command.handler(args[1:])

    # Setup logging based on config
    config = get_config()
    setup_logging(debug=config.settings.debug_mode or debug_from_env())

    signal.signal(signal.SIGTERM, _raise_interrupt)
    try:
        registry.context = prepare_context(config)
        return command.handler(args[1:])
    except KeyboardInterrupt:
        print(INTERRUPT_MESSAGE)
        return 130
    except CvmError as e:
        logger.error(f"{command.name} failed: {e}")
        print(f"Error: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
