"""CLI entry point."""

import os
import sys
from typing import Optional

from common.logging_config import setup_logging
from cli.commands import close_gateway, run_command, set_config_path
from cli.constants import HELP_TEXT, USAGE
from cli.parser import ParseError, parse_tokens
from cli.repl import repl_loop


def _pop_option(args: list[str], name: str) -> Optional[str]:
    """Remove '--name value' or '--name=value' from args and return the value."""
    for i, arg in enumerate(args):
        if arg == name:
            if i + 1 >= len(args):
                raise ParseError(f"{name} requires a value")
            value = args[i + 1]
            del args[i:i + 2]
            return value
        if arg.startswith(f"{name}="):
            del args[i]
            return arg.split("=", 1)[1]
    return None


def main(argv: Optional[list[str]] = None) -> int:
    """Entry point for CLI. Runs one command when given, otherwise the REPL."""
    args = list(sys.argv[1:] if argv is None else argv)

    debug = '--debug' in args
    if debug:
        args.remove('--debug')
    log_level = 'DEBUG' if debug else os.getenv('LOG_LEVEL', 'INFO')

    logger = setup_logging('cli', log_level=log_level)
    setup_logging('gateway', log_level=log_level)
    if debug:
        logger.info("Debug logging enabled")

    try:
        set_config_path(_pop_option(args, '--config'))
    except ParseError as e:
        print(f"Error: {e}\n{USAGE}", file=sys.stderr)
        return 2

    if args and args[0] in ('-h', '--help', 'help'):
        print(f"{USAGE}\n\n{HELP_TEXT}")
        return 0

    try:
        if not args:
            logger.info("CLI starting...")
            repl_loop()
            return 0

        try:
            cmd = parse_tokens(args)
        except ParseError as e:
            print(f"Error: {e}\n{USAGE}", file=sys.stderr)
            return 2

        ok, message = run_command(cmd)
        print(message, file=sys.stdout if ok else sys.stderr)
        return 0 if ok else 1
    except Exception as e:
        logger.error(f"CLI error: {e}", exc_info=True)
        raise
    finally:
        close_gateway()


if __name__ == "__main__":
    sys.exit(main())
