"""Interactive prompt_toolkit console for gateway operators."""

import os
import sys
from typing import Optional, Tuple

from prompt_toolkit import PromptSession
from prompt_toolkit.completion import WordCompleter
from prompt_toolkit.history import InMemoryHistory

from cli.commands import close_gateway, get_gateway, run_command
from cli.constants import (
    COMMANDS,
    HELP_TEXT,
    PROMPT_TEXT,
    RED_ORANGE,
    RESET,
    STYLE,
    WELCOME_HELP,
    WELCOME_TITLE,
)
from cli.parser import ParseError, parse_command
from gateway.exceptions import ConfigError
from gateway.sds import SdsGateway


def clear_screen() -> None:
    if sys.platform == "win32":
        os.system("cls")
    else:
        os.system("clear")


def connection_banner(gateway: Optional[SdsGateway] = None) -> str:
    """One line describing the SDS endpoint, or why none is configured."""
    try:
        gw = gateway or get_gateway()
    except ConfigError as e:
        return f"{RED_ORANGE}No SDS configured: {e}{RESET}"
    return f"Connected to {gw.transport.config.sds_url}"


def show_welcome(gateway: Optional[SdsGateway] = None) -> None:
    print(WELCOME_TITLE)
    print(connection_banner(gateway))
    print(WELCOME_HELP)


def execute_line(line: str, gateway: Optional[SdsGateway] = None) -> Tuple[bool, Optional[str]]:
    """
    Run one line of console input.

    Returns:
        (keep_running, output); output is None when nothing should be printed
    """
    text = line.strip()
    if not text:
        return True, None
    if text == "exit":
        return False, "Goodbye!"
    if text == "help":
        return True, HELP_TEXT
    if text == "clear":
        clear_screen()
        show_welcome(gateway)
        return True, None

    try:
        cmd = parse_command(text)
    except ParseError as e:
        return True, f"Error: {e}"
    _, message = run_command(cmd, gateway)
    return True, message


def repl_loop(gateway: Optional[SdsGateway] = None) -> None:
    """Read commands until 'exit' or EOF; the shared gateway is closed on the way out."""
    session: PromptSession = PromptSession(
        completer=WordCompleter(COMMANDS, ignore_case=True),
        history=InMemoryHistory(),
        style=STYLE,
    )
    show_welcome(gateway)

    try:
        while True:
            try:
                user_input = session.prompt([("class:prompt", PROMPT_TEXT)])
            except KeyboardInterrupt:
                continue
            except EOFError:
                print("\nGoodbye!")
                break

            keep_running, output = execute_line(user_input, gateway)
            if output is not None:
                print(output)
            if not keep_running:
                break
    finally:
        close_gateway()
