"""Command parser for CLI input."""

import shlex

from cli.models import (
    CommandRequest,
    GetCommand,
    HealthCommand,
    RecoverCommand,
    ShardCommand,
    SizeCommand,
    UnshardCommand,
)


class ParseError(Exception):
    """Raised when command parsing fails."""

    pass


def parse_command(input_line: str) -> CommandRequest:
    """Parse user input into a CommandRequest object.

    Args:
        input_line: Raw user input from the REPL or the joined argv

    Returns:
        CommandRequest object

    Raises:
        ParseError: If command syntax is invalid
    """
    if not input_line.strip():
        raise ParseError("Empty command")

    try:
        tokens = shlex.split(input_line)
    except ValueError as e:
        raise ParseError(f"Invalid syntax: {e}")

    return parse_tokens(tokens)


def parse_tokens(tokens: list[str]) -> CommandRequest:
    """Parse already split tokens (e.g. sys.argv[1:]) into a CommandRequest."""
    if not tokens:
        raise ParseError("Empty command")

    command_name = tokens[0].lower()
    parsers = {
        "shard": _parse_shard,
        "get": _parse_get,
        "unshard": _parse_unshard,
        "size": _parse_size,
        "health": _parse_health,
        "recover": _parse_recover,
    }
    if command_name not in parsers:
        raise ParseError(f"Unknown command: {tokens[0]}")
    return parsers[command_name](tokens[1:])


def _parse_shard(args: list[str]) -> ShardCommand:
    """Parse 'shard <path> [object-name]' command."""
    if len(args) not in (1, 2):
        raise ParseError("shard requires 1 or 2 arguments: <path> [object-name]")

    return ShardCommand(path=args[0], object_name=args[1] if len(args) == 2 else None)


def _parse_get(args: list[str]) -> GetCommand:
    """Parse 'get <pointer-file> <output-path>' command."""
    if len(args) != 2:
        raise ParseError("get requires exactly 2 arguments: <pointer-file> <output-path>")

    pointer_path, output_path = args
    return GetCommand(pointer_path=pointer_path, output_path=output_path)


def _parse_unshard(args: list[str]) -> UnshardCommand:
    """Parse 'unshard <pointer-file>' command."""
    if len(args) != 1:
        raise ParseError("unshard requires exactly 1 argument: <pointer-file>")

    return UnshardCommand(path=args[0])


def _parse_size(args: list[str]) -> SizeCommand:
    """Parse 'size [--strict] <object-id>' command."""
    strict = "--strict" in args
    rest = [arg for arg in args if arg != "--strict"]
    if len(rest) != 1:
        raise ParseError("size requires exactly 1 argument: [--strict] <object-id>")

    return SizeCommand(object_id=rest[0], strict=strict)


def _parse_health(args: list[str]) -> HealthCommand:
    """Parse 'health' command."""
    if args:
        raise ParseError("health takes no arguments")

    return HealthCommand()


def _parse_recover(args: list[str]) -> RecoverCommand:
    """Parse 'recover <root>' command."""
    if len(args) != 1:
        raise ParseError("recover requires exactly 1 argument: <root>")

    return RecoverCommand(root=args[0])
