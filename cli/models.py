"""Command request data types for the gateway CLI."""

from dataclasses import dataclass
from typing import Literal


@dataclass(frozen=True)
class ShardCommand:
    """Upload a local file and replace it with a pointer."""

    path: str
    object_name: str | None = None
    command: Literal["shard"] = "shard"


@dataclass(frozen=True)
class GetCommand:
    """Download the object behind a pointer file to another path."""

    pointer_path: str
    output_path: str
    command: Literal["get"] = "get"


@dataclass(frozen=True)
class UnshardCommand:
    """Replace a pointer file with the object bytes it references."""

    path: str
    command: Literal["unshard"] = "unshard"


@dataclass(frozen=True)
class SizeCommand:
    """Query the logical size of an SDS object."""

    object_id: str
    strict: bool = False
    command: Literal["size"] = "size"


@dataclass(frozen=True)
class HealthCommand:
    """Show the status of the SDS backing nodes."""

    command: Literal["health"] = "health"


@dataclass(frozen=True)
class RecoverCommand:
    """Rebuild a pointer tree from the SDS inventory."""

    root: str
    command: Literal["recover"] = "recover"


CommandRequest = (
    ShardCommand
    | GetCommand
    | UnshardCommand
    | SizeCommand
    | HealthCommand
    | RecoverCommand
)
