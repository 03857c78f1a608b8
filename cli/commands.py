"""Command handler functions for CLI operations."""

from pathlib import Path
from typing import Optional, Tuple

from common.logging_config import get_logger
from cli.models import (
    CommandRequest,
    GetCommand,
    HealthCommand,
    RecoverCommand,
    ShardCommand,
    SizeCommand,
    UnshardCommand,
)
from cli.utils import end_progress, format_file_size, format_health, format_transfer, write_progress
from gateway.config import load_config
from gateway.exceptions import GatewayError, LocalIOError
from gateway.recovery import RecoveryProgress, RecoveryRunner
from gateway.sds import SdsGateway

logger = get_logger(__name__)


_gateway: Optional[SdsGateway] = None
_config_path: Optional[str] = None


def set_config_path(path: Optional[str]) -> None:
    """Select the config file used when the shared gateway is first built."""
    global _config_path
    _config_path = path


def get_gateway() -> SdsGateway:
    """
    Get or create the shared SdsGateway instance.

    Returns:
        SdsGateway built from the loaded config

    Raises:
        ConfigError: If the config cannot be loaded
    """
    global _gateway
    if _gateway is None:
        logger.debug("Creating new SdsGateway instance")
        _gateway = SdsGateway.from_config(load_config(_config_path))
    return _gateway


def close_gateway() -> None:
    global _gateway
    if _gateway is not None:
        _gateway.close()
        _gateway = None


def handle_shard(cmd: ShardCommand, gateway: Optional[SdsGateway] = None) -> str:
    """
    Handle 'shard' command.

    Args:
        cmd: ShardCommand with the local path and optional object name
        gateway: Optional SdsGateway for dependency injection (testing)

    Returns:
        Success message with the new pointer
    """
    logger.info(f"Executing shard command: path={cmd.path} object_name={cmd.object_name}")
    if gateway is None:
        gateway = get_gateway()
    object_id = gateway.shard(cmd.path, cmd.object_name)
    return f"Sharded {cmd.path} (ID: {object_id})"


def handle_get(cmd: GetCommand, gateway: Optional[SdsGateway] = None) -> str:
    """
    Handle 'get' command, streaming the object to the output path.

    Args:
        cmd: GetCommand with pointer and output paths
        gateway: Optional SdsGateway for dependency injection (testing)

    Returns:
        Success message with the number of bytes written
    """
    if gateway is None:
        gateway = get_gateway()

    output = Path(cmd.output_path)
    if output.is_dir():
        output = output / Path(cmd.pointer_path).name

    label = f"Downloading {Path(cmd.pointer_path).name}"
    downloaded = 0
    with gateway.get_path(cmd.pointer_path) as remote:
        try:
            output.parent.mkdir(parents=True, exist_ok=True)
            with open(output, 'wb') as f:
                for chunk in remote.iter_bytes():
                    f.write(chunk)
                    downloaded += len(chunk)
                    write_progress(format_transfer(label, downloaded, remote.content_length))
        except OSError as e:
            raise LocalIOError(f"Cannot write {output}: {e}") from e
        finally:
            end_progress()

    logger.debug(f"Get command completed [id={remote.id}, bytes={downloaded}]")
    return f"Downloaded {remote.id} to {output} ({format_file_size(downloaded)})"


def handle_unshard(cmd: UnshardCommand, gateway: Optional[SdsGateway] = None) -> str:
    """Handle 'unshard' command."""
    if gateway is None:
        gateway = get_gateway()
    restored = gateway.unshard(cmd.path)
    return f"Restored {cmd.path} ({format_file_size(restored)})"


def handle_size(cmd: SizeCommand, gateway: Optional[SdsGateway] = None) -> str:
    """Handle 'size' command."""
    if gateway is None:
        gateway = get_gateway()
    size = gateway.get_file_size(cmd.object_id, strict=cmd.strict)
    return f"{cmd.object_id}: {format_file_size(size)} ({size} bytes)"


def handle_health(cmd: HealthCommand, gateway: Optional[SdsGateway] = None) -> str:
    """Handle 'health' command."""
    if gateway is None:
        gateway = get_gateway()
    return format_health(gateway.health())


def handle_recover(cmd: RecoverCommand, gateway: Optional[SdsGateway] = None) -> str:
    """
    Handle 'recover' command, printing progress while the sweep runs.

    Args:
        cmd: RecoverCommand with the root directory
        gateway: Optional SdsGateway for dependency injection (testing)

    Returns:
        Success message with the recovery directory
    """
    logger.info(f"Executing recover command: root={cmd.root}")
    if gateway is None:
        gateway = get_gateway()

    def show(progress: RecoveryProgress) -> None:
        write_progress(
            f"Processed {progress.page_index}/{progress.page_size} in batch, ({progress.done} done files)"
        )

    try:
        result = RecoveryRunner(gateway, on_progress=show).run(cmd.root)
    finally:
        end_progress()

    return (
        f"Recovery completed: {result.path}\n"
        f"{result.written} pointer file(s) written, {result.skipped} skipped"
    )


HANDLERS = {
    ShardCommand: handle_shard,
    GetCommand: handle_get,
    UnshardCommand: handle_unshard,
    SizeCommand: handle_size,
    HealthCommand: handle_health,
    RecoverCommand: handle_recover,
}


def run_command(cmd: CommandRequest, gateway: Optional[SdsGateway] = None) -> Tuple[bool, str]:
    """
    Dispatch a parsed command to its handler.

    Returns:
        (success, message); gateway failures are rendered, not raised
    """
    handler = HANDLERS.get(type(cmd))
    if handler is None:
        return False, f"Unknown command type: {type(cmd)}"

    try:
        return True, handler(cmd, gateway)
    except GatewayError as e:
        logger.error(f"{cmd.command} failed: {type(e).__name__}: {e}")
        if isinstance(cmd, RecoverCommand):
            return False, f"Failed Recovery: {e}"
        return False, f"Error: {e}"
