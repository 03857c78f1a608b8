"""
Rebuilds a local tree of pointer files from the SDS inventory.

The inventory is fetched page by page (offset/limit) and written into
``<root>/<tag>_recovery_tmp``. Only a complete sweep is promoted, by a single
rename, to ``<root>/<tag>_recovery``; any failure removes the temporary
directory, so a half-written tree is never visible under the final name and
earlier recoveries are left alone.

Concurrent runs against the same root are not coordinated; callers must
serialize them.
"""

import os
import shutil
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path, PurePosixPath
from typing import Callable, Optional, Union

from common.constants import (
    RECOVERY_BATCH_LIMIT,
    RECOVERY_FINAL_SUFFIX,
    RECOVERY_PROGRESS_EVERY,
    RECOVERY_TAG_FORMAT,
    RECOVERY_TMP_SUFFIX,
)
from common.logging_config import get_logger, set_correlation_id
from gateway.exceptions import LocalIOError
from gateway.schemas import SdsFile
from gateway.sds import SdsGateway

logger = get_logger(__name__)


@dataclass(frozen=True)
class RecoveryProgress:
    """Progress snapshot, emitted every N written entries and at the end of each page."""
    page_index: int
    page_size: int
    done: int


@dataclass(frozen=True)
class RecoveryResult:
    """Outcome of a completed recovery run."""
    path: Path
    written: int
    skipped: int
    pages: int


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def recovery_dirs(root: Path, tag: str) -> tuple[Path, Path]:
    """Temporary and final directory for a run tag."""
    return root / f"{tag}{RECOVERY_TMP_SUFFIX}", root / f"{tag}{RECOVERY_FINAL_SUFFIX}"


def relative_target(base: Path, file_name: str) -> Path:
    """
    Map an SDS file name to a path under base.

    Leading slashes are dropped; names that would leave base are rejected.

    Raises:
        LocalIOError: If the name contains '..' components or a NUL byte
    """
    if "\x00" in file_name:
        raise LocalIOError(f"Refusing to recover {file_name!r}: name contains a NUL byte")
    parts = [part for part in PurePosixPath(file_name).parts if part != "/"]
    if ".." in parts:
        raise LocalIOError(f"Refusing to recover '{file_name}': path escapes the recovery directory")
    return base.joinpath(*parts)


class RecoveryRunner:
    """
    Runs one recovery sweep.
    """

    def __init__(
        self,
        gateway: SdsGateway,
        batch_limit: int = RECOVERY_BATCH_LIMIT,
        progress_every: int = RECOVERY_PROGRESS_EVERY,
        clock: Optional[Callable[[], datetime]] = None,
        on_progress: Optional[Callable[[RecoveryProgress], None]] = None,
        config_id: Optional[str] = None,
    ):
        """
        Args:
            gateway: SDS gateway used for the paginated listing
            batch_limit: Page size requested from the SDS
            progress_every: Report progress every N written entries
            clock: Returns the current time; the run tag is derived from it in UTC
            on_progress: Optional callback receiving RecoveryProgress
            config_id: Tenant/config identifier selecting the API key
        """
        if batch_limit <= 0:
            raise ValueError("batch_limit must be positive")
        if progress_every <= 0:
            raise ValueError("progress_every must be positive")
        self.gateway = gateway
        self.batch_limit = batch_limit
        self.progress_every = progress_every
        self.clock = clock or _utc_now
        self.on_progress = on_progress
        self.config_id = config_id

    def run_tag(self) -> str:
        return self.clock().astimezone(timezone.utc).strftime(RECOVERY_TAG_FORMAT)

    def run(self, root: Union[str, os.PathLike]) -> RecoveryResult:
        """
        Rebuild the pointer tree under root.

        Args:
            root: Directory receiving the ``<tag>_recovery`` output

        Returns:
            RecoveryResult for the promoted directory

        Raises:
            GatewayError: On any failure, after the temporary directory is removed
        """
        root = Path(root)
        tag = self.run_tag()
        tmp_dir, final_dir = recovery_dirs(root, tag)

        logger.info(f"Starting SDS recovery [root={root}, tag={tag}]")
        set_correlation_id(logger, f"recovery-{tag}")
        try:
            try:
                tmp_dir.mkdir(parents=True)
            except OSError as e:
                logger.error(f"Failed Recovery: cannot create temporary recovery directory {tmp_dir}: {e}")
                raise LocalIOError(f"Cannot create temporary recovery directory {tmp_dir}: {e}") from e

            try:
                result = self._sweep(tmp_dir, final_dir)
            except BaseException as e:
                logger.error(f"Failed Recovery: {type(e).__name__}: {e}")
                self._remove_tmp(tmp_dir)
                if isinstance(e, OSError):
                    raise LocalIOError(f"Recovery failed: {e}") from e
                raise
        finally:
            set_correlation_id(logger, None)

        logger.info(
            f"Recovery completed [path={result.path}, written={result.written}, "
            f"skipped={result.skipped}, pages={result.pages}]"
        )
        return result

    def _sweep(self, tmp_dir: Path, final_dir: Path) -> RecoveryResult:
        offset = 0
        pages = 0
        written = 0
        skipped = 0

        while True:
            batch = self.gateway.list_files(offset, self.batch_limit, config_id=self.config_id)
            pages += 1

            if not batch:
                if final_dir.exists():
                    raise LocalIOError(f"Recovery directory already exists: {final_dir}")
                os.rename(tmp_dir, final_dir)
                return RecoveryResult(path=final_dir, written=written, skipped=skipped, pages=pages)

            logger.debug(f"Fetched inventory page [offset={offset}, entries={len(batch)}]")

            for idx, entry in enumerate(batch):
                if not self._write_entry(tmp_dir, entry):
                    skipped += 1
                    continue

                written += 1
                if written % self.progress_every == 0 or idx == len(batch) - 1:
                    self._report(RecoveryProgress(page_index=idx + 1, page_size=len(batch), done=written))

            offset += self.batch_limit

    def _write_entry(self, tmp_dir: Path, entry: SdsFile) -> bool:
        """Write one pointer file; False when skipped because the target is a directory."""
        target = relative_target(tmp_dir, entry.file_name)
        if target == tmp_dir:
            logger.warning(f"Skipping entry {entry.id} with empty file name")
            return False

        target.parent.mkdir(parents=True, exist_ok=True)
        try:
            target.write_bytes(entry.id.encode())
        except IsADirectoryError as e:
            logger.warning(f"Skipping writing {target} because destination is a directory: {e}")
            return False
        return True

    def _report(self, progress: RecoveryProgress) -> None:
        logger.info(
            f"Processed {progress.page_index}/{progress.page_size} in batch, ({progress.done} done files)"
        )
        if self.on_progress is not None:
            self.on_progress(progress)

    def _remove_tmp(self, tmp_dir: Path) -> None:
        logger.info(f"Deleting temporary recovery directory {tmp_dir}")
        try:
            shutil.rmtree(tmp_dir)
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.error(f"Error removing temporary recovery directory {tmp_dir}: {e}")
        else:
            logger.info("Temporary recovery directory deleted successfully")


def recover(gateway: SdsGateway, root: Union[str, os.PathLike], **kwargs) -> RecoveryResult:
    """Run a recovery sweep with a fresh RecoveryRunner."""
    return RecoveryRunner(gateway, **kwargs).run(root)
