"""Shard, get, size, listing and health operations against the SDS."""

import os
import shutil
import tempfile
from pathlib import Path
from typing import BinaryIO, Callable, Iterator, List, Optional, Union

import httpx

from common.constants import (
    FILE_INFO_ENDPOINT,
    FILES_ENDPOINT,
    HEALTH_ENDPOINT,
    UPLOAD_FILE_FIELD,
    UPLOAD_NAME_FIELD,
)
from common.logging_config import get_logger
from gateway.config import GatewayConfig
from gateway.exceptions import LocalIOError, ObjectNotFoundError, TransportError
from gateway.multipart import NamedStream
from gateway.pointer import decode_pointer, encode_pointer, read_pointer_file
from gateway.schemas import SdsFile, SdsFileInfo, StorageStatus
from gateway.transport import SdsTransport

logger = get_logger(__name__)

PathLike = Union[str, os.PathLike]
OpenFile = Callable[[str, int], BinaryIO]


def _open_local(path: str, offset: int) -> BinaryIO:
    f = open(path, "rb")
    if offset:
        f.seek(offset)
    return f


def _atomic_replace(path: Path, write: Callable[[BinaryIO], int]) -> int:
    """
    Replace path with new content via a sibling temp file and os.replace.

    The original file stays intact until the new content is fully written
    and synced. Permissions of the original are carried over.

    Returns:
        Number of bytes written
    """
    try:
        fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=path.parent)
    except OSError as e:
        raise LocalIOError(f"Cannot create temporary file next to {path}: {e}") from e

    try:
        with os.fdopen(fd, "wb") as f:
            written = write(f)
            f.flush()
            os.fsync(f.fileno())
        if path.exists():
            shutil.copymode(path, tmp_name)
        os.replace(tmp_name, path)
    except BaseException as e:
        try:
            os.unlink(tmp_name)
        except FileNotFoundError:
            pass
        if isinstance(e, OSError):
            raise LocalIOError(f"Cannot rewrite {path}: {e}") from e
        raise

    return written


class RemoteObject:
    """
    Live, unbuffered body of an SDS object. The caller must close it.
    """

    def __init__(self, object_id: str, response: httpx.Response):
        self.id = object_id
        self._response = response
        self._chunks: Optional[Iterator[bytes]] = None
        self._buffer = b""
        try:
            self.content_length = int(response.headers.get("Content-Length", -1))
        except ValueError:
            self.content_length = -1

    def _raw_chunks(self) -> Iterator[bytes]:
        try:
            yield from self._response.iter_bytes()
        except httpx.TransportError as e:
            raise TransportError(f"Connection lost while reading object {self.id}: {e}") from e

    def _next_chunk(self) -> bytes:
        if self._chunks is None:
            self._chunks = self._raw_chunks()
        return next(self._chunks, b"")

    def iter_bytes(self) -> Iterator[bytes]:
        """Yield the remaining body in chunks."""
        if self._buffer:
            data, self._buffer = self._buffer, b""
            yield data
        while True:
            chunk = self._next_chunk()
            if not chunk:
                return
            yield chunk

    def read(self, size: int = -1) -> bytes:
        """Read up to size bytes, or the rest of the body when size < 0."""
        if size is None or size < 0:
            return b"".join(self.iter_bytes())
        while len(self._buffer) < size:
            chunk = self._next_chunk()
            if not chunk:
                break
            self._buffer += chunk
        data, self._buffer = self._buffer[:size], self._buffer[size:]
        return data

    def close(self) -> None:
        self._response.close()

    @property
    def closed(self) -> bool:
        return self._response.is_closed

    def __enter__(self) -> 'RemoteObject':
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()


class SdsGateway:
    """
    Moves file content to the SDS and back, leaving pointers locally.
    """

    def __init__(self, transport: SdsTransport):
        self.transport = transport

    @classmethod
    def from_config(cls, config: GatewayConfig, session: Optional[httpx.Client] = None) -> 'SdsGateway':
        return cls(SdsTransport(config, session=session))

    def put(self, stream: BinaryIO, object_name: str, config_id: Optional[str] = None) -> str:
        """
        Upload a stream as a new SDS object.

        Args:
            stream: Binary stream with the object bytes; closed once uploaded
            object_name: File name and display name recorded by the SDS
            config_id: Tenant/config identifier selecting the API key

        Returns:
            Remote object id
        """
        fields = {
            UPLOAD_FILE_FIELD: NamedStream(object_name, stream),
            UPLOAD_NAME_FIELD: object_name,
        }
        upload = self.transport.post_multipart(fields, FILES_ENDPOINT, config_id=config_id)
        return upload.id

    def shard(
        self,
        path: PathLike,
        object_name: Optional[str] = None,
        config_id: Optional[str] = None,
        open_file: Optional[OpenFile] = None,
    ) -> str:
        """
        Upload a local file to the SDS and replace its content with the pointer.

        Args:
            path: Local file to shard
            object_name: Name recorded by the SDS (defaults to the file name);
                recovery rebuilds the local tree from it
            config_id: Tenant/config identifier selecting the API key
            open_file: Optional opener ``(path, offset) -> stream`` supplied by
                the caller's storage layer

        Returns:
            Remote object id now stored in the file

        Raises:
            GatewayError: On any failure; the local file is left untouched
                unless the pointer write completed
        """
        path = Path(path)
        name = object_name or path.name
        opener = open_file or _open_local

        try:
            stream = opener(str(path), 0)
        except OSError as e:
            raise LocalIOError(f"Cannot open {path} for sharding: {e}") from e

        try:
            object_id = self.put(stream, name, config_id=config_id)
        finally:
            stream.close()

        pointer = encode_pointer(object_id)
        _atomic_replace(path, lambda f: f.write(pointer))
        logger.info(f"Sharded {path} [id={object_id}, name={name}]")
        return object_id

    def get(self, pointer_stream: BinaryIO, config_id: Optional[str] = None) -> RemoteObject:
        """
        Open the SDS object referenced by a pointer stream.

        Args:
            pointer_stream: Stream holding exactly one pointer
            config_id: Tenant/config identifier selecting the API key

        Returns:
            RemoteObject streaming the body; the caller closes it
        """
        return self._open_object(decode_pointer(pointer_stream), config_id)

    def get_path(self, path: PathLike, config_id: Optional[str] = None) -> RemoteObject:
        """Open the SDS object referenced by a local pointer file."""
        return self._open_object(read_pointer_file(path), config_id)

    def _open_object(self, object_id: str, config_id: Optional[str]) -> RemoteObject:
        response = self.transport.get(FILES_ENDPOINT, object_id, config_id=config_id, stream=True)
        return RemoteObject(object_id, response)

    def unshard(self, path: PathLike, config_id: Optional[str] = None) -> int:
        """
        Replace a local pointer file with the object bytes it references.

        Returns:
            Number of bytes restored
        """
        path = Path(path)
        with self.get_path(path, config_id=config_id) as remote:
            def write(f: BinaryIO) -> int:
                total = 0
                for chunk in remote.iter_bytes():
                    f.write(chunk)
                    total += len(chunk)
                return total

            written = _atomic_replace(path, write)

        logger.info(f"Unsharded {path} [id={remote.id}, bytes={written}]")
        return written

    def get_file_size(self, object_id: str, config_id: Optional[str] = None, strict: bool = False) -> int:
        """
        Logical (unencrypted) size of an SDS object.

        Args:
            object_id: Remote object id
            config_id: Tenant/config identifier selecting the API key
            strict: Raise instead of returning 0 when no size is reported

        Returns:
            Size in bytes, or 0 when the SDS reports no unencrypted size

        Raises:
            ObjectNotFoundError: If strict and no size is reported
        """
        info = self.transport.get_json(
            FILES_ENDPOINT, FILE_INFO_ENDPOINT, object_id,
            model=SdsFileInfo,
            config_id=config_id,
        )
        size = info.logical_size
        if size is None:
            if strict:
                raise ObjectNotFoundError(f"Cannot find file {object_id} in SDS")
            logger.warning(f"Cannot find file in SDS, reporting size 0 [id={object_id}]")
            return 0
        return size

    def list_files(self, offset: int, limit: int, config_id: Optional[str] = None) -> List[SdsFile]:
        """One page of the SDS inventory."""
        return self.transport.get_json(
            FILES_ENDPOINT,
            model=List[SdsFile],
            params={"limit": limit, "offset": offset},
            config_id=config_id,
        )

    def health(self, config_id: Optional[str] = None) -> List[StorageStatus]:
        """Status of every SDS backing node, in the order reported."""
        return self.transport.get_json(HEALTH_ENDPOINT, model=List[StorageStatus], config_id=config_id)

    def close(self) -> None:
        self.transport.close()

    def __enter__(self) -> 'SdsGateway':
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()
