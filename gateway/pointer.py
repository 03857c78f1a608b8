"""Encoding of SDS object ids as the whole content of a local pointer file."""

import os
from typing import BinaryIO, Union

from common.constants import GATEWAY_ID_LEN
from gateway.exceptions import LocalIOError, MalformedPointer


def encode_pointer(object_id: str) -> bytes:
    """
    Encode an object id as pointer file content.

    Args:
        object_id: SDS object id, exactly GATEWAY_ID_LEN ASCII characters

    Returns:
        Raw id bytes, no padding or delimiter

    Raises:
        MalformedPointer: If the id is not ASCII or has the wrong length
    """
    try:
        data = object_id.encode("ascii")
    except UnicodeEncodeError as e:
        raise MalformedPointer(f"Object id is not ASCII: {object_id!r}") from e
    if len(data) != GATEWAY_ID_LEN:
        raise MalformedPointer(
            f"Object id must be {GATEWAY_ID_LEN} bytes, got {len(data)}: {object_id!r}"
        )
    return data


def decode_pointer(stream: BinaryIO) -> str:
    """
    Read one pointer from a stream holding nothing else.

    Short reads are retried until GATEWAY_ID_LEN bytes arrive or the stream
    ends.

    Args:
        stream: Binary stream positioned at the start of the pointer

    Returns:
        Object id

    Raises:
        MalformedPointer: If the stream is shorter or longer than one
            pointer, cannot be read, or is not ASCII
    """
    buf = bytearray()
    try:
        while len(buf) < GATEWAY_ID_LEN:
            chunk = stream.read(GATEWAY_ID_LEN - len(buf))
            if not chunk:
                break
            buf.extend(chunk)
        trailing = stream.read(1) if len(buf) == GATEWAY_ID_LEN else b""
    except OSError as e:
        raise MalformedPointer(f"Cannot read pointer: {e}") from e

    if len(buf) != GATEWAY_ID_LEN:
        raise MalformedPointer(f"Wrong id format: expected {GATEWAY_ID_LEN} bytes, got {len(buf)}")
    if trailing:
        raise MalformedPointer(f"Wrong id format: content longer than {GATEWAY_ID_LEN} bytes")

    try:
        return buf.decode("ascii")
    except UnicodeDecodeError as e:
        raise MalformedPointer("Wrong id format: pointer is not ASCII") from e


def read_pointer_file(path: Union[str, os.PathLike]) -> str:
    """
    Decode the pointer stored in a local file.

    Raises:
        LocalIOError: If the file cannot be opened
        MalformedPointer: If its content is not exactly one pointer
    """
    try:
        f = open(path, "rb")
    except OSError as e:
        raise LocalIOError(f"Cannot open pointer file {path}: {e}") from e
    with f:
        return decode_pointer(f)
