"""
Multipart/form-data encoder that spools the request body to a private temp file.

The form envelope is rendered by httpx and copied chunk by chunk into an
anonymous temporary file, so uploads have a known Content-Length without
holding the payload in memory.
"""

import tempfile
from contextlib import ExitStack, contextmanager
from dataclasses import dataclass
from typing import BinaryIO, Dict, Iterator, Mapping, Tuple, Union

import httpx

from common.constants import SPOOL_PREFIX
from common.logging_config import get_logger
from gateway.exceptions import LocalIOError

logger = get_logger(__name__)

# httpx only needs a syntactically valid target to render the form body
_RENDER_URL = "http://spool.invalid/"


@dataclass(frozen=True)
class NamedStream:
    """A byte stream sent as a file part under the given filename."""
    name: str
    stream: BinaryIO


@dataclass(frozen=True)
class SpooledForm:
    """Encoded form body, positioned at offset 0 and ready to send."""
    file: BinaryIO
    content_type: str
    content_length: int


FormField = Union[NamedStream, str]


def _split_fields(
    fields: Mapping[str, FormField]
) -> Tuple[Dict[str, str], Dict[str, Tuple[str, BinaryIO]]]:
    data: Dict[str, str] = {}
    files: Dict[str, Tuple[str, BinaryIO]] = {}
    for name, value in fields.items():
        if isinstance(value, NamedStream):
            files[name] = (value.name, value.stream)
        else:
            data[name] = str(value)
    return data, files


@contextmanager
def spool_form(fields: Mapping[str, FormField]) -> Iterator[SpooledForm]:
    """
    Encode fields as multipart/form-data into a temporary spool file.

    Source streams with a close() method are closed once the body has been
    spooled, whether or not spooling succeeded. The spool file is removed
    when the context exits. Text fields are written before file parts, as
    httpx renders them.

    Args:
        fields: Field name to NamedStream (file part) or text value

    Yields:
        SpooledForm with the spool file rewound to the start

    Raises:
        LocalIOError: If the spool file cannot be created or a part cannot be copied
    """
    with ExitStack() as sources:
        for value in fields.values():
            if isinstance(value, NamedStream) and callable(getattr(value.stream, "close", None)):
                sources.callback(value.stream.close)

        try:
            spool = tempfile.TemporaryFile(prefix=SPOOL_PREFIX)
        except OSError as e:
            raise LocalIOError(f"Cannot create upload spool file: {e}") from e

        try:
            data, files = _split_fields(fields)
            request = httpx.Request("POST", _RENDER_URL, data=data, files=files)
            for chunk in request.stream:
                spool.write(chunk)
            spool.flush()
            content_length = spool.tell()
            spool.seek(0)
        except OSError as e:
            spool.close()
            raise LocalIOError(f"Cannot spool multipart body: {e}") from e
        except BaseException:
            spool.close()
            raise

    logger.debug(f"Spooled multipart body [bytes={content_length}, parts={len(fields)}]")

    with spool:
        yield SpooledForm(
            file=spool,
            content_type=request.headers["Content-Type"],
            content_length=content_length,
        )
