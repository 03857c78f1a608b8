"""HTTP transport for the SDS API: URL building, headers and error translation."""

from typing import Mapping, Optional, Type, TypeVar
from urllib.parse import quote

import httpx
from pydantic import BaseModel, TypeAdapter, ValidationError

from common.constants import API_KEY_HEADER, FILES_ENDPOINT
from common.logging_config import get_logger
from gateway.config import GatewayConfig
from gateway.exceptions import (
    DecodeError,
    RemoteApplicationError,
    RemoteProtocolError,
    TransportError,
)
from gateway.multipart import FormField, spool_form
from gateway.schemas import RemoteErrorBody, UploadResponse

logger = get_logger(__name__)

T = TypeVar("T")


def decode_body(body: bytes, model, status_code: Optional[int] = None):
    """
    Decode a JSON body into a pydantic model or type (e.g. list[SdsFile]).

    Raises:
        DecodeError: If the body is not JSON or does not match the shape
    """
    try:
        if isinstance(model, type) and issubclass(model, BaseModel):
            return model.model_validate_json(body)
        return TypeAdapter(model).validate_json(body)
    except ValidationError as e:
        raise DecodeError(f"Unexpected SDS response body: {e}", status_code=status_code) from e


class SdsTransport:
    """
    Executes requests against the configured SDS.

    No state is kept between calls apart from the pooled HTTP session and
    the immutable configuration. Nothing is retried.
    """

    def __init__(self, config: GatewayConfig, session: Optional[httpx.Client] = None):
        """
        Args:
            config: Gateway configuration (base URL, API keys, timeout)
            session: Optional pre-built client, used by tests to inject a transport
        """
        self.config = config
        self.session = session or httpx.Client(timeout=config.timeout)
        logger.info(f"Initialized SdsTransport [sds_url={config.sds_url}]")

    def url_join(self, *segments: str) -> str:
        """
        Join the base URL with path segments, each escaped as one path component.

        Args:
            *segments: Path segments, e.g. ("files", "info", file_id)

        Returns:
            Absolute URL string
        """
        base = self.config.sds_url.rstrip("/")
        escaped = "/".join(quote(str(segment), safe="") for segment in segments)
        return f"{base}/{escaped}" if escaped else base

    def headers(self, config_id: Optional[str] = None) -> dict:
        """Headers carried by every SDS request."""
        return {API_KEY_HEADER: self.config.api_key_for(config_id)}

    def _send(self, request: httpx.Request, stream: bool = False) -> httpx.Response:
        logger.debug(f"Making request: {request.method} {request.url}")
        try:
            response = self.session.send(request, stream=stream)
        except httpx.TransportError as e:
            logger.error(f"Network error: {request.method} {request.url} error={type(e).__name__}: {e}")
            raise TransportError(f"Cannot reach SDS at {request.url.host}: {e}") from e
        logger.debug(f"Response received: {request.method} {request.url} status={response.status_code}")
        return response

    def _status_accepted(self, status_code: int, any_2xx: bool) -> bool:
        if any_2xx or self.config.accept_any_2xx:
            return 200 <= status_code < 300
        return status_code == httpx.codes.OK

    def get(
        self,
        *segments: str,
        params: Optional[Mapping[str, object]] = None,
        config_id: Optional[str] = None,
        stream: bool = False,
        any_2xx: bool = False,
    ) -> httpx.Response:
        """
        Issue a GET against the SDS.

        Args:
            *segments: Path segments below the base URL
            params: Optional query parameters
            config_id: Tenant/config identifier selecting the API key
            stream: Leave the body unread; the caller must close the response
            any_2xx: Accept the whole 2xx range for this call

        Returns:
            httpx.Response

        Raises:
            TransportError: If the SDS is unreachable
            RemoteProtocolError: If the status is not accepted
        """
        request = self.session.build_request(
            "GET",
            self.url_join(*segments),
            params=params,
            headers=self.headers(config_id),
        )
        response = self._send(request, stream=stream)

        if not self._status_accepted(response.status_code, any_2xx):
            response.close()
            logger.warning(f"Rejected SDS response: GET {request.url} status={response.status_code}")
            raise RemoteProtocolError(response.status_code)

        return response

    def get_json(
        self,
        *segments: str,
        model: Type[T],
        params: Optional[Mapping[str, object]] = None,
        config_id: Optional[str] = None,
        any_2xx: bool = False,
    ) -> T:
        """GET and decode the JSON body into ``model``."""
        response = self.get(*segments, params=params, config_id=config_id, any_2xx=any_2xx)
        return decode_body(response.content, model, status_code=response.status_code)

    def post_multipart(
        self,
        fields: Mapping[str, FormField],
        *segments: str,
        config_id: Optional[str] = None,
    ) -> UploadResponse:
        """
        Upload a multipart form to the SDS.

        Args:
            fields: Form fields (see gateway.multipart.spool_form)
            *segments: Path segments, defaults to the files endpoint
            config_id: Tenant/config identifier selecting the API key

        Returns:
            Decoded UploadResponse

        Raises:
            LocalIOError: If the body cannot be spooled
            TransportError: If the SDS is unreachable
            RemoteApplicationError: If the SDS answers 4xx/5xx with an error body
            RemoteProtocolError: If the SDS answers with a non-2xx, non-error status
            DecodeError: If the error or success body cannot be decoded
        """
        url = self.url_join(*(segments or (FILES_ENDPOINT,)))
        headers = self.headers(config_id)

        with spool_form(fields) as form:
            headers["Content-Type"] = form.content_type
            headers["Content-Length"] = str(form.content_length)
            request = self.session.build_request("POST", url, content=form.file, headers=headers)
            response = self._send(request)

        if response.status_code >= httpx.codes.BAD_REQUEST:
            body = decode_body(response.content, RemoteErrorBody, status_code=response.status_code)
            logger.warning(f"SDS rejected upload: status={response.status_code} message={body.text()}")
            raise RemoteApplicationError(response.status_code, body.text())

        if not 200 <= response.status_code < 300:
            raise RemoteProtocolError(response.status_code)

        upload = decode_body(response.content, UploadResponse, status_code=response.status_code)
        logger.info(f"Upload accepted by SDS [id={upload.id}, bytes={form.content_length}]")
        return upload

    def close(self) -> None:
        """Close the HTTP session."""
        self.session.close()

    def __enter__(self) -> 'SdsTransport':
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()
