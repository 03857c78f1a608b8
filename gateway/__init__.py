"""SDS gateway: moves file content to the SDS and keeps fixed-width pointers locally."""

from gateway.config import GatewayConfig, load_config
from gateway.exceptions import (
    ConfigError,
    DecodeError,
    GatewayError,
    LocalIOError,
    MalformedPointer,
    ObjectNotFoundError,
    RemoteApplicationError,
    RemoteProtocolError,
    TransportError,
)
from gateway.recovery import RecoveryResult, RecoveryRunner, recover
from gateway.sds import RemoteObject, SdsGateway
from gateway.transport import SdsTransport

__all__ = [
    "ConfigError",
    "DecodeError",
    "GatewayConfig",
    "GatewayError",
    "LocalIOError",
    "MalformedPointer",
    "ObjectNotFoundError",
    "RecoveryResult",
    "RecoveryRunner",
    "RemoteApplicationError",
    "RemoteObject",
    "RemoteProtocolError",
    "SdsGateway",
    "SdsTransport",
    "TransportError",
    "load_config",
    "recover",
]
