"""Remote store clients."""

from .gateway import (
    DEFAULT_BLOB_URL,
    BlobStoreGateway,
    PushOutcome,
    RemoteGateway,
    RemoteGatewayError,
    RemoteMode,
    WebhookGateway,
    build_gateway,
)

__all__ = [
    "DEFAULT_BLOB_URL",
    "BlobStoreGateway",
    "PushOutcome",
    "RemoteGateway",
    "RemoteGatewayError",
    "RemoteMode",
    "WebhookGateway",
    "build_gateway",
]
