"""Data models shared across services and domain logic."""

from .operation_status import OperationStatus
from .restream import BroadcastResult, IngestEndpoint, LiveStreamResult, RestreamDestination
from .restream_config import RestreamConfig, StreamMode
from .tokens import AccountToken, ResourceToken, ValidationPolicy

__all__ = [
    "AccountToken",
    "BroadcastResult",
    "IngestEndpoint",
    "LiveStreamResult",
    "OperationStatus",
    "ResourceToken",
    "RestreamConfig",
    "RestreamDestination",
    "StreamMode",
    "ValidationPolicy",
]
