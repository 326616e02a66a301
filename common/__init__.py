"""Common utilities and models shared across the manager."""

from common.models.outcome import OpType, ErrorTag, Operation
from common.models.cluster import HealthColor, ClusterTest, ClusterConfig, ConnectionSpec
from common.models.document import StoredDocument

__all__ = [
    "OpType",
    "ErrorTag",
    "Operation",
    "HealthColor",
    "ClusterTest",
    "ClusterConfig",
    "ConnectionSpec",
    "StoredDocument",
]
