"""Common data models for the crate harness."""

from common.models.outcome import OpType, ErrorTag, Operation
from common.models.cluster import (
    HealthColor,
    ClusterTest,
    ClusterConfig,
    ConnectionSpec,
    majority,
)
from common.models.document import StoredDocument

__all__ = [
    "OpType",
    "ErrorTag",
    "Operation",
    "HealthColor",
    "ClusterTest",
    "ClusterConfig",
    "ConnectionSpec",
    "majority",
    "StoredDocument",
]
