"""Cluster, node and connection models."""

from __future__ import annotations

from enum import Enum
from typing import TYPE_CHECKING, Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

if TYPE_CHECKING:
    from manager.config import DeploymentSettings


def majority(n: int) -> int:
    """Smallest number of nodes that is more than half of n."""
    if n < 1:
        raise ValueError(f"Cluster size must be at least 1, got {n}")
    return n // 2 + 1


class HealthColor(str, Enum):
    """Cluster health color, ordered red < yellow < green."""
    RED = "red"
    YELLOW = "yellow"
    GREEN = "green"

    @property
    def rank(self) -> int:
        return _COLOR_RANK[self]

    def satisfies(self, required: "HealthColor") -> bool:
        """True when this color is at least as healthy as required."""
        return self.rank >= HealthColor(required).rank


_COLOR_RANK = {
    HealthColor.RED: 0,
    HealthColor.YELLOW: 1,
    HealthColor.GREEN: 2,
}


class ClusterTest(BaseModel):
    """Test-wide configuration handed over by the harness."""
    model_config = ConfigDict(frozen=True)

    nodes: list[str] = Field(..., min_length=1, description="Hostnames or IPs of the nodes")
    tarball_url: Optional[str] = Field(default=None, description="Database tarball location")
    options: dict[str, Any] = Field(default_factory=dict)

    @field_validator("nodes")
    @classmethod
    def _unique_nodes(cls, nodes: list[str]) -> list[str]:
        if len(set(nodes)) != len(nodes):
            raise ValueError("Node list contains duplicates")
        return nodes


class ClusterConfig(BaseModel):
    """Per-node values substituted into the database configuration file."""
    model_config = ConfigDict(frozen=True)

    node_name: str
    host_address: str
    size: int
    majority: int
    peers: list[str]
    cluster_name: str = "crate"
    http_port: int = 44200
    transport_port: int = 44300
    psql_port: int = 55432

    @classmethod
    def for_node(
        cls,
        node: str,
        test: ClusterTest,
        settings: "DeploymentSettings",
        host_address: str,
    ) -> "ClusterConfig":
        n = len(test.nodes)
        return cls(
            node_name=node,
            host_address=host_address,
            size=n,
            majority=majority(n),
            peers=[f"{peer}:{settings.transport_port}" for peer in test.nodes],
            cluster_name=settings.cluster_name,
            http_port=settings.http_port,
            transport_port=settings.transport_port,
            psql_port=settings.psql_port,
        )

    @property
    def unicast_hosts(self) -> str:
        """Peer list as quoted, comma-joined entries."""
        return ", ".join(f'"{peer}"' for peer in self.peers)


class ConnectionSpec(BaseModel):
    """Descriptor handed to a SQL connector to reach one node."""
    model_config = ConfigDict(frozen=True)

    dbtype: str = "crate"
    driver: str = "crate"
    dbname: str = "test"
    user: str = "crate"
    password: str = ""
    host: str
    port: int = 55432

    @classmethod
    def for_node(cls, node: str, settings: "DeploymentSettings") -> "ConnectionSpec":
        return cls(
            dbtype=settings.db_type,
            driver=settings.db_driver,
            dbname=settings.db_name,
            user=settings.db_user,
            password=settings.db_password,
            host=node,
            port=settings.psql_port,
        )

    @property
    def dsn(self) -> str:
        """PostgreSQL wire protocol URL for this node."""
        auth = self.user if not self.password else f"{self.user}:{self.password}"
        return f"postgresql://{auth}@{self.host}:{self.port}/{self.dbname}"
