"""Pytest configuration and shared fixtures."""

from __future__ import annotations

import pytest

from common.models.cluster import ClusterTest
from fakes import FakeIndexStore, FakeSSHClient
from manager.config import DeploymentSettings


@pytest.fixture
def settings() -> DeploymentSettings:
    """Deployment settings with fast retry budgets."""
    return DeploymentSettings(
        index_connect_backoff=0.0,
        overload_backoff=0.0,
    )


@pytest.fixture
def cluster_test() -> ClusterTest:
    """Five-node test configuration."""
    return ClusterTest(
        nodes=["n1", "n2", "n3", "n4", "n5"],
        tarball_url="https://cdn.crate.io/downloads/releases/crate-4.8.4.tar.gz",
    )


@pytest.fixture
def fake_store() -> FakeIndexStore:
    return FakeIndexStore()


@pytest.fixture
def fake_ssh_factory():
    """Factory returning one recording SSH client per node."""
    clients: dict[str, FakeSSHClient] = {}

    def factory(node: str) -> FakeSSHClient:
        if node not in clients:
            clients[node] = FakeSSHClient(node)
        return clients[node]

    factory.clients = clients
    return factory
