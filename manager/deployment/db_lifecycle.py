"""Database lifecycle object driven by the test harness."""

from __future__ import annotations

import asyncio
import logging
import shlex
import socket
from typing import Callable, Optional

from common.models.cluster import ClusterConfig, ClusterTest, ConnectionSpec
from manager.config import DeploymentSettings, get_settings
from manager.deployment import bootstrap
from manager.deployment.bootstrap import HealthGate
from manager.deployment.ssh_client import SSHClient
from manager.prechecks.health import wait_for_health

logger = logging.getLogger(__name__)


class CrateDB:
    """Set up, tear down and locate logs of the database on each node."""

    def __init__(
        self,
        tarball_url: Optional[str] = None,
        settings: Optional[DeploymentSettings] = None,
        ssh_factory: Optional[Callable[[str], SSHClient]] = None,
        resolver: Callable[[str], str] = socket.gethostbyname,
        health_gate: HealthGate = wait_for_health,
    ):
        self.tarball_url = tarball_url
        self.settings = settings or get_settings()
        self.ssh_factory = ssh_factory or self._default_ssh
        self.resolver = resolver
        self.health_gate = health_gate

    def _default_ssh(self, node: str) -> SSHClient:
        return SSHClient(
            hostname=node,
            username=self.settings.ssh_user,
            private_key_path=self.settings.ssh_key_path,
            password=self.settings.ssh_password,
            port=self.settings.ssh_port,
        )

    async def cluster_config(self, test: ClusterTest, node: str) -> ClusterConfig:
        host_address = await asyncio.to_thread(self.resolver, node)
        return ClusterConfig.for_node(node, test, self.settings, host_address)

    async def setup(self, test: ClusterTest, node: str) -> None:
        """Install, configure and start the database on a node."""
        tarball_url = self.tarball_url or test.tarball_url
        if not tarball_url:
            raise ValueError("No tarball URL configured for the database")

        ssh = self.ssh_factory(node)
        cfg = await self.cluster_config(test, node)
        await bootstrap.install(ssh, self.settings, tarball_url)
        await bootstrap.configure(ssh, cfg, self.settings)
        await bootstrap.start(ssh, node, self.settings, self.health_gate)

    async def teardown(self, test: ClusterTest, node: str) -> None:
        """Kill the database and wipe its logs and data."""
        ssh = self.ssh_factory(node)
        name = self.settings.daemon_name
        # Bracketed first letter keeps pkill from matching its own shell.
        await ssh.run_command(
            f"pkill -9 -f {shlex.quote(f'[{name[0]}]{name[1:]}')}",
            sudo=True, raise_on_error=False,
        )
        logger.info(f"{node} killed")
        await ssh.run_command(
            f"rm -rf {shlex.quote(self.settings.log_dir)}/* {shlex.quote(self.settings.data_dir)}/*",
            sudo=True,
        )

    def log_files(self, test: ClusterTest, node: str) -> list[str]:
        return [self.settings.service_logfile]

    def connection_spec(self, node: str) -> ConnectionSpec:
        return ConnectionSpec.for_node(node, self.settings)


async def setup_cluster(db: CrateDB, test: ClusterTest) -> None:
    """Set up every node concurrently; the first failure propagates."""
    await asyncio.gather(*(db.setup(test, node) for node in test.nodes))


async def teardown_cluster(db: CrateDB, test: ClusterTest) -> None:
    """Tear down every node concurrently."""
    await asyncio.gather(*(db.teardown(test, node) for node in test.nodes))
