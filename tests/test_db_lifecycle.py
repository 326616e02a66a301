"""Unit tests for the CrateDB lifecycle object."""

import pytest
from unittest.mock import AsyncMock

from common.models.cluster import ClusterTest, HealthColor
from manager.deployment.db_lifecycle import CrateDB, setup_cluster, teardown_cluster
from manager.errors import RemoteCommandError, SetupTimeoutError
from fakes import FakeSSHClient


def resolver(node: str) -> str:
    return f"10.0.0.{node.lstrip('n')}"


@pytest.fixture
def gate():
    return AsyncMock()


@pytest.fixture
def db(settings, fake_ssh_factory, gate):
    return CrateDB(
        settings=settings,
        ssh_factory=fake_ssh_factory,
        resolver=resolver,
        health_gate=gate,
    )


@pytest.mark.asyncio
class TestSetup:
    """Tests for node setup."""

    async def test_setup_sequence(self, db, cluster_test, fake_ssh_factory, gate):
        await db.setup(cluster_test, "n2")

        ssh = fake_ssh_factory.clients["n2"]
        joined = "\n".join(ssh.commands)
        order = [
            joined.index("apt-get install"),
            joined.index("chown -R"),
            joined.index("crate.yml"),
            joined.index("sysctl"),
            joined.index("start-stop-daemon"),
        ]
        assert order == sorted(order)
        assert cluster_test.tarball_url in joined
        gate.assert_awaited_once()
        assert gate.await_args.args == ("n2", 90, HealthColor.GREEN)

    async def test_rendered_config_uses_resolved_address(self, db, cluster_test, fake_ssh_factory):
        await db.setup(cluster_test, "n4")

        config = fake_ssh_factory.clients["n4"].files["/opt/crate/config/crate.yml"]
        assert "network.host: 10.0.0.4" in config
        assert "node.name: n4" in config

    async def test_constructor_tarball_wins(self, settings, fake_ssh_factory, gate, cluster_test):
        db = CrateDB(
            "file:///tmp/crate.tar.gz",
            settings=settings,
            ssh_factory=fake_ssh_factory,
            resolver=resolver,
            health_gate=gate,
        )

        await db.setup(cluster_test, "n1")

        assert "file:///tmp/crate.tar.gz" in "\n".join(fake_ssh_factory.clients["n1"].commands)

    async def test_missing_tarball(self, db):
        with pytest.raises(ValueError, match="tarball"):
            await db.setup(ClusterTest(nodes=["n1"]), "n1")

    async def test_install_failure_aborts(self, settings, gate, cluster_test):
        ssh = FakeSSHClient("n1", fail_on="apt-get")
        db = CrateDB(settings=settings, ssh_factory=lambda node: ssh,
                     resolver=resolver, health_gate=gate)

        with pytest.raises(RemoteCommandError):
            await db.setup(cluster_test, "n1")

        assert len(ssh.commands) == 1
        gate.assert_not_awaited()

    async def test_timeout_distinct_from_install_failure(self, settings, fake_ssh_factory, cluster_test):
        db = CrateDB(
            settings=settings,
            ssh_factory=fake_ssh_factory,
            resolver=resolver,
            health_gate=AsyncMock(side_effect=SetupTimeoutError("n1", 90)),
        )

        with pytest.raises(SetupTimeoutError) as excinfo:
            await db.setup(cluster_test, "n1")

        assert not isinstance(excinfo.value, RemoteCommandError)

    async def test_setup_cluster_runs_every_node(self, db, cluster_test, fake_ssh_factory, gate):
        await setup_cluster(db, cluster_test)

        assert set(fake_ssh_factory.clients) == set(cluster_test.nodes)
        assert gate.await_count == len(cluster_test.nodes)


@pytest.mark.asyncio
class TestTeardown:
    """Tests for node teardown."""

    async def test_teardown_commands(self, db, cluster_test, fake_ssh_factory):
        await db.teardown(cluster_test, "n1")

        commands = fake_ssh_factory.clients["n1"].commands
        assert "pkill -9 -f" in commands[0]
        assert "[c]rate" in commands[0]
        assert "rm -rf /opt/crate/logs/* /opt/crate/data/*" in commands[1]

    async def test_missing_process_is_not_an_error(self, settings, cluster_test):
        ssh = FakeSSHClient("n1", fail_on="pkill")
        db = CrateDB(settings=settings, ssh_factory=lambda node: ssh)

        await db.teardown(cluster_test, "n1")

        assert len(ssh.commands) == 2

    async def test_teardown_cluster(self, db, cluster_test, fake_ssh_factory):
        await teardown_cluster(db, cluster_test)

        assert set(fake_ssh_factory.clients) == set(cluster_test.nodes)


class TestLogFilesAndConnections:
    """Tests for log discovery and connection specs."""

    def test_log_files(self, db, cluster_test):
        assert db.log_files(cluster_test, "n1") == ["/opt/crate/logs/crate.log"]

    def test_connection_spec(self, db):
        spec = db.connection_spec("n5")

        assert spec.host == "n5"
        assert spec.port == 55432
        assert spec.dbname == "test"
