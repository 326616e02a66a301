"""Install, configure and start the database on a single node."""

from __future__ import annotations

import logging
import shlex
from pathlib import Path
from string import Template
from typing import Awaitable, Callable, Optional

from common.models.cluster import ClusterConfig, HealthColor
from manager.config import DeploymentSettings
from manager.deployment.ssh_client import SSHClient
from manager.errors import TemplateRenderError

logger = logging.getLogger(__name__)

TEMPLATE_DIR = Path(__file__).parent / "templates"
CLUSTER_TEMPLATE = "crate.yml"
ENVIRONMENT_TEMPLATE = "crate.in.sh"

HealthGate = Callable[..., Awaitable[None]]


def load_template(name: str) -> str:
    return (TEMPLATE_DIR / name).read_text()


def _substitute(name: str, template: str, values: dict[str, object]) -> str:
    try:
        return Template(template).substitute(values)
    except KeyError as e:
        raise TemplateRenderError(name, e.args[0]) from e
    except ValueError as e:
        raise TemplateRenderError(name) from e


def render_cluster_config(cfg: ClusterConfig, template: Optional[str] = None) -> str:
    """Substitute a node's cluster values into the configuration template."""
    if template is None:
        template = load_template(CLUSTER_TEMPLATE)
    return _substitute(CLUSTER_TEMPLATE, template, {
        "node_name": cfg.node_name,
        "host_address": cfg.host_address,
        "cluster_size": cfg.size,
        "majority": cfg.majority,
        "unicast_hosts": cfg.unicast_hosts,
        "cluster_name": cfg.cluster_name,
        "http_port": cfg.http_port,
        "transport_port": cfg.transport_port,
        "psql_port": cfg.psql_port,
    })


def render_environment(settings: DeploymentSettings, template: Optional[str] = None) -> str:
    """Render the runtime environment script."""
    if template is None:
        template = load_template(ENVIRONMENT_TEMPLATE)
    return _substitute(ENVIRONMENT_TEMPLATE, template, {
        "heap_size": settings.heap_size,
    })


async def install(ssh: SSHClient, settings: DeploymentSettings, tarball_url: str) -> None:
    """Install system packages, the service user and the database tarball."""
    packages = " ".join(shlex.quote(p) for p in [*settings.system_packages, settings.java_package])
    user = shlex.quote(settings.user)
    base_dir = shlex.quote(settings.base_dir)
    archive = "/tmp/crate.tar.gz"
    timeout = settings.command_timeout

    await ssh.run_command(
        "apt-get update -q && "
        f"DEBIAN_FRONTEND=noninteractive apt-get install -y -q {packages}",
        timeout=timeout, sudo=True,
    )
    await ssh.run_command(
        f"id -u {user} >/dev/null 2>&1 || useradd --create-home --shell /bin/bash {user}",
        sudo=True,
    )
    await ssh.run_command(
        f"rm -rf {base_dir} && mkdir -p {base_dir} && "
        f"curl -fsSL -o {archive} {shlex.quote(tarball_url)} && "
        f"tar -xzf {archive} -C {base_dir} --strip-components=1",
        timeout=timeout, sudo=True,
    )
    await ssh.run_command(f"chown -R {user}:{user} {base_dir}", sudo=True)
    logger.info(f"{ssh.hostname} crate installed")


async def configure(ssh: SSHClient, cfg: ClusterConfig, settings: DeploymentSettings) -> None:
    """Write the rendered cluster configuration and environment files."""
    await ssh.put_text(render_cluster_config(cfg), settings.config_file, as_user=settings.user)
    await ssh.put_text(render_environment(settings), settings.environment_file, as_user=settings.user)
    logger.info(f"{ssh.hostname} configured")


def daemon_command(settings: DeploymentSettings) -> str:
    """start-stop-daemon invocation that backgrounds the server."""
    return (
        "start-stop-daemon --start --background --no-close --oknodo "
        f"--make-pidfile --pidfile {shlex.quote(settings.pidfile)} "
        f"--chdir {shlex.quote(settings.base_dir)} "
        f"--exec {shlex.quote(settings.base_dir + '/bin/crate')} "
        f">> {shlex.quote(settings.stdout_logfile)} 2>&1"
    )


async def start(
    ssh: SSHClient,
    node: str,
    settings: DeploymentSettings,
    health_gate: HealthGate,
) -> None:
    """Start the daemon and block until the cluster is healthy."""
    logger.info(f"{node} starting crate")
    await ssh.run_command(f"sysctl -w vm.max_map_count={settings.max_map_count}", sudo=True)
    await ssh.run_command(f"mkdir -p {shlex.quote(settings.log_dir)}", as_user=settings.user)
    await ssh.run_command(daemon_command(settings), as_user=settings.user, cwd=settings.base_dir)
    await health_gate(
        node,
        settings.startup_timeout,
        HealthColor(settings.startup_color),
        port=settings.http_port,
        poll_interval=settings.health_poll_interval,
    )
    logger.info(f"{node} crate started")
