"""SSH client for remote command execution."""

from __future__ import annotations

import asyncio
import logging
import os
import shlex
from dataclasses import dataclass
from typing import Optional

from manager.errors import RemoteCommandError

logger = logging.getLogger(__name__)


@dataclass
class SSHCommandResult:
    """Result of an SSH command execution."""
    exit_code: int
    stdout: str
    stderr: str

    @property
    def success(self) -> bool:
        return self.exit_code == 0


class SSHClient:
    """Async SSH client using subprocess."""

    def __init__(
        self,
        hostname: str,
        username: str = "root",
        private_key_path: Optional[str] = None,
        password: Optional[str] = None,
        port: int = 22,
    ):
        self.hostname = hostname
        self.username = username
        self.private_key_path = private_key_path
        self.password = password
        self.port = port

    def _build_ssh_command(self, command: str) -> list[str]:
        """Build SSH command with proper options."""
        ssh_opts = [
            "-o", "StrictHostKeyChecking=no",
            "-o", "UserKnownHostsFile=/dev/null",
            "-o", "LogLevel=ERROR",
            "-o", "ConnectTimeout=10",
            "-p", str(self.port),
        ]

        if self.private_key_path and os.path.exists(self.private_key_path):
            ssh_opts.extend(["-i", self.private_key_path])

        ssh_cmd = ["ssh", *ssh_opts, f"{self.username}@{self.hostname}", command]
        if self.password:
            # Use sshpass for password authentication
            return ["sshpass", "-p", self.password, *ssh_cmd]
        return ssh_cmd

    @staticmethod
    def wrap(
        command: str,
        sudo: bool = False,
        as_user: Optional[str] = None,
        cwd: Optional[str] = None,
    ) -> str:
        """Wrap a shell command with a working directory and privilege change."""
        if cwd:
            command = f"cd {shlex.quote(cwd)} && {command}"
        if as_user:
            return f"sudo -u {shlex.quote(as_user)} sh -c {shlex.quote(command)}"
        if sudo:
            return f"sudo sh -c {shlex.quote(command)}"
        return command

    async def run_command(
        self,
        command: str,
        timeout: int = 60,
        raise_on_error: bool = True,
        sudo: bool = False,
        as_user: Optional[str] = None,
        cwd: Optional[str] = None,
    ) -> SSHCommandResult:
        """Execute a command on the remote host.

        Raises RemoteCommandError on a non-zero exit or timeout unless
        raise_on_error is False.
        """
        remote = self.wrap(command, sudo=sudo, as_user=as_user, cwd=cwd)
        ssh_cmd = self._build_ssh_command(remote)
        logger.debug(f"[{self.hostname}] $ {remote}")

        proc = await asyncio.create_subprocess_exec(
            *ssh_cmd,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
        try:
            stdout, stderr = await asyncio.wait_for(proc.communicate(), timeout=timeout)
            result = SSHCommandResult(
                exit_code=proc.returncode or 0,
                stdout=stdout.decode(errors='replace'),
                stderr=stderr.decode(errors='replace'),
            )
        except asyncio.TimeoutError:
            proc.kill()
            await proc.wait()
            result = SSHCommandResult(
                exit_code=-1,
                stdout="",
                stderr=f"Command timed out after {timeout}s",
            )

        if raise_on_error and not result.success:
            raise RemoteCommandError(self.hostname, remote, result.exit_code, result.stderr)
        return result

    async def put_text(
        self,
        content: str,
        remote_path: str,
        sudo: bool = False,
        as_user: Optional[str] = None,
    ) -> SSHCommandResult:
        """Write text content to a remote file.

        The heredoc always ends the file with a newline, so content that
        already ends with one is written unchanged.
        """
        if not content.endswith("\n"):
            content += "\n"
        command = f"cat > {shlex.quote(remote_path)} << 'CRATE_EOF'\n{content}CRATE_EOF"
        return await self.run_command(command, timeout=30, sudo=sudo, as_user=as_user)
