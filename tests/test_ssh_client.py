"""Unit tests for the SSH client."""

import asyncio

import pytest
from unittest.mock import AsyncMock, MagicMock, patch

from manager.deployment.ssh_client import SSHClient
from manager.errors import RemoteCommandError, SetupError


def fake_process(returncode=0, stdout=b"", stderr=b""):
    proc = MagicMock()
    proc.returncode = returncode
    proc.communicate = AsyncMock(return_value=(stdout, stderr))
    proc.wait = AsyncMock(return_value=returncode)
    return proc


class TestBuildCommand:
    """Tests for SSH command construction."""

    def test_key_less(self):
        cmd = SSHClient("n1", username="admin", port=2222)._build_ssh_command("uptime")

        assert cmd[0] == "ssh"
        assert "admin@n1" in cmd
        assert cmd[-1] == "uptime"
        assert cmd[cmd.index("-p") + 1] == "2222"

    def test_password_uses_sshpass(self):
        cmd = SSHClient("n1", password="secret")._build_ssh_command("uptime")

        assert cmd[:3] == ["sshpass", "-p", "secret"]
        assert cmd[3] == "ssh"

    def test_key_path(self, tmp_path):
        key = tmp_path / "id_rsa"
        key.write_text("key")

        cmd = SSHClient("n1", private_key_path=str(key))._build_ssh_command("uptime")

        assert cmd[cmd.index("-i") + 1] == str(key)


class TestWrap:
    """Tests for privilege and directory wrapping."""

    def test_plain(self):
        assert SSHClient.wrap("ls") == "ls"

    def test_sudo(self):
        assert SSHClient.wrap("sysctl -a", sudo=True) == "sudo sh -c 'sysctl -a'"

    def test_as_user_with_cwd(self):
        wrapped = SSHClient.wrap("bin/crate", as_user="crate", cwd="/opt/crate")

        assert wrapped == "sudo -u crate sh -c 'cd /opt/crate && bin/crate'"


@pytest.mark.asyncio
class TestRunCommand:
    """Tests for remote command execution."""

    async def test_success(self):
        proc = fake_process(stdout=b"ok\n")
        with patch("asyncio.create_subprocess_exec", AsyncMock(return_value=proc)) as spawn:
            result = await SSHClient("n1").run_command("echo ok")

        assert result.success
        assert result.stdout == "ok\n"
        assert spawn.call_args.args[-1] == "echo ok"

    async def test_failure_raises(self):
        proc = fake_process(returncode=2, stderr=b"no such file")
        with patch("asyncio.create_subprocess_exec", AsyncMock(return_value=proc)):
            with pytest.raises(RemoteCommandError) as excinfo:
                await SSHClient("n1").run_command("cat /nope")

        assert excinfo.value.exit_code == 2
        assert excinfo.value.hostname == "n1"
        assert "no such file" in str(excinfo.value)
        assert isinstance(excinfo.value, SetupError)

    async def test_failure_tolerated(self):
        proc = fake_process(returncode=1)
        with patch("asyncio.create_subprocess_exec", AsyncMock(return_value=proc)):
            result = await SSHClient("n1").run_command("pkill x", raise_on_error=False)

        assert not result.success

    async def test_timeout_kills_process(self):
        proc = fake_process()

        async def hang():
            await asyncio.sleep(10)

        proc.communicate = hang
        with patch("asyncio.create_subprocess_exec", AsyncMock(return_value=proc)):
            with pytest.raises(RemoteCommandError, match="timed out"):
                await SSHClient("n1").run_command("sleep 100", timeout=0.05)

        proc.kill.assert_called_once()

    async def test_put_text_heredoc(self):
        proc = fake_process()
        with patch("asyncio.create_subprocess_exec", AsyncMock(return_value=proc)) as spawn:
            await SSHClient("n1").put_text("a: 1", "/opt/crate/config/crate.yml", as_user="crate")

        remote = spawn.call_args.args[-1]
        assert remote.startswith("sudo -u crate sh -c")
        assert "/opt/crate/config/crate.yml" in remote
        assert "a: 1" in remote

    async def test_put_text_keeps_content_exact(self):
        proc = fake_process()
        with patch("asyncio.create_subprocess_exec", AsyncMock(return_value=proc)) as spawn:
            await SSHClient("n1").put_text("a: 1\nb: 2\n", "/tmp/x.yml")

        remote = spawn.call_args.args[-1]
        assert remote.endswith("a: 1\nb: 2\nCRATE_EOF")

    async def test_put_text_terminates_last_line(self):
        proc = fake_process()
        with patch("asyncio.create_subprocess_exec", AsyncMock(return_value=proc)) as spawn:
            await SSHClient("n1").put_text("a: 1", "/tmp/x.yml")

        assert spawn.call_args.args[-1].endswith("a: 1\nCRATE_EOF")
