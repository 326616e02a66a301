"""Exceptions raised by the lifecycle and index-store code."""

from __future__ import annotations

from typing import Optional


class HarnessError(Exception):
    """Base class for all harness errors."""


class SetupError(HarnessError):
    """A node could not be installed, configured or started."""


class RemoteCommandError(SetupError):
    """A command run on a node exited with a non-zero status."""

    def __init__(self, hostname: str, command: str, exit_code: int, stderr: str = ""):
        self.hostname = hostname
        self.command = command
        self.exit_code = exit_code
        self.stderr = stderr
        super().__init__(
            f"Command failed on {hostname} (exit {exit_code}): {command}: {stderr.strip()}"
        )


class SetupTimeoutError(SetupError):
    """The cluster did not report the required health in time."""

    def __init__(self, node: str, timeout_secs: float):
        self.node = node
        self.timeout_secs = timeout_secs
        super().__init__(
            f"Timed out after {timeout_secs} s waiting for crate cluster recovery on {node}"
        )


class TemplateRenderError(HarnessError):
    """A configuration template references a value that is not provided."""

    def __init__(self, template_name: str, placeholder: Optional[str] = None):
        self.template_name = template_name
        self.placeholder = placeholder
        if placeholder is None:
            super().__init__(f"Invalid placeholder in {template_name}")
        else:
            super().__init__(f"Unresolved placeholder ${placeholder} in {template_name}")


class IndexStoreError(HarnessError):
    """The index store answered in an unexpected way."""


class NoNodeAvailableError(IndexStoreError):
    """No index-store node could be reached."""


class DocumentNotCreatedError(IndexStoreError):
    """The index store did not confirm creation of a document."""
