"""Exception taxonomy for the provisioning engine."""

from __future__ import annotations


class ProvisionerError(Exception):
    """Base class for all provisioning failures."""


class ConfigValidationError(ProvisionerError):
    """The resource attributes are invalid; raised before any connection."""


class TransportError(ProvisionerError):
    """Connecting, authenticating or streaming to the remote host failed."""


class CommandFailedError(ProvisionerError):
    """A remote command finished with a non-zero exit status."""

    def __init__(
        self,
        command: str,
        exit_status: int,
        stdout: str = "",
        stderr: str = "",
    ) -> None:
        super().__init__(f"command {command!r} exited with status {exit_status}")
        self.command = command
        self.exit_status = exit_status
        self.stdout = stdout
        self.stderr = stderr


class DeadlineExceededError(ProvisionerError):
    """The apply deadline elapsed."""

    def __init__(self, timeout: float) -> None:
        super().__init__(f"deadline exceeded after {timeout:g}s")
        self.timeout = timeout


class FileSyncError(ProvisionerError):
    """A file could not be synchronised before the deadline."""

    def __init__(self, destination: str, cause: BaseException, timeout: float) -> None:
        super().__init__(f"{DeadlineExceededError(timeout)}: {destination}: {cause}")
        self.destination = destination
        self.cause = cause


class StateMigrationError(ProvisionerError):
    """A persisted state record cannot be upgraded."""
