"""Custom exceptions for wpsyncz.

Every error is terminal for the current invocation: nothing is retried, and
the CLI turns any ``WpSynczError`` into a message and a non-zero exit.
"""

from typing import Optional


class WpSynczError(Exception):
    """Base exception for all wpsyncz errors."""


class ConfigurationError(WpSynczError):
    """Unknown or misconfigured environment, or invalid arguments."""


class UnknownEnvironmentError(ConfigurationError):
    """Environment name is not configured or lacks connection info."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Alias {name} is not configured.")


class CompatibilityError(WpSynczError):
    """Protocol version mismatch between two environments."""

    def __init__(self, message: str, local_version: int, remote_version: int):
        self.local_version = local_version
        self.remote_version = remote_version
        super().__init__(message)


class OutdatedRemoteError(CompatibilityError):
    """The remote runs an older protocol version than this machine."""


class NewerRemoteError(CompatibilityError):
    """The remote runs a newer protocol version than this machine."""


class RemoteUnavailableError(WpSynczError):
    """The engine is not reachable or not installed on a remote."""


class CommandError(WpSynczError):
    """A command exited with a non-zero status."""

    def __init__(
        self,
        exit_code: int,
        stderr: str,
        argv: Optional[list] = None,
        message: Optional[str] = None,
    ):
        self.exit_code = exit_code
        self.stderr = stderr
        self.argv = argv
        if message is None:
            detail = stderr.strip() or "no error output"
            message = f"Command failed with exit code {exit_code}: {detail}"
        super().__init__(message)


class TransferError(WpSynczError):
    """A file copy between environments failed."""

    def __init__(self, message: str, exit_code: Optional[int] = None, output: str = ""):
        self.exit_code = exit_code
        self.output = output
        super().__init__(message)


class WorkingDirError(WpSynczError):
    """The working directory is missing and cannot be created, or unwritable."""


class ConfirmationDeclined(WpSynczError):
    """The operator rejected a destructive step."""
