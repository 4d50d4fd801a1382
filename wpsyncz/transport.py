"""Command execution and file transfer between environments.

Commands are always passed as argument vectors. For a remote environment
the vector is quoted with :func:`shlex.join` and handed to ssh, so values
such as search/replace strings never need manual escaping.
"""

import logging
import posixpath
import shlex
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Sequence

from .environment import EnvironmentDescriptor
from .exceptions import CommandError, TransferError

logger = logging.getLogger(__name__)

SSH_BINARY = "ssh"
SCP_BINARY = "scp"


@dataclass
class CommandResult:
    """Outcome of a command run through the transport."""

    stdout: str
    """Standard output"""

    stderr: str
    """Standard error"""

    exit_code: int
    """Process exit status"""

    @property
    def ok(self) -> bool:
        return self.exit_code == 0


class Transport:
    """Runs commands and copies files on local and remote environments."""

    def __init__(self, ssh_binary: str = SSH_BINARY, scp_binary: str = SCP_BINARY):
        self.ssh_binary = ssh_binary
        self.scp_binary = scp_binary

    def build_command(
        self, env: EnvironmentDescriptor, argv: Sequence[str]
    ) -> list[str]:
        """Build the local argument vector that runs ``argv`` on ``env``."""
        if not env.is_remote:
            return list(argv)

        command = [self.ssh_binary, "-T"]
        if env.port:
            command.extend(["-p", str(env.port)])
        command.extend([env.address, "--", shlex.join(argv)])
        return command

    def run(
        self,
        env: EnvironmentDescriptor,
        argv: Sequence[str],
        check: bool = True,
    ) -> CommandResult:
        """Run a command on an environment and wait for it.

        Args:
            env: Environment to run on
            argv: Command and arguments
            check: Raise CommandError on a non-zero exit status

        Returns:
            The command result

        Raises:
            CommandError: If the command fails and ``check`` is True, or
                the program cannot be started
        """
        command = self.build_command(env, argv)
        logger.debug(f"[{env.name}] Executing: {shlex.join(command)}")

        try:
            completed = subprocess.run(
                command,
                capture_output=True,
                text=True,
            )
        except OSError as e:
            raise CommandError(127, str(e), list(argv)) from e

        result = CommandResult(
            stdout=completed.stdout or "",
            stderr=completed.stderr or "",
            exit_code=completed.returncode,
        )
        if check and not result.ok:
            raise CommandError(result.exit_code, result.stderr, list(argv))
        return result

    def _copy_url(self, env: EnvironmentDescriptor, path: str) -> str:
        if env.is_remote:
            return f"{env.address}:{path.rstrip('/')}"
        return path

    def list_dir(self, env: EnvironmentDescriptor, path: str) -> list[str]:
        """Names of the entries of a directory, dotfiles included.

        Raises:
            TransferError: If the directory cannot be read
        """
        if not env.is_remote:
            try:
                return sorted(p.name for p in Path(path).iterdir())
            except OSError as e:
                raise TransferError(f"Cannot read {path}: {e}") from e

        try:
            result = self.run(env, ["ls", "-A", path])
        except CommandError as e:
            raise TransferError(
                f"Cannot read {env.name}:{path}: {e}", e.exit_code, e.stderr
            ) from e
        return sorted(name for name in result.stdout.splitlines() if name)

    def build_copy_command(
        self,
        src_env: EnvironmentDescriptor,
        src_path: str,
        dst_env: EnvironmentDescriptor,
        dst_path: str,
        recursive: bool = False,
    ) -> Optional[list[str]]:
        """Build the scp argument vector for a copy.

        A recursive copy lists the source directory first (through ssh for
        a remote source) and passes every entry to scp, so the contents of
        the directory are copied, not the directory itself.

        Returns:
            The command, or None when a recursive copy of an empty
            directory has nothing to transfer

        Raises:
            TransferError: If two remote environments use different ports,
                or the source directory cannot be listed
        """
        options = ["-C"]

        if src_env.is_remote and dst_env.is_remote:
            options.append("-3")
            if src_env.port != dst_env.port:
                raise TransferError(
                    "Cannot copy between remote servers with different ports "
                    f"({src_env.name}: {src_env.port}, {dst_env.name}: {dst_env.port})."
                )

        if src_env.is_remote:
            options.extend(["-P", str(src_env.port)])
        elif dst_env.is_remote:
            options.extend(["-P", str(dst_env.port)])

        if not recursive:
            sources = [self._copy_url(src_env, src_path)]
        else:
            options.append("-r")
            base = src_path.rstrip("/") or "/"
            sources = [
                self._copy_url(src_env, posixpath.join(base, name))
                for name in self.list_dir(src_env, src_path)
            ]
            if not sources:
                return None

        return [self.scp_binary, *options, *sources, self._copy_url(dst_env, dst_path)]

    def copy(
        self,
        src_env: EnvironmentDescriptor,
        src_path: str,
        dst_env: EnvironmentDescriptor,
        dst_path: str,
        recursive: bool = False,
    ) -> None:
        """Copy a file, or the contents of a directory, between environments.

        Args:
            src_env: Source environment
            src_path: Path on the source environment
            dst_env: Destination environment
            dst_path: Path on the destination environment
            recursive: Copy the contents of ``src_path`` into ``dst_path``

        Raises:
            TransferError: On port mismatch or a failed transfer
        """
        command = self.build_copy_command(
            src_env, src_path, dst_env, dst_path, recursive
        )

        if command is None:
            logger.debug(f"Nothing to copy from {src_env.name}:{src_path}")
            return

        logger.debug(f"Executing: {shlex.join(command)}")
        try:
            completed = subprocess.run(
                command,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                text=True,
            )
        except OSError as e:
            raise TransferError(f"SCP failed: {e}", 127, str(e)) from e

        if completed.returncode != 0:
            output = (completed.stdout or "").strip()
            raise TransferError(
                f"SCP failed: {output or 'exit code ' + str(completed.returncode)}",
                completed.returncode,
                output,
            )
