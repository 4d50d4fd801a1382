"""Copies the wpsyncz engine onto a remote environment."""

import logging
from pathlib import Path
from typing import Optional

from .config import LOCAL_ALIAS, REMOTE_LIB_DIR
from .environment import EnvironmentResolver
from .exceptions import ConfigurationError
from .output import OutputFormatter
from .reconcile import ConfirmGate
from .transport import Transport

logger = logging.getLogger(__name__)

PACKAGE_DIR = Path(__file__).resolve().parent


class Installer:
    """Installs this package into the remote's ``~/.wpsyncz/lib``.

    The remote engine command (see ``SynczConfig.remote_engine``) runs it
    from there with the remote's ``python3``, which needs click, rich and
    PyYAML.
    """

    def __init__(
        self,
        resolver: EnvironmentResolver,
        transport: Transport,
        output: Optional[OutputFormatter] = None,
        package_dir: Path = PACKAGE_DIR,
    ):
        self.resolver = resolver
        self.transport = transport
        self.output = output or OutputFormatter()
        self.package_dir = package_dir

    def install(self, destination: str, confirm: ConfirmGate) -> str:
        """Install the engine on a remote environment.

        Returns:
            Installation directory, relative to the remote home

        Raises:
            ConfigurationError: If the destination is not a remote alias
        """
        env = self.resolver.resolve(destination)
        if not env.is_remote:
            raise ConfigurationError(f"Alias {env} must be a remote alias.")

        target = f"{REMOTE_LIB_DIR}/{self.package_dir.name}"
        self.output.warning(f"This will replace any wpsyncz installed on {env}.")
        confirm()

        self.output.info(f"Installing wpsyncz to {env}...")
        self.transport.run(env, ["rm", "-rf", target])
        self.transport.run(env, ["mkdir", "-p", target])
        self.transport.copy(
            self.resolver.resolve(LOCAL_ALIAS),
            str(self.package_dir),
            env,
            target,
            recursive=True,
        )
        logger.debug(f"Copied {self.package_dir} to {env}:{target}")
        self.output.info(f"wpsyncz installed to ~/{target} on {env}.")
        return target
