"""Environment descriptors and their resolution from alias configuration."""

import logging
from dataclasses import dataclass
from typing import Optional

from .config import DEFAULT_SSH_PORT, LOCAL_ALIAS, SynczConfig, normalize_alias
from .exceptions import UnknownEnvironmentError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EnvironmentDescriptor:
    """Identity and connection parameters of one environment."""

    name: str
    """``@local`` or an alias such as ``@production``"""

    is_remote: bool = False
    """True when commands must go through ssh"""

    host: Optional[str] = None
    """SSH host (remote only)"""

    user: Optional[str] = None
    """SSH user (remote only, optional)"""

    port: int = DEFAULT_SSH_PORT
    """SSH port (remote only)"""

    path: Optional[str] = None
    """WordPress root, passed to ``wp --path`` when set"""

    @property
    def address(self) -> str:
        """``[user@]host`` as understood by ssh and scp."""
        if not self.is_remote:
            raise ValueError(f"{self.name} is not a remote environment")
        if self.user:
            return f"{self.user}@{self.host}"
        return str(self.host)

    def __str__(self) -> str:
        return self.name


class EnvironmentResolver:
    """Turns environment names into descriptors."""

    def __init__(self, config: SynczConfig):
        self.config = config

    def resolve(self, name: str) -> EnvironmentDescriptor:
        """Resolve an environment name.

        Args:
            name: ``@local``, ``local`` or a configured alias

        Returns:
            The environment descriptor

        Raises:
            UnknownEnvironmentError: If the alias is not configured or
                has no connection info
        """
        name = normalize_alias(name)
        alias = self.config.get_alias(name)

        if name == LOCAL_ALIAS:
            path = self.config.local_path or (alias.path if alias else None)
            return EnvironmentDescriptor(name=name, path=path)

        if alias is None or not alias.is_remote:
            raise UnknownEnvironmentError(name)

        descriptor = EnvironmentDescriptor(
            name=name,
            is_remote=True,
            host=alias.host,
            user=alias.user,
            port=alias.port,
            path=alias.path,
        )
        logger.debug(f"Resolved {name} to {descriptor.address}:{descriptor.port}")
        return descriptor
