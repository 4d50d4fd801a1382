"""Alias configuration for wpsyncz.

Aliases are read from the WP-CLI configuration files, so an alias that works
with ``wp @production ...`` works with wpsyncz as well::

    @production:
      ssh: deploy@example.com:2222/var/www/html
    @staging:
      ssh: staging.example.com
      path: /srv/staging

Files are merged in order: the global config, the nearest project
``wp-cli.yml`` and ``wp-cli.local.yml``, then any explicit ``--config``
files. A later file overrides aliases of the same name.
"""

import logging
import os
import re
import shlex
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import Any, Iterable, Mapping, Optional

import yaml

from .exceptions import ConfigurationError

logger = logging.getLogger(__name__)

LOCAL_ALIAS = "@local"
"""Reserved name for the environment of this machine"""

DEFAULT_SSH_PORT = 22

DEFAULT_WP_BINARY = "wp"

# Where `wpsyncz install` puts the engine, relative to the remote home.
REMOTE_LIB_DIR = ".wpsyncz/lib"

DEFAULT_REMOTE_ENGINE: tuple[str, ...] = (
    "env",
    f"PYTHONPATH={REMOTE_LIB_DIR}",
    "python3",
    "-m",
    "wpsyncz",
)

PROJECT_CONFIG_FILES = ("wp-cli.yml", "wp-cli.local.yml")

# WP-CLI accepts unquoted `@alias:` keys, which YAML reserves.
_ALIAS_KEY_RE = re.compile(r"^(\s*)(@[\w.-]+)(\s*:)", re.MULTILINE)

_SSH_URL_RE = re.compile(
    r"^(?:(?P<scheme>[a-z-]+):(?!\d))?"
    r"(?:(?P<user>[^@:]+)@)?"
    r"(?P<host>[^:/~]+)"
    r"(?::(?P<port>\d*))?"
    r"(?P<path>[/~].*)?$"
)


def normalize_alias(name: str) -> str:
    """Normalize an environment name to its ``@``-prefixed form.

    Examples:
        >>> normalize_alias("production")
        '@production'
        >>> normalize_alias("@local")
        '@local'
    """
    name = name.strip()
    if not name.startswith("@"):
        name = "@" + name
    return name


def parse_ssh_url(url: str) -> dict[str, Any]:
    """Split a WP-CLI ``ssh`` value into its parts.

    Args:
        url: Value such as ``ssh:deploy@example.com:2222/var/www``

    Returns:
        Dictionary with ``host``, ``user``, ``port`` and ``path`` keys
        (``user`` and ``path`` may be None, ``port`` defaults to 22)

    Raises:
        ConfigurationError: If the value cannot be parsed or uses a
            scheme other than ssh

    Examples:
        >>> parse_ssh_url("deploy@example.com:2222/var/www")["port"]
        2222
        >>> parse_ssh_url("example.com")["user"] is None
        True
    """
    match = _SSH_URL_RE.match(url.strip())
    if not match:
        raise ConfigurationError(f"Invalid ssh value: {url!r}")

    scheme = match.group("scheme")
    if scheme and scheme != "ssh":
        raise ConfigurationError(
            f"Unsupported connection scheme {scheme!r} in {url!r}, only ssh is supported"
        )

    port = match.group("port")
    return {
        "host": match.group("host"),
        "user": match.group("user"),
        "port": int(port) if port else DEFAULT_SSH_PORT,
        "path": match.group("path"),
    }


@dataclass(frozen=True)
class AliasConfig:
    """Connection parameters of one configured alias."""

    name: str
    """Alias name including the leading ``@``"""

    host: Optional[str] = None
    """SSH host, None for an alias without connection info"""

    user: Optional[str] = None
    """SSH user (optional)"""

    port: int = DEFAULT_SSH_PORT
    """SSH port"""

    path: Optional[str] = None
    """WordPress root on that environment, passed to ``wp --path``"""

    @property
    def is_remote(self) -> bool:
        """True when the alias declares connection info."""
        return self.host is not None

    @classmethod
    def from_dict(cls, name: str, data: Mapping[str, Any]) -> "AliasConfig":
        """Create an alias from its YAML mapping."""
        if not isinstance(data, Mapping):
            raise ConfigurationError(f"Alias {name} must be a mapping")

        path = data.get("path")
        ssh = data.get("ssh")
        if not ssh:
            return cls(name=name, path=path)

        parts = parse_ssh_url(str(ssh))
        port = data.get("port", parts["port"])
        try:
            port = int(port)
        except (TypeError, ValueError) as e:
            raise ConfigurationError(f"Invalid port for alias {name}: {port!r}") from e

        return cls(
            name=name,
            host=parts["host"],
            user=data.get("user") or parts["user"],
            port=port,
            path=path or parts["path"],
        )


@dataclass(frozen=True)
class SynczConfig:
    """Immutable configuration handed to the resolver and the collector."""

    aliases: Mapping[str, AliasConfig] = field(
        default_factory=lambda: MappingProxyType({})
    )
    """Configured aliases keyed by ``@name``"""

    remote_engine: tuple[str, ...] = DEFAULT_REMOTE_ENGINE
    """Argument vector that runs wpsyncz on a remote environment"""

    wp_binary: str = DEFAULT_WP_BINARY
    """WP-CLI executable on every environment"""

    local_path: Optional[str] = None
    """WordPress root of this machine (overrides an ``@local`` alias path)"""

    def get_alias(self, name: str) -> Optional[AliasConfig]:
        """Look up an alias by name (with or without the ``@``)."""
        return self.aliases.get(normalize_alias(name))


def _read_yaml(path: Path) -> dict[str, Any]:
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigurationError(f"Cannot read config file {path}: {e}") from e

    try:
        data = yaml.safe_load(_ALIAS_KEY_RE.sub(r"\1'\2'\3", text))
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid YAML in {path}: {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigurationError(f"Config file {path} must contain a mapping")
    return data


def find_project_config(start: Optional[Path] = None) -> list[Path]:
    """Find the nearest project config files walking up from ``start``.

    Returns:
        Existing ``wp-cli.yml`` / ``wp-cli.local.yml`` files of the first
        directory that has any of them, in merge order
    """
    directory = (start or Path.cwd()).resolve()
    for candidate in [directory, *directory.parents]:
        found = [candidate / name for name in PROJECT_CONFIG_FILES]
        found = [p for p in found if p.is_file()]
        if found:
            return found
    return []


def global_config_path() -> Path:
    """Path of the global WP-CLI config file."""
    env_path = os.environ.get("WP_CLI_CONFIG_PATH")
    if env_path:
        return Path(env_path)
    return Path.home() / ".wp-cli" / "config.yml"


def default_config_files(start: Optional[Path] = None) -> list[Path]:
    """Config files that are read when no explicit list is given."""
    files = []
    global_path = global_config_path()
    if global_path.is_file():
        files.append(global_path)
    files.extend(find_project_config(start))
    return files


def load_config(
    files: Optional[Iterable[Path]] = None,
    extra_files: Iterable[Path] = (),
    remote_engine: Optional[str] = None,
    local_path: Optional[str] = None,
    wp_binary: str = DEFAULT_WP_BINARY,
) -> SynczConfig:
    """Load and merge alias configuration.

    Args:
        files: Config files to read (defaults to the WP-CLI lookup order)
        extra_files: Additional files read last
        remote_engine: Shell-style command that runs wpsyncz on remotes
        local_path: WordPress root of this machine
        wp_binary: WP-CLI executable

    Returns:
        Frozen configuration object

    Raises:
        ConfigurationError: On unreadable or malformed files
    """
    paths = list(default_config_files() if files is None else files)
    paths.extend(extra_files)

    aliases: dict[str, AliasConfig] = {}
    for path in paths:
        logger.debug(f"Reading config file {path}")
        for key, value in _read_yaml(Path(path)).items():
            if not isinstance(key, str) or not key.startswith("@"):
                continue
            if isinstance(value, list):
                logger.debug(f"Skipping alias group {key}")
                continue
            aliases[key] = AliasConfig.from_dict(key, value or {})

    engine = DEFAULT_REMOTE_ENGINE
    if remote_engine:
        engine = tuple(shlex.split(remote_engine))
        if not engine:
            raise ConfigurationError("Remote engine command is empty")

    logger.debug(f"Loaded {len(aliases)} alias(es): {', '.join(sorted(aliases))}")
    return SynczConfig(
        aliases=MappingProxyType(aliases),
        remote_engine=engine,
        wp_binary=wp_binary,
        local_path=local_path,
    )
