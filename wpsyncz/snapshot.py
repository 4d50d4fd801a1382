"""Point-in-time descriptions of an environment and how to collect them.

A snapshot of this machine is read through WP-CLI. A snapshot of a remote
environment is produced by the wpsyncz engine installed there (its ``data``
command) and parsed from the JSON document it prints.
"""

import json
import logging
import os
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Iterable, Optional

from .categories import Category
from .config import LOCAL_ALIAS, SynczConfig
from .environment import EnvironmentDescriptor
from .exceptions import (
    CommandError,
    NewerRemoteError,
    OutdatedRemoteError,
    RemoteUnavailableError,
    WorkingDirError,
)
from .site import SiteCli
from .transport import Transport

logger = logging.getLogger(__name__)

PROTOCOL_VERSION = 1
"""Version of the self-describe document; bumped on incompatible changes"""

WORKING_DIR_NAME = ".wpsyncz"
WORKING_DIR_MODE = 0o760

# Plugin statuses reported by `wp plugin list` that belong to the inventory.
# Must-use plugins and drop-ins are not managed.
ACTIVE_STATUSES = ("active", "active-network")
INVENTORY_STATUSES = ACTIVE_STATUSES + ("inactive",)


class ActivationState(str, Enum):
    """Whether a plugin is active."""

    ACTIVE = "active"
    INACTIVE = "inactive"


@dataclass
class ExtensionInfo:
    """A plugin installed on one environment."""

    key: str
    """Stable identifier, ``folder/file.php`` or ``file.php``"""

    display_name: str
    """Human-readable plugin name"""

    version: str = ""
    """Version string (may be empty)"""

    activation_state: ActivationState = ActivationState.INACTIVE
    """Activation state"""

    origin_slug: Optional[str] = None
    """Slug in the public plugin registry, from the update-check metadata"""

    @property
    def is_active(self) -> bool:
        return self.activation_state == ActivationState.ACTIVE

    def to_dict(self) -> dict:
        """Convert to the self-describe document form."""
        return {
            "displayName": self.display_name,
            "version": self.version,
            "activationState": self.activation_state.value,
            "originSlug": self.origin_slug,
        }

    @classmethod
    def from_dict(cls, key: str, data: dict) -> "ExtensionInfo":
        """Create from the self-describe document form."""
        return cls(
            key=key,
            display_name=data.get("displayName") or key,
            version=data.get("version") or "",
            activation_state=ActivationState(data.get("activationState", "inactive")),
            origin_slug=data.get("originSlug") or None,
        )


@dataclass
class StateSnapshot:
    """State of one environment, collected fresh for every sync."""

    site_url: str
    """Site URL (``siteurl`` option)"""

    root_dir: str
    """WordPress root directory (``ABSPATH``)"""

    working_dir: str
    """Writable scratch directory for database dumps"""

    upload_dir: str
    """Media root"""

    extension_dir: str
    """Plugin root (``WP_PLUGIN_DIR``)"""

    protocol_version: int = PROTOCOL_VERSION
    """Protocol version of the engine that produced the snapshot"""

    extensions: Optional[dict[str, ExtensionInfo]] = field(default=None)
    """Plugin inventory keyed by plugin key, None when not requested"""

    def to_dict(self) -> dict:
        """Convert to the self-describe document."""
        data: dict[str, Any] = {
            "protocolVersion": self.protocol_version,
            "siteUrl": self.site_url,
            "rootDir": self.root_dir,
            "workingDir": self.working_dir,
            "uploadDir": self.upload_dir,
            "extensionDir": self.extension_dir,
        }
        if self.extensions is not None:
            data["extensions"] = {
                key: info.to_dict() for key, info in self.extensions.items()
            }
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "StateSnapshot":
        """Create from a self-describe document.

        Raises:
            KeyError: If a required key is missing
            ValueError: If a value has the wrong form
        """
        extensions = None
        if data.get("extensions") is not None:
            raw = data["extensions"]
            # PHP-style encoders turn an empty map into an empty list
            if raw == []:
                raw = {}
            if not isinstance(raw, dict):
                raise ValueError("extensions must be a mapping")
            extensions = {
                key: ExtensionInfo.from_dict(key, info) for key, info in raw.items()
            }

        return cls(
            site_url=data["siteUrl"],
            root_dir=data["rootDir"],
            working_dir=data["workingDir"],
            upload_dir=data["uploadDir"],
            extension_dir=data["extensionDir"],
            protocol_version=int(data["protocolVersion"]),
            extensions=extensions,
        )

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), indent=4)


def ensure_working_dir(path: Path) -> Path:
    """Make sure the working directory exists and is writable.

    Raises:
        WorkingDirError: If it cannot be created or written to
    """
    if not path.exists():
        try:
            path.mkdir(mode=WORKING_DIR_MODE, parents=True)
        except OSError as e:
            raise WorkingDirError(f"Cannot create working directory {path}: {e}") from e
        logger.debug(f"Created working directory {path}")

    if not path.is_dir() or not os.access(path, os.W_OK):
        raise WorkingDirError(f"Working directory not writable: {path}")
    return path


def _registry_slug(result_set: Any, key: str) -> Optional[str]:
    if not isinstance(result_set, dict):
        return None
    entry = result_set.get(key)
    if isinstance(entry, dict) and entry.get("slug"):
        return str(entry["slug"])
    return None


class SnapshotCollector:
    """Collects the state snapshot of an environment."""

    def __init__(
        self,
        transport: Transport,
        config: SynczConfig,
        working_dir: Optional[Path] = None,
    ):
        """Initialize the collector.

        Args:
            transport: Transport used for all commands
            config: Configuration (remote engine command, wp binary)
            working_dir: Local working directory, defaults to ~/.wpsyncz
        """
        self.transport = transport
        self.config = config
        self.working_dir = working_dir or Path.home() / WORKING_DIR_NAME

    def collect(
        self, env: EnvironmentDescriptor, categories: Iterable[Category]
    ) -> StateSnapshot:
        """Collect the snapshot of an environment.

        Args:
            env: Environment to describe
            categories: Categories that will be synchronized

        Returns:
            The snapshot, with the plugin inventory if plugins were requested

        Raises:
            RemoteUnavailableError: If a remote does not answer with a valid
                document
            CompatibilityError: If a remote speaks another protocol version
            WorkingDirError: If the local working directory is unusable
        """
        categories = list(categories)
        if env.is_remote:
            return self.collect_remote(env, categories)
        return self.collect_local(env, categories)

    def collect_local(
        self, env: EnvironmentDescriptor, categories: list[Category]
    ) -> StateSnapshot:
        site = SiteCli(self.transport, env, self.config.wp_binary)
        paths = site.paths()
        working_dir = ensure_working_dir(self.working_dir)

        snapshot = StateSnapshot(
            site_url=paths["siteUrl"],
            root_dir=paths["rootDir"],
            working_dir=str(working_dir),
            upload_dir=paths["uploadDir"],
            extension_dir=paths["extensionDir"],
        )
        if Category.PLUGINS in categories:
            snapshot.extensions = self._collect_plugins(site)
        return snapshot

    def _collect_plugins(self, site: SiteCli) -> dict[str, ExtensionInfo]:
        plugins = site.plugin_list()
        site.refresh_plugin_updates()
        metadata = site.plugin_update_metadata() or {}
        has_update = metadata.get("response")
        up_to_date = metadata.get("no_update")

        inventory: dict[str, ExtensionInfo] = {}
        for item in plugins:
            status = item.get("status")
            if status not in INVENTORY_STATUSES:
                continue
            key = item["file"]
            inventory[key] = ExtensionInfo(
                key=key,
                display_name=item.get("title") or item.get("name") or key,
                version=item.get("version") or "",
                activation_state=(
                    ActivationState.ACTIVE
                    if status in ACTIVE_STATUSES
                    else ActivationState.INACTIVE
                ),
                origin_slug=(
                    _registry_slug(has_update, key) or _registry_slug(up_to_date, key)
                ),
            )
        logger.debug(f"Found {len(inventory)} plugin(s) on {site.env.name}")
        return inventory

    def remote_argv(
        self, env: EnvironmentDescriptor, categories: list[Category]
    ) -> list[str]:
        """Command that asks the remote engine to describe itself."""
        argv = list(self.config.remote_engine)
        if env.path:
            argv.extend(["--path", env.path])
        argv.extend(["data", LOCAL_ALIAS, *[c.value for c in categories]])
        return argv

    def collect_remote(
        self, env: EnvironmentDescriptor, categories: list[Category]
    ) -> StateSnapshot:
        not_installed = (
            f"wpsyncz is not installed on {env.name}. "
            f"Run 'wpsyncz install {env.name}' to install."
        )
        try:
            result = self.transport.run(
                env, self.remote_argv(env, categories), check=False
            )
        except CommandError as e:
            raise RemoteUnavailableError(f"Cannot reach {env.name}: {e}") from e

        if not result.ok:
            logger.debug(
                f"Describe failed on {env.name} ({result.exit_code}): "
                f"{result.stderr.strip()}"
            )
            stderr_lines = result.stderr.strip().splitlines()
            if stderr_lines:
                raise RemoteUnavailableError(
                    f"{not_installed} Remote error: {stderr_lines[-1].strip()}"
                )
            raise RemoteUnavailableError(not_installed)

        if not result.stdout.strip():
            raise RemoteUnavailableError(
                f"Failed to get data from {env.name}: empty response. {not_installed}"
            )

        try:
            data = json.loads(result.stdout)
        except json.JSONDecodeError as e:
            raise RemoteUnavailableError(
                f"Failed to get data from {env.name}: {e}. {not_installed}"
            ) from e

        if not isinstance(data, dict) or "protocolVersion" not in data:
            raise RemoteUnavailableError(
                f"Failed to get data from {env.name}: no protocol version. "
                f"{not_installed}"
            )

        self.check_protocol_version(env, data["protocolVersion"])

        try:
            snapshot = StateSnapshot.from_dict(data)
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            raise RemoteUnavailableError(
                f"Failed to get data from {env.name}: malformed document ({e})."
            ) from e

        if Category.PLUGINS in categories and snapshot.extensions is None:
            raise RemoteUnavailableError(
                f"Failed to get data from {env.name}: plugin inventory missing."
            )
        return snapshot

    def check_protocol_version(self, env: EnvironmentDescriptor, version: Any) -> None:
        """Refuse to talk to a remote that speaks another protocol version."""
        try:
            remote_version = int(version)
        except (TypeError, ValueError) as e:
            raise RemoteUnavailableError(
                f"Failed to get data from {env.name}: invalid protocol version "
                f"{version!r}."
            ) from e

        if remote_version < PROTOCOL_VERSION:
            raise OutdatedRemoteError(
                f"Older version of wpsyncz installed on {env.name}. "
                f"Run 'wpsyncz install {env.name}' to update.",
                PROTOCOL_VERSION,
                remote_version,
            )
        if remote_version > PROTOCOL_VERSION:
            raise NewerRemoteError(
                f"Newer version of wpsyncz installed on {env.name}. "
                "Update wpsyncz on this machine before trying again.",
                PROTOCOL_VERSION,
                remote_version,
            )
