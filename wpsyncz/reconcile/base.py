"""Shared pieces of the per-category reconcilers."""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional

import click

from ..environment import EnvironmentDescriptor
from ..exceptions import ConfirmationDeclined
from ..output import OutputFormatter
from ..site import SiteCli
from ..snapshot import StateSnapshot
from ..transport import Transport

logger = logging.getLogger(__name__)


class ConfirmGate:
    """Asks the operator before a destructive step.

    A declined prompt raises :class:`ConfirmationDeclined`, which aborts the
    whole run.
    """

    def __init__(
        self,
        assume_yes: bool = False,
        prompt: Optional[Callable[[str], bool]] = None,
    ):
        """Initialize the gate.

        Args:
            assume_yes: Answer yes to every prompt (``--yes``)
            prompt: Function asking a yes/no question, defaults to click.confirm
        """
        self.assume_yes = assume_yes
        self.prompt = prompt or (lambda message: click.confirm(message, default=False))

    def __call__(self, message: str = "Are you sure you want to continue?") -> None:
        if self.assume_yes:
            logger.debug(f"Confirmed automatically: {message}")
            return
        if not self.prompt(message):
            raise ConfirmationDeclined("Aborted by user.")


class ActionType(str, Enum):
    """Operations a reconciler can perform on the destination."""

    SKIP = "skip"
    """Nothing to do"""

    INSTALL_FROM_REGISTRY = "install_from_registry"
    """Install a plugin from the public registry at a pinned version"""

    COPY_FILES = "copy_files"
    """Copy plugin files from the source"""

    DELETE_THEN_COPY = "delete_then_copy"
    """Delete the destination plugin, then copy it from the source"""

    ACTIVATE = "activate"
    """Activate a plugin"""

    DEACTIVATE = "deactivate"
    """Deactivate a plugin"""

    COPY_MEDIA = "copy_media"
    """Copy the upload directory tree"""

    EXPORT_DATABASE = "export_database"
    """Dump a database to a file in the working directory"""

    TRANSFER_DATABASE = "transfer_database"
    """Copy a database dump between working directories"""

    IMPORT_DATABASE = "import_database"
    """Replace a database with a dump"""

    SEARCH_REPLACE = "search_replace"
    """Literal search and replace across the database"""

    CLEAR_CACHES = "clear_caches"
    """Flush transients, object cache and rewrite rules"""


@dataclass
class ReconcileAction:
    """One operation decided by a reconciler."""

    action: ActionType
    """Operation to perform"""

    reason: str
    """Human-readable reason for this action"""

    key: Optional[str] = None
    """Plugin key, for plugin operations"""

    version: Optional[str] = None
    """Version to install, for registry installs"""

    is_directory: bool = False
    """Whether copied plugin files form a directory"""


class Reconciler:
    """Brings one category of a destination in line with a source."""

    category_label = ""
    """Name of the category in progress messages"""

    def __init__(
        self,
        transport: Transport,
        output: Optional[OutputFormatter] = None,
        wp_binary: str = "wp",
    ):
        self.transport = transport
        self.output = output or OutputFormatter()
        self.wp_binary = wp_binary
        self.actions: list[ReconcileAction] = []

    def record(self, action: ReconcileAction) -> ReconcileAction:
        """Log an action that is about to be performed and keep it in order."""
        target = f"{action.key}: " if action.key else ""
        logger.debug(f"{target}{action.action.value} ({action.reason})")
        self.actions.append(action)
        return action

    def site(self, env: EnvironmentDescriptor) -> SiteCli:
        return SiteCli(self.transport, env, self.wp_binary)

    def reconcile(
        self,
        src_snapshot: StateSnapshot,
        dst_snapshot: StateSnapshot,
        src: EnvironmentDescriptor,
        dst: EnvironmentDescriptor,
        confirm: ConfirmGate,
    ) -> dict:
        """Synchronize the category and return statistics."""
        raise NotImplementedError
