"""Plugin reconciliation.

Plugins present on the source are overlaid onto the destination; plugins
that only exist on the destination are never touched. A plugin whose
registry slug matches its folder is reinstalled from the public registry at
the source's version, anything else is copied file by file.
"""

import logging
import posixpath
from dataclasses import dataclass
from typing import Optional

from ..environment import EnvironmentDescriptor
from ..snapshot import ExtensionInfo, StateSnapshot
from ..utils import plugin_is_directory, plugin_local_slug, version_compare
from .base import ActionType, ConfirmGate, ReconcileAction, Reconciler

logger = logging.getLogger(__name__)


@dataclass
class PluginDecision:
    """Everything decided for one source plugin."""

    key: str
    """Plugin key"""

    source: ExtensionInfo
    """Plugin on the source"""

    destination: Optional[ExtensionInfo]
    """Plugin on the destination (if installed there)"""

    ordering: int
    """1 if the source is newer or unknown, 0 if equal, -1 if older"""

    sync: ReconcileAction
    """How the plugin files are brought over"""

    activation: Optional[ReconcileAction]
    """Activation change on the destination, None if states match"""

    @property
    def is_downgrade(self) -> bool:
        return self.ordering < 0


class PluginComparator:
    """Decides what to do with each source plugin."""

    def compare(
        self,
        src_plugins: dict[str, ExtensionInfo],
        dst_plugins: dict[str, ExtensionInfo],
    ) -> list[PluginDecision]:
        """Compare two inventories.

        Args:
            src_plugins: Source inventory
            dst_plugins: Destination inventory

        Returns:
            One decision per source plugin, sorted by key
        """
        decisions = []
        for key in sorted(src_plugins):
            source = src_plugins[key]
            destination = dst_plugins.get(key)
            ordering = self.compare_versions(source, destination)
            decisions.append(
                PluginDecision(
                    key=key,
                    source=source,
                    destination=destination,
                    ordering=ordering,
                    sync=self.decide_sync(key, source, destination, ordering),
                    activation=self.decide_activation(key, source, destination),
                )
            )
        return decisions

    def compare_versions(
        self, source: ExtensionInfo, destination: Optional[ExtensionInfo]
    ) -> int:
        """Order the source version against the destination version.

        A missing version on either side counts as "source is newer", so
        the plugin is synced.
        """
        if not source.version:
            return 1
        if destination is None or not destination.version:
            return 1
        return version_compare(source.version, destination.version)

    def decide_sync(
        self,
        key: str,
        source: ExtensionInfo,
        destination: Optional[ExtensionInfo],
        ordering: int,
    ) -> ReconcileAction:
        if ordering == 0:
            return ReconcileAction(
                action=ActionType.SKIP,
                reason="Already installed at correct version",
                key=key,
            )

        local_slug = plugin_local_slug(key)
        if not source.origin_slug or source.origin_slug != local_slug:
            return ReconcileAction(
                action=(
                    ActionType.DELETE_THEN_COPY
                    if destination is not None
                    else ActionType.COPY_FILES
                ),
                reason="Not installed from the plugin registry",
                key=key,
                is_directory=plugin_is_directory(key),
            )

        return ReconcileAction(
            action=ActionType.INSTALL_FROM_REGISTRY,
            reason="Available in the plugin registry",
            key=key,
            version=source.version or None,
        )

    def decide_activation(
        self,
        key: str,
        source: ExtensionInfo,
        destination: Optional[ExtensionInfo],
    ) -> Optional[ReconcileAction]:
        destination_active = destination is not None and destination.is_active
        if source.is_active and not destination_active:
            reason = (
                "Active on source, new on destination"
                if destination is None
                else "Active on source"
            )
            return ReconcileAction(action=ActionType.ACTIVATE, reason=reason, key=key)
        if not source.is_active and destination_active:
            return ReconcileAction(
                action=ActionType.DEACTIVATE, reason="Inactive on source", key=key
            )
        return None


class PluginsReconciler(Reconciler):
    """Synchronizes plugins and their activation state."""

    category_label = "plugins"

    def reconcile(
        self,
        src_snapshot: StateSnapshot,
        dst_snapshot: StateSnapshot,
        src: EnvironmentDescriptor,
        dst: EnvironmentDescriptor,
        confirm: ConfirmGate,
    ) -> dict:
        comparator = PluginComparator()
        decisions = comparator.compare(
            src_snapshot.extensions or {}, dst_snapshot.extensions or {}
        )
        logger.debug(f"{len(decisions)} plugin(s) to reconcile")

        stats = {
            "installed": 0,
            "copied": 0,
            "skipped": 0,
            "activated": 0,
            "deactivated": 0,
        }
        for decision in decisions:
            name = decision.source.display_name
            if not decision.source.version:
                self.output.warning(f'"{name}" has no version.')

            if decision.is_downgrade:
                self.output.warning(f'Syncing "{name}" to an older version.')
                confirm()

            self._apply_sync(decision, src_snapshot, dst_snapshot, src, dst, stats)
            self._apply_activation(decision, dst, stats)

        self.output.success("Done")
        return stats

    def _apply_sync(
        self,
        decision: PluginDecision,
        src_snapshot: StateSnapshot,
        dst_snapshot: StateSnapshot,
        src: EnvironmentDescriptor,
        dst: EnvironmentDescriptor,
        stats: dict,
    ) -> None:
        action = decision.sync
        name = decision.source.display_name
        self.record(action)

        if action.action == ActionType.SKIP:
            self.output.info(f'"{name}" is already installed at correct version.')
            stats["skipped"] += 1
            return

        dst_site = self.site(dst)
        local_slug = plugin_local_slug(decision.key)

        if action.action == ActionType.INSTALL_FROM_REGISTRY:
            self.output.info(f'Syncing "{name}" from the WordPress plugin registry.')
            dst_site.plugin_install(
                decision.source.origin_slug or local_slug, action.version
            )
            stats["installed"] += 1
            return

        self.output.info(f'Syncing "{name}" from {src}.')
        if action.action == ActionType.DELETE_THEN_COPY:
            # Stale files of the old version must not survive the copy
            dst_site.plugin_delete(local_slug)

        src_dir = src_snapshot.extension_dir.rstrip("/")
        dst_dir = dst_snapshot.extension_dir.rstrip("/")
        if action.is_directory:
            folder = posixpath.dirname(decision.key)
            src_path = f"{src_dir}/{folder}"
            dst_path = f"{dst_dir}/{folder}"
            dst_site.make_dirs(dst_path)
            self.transport.copy(src, src_path, dst, dst_path, recursive=True)
        else:
            self.transport.copy(
                src, f"{src_dir}/{decision.key}", dst, f"{dst_dir}/{decision.key}"
            )
        stats["copied"] += 1

    def _apply_activation(
        self, decision: PluginDecision, dst: EnvironmentDescriptor, stats: dict
    ) -> None:
        action = decision.activation
        if action is None:
            return

        local_slug = plugin_local_slug(decision.key)
        self.record(action)
        if action.action == ActionType.ACTIVATE:
            self.site(dst).plugin_activate(local_slug)
            stats["activated"] += 1
        elif action.action == ActionType.DEACTIVATE:
            self.site(dst).plugin_deactivate(local_slug)
            stats["deactivated"] += 1
