"""Top-level synchronization between two environments."""

import logging
from typing import Iterable, Optional

from .categories import DEFAULT_CATEGORIES, Category, parse_categories
from .config import LOCAL_ALIAS, normalize_alias
from .environment import EnvironmentDescriptor, EnvironmentResolver
from .exceptions import ConfigurationError
from .output import OutputFormatter
from .reconcile import RECONCILERS, ConfirmGate, Reconciler
from .snapshot import SnapshotCollector, StateSnapshot
from .transport import Transport

logger = logging.getLogger(__name__)


def _parse(categories: Iterable) -> list[Category]:
    tokens = [c.value if isinstance(c, Category) else c for c in categories]
    if not tokens:
        return []
    try:
        return parse_categories(tokens)
    except ValueError as e:
        raise ConfigurationError(str(e)) from e


class SyncOrchestrator:
    """Resolves two environments, snapshots them and runs the reconcilers.

    Categories run one after another; the first failure aborts the run and
    later categories are not attempted.
    """

    def __init__(
        self,
        resolver: EnvironmentResolver,
        collector: SnapshotCollector,
        transport: Transport,
        output: Optional[OutputFormatter] = None,
        reconcilers: Optional[dict[Category, type[Reconciler]]] = None,
    ):
        """Initialize the orchestrator.

        Args:
            resolver: Environment resolver
            collector: Snapshot collector
            transport: Transport handed to the reconcilers
            output: Output formatter for progress messages
            reconcilers: Category registry, defaults to RECONCILERS
        """
        self.resolver = resolver
        self.collector = collector
        self.transport = transport
        self.output = output or OutputFormatter()
        self.reconcilers = reconcilers or RECONCILERS

    def pull(
        self, source: str, categories: Iterable, confirm: ConfirmGate
    ) -> dict[str, dict]:
        """Sync from a remote environment to this machine."""
        if normalize_alias(source) == LOCAL_ALIAS:
            raise ConfigurationError(f"Cannot pull from {LOCAL_ALIAS}.")
        return self.sync(source, LOCAL_ALIAS, categories, confirm)

    def push(
        self, destination: str, categories: Iterable, confirm: ConfirmGate
    ) -> dict[str, dict]:
        """Sync from this machine to a remote environment."""
        if normalize_alias(destination) == LOCAL_ALIAS:
            raise ConfigurationError(f"Cannot push to {LOCAL_ALIAS}.")
        return self.sync(LOCAL_ALIAS, destination, categories, confirm)

    def remote(
        self,
        source: str,
        destination: str,
        categories: Iterable,
        confirm: ConfirmGate,
    ) -> dict[str, dict]:
        """Sync between two environments, usually two remotes."""
        return self.sync(source, destination, categories, confirm)

    def sync(
        self,
        source: str,
        destination: str,
        categories: Iterable,
        confirm: ConfirmGate,
    ) -> dict[str, dict]:
        """Synchronize the requested categories from source to destination.

        Args:
            source: Source environment name
            destination: Destination environment name
            categories: Category tokens or Category values (empty = all)
            confirm: Confirmation gate for destructive steps

        Returns:
            Statistics per category value

        Raises:
            ConfigurationError: If the environments are unknown or identical
            WpSynczError: Whatever the first failing step raised
        """
        selected = _parse(categories) or list(DEFAULT_CATEGORIES)
        src = self.resolver.resolve(source)
        dst = self.resolver.resolve(destination)
        if src.name == dst.name:
            raise ConfigurationError(f"Cannot sync from {src} to {dst}.")

        logger.debug(
            f"Syncing {', '.join(c.value for c in selected)} from {src} to {dst}"
        )
        src_snapshot = self.snapshot(src, selected)
        dst_snapshot = self.snapshot(dst, selected)

        results: dict[str, dict] = {}
        for category in selected:
            reconciler = self.reconcilers[category](
                self.transport, self.output, self.collector.config.wp_binary
            )
            self.output.info(
                f"Syncing {reconciler.category_label} from {src} to {dst}..."
            )
            results[category.value] = reconciler.reconcile(
                src_snapshot, dst_snapshot, src, dst, confirm
            )
        return results

    def snapshot(
        self, env: EnvironmentDescriptor, categories: list[Category]
    ) -> StateSnapshot:
        with self.output.status(f"Fetching data from {env}..."):
            return self.collector.collect(env, categories)

    def describe(self, name: str, categories: Iterable) -> StateSnapshot:
        """Snapshot one environment (the ``data`` command)."""
        # Without explicit categories only the basic fields are described
        selected = _parse(categories)
        return self.collector.collect(self.resolver.resolve(name), selected)
