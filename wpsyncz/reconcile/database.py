"""Database reconciliation.

The destination database is backed up, replaced with a dump of the source
database, and then repaired: environment-specific values baked into the dump
are rewritten, caches are cleared and the destination's own list of active
plugins is put back (plugins are reconciled separately).

Every step aborts the remaining ones on failure. The backup is a safety copy
only, it is never restored automatically.
"""

import logging
import posixpath
from typing import Optional
from urllib.parse import urlparse

from ..environment import EnvironmentDescriptor
from ..site import SiteCli
from ..snapshot import StateSnapshot
from ..utils import export_filename
from .base import ActionType, ConfirmGate, ReconcileAction, Reconciler

logger = logging.getLogger(__name__)


def _host_reference(url: str) -> Optional[str]:
    host = urlparse(url).hostname
    return f"@{host}" if host else None


def database_replacements(
    src_snapshot: StateSnapshot, dst_snapshot: StateSnapshot
) -> list[tuple[str, str]]:
    """Search/replace pairs that repair an imported dump.

    In order: the site URL, the ``@host`` form of the site URL (used in
    e-mail addresses and serialized host references), and the WordPress
    root directory. Pairs that would not change anything are left out.

    Examples:
        >>> src = StateSnapshot("http://src.test", "/srv/src", "", "", "")
        >>> dst = StateSnapshot("http://dst.test", "/srv/dst", "", "", "")
        >>> database_replacements(src, dst)
        [('http://src.test', 'http://dst.test'), ('@src.test', '@dst.test'), ('/srv/src', '/srv/dst')]
    """
    pairs = [
        (src_snapshot.site_url, dst_snapshot.site_url),
        (_host_reference(src_snapshot.site_url), _host_reference(dst_snapshot.site_url)),
        (src_snapshot.root_dir, dst_snapshot.root_dir),
    ]
    return [
        (search, replace)
        for search, replace in pairs
        if search and replace and search != replace
    ]


class DatabaseReconciler(Reconciler):
    """Replaces the destination database with the source database."""

    category_label = "database"

    def export(self, site: SiteCli, snapshot: StateSnapshot) -> str:
        """Export a database into the environment's working directory.

        Returns:
            Path of the dump on that environment
        """
        path = posixpath.join(snapshot.working_dir, export_filename(snapshot.site_url))
        site.db_export(path)
        return path

    def reconcile(
        self,
        src_snapshot: StateSnapshot,
        dst_snapshot: StateSnapshot,
        src: EnvironmentDescriptor,
        dst: EnvironmentDescriptor,
        confirm: ConfirmGate,
    ) -> dict:
        self.output.warning(f"This action will overwrite the database at {dst}.")
        confirm()

        src_site = self.site(src)
        dst_site = self.site(dst)

        self.output.info(f"Backing up database on {dst}...")
        self.record(ReconcileAction(ActionType.EXPORT_DATABASE, f"Backup of {dst}"))
        backup_path = self.export(dst_site, dst_snapshot)
        self.output.info(f"Backed up to {backup_path} on {dst}.")

        self.output.info(f"Exporting database on {src}...")
        self.record(ReconcileAction(ActionType.EXPORT_DATABASE, f"Dump of {src}"))
        export_path = self.export(src_site, src_snapshot)

        self.output.info(f"Downloading database to {dst}...")
        import_path = posixpath.join(
            dst_snapshot.working_dir, posixpath.basename(export_path)
        )
        self.record(
            ReconcileAction(ActionType.TRANSFER_DATABASE, f"{src}:{export_path} to {dst}")
        )
        self.transport.copy(src, export_path, dst, import_path)

        self.output.info(f"Importing database to {dst}...")
        self.record(ReconcileAction(ActionType.IMPORT_DATABASE, import_path))
        active_plugins = dst_site.option_get_json("active_plugins")
        dst_site.db_import(import_path)

        self.output.info("Repairing database...")
        replacements = 0
        for search, replace in database_replacements(src_snapshot, dst_snapshot):
            self.record(
                ReconcileAction(ActionType.SEARCH_REPLACE, f"{search} -> {replace}")
            )
            count = dst_site.search_replace(search, replace)
            logger.debug(f"Replaced {search!r} {count} time(s)")
            replacements += count

        self.record(ReconcileAction(ActionType.CLEAR_CACHES, f"Flush caches on {dst}"))
        dst_site.flush_caches()
        dst_site.option_set_json("active_plugins", active_plugins)

        self.output.success("Done")
        return {
            "backup": backup_path,
            "imported": import_path,
            "replacements": replacements,
        }
