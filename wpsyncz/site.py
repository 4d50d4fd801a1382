"""WP-CLI commands bound to one environment."""

import json
import logging
from typing import Any, Optional

from .environment import EnvironmentDescriptor
from .exceptions import CommandError
from .transport import CommandResult, Transport

logger = logging.getLogger(__name__)

# Prints the filesystem locations of the installation as JSON.
PATHS_PHP = (
    "$uploads = wp_upload_dir();"
    " echo json_encode(array("
    "'siteUrl' => get_option('siteurl'),"
    " 'rootDir' => ABSPATH,"
    " 'uploadDir' => $uploads['basedir'],"
    " 'uploadError' => $uploads['error'],"
    " 'extensionDir' => WP_PLUGIN_DIR));"
)

PLUGIN_LIST_FIELDS = "file,name,title,status,version"


class SiteCli:
    """Builds and runs ``wp`` commands against a WordPress environment.

    Example:
        >>> site = SiteCli(transport, env)
        >>> site.plugin_activate("akismet")
    """

    def __init__(
        self,
        transport: Transport,
        env: EnvironmentDescriptor,
        wp_binary: str = "wp",
    ):
        self.transport = transport
        self.env = env
        self.wp_binary = wp_binary

    def argv(self, *args: str) -> list[str]:
        """Full argument vector of a wp command on this environment."""
        argv = [self.wp_binary]
        if self.env.path:
            argv.append(f"--path={self.env.path}")
        argv.extend(args)
        return argv

    def wp(self, *args: str, check: bool = True) -> CommandResult:
        """Run a wp command."""
        return self.transport.run(self.env, self.argv(*args), check=check)

    def run(self, *argv: str) -> CommandResult:
        """Run a plain shell utility (not wp) on this environment."""
        return self.transport.run(self.env, list(argv))

    def wp_json(self, *args: str) -> Any:
        """Run a wp command and decode its JSON output."""
        result = self.wp(*args)
        try:
            return json.loads(result.stdout)
        except json.JSONDecodeError as e:
            raise CommandError(
                result.exit_code,
                result.stderr,
                self.argv(*args),
                message=f"Invalid JSON from 'wp {args[0]}' on {self.env.name}: {e}",
            ) from e

    # -------------------------------------------------------------------------
    # Installation info
    # -------------------------------------------------------------------------

    def paths(self) -> dict[str, str]:
        """Site URL and filesystem roots of the installation."""
        data = self.wp_json("eval", PATHS_PHP)
        if not isinstance(data, dict):
            raise CommandError(
                0, "", message=f"Unexpected installation info from {self.env.name}"
            )
        if data.get("uploadError"):
            raise CommandError(
                1, str(data["uploadError"]), message=str(data["uploadError"])
            )
        return data

    def plugin_list(self) -> list[dict[str, Any]]:
        plugins = self.wp_json(
            "plugin", "list", "--format=json", f"--fields={PLUGIN_LIST_FIELDS}"
        )
        if not isinstance(plugins, list):
            raise CommandError(
                0, "", message=f"Unexpected plugin list from {self.env.name}"
            )
        return plugins

    def refresh_plugin_updates(self) -> None:
        """Throw away cached update metadata and ask the registry again."""
        self.wp("transient", "delete", "update_plugins", "--network", check=False)
        self.wp("eval", "wp_update_plugins();")

    def plugin_update_metadata(self) -> Optional[dict[str, Any]]:
        """The ``update_plugins`` site transient, or None if it is not set."""
        result = self.wp(
            "transient", "get", "update_plugins", "--network", "--format=json",
            check=False,
        )
        if not result.ok or not result.stdout.strip():
            logger.debug(
                f"No plugin update metadata on {self.env.name}: {result.stderr.strip()}"
            )
            return None
        try:
            data = json.loads(result.stdout)
        except json.JSONDecodeError:
            logger.debug(f"Unreadable plugin update metadata on {self.env.name}")
            return None
        return data if isinstance(data, dict) else None

    # -------------------------------------------------------------------------
    # Plugins
    # -------------------------------------------------------------------------

    def plugin_install(self, slug: str, version: Optional[str] = None) -> None:
        args = ["plugin", "install", slug, "--force"]
        if version:
            args.append(f"--version={version}")
        self.wp(*args)

    def plugin_delete(self, slug: str) -> None:
        self.wp("plugin", "delete", slug)

    def plugin_activate(self, slug: str) -> None:
        self.wp("plugin", "activate", slug)

    def plugin_deactivate(self, slug: str) -> None:
        self.wp("plugin", "deactivate", slug)

    def make_dirs(self, path: str) -> None:
        self.run("mkdir", "-p", path)

    # -------------------------------------------------------------------------
    # Database
    # -------------------------------------------------------------------------

    def db_export(self, path: str) -> None:
        self.wp("db", "export", path)

    def db_import(self, path: str) -> None:
        self.wp("db", "import", path)

    def search_replace(self, search: str, replace: str) -> int:
        """Replace a literal string everywhere in the database.

        Returns:
            Number of replacements reported by WP-CLI
        """
        result = self.wp("search-replace", "--format=count", search, replace)
        try:
            return int(result.stdout.strip() or 0)
        except ValueError:
            return 0

    def option_get_json(self, name: str) -> str:
        """Raw JSON value of an option."""
        return self.wp("option", "get", name, "--format=json").stdout.strip()

    def option_set_json(self, name: str, value: str) -> None:
        self.wp("option", "set", "--format=json", name, value)

    def flush_caches(self) -> None:
        """Delete transients and flush the object and rewrite caches."""
        self.wp("transient", "delete", "--all")
        self.wp("cache", "flush")
        self.wp("rewrite", "flush")
