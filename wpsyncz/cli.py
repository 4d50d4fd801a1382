"""CLI interface for wpsyncz."""

import logging
from pathlib import Path
from typing import Any, Callable, Optional

import click

from . import __version__
from .categories import CATEGORY_TOKENS
from .config import DEFAULT_WP_BINARY, SynczConfig, load_config
from .environment import EnvironmentResolver
from .exceptions import WpSynczError
from .installer import Installer
from .orchestrator import SyncOrchestrator
from .output import OutputFormatter
from .reconcile import ConfirmGate
from .snapshot import SnapshotCollector
from .transport import Transport

logger = logging.getLogger(__name__)

CATEGORY_CHOICE = click.Choice(CATEGORY_TOKENS, case_sensitive=False)

yes_option = click.option(
    "--yes", "-y", is_flag=True, help="Answer yes to any confirmation prompts"
)


@click.group()
@click.option(
    "--config",
    "config_files",
    multiple=True,
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="Additional alias config file (read after the WP-CLI config files)",
)
@click.option(
    "--path",
    envvar="WPSYNCZ_PATH",
    help="WordPress root of this machine (passed to wp --path)",
)
@click.option(
    "--remote-engine",
    envvar="WPSYNCZ_REMOTE_ENGINE",
    help="Command that runs wpsyncz on remote environments",
)
@click.option(
    "--wp",
    "wp_binary",
    envvar="WPSYNCZ_WP",
    default=DEFAULT_WP_BINARY,
    show_default=True,
    help="WP-CLI executable",
)
@click.option("--quiet", "-q", is_flag=True, help="Suppress non-essential output")
@click.option(
    "--verbose",
    "-v",
    is_flag=True,
    help="Enable verbose/debug logging output",
)
@click.version_option(__version__)
@click.pass_context
def main(
    ctx: Any,
    config_files: tuple[Path, ...],
    path: Optional[str],
    remote_engine: Optional[str],
    wp_binary: str,
    quiet: bool,
    verbose: bool,
) -> None:
    """wpsyncz - Sync WordPress database, media and plugins between environments.

    Environments are WP-CLI aliases (@production, @staging, ...) with an
    ssh entry, plus @local for this machine.
    """
    ctx.ensure_object(dict)
    out = OutputFormatter(quiet=quiet)
    ctx.obj["out"] = out

    # Logging goes to stderr so `data` output stays machine-readable
    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            datefmt="%H:%M:%S",
        )
        logging.getLogger("wpsyncz").setLevel(logging.DEBUG)
    else:
        logging.basicConfig(level=logging.WARNING)

    try:
        ctx.obj["config"] = load_config(
            extra_files=config_files,
            remote_engine=remote_engine,
            local_path=path,
            wp_binary=wp_binary,
        )
    except WpSynczError as e:
        out.error(str(e))
        ctx.exit(1)


def _build_orchestrator(config: SynczConfig, out: OutputFormatter) -> SyncOrchestrator:
    transport = Transport()
    return SyncOrchestrator(
        resolver=EnvironmentResolver(config),
        collector=SnapshotCollector(transport, config),
        transport=transport,
        output=out,
    )


def _run_sync(
    ctx: Any,
    yes: bool,
    action: Callable[[SyncOrchestrator, ConfirmGate], dict],
) -> None:
    out: OutputFormatter = ctx.obj["out"]
    orchestrator = _build_orchestrator(ctx.obj["config"], out)

    try:
        results = action(orchestrator, ConfirmGate(assume_yes=yes))
    except KeyboardInterrupt:
        out.warning("Sync cancelled by user")
        ctx.exit(130)
    except WpSynczError as e:
        out.error(str(e))
        ctx.exit(1)

    out.success(f"Synced {', '.join(results)}.")


@main.command()
@click.argument("source")
@click.argument("categories", nargs=-1, type=CATEGORY_CHOICE)
@yes_option
@click.pass_context
def pull(ctx: Any, source: str, categories: tuple[str, ...], yes: bool) -> None:
    """Pull data from SOURCE to @local.

    CATEGORIES: media, plugins, db (default: all)

    Examples:
        wpsyncz pull @production          # Pull everything
        wpsyncz pull @production db       # Pull the database only
    """
    _run_sync(ctx, yes, lambda o, gate: o.pull(source, categories, gate))


@main.command()
@click.argument("destination")
@click.argument("categories", nargs=-1, type=CATEGORY_CHOICE)
@yes_option
@click.pass_context
def push(ctx: Any, destination: str, categories: tuple[str, ...], yes: bool) -> None:
    """Push data from @local to DESTINATION.

    CATEGORIES: media, plugins, db (default: all)

    Examples:
        wpsyncz push @staging             # Push everything
        wpsyncz push @staging plugins     # Push plugins only
    """
    _run_sync(ctx, yes, lambda o, gate: o.push(destination, categories, gate))


@main.command()
@click.argument("source")
@click.argument("destination")
@click.argument("categories", nargs=-1, type=CATEGORY_CHOICE)
@yes_option
@click.pass_context
def remote(
    ctx: Any,
    source: str,
    destination: str,
    categories: tuple[str, ...],
    yes: bool,
) -> None:
    """Sync data from SOURCE to DESTINATION.

    Between two remotes, files travel directly from host to host; both
    aliases must use the same ssh port.

    Examples:
        wpsyncz remote @production @staging
        wpsyncz remote @production @staging db
    """
    _run_sync(
        ctx, yes, lambda o, gate: o.remote(source, destination, categories, gate)
    )


@main.command()
@click.argument("destination")
@yes_option
@click.pass_context
def install(ctx: Any, destination: str, yes: bool) -> None:
    """Install wpsyncz on the remote DESTINATION."""
    out: OutputFormatter = ctx.obj["out"]
    config: SynczConfig = ctx.obj["config"]
    transport = Transport()
    installer = Installer(EnvironmentResolver(config), transport, out)

    try:
        target = installer.install(destination, ConfirmGate(assume_yes=yes))
    except KeyboardInterrupt:
        out.warning("Installation cancelled by user")
        ctx.exit(130)
    except WpSynczError as e:
        out.error(str(e))
        ctx.exit(1)

    out.print_summary(
        "Installation Complete",
        [
            ("Destination", destination),
            ("Location", f"~/{target}"),
            ("Note", "The remote python3 needs click, rich and PyYAML"),
        ],
    )


@main.command()
@click.argument("env")
@click.argument("categories", nargs=-1, type=CATEGORY_CHOICE)
@click.pass_context
def data(ctx: Any, env: str, categories: tuple[str, ...]) -> None:
    """Print the data wpsyncz needs from ENV as JSON.

    This is what wpsyncz runs on a remote to describe it; it is also
    useful for scripting and debugging.

    Examples:
        wpsyncz data @local
        wpsyncz data @production plugins
    """
    out: OutputFormatter = ctx.obj["out"]
    orchestrator = _build_orchestrator(ctx.obj["config"], out)

    try:
        snapshot = orchestrator.describe(env, categories)
    except WpSynczError as e:
        out.error(str(e))
        ctx.exit(1)

    click.echo(snapshot.to_json())
