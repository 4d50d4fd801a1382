"""Shared fixtures for wpsyncz tests."""

from typing import Callable, Optional

import pytest

from wpsyncz.environment import EnvironmentDescriptor
from wpsyncz.exceptions import CommandError
from wpsyncz.output import OutputFormatter
from wpsyncz.snapshot import ActivationState, ExtensionInfo, StateSnapshot
from wpsyncz.transport import CommandResult

Responder = Callable[[EnvironmentDescriptor, list], Optional[CommandResult]]


def wp_args(argv: list) -> list:
    """Strip the ``wp`` binary and ``--path`` from a wp argument vector."""
    args = list(argv)
    if args and args[0] == "wp":
        args = args[1:]
    while args and args[0].startswith("--path="):
        args = args[1:]
    return args


class FakeTransport:
    """Records commands and copies instead of running them."""

    def __init__(self):
        self.calls: list[tuple] = []
        self._responses: list[tuple[str, tuple, CommandResult]] = []
        self.responders: list[Responder] = []

    def on(
        self,
        env_name: str,
        *args: str,
        stdout: str = "",
        stderr: str = "",
        exit_code: int = 0,
    ) -> None:
        """Answer commands on ``env_name`` whose wp args start with ``args``."""
        self._responses.append(
            (env_name, args, CommandResult(stdout, stderr, exit_code))
        )

    def run(self, env, argv, check=True):
        argv = list(argv)
        self.calls.append(("run", env.name, argv))

        result = None
        for responder in self.responders:
            result = responder(env, argv)
            if result is not None:
                break
        if result is None:
            args = wp_args(argv)
            for env_name, prefix, response in self._responses:
                if env_name == env.name and tuple(args[: len(prefix)]) == prefix:
                    result = response
                    break
        if result is None:
            result = CommandResult("", "", 0)

        if check and not result.ok:
            raise CommandError(result.exit_code, result.stderr, argv)
        return result

    def copy(self, src_env, src_path, dst_env, dst_path, recursive=False):
        self.calls.append(
            ("copy", src_env.name, src_path, dst_env.name, dst_path, recursive)
        )

    def runs(self, env_name: Optional[str] = None) -> list[list]:
        """Argument vectors run (on one environment), wp prefix stripped."""
        return [
            wp_args(call[2])
            for call in self.calls
            if call[0] == "run" and (env_name is None or call[1] == env_name)
        ]

    def copies(self) -> list[tuple]:
        return [call[1:] for call in self.calls if call[0] == "copy"]


@pytest.fixture
def transport():
    return FakeTransport()


@pytest.fixture
def quiet_output():
    return OutputFormatter(quiet=True)


@pytest.fixture
def local_env():
    return EnvironmentDescriptor(name="@local")


@pytest.fixture
def remote_env():
    return EnvironmentDescriptor(
        name="@production", is_remote=True, host="prod.example.com", user="deploy"
    )


@pytest.fixture
def staging_env():
    return EnvironmentDescriptor(
        name="@staging", is_remote=True, host="staging.example.com"
    )


def make_plugin(
    key: str,
    version: str = "1.0",
    active: bool = True,
    origin_slug: Optional[str] = None,
    name: Optional[str] = None,
) -> ExtensionInfo:
    return ExtensionInfo(
        key=key,
        display_name=name or key.split("/")[0],
        version=version,
        activation_state=ActivationState.ACTIVE if active else ActivationState.INACTIVE,
        origin_slug=origin_slug,
    )


def make_snapshot(
    url: str = "http://src.test",
    root: str = "/srv/src",
    plugins: Optional[dict] = None,
) -> StateSnapshot:
    base = root.rstrip("/")
    return StateSnapshot(
        site_url=url,
        root_dir=root,
        working_dir=f"{base}/.wpsyncz",
        upload_dir=f"{base}/wp-content/uploads",
        extension_dir=f"{base}/wp-content/plugins",
        extensions=plugins,
    )
