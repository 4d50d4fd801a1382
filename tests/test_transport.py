"""Unit tests for command execution and scp transfers."""

import subprocess
from pathlib import Path
from unittest.mock import Mock, patch

import pytest

from wpsyncz.environment import EnvironmentDescriptor
from wpsyncz.exceptions import CommandError, TransferError
from wpsyncz.transport import CommandResult, Transport


@pytest.fixture
def other_port_env():
    return EnvironmentDescriptor(
        name="@dev", is_remote=True, host="dev.example.com", port=2222
    )


class TestBuildCommand:
    """Tests for Transport.build_command."""

    def test_local_runs_argv_as_is(self, local_env):
        argv = ["wp", "option", "get", "home"]
        assert Transport().build_command(local_env, argv) == argv

    def test_remote_goes_through_ssh(self, remote_env):
        command = Transport().build_command(
            remote_env, ["wp", "search-replace", "http://a", "http://b's site"]
        )

        assert command[:5] == ["ssh", "-T", "-p", "22", "deploy@prod.example.com"]
        assert command[5] == "--"
        assert command[6] == "wp search-replace http://a 'http://b'\"'\"'s site'"


class TestBuildCopyCommand:
    """Tests for Transport.build_copy_command."""

    def test_local_to_remote_file(self, local_env, remote_env):
        command = Transport().build_copy_command(
            local_env, "/tmp/db.sql", remote_env, "/srv/.wpsyncz/db.sql"
        )
        assert command == [
            "scp",
            "-C",
            "-P",
            "22",
            "/tmp/db.sql",
            "deploy@prod.example.com:/srv/.wpsyncz/db.sql",
        ]

    def test_remote_to_remote_uses_third_party_mode(self, remote_env, staging_env):
        command = Transport().build_copy_command(
            remote_env, "/srv/a.sql", staging_env, "/srv/b.sql"
        )
        assert command[:5] == ["scp", "-C", "-3", "-P", "22"]
        assert command[-2:] == [
            "deploy@prod.example.com:/srv/a.sql",
            "staging.example.com:/srv/b.sql",
        ]

    def test_remote_to_remote_port_mismatch(self, remote_env, other_port_env):
        with pytest.raises(TransferError, match="different ports"):
            Transport().build_copy_command(
                remote_env, "/srv/a.sql", other_port_env, "/srv/b.sql"
            )

    def test_remote_source_port_is_used(self, local_env, other_port_env):
        command = Transport().build_copy_command(
            other_port_env, "/srv/a.sql", local_env, "/tmp/a.sql"
        )
        assert command[1:4] == ["-C", "-P", "2222"]

    @patch.object(Transport, "run")
    def test_recursive_remote_source_copies_contents(
        self, mock_run, remote_env, local_env
    ):
        mock_run.return_value = CommandResult(".htaccess\n2024\na.jpg\n", "", 0)

        command = Transport().build_copy_command(
            remote_env, "/srv/uploads/", local_env, "/var/uploads", recursive=True
        )

        mock_run.assert_called_once_with(remote_env, ["ls", "-A", "/srv/uploads/"])
        assert "-r" in command
        assert command[-4:] == [
            "deploy@prod.example.com:/srv/uploads/.htaccess",
            "deploy@prod.example.com:/srv/uploads/2024",
            "deploy@prod.example.com:/srv/uploads/a.jpg",
            "/var/uploads",
        ]

    def test_pull_and_push_copy_the_same_entries(
        self, tmp_path: Path, local_env, remote_env
    ):
        """Dotfiles at the top of the tree travel in both directions."""
        (tmp_path / ".htaccess").write_text("deny")
        (tmp_path / "a.jpg").write_bytes(b"a")
        transport = Transport()

        push = transport.build_copy_command(
            local_env, str(tmp_path), remote_env, "/srv/uploads", recursive=True
        )
        with patch.object(
            Transport, "run", return_value=CommandResult("a.jpg\n.htaccess\n", "", 0)
        ):
            pull = transport.build_copy_command(
                remote_env, "/srv/uploads", local_env, str(tmp_path), recursive=True
            )

        pushed = [path.rsplit("/", 1)[1] for path in push[-3:-1]]
        pulled = [path.rsplit("/", 1)[1] for path in pull[-3:-1]]
        assert pushed == pulled == [".htaccess", "a.jpg"]

    @patch.object(Transport, "run")
    def test_recursive_empty_remote_directory(self, mock_run, remote_env, local_env):
        mock_run.return_value = CommandResult("", "", 0)

        command = Transport().build_copy_command(
            remote_env, "/srv/uploads", local_env, "/var/uploads", recursive=True
        )

        assert command is None

    @patch.object(Transport, "run")
    def test_unreadable_remote_directory(self, mock_run, remote_env, local_env):
        mock_run.side_effect = CommandError(2, "ls: cannot access '/srv/nope'")

        with pytest.raises(TransferError, match="Cannot read @production:/srv/nope"):
            Transport().build_copy_command(
                remote_env, "/srv/nope", local_env, "/var/uploads", recursive=True
            )

    def test_recursive_local_source_lists_entries(
        self, tmp_path: Path, local_env, remote_env
    ):
        (tmp_path / "b.jpg").write_bytes(b"b")
        (tmp_path / "2024").mkdir()

        command = Transport().build_copy_command(
            local_env, str(tmp_path), remote_env, "/srv/uploads", recursive=True
        )

        assert command[-3:] == [
            str(tmp_path / "2024"),
            str(tmp_path / "b.jpg"),
            "deploy@prod.example.com:/srv/uploads",
        ]

    def test_recursive_empty_local_directory(self, tmp_path: Path, local_env, remote_env):
        command = Transport().build_copy_command(
            local_env, str(tmp_path), remote_env, "/srv/uploads", recursive=True
        )
        assert command is None


class TestRun:
    """Tests for Transport.run."""

    @patch("wpsyncz.transport.subprocess.run")
    def test_success(self, mock_run, local_env):
        mock_run.return_value = Mock(stdout="out", stderr="", returncode=0)

        result = Transport().run(local_env, ["wp", "option", "get", "home"])

        assert result.ok
        assert result.stdout == "out"
        mock_run.assert_called_once_with(
            ["wp", "option", "get", "home"], capture_output=True, text=True
        )

    @patch("wpsyncz.transport.subprocess.run")
    def test_failure_raises(self, mock_run, local_env):
        mock_run.return_value = Mock(stdout="", stderr="Error: nope", returncode=1)

        with pytest.raises(CommandError) as exc_info:
            Transport().run(local_env, ["wp", "db", "import", "x.sql"])

        assert exc_info.value.exit_code == 1
        assert "Error: nope" in str(exc_info.value)

    @patch("wpsyncz.transport.subprocess.run")
    def test_failure_without_check(self, mock_run, local_env):
        mock_run.return_value = Mock(stdout="", stderr="", returncode=3)

        result = Transport().run(local_env, ["false"], check=False)

        assert result.exit_code == 3
        assert not result.ok

    @patch("wpsyncz.transport.subprocess.run")
    def test_missing_program(self, mock_run, local_env):
        mock_run.side_effect = FileNotFoundError("No such file: 'wp'")

        with pytest.raises(CommandError) as exc_info:
            Transport().run(local_env, ["wp", "cli", "info"])

        assert exc_info.value.exit_code == 127


class TestCopy:
    """Tests for Transport.copy."""

    @patch("wpsyncz.transport.subprocess.run")
    def test_success(self, mock_run, local_env, remote_env):
        mock_run.return_value = Mock(stdout="", returncode=0)

        Transport().copy(local_env, "/tmp/a.sql", remote_env, "/srv/a.sql")

        args, kwargs = mock_run.call_args
        assert args[0][0] == "scp"
        assert kwargs["stderr"] == subprocess.STDOUT

    @patch("wpsyncz.transport.subprocess.run")
    def test_failure_includes_output(self, mock_run, local_env, remote_env):
        mock_run.return_value = Mock(
            stdout="scp: /srv/a.sql: Permission denied\n", returncode=1
        )

        with pytest.raises(TransferError) as exc_info:
            Transport().copy(local_env, "/tmp/a.sql", remote_env, "/srv/a.sql")

        assert str(exc_info.value) == "SCP failed: scp: /srv/a.sql: Permission denied"
        assert exc_info.value.exit_code == 1

    @patch("wpsyncz.transport.subprocess.run")
    def test_empty_directory_copies_nothing(
        self, mock_run, tmp_path: Path, local_env, remote_env
    ):
        Transport().copy(local_env, str(tmp_path), remote_env, "/srv/up", recursive=True)
        mock_run.assert_not_called()

    @patch("wpsyncz.transport.subprocess.run")
    def test_missing_local_directory(self, mock_run, tmp_path: Path, local_env, remote_env):
        with pytest.raises(TransferError, match="Cannot read"):
            Transport().copy(
                local_env, str(tmp_path / "missing"), remote_env, "/srv/up", recursive=True
            )
        mock_run.assert_not_called()

    @patch("wpsyncz.transport.subprocess.run")
    def test_empty_remote_directory_copies_nothing(
        self, mock_run, remote_env, local_env
    ):
        mock_run.return_value = Mock(stdout="", stderr="", returncode=0)

        Transport().copy(remote_env, "/srv/up", local_env, "/var/up", recursive=True)

        [call] = mock_run.call_args_list
        assert call[0][0][0] == "ssh"
        assert call[0][0][-1] == "ls -A /srv/up"
