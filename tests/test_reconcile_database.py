"""Tests for database reconciliation."""

import posixpath
from typing import Optional
from unittest.mock import Mock

import pytest

from conftest import make_snapshot, wp_args
from wpsyncz.exceptions import CommandError, ConfirmationDeclined
from wpsyncz.reconcile.base import ActionType, ConfirmGate
from wpsyncz.reconcile.database import DatabaseReconciler, database_replacements
from wpsyncz.transport import CommandResult


class FakeDatabases:
    """In-memory databases answering the wp commands of the reconciler."""

    def __init__(self, databases: dict):
        self.databases = databases
        self.dumps: dict[str, dict] = {}

    def __call__(self, env, argv) -> Optional[CommandResult]:
        db = self.databases[env.name]
        args = wp_args(argv)
        if args[:2] == ["db", "export"]:
            self.dumps[posixpath.basename(args[2])] = dict(db)
        elif args[:2] == ["db", "import"]:
            db.clear()
            db.update(self.dumps[posixpath.basename(args[2])])
        elif args[0] == "search-replace":
            search, replace = args[2], args[3]
            count = db["content"].count(search)
            db["content"] = db["content"].replace(search, replace)
            return CommandResult(f"{count}\n", "", 0)
        elif args[:3] == ["option", "get", "active_plugins"]:
            return CommandResult(db["active_plugins"] + "\n", "", 0)
        elif args[:2] == ["option", "set"]:
            db[args[3]] = args[4]
        return None


@pytest.fixture
def reconciler(transport, quiet_output):
    return DatabaseReconciler(transport, quiet_output)


@pytest.fixture
def snapshots():
    src = make_snapshot(url="https://prod.example.com", root="/srv/www/")
    dst = make_snapshot(url="http://localhost:8080", root="/var/www/site/")
    return src, dst


class TestDatabaseReplacements:
    """Tests for database_replacements."""

    def test_pairs_in_order(self, snapshots):
        src, dst = snapshots
        assert database_replacements(src, dst) == [
            ("https://prod.example.com", "http://localhost:8080"),
            ("@prod.example.com", "@localhost"),
            ("/srv/www/", "/var/www/site/"),
        ]

    def test_unchanged_pairs_are_skipped(self):
        src = make_snapshot(url="http://a.test", root="/srv/www")
        dst = make_snapshot(url="https://a.test", root="/srv/www")

        assert database_replacements(src, dst) == [("http://a.test", "https://a.test")]


class TestDatabaseReconciler:
    """Tests for DatabaseReconciler.reconcile."""

    def test_full_sync(self, reconciler, transport, snapshots, remote_env, local_env):
        src, dst = snapshots
        databases = FakeDatabases(
            {
                "@production": {
                    "content": (
                        "home=https://prod.example.com;"
                        "admin=admin@prod.example.com;"
                        "log=/srv/www/wp-content/debug.log"
                    ),
                    "active_plugins": '["akismet/akismet.php"]',
                },
                "@local": {
                    "content": "home=http://localhost:8080",
                    "active_plugins": '["query-monitor/query-monitor.php"]',
                },
            }
        )
        transport.responders.append(databases)

        stats = reconciler.reconcile(src, dst, remote_env, local_env, ConfirmGate(True))

        local_db = databases.databases["@local"]
        assert local_db["content"] == (
            "home=http://localhost:8080;"
            "admin=admin@localhost;"
            "log=/var/www/site/wp-content/debug.log"
        )
        assert local_db["active_plugins"] == '["query-monitor/query-monitor.php"]'
        assert stats["replacements"] == 3

        # The destination was backed up before anything else happened
        first = transport.calls[0]
        assert first[1] == "@local"
        assert wp_args(first[2])[:2] == ["db", "export"]
        assert stats["backup"].startswith("/var/www/site/.wpsyncz/db-http-localhost-8080-")
        assert databases.dumps[posixpath.basename(stats["backup"])]["content"] == (
            "home=http://localhost:8080"
        )

    def test_step_order(self, reconciler, transport, snapshots, remote_env, local_env):
        src, dst = snapshots

        stats = reconciler.reconcile(src, dst, remote_env, local_env, ConfirmGate(True))

        [copy] = transport.copies()
        src_name, export_path, dst_name, import_path, recursive = copy
        assert (src_name, dst_name, recursive) == ("@production", "@local", False)
        assert export_path.startswith("/srv/www/.wpsyncz/db-https-prod-example-com-")
        assert import_path == posixpath.join(
            "/var/www/site/.wpsyncz", posixpath.basename(export_path)
        )
        assert stats["imported"] == import_path

        local_runs = transport.runs("@local")
        commands = [argv[0] if argv[0] != "option" else " ".join(argv[:3]) for argv in local_runs]
        assert commands == [
            "db",
            "option get active_plugins",
            "db",
            "search-replace",
            "search-replace",
            "search-replace",
            "transient",
            "cache",
            "rewrite",
            "option set --format=json",
        ]
        assert transport.runs("@production") == [["db", "export", export_path]]

    def test_actions_follow_the_steps(
        self, reconciler, snapshots, remote_env, local_env
    ):
        src, dst = snapshots

        reconciler.reconcile(src, dst, remote_env, local_env, ConfirmGate(True))

        assert [action.action for action in reconciler.actions] == [
            ActionType.EXPORT_DATABASE,
            ActionType.EXPORT_DATABASE,
            ActionType.TRANSFER_DATABASE,
            ActionType.IMPORT_DATABASE,
            ActionType.SEARCH_REPLACE,
            ActionType.SEARCH_REPLACE,
            ActionType.SEARCH_REPLACE,
            ActionType.CLEAR_CACHES,
        ]
        assert reconciler.actions[4].reason == (
            "https://prod.example.com -> http://localhost:8080"
        )

    def test_declined_changes_nothing(
        self, reconciler, transport, snapshots, remote_env, local_env
    ):
        src, dst = snapshots

        with pytest.raises(ConfirmationDeclined):
            reconciler.reconcile(
                src, dst, remote_env, local_env, ConfirmGate(prompt=Mock(return_value=False))
            )

        assert transport.calls == []

    def test_failed_import_aborts(
        self, reconciler, transport, snapshots, remote_env, local_env
    ):
        src, dst = snapshots
        transport.on("@local", "db", "import", exit_code=1, stderr="ERROR 1064")

        with pytest.raises(CommandError):
            reconciler.reconcile(src, dst, remote_env, local_env, ConfirmGate(True))

        assert not any(argv[0] == "search-replace" for argv in transport.runs())
        assert reconciler.actions[-1].action == ActionType.IMPORT_DATABASE
