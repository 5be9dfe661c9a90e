"""Tests for the modhost CLI."""

import json
import textwrap

import pytest
from click.testing import CliRunner

from modhost import cli


REMOTE_SOURCE = textwrap.dedent('''
    class Inventory:
        id = "inventory"
        name = "Inventory"

        def on_ready(self, host):
            return {"success": False, "error": "db down"}

    default = Inventory()
''')


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def serve(monkeypatch, mock_client):
    """Point the CLI's HTTP client at a route table."""
    def install(routes):
        monkeypatch.setattr(cli, "build_client", lambda base_url: mock_client(routes))
    return install


@pytest.fixture
def remote_dir(tmp_path):
    root = tmp_path / "inventory"
    root.mkdir()
    (root / "lifecycle.py").write_text(REMOTE_SOURCE)
    return root


CONFIG_ROUTES = {
    "/config/modules.json": {"modules": ["inventory", "legacy"]},
    "/config/module-inventory.json": {
        "id": "inventory", "remoteName": "inventory", "enabled": True, "warehouse": "north",
    },
    "/config/module-legacy.json": {"id": "legacy", "remoteName": "legacy", "enabled": False},
}


class TestConfigsCommand:
    """Tests for `modhost configs`."""

    def test_lists_enabled_configs(self, runner, serve):
        serve(CONFIG_ROUTES)
        result = runner.invoke(cli.main, ["configs"])

        assert result.exit_code == 0
        assert "inventory" in result.output
        assert "legacy" not in result.output

    def test_no_configs(self, runner, serve):
        serve({})
        result = runner.invoke(cli.main, ["configs"])

        assert result.exit_code == 0
        assert "No enabled modules found" in result.output


class TestRemotesCommand:
    """Tests for `modhost remotes`."""

    def test_lists_remotes(self, runner, serve):
        serve({"/remotes.json": {"inventory": "./remotes/inventory"}})
        result = runner.invoke(cli.main, ["remotes"])

        assert result.exit_code == 0
        assert "inventory" in result.output

    def test_missing_manifest_fails(self, runner, serve):
        serve({})
        result = runner.invoke(cli.main, ["remotes"])
        assert result.exit_code == 1


class TestBootCommand:
    """Tests for `modhost boot`."""

    def test_boot_runs_lifecycle(self, runner, serve, remote_dir):
        serve(CONFIG_ROUTES)
        result = runner.invoke(cli.main, ["boot", "--remote", f"inventory={remote_dir}"])

        assert result.exit_code == 0, result.output
        assert "Module Lifecycle" in result.output
        assert "inventory" in result.output
        assert "Failed hooks: 1" in result.output
        assert "Last phase: post_init" in result.output

    def test_boot_with_remotes_file(self, runner, serve, remote_dir, tmp_path):
        remotes_file = tmp_path / "remotes.json"
        remotes_file.write_text(json.dumps({"inventory": str(remote_dir)}))
        serve(CONFIG_ROUTES)

        result = runner.invoke(cli.main, ["boot", "--remotes-file", str(remotes_file)])

        assert result.exit_code == 0, result.output
        assert "Module Lifecycle" in result.output

    def test_boot_with_server_remotes(self, runner, serve, remote_dir):
        serve({**CONFIG_ROUTES, "/remotes.json": {"inventory": str(remote_dir)}})
        result = runner.invoke(cli.main, ["boot", "--fetch-remotes"])

        assert result.exit_code == 0, result.output
        assert "Module Lifecycle" in result.output

    def test_boot_without_modules(self, runner, serve):
        serve({})
        result = runner.invoke(cli.main, ["boot"])

        assert result.exit_code == 0
        assert "lifecycle skipped" in result.output

    def test_boot_fails_when_server_remotes_missing(self, runner, serve):
        serve(CONFIG_ROUTES)
        result = runner.invoke(cli.main, ["boot", "--fetch-remotes"])
        assert result.exit_code == 1

    def test_invalid_remote_option(self, runner, serve):
        serve(CONFIG_ROUTES)
        result = runner.invoke(cli.main, ["boot", "--remote", "inventory"])
        assert result.exit_code == 2
