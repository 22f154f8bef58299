"""Integration tests for the command line interface.

Commands run through Typer's test runner with the store and registry
replaced by mocks.
"""

import json
import subprocess
from unittest.mock import Mock, patch

import pytest
from typer.testing import CliRunner

from shopctl import __version__
from shopctl.app import app
from shopctl.config import ENV_ACCESS_TOKEN, ENV_HOST, ENV_KEY, ENV_PASSWORD, ENV_PROFILE
from shopctl.models import Theme
from shopctl.sync import ChangeSet, SyncReport

runner = CliRunner()


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for var in (ENV_PROFILE, ENV_HOST, ENV_ACCESS_TOKEN, ENV_KEY, ENV_PASSWORD, "SHOPCTL_OUTPUT_FORMAT"):
        monkeypatch.delenv(var, raising=False)


@pytest.fixture
def invoke(tmp_path):
    def invoke(*args):
        return runner.invoke(app, ["--config-dir", str(tmp_path / "config"), "--output-dir", str(tmp_path), *args])
    return invoke


@pytest.fixture
def store():
    store = Mock()
    store.host = "example.myshopify.com"
    store.list_themes.return_value = [
        Theme(id=1, name="Dawn", role="main"),
        Theme(id=2, name="Summer Sale"),
    ]
    with patch("shopctl.cmds.sync.get_store", return_value=store):
        yield store


@pytest.fixture
def registry():
    registry = Mock()
    with patch("shopctl.cmds.sync.get_registry", return_value=registry):
        yield registry


class TestGlobalOptions:
    """Test cases for the top-level options."""

    def test_version(self):
        result = runner.invoke(app, ["--version"])

        assert result.exit_code == 0
        assert f"shopctl {__version__}" in result.output

    def test_unknown_output_format(self, invoke):
        result = invoke("-o", "xml", "list")

        assert result.exit_code == 2

    def test_missing_configuration(self, invoke):
        result = invoke("list")

        assert result.exit_code == 1
        assert "No store configuration found" in result.output


class TestSyncCommands:
    """Test cases for list, pull, push and publish."""

    def test_list_themes(self, invoke, store):
        result = invoke("list")

        assert result.exit_code == 0
        assert "dawn (ACTIVE)" in result.output
        assert "summer_sale" in result.output

    def test_list_asset_keys(self, invoke, store, registry):
        registry.list_keys.return_value = {"assets": ["layout/theme.liquid", "assets/theme.css"]}

        result = invoke("list", "assets", "--theme", "dawn")

        assert result.exit_code == 0
        assert "layout/theme.liquid" in result.output
        kinds, options = registry.list_keys.call_args[0]
        assert kinds == ["assets"]
        assert options.theme == "dawn"

    def test_pull_json_summary(self, invoke, registry, tmp_path):
        registry.pull.return_value = [SyncReport("pages", saved=["pages/about.html"], dry_run=True)]

        result = invoke("-o", "json", "pull", "pages", "--dry-run")

        assert result.exit_code == 0
        assert json.loads(result.stdout) == [
            {"kind": "pages", "saved": 1, "created": 0, "updated": 0, "deleted": 0, "skipped": 0, "failed": 0},
        ]
        kinds, options = registry.pull.call_args[0]
        assert kinds == ["pages"]
        assert options.dry_run is True
        assert options.output_dir == tmp_path

    def test_pull_filter_created(self, invoke, registry):
        registry.pull.return_value = []

        result = invoke("-o", "json", "pull", "assets", "--filter-created", "2021-03-01T00:00:00Z")

        assert result.exit_code == 0
        assert registry.pull.call_args[0][1].created_before.year == 2021

    def test_pull_bad_filter_created(self, invoke, registry):
        result = invoke("pull", "--filter-created", "yesterday")

        assert result.exit_code == 2
        registry.pull.assert_not_called()

    def test_push_failures_exit_nonzero(self, invoke, registry):
        report = SyncReport("assets", updated=["layout/theme.liquid"])
        report.failures.append({"action": "create", "name": "snippets/new.liquid", "error": "boom"})
        registry.push.return_value = [report]

        result = invoke("-o", "json", "push", "assets")

        assert result.exit_code == 1
        assert "1 sync action(s) failed" in result.output

    def test_publish(self, invoke, store):
        store.publish_theme.return_value = Theme(id=2, name="Summer Sale", role="main")

        result = invoke("publish", "--theme", "summer_sale")

        assert result.exit_code == 0
        store.publish_theme.assert_called_once_with("summer_sale")
        assert "Published theme 'Summer Sale'" in result.output

    def test_init_unknown_theme(self, invoke, store):
        store.get_theme.return_value = None

        result = invoke("init", "missing", "--no-git")

        assert result.exit_code == 1
        assert 'Theme "missing" not found' in result.output

    def test_init_git_failure_is_reported(self, invoke, store, registry):
        store.get_theme.return_value = Theme(id=1, name="Dawn", role="main")
        registry.pull.return_value = []

        def run(args, **kwargs):
            if args[1] == "symbolic-ref":
                return Mock(stdout="main\n")
            raise subprocess.CalledProcessError(1, args, stderr="fatal: unable to write new index file")

        with patch("shopctl.cmds.sync.get_change_sets", return_value=ChangeSet()), \
                patch("shopctl.utils.git.subprocess.run", side_effect=run):
            result = invoke("init", "dawn")

        assert result.exit_code == 1
        assert "unable to write new index file" in result.output
        assert "Operation: git" in result.output


class TestConfigCommands:
    """Test cases for the config sub-commands."""

    def test_list_profiles_empty(self, invoke):
        result = invoke("config", "list-profiles")

        assert result.exit_code == 0
        assert "No profiles configured" in result.output

    def test_init_and_list(self, invoke):
        with patch("shopctl.cmds.config.check_connection", return_value=3):
            result = invoke(
                "config", "init", "--no-interactive",
                "--host", "example.myshopify.com", "--access-token", "shpat_test",
            )

        assert result.exit_code == 0
        assert "3 themes" in result.output

        result = invoke("-o", "json", "config", "list-profiles")
        profiles = json.loads(result.stdout)
        assert profiles[0]["name"] == "default"
        assert profiles[0]["host"] == "example.myshopify.com"
        assert "access_token" not in profiles[0]

    def test_init_refuses_existing_profile(self, invoke):
        with patch("shopctl.cmds.config.check_connection", return_value=0):
            invoke("config", "init", "--no-interactive", "--host", "a.myshopify.com", "--access-token", "x")
            result = invoke("config", "init", "--no-interactive", "--host", "b.myshopify.com", "--access-token", "y")

        assert result.exit_code == 1
        assert "already exists" in result.output
