"""Unit tests for CLI commands."""

import pytest
import typer
from typer.testing import CliRunner

from ither.cli import app, collection_names
from ither.config import Environment, Settings

runner = CliRunner()


@pytest.fixture
def cli_settings(tmp_path, monkeypatch) -> Settings:
    """Remote-mode settings with a database under ``tmp_path``."""
    config = Settings(
        environment=Environment.STAGING,
        mock_mode=False,
        app_id="ither-cli",
        data_dir=tmp_path,
        log_to_file=False,
    )
    monkeypatch.setattr("ither.cli.settings", config)
    return config


@pytest.fixture
def mock_cli_settings(tmp_path, monkeypatch) -> Settings:
    config = Settings(environment=Environment.DEVELOPMENT, data_dir=tmp_path, log_to_file=False)
    monkeypatch.setattr("ither.cli.settings", config)
    return config


class TestCLICommands:
    """Tests for CLI commands."""

    def test_cli_app_exists(self):
        assert isinstance(app, typer.Typer)

    def test_collection_names(self):
        names = collection_names()

        assert "forumPosts" in names
        assert "bookTopicComments" in names
        assert len(names) == len(set(names))

    def test_init_command(self, cli_settings):
        result = runner.invoke(app, ["init"])

        assert result.exit_code == 0
        assert "Database initialized" in result.stdout
        assert cli_settings.database_path.exists()

    def test_init_command_force(self, cli_settings):
        cli_settings.database_path.parent.mkdir(parents=True, exist_ok=True)
        cli_settings.database_path.write_text("not a database")

        result = runner.invoke(app, ["init", "--force"])

        assert result.exit_code == 0
        assert "Removing existing database" in result.stdout

    def test_seed_command(self, cli_settings):
        result = runner.invoke(app, ["seed"])

        assert result.exit_code == 0
        assert "Seeded Collections" in result.stdout
        assert "Seeded 46 documents" in result.stdout

    def test_status_command(self, cli_settings):
        runner.invoke(app, ["seed"])

        result = runner.invoke(app, ["status"])

        assert result.exit_code == 0
        assert "Configuration" in result.stdout
        assert "ither-cli" in result.stdout
        assert "Document Counts" in result.stdout
        assert "Total" in result.stdout
        assert "46" in result.stdout


class TestSearchCommand:
    def test_search_remote_backend(self, cli_settings):
        runner.invoke(app, ["seed"])

        result = runner.invoke(app, ["search", "marketplaceItems", "macbook"])

        assert result.exit_code == 0
        assert "item-1" in result.stdout
        assert "(1 results)" in result.stdout

    def test_search_mock_backend(self, mock_cli_settings):
        result = runner.invoke(app, ["search", "forumPosts", "vue"])

        assert result.exit_code == 0
        assert "post-1" in result.stdout

    def test_search_limit(self, mock_cli_settings):
        result = runner.invoke(app, ["search", "books", "", "--limit", "2"])

        assert result.exit_code == 0
        assert "(2 results)" in result.stdout

    def test_unknown_collection(self, mock_cli_settings):
        result = runner.invoke(app, ["search", "nope", "x"])

        assert result.exit_code == 1
        assert "Unknown collection" in result.stdout
