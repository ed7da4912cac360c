"""
Tests for the database chores CLI.
"""

import pytest
from click.testing import CliRunner

from papertrade.cli import cli
from papertrade.core.config import get_settings


@pytest.fixture
def runner(tmp_path, monkeypatch):
    monkeypatch.setenv("DATABASE_URL", f"sqlite+aiosqlite:///{tmp_path / 'cli.db'}")
    get_settings.cache_clear()
    yield CliRunner()
    get_settings.cache_clear()


class TestDatabaseCommands:
    """Tests for init-db, verify-db and reset-db."""
    
    def test_init_and_verify(self, runner):
        result = runner.invoke(cli, ["init-db"])
        assert result.exit_code == 0, result.output
        
        result = runner.invoke(cli, ["verify-db"])
        assert result.exit_code == 0, result.output
        assert "Database OK" in result.output
        assert "wallets" in result.output
    
    def test_reset_requires_confirmation(self, runner):
        result = runner.invoke(cli, ["reset-db"])
        assert result.exit_code != 0
        assert "--yes" in result.output
    
    def test_reset(self, runner):
        runner.invoke(cli, ["init-db"])
        result = runner.invoke(cli, ["reset-db", "--yes"])
        assert result.exit_code == 0, result.output
        assert "Database reset" in result.output


class TestServe:
    """Tests for the serve command."""
    
    def test_runs_a_single_process(self, runner, monkeypatch):
        calls = []
        monkeypatch.setattr("uvicorn.run", lambda app, **kwargs: calls.append((app, kwargs)))
        
        result = runner.invoke(cli, ["serve", "--port", "9001"])
        
        assert result.exit_code == 0, result.output
        app, kwargs = calls[0]
        assert app == "papertrade.main:app"
        assert kwargs["port"] == 9001
        assert kwargs["workers"] == 1
