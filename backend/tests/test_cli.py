"""
Tests for the operator CLI.
"""

import pytest
from typer.testing import CliRunner

from pos_api.cli import app

runner = CliRunner()


@pytest.fixture(autouse=True)
def keep_test_logging(monkeypatch):
    """Stop the CLI from pointing the root logger at the runner's stdout."""
    monkeypatch.setattr("shared.config.logging.setup_logging", lambda: None)


def test_version():
    result = runner.invoke(app, ["version"])

    assert result.exit_code == 0
    assert "0.1.0" in result.stdout


def test_missing_order_exits_with_error():
    assert runner.invoke(app, ["db-init"]).exit_code == 0

    result = runner.invoke(app, ["order", "999"])

    assert result.exit_code == 1
    assert "Order 999 not found" in result.stdout


def test_seed_refuses_production_without_force(monkeypatch):
    from shared.config.settings import settings

    monkeypatch.setattr(settings, "environment", "production")

    result = runner.invoke(app, ["db-seed"])

    assert result.exit_code == 1
    assert "--force" in result.stdout
