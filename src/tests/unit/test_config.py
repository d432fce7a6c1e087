"""Tests for attachsync.core.config module."""

import logging
from pathlib import Path

import attachsync.core.config as config


class TestEnvHelpers:
    """Tests for environment variable helpers."""

    def test_get_env_returns_value(self, monkeypatch):
        """get_env returns environment variable value."""
        monkeypatch.setenv("TEST_VAR", "test_value")

        assert config.get_env("TEST_VAR") == "test_value"

    def test_get_env_returns_default(self, monkeypatch):
        """get_env returns default when var not set."""
        monkeypatch.delenv("NONEXISTENT_VAR", raising=False)

        assert config.get_env("NONEXISTENT_VAR", "default") == "default"


class TestDefaultVaultPath:
    """Tests for default_vault_path."""

    def test_uses_env(self, monkeypatch, tmp_path):
        monkeypatch.setenv("ATTACHSYNC_VAULT", str(tmp_path))

        assert config.default_vault_path() == tmp_path

    def test_falls_back_to_cwd(self, monkeypatch, tmp_path):
        monkeypatch.delenv("ATTACHSYNC_VAULT", raising=False)
        monkeypatch.chdir(tmp_path)

        assert config.default_vault_path() == Path.cwd()


class TestSetupLogging:
    """Tests for setup_logging."""

    def test_returns_package_logger(self):
        logger = config.setup_logging()

        assert isinstance(logger, logging.Logger)
        assert logger.name == "attachsync"
