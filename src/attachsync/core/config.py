"""Process-level configuration for attachsync.

Per-vault rules live in the settings file (see ``attachsync.core.settings``);
this module only covers environment-driven knobs and logging.
"""

import logging
import os
from pathlib import Path

from dotenv import load_dotenv

# Load environment variables
load_dotenv()


def get_env(key: str, default: str | None = None) -> str | None:
    """Get environment variable with optional default."""
    return os.getenv(key, default)


# Notes are the only documents whose references are reconciled
NOTE_EXTENSION = "md"

# Settings file, resolved relative to the vault root
SETTINGS_FILENAME = get_env("ATTACHSYNC_SETTINGS_FILE", "attachsync.yaml") or (
    "attachsync.yaml"
)

# Logging
LOG_LEVEL = get_env("LOG_LEVEL", "INFO") or "INFO"


def default_vault_path() -> Path:
    """Vault directory from $ATTACHSYNC_VAULT, or the current directory."""
    env_vault = get_env("ATTACHSYNC_VAULT")
    if env_vault:
        return Path(env_vault).expanduser()
    return Path.cwd()


def setup_logging(debug: bool = False) -> logging.Logger:
    """Configure and return logger."""
    level = logging.DEBUG if debug else getattr(logging, LOG_LEVEL.upper(), logging.INFO)
    logging.basicConfig(
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        level=level,
    )
    return logging.getLogger("attachsync")
