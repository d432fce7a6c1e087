"""Allow running attachsync with ``python -m attachsync``."""

from attachsync.interfaces.cli.app import run_cli

if __name__ == "__main__":
    run_cli()
