"""Entry point for ``python -m qa_notify``."""

from __future__ import annotations

from qa_notify.app.cli import cli

if __name__ == "__main__":
    cli()
