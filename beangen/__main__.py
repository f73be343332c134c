# File: beangen/__main__.py
"""
beangen — Module entry point.

Allows running the generator directly via::

    python -m beangen --schema schema.yaml --output ./generated

This module simply delegates to the CLI entry point defined in ``beangen.cli``.
"""

from __future__ import annotations


def main() -> None:
    """Delegate to the CLI main function."""
    from beangen.cli import cli_main
    cli_main()


if __name__ == "__main__":
    main()
