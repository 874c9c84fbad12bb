"""CLI command group for the build library.

Example usage:

        build-library insert --config build-library.json
        build-library latest my-project 1.0
"""

from __future__ import annotations

import click

from .. import __version__
from .insert import insert_cmd
from .latest import latest_cmd


@click.group()
@click.version_option(__version__, prog_name="build-library")
def build_library():  # pragma: no cover - thin group wrapper
    """Build catalog registration commands."""


# Register subcommands
build_library.add_command(insert_cmd)
build_library.add_command(latest_cmd)

__all__ = ["build_library"]
