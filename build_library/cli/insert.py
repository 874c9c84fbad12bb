"""Insert command: publish artifacts and record one build in the catalog."""

from __future__ import annotations

from pathlib import Path

import click

from ..config import DEFAULT_CONFIG_FILENAME, load_config
from ..errors import BuildLibraryError
from ..pipeline import register_build
from .log import configure_logging


@click.command("insert")
@click.option(
    "--config",
    "config_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=DEFAULT_CONFIG_FILENAME,
    show_default=True,
    help="Config document (JSON or YAML).",
)
@click.option(
    "--env-file",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Optional dotenv file applied before the process environment.",
)
@click.option("--verbose", "-v", is_flag=True, help="Log pipeline progress.")
def insert_cmd(config_path: Path, env_file: Path | None, verbose: bool):
    """Register the current CI build.

    Environment variables (CATALOG_URL, PROJECT_NAME, BUILD_NUMBER, ...)
    override the matching config fields.
    """
    configure_logging(verbose)
    try:
        config = load_config(config_path, env_file=env_file)
        registration = register_build(config)
    except BuildLibraryError as exc:
        click.echo(f"Error: {exc}", err=True)
        raise SystemExit(1)
    click.echo(
        f"Inserted build {config.build_number} (channel: {config.build_channel.value}) "
        f"for project {config.project_name} ({registration.identity.project_id}) "
        f"version {config.version_name} ({registration.identity.version_id}): "
        f"{registration.build_id}"
    )


__all__ = ["insert_cmd"]
