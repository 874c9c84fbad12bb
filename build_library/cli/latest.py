"""Latest command: show the most recently recorded build of a version."""

from __future__ import annotations

import click

from ..catalog import open_catalog
from ..errors import BuildLibraryError
from .log import configure_logging


@click.command("latest")
@click.argument("project_name", type=str)
@click.argument("version_name", type=str)
@click.option(
    "--catalog-url",
    envvar=["CATALOG_URL", "MONGODB_URL"],
    required=True,
    help="Catalog connection string (env: CATALOG_URL).",
)
def latest_cmd(project_name: str, version_name: str, catalog_url: str):
    """Print the latest build of PROJECT_NAME / VERSION_NAME as JSON.

    "Latest" is the most recently inserted build, not the highest number.
    """
    configure_logging()
    try:
        with open_catalog(catalog_url) as store:
            project = store.get_project(project_name)
            version = store.get_version(project.id, version_name) if project else None
            build = store.latest_build(project.id, version.id) if version else None
    except BuildLibraryError as exc:
        click.echo(f"Error: {exc}", err=True)
        raise SystemExit(1)
    if build is None:
        click.echo(f"No builds recorded for {project_name} {version_name}", err=True)
        raise SystemExit(1)
    click.echo(build.model_dump_json(indent=2))


__all__ = ["latest_cmd"]
