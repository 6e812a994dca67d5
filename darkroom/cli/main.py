"""darkroom command-line interface for catalog maintenance."""

import logging
import sys
from pathlib import Path

import click

from ..catalog import Catalog
from ..core.errors import CatalogError
from ..db.config import settings

logger = logging.getLogger(__name__)


@click.group()
@click.option("--log-level", default=None, help="Logging level (default: from settings)")
@click.version_option(package_name="darkroom")
def cli(log_level: str) -> None:
    """Manage darkroom photo catalogs."""
    logging.basicConfig(
        level=(log_level or settings.log_level).upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@cli.command()
@click.argument("catalog_path", type=click.Path(path_type=Path))
def init(catalog_path: Path) -> None:
    """Create (or open) the catalog at CATALOG_PATH."""
    try:
        with Catalog.open(catalog_path) as catalog:
            metadata = catalog.metadata()
    except CatalogError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    click.echo(f"Catalog: {catalog_path}")
    click.echo(f"Schema version: {metadata.schema_version}")


@cli.command()
@click.argument("catalog_path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
def info(catalog_path: Path) -> None:
    """Show folder, image, keyword and collection counts."""
    with Catalog.open(catalog_path) as catalog:
        metadata = catalog.metadata()
        folders = len(catalog.list_folders())
        images = catalog.count_images()
        keywords = len(catalog.list_keywords())
        collections = len(catalog.list_collections())
        cameras = catalog.count_by_camera()

    click.echo(f"Catalog: {catalog_path}")
    click.echo(f"Schema version: {metadata.schema_version}")
    click.echo(f"Folders: {folders}")
    click.echo(f"Images: {images}")
    click.echo(f"Keywords: {keywords}")
    click.echo(f"Collections: {collections}")
    if cameras:
        click.echo("Cameras:")
        for camera, count in sorted(cameras.items(), key=lambda kv: (-kv[1], kv[0])):
            click.echo(f"  {camera}: {count}")


@cli.command()
@click.argument("catalog_path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
def vacuum(catalog_path: Path) -> None:
    """Optimize statistics and compact CATALOG_PATH."""
    with Catalog.open(catalog_path) as catalog:
        before = catalog_path.stat().st_size
        catalog.maintenance()
    after = catalog_path.stat().st_size
    click.echo(f"Vacuumed {catalog_path}: {before} -> {after} bytes")


if __name__ == "__main__":
    cli()
