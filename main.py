"""Gallery indexer CLI entry point."""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.tree import Tree

from gallery.config import (
    DEFAULT_CONFIG_PATH,
    AppConfig,
    AdminConfig,
    GallerySettings,
    ImgbedConfig,
    ServerConfig,
    load_config,
    resolve_source_config,
    write_default_config,
)
from gallery.database import init_db
from gallery.errors import GalleryError
from gallery.logging_config import setup_logging
from gallery.migrations import get_status, run_migrations, stamp_if_needed
from gallery.pipeline import GalleryPipeline, write_index
from gallery.tree import DirectoryNode, find_node


__version__ = "0.1.0"

app = typer.Typer(add_completion=False, help="ImgBed gallery indexer CLI")
logger = logging.getLogger("gallery")


def _ensure_config() -> AppConfig:
    try:
        return load_config()
    except FileNotFoundError:
        typer.echo("[ERROR] config.ini not found. Run: python main.py init --base-url https://img.example.com")
        raise typer.Exit(code=1)


def _config_or_defaults() -> AppConfig:
    """config.ini when present; otherwise defaults, so env vars alone can drive a run."""
    try:
        return load_config()
    except FileNotFoundError:
        return AppConfig(
            server=ServerConfig(),
            imgbed=ImgbedConfig(),
            gallery=GallerySettings(),
            admin=AdminConfig(),
        )


def _add_branch(branch: Tree, node: DirectoryNode) -> None:
    for child in node.children:
        _add_branch(branch.add(child.name), child)


@app.command()
def init(
    base_url: str = typer.Option("", "--base-url", help="ImgBed base URL"),
    api_token: str = typer.Option("", "--token", help="ImgBed API token"),
) -> None:
    """Initialize config.ini with default settings."""
    write_default_config(DEFAULT_CONFIG_PATH, base_url=base_url, api_token=api_token)
    typer.echo(f"[OK] Config created at {DEFAULT_CONFIG_PATH}")


@app.command()
def generate(
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Index file to write"),
    base_url: Optional[str] = typer.Option(None, "--base-url", envvar="IMGBED_BASE_URL"),
    api_token: Optional[str] = typer.Option(None, "--token", envvar="IMGBED_API_TOKEN"),
    list_endpoint: Optional[str] = typer.Option(None, "--list-endpoint", envvar="IMGBED_LIST_ENDPOINT"),
    random_endpoint: Optional[str] = typer.Option(None, "--random-endpoint", envvar="IMGBED_RANDOM_ENDPOINT"),
    file_route_prefix: Optional[str] = typer.Option(
        None, "--file-route-prefix", envvar="IMGBED_FILE_ROUTE_PREFIX"
    ),
    list_dir: Optional[str] = typer.Option(None, "--list-dir", envvar="IMGBED_LIST_DIR"),
    preview_dir: Optional[str] = typer.Option(None, "--preview-dir", envvar="IMGBED_PREVIEW_DIR"),
    default_category: Optional[str] = typer.Option(
        None, "--default-category", envvar="IMGBED_DEFAULT_CATEGORY"
    ),
    recursive: Optional[bool] = typer.Option(
        None, "--recursive/--no-recursive", envvar="IMGBED_LIST_RECURSIVE"
    ),
    page_size: Optional[int] = typer.Option(None, "--page-size", envvar="IMGBED_PAGE_SIZE"),
    preview_mapping: bool = typer.Option(
        True,
        "--preview-mapping/--no-preview-mapping",
        envvar="IMGBED_ENABLE_PREVIEW_MAPPING",
        help="Pair originals with files under the preview directory",
    ),
) -> None:
    """Fetch the full listing and write a static gallery index."""
    setup_logging()

    config = _config_or_defaults()
    source = resolve_source_config(
        "default",
        config.imgbed,
        [
            {
                "base_url": base_url,
                "api_token": api_token,
                "list_endpoint": list_endpoint,
                "random_endpoint": random_endpoint,
                "file_route_prefix": file_route_prefix,
                "list_dir": list_dir,
                "preview_dir": preview_dir,
                "default_category": default_category,
                "recursive": recursive,
                "page_size": page_size,
            }
        ],
    )
    pipeline = GalleryPipeline(
        source,
        mode="static",
        timeout=config.imgbed.timeout_seconds,
        enable_preview_mapping=preview_mapping,
        require_token=False,
    )

    try:
        result = asyncio.run(pipeline.build_gallery())
    except GalleryError as exc:
        typer.echo(f"[ERROR] {exc.message}")
        raise typer.Exit(code=1)

    index = result.artifact
    for category in index.gallery.values():
        logger.info(f"Category {category.name}: {category.count} images")

    target = write_index(index, output or Path(config.gallery.output_file))
    typer.echo(
        "✓ Index generated: "
        f"{index.total_images} images in {len(index.gallery)} categories "
        f"({result.record_count} records, {result.skipped} malformed) -> {target}"
    )


@app.command()
def directories(
    list_dir: Optional[str] = typer.Option(None, "--list-dir", help="Restrict to a directory"),
    select: Optional[str] = typer.Option(None, "--select", help="Only show this subtree"),
) -> None:
    """Print the directory tree of the listing."""
    setup_logging()

    config = _ensure_config()
    source = resolve_source_config("default", config.imgbed, [{"list_dir": list_dir}])
    pipeline = GalleryPipeline.for_directories(source, timeout=config.imgbed.timeout_seconds)

    try:
        listing = asyncio.run(pipeline.build_directories()).artifact
    except GalleryError as exc:
        typer.echo(f"[ERROR] {exc.message}")
        raise typer.Exit(code=1)

    node = listing.tree
    if select:
        node = find_node(listing.tree, select)
        if node is None:
            typer.echo(f"[ERROR] Directory not found: {select}")
            raise typer.Exit(code=1)

    tree = Tree(node.path or f"/{listing.source_list_dir}")
    _add_branch(tree, node)
    Console().print(tree)
    typer.echo(f"{listing.directory_count} directories, {listing.file_count} files")


@app.command()
def serve(
    host: Optional[str] = typer.Option(None, "--host", help="Server host"),
    port: Optional[int] = typer.Option(None, "--port", help="Server port"),
) -> None:
    """Start the gallery API server."""
    setup_logging()

    config = _ensure_config()
    init_db()

    # Stamp databases created by init_db alone, then upgrade to head.
    stamp_if_needed()
    current, head = get_status()
    if current != head:
        logger.info(f"Migrating config store {current} -> {head} ...")
        run_migrations(backup=True)
        logger.info("Migration complete.")
    else:
        logger.info(f"Config store at {head} (up to date).")

    from gallery.api import run_server

    try:
        run_server(config, host=host, port=port)
    except KeyboardInterrupt:
        pass


@app.command()
def migrate(
    check: bool = typer.Option(False, "--check", help="Print status and exit (1 if not at head)"),
) -> None:
    """Run pending config store migrations (or check status with --check)."""
    setup_logging()

    _ensure_config()
    init_db()

    current, head = get_status()
    if check:
        if current == head:
            typer.echo(f"[OK] Config store at {head} (head).")
            raise typer.Exit(code=0)
        typer.echo(f"[WARN] Config store behind: current {current}, head {head}")
        raise typer.Exit(code=1)

    if current == head:
        logger.info(f"Config store already at {head} (head). Nothing to do.")
        raise typer.Exit(code=0)

    logger.info(f"Migrating config store {current} -> {head} ...")
    run_migrations(backup=True)
    logger.info("Migration complete.")


if __name__ == "__main__":
    app()
