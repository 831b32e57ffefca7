"""Command line interface for inspecting assetmin source lists."""

from __future__ import annotations

import difflib
import logging
from copy import deepcopy
from pathlib import Path
from typing import Any, List, NoReturn

import click
import yaml
from rich.console import Console
from rich.logging import RichHandler
from rich.syntax import Syntax
from rich.table import Table

from assetmin.config import (
    AssetminConfig,
    ConfigError,
    ConfigManager,
    assign_nested,
    resolve_with_precedence,
)
from assetmin.sources import (
    Source,
    build_sources,
    get_content_type,
    get_digest,
    have_no_minify_prefs,
    load_source_specs,
)

console = Console()
err_console = Console(stderr=True)

_SOURCES_ARGUMENT = click.argument(
    "sources_file", type=click.Path(exists=True, dir_okay=False, path_type=Path)
)
_DOCUMENT_ROOT_OPTION = click.option(
    "--document-root",
    type=click.Path(file_okay=False, path_type=str),
    help="Directory substituted for the leading '/' of '//' paths.",
)


def _handle_cli_error(
    message: str,
    *,
    code: str,
    json_output: bool,
    original: Exception | None = None,
) -> NoReturn:
    """Emit a standardized error and terminate the command.

    Args:
        message: Human-readable error message.
        code: Machine-readable error identifier.
        json_output: Indicates whether JSON mode is active.
        original: Original exception for chaining when not using JSON.

    Raises:
        SystemExit: When emitting JSON output to terminate the command.
        click.ClickException: For non-JSON flows to surface the error.
    """
    if json_output:
        console.print_json(data={"error": {"code": code, "message": message}})
        raise SystemExit(1)
    raise click.ClickException(message) from original


def _configure_logging(config: AssetminConfig, verbose: bool) -> None:
    level = logging.DEBUG if verbose else getattr(logging, config.logging.level)
    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[RichHandler(console=err_console, show_path=False)],
        force=True,
    )


def _load_sources(
    ctx: click.Context,
    sources_file: Path,
    document_root: str | None,
    *,
    json_output: bool = False,
) -> List[Source]:
    """Resolve configuration and build the sources listed in ``sources_file``."""
    overrides = {"document_root": document_root} if document_root else None
    try:
        config = ConfigManager().load(cli_overrides=overrides, ensure_file=False)
        _configure_logging(config, ctx.obj.get("verbose", False))
        specs = load_source_specs(sources_file)
        return build_sources(specs, document_root=config.document_root, encoding=config.encoding)
    except ConfigError as exc:
        _handle_cli_error(str(exc), code="config_error", json_output=json_output, original=exc)
    except OSError as exc:
        _handle_cli_error(
            f"Unable to read source: {exc}", code="io_error", json_output=json_output, original=exc
        )


@click.group(context_settings={"help_option_names": ["-h", "--help"]})
@click.version_option(package_name="assetmin")
@click.option("-v", "--verbose", is_flag=True, help="Log source construction details.")
@click.pass_context
def cli(ctx: click.Context, verbose: bool) -> None:
    """Inspect the content sources fed to the assetmin minification pipeline."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose


@cli.command()
@_SOURCES_ARGUMENT
@_DOCUMENT_ROOT_OPTION
@click.option("--json", "json_output", is_flag=True, help="Emit the result as JSON.")
@click.pass_context
def digest(
    ctx: click.Context, sources_file: Path, document_root: str | None, json_output: bool
) -> None:
    """Print the cache key, content type and single-pass flag for SOURCES_FILE."""
    sources = _load_sources(ctx, sources_file, document_root, json_output=json_output)
    try:
        cache_key = get_digest(sources)
    except ConfigError as exc:
        _handle_cli_error(str(exc), code="config_error", json_output=json_output, original=exc)
    payload = {
        "digest": cache_key,
        "content_type": get_content_type(sources),
        "single_pass": have_no_minify_prefs(sources),
        "last_modified": max((source.last_modified for source in sources), default=None),
        "sources": len(sources),
    }
    if json_output:
        console.print_json(data=payload)
        return

    for key, value in payload.items():
        console.print(f"[bold]{key}[/bold]: {value}")


@cli.command("content-type")
@_SOURCES_ARGUMENT
@_DOCUMENT_ROOT_OPTION
@click.pass_context
def content_type(ctx: click.Context, sources_file: Path, document_root: str | None) -> None:
    """Print the content type inferred for SOURCES_FILE."""
    sources = _load_sources(ctx, sources_file, document_root)
    click.echo(get_content_type(sources))


@cli.command()
@_SOURCES_ARGUMENT
@_DOCUMENT_ROOT_OPTION
@click.pass_context
def cat(ctx: click.Context, sources_file: Path, document_root: str | None) -> None:
    """Print the concatenated content of every source in SOURCES_FILE."""
    sources = _load_sources(ctx, sources_file, document_root)
    parts = []
    for source in sources:
        try:
            parts.append(source.get_content())
        except OSError as exc:
            _handle_cli_error(
                f"Unable to read source: {exc}", code="io_error", json_output=False, original=exc
            )
        except UnicodeDecodeError as exc:
            _handle_cli_error(
                f"Unable to decode {source.id} as {source.encoding}: {exc.reason}.",
                code="decode_error",
                json_output=False,
                original=exc,
            )
    click.echo("\n".join(parts))


@cli.command("list")
@_SOURCES_ARGUMENT
@_DOCUMENT_ROOT_OPTION
@click.pass_context
def list_sources(ctx: click.Context, sources_file: Path, document_root: str | None) -> None:
    """Show each source in SOURCES_FILE with its origin and metadata."""
    sources = _load_sources(ctx, sources_file, document_root)
    table = Table(title=str(sources_file))
    table.add_column("ID", overflow="fold")
    table.add_column("Origin")
    table.add_column("Last modified", justify="right")
    table.add_column("Minify prefs")
    for source in sources:
        table.add_row(
            source.id,
            source.origin.kind,
            str(source.last_modified),
            "yes" if source.has_minify_prefs else "no",
        )
    console.print(table)


@cli.group()
def config() -> None:
    """Manage assetmin configuration files and overrides."""


@config.command("view")
@click.option("--no-env", is_flag=True, help="Ignore environment overrides when displaying output.")
def config_view(no_env: bool) -> None:
    """Display the effective configuration after applying precedence rules.

    Raises:
        click.ClickException: If configuration cannot be loaded.
    """
    manager = ConfigManager()
    try:
        current = manager.load(include_env=not no_env)
    except ConfigError as exc:
        raise click.ClickException(str(exc)) from exc

    yaml_text = yaml.safe_dump(current.model_dump(mode="python"), sort_keys=False)
    console.print(Syntax(yaml_text, "yaml", word_wrap=True))


@config.command("set")
@click.argument("key")
@click.option("--value", required=True, help="YAML literal to assign to KEY.")
def config_set(key: str, value: str) -> None:
    """Persist a configuration value addressed by a dotted KEY.

    Raises:
        click.ClickException: If parsing, assignment, or validation fails.
    """
    manager = ConfigManager()
    manager.ensure_exists()
    segments = [segment.strip() for segment in key.split(".") if segment.strip()]
    if not segments:
        raise click.ClickException("KEY must be a dotted path such as 'logging.level'.")

    try:
        parsed: Any = yaml.safe_load(value)
        previous = manager.load_file_overrides()
        file_data = deepcopy(previous)
        assign_nested(file_data, segments, parsed)
        resolve_with_precedence(defaults=AssetminConfig(), file_overrides=file_data)
    except yaml.YAMLError as exc:
        raise click.ClickException(f"Unable to parse value: {exc}") from exc
    except ConfigError as exc:
        raise click.ClickException(str(exc)) from exc

    if file_data == previous:
        console.print("[yellow]No changes applied; value already up to date.[/yellow]")
        return

    before = manager.read_text().splitlines()
    manager.save(file_data)
    after = manager.read_text().splitlines()
    diff = difflib.unified_diff(
        before, after, fromfile="config.yaml (before)", tofile="config.yaml (after)", lineterm=""
    )
    console.print(Syntax("\n".join(diff), "diff", word_wrap=False))
    console.print(f"[green]Updated {'.'.join(segments)}.[/green]")


@config.command("edit")
def config_edit() -> None:
    """Open the configuration file in an interactive editor session.

    Raises:
        click.ClickException: If edited content is invalid.
    """
    manager = ConfigManager()
    manager.ensure_exists()
    original = manager.read_text()
    edited = click.edit(original, extension=".yaml")

    if edited is None or edited == original:
        console.print("[yellow]No changes detected.[/yellow]")
        return

    try:
        parsed = yaml.safe_load(edited) or {}
    except yaml.YAMLError as exc:
        raise click.ClickException(f"Invalid YAML: {exc}") from exc
    if not isinstance(parsed, dict):
        raise click.ClickException("Configuration file must contain a top-level mapping.")

    try:
        resolve_with_precedence(defaults=AssetminConfig(), file_overrides=parsed)
    except ConfigError as exc:
        raise click.ClickException(str(exc)) from exc

    manager.save(parsed)
    console.print("[green]Configuration updated successfully.[/green]")


def main() -> None:
    """Invoke the Click CLI as the console script entry point."""
    cli()


if __name__ == "__main__":
    main()
