"""Main CLI entry point for the cms-backend command.

This module provides the Typer application operators use to validate a
deployment: load a configuration exactly as the editor would, and list the
entries of a collection through the configured backend.
"""

import asyncio
import logging
import os
import sys
from datetime import datetime
from pathlib import Path
from typing import Optional, Tuple

import typer

from src.backend_client.auth import Authenticator
from src.backend_client.errors import CmsError, InvalidCredentialsError
from src.backends import resolve_backend
from src.cli.models import ExitCode
from src.cli.output import OutputHandler
from src.cms_config.config_loader import ConfigLoader, parse_config
from src.cms_config.errors import ConfigError

app = typer.Typer(
    name="cms-backend",
    help="Validate content configuration and inspect repository backends.",
    add_completion=False,
    rich_markup_mode=None,
    no_args_is_help=True,
)

logger = logging.getLogger(__name__)


def _configure_logging(verbosity: int, logdir: Optional[str] = None) -> None:
    """Configure logging based on verbosity level.

    Configures only the 'src' namespace logger to avoid affecting third-party
    libraries. The root logger is left unchanged.

    Args:
        verbosity: Verbosity level (0=WARNING, 1=INFO, 2=DEBUG)
        logdir: Optional directory for log files (creates timestamped log file)
    """
    if verbosity == 0:
        level = logging.WARNING
    elif verbosity == 1:
        level = logging.INFO
    else:
        level = logging.DEBUG

    app_logger = logging.getLogger("src")
    app_logger.setLevel(level)

    log_format = "%(asctime)s [%(levelname)8s] %(message)s"
    date_format = "%Y-%m-%d %H:%M:%S"

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(level)
    console_handler.setFormatter(logging.Formatter(log_format, datefmt=date_format))
    app_logger.addHandler(console_handler)

    if logdir:
        log_path = Path(logdir)
        log_path.mkdir(parents=True, exist_ok=True)

        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        log_file = log_path / f"cms-backend_{timestamp}.log"

        file_format = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setLevel(level)
        file_handler.setFormatter(logging.Formatter(file_format, datefmt=date_format))
        app_logger.addHandler(file_handler)

        logger.info(f"Logging to file: {log_file}")


def _build_loader(source: str, environment: Optional[str], base_url: Optional[str]) -> ConfigLoader:
    """Create a loader for a local file path or a configuration URL.

    Raises:
        ConfigLoadError: If a local file is not valid YAML
    """
    environment = environment or Authenticator().get_environment()
    if os.path.isfile(source):
        with open(source, 'r', encoding='utf-8') as f:
            injected = parse_config(f.read(), environment, url=source)
        return ConfigLoader(injected_config=injected, environment=environment)
    return ConfigLoader(config_url=source, base_url=base_url, environment=environment)


async def _load_config(source: str, environment: Optional[str], base_url: Optional[str]) -> Tuple[ConfigLoader, dict]:
    loader = _build_loader(source, environment, base_url)
    return loader, await loader.load()


def _run(coro, output: OutputHandler):
    """Run ``coro`` and translate library errors into exit codes."""
    try:
        return asyncio.run(coro)
    except ConfigError as e:
        logger.error(f"Configuration failed: {e}")
        output.error(str(e))
        raise typer.Exit(ExitCode.CONFIG_ERROR)
    except CmsError as e:
        logger.error(f"Backend operation failed: {e}")
        output.error(str(e))
        raise typer.Exit(ExitCode.BACKEND_ERROR)


@app.command("check-config")
def check_config(
    source: str = typer.Argument(..., help="Path or URL of the YAML configuration"),
    environment: Optional[str] = typer.Option(
        None, "--env", help="Environment overlay key (defaults to $CMS_ENV)"
    ),
    base_url: Optional[str] = typer.Option(
        None, "--base-url", help="Root for a relative configuration URL"
    ),
    logdir: Optional[str] = typer.Option(None, "--logdir", help="Directory for log files"),
    verbosity: int = typer.Option(0, "--verbosity", "-v", help="Verbosity level: 0=summary, 1=info, 2=debug"),
    no_color: bool = typer.Option(False, "--no-color", help="Disable colored output"),
) -> None:
    """Load, validate and summarize a configuration."""
    _configure_logging(verbosity, logdir)
    output = OutputHandler(verbosity=verbosity, no_color=no_color)

    _, config = _run(_load_config(source, environment, base_url), output)

    output.success("Configuration is valid")
    output.print_config_summary(config)
    raise typer.Exit(ExitCode.SUCCESS)


async def _list_entries(source: str, environment: Optional[str], collection_name: str) -> Tuple[str, list]:
    loader, config = await _load_config(source, environment, None)
    backend = resolve_backend(config, loader.lock)

    try:
        credentials = Authenticator(backend.name).get_credentials()
    except InvalidCredentialsError:
        credentials = None
    await backend.authenticate(credentials)

    entries = await backend.list_all_entries(backend.collection(collection_name))
    return backend.name, [entry.path for entry in entries]


@app.command("list-entries")
def list_entries(
    source: str = typer.Argument(..., help="Path or URL of the YAML configuration"),
    collection: str = typer.Argument(..., help="Name of the collection to list"),
    environment: Optional[str] = typer.Option(None, "--env", help="Environment overlay key"),
    verbosity: int = typer.Option(0, "--verbosity", "-v", help="Verbosity level: 0=summary, 1=info, 2=debug"),
    no_color: bool = typer.Option(False, "--no-color", help="Disable colored output"),
) -> None:
    """List the entries of a collection through the configured backend."""
    _configure_logging(verbosity)
    output = OutputHandler(verbosity=verbosity, no_color=no_color)

    try:
        backend_name, paths = _run(_list_entries(source, environment, collection), output)
    except KeyError as e:
        output.error(str(e.args[0]) if e.args else f"Unknown collection: {collection}")
        raise typer.Exit(ExitCode.GENERAL_ERROR)

    output.info(f"Backend: {backend_name}")
    output.print_entries(paths)
    raise typer.Exit(ExitCode.SUCCESS)


def run() -> None:
    app()


if __name__ == "__main__":
    run()
