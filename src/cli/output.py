"""Terminal output handling using Rich library.

This module provides the OutputHandler class for all CLI terminal output.
Supports verbosity levels and the --no-color flag.
"""

from typing import Any, Dict, List

from rich.console import Console
from rich.markup import escape
from rich.table import Table


class OutputHandler:
    """Handles all terminal output using Rich library.

    Attributes:
        verbosity: Verbosity level (0=summary, 1=info, 2=debug)
        console: Rich Console instance for output

    Example:
        >>> handler = OutputHandler(verbosity=1, no_color=False)
        >>> handler.success("Configuration loaded")
    """

    def __init__(self, verbosity: int = 0, no_color: bool = False):
        self.verbosity = verbosity
        self.console = Console(
            force_terminal=not no_color,
            no_color=no_color,
            highlight=False,
        )

    def success(self, message: str) -> None:
        self.console.print(f"[green]✓[/green] {escape(message)}")

    def error(self, message: str) -> None:
        self.console.print(f"[red]✗[/red] {escape(message)}", style="red")

    def warning(self, message: str) -> None:
        self.console.print(f"[yellow]⚠[/yellow] {escape(message)}", style="yellow")

    def info(self, message: str) -> None:
        """Display info message (only if verbosity >= 1)."""
        if self.verbosity >= 1:
            self.console.print(escape(message))

    def print(self, message: str) -> None:
        self.console.print(escape(message))

    def print_config_summary(self, config: Dict[str, Any]) -> None:
        """Display the backend, publish mode and collections of a configuration.

        Args:
            config: Published configuration document
        """
        backend = (config.get('backend') or {}).get('name', '?')
        self.print(f"Backend: {backend}")
        self.print(f"Publish mode: {config.get('publish_mode')}")
        if config.get('media_folder') is not None:
            self.print(f"Media folder: {config.get('media_folder')} -> {config.get('public_folder')}")

        table = Table(title="Collections")
        table.add_column("Name")
        table.add_column("Type")
        table.add_column("Location")
        table.add_column("Fields", justify="right")
        for collection in config.get('collections', []):
            if 'folder' in collection:
                kind, location = "folder", collection['folder']
                fields = len(collection.get('fields') or [])
            else:
                files = collection.get('files') or []
                kind, location = "files", ", ".join(f['file'] for f in files)
                fields = sum(len(f.get('fields') or []) for f in files)
            table.add_row(collection['name'], kind, location, str(fields))
        self.console.print(table)

    def print_entries(self, paths: List[str]) -> None:
        for path in paths:
            self.console.print(f"  {escape(path)}")
        self.print(f"{len(paths)} entries")
