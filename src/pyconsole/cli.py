"""CLI entry point using typer."""

from __future__ import annotations

import asyncio
import logging
import sys
from pathlib import Path

import typer
from rich.console import Console
from rich.table import Table

from pyconsole import __version__
from pyconsole.config import (
    CONFIG_FILE,
    LOG_FILE,
    AppConfig,
    BackendConfig,
    ConsoleConfig,
    LoggingConfig,
    StorageConfig,
    ensure_config_dir,
    get_config,
    load_config,
    save_config,
)
from pyconsole.errors import PersistenceError
from pyconsole.storage.database import SQLiteHistoryStore

app = typer.Typer(
    name="pyconsole",
    help="Interactive Python console with persistent history.",
    add_completion=False,
)
console = Console()


def _setup_logging(config: AppConfig) -> None:
    ensure_config_dir()
    log_path = Path(config.logging.file).expanduser().resolve()
    log_path.parent.mkdir(parents=True, exist_ok=True)
    logging.basicConfig(
        level=getattr(logging, config.logging.level.upper(), logging.WARNING),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        handlers=[logging.FileHandler(str(log_path))],
    )


@app.command()
def init() -> None:
    """Interactive setup wizard."""
    console.print(f"\n[bold]pyconsole v{__version__}[/bold]")
    console.print("Interactive Setup\n")

    console.print("[bold]Step 1:[/bold] Modules to import at start-up")
    console.print("  Enter module names separated by commas, or leave empty.")
    preload_str = typer.prompt("  Modules", default="", show_default=False)
    preload = [name.strip() for name in preload_str.split(",") if name.strip()]

    console.print("\n[bold]Step 2:[/bold] History database")
    db_path = typer.prompt("  Database path", default=StorageConfig().db_path)

    console.print("\n[bold]Step 3:[/bold] HTML output directory")
    html_dir = typer.prompt("  Directory", default=ConsoleConfig().html_dir)

    config = AppConfig(
        backend=BackendConfig(preload_modules=preload),
        console=ConsoleConfig(html_dir=html_dir),
        storage=StorageConfig(db_path=db_path),
        logging=LoggingConfig(),
    )
    save_config(config)

    console.print(f"\n[green]Configuration saved to {CONFIG_FILE}[/green]")
    console.print("\nNext step:")
    console.print("  [bold]pyconsole run[/bold]  Start the console\n")


@app.command()
def run(
    ephemeral: bool = typer.Option(False, "--ephemeral", "-e", help="Keep history in memory only"),
) -> None:
    """Start the interactive console."""
    from pyconsole.console.terminal import TerminalConsole
    from pyconsole.services.backend import LocalPythonBackend
    from pyconsole.storage.memory import MemoryHistoryStore

    config = get_config()
    _setup_logging(config)

    async def _main() -> None:
        if ephemeral:
            store = MemoryHistoryStore()
        else:
            store = SQLiteHistoryStore(config.storage.db_path)
            try:
                await store.open()
            except PersistenceError as e:
                console.print(f"[yellow]Warning: {e}[/yellow]")
                console.print("History will not be kept for this session.\n")
                store = MemoryHistoryStore()

        terminal = TerminalConsole(
            backend=LocalPythonBackend(config.backend.preload_modules),
            store=store,
            html_dir=config.console.html_dir,
        )
        await terminal.run()

    console.print(f"[bold]pyconsole v{__version__}[/bold]  (Alt+Enter: newline, Ctrl+D: quit)")
    try:
        asyncio.run(_main())
    except KeyboardInterrupt:
        pass


@app.command()
def history(
    limit: int = typer.Option(20, "--limit", "-n", help="Number of entries"),
    clear: bool = typer.Option(False, "--clear", help="Delete all stored entries"),
) -> None:
    """Show or clear stored console history."""
    config = get_config()

    async def _rows() -> list[dict]:
        store = SQLiteHistoryStore(config.storage.db_path)
        await store.open()
        try:
            if clear:
                await store.save_all([])
                return []
            return await store.get_recent(limit=limit)
        finally:
            await store.close()

    try:
        rows = asyncio.run(_rows())
    except PersistenceError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1)

    if clear:
        console.print("[green]History cleared.[/green]")
        return
    if not rows:
        console.print("[dim]No history yet.[/dim]")
        return

    table = Table(title="History")
    table.add_column("#", style="cyan")
    table.add_column("Input")
    table.add_column("Output")
    table.add_column("Class", style="magenta")
    table.add_column("Time", style="dim")
    for row in reversed(rows):
        output = row["output"] if row["output"] is not None else ""
        table.add_row(
            str(row["id"]),
            row["input"] or "(terminal)",
            output[:60] + ("..." if len(output) > 60 else ""),
            row["classification"],
            str(row["created_at"]),
        )
    console.print(table)


@app.command()
def config(
    key: str = typer.Argument(None, help="Config key (e.g., storage.db_path)"),
    value: str = typer.Argument(None, help="New value"),
) -> None:
    """View or modify configuration."""
    if not CONFIG_FILE.exists():
        console.print("[red]Not configured. Run 'pyconsole init'.[/red]")
        raise typer.Exit(1)

    cfg = load_config()

    if key is None:
        table = Table(title="Configuration")
        table.add_column("Key", style="cyan")
        table.add_column("Value", style="green")

        table.add_row("backend.preload_modules", ", ".join(cfg.backend.preload_modules) or "(none)")
        table.add_row("console.html_dir", cfg.console.html_dir)
        table.add_row("storage.db_path", cfg.storage.db_path)
        table.add_row("logging.level", cfg.logging.level)
        table.add_row("logging.file", cfg.logging.file)

        console.print(table)
        return

    if value is None:
        console.print("[red]Usage: pyconsole config <key> <value>[/red]")
        raise typer.Exit(1)

    parts = key.split(".")
    if len(parts) != 2:
        console.print("[red]Key format: section.key (e.g., logging.level)[/red]")
        raise typer.Exit(1)

    section, attr = parts
    section_map = {"backend": cfg.backend, "console": cfg.console, "storage": cfg.storage, "logging": cfg.logging}

    if section not in section_map:
        console.print(f"[red]Unknown section: {section}[/red]")
        raise typer.Exit(1)

    obj = section_map[section]
    if not hasattr(obj, attr):
        console.print(f"[red]Unknown key: {key}[/red]")
        raise typer.Exit(1)

    current = getattr(obj, attr)
    if isinstance(current, list):
        typed_value: object = [v.strip() for v in value.split(",") if v.strip()]
    else:
        typed_value = value

    setattr(obj, attr, typed_value)
    save_config(cfg)
    console.print(f"[green]{key} = {typed_value}[/green]")


@app.command()
def logs(
    lines: int = typer.Option(50, "--lines", "-n", help="Number of lines"),
) -> None:
    """View console logs."""
    log_path = Path(LOG_FILE).expanduser().resolve()
    if not log_path.exists():
        console.print("[dim]No log file found.[/dim]")
        return

    content = log_path.read_text()
    log_lines = content.strip().split("\n")
    for line in log_lines[-lines:]:
        console.print(line, markup=False)


@app.command()
def version() -> None:
    """Show version information."""
    console.print(f"pyconsole v{__version__}")
    console.print(f"Python: {sys.version.split()[0]}")
    console.print(f"Config: {CONFIG_FILE}")


if __name__ == "__main__":
    app()
