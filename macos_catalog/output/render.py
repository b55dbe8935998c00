"""Output rendering for catalog snapshots."""

import json
from io import StringIO

from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from macos_catalog.models import CatalogSnapshot, Category

CATEGORY_LABELS = {
    Category.APPLICATION: "App",
    Category.SETTINGS_PANE: "Settings",
    Category.SYSTEM_BUILTIN: "System",
    Category.EXTENSION_COMMAND: "Extension",
    Category.SCRIPT_COMMAND: "Script",
}


def render_human(snapshot: CatalogSnapshot, show_keywords: bool = False) -> str:
    """
    Render a snapshot as a Rich table.

    Args:
        snapshot: Catalog to render
        show_keywords: Add a column with each command's search terms

    Returns:
        Formatted string suitable for terminal display
    """
    output_buffer = StringIO()
    console = Console(file=output_buffer, width=140, force_terminal=True)

    header_text = Text()
    header_text.append("macOS Command Catalog", style="bold cyan")
    header_text.append(f"  built {snapshot.built_at.isoformat(timespec='seconds')}", style="dim")
    console.print(Panel(header_text, border_style="cyan", box=box.ROUNDED))

    summary_text = Text()
    for category, count in snapshot.summary().items():
        label = CATEGORY_LABELS[Category(category)]
        summary_text.append(f"{count} {label}  ", style="bold" if count else "dim")
    console.print(Panel(summary_text, title="[bold]Summary[/bold]", border_style="yellow", box=box.ROUNDED))

    if not snapshot.commands:
        console.print("[dim]No commands discovered[/dim]")
        return output_buffer.getvalue()

    table = Table(box=box.SIMPLE_HEAVY, show_lines=False)
    table.add_column("Type", style="cyan", no_wrap=True)
    table.add_column("Title", style="bold white")
    table.add_column("Subtitle", style="dim")
    table.add_column("Icon", justify="center")
    table.add_column("ID", style="dim", overflow="fold")
    if show_keywords:
        table.add_column("Keywords", style="dim", overflow="fold")

    for command in snapshot.commands:
        row = [
            CATEGORY_LABELS[command.category],
            command.title,
            command.subtitle or "",
            "[green]✓[/green]" if command.icon_ref else "[dim]-[/dim]",
            command.id,
        ]
        if show_keywords:
            row.append(", ".join(command.keywords))
        table.add_row(*row)

    console.print(table)
    return output_buffer.getvalue()


def render_json(snapshot: CatalogSnapshot) -> str:
    """Render a snapshot as stable, indented JSON."""
    data = json.loads(snapshot.model_dump_json(exclude_none=True))
    return json.dumps(data, indent=2, sort_keys=True)
