from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import BaseModel
from rich import box
from rich.console import Console
from rich.table import Table

from demonlist.pagination import Page


def flatten(entity: Any, prefix: str = "") -> Dict[str, Any]:
    """
    Flatten an entity into display columns.

    Nested models become dotted columns (``player.name``); nested ids are dropped
    in favour of names where both exist.
    """
    data = entity.model_dump(mode="json") if isinstance(entity, BaseModel) else dict(entity)
    columns: Dict[str, Any] = {}
    for name, value in data.items():
        if isinstance(value, dict):
            nested = {k: v for k, v in value.items() if not (k == "id" and "name" in value)}
            for key, inner in nested.items():
                columns[f"{prefix}{name}.{key}"] = inner
        else:
            columns[f"{prefix}{name}"] = value
    return columns


def _cell(value: Any) -> str:
    if value is None:
        return "[dim]-[/dim]"
    if isinstance(value, bool):
        return "yes" if value else "no"
    return str(value)


def print_entity(entity: Any, title: Optional[str] = None, console: Optional[Console] = None) -> None:
    """Render a single entity as a two-column table."""
    console = console or Console()
    table = Table(title=title or type(entity).__name__, box=box.ROUNDED, show_header=False)
    table.add_column("Field", style="cyan", no_wrap=True)
    table.add_column("Value", style="green")
    for name, value in flatten(entity).items():
        table.add_row(name, _cell(value))
    console.print(table)


def print_page(page: Page[Any], title: str, console: Optional[Console] = None) -> None:
    """
    Render one page of a listing as a rich table, followed by its navigation links.
    """
    console = console or Console()

    if not page.items:
        console.print(f"[yellow]No {title.lower()} to display.[/yellow]")
        return

    rows: List[Dict[str, Any]] = [flatten(item) for item in page.items]
    columns: List[str] = []
    for row in rows:
        for name in row:
            if name not in columns:
                columns.append(name)

    table = Table(title=title, box=box.ROUNDED, caption=f"{len(rows)} shown")
    for index, name in enumerate(columns):
        table.add_column(name, style="cyan" if index == 0 else None, no_wrap=index == 0)
    for row in rows:
        table.add_row(*(_cell(row.get(name)) for name in columns))
    console.print(table)

    links = Table(box=box.SIMPLE, show_header=False)
    links.add_column("Link", style="magenta", no_wrap=True)
    links.add_column("Query")
    for rel, query in page.links.as_dict().items():
        if query is not None:
            links.add_row(rel, query)
    console.print(links)


__all__ = ["flatten", "print_entity", "print_page"]
