"""Rich terminal display for devsweep."""

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from devsweep.config import Config
from devsweep.models import CacheInfo, CacheType, ClearResult, Priority, Recommendation, Urgency

console = Console()

_SIZE_UNITS = ("B", "KB", "MB", "GB", "TB")


def format_size(size_bytes: int) -> str:
    """Format bytes to a human-readable string (binary units, 1 KB = 1024 B)."""
    size = float(max(size_bytes, 0))
    for unit in _SIZE_UNITS[:-1]:
        if size < 1024:
            return f"{int(size)} B" if unit == "B" else f"{size:.1f} {unit}"
        size /= 1024
    return f"{size:.1f} {_SIZE_UNITS[-1]}"


def priority_label(priority: Priority) -> str:
    """Get styled label for a category priority."""
    labels = {
        Priority.CRITICAL: "[red]critical[/red]",
        Priority.IMPORTANT: "[yellow]important[/yellow]",
        Priority.NORMAL: "normal",
        Priority.LOW: "[green]low[/green]",
    }
    return labels.get(priority, priority.value)


def show_source_list(rows: list[tuple[str, CacheType, bool, bool]]) -> None:
    """Display registered sources as (name, type, enabled, available) rows."""
    table = Table(title="Cache Sources", show_header=True, header_style="bold")
    table.add_column("Name")
    table.add_column("Type")
    table.add_column("Enabled", justify="center")
    table.add_column("Available", justify="center")

    for name, cache_type, enabled, available in rows:
        table.add_row(
            name,
            cache_type.value,
            "[green]✓[/green]" if enabled else "[dim]-[/dim]",
            "[green]✓[/green]" if available else "[dim]-[/dim]",
        )

    console.print(table)


def show_cache_table(infos: list[CacheInfo], show_categories: bool = False) -> None:
    """Display scanned caches, largest first."""
    table = Table(title="Cache Sizes", show_header=True, header_style="bold")
    table.add_column("Cache")
    table.add_column("Type")
    table.add_column("Size", justify="right")
    table.add_column("Paths", justify="right")

    total = 0
    for info in sorted(infos, key=lambda i: i.size_bytes, reverse=True):
        if info.error:
            table.add_row(f"[red]✗[/red] {escape(info.name)}", info.type.value, "[red]error[/red]", "-")
            continue
        if not info.is_installed and not info.paths:
            continue

        size = format_size(info.size_bytes)
        if info.size_estimated:
            size = f"~{size}"
        table.add_row(info.name, info.type.value, size, str(len(info.paths)))
        total += info.size_bytes

        if show_categories:
            for category in sorted(info.categories or [], key=lambda c: c.size_bytes, reverse=True):
                table.add_row(
                    f"  [dim]└ {escape(category.id)}[/dim]",
                    "",
                    f"[dim]{format_size(category.size_bytes)}[/dim]",
                    "",
                )

    console.print(table)
    console.print(f"\n[bold]Total: {format_size(total)}[/bold]")


def show_sizes_by_type(sizes: dict[CacheType, int]) -> None:
    """Display totals per cache type."""
    table = Table(title="By Type", show_header=True, header_style="bold")
    table.add_column("Type")
    table.add_column("Size", justify="right")

    for cache_type, size in sorted(sizes.items(), key=lambda item: item[1], reverse=True):
        table.add_row(cache_type.value, format_size(size))

    console.print(table)


def show_categories(info: CacheInfo) -> None:
    """Display the category breakdown of one source."""
    if not info.categories:
        console.print(f"[yellow]No categories found for {escape(info.name)}[/yellow]")
        return

    table = Table(title=f"{info.name} categories", show_header=True, header_style="bold")
    table.add_column("ID")
    table.add_column("Name")
    table.add_column("Size", justify="right")
    table.add_column("Age", justify="right")
    table.add_column("Priority")
    table.add_column("Use case")

    for category in info.categories:
        age = f"{category.age_in_days}d" if category.age_in_days is not None else "-"
        table.add_row(
            escape(category.id),
            escape(category.name),
            format_size(category.size_bytes),
            age,
            priority_label(category.priority),
            category.use_case.value,
        )

    console.print(table)


def show_recommendations(recommendations: list[Recommendation], aggressive: bool = False) -> None:
    """Display auto-clean recommendations, most urgent first."""
    styles = {Urgency.HIGH: "red", Urgency.MEDIUM: "yellow", Urgency.LOW: "green"}
    table = Table(title="Cleaning Recommendations", show_header=True, header_style="bold")
    table.add_column("Urgency")
    table.add_column("Cache")
    table.add_column("Size", justify="right")
    table.add_column("Reason")
    table.add_column("Action")

    for rec in recommendations:
        style = styles[rec.urgency]
        action = "[green]clean[/green]" if rec.safe or aggressive else "[dim]review[/dim]"
        table.add_row(
            f"[{style}]{rec.urgency.value}[/{style}]",
            escape(rec.name),
            format_size(rec.size_bytes),
            rec.reason,
            action,
        )

    console.print(table)
    if not aggressive and any(not r.safe for r in recommendations):
        console.print("[dim]Caches marked review are skipped; use --aggressive or devsweep clean.[/dim]")


def show_clear_results(results: list[ClearResult]) -> None:
    """Display per-source clear results and the total freed."""
    dry_run = any(r.dry_run for r in results)
    if dry_run:
        console.print("[yellow]DRY RUN - No files were deleted[/yellow]\n")

    for result in results:
        if result.success:
            verb = "would free" if result.dry_run else "freed"
            detail = f"{format_size(result.freed_bytes)} {verb}"
            if result.cleared_categories:
                detail += f" [dim]({', '.join(escape(c) for c in result.cleared_categories)})[/dim]"
            console.print(f"  [green]✓[/green] {escape(result.name)}: {detail}")
        else:
            console.print(f"  [red]✗[/red] {escape(result.name)}: {escape(result.error or 'failed')}")

    total = sum(r.freed_bytes for r in results if r.success)
    failures = sum(1 for r in results if not r.success)

    console.print()
    label = "Would free" if dry_run else "Space freed"
    console.print(Panel(
        f"[bold]{label}: {format_size(total)}[/bold]"
        + (f"\n[red]{failures} source(s) failed[/red]" if failures else ""),
        border_style="yellow" if dry_run else "green",
    ))


def show_config(config: Config, path: str) -> None:
    """Display the effective configuration."""
    table = Table(show_header=False)
    table.add_column("Setting", style="bold")
    table.add_column("Value")

    table.add_row("Config file", path)
    table.add_row("Require confirmation", str(config.safety.require_confirmation))
    table.add_row("Dry run by default", str(config.safety.dry_run_default))
    table.add_row("Show categories", str(config.output.show_categories))
    disabled = [name for name, on in config.tools.items() if not on]
    disabled += [t.value for t, on in config.enabled_types.items() if not on]
    table.add_row("Disabled", ", ".join(disabled) or "-")
    table.add_row("Protected paths", "\n".join(escape(p) for p in config.protected_paths) or "-")
    table.add_row("Project roots", "\n".join(escape(p) for p in config.project_roots) or "~ (home)")
    policy = config.policies
    ages = (
        ("Auto-clean older than", policy.auto_clean_older_than),
        ("Keep recently used", policy.preserve_recently_used),
    )
    for label, days in ages:
        table.add_row(label, f"{days} days" if days is not None else "-")

    console.print(Panel(table, title="[bold]devsweep configuration[/bold]"))


def confirm_action(message: str) -> bool:
    """Ask for confirmation."""
    from rich.prompt import Confirm

    return Confirm.ask(message)
