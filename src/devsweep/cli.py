"""CLI interface for devsweep."""

import logging
from typing import Optional

import typer
from rich.console import Console
from rich.logging import RichHandler

from devsweep import __version__
from devsweep.cleaner import DeletionGuard
from devsweep.config import (
    Config,
    add_protected_path,
    config_file,
    load_config,
    remove_protected_path,
)
from devsweep.display import (
    confirm_action,
    console,
    format_size,
    show_cache_table,
    show_categories,
    show_clear_results,
    show_config,
    show_recommendations,
    show_sizes_by_type,
    show_source_list,
)
from devsweep.manager import CacheManager, CleanOptions
from devsweep.models import CacheType
from devsweep.policy import AutoMode, plan_auto_clean
from devsweep.selection import build_criteria, parse_name_list, parse_sub_caches
from devsweep.sources import SourceCapability, default_sources
from devsweep.ttl_cache import TTLCache

log = logging.getLogger(__name__)

app = typer.Typer(
    name="devsweep",
    help="Find and safely reclaim disk space used by developer tool caches",
    add_completion=False,
)


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"devsweep version {__version__}")
        raise typer.Exit()


def setup_logging(verbose: bool) -> None:
    """Route log records through rich on stderr."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False, rich_tracebacks=True)],
        force=True,
    )


def _parse_types(value: Optional[str]) -> list[CacheType]:
    types = []
    for name in parse_name_list(value):
        try:
            types.append(CacheType(name))
        except ValueError:
            valid = ", ".join(t.value for t in CacheType)
            raise ValueError(f"Unknown cache type: {name} (expected one of: {valid})") from None
    return types


def build_manager(config: Config, types: Optional[list[CacheType]] = None) -> CacheManager:
    """Create a manager over the built-in sources using the user's config."""
    cache = TTLCache()
    sources = default_sources(cache, DeletionGuard(), search_roots=config.project_roots or None)
    if types:
        sources = [s for s in sources if s.type in types]
    return CacheManager(
        sources,
        enabled=config.enabled_map(sources),
        protected_paths=config.protected_paths,
        cache=cache,
    )


@app.callback()
def main(
    version: bool = typer.Option(
        None,
        "--version",
        "-v",
        help="Show version and exit.",
        callback=version_callback,
        is_eager=True,
    ),
    verbose: bool = typer.Option(False, "--verbose", help="Show debug logging"),
) -> None:
    """devsweep - find and safely reclaim developer tool caches."""
    output = load_config().output
    if not output.use_colors:
        console.no_color = True
    setup_logging(verbose or output.verbose)


@app.command(name="list")
def list_sources() -> None:
    """List cache sources with their type, enabled state and availability."""
    manager = build_manager(load_config())
    rows = [(s.name, s.type, manager.is_enabled(s.name), s.is_available()) for s in manager.get_all()]
    show_source_list(rows)


@app.command()
def sizes(
    cache_type: Optional[str] = typer.Option(None, "--type", "-t", help="Only sources of this type"),
) -> None:
    """Scan caches and show their sizes."""
    config = load_config()
    try:
        types = _parse_types(cache_type)
    except ValueError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1)

    manager = build_manager(config, types)
    infos = manager.get_all_cache_info(show_progress=console.is_terminal, console=console)

    console.print()
    show_cache_table(infos, show_categories=config.output.show_categories)
    console.print()
    show_sizes_by_type(manager.get_cache_sizes_by_type(infos))


@app.command()
def clean(
    dry_run: bool = typer.Option(False, "--dry-run", help="Show what would be removed without removing it"),
    force: bool = typer.Option(False, "--force", "-f", help="Skip the confirmation prompt"),
    types: Optional[str] = typer.Option(None, "--types", help="Comma separated cache types"),
    exclude: Optional[str] = typer.Option(None, "--exclude", help="Comma separated sources to skip"),
    include: Optional[str] = typer.Option(
        None, "--include", help="Comma separated sources to clear (ignores --types, --exclude and config)"
    ),
    sub_caches: Optional[str] = typer.Option(
        None, "--sub-caches", help="Clear only these categories, e.g. npm:logs,cargo:git"
    ),
    older_than: Optional[str] = typer.Option(None, "--older-than", help="Only categories older than e.g. 30d"),
    newer_than: Optional[str] = typer.Option(None, "--newer-than", help="Only categories newer than e.g. 7d"),
    larger_than: Optional[str] = typer.Option(None, "--larger-than", help="Only categories larger than e.g. 100MB"),
    smaller_than: Optional[str] = typer.Option(None, "--smaller-than", help="Only categories smaller than e.g. 1GB"),
    use_case: Optional[str] = typer.Option(None, "--use-case", help="Comma separated use cases"),
    priority: Optional[str] = typer.Option(None, "--priority", help="Comma separated priorities"),
    categories: Optional[str] = typer.Option(None, "--categories", help="Comma separated category ids"),
) -> None:
    """Clear caches, optionally narrowed by type, source or category."""
    config = load_config()

    try:
        options = CleanOptions(
            dry_run=dry_run or config.safety.dry_run_default,
            types=_parse_types(types),
            exclude=parse_name_list(exclude),
            include=parse_name_list(include),
            sub_caches_to_clear=parse_sub_caches(sub_caches),
            criteria=build_criteria(
                older_than=older_than,
                newer_than=newer_than,
                larger_than=larger_than,
                smaller_than=smaller_than,
                use_case=use_case,
                priority=priority,
                categories=categories,
            ),
        )
    except ValueError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1)

    manager = build_manager(config)
    if not manager.resolve_sources(options):
        console.print("[yellow]No cache sources selected.[/yellow]")
        raise typer.Exit(0)

    if not options.dry_run and config.safety.require_confirmation and not force:
        preview = manager.clean_all_caches(options.model_copy(update={"dry_run": True}))
        show_clear_results(preview)
        if not any(r.cleared_paths for r in preview if r.success):
            console.print("[yellow]Nothing to clean.[/yellow]")
            raise typer.Exit(0)

        # Sizes of huge caches may be estimates
        total = sum(r.freed_bytes for r in preview if r.success)
        console.print()
        if not confirm_action(f"Delete about {format_size(total)} of cache data?"):
            console.print("[yellow]Cancelled[/yellow]")
            raise typer.Exit(0)

        # Measure again for the real run
        manager.reset_cache()

    results = manager.clean_all_caches(options)
    show_clear_results(results)

    if any(not r.success for r in results):
        raise typer.Exit(1)


@app.command()
def auto(
    aggressive: bool = typer.Option(False, "--aggressive", help="Lower thresholds and skip the safety review"),
    dry_run: bool = typer.Option(False, "--dry-run", help="Show what would be removed without removing it"),
    force: bool = typer.Option(False, "--force", "-f", help="Skip the confirmation prompt"),
) -> None:
    """Pick caches worth cleaning by size, age and safety, then clean them."""
    config = load_config()
    manager = build_manager(config)
    infos = manager.get_all_cache_info(show_progress=console.is_terminal, console=console)

    mode = AutoMode.AGGRESSIVE if aggressive else AutoMode.SAFE
    plan = plan_auto_clean(infos, mode, config.policies, dry_run=dry_run or config.safety.dry_run_default)
    if not plan.recommendations:
        console.print("[green]No cache is worth cleaning right now.[/green]")
        raise typer.Exit(0)

    console.print()
    show_recommendations(plan.recommendations, aggressive=aggressive)
    if not plan.selected:
        console.print("[yellow]Nothing is safe to clean automatically.[/yellow]")
        raise typer.Exit(0)

    if not plan.options.dry_run and config.safety.require_confirmation and not force:
        console.print()
        message = f"Clean {len(plan.selected)} cache(s), about {format_size(plan.selected_bytes)}?"
        if not confirm_action(message):
            console.print("[yellow]Cancelled[/yellow]")
            raise typer.Exit(0)

    console.print()
    results = manager.clean_all_caches(plan.options)
    show_clear_results(results)

    if any(not r.success for r in results):
        raise typer.Exit(1)


@app.command(name="categories")
def list_categories(
    name: str = typer.Argument(..., help="Cache source name"),
) -> None:
    """Show the category breakdown of one cache source."""
    manager = build_manager(load_config())
    source = manager.get(name)
    if source is None:
        console.print(f"[red]Unknown cache source: {name}[/red]")
        console.print("\nAvailable sources:")
        for s in manager.get_all():
            console.print(f"  • {s.name}")
        raise typer.Exit(1)

    if not source.supports(SourceCapability.CATEGORIES):
        console.print(f"[yellow]{name} has no category breakdown[/yellow]")
        raise typer.Exit(1)

    show_categories(source.get_cache_info())


@app.command()
def config() -> None:
    """Show the effective configuration."""
    show_config(load_config(), str(config_file()))


@app.command()
def protect(
    path: str = typer.Argument(..., help="Path or glob to protect from cleanup"),
) -> None:
    """Never clear a path (or anything below it)."""
    result = add_protected_path(path)
    if not result["success"]:
        console.print(f"[red]{result['error']}[/red]")
        raise typer.Exit(1)
    console.print(f"[green]✓[/green] Protected {path}")


@app.command()
def unprotect(
    path: str = typer.Argument(..., help="Protected path or glob to remove"),
) -> None:
    """Remove a path from the protected list."""
    result = remove_protected_path(path)
    if not result["success"]:
        console.print(f"[red]{result['error']}[/red]")
        raise typer.Exit(1)
    console.print(f"[green]✓[/green] Unprotected {path}")


if __name__ == "__main__":
    app()
