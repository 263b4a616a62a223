"""schemalift CLI.

`schemalift upgrade` runs the boot-time upgrade pass on demand,
`schemalift status` shows what it would do, and `schemalift migration create`
scaffolds a correctly named migration file.
"""

from __future__ import annotations

import typer
from rich.console import Console
from rich.table import Table

from schemalift.cli.context import run_async
from schemalift.config import ScopePaths, settings
from schemalift.db import Database
from schemalift.exceptions import SchemaliftError, UnknownVersionError
from schemalift.extensions.registry import ExtensionRegistry
from schemalift.extensions.schema import SchemaProvisioner
from schemalift.log import configure_logging
from schemalift.migrations.scaffold import create_migration
from schemalift.startup import boot
from schemalift.upgrade.manager import VersionManager

console = Console()

app = typer.Typer(
    name="schemalift",
    help="schemalift -- versioned schema and data upgrades for a core system and its extensions.",
    no_args_is_help=True,
)
migration_app = typer.Typer(help="Migration files")
schema_app = typer.Typer(help="Extension schema namespaces")
app.add_typer(migration_app, name="migration")
app.add_typer(schema_app, name="schema")


@app.callback()
def main(
    log_level: str = typer.Option(None, "--log-level", help="Override SCHEMALIFT_LOG_LEVEL"),
):
    configure_logging(log_level or settings.log_level)


@app.command("upgrade")
def upgrade(
    core: bool = typer.Option(True, "--core/--no-core", help="Upgrade the core system"),
    extensions: bool = typer.Option(
        True, "--extensions/--no-extensions", help="Upgrade enabled extensions"
    ),
    strict: bool = typer.Option(
        False, "--strict", help="Exit non-zero if any extension fails"
    ),
):
    """Run the upgrade pass now."""
    try:
        result = run_async(
            boot(settings, core=core, extensions=extensions, strict=strict or None)
        )
    except SchemaliftError as e:
        console.print(f"[red]Upgrade failed:[/red] {e}")
        raise typer.Exit(1)

    if result.core is not None:
        info = result.core
        if info.needs_upgrade:
            console.print(
                f"[green]Core upgraded:[/green] {info.installed or 'initial'} -> {info.current}"
            )
        else:
            console.print(f"[green]Core up to date:[/green] {info.current}")

    report = result.extensions
    if report is None:
        return

    table = Table(title="Extension upgrade")
    table.add_column("Extension", style="cyan")
    table.add_column("Outcome")
    table.add_column("Detail", style="dim")
    for identifier in report.upgraded:
        table.add_row(identifier, "[green]upgraded[/green]", "")
    for identifier in report.skipped:
        table.add_row(identifier, "[yellow]skipped[/yellow]", "build not found")
    for identifier in report.failed:
        table.add_row(identifier, "[red]failed[/red]", report.errors.get(identifier, "")[:120])
    console.print(table)
    console.print(
        f"Upgraded: {report.upgraded_count}, "
        f"Skipped: {report.skipped_count}, Failed: {report.failed_count}"
    )


@app.command("status")
def status():
    """Show installed and deployed versions without changing anything."""
    db = Database(settings.db_path)
    table = Table(title="Version status")
    table.add_column("Scope", style="cyan")
    table.add_column("Installed")
    table.add_column("Deployed")
    table.add_column("Upgrade path", style="white")

    def add_row(scope: str, manager: VersionManager) -> None:
        try:
            info = manager.version_info()
        except UnknownVersionError as e:
            table.add_row(scope, "-", "[red]unknown[/red]", str(e)[:80])
            return
        path = " -> ".join(info.upgrade_versions) if info.needs_upgrade else "[green]up to date[/green]"
        table.add_row(scope, info.installed or "[dim]none[/dim]", info.current, path)

    add_row("core", VersionManager.for_core(db, config=settings))

    try:
        registry = ExtensionRegistry.from_settings(settings)
    except SchemaliftError as e:
        console.print(table)
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1)

    for extension in registry.enabled():
        if not extension.build_ready:
            table.add_row(extension.identifier, "-", "-", "[yellow]build not found[/yellow]")
            continue
        add_row(
            extension.identifier,
            VersionManager.for_extension(db, extension.identifier, config=settings),
        )
    console.print(table)


@migration_app.command("create")
def migration_create(
    version: str = typer.Argument(help="Version the migration belongs to, e.g. 1.2.0"),
    description: str = typer.Argument(help="Kebab-case description, e.g. add-new-field"),
    extension: str = typer.Option(None, "--extension", "-e", help="Extension identifier"),
    sql: bool = typer.Option(False, "--sql", help="Create a .sql file instead of .py"),
):
    """Create a new, correctly named migration file."""
    if extension:
        paths = ScopePaths.for_extension(settings, extension)
        namespace = paths.namespace
    else:
        paths = ScopePaths.for_core(settings)
        namespace = None

    try:
        path = create_migration(
            paths.migrations_dir,
            version,
            description,
            suffix="sql" if sql else "py",
            scope=paths.scope,
            namespace=namespace,
        )
    except (ValueError, FileExistsError) as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)
    console.print(f"[green]Migration created:[/green] {path}")


@schema_app.command("list")
def schema_list():
    """List the schema namespace of every enabled extension."""
    try:
        registry = ExtensionRegistry.from_settings(settings)
    except SchemaliftError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1)

    provisioner = SchemaProvisioner(Database(settings.db_path), settings.schemas_dir)
    table = Table(title="Extension schemas")
    table.add_column("Extension", style="cyan")
    table.add_column("Namespace")
    table.add_column("Data file", style="dim")
    for extension in registry.enabled():
        path = provisioner.schema_file(extension.identifier)
        table.add_row(
            extension.identifier,
            provisioner.schema_name(extension.identifier),
            str(path) if path.exists() else "[yellow]not created[/yellow]",
        )
    console.print(table)


@app.command("version")
def version_cmd():
    """Show schemalift version."""
    from schemalift import __version__
    console.print(f"schemalift v{__version__}")
