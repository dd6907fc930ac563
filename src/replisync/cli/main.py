"""
Replisync CLI Main Entry Point.

Provides the command-line interface for running sync passes and for
maintaining replica data.
"""

from __future__ import annotations

import json
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import NoReturn

import click
import humanize
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from replisync import __version__
from replisync.core.config import (
    DEFAULT_CONFIG_FILE,
    ReplisyncConfig,
    get_default_config,
    load_config,
)
from replisync.core.errors import ReplisyncError
from replisync.core.logging import setup_logging
from replisync.core.models import CollectionRunReport, Record, format_timestamp
from replisync.maintenance import purge, seed_demo_data, soft_delete, update_quantity
from replisync.scheduler import Scheduler
from replisync.storage.sqlite import SQLiteCheckpointStore, SQLiteReplicaStore, open_stores
from replisync.sync.orchestrator import SyncOrchestrator

console = Console()


def fail(message: str) -> NoReturn:
    """Print an error and exit with status 1."""
    console.print(f"[red]Error: {message}[/red]")
    sys.exit(1)


def get_config(ctx: click.Context) -> ReplisyncConfig:
    """Get or load configuration from context."""
    if "config" not in ctx.obj:
        path = ctx.obj.get("config_path")
        try:
            config = ReplisyncConfig.load(path) if path else load_config()
        except ReplisyncError as e:
            fail(str(e))
        logging_config = config.logging.model_copy(
            update={"console_enabled": config.logging.console_enabled and not ctx.obj.get("quiet")}
        )
        setup_logging(logging_config)
        ctx.obj["config"] = config
    return ctx.obj["config"]


def get_stores(ctx: click.Context) -> tuple[SQLiteReplicaStore, SQLiteCheckpointStore]:
    """Get or open the replica and checkpoint stores from context."""
    if "stores" not in ctx.obj:
        config = get_config(ctx)
        try:
            ctx.obj["stores"] = open_stores(config.database_file)
        except ReplisyncError as e:
            fail(str(e))
    return ctx.obj["stores"]


def render_reports(reports: list[CollectionRunReport], json_output: bool) -> None:
    if json_output:
        click.echo(json.dumps([r.to_dict() for r in reports], indent=2, default=str))
        return

    table = Table(title="Sync Pass")
    table.add_column("Collection", style="cyan")
    table.add_column("Direction", style="magenta")
    table.add_column("Changes (L/C)", style="white")
    table.add_column("Writes (L/C)", style="green")
    table.add_column("Conflicts", style="yellow")
    table.add_column("Status")

    for report in reports:
        result = report.result
        if result is None:
            table.add_row(report.collection, "-", "-", "-", "-", f"[red]{report.error}[/red]")
            continue
        table.add_row(
            report.collection,
            result.direction.value,
            f"{result.local_changes}/{result.cloud_changes}",
            f"{result.local_writes}/{result.cloud_writes}",
            str(result.conflicts),
            "[green]ok[/green]",
        )
    console.print(table)


@click.group()
@click.version_option(version=__version__, prog_name="Replisync")
@click.option(
    "--config",
    "-c",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="Path to configuration file (default: ./config.json)",
)
@click.option("--json", "json_output", is_flag=True, help="Output in JSON format")
@click.option("--quiet", "-q", is_flag=True, help="Suppress non-essential output")
@click.pass_context
def cli(ctx: click.Context, config: Path | None, json_output: bool, quiet: bool) -> None:
    """
    Replisync - Keep local and cloud record collections in sync.

    Runs checkpointed sync passes that detect changes, resolve conflicts,
    and propagate records according to each collection's direction.
    """
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config
    ctx.obj["json_output"] = json_output
    ctx.obj["quiet"] = quiet


@cli.command("init")
@click.option(
    "--path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=DEFAULT_CONFIG_FILE,
    show_default=True,
    help="Where to write the starter configuration",
)
def init_config(path: Path) -> None:
    """Write a starter configuration file."""
    if path.exists():
        console.print(f"[yellow]{path} already exists, leaving it unchanged[/yellow]")
        return
    get_default_config().save(path)
    console.print(f"[green]Wrote starter configuration to {path}[/green]")


@cli.command("run")
@click.option("--once", is_flag=True, help="Run one sync pass and exit")
@click.option("--demo", is_flag=True, help="Seed demo data before syncing")
@click.option(
    "--collection",
    "collections",
    multiple=True,
    help="Only sync the named collection (repeatable)",
)
@click.pass_context
def run_sync(ctx: click.Context, once: bool, demo: bool, collections: tuple[str, ...]) -> None:
    """Run sync passes, once or on the configured schedule."""
    config = get_config(ctx)
    replica_store, checkpoint_store = get_stores(ctx)
    json_output = ctx.obj.get("json_output", False)
    quiet = ctx.obj.get("quiet", False)

    for name in collections:
        try:
            config.get_collection(name)
        except ReplisyncError as e:
            fail(str(e))

    if demo:
        first = config.collections[0]
        seeded = seed_demo_data(replica_store, first.local_table, first.cloud_table)
        if not quiet and not json_output:
            console.print(
                f"[cyan]Seeded demo data:[/cyan] local={[r.name for r in seeded['local']]} "
                f"cloud={[r.name for r in seeded['cloud']]}"
            )

    orchestrator = SyncOrchestrator(config.collections, replica_store, checkpoint_store)

    def run_pass() -> list[CollectionRunReport]:
        reports = orchestrator.run_all(collections or None)
        render_reports(reports, json_output)
        return reports

    if once or config.schedule is None:
        reports = run_pass()
        if not all(r.success for r in reports):
            sys.exit(1)
        return

    schedule = config.schedule
    if schedule.type == "interval":
        console.print(f"[cyan]Starting scheduler (every {schedule.every_seconds}s)[/cyan]")
    else:
        console.print(f"[cyan]Starting scheduler (cron {schedule.expression})[/cyan]")

    run_pass()
    scheduler = Scheduler(schedule, run_pass)
    scheduler.start()
    try:
        scheduler.wait()
    except KeyboardInterrupt:
        console.print("\n[yellow]Stopping scheduler[/yellow]")
    finally:
        scheduler.cancel()


@cli.command("status")
@click.pass_context
def status(ctx: click.Context) -> None:
    """Show the checkpoint of every configured collection."""
    config = get_config(ctx)
    _, checkpoint_store = get_stores(ctx)
    json_output = ctx.obj.get("json_output", False)
    checkpoints = checkpoint_store.list_checkpoints()

    if json_output:
        payload = [
            {
                "collection": c.name,
                "local_table": c.local_table,
                "cloud_table": c.cloud_table,
                "direction": c.direction.value,
                "conflict_policy": c.conflict_policy.value,
                "last_sync_at": (
                    format_timestamp(checkpoints[c.name]) if c.name in checkpoints else None
                ),
            }
            for c in config.collections
        ]
        click.echo(json.dumps(payload, indent=2))
        return

    now = datetime.now(timezone.utc)
    table = Table(title="Collections")
    table.add_column("Collection", style="cyan")
    table.add_column("Tables (L -> C)", style="white")
    table.add_column("Direction", style="magenta")
    table.add_column("Policy", style="yellow")
    table.add_column("Last Sync", style="green")

    for collection in config.collections:
        checkpoint = checkpoints.get(collection.name)
        last_sync = (
            f"{format_timestamp(checkpoint)} ({humanize.naturaltime(now - checkpoint)})"
            if checkpoint
            else "never"
        )
        table.add_row(
            collection.name,
            f"{collection.local_table} -> {collection.cloud_table}",
            collection.direction.value,
            collection.conflict_policy.value,
            last_sync,
        )
    console.print(table)


@cli.command("show")
@click.argument("table_name")
@click.option(
    "--include-deleted/--live-only",
    default=True,
    show_default=True,
    help="Include tombstones",
)
@click.pass_context
def show_table(ctx: click.Context, table_name: str, include_deleted: bool) -> None:
    """List the records stored in a replica table."""
    replica_store, _ = get_stores(ctx)
    json_output = ctx.obj.get("json_output", False)

    try:
        records = replica_store.list_records(table_name, include_deleted=include_deleted)
    except ReplisyncError as e:
        fail(str(e))

    if json_output:
        click.echo(json.dumps([r.to_row() for r in records], indent=2))
        return

    table = Table(title=table_name)
    table.add_column("ID", style="cyan")
    table.add_column("Name", style="white")
    table.add_column("Quantity", style="green", justify="right")
    table.add_column("Version", style="magenta", justify="right")
    table.add_column("Updated", style="white")
    table.add_column("Deleted", style="red")
    for record in records:
        row = record.to_row()
        table.add_row(
            record.id,
            record.name,
            str(record.quantity),
            str(record.version),
            row["updated_at"],
            row["deleted_at"] or "",
        )
    console.print(table)


def _print_record(ctx: click.Context, title: str, table_name: str, record: Record) -> None:
    if ctx.obj.get("json_output", False):
        click.echo(json.dumps(record.to_row(), indent=2))
        return
    if ctx.obj.get("quiet", False):
        return
    row = record.to_row()
    console.print(
        Panel(
            f"""[cyan]Table:[/cyan] {table_name}
[cyan]ID:[/cyan] {record.id}
[cyan]Name:[/cyan] {record.name}
[cyan]Quantity:[/cyan] {record.quantity}
[cyan]Version:[/cyan] {record.version}
[cyan]Updated:[/cyan] {row["updated_at"]}
[cyan]Deleted:[/cyan] {row["deleted_at"] or "No"}""",
            title=title,
        )
    )


@cli.command("seed")
@click.option("--local-table", default="local_items", show_default=True)
@click.option("--cloud-table", default="cloud_items", show_default=True)
@click.pass_context
def seed(ctx: click.Context, local_table: str, cloud_table: str) -> None:
    """Seed demo records into a pair of replica tables."""
    replica_store, _ = get_stores(ctx)
    try:
        seeded = seed_demo_data(replica_store, local_table, cloud_table)
    except ReplisyncError as e:
        fail(str(e))

    if ctx.obj.get("json_output", False):
        click.echo(
            json.dumps({side: [r.to_row() for r in records] for side, records in seeded.items()}, indent=2)
        )
        return
    console.print(
        f"[green]Seeded[/green] {local_table}: {', '.join(r.name for r in seeded['local'])}; "
        f"{cloud_table}: {', '.join(r.name for r in seeded['cloud'])}"
    )


@cli.command("set-quantity")
@click.argument("table_name")
@click.argument("record_id")
@click.argument("quantity", type=int)
@click.pass_context
def set_quantity(ctx: click.Context, table_name: str, record_id: str, quantity: int) -> None:
    """Change a record's quantity (bumps its version)."""
    replica_store, _ = get_stores(ctx)
    try:
        record = update_quantity(replica_store, table_name, record_id, quantity)
    except ReplisyncError as e:
        fail(str(e))
    _print_record(ctx, "Record Updated", table_name, record)


@cli.command("delete")
@click.argument("table_name")
@click.argument("record_id")
@click.pass_context
def delete_record(ctx: click.Context, table_name: str, record_id: str) -> None:
    """Soft-delete a record (leaves a tombstone for propagation)."""
    replica_store, _ = get_stores(ctx)
    try:
        record = soft_delete(replica_store, table_name, record_id)
    except ReplisyncError as e:
        fail(str(e))
    _print_record(ctx, "Record Deleted", table_name, record)


@cli.command("purge")
@click.argument("table_name")
@click.argument("record_id")
@click.option("--yes", is_flag=True, help="Skip the confirmation prompt")
@click.pass_context
def purge_record(ctx: click.Context, table_name: str, record_id: str, yes: bool) -> None:
    """Physically remove a record from one replica table."""
    if not yes:
        click.confirm(
            f"Permanently remove {record_id} from {table_name}? It will not be synced",
            abort=True,
        )
    replica_store, _ = get_stores(ctx)
    try:
        purge(replica_store, table_name, record_id)
    except ReplisyncError as e:
        fail(str(e))
    if not ctx.obj.get("quiet", False):
        console.print(f"[green]Purged {record_id} from {table_name}[/green]")


def main() -> None:
    """Main entry point."""
    try:
        cli(obj={})
    except KeyboardInterrupt:
        console.print("\n[yellow]Operation cancelled[/yellow]")
        sys.exit(130)
    except Exception as e:
        console.print(f"[red]Error: {e}[/red]")
        sys.exit(1)


if __name__ == "__main__":
    main()
