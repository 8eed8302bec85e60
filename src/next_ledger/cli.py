from __future__ import annotations

import asyncio
import json
import os
import sys
from pathlib import Path
from typing import Awaitable, Callable, TypeVar

import click

from next_ledger import __version__
from next_ledger.db.database import Database
from next_ledger.errors import LedgerError, ValidationError
from next_ledger.models.claim import ClaimRequest
from next_ledger.utils.config import Config, get_config
from next_ledger.utils.logger import setup_logging

T = TypeVar("T")

_STATUS_ROW = "{:<20} {:>10} {:>10} {:>10}"


def _run(
    ctx: click.Context,
    db_path: str | None,
    handler: Callable[[Database], Awaitable[T]],
) -> T:
    """Open the ledger, run ``handler`` against it, and map errors to exit codes."""
    config: Config = ctx.obj
    path = Path(db_path) if db_path else config.db_path

    async def _main() -> T:
        db = Database(path, busy_timeout_ms=config.busy_timeout_ms)
        await db.initialize()
        try:
            return await handler(db)
        finally:
            await db.close()

    try:
        return asyncio.run(_main())
    except ValidationError as exc:
        raise click.UsageError(str(exc), ctx=ctx) from exc
    except LedgerError as exc:
        raise click.ClickException(str(exc)) from exc


def db_option(fn: Callable[..., None]) -> Callable[..., None]:
    return click.option(
        "--db",
        "db_path",
        default=None,
        help="Ledger database path (default: $NEXT_DB_PATH or .quality/ledger.db).",
    )(fn)


@click.group()
@click.version_option(version=__version__, prog_name="next")
@click.option(
    "--log-level",
    default=None,
    help="Logging level for stderr diagnostics (default: $NEXT_LOG_LEVEL or INFO).",
)
@click.pass_context
def main(ctx: click.Context, log_level: str | None) -> None:
    """next: deterministic, coordination-free work ledger.

    \b
    Examples:
      find . -name '*.go' | next enqueue --treatment=lint
      next claim --treatment=lint --n=10 --shard=0 --total-shards=4
      next done --path=foo.go --treatment=lint --result=abc123 --revisit='14 days'
    """
    config = get_config()
    setup_logging(log_level or config.log_level)
    ctx.obj = config


@main.command()
@db_option
@click.pass_context
def init(ctx: click.Context, db_path: str | None) -> None:
    """Create the ledger database and schema."""

    async def _init(db: Database) -> Path:
        return db.db_path

    path = _run(ctx, db_path, _init)
    click.echo(f"Ledger initialized at {path}")


@main.command()
@click.option("--treatment", required=True, help="Treatment label to enqueue under.")
@db_option
@click.pass_context
def enqueue(ctx: click.Context, treatment: str, db_path: str | None) -> None:
    """Read paths from stdin and add or reconcile them in the ledger."""
    from next_ledger.services.reconciler import EnqueueReconciler

    # File names are bytes; undecodable ones surface as surrogates and are
    # skipped per line by the reconciler.
    locations = (os.fsdecode(line) for line in sys.stdin.buffer)
    summary = _run(ctx, db_path, lambda db: EnqueueReconciler(db).enqueue(locations, treatment))
    click.echo(
        f"enqueued {summary.reconciled} paths for treatment={treatment} "
        f"(new={summary.inserted} requeued={summary.requeued} "
        f"unchanged={summary.unchanged} skipped={summary.skipped})"
    )


@main.command()
@click.option("--treatment", required=True, help="Treatment label to claim from.")
@click.option("--cursor", default="", help="Resume after this location hash.")
@click.option(
    "--n",
    "n",
    type=click.IntRange(min=1),
    default=None,
    help="Number of items to claim (default: $NEXT_DEFAULT_BATCH or 1).",
)
@click.option("--shard", type=click.IntRange(min=0), default=None, help="Shard index.")
@click.option(
    "--total-shards", type=click.IntRange(min=1), default=None, help="Total number of shards."
)
@click.option(
    "--format",
    "output_format",
    type=click.Choice(["plain", "json"], case_sensitive=False),
    default="plain",
    show_default=True,
    help="plain prints one path per line; json prints one object per line.",
)
@db_option
@click.pass_context
def claim(
    ctx: click.Context,
    treatment: str,
    cursor: str,
    n: int | None,
    shard: int | None,
    total_shards: int | None,
    output_format: str,
    db_path: str | None,
) -> None:
    """Print the next pending paths in hash order."""
    from next_ledger.services.claim_engine import ClaimEngine

    request = ClaimRequest(
        treatment=treatment,
        cursor=cursor,
        n=n if n is not None else ctx.obj.default_batch,
        shard=shard,
        total_shards=total_shards,
    )
    batch = _run(ctx, db_path, lambda db: ClaimEngine(db).claim(request))

    for item in batch.items:
        if output_format.lower() == "json":
            click.echo(
                json.dumps(
                    {
                        "location": item.location,
                        "location_hash": item.location_hash,
                        "due": not item.is_pending,
                    }
                )
            )
        else:
            click.echo(item.location)

    if batch.skipped:
        click.echo(
            f"warning: {batch.skipped} matching rows could not be decoded and were skipped",
            err=True,
        )


@main.command()
@click.option("--path", "location", required=True, help="Path of the completed item.")
@click.option("--treatment", required=True, help="Treatment label of the item.")
@click.option("--result", default="", help="Result recorded with the completion.")
@click.option(
    "--revisit", default=None, help="Revisit after this duration (e.g. '14 days', '2h')."
)
@db_option
@click.pass_context
def done(
    ctx: click.Context,
    location: str,
    treatment: str,
    result: str,
    revisit: str | None,
    db_path: str | None,
) -> None:
    """Mark one path as complete."""
    from next_ledger.services.completion import CompletionHandler

    if not location.strip():
        raise click.UsageError("--path required", ctx=ctx)

    outcome = _run(
        ctx,
        db_path,
        lambda db: CompletionHandler(db).complete(location, treatment, result, revisit),
    )
    if not outcome.updated:
        click.echo(
            f"no queued item for {outcome.location} (treatment={treatment})", err=True
        )


@main.command()
@click.option("--treatment", default=None, help="Only report this treatment.")
@db_option
@click.pass_context
def status(ctx: click.Context, treatment: str | None, db_path: str | None) -> None:
    """Show pending/done counts per treatment."""
    from next_ledger.services.status import StatusAggregator

    report = _run(ctx, db_path, lambda db: StatusAggregator(db).status(treatment))

    click.echo(_STATUS_ROW.format("TREATMENT", "PENDING", "DONE", "DUE"))
    for row in report.rows:
        click.echo(_STATUS_ROW.format(row.treatment, row.pending, row.done, row.due))
    total = report.total
    if total is not None:
        click.echo(_STATUS_ROW.format(total.treatment, total.pending, total.done, total.due))


@main.command()
@click.option("--treatment", required=True, help="Treatment to delete from the ledger.")
@click.option("--yes", is_flag=True, default=False, help="Skip confirmation.")
@db_option
@click.pass_context
def reset(ctx: click.Context, treatment: str, yes: bool, db_path: str | None) -> None:
    """Delete every entry of a treatment."""
    if not treatment.strip():
        raise click.UsageError("--treatment required", ctx=ctx)

    if not yes and not click.confirm(
        f"Delete all entries for treatment={treatment}?", default=False
    ):
        click.echo("cancelled")
        return

    deleted = _run(ctx, db_path, lambda db: db.delete_by_treatment(treatment))
    click.echo(f"deleted {deleted} entries")


@main.command()
def version() -> None:
    """Print the version and exit."""
    click.echo(f"next {__version__}")


if __name__ == "__main__":
    main()
