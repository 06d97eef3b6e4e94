"""Maintenance CLI commands."""

import asyncio

import typer
from rich.console import Console
from rich.table import Table

from academy.database import get_session_context
from academy.services.maintenance import CODE_RETENTION_DAYS, prune_expired

console = Console()
app = typer.Typer(help="Maintenance and cleanup commands")


@app.command("prune")
def prune(
    code_retention_days: int = typer.Option(
        CODE_RETENTION_DAYS, "--code-retention-days", help="Keep expired codes this many days"
    ),
):
    """Delete expired sessions and old login codes."""

    async def _prune():
        async with get_session_context() as session:
            result = await prune_expired(session, code_retention_days=code_retention_days)

        table = Table(title="Prune Results")
        table.add_column("Metric", style="cyan")
        table.add_column("Deleted", justify="right")
        table.add_row("Expired sessions", str(result["sessions_deleted"]))
        table.add_row("Old login codes", str(result["codes_deleted"]))
        console.print(table)

    asyncio.run(_prune())
