"""Purchase management CLI commands."""

import asyncio

import typer
from rich.console import Console
from rich.table import Table

from academy.database import get_session_context
from academy.repositories import PurchaseRepository
from academy.services.auth import AuthService
from academy.services.purchases import PurchaseService, RecordStatus

console = Console()
app = typer.Typer(help="Purchase management commands")


@app.command("list")
def list_purchases(
    email: str | None = typer.Option(None, "--email", "-e", help="Filter by email"),
    limit: int = typer.Option(50, "--limit", "-l", help="Maximum rows to show"),
):
    """List recent purchases."""

    async def _list():
        async with get_session_context() as session:
            purchases = await PurchaseRepository(session).list_recent(
                email=email.strip().lower() if email else None, limit=limit
            )

            table = Table(title="Purchases")
            table.add_column("ID", style="cyan")
            table.add_column("Email", style="green")
            table.add_column("Course")
            table.add_column("Amount", justify="right")
            table.add_column("Checkout Session", style="dim")
            table.add_column("Created", style="dim")

            for purchase in purchases:
                amount = f"{purchase.amount / 100:.2f} {purchase.currency.upper()}"
                created = purchase.created_at.strftime("%Y-%m-%d") if purchase.created_at else "-"
                table.add_row(
                    purchase.id,
                    purchase.email,
                    purchase.course_slug,
                    amount,
                    purchase.external_session_id,
                    created,
                )

            console.print(table)

    asyncio.run(_list())


@app.command("record")
def record_purchase(
    email: str = typer.Argument(..., help="Buyer email"),
    course: str | None = typer.Option(None, "--course", "-c", help="Course slug"),
    session_id: str | None = typer.Option(
        None, "--session-id", "-s", help="Checkout session ID from the payment processor"
    ),
):
    """Record a purchase by hand and send the welcome email.

    Use this for checkout events that were rejected because they carried no
    email address. Passing --session-id keeps later redeliveries idempotent.
    """

    async def _record():
        async with get_session_context() as session:
            service = PurchaseService(session, AuthService(session))
            outcome = await service.record_manual_purchase(
                email, course_slug=course, external_session_id=session_id
            )

        if outcome.status == RecordStatus.RECORDED:
            console.print(f"[green]Recorded purchase[/green] {outcome.purchase_id} for {email}")
        elif outcome.status == RecordStatus.ALREADY_RECORDED:
            console.print(f"[yellow]Already recorded:[/yellow] {outcome.external_session_id}")
        else:
            console.print(f"[red]Rejected:[/red] {outcome.reason}")
            raise typer.Exit(1)

    asyncio.run(_record())
