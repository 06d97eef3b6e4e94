"""Session management CLI commands."""

import asyncio

import typer
from rich.console import Console

from academy.database import get_session_context
from academy.services.auth import AuthService, ValidationError

console = Console()
app = typer.Typer(help="Session management commands")


@app.command("revoke")
def revoke(email: str = typer.Argument(..., help="Email whose sessions to revoke")):
    """Sign an email out everywhere."""

    async def _revoke():
        async with get_session_context() as session:
            try:
                count = await AuthService(session).revoke_all_sessions(email)
            except ValidationError as e:
                console.print(f"[red]Error:[/red] {e}")
                raise typer.Exit(1) from e
        console.print(f"[green]Revoked {count} session(s) for[/green] {email}")

    asyncio.run(_revoke())
