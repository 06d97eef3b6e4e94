"""CLI commands using Typer."""

import typer

from academy.cli.db import app as db_app
from academy.cli.maintenance import app as maintenance_app
from academy.cli.purchases import app as purchases_app
from academy.cli.sessions import app as sessions_app

app = typer.Typer(name="academy", help="Academy CLI")

# Register sub-apps
app.add_typer(db_app, name="db")
app.add_typer(purchases_app, name="purchases")
app.add_typer(sessions_app, name="sessions")
app.add_typer(maintenance_app, name="maintenance")


@app.command()
def version():
    """Show version information."""
    from academy import __version__

    typer.echo(f"Academy v{__version__}")


@app.command()
def serve(
    host: str = typer.Option("0.0.0.0", help="Host to bind to"),
    port: int = typer.Option(8000, help="Port to bind to"),
    reload: bool = typer.Option(False, help="Enable auto-reload"),
):
    """Run the API server."""
    import uvicorn

    from academy.logging import get_uvicorn_log_config

    uvicorn.run(
        "academy.main:app",
        host=host,
        port=port,
        reload=reload,
        log_config=get_uvicorn_log_config(),
    )


if __name__ == "__main__":
    app()
