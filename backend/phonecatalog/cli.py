import asyncio
from pathlib import Path

import typer

from phonecatalog.config import settings
from phonecatalog.database import Database
from phonecatalog.errors import DatabaseConnectionError
from phonecatalog.logging_config import setup_logging
from phonecatalog.seeder import CSVSeeder

app = typer.Typer(help="Mobile phone catalog: schema, CSV import and API server")


def _database() -> Database:
    return Database(
        settings.database_url,
        pool_size=settings.DB_POOL_SIZE,
        pool_timeout=settings.DB_POOL_TIMEOUT,
    )


def _run(coro) -> None:
    setup_logging(development=settings.is_development)
    try:
        asyncio.run(coro)
    except DatabaseConnectionError as e:
        typer.echo(f"Error: {e.message}", err=True)
        raise typer.Exit(code=1)


@app.command()
def migrate():
    """Create all catalog tables."""

    async def go():
        db = _database()
        try:
            await db.create_tables()
        finally:
            await db.close()

    _run(go())
    typer.echo("Database tables created")


@app.command()
def clean(
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip the confirmation prompt"),
):
    """Drop and recreate every catalog table. All data is lost."""
    if not yes:
        typer.confirm("This deletes all catalog data. Continue?", abort=True)

    async def go():
        db = _database()
        try:
            await db.drop_tables()
            await db.create_tables()
        finally:
            await db.close()

    _run(go())
    typer.echo("Database cleaned")


@app.command()
def seed(
    csv_path: Path = typer.Argument(..., exists=True, dir_okay=False, help="Scraped phones CSV"),
    limit: int = typer.Option(None, help="Import at most this many CSV rows"),
):
    """Import phones from a CSV file (tables are created if missing)."""
    report = {}

    async def go():
        db = _database()
        try:
            await db.create_tables()
            report["result"] = await CSVSeeder(db).seed_from_csv(csv_path, limit)
        finally:
            await db.close()

    _run(go())
    result = report["result"]
    typer.echo(
        f"Loaded {result.loaded} rows, {result.unique} unique phones: "
        f"{result.imported} imported, {result.failed} failed"
    )


@app.command()
def serve(
    host: str = typer.Option(settings.HOST, help="Bind address"),
    port: int = typer.Option(settings.PORT, help="Port"),
    reload: bool = typer.Option(False, help="Reload on code changes"),
):
    """Run the API server."""
    import uvicorn

    uvicorn.run("phonecatalog.main:app", host=host, port=port, reload=reload)


if __name__ == "__main__":
    app()
