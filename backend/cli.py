"""Saraha API CLI tool (sarahactl)."""

import typer

from backend.core.config import Settings
from backend.db.base import Base
from backend.db.session import build_engine, build_session_factory

app = typer.Typer(name="sarahactl", help="Saraha API CLI")
db_app = typer.Typer(help="Database management commands")
tokens_app = typer.Typer(help="Refresh session maintenance")
app.add_typer(db_app, name="db")
app.add_typer(tokens_app, name="tokens")


def _session():
    import backend.models  # noqa: F401

    settings = Settings()
    return settings, build_session_factory(build_engine(settings))()


@db_app.command("create-tables")
def db_create_tables():
    """Create all tables that don't exist yet."""
    import backend.models  # noqa: F401

    engine = build_engine(Settings())
    Base.metadata.create_all(engine)
    typer.echo("✅ Tables created (or already exist)")


@db_app.command("reset")
def db_reset():
    """Drop and recreate every table (DANGER)."""
    confirm = typer.confirm("⚠️  This will DROP all tables. Continue?")
    if not confirm:
        raise typer.Abort()
    import backend.models  # noqa: F401

    engine = build_engine(Settings())
    Base.metadata.drop_all(engine)
    Base.metadata.create_all(engine)
    typer.echo("✅ Database reset")


@db_app.command("seed")
def db_seed():
    """Create the admin account from ADMIN_EMAIL / ADMIN_PASSWORD."""
    from backend.db.seeds.seed_admin import seed_admin

    settings, db = _session()
    try:
        created = seed_admin(db, settings)
    finally:
        db.close()
    if created:
        typer.echo(f"✅ Created admin: {settings.ADMIN_EMAIL}")
    else:
        typer.echo(f"ℹ️  Admin '{settings.ADMIN_EMAIL}' already exists, skipping.")


@tokens_app.command("purge")
def tokens_purge():
    """Delete refresh sessions past their expiry."""
    from backend.services.token_service import TokenService

    settings, db = _session()
    try:
        count = TokenService(settings).purge_expired(db)
    finally:
        db.close()
    typer.echo(f"✅ Purged {count} expired sessions")


@app.command("serve")
def serve(
    host: str = typer.Option("0.0.0.0", help="Host"),
    port: int = typer.Option(8000, help="Port"),
    reload: bool = typer.Option(True, help="Auto-reload"),
):
    """Start the FastAPI development server."""
    import uvicorn
    uvicorn.run("backend.main:create_app", factory=True, host=host, port=port, reload=reload)


if __name__ == "__main__":
    app()
