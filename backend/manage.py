import asyncio
import json
from pathlib import Path
import typer

import cms.db_models # noqa: F401

from cms.database import async_session_factory
from cms.exceptions import CMSError
from cms.users.models import UserRole
from cms.users.schema import UserCreate
from cms.users import service as user_service
from cms.categories import service as categories_service
from cms.newsletter import service as newsletter_service
from cms.newsletter.store import JsonFileSubscriberStore, SqlSubscriberStore, JSON_STORE_FILENAME
from cms.config import settings

cli = typer.Typer()


def _run(coro_factory):
    """Run an async task with a fresh session; CMS errors become exit code 1."""
    async def main():
        async with async_session_factory() as session:
            return await coro_factory(session)

    try:
        return asyncio.run(main())
    except CMSError as e:
        print(f"❌ {e.message}")
        raise typer.Exit(code=1)


@cli.command(name="create-user")
def create_user(
    username: str = typer.Option(..., "--username", "-u", help="Login name."),
    password: str = typer.Option(..., "--password", "-p", help="Password (min. 8 characters)."),
    role: UserRole = typer.Option(UserRole.ADMIN, "--role", "-r", help="admin, editor or viewer."),
    full_name: str = typer.Option(None, "--full-name", help="Display name."),
    email: str = typer.Option(None, "--email", "-e", help="Contact e-mail."),
):
    """
    Creates a back-office user. The first account is normally an admin.
    """
    try:
        user_data = UserCreate(username=username, password=password, role=role, full_name=full_name, email=email)
    except ValueError as e:
        print(f"❌ Invalid user data: {e}")
        raise typer.Exit(code=1)

    user = _run(lambda db: user_service.create_user(user_data, db))
    print("✅ User created successfully!")
    print(f"   ID: {user.id}")
    print(f"   Username: {user.username}")
    print(f"   Role: {user.role}")


@cli.command(name="set-password")
def set_password(
    username: str = typer.Option(..., "--username", "-u"),
    password: str = typer.Option(..., "--password", "-p", help="New password (min. 8 characters)."),
):
    """
    Resets a user's password without knowing the old one.
    """
    if len(password) < 8:
        print("❌ Password must have at least 8 characters")
        raise typer.Exit(code=1)

    async def runner(db):
        user = await user_service.get_user_by_username(username, db)
        if not user:
            print(f"❌ User not found: {username}")
            raise typer.Exit(code=1)
        await user_service.set_password(db, user, password)

    _run(runner)
    print(f"✅ Password updated for {username}")


@cli.command(name="deactivate-user")
def deactivate_user(username: str = typer.Option(..., "--username", "-u")):
    """
    Deactivates an account; existing tokens stop working on the next request.
    """
    async def runner(db):
        user = await user_service.get_user_by_username(username, db)
        if not user:
            print(f"❌ User not found: {username}")
            raise typer.Exit(code=1)
        await user_service.deactivate_user(db, user.id)

    _run(runner)
    print(f"✅ User {username} deactivated")


@cli.command(name="seed-categories")
def seed_categories(
    file: str = typer.Option(..., "--file", "-f", help="JSON file: a list of categories or {\"categories\": [...]}"),
):
    """
    Creates categories from a JSON file, skipping names that already exist.
    """
    file_path = Path(file)
    if not file_path.exists():
        print(f"❌ File not found: {file}")
        raise typer.Exit(code=1)

    try:
        payload = json.loads(file_path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as e:
        print(f"❌ Failed to read/parse JSON: {e}")
        raise typer.Exit(code=1)

    items = payload.get("categories", []) if isinstance(payload, dict) else payload
    if not isinstance(items, list) or not items:
        print("❌ Invalid JSON: expected a non-empty list of categories")
        raise typer.Exit(code=1)

    created = _run(lambda db: categories_service.seed_categories(db, items))
    print(f"✅ Seed finished: created={created}, total={len(items)}")


@cli.command(name="export-subscribers")
def export_subscribers(
    output: str = typer.Option(..., "--output", "-o", help="Destination CSV file."),
):
    """
    Writes every newsletter subscriber to a CSV file, using the configured storage.
    """
    async def runner(db):
        if settings.NEWSLETTER_STORAGE == "json":
            store = JsonFileSubscriberStore(Path(settings.DATA_DIR) / JSON_STORE_FILENAME)
        else:
            store = SqlSubscriberStore(db)
        return await newsletter_service.export_csv(store)

    content = _run(runner)
    Path(output).write_text(content, encoding="utf-8")
    rows = max(content.count("\n") - 1, 0)
    print(f"✅ Exported {rows} subscriber(s) to {output}")


if __name__ == "__main__":
    cli()
