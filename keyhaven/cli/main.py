"""keyhaven CLI - client-side encrypted credential vault."""

import asyncio
from typing import Any, Awaitable, Callable, Optional

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from .. import __version__

app = typer.Typer(
    name="keyhaven",
    help="Credential vault that encrypts every secret before it leaves this machine.",
    no_args_is_help=True,
)

groups_app = typer.Typer(
    help="Manage the groups vault entries are filed under.",
    no_args_is_help=True,
)
app.add_typer(groups_app, name="groups")

console = Console()

MASKED = "••••••••"


def passphrase_option() -> Any:
    return typer.Option(
        ...,
        "--passphrase", "-p",
        envvar="KEYHAVEN_PASSPHRASE",
        prompt="Master password",
        hide_input=True,
        help="Master password (prompted if not given)",
    )


def _build_service():
    from ..backend import StaticAuthProvider, create_record_store
    from ..config.settings import get_settings
    from ..utils.logging import setup_logging
    from ..vault import VaultService

    settings = get_settings()
    setup_logging(settings.log_level, settings.log_file)
    records = create_record_store(settings)
    return VaultService(records, StaticAuthProvider(settings.user_id))


def _run(action: Callable[[Any], Awaitable[Any]], passphrase: Optional[str] = None) -> Any:
    """Run an async action against a fresh service, reporting vault errors."""
    from ..vault import VaultError

    async def runner():
        service = _build_service()
        try:
            if passphrase is not None:
                service.unlock(passphrase)
            return await action(service)
        finally:
            service.lock()
            aclose = getattr(service.entry_store.records, "aclose", None)
            if aclose is not None:
                await aclose()

    try:
        return asyncio.run(runner())
    except VaultError as e:
        console.print(f"[red]Error: {escape(str(e))}[/red]")
        raise typer.Exit(1)


def _find_group(service, value: str):
    """Find a loaded group by id, or by name (case-insensitive)."""
    for group in service.groups:
        if group.id == value:
            return group
    for group in service.groups:
        if group.name.casefold() == value.strip().casefold():
            return group
    return None


def _require_group(service, value: str):
    from ..vault import GroupNotFoundError

    group = _find_group(service, value)
    if group is None:
        raise GroupNotFoundError(value)
    return group


def _group_filter(service, value: Optional[str]) -> str:
    from ..vault import ALL_GROUP, is_virtual_group

    if not value:
        return ALL_GROUP
    if is_virtual_group(value.lower()):
        return value.lower()
    group = _find_group(service, value)
    # Unknown names fall through verbatim so legacy name-tagged entries still match
    return group.id if group else value


def _find_entry(service, value: str):
    """Find a listed entry by id, or by account name (case-insensitive)."""
    from ..vault import EntryNotFoundError

    for entry in service.entries:
        if entry.id == value:
            return entry
    matches = [e for e in service.entries if e.account_name.casefold() == value.strip().casefold()]
    if len(matches) == 1:
        return matches[0]
    if len(matches) > 1:
        console.print(f"[yellow]{len(matches)} entries named '{escape(value)}'; use the id instead.[/yellow]")
    raise EntryNotFoundError(value)


@app.command("list")
def list_entries(
    group: Optional[str] = typer.Option(
        None,
        "--group", "-g",
        help="Group name or id, or one of: all, favorites, recent",
    ),
    search: Optional[str] = typer.Option(
        None,
        "--search", "-s",
        help="Filter by account name",
    ),
    show_secrets: bool = typer.Option(
        False,
        "--show-secrets",
        help="Print decrypted passwords",
    ),
    passphrase: str = passphrase_option(),
):
    """
    List vault entries, newest first.
    """

    async def action(service):
        await service.list_groups()
        views = await service.list_entries(_group_filter(service, group), search)
        return service.title, views

    title, views = _run(action, passphrase)

    if not views:
        console.print("[yellow]No entries found.[/yellow]")
        return

    table = Table(title=f"{title} ({len(views)})")
    table.add_column("ID", style="dim")
    table.add_column("Account", style="cyan")
    table.add_column("Group")
    table.add_column("Username")
    table.add_column("Password")
    table.add_column("★", justify="center")

    for view in views:
        entry = view.entry
        if entry.decryption_failed:
            password = f"[red]{escape(entry.password_display)}[/red]"
        else:
            password = escape(entry.password_display) if show_secrets else MASKED
        label = escape(view.group.label)
        group_label = f"[yellow]{label}[/yellow]" if view.group.orphaned else label
        table.add_row(
            entry.id,
            escape(entry.account_name),
            group_label,
            escape(entry.username or entry.email or ""),
            password,
            "★" if entry.is_favorite else "",
        )

    console.print(table)


@app.command()
def show(
    entry: str = typer.Argument(..., help="Entry id or account name"),
    passphrase: str = passphrase_option(),
):
    """
    Show every field of one entry, with secrets decrypted.
    """
    from ..vault.projection import resolve_group

    async def action(service):
        await service.load()
        found = _find_entry(service, entry)
        return found, resolve_group(found.group_ref, service.groups)

    found, group_label = _run(action, passphrase)

    console.print(f"\n[bold]{escape(found.account_name)}[/bold]  ({found.id})")
    console.print(f"Group: {group_label.label}", markup=False, highlight=False)
    console.print(f"Username: {found.username or '-'}", markup=False, highlight=False)
    console.print(f"Email: {found.email or '-'}", markup=False, highlight=False)
    console.print(f"Phone: {found.phone_number or '-'}", markup=False, highlight=False)
    console.print(f"Password: {found.password_display}", markup=False, highlight=False)
    if found.security_question:
        console.print(f"Security question: {found.security_question}", markup=False, highlight=False)
        console.print(f"Security answer: {found.security_answer or '-'}", markup=False, highlight=False)
    console.print(f"Favorite: {'yes' if found.is_favorite else 'no'}", markup=False, highlight=False)
    console.print(f"Created: {found.created_at:%Y-%m-%d %H:%M} UTC", markup=False, highlight=False)


@app.command()
def add(
    account: str = typer.Option(..., "--account", "-a", help="Account name, e.g. GitHub"),
    group: str = typer.Option(..., "--group", "-g", help="Group name or id"),
    username: Optional[str] = typer.Option(None, "--username", "-u"),
    email: Optional[str] = typer.Option(None, "--email", "-e"),
    phone: Optional[str] = typer.Option(None, "--phone"),
    question: Optional[str] = typer.Option(None, "--question", help="Security question"),
    answer: Optional[str] = typer.Option(None, "--answer", help="Security answer (encrypted)"),
    password: Optional[str] = typer.Option(None, "--password", help="Password (prompted if not given)"),
    generate: bool = typer.Option(False, "--generate", help="Generate a random password"),
    length: int = typer.Option(16, "--length", help="Generated password length"),
    passphrase: str = passphrase_option(),
):
    """
    Encrypt and save a new entry.
    """
    from ..vault import EntryInput, ValidationError, generate_password

    if generate:
        try:
            password = generate_password(length)
        except ValidationError as e:
            console.print(f"[red]Error: {escape(str(e))}[/red]")
            raise typer.Exit(1)
    elif password is None:
        password = typer.prompt("Password", hide_input=True, confirmation_prompt=True)

    if question and answer is None:
        answer = typer.prompt("Security answer", hide_input=True, default="", show_default=False) or None

    async def action(service):
        await service.list_groups()
        target = _require_group(service, group)
        return await service.create_entry(EntryInput(
            account_name=account,
            group=target.id,
            password=password,
            username=username,
            email=email,
            phone_number=phone,
            security_question=question,
            security_answer=answer,
        ))

    entry = _run(action, passphrase)

    console.print(f"[green]Saved {escape(entry.account_name)}[/green] ({entry.id})")
    if generate:
        console.print(f"Generated password: {password}", markup=False, highlight=False)


@app.command()
def update(
    entry: str = typer.Argument(..., help="Entry id or account name"),
    account: Optional[str] = typer.Option(None, "--account", "-a"),
    group: Optional[str] = typer.Option(None, "--group", "-g", help="Group name or id"),
    username: Optional[str] = typer.Option(None, "--username", "-u"),
    email: Optional[str] = typer.Option(None, "--email", "-e"),
    phone: Optional[str] = typer.Option(None, "--phone"),
    question: Optional[str] = typer.Option(None, "--question"),
    answer: Optional[str] = typer.Option(None, "--answer"),
    password: Optional[str] = typer.Option(None, "--password"),
    passphrase: str = passphrase_option(),
):
    """
    Change fields of an entry. Only the secrets you pass are re-encrypted.
    """
    from ..vault import EntryUpdate

    async def action(service):
        await service.load()
        found = _find_entry(service, entry)
        group_id = _require_group(service, group).id if group else None
        return await service.update_entry(found.id, EntryUpdate(
            account_name=account,
            group=group_id,
            username=username,
            email=email,
            phone_number=phone,
            security_question=question,
            security_answer=answer,
            password=password,
        ))

    updated = _run(action, passphrase)
    console.print(f"[green]Updated {escape(updated.account_name)}[/green] ({updated.id})")


@app.command()
def delete(
    entry: str = typer.Argument(..., help="Entry id or account name"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation"),
    passphrase: str = passphrase_option(),
):
    """
    Permanently delete an entry.
    """

    async def action(service):
        await service.load()
        found = _find_entry(service, entry)
        if not yes and not typer.confirm(f"Delete {found.account_name}? This cannot be undone"):
            return None
        await service.delete_entry(found.id)
        return found

    deleted = _run(action, passphrase)
    if deleted is None:
        console.print("Cancelled.")
        return
    console.print(f"[green]Deleted {escape(deleted.account_name)}[/green]")


@app.command()
def favorite(
    entry: str = typer.Argument(..., help="Entry id or account name"),
    passphrase: str = passphrase_option(),
):
    """
    Toggle the favorite flag of an entry.
    """

    async def action(service):
        await service.load()
        found = _find_entry(service, entry)
        return found, await service.toggle_favorite(found.id)

    found, value = _run(action, passphrase)
    if value:
        console.print(f"[green]Added {escape(found.account_name)} to favorites[/green]")
    else:
        console.print(f"Removed {escape(found.account_name)} from favorites")


@app.command()
def status(
    passphrase: str = passphrase_option(),
):
    """
    Show counts for the vault.
    """

    async def action(service):
        await service.load()
        return service.summary()

    summary = _run(action, passphrase)

    console.print("\n[bold]Vault[/bold]")
    console.print(f"Entries: {summary.total}")
    console.print(f"  Favorites: {summary.favorites}")
    console.print(f"  Recent: {summary.recent}")
    if summary.decryption_failures:
        console.print(f"  [yellow]Could not decrypt: {summary.decryption_failures}[/yellow]")
    console.print(f"Latest entry: {escape(summary.latest_entry or '-')}")


@app.command()
def generate(
    length: int = typer.Option(16, "--length", "-l", help="Password length"),
):
    """
    Print a random password.
    """
    from ..vault import ValidationError, generate_password

    try:
        console.print(generate_password(length), markup=False, highlight=False)
    except ValidationError as e:
        console.print(f"[red]Error: {escape(str(e))}[/red]")
        raise typer.Exit(1)


@groups_app.command("list")
def groups_list():
    """
    List groups, oldest first.
    """

    groups = _run(lambda service: service.list_groups())

    if not groups:
        console.print("[yellow]No groups yet.[/yellow]")
        return

    table = Table(title="Groups")
    table.add_column("ID", style="dim")
    table.add_column("Name", style="cyan")
    table.add_column("Icon", justify="center")

    for group in groups:
        table.add_row(group.id, escape(group.name), group.icon)

    console.print(table)


@groups_app.command("add")
def groups_add(
    name: str = typer.Argument(..., help="Group name"),
):
    """
    Create a group.
    """

    group = _run(lambda service: service.create_group(name))
    console.print(f"[green]Created group {escape(group.name)}[/green] ({group.id})")


@groups_app.command("rename")
def groups_rename(
    group: str = typer.Argument(..., help="Group id or current name"),
    name: str = typer.Argument(..., help="New name"),
):
    """
    Rename a group.
    """

    async def action(service):
        await service.list_groups()
        target = _require_group(service, group)
        return await service.rename_group(target.id, name)

    renamed = _run(action)
    console.print(f"[green]Renamed group to {escape(renamed.name)}[/green]")


@groups_app.command("delete")
def groups_delete(
    group: str = typer.Argument(..., help="Group id or name"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation"),
):
    """
    Delete a group. Its entries are kept.
    """

    async def action(service):
        await service.list_groups()
        target = _require_group(service, group)
        if not yes and not typer.confirm(f"Delete group {target.name}?"):
            return None
        await service.delete_group(target.id)
        return target

    deleted = _run(action)
    if deleted is None:
        console.print("Cancelled.")
        return
    console.print(f"[green]Deleted group {escape(deleted.name)}[/green]")


@app.command()
def version():
    """Show version information."""
    console.print(f"keyhaven v{__version__}")
    console.print("Client-side encrypted credential vault")


def main():
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
