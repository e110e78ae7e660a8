"""CLI for the chat relay."""

import click
from rich.console import Console
from rich.table import Table

from chatrelay.config import settings
from chatrelay.storage.repository import MessageRepository
from .serve import serve


console = Console()


@click.group()
@click.option('--db-path', default=None, help='Database path (defaults to CHATRELAY_DB_PATH or chat.db)')
@click.pass_context
def cli(ctx, db_path):
    """Chat Relay CLI"""
    ctx.ensure_object(dict)
    ctx.obj['db_path'] = db_path or settings.db_path


@cli.command()
@click.argument('user_a')
@click.argument('user_b')
@click.option('--limit', type=int, default=100, help='Maximum number of messages')
@click.pass_context
def history(ctx, user_a, user_b, limit):
    """Show the private conversation between two users."""
    repository = MessageRepository(ctx.obj['db_path'])
    messages = repository.history(user_a, user_b, limit)

    if not messages:
        console.print(f"No messages between {user_a} and {user_b}", style="yellow")
        return

    table = Table(title=f"{user_a} ↔ {user_b}")
    table.add_column("ID", style="dim")
    table.add_column("Time")
    table.add_column("From", style="cyan")
    table.add_column("To", style="magenta")
    table.add_column("Content")

    for message in messages:
        table.add_row(
            str(message.id),
            message.timestamp.strftime("%Y-%m-%d %H:%M:%S"),
            message.sender,
            message.receiver or "",
            message.content,
        )

    console.print(table)


@cli.command()
@click.pass_context
def stats(ctx):
    """Show stored message statistics."""
    repository = MessageRepository(ctx.obj['db_path'])
    console.print(f"📊 Stored messages: {repository.count_messages()}")
    console.print(f"   Database: {ctx.obj['db_path']}")


cli.add_command(serve)
