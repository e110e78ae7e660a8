"""CLI for running the chat relay server."""

import asyncio
import signal
import sys

import click
from rich.console import Console

from chatrelay.config import settings
from chatrelay.logger import define_log_level
from ..api.server import ChatServer

console = Console()


@click.command()
@click.option('--host', default=None, help='Server host')
@click.option('--port', type=int, default=None, help='Server port')
@click.option('--db-path', default=None, help='Database path')
@click.option('--upload-dir', default=None, help='Directory for uploaded images')
@click.option('--static-dir', default=None, help='Directory served at /')
@click.option('--log-level', default=None, help='Console log level')
@click.pass_context
def serve(ctx, host, port, db_path, upload_dir, static_dir, log_level):
    """Run the chat relay server."""
    host = host or settings.host
    port = port or settings.port
    db_path = db_path or (ctx.obj or {}).get('db_path') or settings.db_path

    if log_level:
        define_log_level(print_level=log_level.upper(), log_dir=settings.log_dir)

    async def _run_server():
        chat_server = ChatServer(db_path=db_path, upload_dir=upload_dir, static_dir=static_dir)

        # Setup signal handling for graceful shutdown
        shutdown_event = asyncio.Event()

        def signal_handler():
            console.print("\n🛑 Received shutdown signal...", style="yellow")
            shutdown_event.set()

        if sys.platform != 'win32':
            loop = asyncio.get_running_loop()
            loop.add_signal_handler(signal.SIGINT, signal_handler)
            loop.add_signal_handler(signal.SIGTERM, signal_handler)

        console.print("🚀 Chat relay started", style="green")
        console.print(f"   HTTP endpoint: http://{host}:{port}")
        console.print(f"   WebSocket: ws://{host}:{port}/ws?username=<name>")
        console.print(f"   Database: {db_path}")
        console.print(f"   Uploads: {chat_server.uploads.upload_dir}")
        console.print("   Press Ctrl+C to stop")

        server_task = asyncio.create_task(chat_server.start(host, port))

        try:
            if sys.platform == 'win32':
                await server_task
            else:
                done, pending = await asyncio.wait(
                    [server_task, asyncio.create_task(shutdown_event.wait())],
                    return_when=asyncio.FIRST_COMPLETED
                )

                for task in pending:
                    task.cancel()
                    try:
                        await task
                    except asyncio.CancelledError:
                        pass
        finally:
            console.print("🛑 Chat relay stopped", style="yellow")

    try:
        asyncio.run(_run_server())
    except KeyboardInterrupt:
        console.print("\n🛑 Chat relay stopped", style="yellow")
