#!/usr/bin/env python3
"""
Chat Relay CLI - Unified Entry Point

Usage:
    python -m chatrelay.cli [COMMAND] [OPTIONS]

    Or use the installed command:
    chatrelay [COMMAND] [OPTIONS]

Available Commands:
    serve       - Run the HTTP/WebSocket relay server
    history     - Show the private conversation between two users
    stats       - Show stored message statistics

Examples:
    # Start the server on port 3000
    chatrelay serve --port 3000

    # Print the conversation between alice and bob
    chatrelay history alice bob --limit 20
"""

from .main import cli

if __name__ == '__main__':
    cli()
