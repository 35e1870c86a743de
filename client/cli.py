#!/usr/bin/env python3

from __future__ import annotations
import asyncio
import os
from typing import Optional

import typer
from rich.console import Console

from shared.errors import RegistrationError
from shared.log import configure_root_logging, get_logger
from shared.utils import make_client_id
from .client import ConsoleSink, fetch_token, run as run_client

app = typer.Typer(help="Push channel client CLI")
console = Console()
logger = get_logger(__name__)


def _default_server() -> str:
    return os.getenv("PUSHCHANNEL_SERVER", "http://localhost:8080")


def _default_channel_url() -> Optional[str]:
    return os.getenv("PUSHCHANNEL_CHANNEL_URL") or None


@app.command()
def run(
    server: str = typer.Option(_default_server(), help="HTTP base URL of the server"),
    channel_url: Optional[str] = typer.Option(_default_channel_url(), help="WebSocket URL of the channel endpoint; derived from --server if omitted"),
    log_level: str = typer.Option("INFO", help="Root log level"),
):
    """Register and listen on the push channel until it closes."""
    configure_root_logging(log_level)
    try:
        channel = asyncio.run(run_client(server, channel_url, sink=ConsoleSink(console), console=console))
    except RegistrationError as e:
        console.print(f"[red]Registration failed[/]: {e}")
        raise typer.Exit(code=1)
    if channel is None:
        raise typer.Exit(code=1)


@app.command()
def register(
    server: str = typer.Option(_default_server(), help="HTTP base URL of the server"),
):
    """Register only and print the session token."""
    try:
        token = asyncio.run(fetch_token(server, sink=ConsoleSink(console)))
    except RegistrationError as e:
        console.print(f"[red]Registration failed[/]: {e}")
        raise typer.Exit(code=1)
    if token is None:
        raise typer.Exit(code=1)
    console.print(f"[bold green]token[/] {token}")


@app.command("client-id")
def client_id():
    """Print a freshly generated client identifier."""
    console.print(make_client_id())


def main() -> None:
    app()


if __name__ == "__main__":
    main()
