"""Entry point for the cafe-pos Textual app."""

from __future__ import annotations

import argparse
import asyncio
import getpass
import sys

from rich.console import Console

from cafe_pos.actions import PosController
from cafe_pos.cart import DraftCart
from cafe_pos.gateway import GatewayClient
from cafe_pos.logging_setup import configure_logging
from cafe_pos.notifications import CollectingNotifier
from cafe_pos.persistence import SessionManager, bootstrap_schema
from cafe_pos.pos_app import STATIONS, CafePosApp
from cafe_pos.store import OrderStore


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="cafe-pos", description="Cafe ordering terminal")
    sub = parser.add_subparsers(dest="command")

    run = sub.add_parser("run", help="open a station view")
    run.add_argument("station", nargs="?", default="terminal", choices=STATIONS)

    login = sub.add_parser("login", help="log in and remember the credential")
    login.add_argument("email")

    sub.add_parser("logout", help="forget the stored credential")
    return parser


async def _login(email: str, password: str) -> tuple[bool, list[str]]:
    notifier = CollectingNotifier()
    async with GatewayClient() as gateway:
        controller = PosController(OrderStore(), DraftCart(), gateway, SessionManager(), notifier)
        ok = await controller.login(email, password)
    return ok, notifier.messages


def main(argv: list[str] | None = None) -> int:
    """Run the Textual application or a session command."""
    configure_logging()
    bootstrap_schema()
    args = _build_parser().parse_args(argv)
    console = Console()

    if args.command == "login":
        password = getpass.getpass("Password: ")
        ok, messages = asyncio.run(_login(args.email, password))
        for message in messages:
            console.print(message, style="green" if ok else "red")
        return 0 if ok else 1

    if args.command == "logout":
        session = SessionManager()
        session.logout()
        console.print("Logged out", style="green")
        return 0

    station = getattr(args, "station", "terminal")
    CafePosApp(station, OrderStore(), GatewayClient(), SessionManager()).run()
    return 0


if __name__ == "__main__":
    sys.exit(main())
