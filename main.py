#!/usr/bin/env python3
"""
movie-session -- Client-side session manager for the movie catalog.

The session is persisted locally, so it survives between invocations until it
expires (1 hour by default) or you log out.

Usage:
  python main.py login admin@movie.com
  python main.py login admin@movie.com --password admin123
  python main.py status
  python main.py search "Alien"
  python main.py title tt0078748
  python main.py logout

Environment variables:
  OMDB_API_KEY        API key for the OMDb catalog (required for search/title).
  SESSION_DB_URL      SQLAlchemy URL of the local session store.
  SESSION_TTL_MS      Session lifetime in milliseconds (default 3600000).
  LOGIN_DELAY_SECONDS Simulated login latency (default 0.8).
  DEBUG               Enable debug logging, same as --verbose.
"""

import argparse
import asyncio
import getpass
import logging
from typing import Optional

import requests

from auth.models import ROLES
from auth.session import SessionManager
from core.catalog import CatalogClient
from core.clock import now_ms
from core.config import Settings, get_settings
from storage.store import SqlKeyValueStore, StorageError


class ConsoleNotifier:
    """Prints session notices to the terminal."""

    def success(self, message: str) -> None:
        print(f"  [+] {message}")

    def info(self, message: str) -> None:
        print(f"  [i] {message}")

    def warning(self, message: str) -> None:
        print(f"  [!] {message}")

    def error(self, message: str) -> None:
        print(f"  [!] {message}")


def _navigate(route: str) -> None:
    print(f"  -> {route}  (run `python main.py login EMAIL` to sign in)")


def _guard(manager: SessionManager, roles: Optional[tuple[str, ...]] = None) -> bool:
    """Route guard: allow a command only for a fresh session with an accepted role."""
    if not manager.check_auth():
        print("  [!] You must be logged in to do that.")
        _navigate(manager.login_route)
        return False
    if roles is not None and not manager.has_role(roles):
        print(f"  [!] Your role ({manager.role}) may not do that.")
        return False
    return True


def _print_status(manager: SessionManager, now: int) -> None:
    if not manager.check_auth():
        print("  Not logged in.")
        return
    user = manager.user
    remaining_min = max(0, (manager.expires_at - now) // 60000)
    print(f"  Logged in as {user.display_name} <{user.email}>")
    print(f"  Role:        {manager.role}")
    print(f"  Expires in:  {remaining_min} min")


def _print_search(data: dict) -> int:
    if data.get("Response") == "False":
        print(f"  [!] {data.get('Error', 'No results.')}")
        return 1
    results = data.get("Search", [])
    print(f"  {data.get('totalResults', len(results))} result(s)\n")
    for item in results:
        print(f"  {item.get('imdbID', ''):<12} {item.get('Year', ''):<10} {item.get('Title', '')}")
    return 0


def _print_title(data: dict) -> int:
    if data.get("Response") == "False":
        print(f"  [!] {data.get('Error', 'Title not found.')}")
        return 1
    print(f"  {data.get('Title', '')} ({data.get('Year', '')})")
    for label in ("Genre", "Director", "Runtime", "imdbRating"):
        if data.get(label):
            print(f"  {label + ':':<12} {data[label]}")
    if data.get("Plot"):
        print(f"\n  {data['Plot']}")
    return 0


async def _run(args: argparse.Namespace, settings: Settings) -> int:
    try:
        storage = SqlKeyValueStore(settings.session_db_url, namespace=settings.client_namespace)
    except StorageError as e:
        print(f"  [!] {e}")
        return 1

    manager = SessionManager.from_settings(
        storage,
        settings=settings,
        notifier=ConsoleNotifier(),
        navigate=_navigate,
    )
    try:
        if args.command == "login":
            password = args.password if args.password is not None else getpass.getpass("  Password: ")
            ok = await manager.login(args.email, password)
            return 0 if ok else 1

        if args.command == "logout":
            manager.logout()
            return 0

        if args.command == "status":
            _print_status(manager, now_ms())
            return 0

        # Catalog commands below require a session.
        roles = ROLES if args.command == "title" else None
        if not _guard(manager, roles):
            return 1

        client = CatalogClient.from_settings()
        try:
            if args.command == "search":
                return _print_search(client.search(args.query, page=args.page))
            return _print_title(client.get_title(args.imdb_id))
        except requests.RequestException as e:
            print(f"  [!] Catalog request failed: {e}")
            return 1
        finally:
            client.close()
    finally:
        manager.dispose()
        storage.close()


def main() -> int:
    parser = argparse.ArgumentParser(
        prog="movie-session",
        description="Log in to the movie catalog and keep the session between runs.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python main.py login admin@movie.com
  python main.py status
  python main.py search "Blade Runner" --page 2
  python main.py title tt0083658
  python main.py logout
        """,
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable debug logging",
    )
    sub = parser.add_subparsers(dest="command", metavar="COMMAND")

    p_login = sub.add_parser("login", help="Log in and start a session")
    p_login.add_argument("email", help="Account email")
    p_login.add_argument(
        "--password",
        default=None,
        help="Account password (prompted for when omitted)",
    )

    sub.add_parser("logout", help="End the current session")
    sub.add_parser("status", help="Show the current session")

    p_search = sub.add_parser("search", help="Search the catalog by title (requires login)")
    p_search.add_argument("query", metavar="TITLE", help="Title to search for")
    p_search.add_argument("--page", type=int, default=1, help="Result page (default: 1)")

    p_title = sub.add_parser("title", help="Show one catalog title (requires admin or member role)")
    p_title.add_argument("imdb_id", metavar="IMDB_ID", help="IMDb ID, e.g. tt0078748")

    args = parser.parse_args()
    settings = get_settings()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose or settings.debug else logging.WARNING,
        format="%(asctime)s %(levelname)-5s %(name)s %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    if not args.command:
        parser.print_help()
        return 0

    return asyncio.run(_run(args, settings))


if __name__ == "__main__":
    raise SystemExit(main())
