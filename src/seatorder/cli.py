"""Command-line interface for seatorder."""

import argparse
import getpass
import json
import sys

from . import __version__
from .config import load_settings
from .errors import SeatOrderError
from .passwords import hash_password
from .services import SeatOrderService
from .status import Status


def cmd_serve(args: argparse.Namespace) -> int:
    """Start the API server."""
    try:
        import uvicorn

        settings = load_settings()
        if not settings.jwt_secret:
            print("Warning: JWT_SECRET is not set; sign-in and sessions will fail.", file=sys.stderr)

        print("Starting seatorder API server...")
        print(f"Environment: {settings.env} (data in {settings.data_dir})")
        print(f"API docs: http://{args.host}:{args.port}/docs")
        print()

        # When reload is enabled, uvicorn requires the app as an import string
        app_target = "seatorder.api:app" if args.reload else None
        if app_target is None:
            from .api import app
            app_target = app

        uvicorn.run(
            app_target,
            host=args.host,
            port=args.port,
            reload=args.reload,
            workers=1,
        )
        return 0

    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


def cmd_issue_session(args: argparse.Namespace) -> int:
    """Issue a session token for a seat, as its QR code would."""
    try:
        service = SeatOrderService(load_settings())
        token, claims = service.start_session(args.store_id, args.seat_id)
    except SeatOrderError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    if args.json:
        print(json.dumps({
            "token": token,
            "url": service.seat_order_url(args.store_id, args.seat_id),
            "expires_at": claims.expires_at.isoformat(),
        }, indent=2))
    else:
        print(f"Session for seat '{claims.seat_name}' ({claims.seat_id})")
        print(f"  URL: {service.seat_order_url(args.store_id, args.seat_id)}")
        print(f"  Expires: {claims.expires_at.isoformat()}")
        print(f"  Token: {token}")
    return 0


def cmd_hash_password(args: argparse.Namespace) -> int:
    """Print the bcrypt hash of a password, as stored for managers and stores."""
    password = args.password
    if password is None:
        password = getpass.getpass("Password: ")
    try:
        print(hash_password(password, min_length=args.min_length))
    except SeatOrderError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    return 0


def cmd_transitions(args: argparse.Namespace) -> int:
    """Show the allowed next statuses."""
    if args.status:
        try:
            statuses = [Status.parse(args.status)]
        except SeatOrderError as e:
            print(f"Error: {e}", file=sys.stderr)
            return 1
    else:
        statuses = list(Status)

    for status in statuses:
        targets = sorted(t.value for t in status.allowed_targets())
        flag = " (final)" if status.is_final() else ""
        print(f"{status.value}{flag} -> {', '.join(targets) or '-'}")
    return 0


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        prog="seatorder",
        description="QR table-ordering backend",
    )
    parser.add_argument(
        "--version", action="version", version=f"%(prog)s {__version__}"
    )

    subparsers = parser.add_subparsers(dest="command", help="Commands")

    # serve
    serve_parser = subparsers.add_parser("serve", help="Start the API server")
    serve_parser.add_argument(
        "--host", default="127.0.0.1", help="Host to bind to (default: 127.0.0.1)"
    )
    serve_parser.add_argument(
        "--port", "-p", type=int, default=8000, help="Port to bind to (default: 8000)"
    )
    serve_parser.add_argument(
        "--reload", action="store_true", help="Enable auto-reload for development"
    )

    # issue-session
    issue_parser = subparsers.add_parser(
        "issue-session", help="Issue an ordering session token for a seat"
    )
    issue_parser.add_argument("store_id", help="Store ID")
    issue_parser.add_argument("seat_id", help="Seat ID")
    issue_parser.add_argument("--json", action="store_true", help="Output as JSON")

    # hash-password
    hash_parser = subparsers.add_parser(
        "hash-password", help="Hash a password with bcrypt"
    )
    hash_parser.add_argument(
        "password", nargs="?", help="Password to hash (prompted for if omitted)"
    )
    hash_parser.add_argument(
        "--min-length", type=int, default=0, help="Reject passwords shorter than this"
    )

    # transitions
    transitions_parser = subparsers.add_parser(
        "transitions", help="Show the order status transition table"
    )
    transitions_parser.add_argument("status", nargs="?", help="Only show this status")

    return parser


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    parser = create_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 0

    commands = {
        "serve": cmd_serve,
        "issue-session": cmd_issue_session,
        "hash-password": cmd_hash_password,
        "transitions": cmd_transitions,
    }

    cmd_func = commands.get(args.command)
    if cmd_func:
        return cmd_func(args)

    parser.print_help()
    return 0


if __name__ == "__main__":
    sys.exit(main())
