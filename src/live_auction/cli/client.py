"""CLI to exercise the live auction API and its live channel.

Usage:
  poetry run auction-cli health
  poetry run auction-cli register alice s3cret!
  poetry run auction-cli --token $TOKEN auctions create "Mustang" --base-price 15000 --minutes 10
  poetry run auction-cli --token $TOKEN bid 1 15500
  poetry run auction-cli watch --messages 5

Commands that need a user read the token from --token or $AUCTION_TOKEN.
"""
import argparse
import asyncio
import json
import os
import sys
from datetime import datetime, timedelta, timezone

import httpx
import websockets


def print_json(data: object) -> None:
    print(json.dumps(data, indent=2, default=str))


def cmd_health(client: httpx.Client, _: argparse.Namespace) -> int:
    r = client.get("/")
    r.raise_for_status()
    print_json(r.json())
    return 0


def cmd_register(client: httpx.Client, args: argparse.Namespace) -> int:
    r = client.post("/users/register", json={"username": args.username, "password": args.password})
    r.raise_for_status()
    print_json(r.json())
    return 0


def cmd_login(client: httpx.Client, args: argparse.Namespace) -> int:
    r = client.post("/users/login", json={"username": args.username, "password": args.password})
    r.raise_for_status()
    data = r.json()
    if args.quiet:
        print(data["access_token"])
    else:
        print_json(data)
    return 0


def cmd_auctions_list(client: httpx.Client, args: argparse.Namespace) -> int:
    r = client.get("/auctions")
    r.raise_for_status()
    data = r.json()
    if args.active:
        data = [a for a in data if a["status"] == "active"]
    print(f"Found {len(data)} auctions")
    print_json(data[: args.head] if args.head else data)
    return 0


def cmd_auctions_show(client: httpx.Client, args: argparse.Namespace) -> int:
    r = client.get(f"/auctions/{args.auction_id}")
    r.raise_for_status()
    print_json(r.json())
    return 0


def cmd_auctions_create(client: httpx.Client, args: argparse.Namespace) -> int:
    end_time = datetime.now(timezone.utc) + timedelta(minutes=args.minutes)
    body = {
        "title": args.title,
        "description": args.description,
        "brand": args.brand,
        "model": args.model,
        "year": args.year,
        "base_price": args.base_price,
        "end_time": end_time.isoformat(),
    }
    r = client.post("/auctions", json={k: v for k, v in body.items() if v is not None})
    r.raise_for_status()
    print_json(r.json())
    return 0


def cmd_auctions_sweep(client: httpx.Client, _: argparse.Namespace) -> int:
    r = client.post("/auctions/sweep")
    r.raise_for_status()
    print_json(r.json())
    return 0


def cmd_bid(client: httpx.Client, args: argparse.Namespace) -> int:
    body = {
        "auction_id": args.auction_id,
        "amount": args.amount,
        "client_time": datetime.now(timezone.utc).isoformat(),
    }
    r = client.post("/bids", json=body)
    r.raise_for_status()
    print_json(r.json())
    return 0


def cmd_history(client: httpx.Client, _: argparse.Namespace) -> int:
    r = client.get("/bids/history")
    r.raise_for_status()
    print_json(r.json())
    return 0


def cmd_notifications_list(client: httpx.Client, _: argparse.Namespace) -> int:
    r = client.get("/notifications")
    r.raise_for_status()
    data = r.json()
    unread = sum(1 for n in data if not n["is_read"])
    print(f"{len(data)} notifications ({unread} unread)")
    print_json(data)
    return 0


def cmd_notifications_read(client: httpx.Client, args: argparse.Namespace) -> int:
    if args.notification_id is None:
        r = client.put("/notifications/read-all")
    else:
        r = client.put(f"/notifications/{args.notification_id}/read")
    r.raise_for_status()
    print_json(r.json())
    return 0


def cmd_notifications_delete(client: httpx.Client, args: argparse.Namespace) -> int:
    if args.notification_id is None:
        r = client.delete("/notifications", params={"only_read": args.only_read})
        r.raise_for_status()
        print_json(r.json())
    else:
        r = client.delete(f"/notifications/{args.notification_id}")
        r.raise_for_status()
        print(f"Deleted notification {args.notification_id}")
    return 0


def live_url(base_url: str, token: str | None) -> str:
    """ws(s):// URL of the live channel for an http(s):// API base URL."""
    url = httpx.URL(base_url).join("/live")
    url = url.copy_with(scheme="wss" if url.scheme == "https" else "ws")
    if token:
        url = url.copy_merge_params({"token": token})
    return str(url)


def _watch_run(url: str, duration: float | None, max_messages: int | None) -> int:
    """Connect to the live channel and print events until a limit is hit."""
    count = 0

    async def run() -> None:
        nonlocal count
        async with websockets.connect(url) as ws:
            print(
                f"Watching {url} (duration={duration}s, max_messages={max_messages or '∞'})",
                file=sys.stderr,
            )
            async for raw in ws:
                count += 1
                print_json(json.loads(raw))
                if max_messages and count >= max_messages:
                    return

    async def run_with_timeout() -> None:
        if duration and duration > 0:
            try:
                await asyncio.wait_for(run(), timeout=duration)
            except asyncio.TimeoutError:
                print(f"Stopped after {duration}s ({count} messages)", file=sys.stderr)
        else:
            await run()

    try:
        asyncio.run(run_with_timeout())
    except KeyboardInterrupt:
        print(f"\nStopped by user ({count} messages)", file=sys.stderr)
        return 130
    except (OSError, websockets.exceptions.WebSocketException) as e:
        print(f"Live channel error: {e}", file=sys.stderr)
        return 1
    return 0


def cmd_watch(_client: httpx.Client | None, args: argparse.Namespace) -> int:
    return _watch_run(
        live_url(args.base_url, args.token),
        getattr(args, "duration", None),
        getattr(args, "messages", None),
    )


HANDLERS = {
    "health": cmd_health,
    "register": cmd_register,
    "login": cmd_login,
    "auctions": {
        "list": cmd_auctions_list,
        "show": cmd_auctions_show,
        "create": cmd_auctions_create,
        "sweep": cmd_auctions_sweep,
    },
    "bid": cmd_bid,
    "history": cmd_history,
    "notifications": {
        "list": cmd_notifications_list,
        "read": cmd_notifications_read,
        "delete": cmd_notifications_delete,
    },
    "watch": cmd_watch,
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Exercise the live auction API and live channel.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument(
        "--base-url",
        default="http://localhost:8000",
        help="API base URL (default: http://localhost:8000)",
    )
    parser.add_argument(
        "--token",
        default=os.environ.get("AUCTION_TOKEN"),
        help="Bearer token (default: $AUCTION_TOKEN)",
    )
    parser.add_argument(
        "--timeout",
        type=float,
        default=30.0,
        help="Request timeout in seconds (default: 30)",
    )
    subparsers = parser.add_subparsers(dest="command", required=True, help="Command")

    # health
    subparsers.add_parser("health", help="GET / status check")

    # users
    p = subparsers.add_parser("register", help="POST /users/register")
    p.add_argument("username")
    p.add_argument("password")
    p = subparsers.add_parser("login", help="POST /users/login")
    p.add_argument("username")
    p.add_argument("password")
    p.add_argument("-q", "--quiet", action="store_true", help="Print only the token")

    # auctions
    auctions = subparsers.add_parser("auctions", help="Auction routes (/auctions)")
    auctions_sub = auctions.add_subparsers(dest="auctions_cmd", required=True)
    p = auctions_sub.add_parser("list", help="GET /auctions")
    p.add_argument("--active", action="store_true", help="Only auctions still open")
    p.add_argument("--head", type=int, default=0, help="Show only first N (0 = all)")
    p = auctions_sub.add_parser("show", help="GET /auctions/{auction_id}")
    p.add_argument("auction_id", type=int)
    p = auctions_sub.add_parser("create", help="POST /auctions")
    p.add_argument("title")
    p.add_argument("--base-price", type=float, required=True, help="Starting price")
    p.add_argument("--minutes", type=float, default=10.0, help="Minutes until it ends (default: 10)")
    p.add_argument("--description", default=None)
    p.add_argument("--brand", default=None)
    p.add_argument("--model", default=None)
    p.add_argument("--year", type=int, default=None)
    auctions_sub.add_parser("sweep", help="POST /auctions/sweep")

    # bids
    p = subparsers.add_parser("bid", help="POST /bids")
    p.add_argument("auction_id", type=int)
    p.add_argument("amount", type=float)
    subparsers.add_parser("history", help="GET /bids/history")

    # notifications
    notifications = subparsers.add_parser("notifications", help="Notification routes (/notifications)")
    notifications_sub = notifications.add_subparsers(dest="notifications_cmd", required=True)
    notifications_sub.add_parser("list", help="GET /notifications")
    p = notifications_sub.add_parser("read", help="Mark one (or all) as read")
    p.add_argument("notification_id", type=int, nargs="?", default=None)
    p = notifications_sub.add_parser("delete", help="Delete one (or all)")
    p.add_argument("notification_id", type=int, nargs="?", default=None)
    p.add_argument("--only-read", action="store_true", help="With no id, delete only read ones")

    # watch (live channel)
    p = subparsers.add_parser("watch", help="Print live channel events (observer without a token)")
    p.add_argument(
        "--duration",
        type=float,
        default=None,
        metavar="SECS",
        help="Stop after SECS seconds (default: run until Ctrl+C)",
    )
    p.add_argument(
        "--messages",
        type=int,
        default=None,
        metavar="N",
        help="Stop after N messages (default: no limit)",
    )
    return parser


def main(argv: list[str] | None = None, transport: httpx.BaseTransport | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    base_url = args.base_url.rstrip("/")

    cmd = args.command
    handler = HANDLERS[cmd]
    if isinstance(handler, dict):
        sub = getattr(args, f"{cmd}_cmd", None)
        if sub is None:
            parser.error(f"Missing subcommand for {cmd}")
        handler = handler[sub]
    if cmd == "watch":
        return handler(None, args)

    headers = {"Authorization": f"Bearer {args.token}"} if args.token else {}
    try:
        with httpx.Client(
            base_url=base_url, timeout=args.timeout, headers=headers, transport=transport
        ) as client:
            return handler(client, args)
    except httpx.HTTPStatusError as e:
        print(f"HTTP error: {e.response.status_code}", file=sys.stderr)
        if e.response.content:
            try:
                print(e.response.json(), file=sys.stderr)
            except ValueError:
                print(e.response.text, file=sys.stderr)
        return 1
    except httpx.RequestError as e:
        print(f"Request error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
