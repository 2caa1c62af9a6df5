import json
import sqlite3

import httpx

from live_auction.cli.client import live_url, main
from live_auction.db.cli import init


class Recorder:
    """httpx transport that answers every request with a canned response."""

    def __init__(self, status_code: int = 200, body: object = None) -> None:
        self.requests: list[httpx.Request] = []
        self.status_code = status_code
        self.body = {} if body is None else body

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return httpx.Response(self.status_code, json=self.body)

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self)


def test_bid_sends_token_and_body(capsys):
    recorder = Recorder(201, {"bid_id": 1, "highest_amount": 150.0})

    code = main(["--token", "abc", "bid", "3", "150"], transport=recorder.transport)

    assert code == 0
    [request] = recorder.requests
    assert request.method == "POST"
    assert request.url.path == "/bids"
    assert request.headers["Authorization"] == "Bearer abc"
    body = json.loads(request.content)
    assert body["auction_id"] == 3
    assert body["amount"] == 150.0
    assert "client_time" in body
    assert '"bid_id": 1' in capsys.readouterr().out


def test_login_quiet_prints_only_the_token(capsys):
    recorder = Recorder(200, {"access_token": "tok", "token_type": "bearer", "user": {"id": 1, "username": "a"}})

    assert main(["login", "alice", "pw", "--quiet"], transport=recorder.transport) == 0
    assert capsys.readouterr().out.strip() == "tok"


def test_read_all_without_id(capsys):
    recorder = Recorder(200, {"success": True, "affected": 2})

    assert main(["--token", "t", "notifications", "read"], transport=recorder.transport) == 0
    assert recorder.requests[0].url.path == "/notifications/read-all"
    assert recorder.requests[0].method == "PUT"


def test_http_error_returns_1(capsys):
    recorder = Recorder(409, {"detail": "Bid must be greater than 150.00", "reason": "BidTooLow"})

    assert main(["--token", "t", "bid", "3", "120"], transport=recorder.transport) == 1
    err = capsys.readouterr().err
    assert "HTTP error: 409" in err
    assert "BidTooLow" in err


def test_live_url():
    assert live_url("http://localhost:8000", None) == "ws://localhost:8000/live"
    assert live_url("https://api.example.com", "abc") == "wss://api.example.com/live?token=abc"


def test_db_init_creates_tables(tmp_path, monkeypatch):
    db_path = tmp_path / "fresh.db"
    monkeypatch.setenv("DATABASE_URL", f"sqlite+aiosqlite:///{db_path}")

    init()

    with sqlite3.connect(db_path) as conn:
        tables = {row[0] for row in conn.execute("SELECT name FROM sqlite_master WHERE type='table'")}
    assert {"user", "auction", "bid", "notification"} <= tables
