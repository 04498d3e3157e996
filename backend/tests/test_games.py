import asyncio
import os
import sys
from collections.abc import Iterable

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from scoreboard.db import Base, get_session
from scoreboard import main
from scoreboard.main import app
from scoreboard.routers import games

BASE = "/api/v0/games"


@pytest.fixture()
def client():
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async_session_maker = sessionmaker(
        engine, expire_on_commit=False, class_=AsyncSession
    )

    async def init_schema() -> None:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    asyncio.run(init_schema())

    async def override_get_session() -> Iterable[AsyncSession]:
        async with async_session_maker() as session:
            yield session

    app.dependency_overrides[get_session] = override_get_session

    with TestClient(app) as client:
        yield client

    app.dependency_overrides.clear()
    asyncio.run(engine.dispose())


def _start(client, *names, headers=None):
    players = [{"playerId": f"p{i}", "name": name} for i, name in enumerate(names, 1)]
    resp = client.post(BASE, json={"players": players}, headers=headers)
    assert resp.status_code == 201, resp.text
    return resp.json()["gameId"]


def _submit(client, gid, frame, rolls_by_player):
    return client.post(
        f"{BASE}/{gid}/frames/{frame}/scores",
        json={
            "rolls": [
                {"playerId": pid, "rolls": rolls}
                for pid, rolls in rolls_by_player.items()
            ]
        },
    )


def _scoreboard(client, gid):
    resp = client.get(f"{BASE}/{gid}/scoreboard")
    assert resp.status_code == 200, resp.text
    return resp.json()


def test_start_game_trims_names(client):
    resp = client.post(
        BASE,
        json={
            "players": [
                {"playerId": "a", "name": "  Ann  "},
                {"playerId": "b", "name": "Ann"},
            ]
        },
    )
    assert resp.status_code == 201
    body = resp.json()
    assert body["gameId"]
    assert body["players"] == [
        {"playerId": "a", "name": "Ann"},
        {"playerId": "b", "name": "Ann"},
    ]


@pytest.mark.parametrize(
    "players",
    [
        [{"playerId": "a", "name": "Ann"}],
        [{"playerId": str(i), "name": "P"} for i in range(6)],
        [{"playerId": "a", "name": "Ann"}, {"playerId": "a", "name": "Bob"}],
        [{"playerId": "a", "name": "Ann"}, {"playerId": "b", "name": " "}],
    ],
    ids=["too-few", "too-many", "duplicate-id", "blank-name"],
)
def test_start_game_rejects_bad_roster(client, players):
    resp = client.post(BASE, json={"players": players})
    assert resp.status_code == 400
    assert resp.headers["content-type"].startswith("application/problem+json")
    assert resp.json()["code"] == "invalid_players"


def test_unknown_game_is_404(client):
    resp = client.get(f"{BASE}/missing/scoreboard")
    assert resp.status_code == 404
    assert resp.json()["code"] == "game_not_found"

    resp = _submit(client, "missing", 1, {"p1": ["X"]})
    assert resp.status_code == 404


def test_new_game_scoreboard_is_empty(client):
    gid = _start(client, "Ann", "Bob")
    board = _scoreboard(client, gid)
    assert [p["playerId"] for p in board["scoreboard"]] == ["p1", "p2"]
    for entry in board["scoreboard"]:
        assert entry["total"] == 0
        assert entry["complete"] is False
        assert [f["display"] for f in entry["frames"]] == ["-"] * 10
    assert board["winners"] == []


def test_submit_frames_updates_scoreboard(client):
    gid = _start(client, "Ann", "Bob")
    assert _submit(client, gid, 1, {"p1": ["7", "/"], "p2": ["X"]}).json() == {
        "success": True
    }
    board = _scoreboard(client, gid)
    ann, bob = board["scoreboard"]
    assert ann["frames"][0] == {"rolls": [7, 3], "display": "7 /", "cumulativeTotal": None}
    assert bob["frames"][0] == {"rolls": [10], "display": "X", "cumulativeTotal": None}

    assert _submit(client, gid, 2, {"p1": ["3", "4"], "p2": ["3", "4"]}).status_code == 200
    ann, bob = _scoreboard(client, gid)["scoreboard"]
    assert [f["cumulativeTotal"] for f in ann["frames"][:2]] == [13, 20]
    assert [f["cumulativeTotal"] for f in bob["frames"][:2]] == [17, 24]
    assert ann["total"] == 20
    assert bob["total"] == 24


def test_batch_submission_is_atomic(client):
    gid = _start(client, "Ann", "Bob")
    resp = _submit(client, gid, 1, {"p1": ["X"], "p2": ["5", "6"]})
    assert resp.status_code == 400
    body = resp.json()
    assert body["code"] == "invalid_rolls"
    assert "exceeds 10 without a spare" in body["detail"]

    game = client.get(f"{BASE}/{gid}").json()
    assert all(frames is None for p in game["players"] for frames in p["frames"])


def test_unknown_player_is_404(client):
    gid = _start(client, "Ann", "Bob")
    resp = _submit(client, gid, 1, {"p1": ["X"], "nobody": ["X"]})
    assert resp.status_code == 404
    assert resp.json()["code"] == "player_not_found"


def test_duplicate_player_entries_are_rejected(client):
    gid = _start(client, "Ann", "Bob")
    resp = client.post(
        f"{BASE}/{gid}/frames/1/scores",
        json={"rolls": [{"playerId": "p1", "rolls": ["X"]}, {"playerId": "p1", "rolls": ["1", "2"]}]},
    )
    assert resp.status_code == 400
    assert resp.json()["code"] == "duplicate_players"


@pytest.mark.parametrize("frame", [0, 11])
def test_frame_number_out_of_range(client, frame):
    gid = _start(client, "Ann", "Bob")
    resp = _submit(client, gid, frame, {"p1": ["X"]})
    assert resp.status_code == 400
    assert resp.json()["code"] == "invalid_frame_number"


def test_resubmission_overwrites_frame(client):
    gid = _start(client, "Ann", "Bob")
    _submit(client, gid, 1, {"p1": ["1", "2"]})
    _submit(client, gid, 1, {"p1": ["4", "4"]})
    game = client.get(f"{BASE}/{gid}").json()
    assert game["players"][0]["frames"][0] == [4, 4]
    assert _scoreboard(client, gid)["scoreboard"][0]["total"] == 8


def test_single_player_submission_returns_score(client):
    gid = _start(client, "Ann", "Bob")
    resp = client.post(f"{BASE}/{gid}/players/p2/frames/1", json={"rolls": ["X"]})
    assert resp.status_code == 200
    body = resp.json()
    assert body["playerId"] == "p2"
    assert body["frames"][0]["display"] == "X"
    assert body["frames"][0]["cumulativeTotal"] is None

    resp = client.post(f"{BASE}/{gid}/players/p2/frames/10", json={"rolls": ["X", "X"]})
    assert resp.status_code == 400
    assert "requires 3 rolls" in resp.json()["detail"]

    resp = client.post(f"{BASE}/{gid}/players/p9/frames/1", json={"rolls": ["X"]})
    assert resp.status_code == 404


def test_full_game_reports_winners(client):
    gid = _start(client, "Ann", "Bob", "Cy")
    for frame in range(1, 10):
        _submit(client, gid, frame, {"p1": ["X"], "p2": ["0", "0"], "p3": ["X"]})

    board = _scoreboard(client, gid)
    assert board["winners"] == []

    _submit(
        client,
        gid,
        10,
        {"p1": ["X", "X", "X"], "p2": ["9", "0"], "p3": ["X", "X", "X"]},
    )
    board = _scoreboard(client, gid)
    totals = {p["playerId"]: p["total"] for p in board["scoreboard"]}
    assert totals == {"p1": 300, "p2": 9, "p3": 300}
    assert board["scoreboard"][0]["frames"][9]["display"] == "X X X"
    assert all(p["complete"] for p in board["scoreboard"])
    assert board["winners"] == ["p1", "p3"]


def test_roll_options_endpoint(client):
    resp = client.get(f"{BASE}/roll-options", params={"frame": 1, "rolls": ["7"]})
    assert resp.status_code == 200
    assert resp.json() == {
        "frame": 1,
        "options": ["0", "1", "2", "3", "/"],
        "complete": False,
    }

    resp = client.get(f"{BASE}/roll-options", params={"frame": 10, "rolls": ["3", "4"]})
    assert resp.json()["complete"] is True
    assert resp.json()["options"] == []

    resp = client.get(f"{BASE}/roll-options", params={"frame": 1, "rolls": ["/"]})
    assert resp.status_code == 400
    assert resp.json()["code"] == "invalid_rolls"


@pytest.mark.parametrize(
    "frame, rolls, msg",
    [
        (1, ["5", "6"], "exceeds 10 without a spare"),
        (5, ["1", "2", "3"], "Invalid number of rolls"),
        (10, ["5", "6"], "exceeds 10 without a spare"),
    ],
    ids=["sum-over-ten", "too-many", "tenth-sum-over-ten"],
)
def test_roll_options_endpoint_rejects_illegal_prefix(client, frame, rolls, msg):
    resp = client.get(f"{BASE}/roll-options", params={"frame": frame, "rolls": rolls})
    assert resp.status_code == 400
    body = resp.json()
    assert body["code"] == "invalid_rolls"
    assert msg in body["detail"]


def test_healthz(client):
    assert client.get("/healthz").json() == {"status": "ok"}
    assert client.get("/api/healthz").json() == {"status": "ok"}


def test_start_game_rate_limited_per_ip(client, monkeypatch):
    monkeypatch.delenv("DISABLE_RATE_LIMITS", raising=False)
    monkeypatch.setenv("SUBMIT_RATE_LIMIT", "2/minute")
    games.limiter.reset()
    h1 = {"X-Forwarded-For": "1.1.1.1"}
    h2 = {"X-Forwarded-For": "2.2.2.2"}
    try:
        for _ in range(2):
            _start(client, "Ann", "Bob", headers=h1)
        players = [{"playerId": "a", "name": "Ann"}, {"playerId": "b", "name": "Bob"}]
        resp = client.post(BASE, json={"players": players}, headers=h1)
        assert resp.status_code == 429
        body = resp.json()
        assert body["code"] == "rate_limit_exceeded"
        assert body["detail"].startswith("rate limit exceeded")

        _start(client, "Ann", "Bob", headers=h2)
    finally:
        games.limiter.reset()


def test_sentry_test_requires_dsn(client, monkeypatch):
    monkeypatch.setattr(main, "SENTRY_ENABLED", False)
    resp = client.post("/api/sentry-test")
    assert resp.status_code == 400
    assert resp.headers["content-type"].startswith("application/problem+json")
    assert resp.json()["code"] == "sentry_not_configured"
