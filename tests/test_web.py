import pytest
from fastapi.testclient import TestClient

from engine.cache import PositionCache
from engine.constants import INFINITY_SCORE
from web.app import MoveRequest, app

BACK_RANK = "6k1/5ppp/8/8/8/8/8/R5K1 w - - 0 1"
STALEMATE = "7k/5Q2/6K1/8/8/8/8/8 b - - 0 1"


@pytest.fixture
def client(monkeypatch):
    monkeypatch.setattr(app.state, "cache", PositionCache())
    return TestClient(app)


def test_move_returns_best_move_and_new_fen(client) -> None:
    response = client.post("/api/move", json={"fen": BACK_RANK, "depth": 2})
    assert response.status_code == 200
    body = response.json()
    assert body["move"] == "a1a8"
    assert body["san"] == "Ra8#"
    assert body["fen"].startswith("R5k1/5ppp/8/8/8/8/8/6K1 b")
    assert body["score"] == INFINITY_SCORE - 1
    assert body["depth"] == 2
    assert body["nodes"] > 0
    assert body["pv"][0] == "a1a8"


@pytest.mark.parametrize(("requested", "searched"), [(0, 1), (-3, 1), (99, 6)])
def test_depth_is_clamped(requested: int, searched: int) -> None:
    assert MoveRequest(fen=BACK_RANK, depth=requested).depth == searched


def test_depth_zero_searches_one_ply(client) -> None:
    response = client.post("/api/move", json={"fen": BACK_RANK, "depth": 0})
    assert response.status_code == 200
    assert response.json()["depth"] == 1


def test_invalid_fen_is_a_client_error(client) -> None:
    response = client.post("/api/move", json={"fen": "not a fen", "depth": 1})
    assert response.status_code == 400


def test_finished_game_is_a_client_error(client) -> None:
    response = client.post("/api/move", json={"fen": STALEMATE, "depth": 1})
    assert response.status_code == 400
    assert "over" in response.json()["detail"]


def test_missing_fen_is_rejected(client) -> None:
    response = client.post("/api/move", json={"depth": 1})
    assert response.status_code == 422
