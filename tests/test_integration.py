"""Integration tests for the Flask API."""

import pytest

from conftest import make_squad


# ---------------------------------------------------------------------------
# Flask app fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def app(tmp_db, monkeypatch):
    monkeypatch.delenv("JPL_AUTO_ROLLOVER", raising=False)
    from jpl_fantasy.api import create_app
    app = create_app(db_path=tmp_db)
    app.config["TESTING"] = True
    return app


@pytest.fixture
def client(app):
    return app.test_client()


def _open(client, gw):
    resp = client.post("/api/gameweeks", json={"number": gw, "phase": "open"})
    assert resp.status_code == 200


def _squad_payload():
    return make_squad().model_dump(by_alias=True)


def test_app_creates(app):
    assert app is not None


def test_api_routes_exist(app):
    """All expected API routes are registered."""
    rules = {r.rule for r in app.url_map.iter_rules()}
    expected = [
        "/api/transfers",
        "/api/transfers/cost",
        "/api/chips",
        "/api/chips/deactivate",
        "/api/squads",
        "/api/gameweeks",
        "/api/gameweeks/current",
        "/api/gameweeks/<int:number>/start",
        "/api/gameweek-points",
        "/api/weekly-update",
    ]
    for route in expected:
        assert route in rules, f"Missing route: {route}"


def test_unknown_route_json_404(client):
    resp = client.get("/api/nope")
    assert resp.status_code == 404
    assert resp.get_json() == {"error": "Not found"}


class TestValidation:
    def test_transfer_requires_user_id(self, client):
        resp = client.post("/api/transfers", json={"gameweek": 1})
        assert resp.status_code == 400
        assert "user_id" in resp.get_json()["error"]

    def test_transfer_requires_players(self, client):
        resp = client.post("/api/transfers", json={"user_id": "u1", "gameweek": 1})
        assert resp.status_code == 400

    @pytest.mark.parametrize("gw", ["abc", 0, 39, True])
    def test_bad_gameweek(self, client, gw):
        resp = client.post("/api/chips", json={"user_id": "u1", "gameweek": gw, "chip": "benchBoost"})
        assert resp.status_code == 400

    def test_malformed_squad(self, client):
        _open(client, 1)
        resp = client.post("/api/squads", json={
            "user_id": "u1", "gameweek": 1, "squad": {"players": [{"isStarting": True}]},
        })
        assert resp.status_code == 400
        assert resp.get_json()["error"] == "Invalid request"


class TestSeasonFlow:
    def test_closed_gameweek(self, client):
        resp = client.post("/api/transfers", json={
            "user_id": "u1", "gameweek": 3, "player_out_id": 1, "player_in_id": 2,
        })
        assert resp.status_code == 400
        assert resp.get_json()["code"] == "gameweek_closed"

    def test_full_gameweek(self, client):
        _open(client, 1)
        resp = client.post("/api/squads", json={"user_id": "u1", "gameweek": 1, "squad": _squad_payload()})
        assert resp.status_code == 200

        resp = client.get("/api/squads?user_id=u1&gameweek=1")
        assert resp.status_code == 200
        assert len(resp.get_json()["squad"]["players"]) == 15

        # GW1 transfers are free.
        for i in range(3):
            resp = client.post("/api/transfers", json={
                "user_id": "u1", "gameweek": 1, "player_out_id": i + 1, "player_in_id": i + 50,
            })
            assert resp.get_json()["transfer_cost"] == 0

        client.post("/api/gameweeks", json={"number": 1, "phase": "closed"})
        _open(client, 2)
        assert client.get("/api/gameweeks/current").get_json()["gameweek"] == 2
        started = client.post("/api/gameweeks/2/start").get_json()
        assert started["started"] == ["u1"]

        resp = client.get("/api/transfers/cost?user_id=u1&gameweek=2&transfers=2")
        assert resp.get_json()["cost"] == 4

        resp = client.post("/api/chips", json={"user_id": "u1", "gameweek": 2, "chip": "tripleCaptain"})
        assert resp.status_code == 200
        resp = client.post("/api/chips", json={"user_id": "u1", "gameweek": 2, "chip": "benchBoost"})
        assert resp.status_code == 400
        assert resp.get_json()["code"] == "chip_exclusivity"

        chips = client.get("/api/chips?user_id=u1&gameweek=2").get_json()
        assert chips["active_chip"] == "tripleCaptain"

        resp = client.post("/api/weekly-update", json={
            "gameweek": 2, "player_points": {str(i): 2 for i in range(1, 16)},
        })
        assert resp.get_json()["scored"] == [{"user_id": "u1", "points": 24 + 2}]

        points = client.get("/api/gameweek-points?user_id=u1&gameweek=2").get_json()
        assert points["gameweeks"][0]["points"] == 26
        assert points["total_points"] == 26

        history = client.get("/api/transfers?user_id=u1").get_json()
        assert len(history["transfers"]) == 3

    def test_deactivate_route(self, client):
        _open(client, 2)
        client.post("/api/chips", json={"user_id": "u1", "gameweek": 2, "chip": "benchBoost"})
        resp = client.post("/api/chips/deactivate", json={"user_id": "u1", "gameweek": 2})
        assert resp.status_code == 400
        assert resp.get_json()["code"] == "gameweek_open"

        client.post("/api/gameweeks", json={"number": 2, "phase": "closed"})
        resp = client.post("/api/chips/deactivate", json={"user_id": "u1", "gameweek": 2})
        assert resp.status_code == 200
        assert resp.get_json()["deactivated"] == ["benchBoost"]

    def test_deactivate_unknown_user(self, client):
        resp = client.post("/api/chips/deactivate", json={"user_id": "ghost", "gameweek": 2})
        assert resp.status_code == 404

    def test_points_missing(self, client):
        resp = client.get("/api/gameweek-points?user_id=u1&gameweek=5")
        assert resp.status_code == 404

    def test_list_gameweeks(self, client):
        _open(client, 3)
        rows = client.get("/api/gameweeks").get_json()["gameweeks"]
        assert rows == [{"number": 3, "deadline": None, "stored_phase": "open", "phase": "open"}]

    def test_unknown_phase(self, client):
        resp = client.post("/api/gameweeks", json={"number": 3, "phase": "live"})
        assert resp.status_code == 400


def test_rollover_tick(tmp_db):
    from conftest import FixedOracle
    from jpl_fantasy.season.manager import FantasyManager
    from jpl_fantasy.season.scheduler import rollover_tick

    oracle = FixedOracle(open_gameweeks=(3,))
    mgr = FantasyManager(db_path=tmp_db, oracle=oracle)
    mgr.save_squad("u1", 3, make_squad())

    assert rollover_tick(mgr, None) == 3
    oracle.move_to(4)
    assert rollover_tick(mgr, 3) == 4
    assert mgr.user_states.load("u1")[0].last_gameweek_processed == 4
    oracle.open = set()
    assert rollover_tick(mgr, 4) == 4
