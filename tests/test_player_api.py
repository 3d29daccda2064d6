"""
Integration tests for the player_api action surface.
"""
import asyncio
import base64

import aiosqlite
import pytest

from sample_catalog import ESCAPED_TITLE, PASSWORD, SID_A, SID_B


def _auth(**params):
    return {"username": "alice", "password": PASSWORD, **params}


async def _drop_table(db_path, table):
    async with aiosqlite.connect(db_path) as db:
        await db.execute(f"DROP TABLE {table}")
        await db.commit()


class TestAuthentication:

    def test_auth_response(self, client):
        response = client.get("/player_api.php", params=_auth())
        assert response.status_code == 200
        body = response.json()
        assert body["user_info"]["auth"] == 1
        assert body["user_info"]["username"] == "alice"
        assert body["user_info"]["status"] == "Active"
        assert body["user_info"]["max_connections"] == "2"
        assert body["server_info"]["process"] is True

    def test_unknown_action_falls_back_to_auth_response(self, client):
        body = client.get("/player_api.php", params=_auth(action="get_everything")).json()
        assert body["user_info"]["auth"] == 1

    def test_missing_credentials(self, client):
        response = client.get("/player_api.php", params={"action": "get_live_streams"})
        assert response.status_code == 200
        assert response.json() == {"user_info": {"auth": 0, "message": "Authentication required"}}

    def test_uniform_rejection(self, client):
        unknown = client.get("/player_api.php", params={"username": "mallory", "password": PASSWORD})
        wrong = client.get("/player_api.php", params={"username": "alice", "password": "nope"})
        assert unknown.status_code == wrong.status_code == 200
        assert unknown.json() == wrong.json() == {
            "user_info": {"auth": 0, "message": "Invalid credentials"}
        }

    @pytest.mark.parametrize("username,message", [
        ("bob", "Account suspended"),
        ("carol", "No active subscription"),
        ("dave", "No active subscription"),
        ("erin", "No active subscription"),
    ])
    def test_account_state_rejections(self, client, username, message):
        body = client.get("/player_api.php", params={"username": username, "password": PASSWORD}).json()
        assert body == {"user_info": {"auth": 0, "message": message}}

    @pytest.mark.parametrize("path", ["/player_api.php", "/xtream-api", "/"])
    def test_all_entry_points(self, client, path):
        body = client.get(path, params=_auth(action="get_live_categories")).json()
        assert [c["category_name"] for c in body] == ["News", "Sports"]


class TestActions:

    def test_example_scenario(self, client):
        categories = client.get("/player_api.php", params=_auth(action="get_live_categories")).json()
        assert categories == [
            {"category_id": "1", "category_name": "News", "parent_id": 0},
            {"category_id": "2", "category_name": "Sports", "parent_id": 0},
        ]
        streams = client.get(
            "/player_api.php", params=_auth(action="get_live_streams", category_id="2")
        ).json()
        assert len(streams) == 1
        assert streams[0]["name"] == "B"
        assert streams[0]["category_id"] == "2"
        assert streams[0]["stream_id"] == SID_B

    def test_live_streams_exclude_inactive_channels(self, client):
        streams = client.get("/player_api.php", params=_auth(action="get_live_streams")).json()
        assert [s["name"] for s in streams] == ["A", "B", "D"]
        assert [s["num"] for s in streams] == [1, 2, 3]

    def test_aliases(self, client):
        live = client.get("/player_api.php", params=_auth(action="get_live_categories")).json()
        alias = client.get("/player_api.php", params=_auth(action="get_channel_categories")).json()
        assert live == alias

        every = client.get(
            "/player_api.php", params=_auth(action="get_all_channels", category_id="2")
        ).json()
        assert len(every) == 3

    def test_vod_and_series(self, client):
        vod = client.get("/player_api.php", params=_auth(action="get_vod_streams")).json()
        assert vod[0]["name"] == "Big Film"
        assert vod[0]["stream_id"] == 0xabc

        cats = client.get("/player_api.php", params=_auth(action="get_vod_categories")).json()
        assert cats == [{"category_id": "1", "category_name": "Action", "parent_id": 0}]

        info = client.get("/player_api.php", params=_auth(action="get_vod_info", vod_id="2748")).json()
        assert info["movie_data"]["container_extension"] == "mkv"

        series = client.get("/player_api.php", params=_auth(action="get_series")).json()
        assert series[0]["name"] == "Long Show"

        series_cats = client.get("/player_api.php", params=_auth(action="get_series_categories")).json()
        assert series_cats[0]["category_name"] == "Drama"

        detail = client.get(
            "/player_api.php", params=_auth(action="get_series_info", series_id="1")
        ).json()
        assert detail["episodes"] == {}
        assert detail["info"]["name"] == ""

    def test_short_epg(self, client):
        body = client.get(
            "/player_api.php", params=_auth(action="get_short_epg", stream_id=str(SID_A))
        ).json()
        titles = [base64.b64decode(item["title"]).decode() for item in body["epg_listings"]]
        # Finished programmes are excluded; ordered by start time
        assert titles == [ESCAPED_TITLE, "Midday Report", "Next Week"]

    def test_short_epg_limit(self, client):
        body = client.get(
            "/player_api.php",
            params=_auth(action="get_short_epg", stream_id=str(SID_A), limit="1"),
        ).json()
        assert len(body["epg_listings"]) == 1

    def test_simple_data_table(self, client):
        body = client.get(
            "/player_api.php", params=_auth(action="get_simple_data_table", stream_id=str(SID_A))
        ).json()
        assert body["epg_listings"][0]["now_playing"] == 1
        assert body["epg_listings"][1]["now_playing"] == 0

    def test_short_epg_unknown_stream(self, client):
        body = client.get(
            "/player_api.php", params=_auth(action="get_short_epg", stream_id="999")
        ).json()
        assert body == {"epg_listings": []}

    def test_bouquets(self, client):
        body = client.get("/player_api.php", params=_auth(action="get_bouquets")).json()
        assert body == [{
            "bouquet_id": "1",
            "bouquet_name": "Favourites",
            "bouquet_channels": [SID_A, SID_B],
            "is_adult": 0,
        }]


class TestPostForm:

    def test_form_credentials(self, client):
        response = client.post("/player_api.php", data=_auth(action="get_live_categories"))
        assert response.status_code == 200
        assert len(response.json()) == 2

    def test_query_takes_precedence(self, client):
        response = client.post(
            "/player_api.php?action=get_live_categories",
            data=_auth(action="get_vod_categories"),
        )
        assert [c["category_name"] for c in response.json()] == ["News", "Sports"]


def test_backend_failure_envelope(client, store):
    asyncio.run(_drop_table(store.db_path, "channels"))
    response = client.get("/player_api.php", params=_auth(action="get_live_streams"))
    assert response.status_code == 500
    assert response.json() == {"user_info": {"auth": 0, "message": "Server error"}}
    assert response.headers["access-control-allow-origin"] == "*"


async def _insert_bad_channel(db_path):
    async with aiosqlite.connect(db_path) as db:
        await db.execute(
            "INSERT INTO channels (id, name, upstream_sources, active) VALUES (?, ?, ?, 1)",
            ("0000abcd-0000-4000-8000-000000000000", "Broken", "not json"),
        )
        await db.commit()


def test_malformed_row_uses_failure_envelope(client, store):
    asyncio.run(_insert_bad_channel(store.db_path))
    response = client.get("/player_api.php", params=_auth(action="get_live_streams"))
    assert response.status_code == 500
    assert response.json() == {"user_info": {"auth": 0, "message": "Server error"}}
    assert response.headers["access-control-allow-origin"] == "*"


def test_unexpected_error_uses_failure_envelope(client, store, monkeypatch):
    async def explode():
        raise RuntimeError("boom")

    monkeypatch.setattr(store, "get_active_channels", explode)
    response = client.get("/player_api.php", params=_auth(action="get_live_streams"))
    assert response.status_code == 500
    assert response.json() == {"user_info": {"auth": 0, "message": "Server error"}}
    assert response.headers["access-control-allow-origin"] == "*"
