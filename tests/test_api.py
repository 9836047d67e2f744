"""
mediashelf - HTTP API Tests

Exercises the FastAPI boundary through TestClient. Validates:
- /list output shape, filtering and access-denied mapping
- /stream file delivery and sandboxing
- Playlist endpoints and the status code of every failure kind
- Health endpoint
"""

from pathlib import Path

from fastapi.testclient import TestClient

from mediashelf.config import Settings
from mediashelf.main import create_app
from tests.conftest import BASE_URL, SAMPLE_PLS

ACCESS_DENIED = "Access denied: path is outside the configured media folder"


# ===========================================================================
# /list
# ===========================================================================


class TestListEndpoint:
    def test_root_listing(self, client):
        response = client.get("/list")
        assert response.status_code == 200
        body = response.json()
        assert isinstance(body, list)
        album = next(e for e in body if e["name"] == "album")
        assert album["isFile"] is False
        assert "/list?path=" in album["enter"]

    def test_album_scenario(self, tmp_path: Path):
        """album/ with three audio files and a readme lists exactly the audio."""
        media = tmp_path / "scenario"
        album = media / "album"
        album.mkdir(parents=True)
        for name in ("song.mp3", "track.flac", "audio.ogg", "readme.txt"):
            (album / name).write_text("content", encoding="utf-8")
        app = create_app(
            Settings(media_root=media, playlist_root=tmp_path / "pl", base_url=BASE_URL)
        )

        body = TestClient(app).get("/list", params={"path": "album"}).json()

        assert [e["name"] for e in body] == ["..", "audio.ogg", "song.mp3", "track.flac"]

    def test_file_entry_fields(self, client):
        body = client.get("/list", params={"path": "album"}).json()
        song = next(e for e in body if e["name"] == "song.mp3")
        assert song["isFile"] is True
        assert song["size"] > 0
        assert song["enter"] == f"{BASE_URL}/stream?path=album%2Fsong.mp3"

    def test_traversal_forbidden(self, client):
        response = client.get("/list", params={"path": "../etc/passwd"})
        assert response.status_code == 403
        assert ACCESS_DENIED in response.json()["error"]

    def test_missing_directory(self, client):
        response = client.get("/list", params={"path": "nonexistent"})
        assert response.status_code == 404
        assert "error" in response.json()

    def test_file_as_directory_is_internal_error(self, client):
        response = client.get("/list", params={"path": "album/song.mp3"})
        assert response.status_code == 500

    def test_cors_header(self, client):
        response = client.get("/list", headers={"Origin": "http://example.com"})
        assert response.headers.get("access-control-allow-origin") == "*"


# ===========================================================================
# /stream
# ===========================================================================


class TestStreamEndpoint:
    def test_streams_file(self, client):
        response = client.get("/stream", params={"path": "album/song.mp3"})
        assert response.status_code == 200
        assert response.content == b"fake mp3 content"

    def test_traversal_forbidden(self, client):
        response = client.get("/stream", params={"path": "../etc/passwd"})
        assert response.status_code == 403
        assert ACCESS_DENIED in response.json()["error"]

    def test_missing_file(self, client):
        assert client.get("/stream", params={"path": "album/none.mp3"}).status_code == 404

    def test_directory_is_not_streamable(self, client):
        assert client.get("/stream", params={"path": "album"}).status_code == 404


# ===========================================================================
# /playlists
# ===========================================================================


class TestPlaylistEndpoints:
    def test_list_empty(self, client):
        assert client.get("/playlists").json() == []

    def test_read(self, client, write_playlist):
        write_playlist("test.pls", SAMPLE_PLS)
        body = client.get("/playlists/test").json()
        assert body[0] == {"file": "/path/to/song1.mp3", "title": "First Song", "length": "180"}
        assert client.get("/playlists/test.pls").json() == body

    def test_read_missing(self, client):
        response = client.get("/playlists/nope")
        assert response.status_code == 404
        assert "nope" in response.json()["error"]

    def test_create_and_conflict(self, client, playlist_root: Path):
        assert client.post("/playlists", json={"name": "new"}).status_code == 201
        assert (playlist_root / "new.pls").is_file()
        assert client.post("/playlists", json={"name": "new"}).status_code == 409
        assert client.get("/playlists").json() == ["new"]

    def test_create_invalid_name(self, client):
        assert client.post("/playlists", json={"name": ".."}).status_code == 400

    def test_add_tracks(self, client):
        response = client.post(
            "/playlists/mix/tracks",
            json=[{"file": "/a.mp3", "title": "A", "length": 120}, {"file": "/b.mp3"}],
        )
        assert response.status_code == 200
        assert response.json() == [
            {"file": "/a.mp3", "title": "A", "length": "120"},
            {"file": "/b.mp3"},
        ]

    def test_add_tracks_requires_list(self, client):
        response = client.post("/playlists/mix/tracks", json={"file": "/a.mp3"})
        assert response.status_code == 422

    def test_add_track_without_file_rejected(self, client):
        response = client.post("/playlists/p/tracks", json=[{"file": ""}, {"file": "/a.mp3"}])
        assert response.status_code == 422
        assert client.get("/playlists/p").status_code == 404

    def test_remove_track(self, client):
        client.post("/playlists/mix/tracks", json=[{"file": "/a.mp3"}, {"file": "/b.mp3"}])
        response = client.delete("/playlists/mix/tracks/0")
        assert response.status_code == 200
        assert response.json() == [{"file": "/b.mp3"}]

    def test_remove_track_out_of_range(self, client):
        client.post("/playlists/mix/tracks", json=[{"file": "/a.mp3"}])
        response = client.delete("/playlists/mix/tracks/5")
        assert response.status_code == 400
        assert "out of range" in response.json()["error"]

    def test_remove_track_bad_index(self, client):
        client.post("/playlists/mix/tracks", json=[{"file": "/a.mp3"}])
        assert client.delete("/playlists/mix/tracks/abc").status_code == 400

    def test_remove_track_missing_playlist(self, client):
        assert client.delete("/playlists/ghost/tracks/0").status_code == 404

    def test_rename(self, client, playlist_root: Path):
        client.post("/playlists", json={"name": "a"})
        client.post("/playlists", json={"name": "b"})
        assert client.patch("/playlists/a", json={"name": "b"}).status_code == 409
        assert client.patch("/playlists/a", json={"name": "c"}).status_code == 200
        assert client.patch("/playlists/a", json={"name": "d"}).status_code == 404
        assert sorted(p.name for p in playlist_root.iterdir()) == ["b.pls", "c.pls"]

    def test_delete(self, client):
        client.post("/playlists", json={"name": "gone"})
        assert client.delete("/playlists/gone").status_code == 204
        assert client.delete("/playlists/gone").status_code == 404


# ===========================================================================
# /api/health
# ===========================================================================


class TestHealth:
    def test_health_ok(self, client):
        body = client.get("/api/health").json()
        assert body["status"] == "ok"
        assert body["media_root"] == "ok"
        assert body["playlist_root_exists"] is True
        assert "uptime_seconds" in body

    def test_health_degraded(self, tmp_path: Path):
        app = create_app(
            Settings(
                media_root=tmp_path / "missing",
                playlist_root=tmp_path / "pl",
                base_url=BASE_URL,
            )
        )
        body = TestClient(app).get("/api/health").json()
        assert body["status"] == "degraded"
        assert body["playlist_root_exists"] is False
