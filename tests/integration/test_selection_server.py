"""End-to-end tests of the selection server on a temporary data directory.

The channel cache is pre-seeded as fresh, so no request leaves the process.
"""

from __future__ import annotations

import time
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from tubekiosk.infrastructure.config import load_config
from tubekiosk.interfaces.app import create_app

pytestmark = pytest.mark.integration

_DAY_MS = 86_400_000


def _video(video_id: str, channel_id: str, *, age_days: int = 10, **extra) -> dict:
    now_ms = int(time.time() * 1000)
    return {
        "id": video_id,
        "title": f"Video {video_id}",
        "channelId": channel_id,
        "published": now_ms - age_days * _DAY_MS,
        "durationSeconds": 600,
        "viewCount": 100,
        "embeddable": True,
        **extra,
    }


@pytest.fixture()
def client(data_dir: Path, tmp_path: Path):
    config = load_config(
        cli_overrides={
            "data_dir": str(data_dir),
            "youtube_credentials_path": str(tmp_path / "no-credentials.json"),
        }
    )
    with TestClient(create_app(config)) as test_client:
        yield test_client


@pytest.fixture()
def seeded(write_document) -> None:
    write_document(
        "config.json",
        {"channels": [{"id": "UC1", "title": "One", "weight": 1}], "maxAgeYears": 2},
    )
    write_document(
        "channel_cache.json",
        {
            "UC1": {
                "lastFetch": int(time.time() * 1000),
                "videos": [_video("vid1", "UC1"), _video("old", "UC1", age_days=2000)],
            }
        },
    )


class TestSelectionServer:
    def test_healthz(self, client: TestClient) -> None:
        resp = client.get("/api/healthz")
        assert resp.status_code == 200
        assert resp.json()["status"] == "ok"

    def test_no_channels_is_500_and_creates_documents(
        self, client: TestClient, data_dir: Path
    ) -> None:
        resp = client.get("/api/next")

        assert resp.status_code == 500
        assert "No channels configured" in resp.json()["error"]
        assert (data_dir / "config.json").exists()
        assert (data_dir / "played.json").exists()

    @pytest.mark.usefixtures("seeded")
    def test_next_then_played_then_relaxed(
        self, client: TestClient, read_document
    ) -> None:
        first = client.get("/api/next")
        assert first.status_code == 200
        assert first.json()["videoId"] == "vid1"

        played = client.post("/api/played", json={"videoId": "vid1"})
        assert played.status_code == 200
        assert "vid1" in read_document("played.json")

        # Only vid1 is recent enough; played, it comes back through relaxation.
        again = client.get("/api/next")
        assert again.status_code == 200
        assert again.json()["videoId"] == "vid1"

        stats = client.get("/api/stats").json()
        assert stats["selection"]["requests"] == 2
        assert stats["selection"]["relaxed"] == 1

    @pytest.mark.usefixtures("seeded")
    def test_nothing_recent_is_404(self, client: TestClient, write_document) -> None:
        write_document("config.json", {"channels": [{"id": "UC1"}], "maxAgeYears": 0.001})

        resp = client.get("/api/next")

        assert resp.status_code == 404

    @pytest.mark.usefixtures("seeded")
    def test_admin_channel_round_trip(self, client: TestClient, read_document) -> None:
        resp = client.post(
            "/api/admin/channel", json={"id": "UC2", "title": "Two", "weight": 3}
        )
        assert resp.status_code == 200

        listed = client.get("/api/admin/channels").json()
        assert [c["id"] for c in listed] == ["UC1", "UC2"]
        assert read_document("config.json")["maxAgeYears"] == 2

        duplicate = client.post("/api/admin/channel", json={"id": "UC2"})
        assert duplicate.status_code == 400

    def test_malformed_played_body_is_400(self, client: TestClient) -> None:
        resp = client.post(
            "/api/played", content=b"{", headers={"content-type": "application/json"}
        )

        assert resp.status_code == 400
        assert "error" in resp.json()
