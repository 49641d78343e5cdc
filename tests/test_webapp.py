"""Tests for activity_timeline.webapp: the local HTTP API."""

import json

import pytest
from fastapi.testclient import TestClient

from activity_timeline.webapp import create_app

DAY = "2024-03-04"
NEXT_DAY = "2024-03-05"


@pytest.fixture
def now(at):
    return at("2024-03-10", 12)


@pytest.fixture
def data_path(tmp_path, at):
    path = tmp_path / "timeline.json"
    path.write_text(
        json.dumps(
            {
                "markers": [
                    {"activity": "Email", "date": at(DAY, 9), "goalId": "goal-mail"},
                    {"activity": "Meeting", "date": at(DAY, 9, 40)},
                    {"date": "broken"},
                ],
                "events": [
                    {
                        "id": "evt-1",
                        "bucketId": "aw-watcher-window",
                        "bucketType": "currentwindow",
                        "timestamp": at(DAY, 9),
                        "duration": 1800,
                        "displayName": "Editor",
                    }
                ],
                "buckets": [{"id": "aw-watcher-window", "type": "currentwindow"}],
            }
        ),
        encoding="utf-8",
    )
    return path


@pytest.fixture
def client(data_path, tz):
    with TestClient(create_app(data_path=data_path, tz=tz)) as test_client:
        yield test_client


class TestStatus:
    def test_reports_data_file(self, client, data_path):
        response = client.get("/api/status")
        assert response.status_code == 200
        body = response.json()
        assert body["data_path"] == str(data_path)
        assert body["data_exists"] is True
        assert body["block_minutes"] == 30


class TestTimeline:
    def test_day_from_snapshot(self, client, now):
        response = client.get("/api/timeline", params={"date": DAY, "now": now})
        assert response.status_code == 200
        body = response.json()
        assert body["date"] == DAY
        assert body["is_today"] is False
        intervals = [item for item in body["manual"] if item["kind"] == "interval"]
        assert [item["classification"] for item in intervals] == ["Email", "Meeting"]
        assert intervals[0]["duration_seconds"] == 40 * 60
        blocks = [item for item in body["passive"] if item["kind"] == "block"]
        assert [item["classification"] for item in blocks] == ["Editor"]
        assert [item["kind"] for item in body["dropped"]] == ["manual"]
        assert body["summary"][0]["activity"] == "Email"

    def test_toggles(self, client, now):
        response = client.get(
            "/api/timeline", params={"date": DAY, "now": now, "show_passive": "false"}
        )
        body = response.json()
        assert body["passive"] == []
        assert body["groups"] == []

    def test_invalid_date(self, client):
        response = client.get("/api/timeline", params={"date": "2024-13-45"})
        assert response.status_code == 400

    def test_repeated_requests_hit_cache(self, client, now):
        client.get("/api/timeline", params={"date": DAY, "now": now})
        client.get("/api/timeline", params={"date": DAY, "now": now + 1000})
        cache = client.get("/api/status").json()["cache"]
        assert cache == {"hits": 1, "misses": 1}

    def test_inline_payload(self, client, at):
        response = client.post(
            "/api/timeline",
            json={
                "markers": [{"activity": "Writing", "date": at(DAY, 14)}],
                "date": DAY,
                "now": at(DAY, 14, 15),
            },
        )
        assert response.status_code == 200
        body = response.json()
        assert body["is_today"] is True
        live = [item for item in body["manual"] if item["kind"] == "interval"]
        assert live[0]["is_live"] is True
        assert live[0]["duration_seconds"] == 15 * 60
        assert body["window"]["end"] == at(DAY, 14, 15)

    def test_inline_payload_rejects_unknown_fields(self, client):
        response = client.post("/api/timeline", json={"markers": [], "colour": "red"})
        assert response.status_code == 422


class TestSchedule:
    def test_range(self, client, now):
        response = client.get("/api/schedule", params={"start": DAY, "end": NEXT_DAY, "now": now})
        assert response.status_code == 200
        body = response.json()
        assert list(body["days"]) == [DAY, NEXT_DAY]
        goals = {item["goal_id"]: item for item in body["goals"]}
        assert goals["goal-mail"]["total_minutes"] == 40
        assert goals["goal-mail"]["daily_minutes"] == {DAY: 40}

    def test_reversed_range(self, client, now):
        response = client.get("/api/schedule", params={"start": NEXT_DAY, "end": DAY, "now": now})
        assert response.status_code == 400


class TestMissingData:
    def test_missing_file_renders_gaps(self, tmp_path, tz, now):
        app = create_app(data_path=tmp_path / "absent.json", tz=tz)
        with TestClient(app) as client:
            body = client.get("/api/timeline", params={"date": DAY, "now": now}).json()
        assert len(body["manual"]) == 96
        assert all(item["kind"] == "gap" for item in body["manual"])

    def test_corrupt_file(self, tmp_path, tz):
        path = tmp_path / "timeline.json"
        path.write_text("{", encoding="utf-8")
        with TestClient(create_app(data_path=path, tz=tz)) as client:
            assert client.get("/api/timeline", params={"date": DAY}).status_code == 500
