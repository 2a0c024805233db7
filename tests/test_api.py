import pytest
from fastapi.testclient import TestClient

from conftest import create_userinfo, event_list, frame, game_event, header_bytes, packet, record, stop
from demo_stats import config
from demo_stats.commands import CommandType
from demo_stats.parser import DemoParser
import main
from main import app


@pytest.fixture
def client(tmp_path, monkeypatch):
    monkeypatch.setattr(config, "UPLOAD_DIR", tmp_path / "uploads")
    return TestClient(app)


def demo_bytes():
    return header_bytes(map_name="de_mirage") + b''.join([
        record(1, 0,
               frame(CommandType.GAME_EVENT_LIST, event_list())
               + frame(CommandType.CREATE_STRING_TABLE, create_userinfo([(1, "Alpha", 111), (2, "Bravo", 222)]))),
        packet(64,
               frame(CommandType.GAME_EVENT, game_event("player_spawn", userid=1, teamnum=3)),
               frame(CommandType.GAME_EVENT, game_event("player_spawn", userid=2, teamnum=2)),
               frame(CommandType.GAME_EVENT, game_event("round_start")),
               frame(CommandType.GAME_EVENT, game_event("player_death", userid=2, attacker=1)),
               frame(CommandType.GAME_EVENT, game_event("round_end", winner=3))),
        stop(128),
    ])


def test_root(client):
    response = client.get("/")
    assert response.status_code == 200
    assert response.json() == {"message": "Demo Stats API is running"}


def test_analyze_demo(client):
    response = client.post("/analyze-demo", files={"demo": ("match.dem", demo_bytes())})
    assert response.status_code == 200

    body = response.json()
    assert body["success"] is True
    data = body["data"]
    assert data["header"]["map_name"] == "de_mirage"
    assert data["score"] == [0, 1]
    assert data["rounds"] == 1
    assert [p["name"] for p in data["winners"]] == ["Alpha"]
    assert data["winners"][0]["kills"] == 1
    assert data["losers"][0]["deaths"] == 1

    assert list(config.UPLOAD_DIR.iterdir()) == []


def test_analyze_invalid_demo(client):
    response = client.post("/analyze-demo", files={"demo": ("broken.dem", b'PBDEMS2\0' + b'\0' * 1064)})
    assert response.status_code == 422
    detail = response.json()["detail"]
    assert detail["offset"] == 0
    assert "magic" in detail["error"]
    assert list(config.UPLOAD_DIR.iterdir()) == []


def test_analyze_truncated_demo(client):
    response = client.post("/analyze-demo", files={"demo": ("short.dem", demo_bytes()[:500])})
    assert response.status_code == 422
    assert response.json()["detail"]["offset"] == 500


def test_uploads_with_same_name_use_separate_files(client, monkeypatch):
    seen = []

    class RecordingParser(DemoParser):
        def parse(self):
            seen.append(self.demo_path)
            return super().parse()

    monkeypatch.setattr(main, "DemoParser", RecordingParser)
    for _ in range(2):
        response = client.post("/analyze-demo", files={"demo": ("match.dem", demo_bytes())})
        assert response.status_code == 200

    assert len(set(seen)) == 2
    assert all(path.endswith(".dem") for path in seen)
    assert list(config.UPLOAD_DIR.iterdir()) == []
