import pytest
from fastapi.testclient import TestClient

from clipcomposer.app import app, get_model_client, get_scale_policy
from clipcomposer.clip_validator import ScalePolicy
from clipcomposer.errors import ComposeError

from fakes import FakeModelClient, clip_json

C_SHARP_CLIP = clip_json([{"tb": 0, "db": 1, "p": 61, "v": 0.8}])


@pytest.fixture()
def make_client():
    def _make(fake, policy=ScalePolicy.SNAP):
        app.dependency_overrides[get_model_client] = lambda: fake
        app.dependency_overrides[get_scale_policy] = lambda: policy
        return TestClient(app)

    yield _make
    app.dependency_overrides.clear()


def test_health():
    with TestClient(app) as client:
        r = client.get("/health")
    assert r.status_code == 200
    assert r.json() == {"status": "ok"}


def test_compose_returns_clip_document(make_client):
    client = make_client(FakeModelClient(C_SHARP_CLIP))
    r = client.post("/compose", json={"clipType": "chords", "bars": 4, "key": "C", "mode": "major"})
    assert r.status_code == 200, r.text
    body = r.json()
    assert body["notes"][0]["p"] == 60
    assert body["_snapped_info"] == {"snapped_count": 1, "mode": "snap_to_scale"}
    assert body["instrument"] == {"name": "Electric Piano", "program": 4}


def test_compose_with_empty_body_uses_defaults(make_client):
    fake = FakeModelClient(clip_json([], length_bars=8))
    client = make_client(fake)
    r = client.post("/compose")
    assert r.status_code == 200, r.text
    assert "Length: 8 bars." in fake.calls[0]["user"]


def test_compose_out_of_scale_is_plain_text_400(make_client):
    client = make_client(FakeModelClient(C_SHARP_CLIP), ScalePolicy.STRICT)
    r = client.post("/compose", json={"clipType": "lead", "bars": 4})
    assert r.status_code == 400
    assert r.headers["content-type"].startswith("text/plain")
    assert r.text == "OUT_OF_SCALE: 1 non-diatonic notes for C major"


def test_compose_schema_error(make_client):
    client = make_client(FakeModelClient('{"notes": [], "time_signature": "4/4"}'))
    r = client.post("/compose", json={"bars": 4})
    assert r.status_code == 400
    assert r.text == "SCHEMA_MISSING_FIELDS: length_bars"


def test_compose_ai_json_error(make_client):
    client = make_client(FakeModelClient("no json", "still none"))
    r = client.post("/compose", json={"bars": 4})
    assert r.status_code == 400
    assert r.text.startswith("AI_JSON_ERROR:")


def test_compose_passes_provider_status_through(make_client):
    client = make_client(FakeModelClient(ComposeError("invalid x-api-key", 401)))
    r = client.post("/compose", json={"bars": 4})
    assert r.status_code == 401
    assert r.text == "MODEL_ERROR: invalid x-api-key"


def test_compose_output_is_accepted_by_export(make_client):
    client = make_client(FakeModelClient(clip_json([{"tb": 0, "db": 1, "p": 60}], length_bars=100)))
    r = client.post("/compose", json={"bars": 4})
    assert r.status_code == 200, r.text
    assert r.json()["length_bars"] == 4

    exported = client.post("/export/midi", json=r.json())
    assert exported.status_code == 200, exported.text
    assert exported.content[:4] == b"MThd"


def test_export_midi_returns_smf():
    payload = {
        "time_signature": "3/4",
        "length_bars": 2,
        "clip_type": "lead",
        "key": "D",
        "mode": "dorian",
        "instrument": {"name": "Flute", "program": 73},
        "notes": [{"tb": 0, "db": 1, "p": 62, "v": 0.9}, {"tb": 1, "db": 2, "p": 65, "v": 0.7}],
        "_snapped_info": {"snapped_count": 1, "mode": "snap_to_scale"},
    }
    with TestClient(app) as client:
        r = client.post("/export/midi", json=payload)
    assert r.status_code == 200, r.text
    assert r.headers["content-type"].startswith("audio/midi")
    assert 'filename="clip.mid"' in r.headers["content-disposition"]
    assert r.content[:4] == b"MThd"


@pytest.mark.parametrize(
    "payload",
    [
        {"time_signature": "4/4", "notes": []},
        {"time_signature": "4/4", "length_bars": 0, "notes": []},
        {"time_signature": "4/4", "length_bars": 2, "notes": [{"tb": 0, "db": 0, "p": 60}]},
        {"time_signature": "4/4", "length_bars": 2, "notes": [{"tb": 0, "db": 1, "p": 200}]},
    ],
)
def test_export_midi_rejects_invalid_clip(payload):
    with TestClient(app) as client:
        r = client.post("/export/midi", json=payload)
    assert r.status_code == 400
