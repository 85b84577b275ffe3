import io
import socket
import urllib.error

import pytest

from clipcomposer import llm_client
from clipcomposer.errors import ComposeError
from clipcomposer.llm_client import build_url, extract_error_detail, is_local_url, make_model_client, post_json


def test_build_url_joins_slashes():
    assert build_url("http://x/v1/", "messages") == "http://x/v1/messages"
    assert build_url("http://x/v1", "/messages") == "http://x/v1/messages"


def test_is_local_url():
    assert is_local_url("http://127.0.0.1:1234/v1")
    assert is_local_url("http://localhost:11434")
    assert not is_local_url("https://api.anthropic.com/v1")


def test_anthropic_text_blocks_become_segments(monkeypatch):
    calls = []
    response = {
        "content": [
            {"type": "text", "text": '{"a":'},
            {"type": "tool_use", "id": "x"},
            {"type": "text", "text": "1}"},
        ]
    }

    def fake_post_json(url, payload, headers, timeout):
        calls.append({"url": url, "payload": payload, "headers": headers})
        return response

    monkeypatch.setattr(llm_client, "post_json", fake_post_json)
    client = make_model_client("anthropic", api_key="sk-test")
    assert client("sys", "user", 0.2, 3000) == ['{"a":', "1}"]
    call = calls[0]
    assert call["url"] == "https://api.anthropic.com/v1/messages"
    assert call["headers"]["x-api-key"] == "sk-test"
    assert call["payload"]["system"] == "sys"
    assert call["payload"]["messages"] == [{"role": "user", "content": "user"}]
    assert call["payload"]["temperature"] == 0.2
    assert call["payload"]["max_tokens"] == 3000
    assert call["payload"]["model"] == "claude-opus-4-1-20250805"


def test_anthropic_requires_key():
    client = make_model_client("anthropic")
    with pytest.raises(ComposeError) as exc_info:
        client("sys", "user", 0.2, 100)
    assert exc_info.value.status_code == 401


def test_openrouter_requires_key():
    with pytest.raises(ComposeError):
        make_model_client("openrouter")


def test_lmstudio_chat_completions(monkeypatch):
    calls = []

    def fake_post_json(url, payload, headers, timeout):
        calls.append((url, payload, headers))
        return {"choices": [{"message": {"content": "{}"}}]}

    monkeypatch.setattr(llm_client, "post_json", fake_post_json)
    client = make_model_client("lmstudio", model_name="qwen")
    assert client("sys", "user", 0.0, 1200) == ["{}"]
    url, payload, headers = calls[0]
    assert url == "http://127.0.0.1:1234/v1/chat/completions"
    assert payload["messages"][0] == {"role": "system", "content": "sys"}
    assert payload["model"] == "qwen"
    assert headers == {}


def test_ollama_missing_content(monkeypatch):
    monkeypatch.setattr(llm_client, "post_json", lambda *a: {"done": True})
    client = make_model_client("ollama", model_name="llama3")
    with pytest.raises(ComposeError) as exc_info:
        client("sys", "user", 0.2, 10)
    assert exc_info.value.status_code == 502


def test_http_error_status_passes_through(monkeypatch):
    body = b'{"type":"error","error":{"type":"rate_limit_error","message":"slow down"}}'

    def fake_urlopen(req, timeout):
        raise urllib.error.HTTPError(req.full_url, 429, "Too Many Requests", {}, io.BytesIO(body))

    monkeypatch.setattr(llm_client.urllib.request, "urlopen", fake_urlopen)
    with pytest.raises(ComposeError) as exc_info:
        post_json("https://api.example.com/v1/messages", {}, {}, 5)
    assert exc_info.value.status_code == 429
    assert exc_info.value.detail == "slow down"


def test_connection_error_is_502(monkeypatch):
    def fake_urlopen(req, timeout):
        raise urllib.error.URLError("refused")

    monkeypatch.setattr(llm_client.urllib.request, "urlopen", fake_urlopen)
    with pytest.raises(ComposeError) as exc_info:
        post_json("https://api.example.com/v1/messages", {}, {}, 5)
    assert exc_info.value.status_code == 502


def test_extract_error_detail():
    assert extract_error_detail('{"error": {"message": "bad key"}}') == "bad key"
    assert extract_error_detail('{"error": "nope"}') == "nope"
    assert extract_error_detail("plain text") == "plain text"


def test_connect_timeout_is_504(monkeypatch):
    def fake_urlopen(req, timeout):
        raise urllib.error.URLError(socket.timeout("timed out"))

    monkeypatch.setattr(llm_client.urllib.request, "urlopen", fake_urlopen)
    with pytest.raises(ComposeError) as exc_info:
        post_json("https://api.example.com/v1/messages", {}, {}, 5)
    assert exc_info.value.status_code == 504


def test_read_timeout_is_504(monkeypatch):
    def fake_urlopen(req, timeout):
        raise socket.timeout("timed out")

    monkeypatch.setattr(llm_client.urllib.request, "urlopen", fake_urlopen)
    with pytest.raises(ComposeError) as exc_info:
        post_json("https://api.example.com/v1/messages", {}, {}, 5)
    assert exc_info.value.status_code == 504


def test_non_utf8_body_is_502(monkeypatch):
    monkeypatch.setattr(llm_client.urllib.request, "urlopen", lambda req, timeout: io.BytesIO(b"\xff\xfe{}"))
    with pytest.raises(ComposeError) as exc_info:
        post_json("https://api.example.com/v1/messages", {}, {}, 5)
    assert exc_info.value.status_code == 502
