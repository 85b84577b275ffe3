from __future__ import annotations

import json
import socket
import urllib.error
import urllib.parse
import urllib.request
from typing import Any, Callable, Dict, List, Optional, Sequence

try:
    from constants import (
        ANTHROPIC_API_VERSION,
        DEFAULT_ANTHROPIC_BASE_URL,
        DEFAULT_ANTHROPIC_MODEL,
        DEFAULT_LMSTUDIO_BASE_URL,
        DEFAULT_MODEL_NAME,
        DEFAULT_OLLAMA_BASE_URL,
        DEFAULT_OPENROUTER_BASE_URL,
        DEFAULT_OPENROUTER_MODEL,
        HTTP_TIMEOUT_SEC,
        LOCAL_HOSTS,
        PROVIDER_ANTHROPIC,
        PROVIDER_LMSTUDIO,
        PROVIDER_OLLAMA,
        PROVIDER_OPENROUTER,
    )
    from errors import ComposeError
    from logger_config import logger
except ImportError:
    from .constants import (
        ANTHROPIC_API_VERSION,
        DEFAULT_ANTHROPIC_BASE_URL,
        DEFAULT_ANTHROPIC_MODEL,
        DEFAULT_LMSTUDIO_BASE_URL,
        DEFAULT_MODEL_NAME,
        DEFAULT_OLLAMA_BASE_URL,
        DEFAULT_OPENROUTER_BASE_URL,
        DEFAULT_OPENROUTER_MODEL,
        HTTP_TIMEOUT_SEC,
        LOCAL_HOSTS,
        PROVIDER_ANTHROPIC,
        PROVIDER_LMSTUDIO,
        PROVIDER_OLLAMA,
        PROVIDER_OPENROUTER,
    )
    from .errors import ComposeError
    from .logger_config import logger

# (system, user, temperature, max_tokens) -> text segments
ModelClient = Callable[[str, str, float, int], Sequence[str]]

DEFAULT_BASE_URLS = {
    PROVIDER_ANTHROPIC: DEFAULT_ANTHROPIC_BASE_URL,
    PROVIDER_OPENROUTER: DEFAULT_OPENROUTER_BASE_URL,
    PROVIDER_OLLAMA: DEFAULT_OLLAMA_BASE_URL,
}

DEFAULT_MODELS = {
    PROVIDER_ANTHROPIC: DEFAULT_ANTHROPIC_MODEL,
    PROVIDER_OPENROUTER: DEFAULT_OPENROUTER_MODEL,
}


def build_url(base_url: str, path: str) -> str:
    if base_url.endswith("/"):
        base = base_url[:-1]
    else:
        base = base_url
    if not path.startswith("/"):
        path = "/" + path
    return base + path


def is_local_url(url: str) -> bool:
    try:
        host = urllib.parse.urlparse(url).hostname
    except ValueError:
        return False
    if not host:
        return False
    return host in LOCAL_HOSTS or host.startswith("127.")


def read_json_response(resp: Any) -> Dict[str, Any]:
    raw = resp.read().decode("utf-8")
    return json.loads(raw)


def extract_error_detail(body: str) -> str:
    try:
        payload = json.loads(body)
    except json.JSONDecodeError:
        return body
    error = payload.get("error") if isinstance(payload, dict) else None
    if isinstance(error, dict) and error.get("message"):
        return str(error["message"])
    if isinstance(error, str):
        return error
    return body


def post_json(url: str, payload: Dict[str, Any], headers: Dict[str, str], timeout: float) -> Dict[str, Any]:
    data = json.dumps(payload).encode("utf-8")
    req = urllib.request.Request(
        url,
        data=data,
        headers={"Content-Type": "application/json", **headers},
        method="POST",
    )
    try:
        if is_local_url(url):
            opener = urllib.request.build_opener(urllib.request.ProxyHandler({}))
            with opener.open(req, timeout=timeout) as resp:
                return read_json_response(resp)
        with urllib.request.urlopen(req, timeout=timeout) as resp:
            return read_json_response(resp)
    except urllib.error.HTTPError as exc:
        body = exc.read().decode("utf-8", errors="ignore")
        logger.error("LLM HTTP error: %s %s", exc.code, body)
        raise ComposeError(extract_error_detail(body) or f"LLM HTTP error: {exc.code}", exc.code) from exc
    except urllib.error.URLError as exc:
        if isinstance(exc.reason, (socket.timeout, TimeoutError)):
            logger.error("LLM connection timed out after %ss", timeout)
            raise ComposeError("LLM request timed out", 504) from exc
        logger.error("LLM connection error: %s", exc)
        raise ComposeError(f"LLM connection error: {exc.reason}", 502) from exc
    except (socket.timeout, TimeoutError) as exc:
        logger.error("LLM request timed out after %ss", timeout)
        raise ComposeError("LLM request timed out", 504) from exc
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise ComposeError(f"LLM returned invalid JSON: {exc}", 502) from exc


def call_anthropic(
    model_name: str,
    base_url: str,
    api_key: Optional[str],
    system: str,
    user: str,
    temperature: float,
    max_tokens: int,
) -> List[str]:
    if not api_key:
        raise ComposeError("Anthropic requires an API key", 401)
    url = build_url(base_url, "/messages")
    payload = {
        "model": model_name,
        "temperature": temperature,
        "max_tokens": max_tokens,
        "system": system,
        "messages": [{"role": "user", "content": user}],
    }
    headers = {"x-api-key": api_key, "anthropic-version": ANTHROPIC_API_VERSION}
    response = post_json(url, payload, headers, HTTP_TIMEOUT_SEC)
    content = response.get("content")
    if not isinstance(content, list):
        raise ComposeError("Anthropic response missing content", 502)
    return [block.get("text", "") for block in content if isinstance(block, dict) and block.get("type") == "text"]


def call_chat_completions(
    model_name: str,
    base_url: str,
    api_key: Optional[str],
    system: str,
    user: str,
    temperature: float,
    max_tokens: int,
) -> List[str]:
    url = build_url(base_url, "/chat/completions")
    payload = {
        "model": model_name,
        "messages": [
            {"role": "system", "content": system},
            {"role": "user", "content": user},
        ],
        "temperature": temperature,
        "max_tokens": max_tokens,
        "stream": False,
    }
    headers = {"Authorization": f"Bearer {api_key}"} if api_key else {}
    response = post_json(url, payload, headers, HTTP_TIMEOUT_SEC)
    try:
        return [response["choices"][0]["message"]["content"] or ""]
    except (KeyError, IndexError, TypeError) as exc:
        raise ComposeError("Chat completion response missing content", 502) from exc


def call_ollama(
    model_name: str,
    base_url: str,
    api_key: Optional[str],
    system: str,
    user: str,
    temperature: float,
    max_tokens: int,
) -> List[str]:
    url = build_url(base_url, "/api/chat")
    payload = {
        "model": model_name,
        "messages": [
            {"role": "system", "content": system},
            {"role": "user", "content": user},
        ],
        "options": {"temperature": temperature, "num_predict": max_tokens},
        "stream": False,
    }
    response = post_json(url, payload, {}, HTTP_TIMEOUT_SEC)
    try:
        return [response["message"]["content"] or ""]
    except (KeyError, TypeError) as exc:
        raise ComposeError("Ollama response missing content", 502) from exc


PROVIDER_CALLS = {
    PROVIDER_ANTHROPIC: call_anthropic,
    PROVIDER_OPENROUTER: call_chat_completions,
    PROVIDER_LMSTUDIO: call_chat_completions,
    PROVIDER_OLLAMA: call_ollama,
}


def make_model_client(
    provider: str,
    model_name: Optional[str] = None,
    base_url: Optional[str] = None,
    api_key: Optional[str] = None,
) -> ModelClient:
    provider = (provider or PROVIDER_ANTHROPIC).strip().lower()
    call = PROVIDER_CALLS.get(provider, call_chat_completions)
    resolved_url = base_url or DEFAULT_BASE_URLS.get(provider, DEFAULT_LMSTUDIO_BASE_URL)
    resolved_model = model_name or DEFAULT_MODELS.get(provider, DEFAULT_MODEL_NAME)

    if provider == PROVIDER_OPENROUTER and not api_key:
        logger.error("OpenRouter requires an API key but none provided")
        raise ComposeError("OpenRouter requires an API key", 401)

    def client(system: str, user: str, temperature: float, max_tokens: int) -> List[str]:
        logger.info(
            "call_llm: provider=%s model=%s base_url=%s temperature=%s max_tokens=%d",
            provider,
            resolved_model,
            resolved_url,
            temperature,
            max_tokens,
        )
        return call(resolved_model, resolved_url, api_key, system, user, temperature, max_tokens)

    return client
