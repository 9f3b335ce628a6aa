import time
import random
import httpx

from contestbot.settings import settings

# Expect base url to include /v1
LLM_BASE_URL = settings.LLM_BASE_URL.rstrip("/")
LLM_API_KEY = settings.LLM_API_KEY
LLM_MODEL = settings.LLM_MODEL

# Every inbound message waits on this call before the user gets a reply,
# so keep a per-request timeout plus a total budget across retries.
REQUEST_TIMEOUT_SEC = settings.LLM_REQUEST_TIMEOUT_SEC
CLIENT_BUDGET_SEC = settings.LLM_CLIENT_BUDGET_SEC
MAX_RETRIES = settings.LLM_MAX_RETRIES

_client = httpx.Client(timeout=REQUEST_TIMEOUT_SEC)


def _headers() -> dict:
    h = {"Content-Type": "application/json"}
    if LLM_API_KEY:
        h["Authorization"] = f"Bearer {LLM_API_KEY}"
    return h


def chat_completion(
    system: str,
    user: str,
    *,
    temperature: float = 0.1,
    max_tokens: int = 200,
    json_mode: bool = False,
) -> str:
    """Call an OpenAI-compatible chat endpoint.

    POST {LLM_BASE_URL}/chat/completions
    """
    if not LLM_BASE_URL:
        raise RuntimeError("LLM_BASE_URL is not set")

    url = f"{LLM_BASE_URL}/chat/completions"
    payload = {
        "model": LLM_MODEL,
        "messages": [
            {"role": "system", "content": system},
            {"role": "user", "content": user},
        ],
        "temperature": float(temperature),
        "max_tokens": int(max_tokens),
    }
    if json_mode:
        payload["response_format"] = {"type": "json_object"}

    start = time.time()
    attempt = 0
    last_err = None
    while (time.time() - start) < CLIENT_BUDGET_SEC and attempt < max(1, MAX_RETRIES):
        attempt += 1
        try:
            resp = _client.post(url, headers=_headers(), json=payload)
            resp.raise_for_status()
            data = resp.json()
            content = data["choices"][0]["message"]["content"]
            if not isinstance(content, str):
                raise TypeError(f"unexpected content type {type(content).__name__}")
            return content
        except httpx.TimeoutException as e:
            last_err = e
            remaining = CLIENT_BUDGET_SEC - (time.time() - start)
            if remaining <= 0:
                break
            time.sleep(min(0.2 + random.uniform(0.0, 0.1), max(0.0, remaining)))
        except (httpx.HTTPError, KeyError, IndexError, TypeError, ValueError) as e:
            last_err = e
            remaining = CLIENT_BUDGET_SEC - (time.time() - start)
            if remaining <= 0 or attempt >= MAX_RETRIES:
                break
            time.sleep(min(0.2 + random.uniform(0.0, 0.1), max(0.0, remaining)))
    elapsed = round(time.time() - start, 3)
    raise RuntimeError(f"LLM call failed (attempts={attempt}, elapsed={elapsed}s): {last_err}")
