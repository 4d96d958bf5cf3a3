from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import httpx

from mockprep.errors import LLMError

log = logging.getLogger("mockprep")

DEFAULT_SYSTEM = "You are an expert technical interviewer."


@dataclass(frozen=True)
class _Route:
    url: str
    model: str
    headers: Dict[str, str]
    responses_api: bool


class LLMClient:
    """
    Dual-backend LLM client:
    - Default: local OpenAI-compatible server (e.g., Ollama)
    - With an api_key and openai_base_url: the remote API, via /responses unless
      chat completions are forced (Groq has no /responses)

    Every failure (transport, HTTP status, unreadable body) surfaces as LLMError.
    """

    def __init__(
        self,
        base_url: str,
        default_model: str,
        *,
        api_key: str = "",
        openai_base_url: Optional[str] = None,
        openai_default_model: Optional[str] = None,
        prefer_responses_api: bool = True,
        force_chat_completions: bool = False,
        timeout: float = 60.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = (base_url or "").rstrip("/")
        self.default_model = default_model
        self.api_key = (api_key or "").strip()

        self.openai_base_url = (openai_base_url or "").rstrip("/") or None
        self.openai_default_model = openai_default_model or default_model

        self.prefer_responses_api = bool(prefer_responses_api)
        self.force_chat_completions = bool(force_chat_completions)

        self.timeout = timeout
        self._transport = transport

    def _route(self, api_key: str, model: Optional[str]) -> _Route:
        headers = {"Content-Type": "application/json"}

        if api_key and self.openai_base_url:
            headers["Authorization"] = f"Bearer {api_key}"
            responses = self.prefer_responses_api and not self.force_chat_completions
            path = "/responses" if responses else "/chat/completions"
            return _Route(
                url=self.openai_base_url + path,
                model=model or self.openai_default_model,
                headers=headers,
                responses_api=responses,
            )

        if not self.base_url:
            raise LLMError("LLM misconfigured: missing base_url.")
        return _Route(
            url=self.base_url + "/chat/completions",
            model=model or self.default_model,
            headers=headers,
            responses_api=False,
        )

    async def ask(
        self,
        prompt: str,
        system: str = DEFAULT_SYSTEM,
        model: Optional[str] = None,
        max_tokens: int = 400,
        temperature: float = 0.2,
        api_key: Optional[str] = None,
    ) -> str:
        key = (api_key if api_key is not None else self.api_key).strip()
        route = self._route(key, model)

        messages = [
            {"role": "system", "content": system or DEFAULT_SYSTEM},
            {"role": "user", "content": f"Answer in English only.\n\n{prompt or ''}"},
        ]
        if route.responses_api:
            payload: Dict[str, Any] = {
                "model": route.model,
                "input": messages,
                "temperature": temperature,
                "max_output_tokens": max_tokens,
            }
        else:
            payload = {
                "model": route.model,
                "messages": messages,
                "max_tokens": max_tokens,
                "temperature": temperature,
            }

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                r = await client.post(route.url, headers=route.headers, json=payload)
                _raise_for_status(r)
                data = r.json()
        except httpx.HTTPError as e:
            log.warning("LLM request failed | url=%s err=%s", route.url, e)
            raise LLMError(f"LLM request failed: {e}") from e
        except ValueError as e:
            raise LLMError(f"LLM returned invalid JSON: {e}") from e

        if route.responses_api:
            return _text_from_responses(data)
        return _text_from_chat(data)


def _raise_for_status(r: httpx.Response) -> None:
    if r.status_code < 400:
        return
    if r.status_code == 401:
        raise LLMError("Invalid API key (401).", status_code=401)
    body = (r.text or "")[:500]
    log.warning("LLM error status=%d body=%r", r.status_code, body[:200])
    raise LLMError(f"LLM error ({r.status_code}): {body}", status_code=r.status_code)


def _text_from_responses(data: Any) -> str:
    if not isinstance(data, dict):
        return ""

    direct = str(data.get("output_text") or "").strip()
    if direct:
        return direct

    texts: List[str] = []
    for item in data.get("output") or []:
        parts = item.get("content") if isinstance(item, dict) else None
        for part in parts if isinstance(parts, list) else []:
            if not isinstance(part, dict):
                continue
            text = part.get("text")
            if text is None and part.get("type") == "output_text":
                text = part.get("content")
            if text:
                texts.append(str(text))
    return "\n".join(texts).strip()


def _text_from_chat(data: Any) -> str:
    if not isinstance(data, dict):
        return ""

    choices = data.get("choices")
    if choices:
        first = choices[0] or {}
        # message (OpenAI), text (legacy completions), delta (stream chunk)
        for candidate in (
            (first.get("message") or {}).get("content"),
            first.get("text"),
            (first.get("delta") or {}).get("content"),
        ):
            if candidate and str(candidate).strip():
                return str(candidate).strip()
        return ""

    # Ollama native shapes
    for key in ("message", "response"):
        if key in data:
            value = data[key]
            if isinstance(value, dict):
                value = value.get("content") or ""
            return str(value).strip()
    return ""
