"""LLM client — HTTP connection to a remote text-completion provider.

The content adapter injects an LLM callable matching the protocol:

    async def __call__(self, system_prompt: str, user_prompt: str) -> str: ...

HttpLLM is the real implementation. Tests substitute an AsyncMock or a small
stub class instead.
"""

from __future__ import annotations

import logging
from typing import Protocol

import httpx

from campus_sim.models import LLMConfig, ProviderName

logger = logging.getLogger(__name__)

GEMINI_BASE_URL = "https://generativelanguage.googleapis.com/v1beta"


# ---------------------------------------------------------------------------
# Protocol: every LLM implementation must match this signature
# ---------------------------------------------------------------------------

class LLM(Protocol):
    async def __call__(self, system_prompt: str, user_prompt: str) -> str: ...


# ---------------------------------------------------------------------------
# HttpLLM: connects to a real backend
# ---------------------------------------------------------------------------

class HttpLLM:
    """Async HTTP client for text-completion providers.

    Supported formats:
      "openai"     — POST {base}/chat/completions
                     {"model", "messages": [system, user], "max_tokens", "temperature"}
                     Response: {"choices": [{"message": {"content": "..."}}]}
      "gemini"     — POST {base}/models/{model}:generateContent?key=...
                     {"contents": [{"parts": [{"text": ...}]}], "generationConfig": {...}}
                     Response: {"candidates": [{"content": {"parts": [{"text": "..."}]}}]}
      "koboldcpp"  — POST {base}/api/v1/generate  {"prompt": ...}
                     Response: {"results": [{"text": "..."}]}

    The overall deadline is enforced by the caller; `timeout` here is only the
    transport-level limit.
    """

    def __init__(
        self,
        base_url: str,
        api_key: str = "",
        provider: ProviderName = "openai",
        model: str = "",
        max_tokens: int = 1000,
        temperature: float = 0.8,
        timeout: float = 60.0,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._api_key = api_key
        self._provider = provider
        self._model = model
        self._max_tokens = max_tokens
        self._temperature = temperature
        self._timeout = timeout

    @classmethod
    def from_config(cls, config: LLMConfig) -> HttpLLM:
        base_url = config.base_url
        # The default config points at OpenAI; gemini needs its own host.
        if config.provider == "gemini" and (not base_url or "api.openai.com" in base_url):
            base_url = GEMINI_BASE_URL
        return cls(
            base_url=base_url,
            api_key=config.api_key,
            provider=config.provider,
            model=config.model,
            max_tokens=config.max_tokens,
            temperature=config.temperature,
        )

    def _headers(self) -> dict[str, str]:
        headers: dict[str, str] = {"Content-Type": "application/json"}
        if self._api_key and self._provider != "gemini":
            headers["Authorization"] = f"Bearer {self._api_key}"
        return headers

    def _build_request(self, system_prompt: str, user_prompt: str) -> tuple[str, dict]:
        """Return (url, body) for the configured provider."""
        if self._provider == "openai":
            url = f"{self._base_url}/chat/completions"
            body: dict = {
                "messages": [
                    {"role": "system", "content": system_prompt},
                    {"role": "user", "content": user_prompt},
                ],
                "max_tokens": self._max_tokens,
                "temperature": self._temperature,
            }
            if self._model:
                body["model"] = self._model
            return url, body

        if self._provider == "gemini":
            url = f"{self._base_url}/models/{self._model}:generateContent?key={self._api_key}"
            return url, {
                "contents": [{"parts": [{"text": f"{system_prompt}\n\n{user_prompt}"}]}],
                "generationConfig": {
                    "maxOutputTokens": self._max_tokens,
                    "temperature": self._temperature,
                },
            }

        # koboldcpp
        url = f"{self._base_url}/api/v1/generate"
        return url, {
            "prompt": f"{system_prompt}\n\n{user_prompt}",
            "max_length": self._max_tokens,
            "temperature": self._temperature,
        }

    def _parse_response(self, data: dict) -> str:
        """Extract the completion text from the response body."""
        try:
            if self._provider == "openai":
                return data["choices"][0]["message"]["content"]
            if self._provider == "gemini":
                return data["candidates"][0]["content"]["parts"][0]["text"]
            return data["results"][0]["text"]
        except (KeyError, IndexError, TypeError) as e:
            raise LLMError(f"Unexpected response format from {self._provider} backend") from e

    async def __call__(self, system_prompt: str, user_prompt: str) -> str:
        url, body = self._build_request(system_prompt, user_prompt)
        logger.debug(
            "llm call provider=%s url=%s prompt_len=%d",
            self._provider, self._base_url, len(system_prompt) + len(user_prompt),
        )

        try:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                resp = await client.post(url, json=body, headers=self._headers())
                resp.raise_for_status()
        except httpx.ConnectError as e:
            raise LLMError(f"Cannot connect to LLM backend at {self._base_url}") from e
        except httpx.HTTPStatusError as e:
            raise LLMError(
                f"LLM backend returned HTTP {e.response.status_code}"
            ) from e
        except httpx.TimeoutException as e:
            raise LLMError(f"LLM backend timed out after {self._timeout}s") from e

        text = self._parse_response(resp.json())
        logger.debug("llm response provider=%s len=%d", self._provider, len(text))
        return text


# ---------------------------------------------------------------------------
# LLMError: raised by HttpLLM for all connection and protocol failures
# ---------------------------------------------------------------------------

class LLMError(RuntimeError):
    """Raised when the LLM backend cannot be reached or returns an error."""
