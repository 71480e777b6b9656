"""
Completion Client — OpenAI-compatible chat-completions over HTTP

  POST {base_url}/chat/completions
  Authorization: Bearer <api_key>
  {"model": ..., "messages": [{"role": "user", "content": ...}], "temperature": ...}

  → choices[0].message.content

Any transport error, timeout, non-2xx status, non-JSON body or missing
completion payload raises AIProviderError. The reply text itself is
returned untouched; parsing it is the caller's job (see llm/parsing.py).

The per-call timeout is shorter than the pipeline deadline so
an unresponsive provider fails the request instead of hanging it.
"""

from __future__ import annotations

import logging
import time
from typing import Any

import httpx

from unicollab.core.exceptions import AIProviderError

logger = logging.getLogger(__name__)


class CompletionClient:
    """
    Thin async wrapper around one chat-completions endpoint.

    An httpx.AsyncClient may be injected (tests pass one built on
    httpx.MockTransport); otherwise a short-lived client is opened per call.
    """

    def __init__(
        self,
        api_key:     str,
        model:       str,
        base_url:    str = "https://openrouter.ai/api/v1",
        temperature: float = 0.3,
        timeout:     float = 240.0,
        referer:     str | None = None,
        app_title:   str | None = None,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self._api_key     = api_key
        self._model       = model
        self._url         = f"{base_url.rstrip('/')}/chat/completions"
        self._temperature = temperature
        self._timeout     = timeout
        self._referer     = referer
        self._app_title   = app_title
        self._http        = http_client

    @property
    def model(self) -> str:
        return self._model

    def _headers(self) -> dict[str, str]:
        headers = {
            "Authorization": f"Bearer {self._api_key}",
            "Content-Type":  "application/json",
        }
        # OpenRouter attribution headers; ignored by other providers
        if self._referer:
            headers["HTTP-Referer"] = self._referer
        if self._app_title:
            headers["X-Title"] = self._app_title
        return headers

    def _payload(self, prompt: str, temperature: float | None) -> dict[str, Any]:
        return {
            "model":       self._model,
            "messages":    [{"role": "user", "content": prompt}],
            "temperature": self._temperature if temperature is None else temperature,
        }

    async def complete(self, prompt: str, temperature: float | None = None) -> str:
        """
        Send one user prompt and return the completion text.

        Raises:
            AIProviderError: transport failure, timeout, HTTP error status,
                or a body without choices[0].message.content.
        """
        if not self._api_key:
            raise AIProviderError("AI Provider failed.", detail="Completion API key is not configured")

        t0 = time.perf_counter()
        logger.info(
            "Completion | sending model=%s prompt_chars=%d", self._model, len(prompt),
        )

        try:
            if self._http is not None:
                resp = await self._post(self._http, prompt, temperature)
            else:
                async with httpx.AsyncClient(timeout=self._timeout) as http:
                    resp = await self._post(http, prompt, temperature)
            resp.raise_for_status()
            data = resp.json()
        except httpx.TimeoutException as exc:
            logger.error("Completion | timed out after %.0fs model=%s", self._timeout, self._model)
            raise AIProviderError(
                "AI Provider failed.", detail=f"Provider timed out after {self._timeout:.0f}s",
            ) from exc
        except httpx.HTTPStatusError as exc:
            logger.error(
                "Completion | provider returned %d model=%s body=%s",
                exc.response.status_code, self._model, exc.response.text[:300],
            )
            raise AIProviderError(
                "AI Provider failed.", detail=f"Provider returned HTTP {exc.response.status_code}",
            ) from exc
        except httpx.HTTPError as exc:
            logger.error("Completion | transport error model=%s error=%s", self._model, exc)
            raise AIProviderError("AI Provider failed.", detail=str(exc)) from exc
        except ValueError as exc:
            logger.error("Completion | non-JSON response model=%s", self._model)
            raise AIProviderError("AI Provider failed.", detail="Provider returned a non-JSON body") from exc

        content = _completion_text(data)
        if content is None:
            logger.error("Completion | response missing choices[0].message.content model=%s", self._model)
            raise AIProviderError(
                "AI Provider failed.", detail="Response did not contain a completion",
            )

        logger.info(
            "Completion | model=%s reply_chars=%d latency_ms=%.1f",
            self._model, len(content), (time.perf_counter() - t0) * 1000,
        )
        return content

    async def _post(
        self, http: httpx.AsyncClient, prompt: str, temperature: float | None,
    ) -> httpx.Response:
        return await http.post(
            self._url,
            headers=self._headers(),
            json=self._payload(prompt, temperature),
            timeout=self._timeout,
        )


def _completion_text(data: Any) -> str | None:
    """choices[0].message.content if present and a string, else None."""
    if not isinstance(data, dict):
        return None
    choices = data.get("choices")
    if not isinstance(choices, list) or not choices:
        return None
    first = choices[0]
    if not isinstance(first, dict):
        return None
    message = first.get("message")
    if not isinstance(message, dict):
        return None
    content = message.get("content")
    return content if isinstance(content, str) else None
