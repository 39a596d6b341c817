"""Async Google Gemini client used for symbol extraction and narrative summaries."""

from __future__ import annotations

from typing import Any

import httpx


class GeminiError(Exception):
    """Raised when the Gemini API returns an error or an unusable response."""

    def __init__(self, message: str, status_code: int | None = None):
        self.status_code = status_code
        super().__init__(message)


class GeminiClient:
    """Async HTTP client for the Gemini generateContent endpoint.

    Messages use the chat convention ({"role": "user"|"assistant", "content": str});
    assistant turns are sent to Gemini with the "model" role.
    """

    BASE_URL = "https://generativelanguage.googleapis.com"
    DEFAULT_MODEL = "gemini-1.5-pro-002"

    def __init__(self, api_key: str, model: str = DEFAULT_MODEL, timeout: float = 60.0):
        self.api_key = api_key
        self.model = model
        self._client = httpx.AsyncClient(
            base_url=self.BASE_URL,
            timeout=timeout,
            headers={"Content-Type": "application/json"},
        )

    async def close(self) -> None:
        await self._client.aclose()

    @staticmethod
    def _contents(messages: list[dict]) -> list[dict]:
        contents = []
        for msg in messages:
            text = msg.get("content")
            if not text:
                continue
            role = "model" if msg.get("role") == "assistant" else "user"
            contents.append({"role": role, "parts": [{"text": str(text)}]})
        return contents

    async def generate(self, messages: list[dict], system: str | None = None) -> str:
        """Generate a text completion.

        Args:
            messages: Conversation turns, oldest first
            system: Optional system instruction

        Returns:
            Concatenated text of the first candidate

        Raises:
            GeminiError: On HTTP errors, network errors or empty responses
        """
        body: dict[str, Any] = {"contents": self._contents(messages)}
        if system:
            body["systemInstruction"] = {"parts": [{"text": system}]}

        try:
            resp = await self._client.post(
                f"/v1beta/models/{self.model}:generateContent",
                params={"key": self.api_key},
                json=body,
            )
            resp.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise GeminiError(
                f"Gemini API error {e.response.status_code}: {e.response.text[:200]}",
                status_code=e.response.status_code,
            ) from e
        except httpx.RequestError as e:
            raise GeminiError(f"Request failed: {e}") from e

        try:
            data = resp.json()
            parts = data["candidates"][0]["content"]["parts"]
        except (ValueError, KeyError, IndexError, TypeError) as e:
            raise GeminiError("Gemini returned no usable candidate") from e

        text = "".join(p.get("text", "") for p in parts if isinstance(p, dict))
        if not text.strip():
            raise GeminiError("Gemini returned an empty response")
        return text
