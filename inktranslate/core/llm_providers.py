"""
LLM Provider abstraction and implementations
"""
import asyncio
import os
from abc import ABC, abstractmethod
from typing import Optional, Dict, Any

import httpx

from inktranslate.config import (
    API_ENDPOINT, DEFAULT_MODEL, GEMINI_MODEL, REQUEST_TIMEOUT,
    MAX_TRANSLATION_ATTEMPTS, RETRY_DELAY_SECONDS,
    TRANSLATION_TEMPERATURE, MAX_OUTPUT_TOKENS
)
from prompts import generate_response_schema
from inktranslate.exceptions import TranslationServiceError


class LLMProvider(ABC):
    """Abstract base class for LLM providers"""

    def __init__(self, model: str, timeout: int = REQUEST_TIMEOUT,
                 max_attempts: int = MAX_TRANSLATION_ATTEMPTS,
                 retry_delay: float = RETRY_DELAY_SECONDS,
                 temperature: float = TRANSLATION_TEMPERATURE,
                 transport: Optional[httpx.AsyncBaseTransport] = None):
        self.model = model
        self.timeout = timeout
        self.max_attempts = max(1, max_attempts)
        self.retry_delay = retry_delay
        self.temperature = temperature
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    @abstractmethod
    async def generate(self, system_instruction: str, content: str) -> str:
        """
        Send one chunk and return the raw response text

        Raises:
            TranslationServiceError: On any non-success condition
        """
        pass

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(transport=self._transport, timeout=self.timeout)
        return self._client

    async def _post_json(self, url: str, payload: Dict[str, Any],
                         headers: Optional[Dict[str, str]] = None) -> Dict[str, Any]:
        """
        POST a JSON payload, retrying transport and server errors

        Raises:
            TranslationServiceError: Once all attempts failed, or immediately on
            client errors that a retry cannot fix
        """
        client = self._get_client()
        provider_name = self.__class__.__name__
        last_error: Optional[Exception] = None

        for attempt in range(self.max_attempts):
            try:
                response = await client.post(url, json=payload, headers=headers)
                response.raise_for_status()
                return response.json()

            except httpx.HTTPStatusError as e:
                status = e.response.status_code
                last_error = e
                if status == 429:
                    last_error = TranslationServiceError(
                        f"{provider_name}: rate limit or quota exceeded", details=e.response.text[:200])
                elif 400 <= status < 500:
                    raise TranslationServiceError(
                        f"{provider_name}: request rejected with HTTP {status}",
                        details=e.response.text[:200]) from e
            except httpx.TimeoutException as e:
                last_error = e
            except httpx.HTTPError as e:
                last_error = e
            except ValueError as e:
                # Body was not JSON
                raise TranslationServiceError(f"{provider_name}: malformed response body", details=str(e)) from e

            if attempt < self.max_attempts - 1:
                await asyncio.sleep(self.retry_delay)

        if isinstance(last_error, TranslationServiceError):
            raise last_error
        raise TranslationServiceError(
            f"{provider_name}: request failed after {self.max_attempts} attempt(s)",
            details=f"{type(last_error).__name__}: {last_error}") from last_error

    async def close(self):
        """Close the HTTP client"""
        if self._client is not None:
            await self._client.aclose()
            self._client = None


class OllamaProvider(LLMProvider):
    """Ollama API provider"""

    def __init__(self, api_endpoint: str = API_ENDPOINT, model: str = DEFAULT_MODEL, **kwargs):
        super().__init__(model, **kwargs)
        self.api_endpoint = api_endpoint

    async def generate(self, system_instruction: str, content: str) -> str:
        """Generate a JSON answer using the Ollama API"""
        payload = {
            "model": self.model,
            "system": system_instruction,
            "prompt": content,
            "stream": False,
            "think": False,
            "format": generate_response_schema(),
            "options": {"temperature": self.temperature}
        }
        response_json = await self._post_json(self.api_endpoint, payload)
        response_text = response_json.get("response")
        if not isinstance(response_text, str):
            raise TranslationServiceError("OllamaProvider: response field missing")
        return response_text


class GeminiProvider(LLMProvider):
    """Google Gemini API provider"""

    def __init__(self, api_key: str, model: str = GEMINI_MODEL, **kwargs):
        super().__init__(model, **kwargs)
        self.api_key = api_key

    @property
    def api_endpoint(self) -> str:
        return f"https://generativelanguage.googleapis.com/v1beta/models/{self.model}:generateContent"

    async def generate(self, system_instruction: str, content: str) -> str:
        """Generate a JSON answer using the Gemini API"""
        headers = {
            "Content-Type": "application/json",
            "x-goog-api-key": self.api_key
        }

        payload = {
            "systemInstruction": {
                "parts": [{"text": system_instruction}]
            },
            "contents": [{
                "role": "user",
                "parts": [{"text": content}]
            }],
            "generationConfig": {
                "temperature": self.temperature,  # Low temperature for faithful translation
                "topP": 0.95,
                "topK": 40,
                "maxOutputTokens": MAX_OUTPUT_TOKENS,
                "responseMimeType": "application/json",
                "responseSchema": generate_response_schema(uppercase_types=True)
            }
        }

        response_json = await self._post_json(self.api_endpoint, payload, headers=headers)

        candidates = response_json.get("candidates") or []
        if not candidates:
            block_reason = response_json.get("promptFeedback", {}).get("blockReason")
            raise TranslationServiceError("GeminiProvider: no candidates in response",
                                          details=f"blockReason={block_reason}" if block_reason else None)

        parts = candidates[0].get("content", {}).get("parts", [])
        response_text = "".join(part.get("text", "") for part in parts)
        if not response_text:
            finish_reason = candidates[0].get("finishReason")
            raise TranslationServiceError("GeminiProvider: empty candidate",
                                          details=f"finishReason={finish_reason}")
        return response_text


def create_llm_provider(provider_type: str = "gemini", **kwargs) -> LLMProvider:
    """Factory function to create LLM providers"""
    model = kwargs.pop("model", None)
    api_key = kwargs.pop("api_key", None)
    api_endpoint = kwargs.pop("api_endpoint", API_ENDPOINT)

    # Auto-switch to Gemini provider when a Gemini model is requested
    if provider_type.lower() == "ollama" and model and model.startswith("gemini"):
        provider_type = "gemini"

    if provider_type.lower() == "ollama":
        return OllamaProvider(api_endpoint=api_endpoint, model=model or DEFAULT_MODEL, **kwargs)
    elif provider_type.lower() == "gemini":
        if not api_key:
            # Try to get from environment
            api_key = os.getenv("GEMINI_API_KEY")
            if not api_key:
                raise ValueError("Gemini provider requires an API key. Set GEMINI_API_KEY environment variable or pass api_key parameter.")
        return GeminiProvider(api_key=api_key, model=model or GEMINI_MODEL, **kwargs)
    else:
        raise ValueError(f"Unknown provider type: {provider_type}")
