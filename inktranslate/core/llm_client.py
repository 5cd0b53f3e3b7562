"""
Translation client: one chunk payload in, parallel array of translated fragments out
"""
import json
import time
from typing import Callable, List, Optional

from inktranslate.config import DEFAULT_SOURCE_LANGUAGE, DEFAULT_TARGET_LANGUAGE, TranslationConfig
from prompts import generate_system_instruction, RESULT_ID_FIELD, RESULT_MARKUP_FIELD
from inktranslate.exceptions import TranslationServiceError
from .llm_providers import create_llm_provider, LLMProvider
from .models import TranslationResult
from .post_processor import clean_raw_response


# Accepted spellings of the translated markup field
MARKUP_FIELD_ALIASES = (RESULT_MARKUP_FIELD, "translated_markup", "translatedMarkup")


def parse_translation_response(raw_response: str) -> List[TranslationResult]:
    """
    Decode a raw service response into translation results

    Items without a string id or translated markup are skipped; the caller
    sees them as missing units.

    Raises:
        TranslationServiceError: If the response is not a JSON array
    """
    cleaned = clean_raw_response(raw_response or "")
    try:
        data = json.loads(cleaned)
    except json.JSONDecodeError as e:
        raise TranslationServiceError("Translation response is not valid JSON",
                                      details=f"{e}; excerpt: {cleaned[:100]}") from e

    if not isinstance(data, list):
        raise TranslationServiceError("Translation response is not an array", details=type(data).__name__)

    results = []
    for item in data:
        if not isinstance(item, dict):
            continue
        unit_id = item.get(RESULT_ID_FIELD)
        markup = next((item[key] for key in MARKUP_FIELD_ALIASES if isinstance(item.get(key), str)), None)
        if isinstance(unit_id, str) and markup is not None:
            results.append(TranslationResult(id=unit_id, translated_markup=markup))
    return results


class TranslationClient:
    """Client for the remote translation service"""

    def __init__(self, provider_type: str = "gemini",
                 source_language: str = DEFAULT_SOURCE_LANGUAGE,
                 target_language: str = DEFAULT_TARGET_LANGUAGE,
                 custom_instructions: str = "",
                 log_callback: Optional[Callable] = None,
                 provider: Optional[LLMProvider] = None,
                 **provider_kwargs):
        self.provider_type = provider_type
        self.provider_kwargs = provider_kwargs
        self.log_callback = log_callback
        self.system_instruction = generate_system_instruction(
            source_language, target_language, custom_instructions)
        self._provider: Optional[LLMProvider] = provider

    def _get_provider(self) -> LLMProvider:
        """Get or create the LLM provider"""
        if not self._provider:
            self._provider = create_llm_provider(self.provider_type, **self.provider_kwargs)
        return self._provider

    async def translate(self, payload: str) -> List[TranslationResult]:
        """
        Translate one chunk payload

        Args:
            payload: Concatenated tagged unit markup

        Returns:
            List of TranslationResult, possibly missing some ids

        Raises:
            TranslationServiceError: Network, quota or malformed-response failure
        """
        if not payload or not payload.strip():
            return []

        provider = self._get_provider()
        if self.log_callback:
            self.log_callback("llm_request", "LLM Request",
                              {'type': 'llm_request', 'model': provider.model, 'prompt': payload})

        start_time = time.time()
        raw_response = await provider.generate(self.system_instruction, payload)
        execution_time = time.time() - start_time

        if self.log_callback:
            self.log_callback("llm_response", "LLM Response",
                              {'type': 'llm_response', 'response': raw_response,
                               'execution_time': execution_time})

        return parse_translation_response(raw_response)

    async def close(self):
        """Close the HTTP client and clean up resources"""
        if self._provider:
            await self._provider.close()
            self._provider = None


def create_translation_client(config: TranslationConfig, log_callback: Optional[Callable] = None) -> TranslationClient:
    """
    Factory function to create a translation client from run settings

    Args:
        config: TranslationConfig of the run
        log_callback: Receives raw request/response logs when given

    Returns:
        TranslationClient instance

    Raises:
        TranslationServiceError: If the provider cannot be set up (unknown
        provider, missing Gemini API key)
    """
    provider_kwargs = {
        'model': config.model,
        'timeout': config.timeout,
        'max_attempts': config.max_attempts,
        'retry_delay': config.retry_delay,
        'temperature': config.temperature
    }
    if config.llm_provider == "gemini":
        provider_kwargs['api_key'] = config.gemini_api_key
    else:
        provider_kwargs['api_endpoint'] = config.api_endpoint

    try:
        provider = create_llm_provider(config.llm_provider, **provider_kwargs)
    except ValueError as e:
        raise TranslationServiceError("Translation service is not configured", details=str(e)) from e

    return TranslationClient(
        provider_type=config.llm_provider,
        source_language=config.source_language,
        target_language=config.target_language,
        custom_instructions=config.custom_instructions,
        log_callback=log_callback,
        provider=provider
    )
