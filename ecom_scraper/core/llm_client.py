"""
LLM Client
Single request/response chat completion through litellm (OpenRouter, OpenAI,
Claude, Gemini, ...)
"""

import os
import logging
from typing import Dict, List, Optional

import litellm

from .errors import LLMTransportError

logger = logging.getLogger(__name__)


class LLMClient:
    """Thin async wrapper over litellm.acompletion"""

    DEFAULT_MODELS = {
        'openrouter': 'openrouter/meta-llama/llama-4-maverick',
        'openai': 'gpt-4o-mini',
        'claude': 'claude-3-5-haiku-20241022',
        'gemini': 'gemini/gemini-2.0-flash',
    }

    API_KEY_ENV = [
        ('OPENROUTER_API_KEY', 'openrouter'),
        ('OPENAI_API_KEY', 'openai'),
        ('ANTHROPIC_API_KEY', 'claude'),
        ('GEMINI_API_KEY', 'gemini'),
    ]

    def __init__(
        self,
        api_key: Optional[str] = None,
        model_name: Optional[str] = None,
        temperature: float = 0.1,
        max_tokens: int = 4096,
        timeout: float = 120.0
    ):
        """
        Initialize LLM Client

        Args:
            api_key: API key for the provider (auto-detected from env if None)
            model_name: litellm model string (auto-selected if None)
            temperature: Generation temperature
            max_tokens: Maximum tokens to generate
            timeout: Request timeout in seconds
        """
        self.provider = self._detect_provider()
        self.api_key = api_key or self._detect_api_key()
        self.model_name = model_name or os.getenv('ECOM_SCRAPER_MODEL') or self._detect_model()
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.timeout = timeout

        logger.info(f" LLM client initialized: {self.model_name}")

    async def complete(self, messages: List[Dict[str, str]]) -> str:
        """
        Send one chat request and return the response text.

        Raises:
            LLMTransportError: on any provider/transport failure or empty content
        """
        logger.debug(f" Sending request to model: {self.model_name}")
        try:
            response = await litellm.acompletion(
                model=self.model_name,
                api_key=self.api_key,
                messages=messages,
                temperature=self.temperature,
                max_tokens=self.max_tokens,
                timeout=self.timeout
            )
        except Exception as e:
            raise LLMTransportError(f"{self.model_name} request failed: {e}") from e

        try:
            content = response.choices[0].message.content
        except (AttributeError, IndexError) as e:
            raise LLMTransportError(f"Unexpected response shape from {self.model_name}") from e

        if not content:
            raise LLMTransportError(f"No content returned from {self.model_name}")

        logger.debug(f" Received response ({len(content)} chars)")
        return content

    def _detect_provider(self) -> Optional[str]:
        for env_var, provider in self.API_KEY_ENV:
            if os.getenv(env_var):
                return provider
        return None

    def _detect_api_key(self) -> Optional[str]:
        """Auto-detect API key from environment"""
        for env_var, provider in self.API_KEY_ENV:
            api_key = os.getenv(env_var)
            if api_key:
                logger.info(f" Detected {provider} API key from environment")
                return api_key

        logger.warning(" No API key found in environment")
        return None

    def _detect_model(self) -> str:
        """Pick a default model for whichever provider has a key"""
        return self.DEFAULT_MODELS.get(self.provider or 'openrouter')

    def get_model_info(self) -> Dict[str, object]:
        return {
            'model': self.model_name,
            'provider': self.provider or 'unknown',
            'temperature': self.temperature,
            'max_tokens': self.max_tokens
        }
