"""
LLM client with OpenAI/Anthropic provider switch.

LLMClient.create picks the provider from an explicit argument or the
LLM_PROVIDER env var. Each provider implements BaseLLMClient so the AI
analyzer never needs to know which service answers.
"""

import json
import os
from abc import ABC, abstractmethod
from enum import Enum
from typing import Optional, Union

from .exceptions import LLMClientError
from .logger import get_module_logger

logger = get_module_logger("llm_client")

DEFAULT_TIMEOUT = 60.0


class LLMProvider(Enum):
    """Supported LLM providers."""
    OPENAI = "openai"
    ANTHROPIC = "anthropic"


def _default_timeout() -> float:
    try:
        return float(os.getenv("LLM_TIMEOUT", DEFAULT_TIMEOUT))
    except ValueError:
        logger.warning("Invalid LLM_TIMEOUT, using default")
        return DEFAULT_TIMEOUT


def _loads_object(text: str, provider: str) -> dict:
    """Parse a JSON object out of a completion, tolerating markdown fences."""
    text = text.strip()
    if text.startswith("```json"):
        text = text[7:]
    elif text.startswith("```"):
        text = text[3:]
    if text.endswith("```"):
        text = text[:-3]

    try:
        parsed = json.loads(text.strip())
    except json.JSONDecodeError as e:
        logger.error(f"Failed to parse {provider} response as JSON: {e}")
        raise LLMClientError(
            f"Failed to parse response as JSON: {e}",
            provider=provider,
            details={"response": text[:500]}
        )

    if not isinstance(parsed, dict):
        raise LLMClientError(
            f"Expected a JSON object, got {type(parsed).__name__}",
            provider=provider
        )
    return parsed


class BaseLLMClient(ABC):
    """Abstract base class for LLM clients."""

    @abstractmethod
    def complete(self, prompt: str, system_prompt: Optional[str] = None) -> str:
        """
        Send a prompt to the LLM and return the response text.

        Raises:
            LLMClientError: on any API failure
        """

    @abstractmethod
    def complete_json(self, prompt: str, system_prompt: Optional[str] = None) -> dict:
        """
        Send a prompt and parse the response as a JSON object.

        Raises:
            LLMClientError: on API failure or when the response is not a JSON object
        """


class OpenAIClient(BaseLLMClient):
    """OpenAI chat completions client."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: str = "gpt-4o",
        timeout: Optional[float] = None
    ):
        self.api_key = api_key or os.getenv("OPENAI_API_KEY")
        if not self.api_key:
            raise LLMClientError("OpenAI API key not provided", provider="openai")
        self.model = model

        from openai import OpenAI
        self.client = OpenAI(api_key=self.api_key, timeout=timeout or _default_timeout())

    def _create(self, messages: list[dict], **kwargs) -> str:
        try:
            response = self.client.chat.completions.create(
                model=self.model,
                messages=messages,
                temperature=0.1,
                **kwargs
            )
            return response.choices[0].message.content or ""
        except Exception as e:
            logger.error(f"OpenAI API error: {e}")
            raise LLMClientError(
                f"OpenAI API call failed: {e}",
                provider="openai",
                details={"error": str(e)}
            )

    def _messages(self, prompt: str, system_prompt: Optional[str]) -> list[dict]:
        messages = []
        if system_prompt:
            messages.append({"role": "system", "content": system_prompt})
        messages.append({"role": "user", "content": prompt})
        return messages

    def complete(self, prompt: str, system_prompt: Optional[str] = None) -> str:
        return self._create(self._messages(prompt, system_prompt))

    def complete_json(self, prompt: str, system_prompt: Optional[str] = None) -> dict:
        content = self._create(
            self._messages(prompt, system_prompt),
            response_format={"type": "json_object"}
        )
        return _loads_object(content or "{}", provider="openai")


class AnthropicClient(BaseLLMClient):
    """Anthropic messages client."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: str = "claude-sonnet-4-20250514",
        timeout: Optional[float] = None
    ):
        self.api_key = api_key or os.getenv("ANTHROPIC_API_KEY")
        if not self.api_key:
            raise LLMClientError("Anthropic API key not provided", provider="anthropic")
        self.model = model

        import anthropic
        self.client = anthropic.Anthropic(api_key=self.api_key, timeout=timeout or _default_timeout())

    def complete(self, prompt: str, system_prompt: Optional[str] = None) -> str:
        kwargs = {
            "model": self.model,
            "max_tokens": 4096,
            "messages": [{"role": "user", "content": prompt}]
        }
        if system_prompt:
            kwargs["system"] = system_prompt

        try:
            response = self.client.messages.create(**kwargs)
            return response.content[0].text
        except Exception as e:
            logger.error(f"Anthropic API error: {e}")
            raise LLMClientError(
                f"Anthropic API call failed: {e}",
                provider="anthropic",
                details={"error": str(e)}
            )

    def complete_json(self, prompt: str, system_prompt: Optional[str] = None) -> dict:
        # No native JSON mode; ask for it in the prompt and strip fences after
        json_prompt = f"{prompt}\n\nRespond with valid JSON only, no additional text."
        return _loads_object(self.complete(json_prompt, system_prompt), provider="anthropic")


class LLMClient:
    """
    Factory for LLM clients.

    Usage:
        client = LLMClient.create()                                   # LLM_PROVIDER or openai
        client = LLMClient.create(provider=LLMProvider.ANTHROPIC)
        client = LLMClient.create(provider="openai", api_key="sk-...")
    """

    @staticmethod
    def resolve_provider(provider: Union[LLMProvider, str, None] = None) -> LLMProvider:
        """Explicit argument > LLM_PROVIDER env var > openai."""
        if isinstance(provider, LLMProvider):
            return provider

        provider_str = (provider or os.getenv("LLM_PROVIDER", "openai")).lower()
        try:
            return LLMProvider(provider_str)
        except ValueError:
            logger.warning(f"Unknown LLM provider '{provider_str}', defaulting to openai")
            return LLMProvider.OPENAI

    @staticmethod
    def create(
        provider: Union[LLMProvider, str, None] = None,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        timeout: Optional[float] = None
    ) -> BaseLLMClient:
        """
        Create an LLM client for the given provider.

        Args:
            provider: LLM provider (defaults to env var LLM_PROVIDER or 'openai')
            api_key: API key (defaults to the provider-specific env var)
            model: Model name (defaults to LLM_MODEL, then the provider default)
            timeout: Request timeout in seconds (defaults to LLM_TIMEOUT or 60)

        Raises:
            LLMClientError: when no API key is available
        """
        provider = LLMClient.resolve_provider(provider)
        logger.info(f"Creating LLM client for provider: {provider.value}")

        kwargs = {"api_key": api_key, "timeout": timeout}
        model = model or os.getenv("LLM_MODEL")
        if model:
            kwargs["model"] = model

        if provider == LLMProvider.ANTHROPIC:
            return AnthropicClient(**kwargs)
        return OpenAIClient(**kwargs)
