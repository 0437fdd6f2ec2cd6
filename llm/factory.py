"""Streaming LLM client factory."""

import logging
from enum import Enum
from typing import TYPE_CHECKING, Dict, Optional, Type

from .base_client import BaseLLMClient
from .openai_client import OpenAIClient
from .anthropic_client import AnthropicClient

if TYPE_CHECKING:
    from config.settings import Settings

logger = logging.getLogger(__name__)


class LLMProvider(str, Enum):
    """Supported streaming backends."""
    OPENAI = "openai"
    ANTHROPIC = "anthropic"


_CLIENTS: Dict[LLMProvider, Type[BaseLLMClient]] = {
    LLMProvider.OPENAI: OpenAIClient,
    LLMProvider.ANTHROPIC: AnthropicClient,
}


def create_llm_client(
    provider: LLMProvider,
    api_key: Optional[str] = None,
    model: Optional[str] = None
) -> BaseLLMClient:
    """
    Create a streaming LLM client for the specified provider.

    Args:
        provider: Backend name or LLMProvider
        api_key: API key (clients fall back to their env var)
        model: Optional model override

    Returns:
        Configured streaming client

    Raises:
        ValueError: If provider is not supported
        RuntimeError: If the provider's API key is missing
    """
    try:
        client_class = _CLIENTS[LLMProvider(provider)]
    except ValueError:
        raise ValueError(f"Unsupported LLM provider: {provider}")

    return client_class(api_key=api_key, model=model)


def client_from_settings(settings: "Settings") -> BaseLLMClient:
    """
    Build the conversation backend described by application settings.

    Construction fails fast, before any conversation starts, when the
    provider is unknown or its key is missing.
    """
    client = create_llm_client(
        provider=settings.llm_provider,
        api_key=settings.get_llm_api_key(),
        model=settings.llm_model
    )
    logger.info(
        f"LLM client initialized: {client.get_provider_name()} ({client.get_model_name()}), "
        f"temperature={settings.temperature}, max_tokens={settings.max_tokens}"
    )
    return client
