from __future__ import annotations

from typing import Optional

from legacy_refactor.errors import ConfigurationError
from legacy_refactor.settings import CredentialStore

from .gemini_adapter import GeminiAdapter
from .llm_base import LLMClient
from .mock_adapter import MockAdapter
from .openrouter_adapter import OpenRouterAdapter

PROVIDERS = ("google", "openrouter", "mock")


def resolve_credential(
    provider: str,
    credential: Optional[str] = None,
    store: Optional[CredentialStore] = None,
) -> Optional[str]:
    if provider not in PROVIDERS:
        raise ConfigurationError(f"Unsupported provider: {provider}")
    if provider == "mock":
        return credential or "mock"
    if credential:
        return credential
    return (store or CredentialStore()).get(provider)


def create_llm_client(
    provider: str,
    credential: Optional[str] = None,
    store: Optional[CredentialStore] = None,
    timeout: Optional[float] = None,
) -> LLMClient:
    api_key = resolve_credential(provider, credential, store)
    if not api_key:
        raise ConfigurationError(
            f"Missing API key for {provider}. Set it in the environment or .env file."
        )
    if provider == "google":
        return GeminiAdapter(api_key, timeout=timeout)
    if provider == "openrouter":
        return OpenRouterAdapter(api_key, timeout=timeout)
    return MockAdapter()
