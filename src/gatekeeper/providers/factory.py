"""Build providers and a ready-to-use ProviderManager from settings."""

from pathlib import Path, PurePosixPath

import httpx

from gatekeeper.core.config import LLMChoice, Settings, get_settings
from gatekeeper.core.logging import get_logger
from gatekeeper.providers.base import Provider
from gatekeeper.providers.manager import ProviderManager
from gatekeeper.providers.ollama_cloud import OllamaCloudProvider
from gatekeeper.providers.on_device import ClientFactory, OnDeviceProvider
from gatekeeper.providers.openai_style import OpenAIProvider
from gatekeeper.providers.transport import Transport

logger = get_logger("providers.factory")


def model_path_from_download_url(url: str, models_dir: Path) -> Path | None:
    """Default on-disk location of a model downloaded from url."""
    try:
        name = PurePosixPath(httpx.URL(url).path).name
    except httpx.InvalidURL:
        logger.warning(f"Invalid model download URL: {url}")
        return None
    if not name:
        return None
    return models_dir / name


def create_on_device_provider(
    model_path: str,
    client_factory: ClientFactory | None = None,
) -> OnDeviceProvider:
    return OnDeviceProvider(model_path, client_factory=client_factory)


def create_openai_provider(
    settings: Settings,
    transport: Transport | None = None,
) -> OpenAIProvider:
    return OpenAIProvider(
        api_key=settings.openai_api_key,
        model=settings.openai_model,
        base_url=settings.openai_base_url,
        timeout=settings.request_timeout,
        max_retries=settings.max_retries,
        backoff_base_ms=settings.retry_backoff_base_ms,
        transport=transport,
    )


def create_ollama_cloud_provider(
    settings: Settings,
    transport: Transport | None = None,
) -> OllamaCloudProvider:
    return OllamaCloudProvider(
        base_url=settings.ollama_base_url,
        api_key=settings.ollama_api_key,
        model=settings.ollama_model,
        timeout=settings.request_timeout,
        max_retries=settings.max_retries,
        backoff_base_ms=settings.retry_backoff_base_ms,
        transport=transport,
    )


def create_provider_from_settings(
    settings: Settings,
    transport: Transport | None = None,
    client_factory: ClientFactory | None = None,
) -> Provider | None:
    """Create the provider selected by settings.llm_choice.

    Returns None when nothing usable is configured.
    """
    choice = settings.llm_choice

    if choice == LLMChoice.REMOTE:
        return create_openai_provider(settings, transport=transport)

    if choice == LLMChoice.OLLAMA_CLOUD:
        return create_ollama_cloud_provider(settings, transport=transport)

    if choice == LLMChoice.CUSTOM:
        if not settings.custom_llm_path:
            logger.warning("Custom LLM selected but no model path configured")
            return None
        return create_on_device_provider(settings.custom_llm_path, client_factory)

    if choice in (LLMChoice.LOCAL_3B, LLMChoice.LOCAL_7B):
        url = (
            settings.local_3b_download_url
            if choice == LLMChoice.LOCAL_3B
            else settings.local_7b_download_url
        )
        if not url:
            logger.warning(f"{choice.value} selected but no download URL configured")
            return None
        path = model_path_from_download_url(url, settings.models_dir)
        if path is None:
            return None
        return create_on_device_provider(str(path), client_factory)

    return None


def create_default_manager(
    settings: Settings | None = None,
    transport: Transport | None = None,
    client_factory: ClientFactory | None = None,
) -> ProviderManager:
    """Manager with the configured provider registered.

    The manager starts in LocalOnly mode, so only an on-device provider is
    activated here. Remote providers need the caller to obtain consent first.
    """
    settings = settings or get_settings()
    manager = ProviderManager()

    try:
        provider = create_provider_from_settings(settings, transport, client_factory)
    except Exception as e:
        logger.warning(f"Failed to init provider {settings.llm_choice.value}: {e}")
        provider = None

    if provider is None:
        logger.info("No provider configured")
        return manager

    manager.register_provider(provider)
    if not provider.requires_network():
        manager.set_active_provider(provider.id)
    return manager
