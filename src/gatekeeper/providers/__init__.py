"""
Providers module - inference backends behind a privacy choke point.

Providers:
- local: On-device model via an injected inference client
- openai: OpenAI chat completions API
- ollama_cloud: Ollama Cloud /api/chat

ProviderManager is the only path by which requests reach a provider.
"""

from gatekeeper.providers.base import (
    Capability,
    ChatMessage,
    HealthStatus,
    InferenceRequest,
    InferenceResponse,
    ModelInfo,
    PrivacyLevel,
    Provider,
    Role,
)
from gatekeeper.providers.errors import ErrorCode
from gatekeeper.providers.manager import PrivacyMode, ProviderManager
from gatekeeper.providers.ollama_cloud import OllamaCloudProvider
from gatekeeper.providers.on_device import OnDeviceProvider
from gatekeeper.providers.openai_style import OpenAIProvider

__all__ = [
    "Capability",
    "ChatMessage",
    "ErrorCode",
    "HealthStatus",
    "InferenceRequest",
    "InferenceResponse",
    "ModelInfo",
    "OllamaCloudProvider",
    "OnDeviceProvider",
    "OpenAIProvider",
    "PrivacyLevel",
    "PrivacyMode",
    "Provider",
    "ProviderManager",
    "Role",
]
