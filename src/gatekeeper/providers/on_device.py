"""On-device provider - runs a local GGUF model through an injected inference client."""

import os
import threading
from collections.abc import Callable
from pathlib import Path
from typing import Protocol

from gatekeeper.core.logging import get_logger
from gatekeeper.providers.base import (
    Capability,
    HealthStatus,
    InferenceRequest,
    InferenceResponse,
    ModelInfo,
    PrivacyLevel,
    Provider,
    Role,
)
from gatekeeper.providers.errors import ConfigurationError, InferenceRuntimeError

logger = get_logger("providers.on_device")


class InferenceClient(Protocol):
    def complete(self, prompt: str, max_tokens: int) -> str:
        ...


ClientFactory = Callable[[str], InferenceClient]

_ROLE_LABELS = {
    Role.SYSTEM: "System",
    Role.USER: "User",
    Role.ASSISTANT: "Assistant",
}


def build_transcript(request: InferenceRequest) -> str:
    """Role-labeled transcript ending with an open assistant turn."""
    lines = [f"{_ROLE_LABELS[msg.role]}: {msg.content}" for msg in request.messages]
    lines.append("Assistant:")
    return "\n".join(lines)


class OnDeviceProvider(Provider):
    """In-process inference. Nothing leaves the device."""

    def __init__(
        self,
        model_path: str,
        client_factory: ClientFactory | None = None,
        provider_id: str = "local",
        display_name: str = "Local",
    ):
        self.id = provider_id
        self.display_name = display_name
        self.model_path = model_path
        self._client_factory = client_factory
        self._client: InferenceClient | None = None
        self._client_lock = threading.Lock()

    def capabilities(self) -> Capability:
        return Capability.LOCAL_INFERENCE

    def requires_network(self) -> bool:
        return False

    def is_configured(self) -> bool:
        return bool(self.model_path)

    def health_check(self) -> HealthStatus:
        """Check that the model file exists and is readable."""
        if not self.is_configured():
            return HealthStatus.NOT_CONFIGURED
        path = Path(self.model_path)
        if not path.is_file() or not os.access(path, os.R_OK):
            return HealthStatus.UNAVAILABLE
        return HealthStatus.HEALTHY

    def list_models(self) -> list[ModelInfo]:
        """Return the single configured model, or nothing if the file is missing."""
        if not self.is_configured():
            return []
        path = Path(self.model_path)
        if not path.is_file():
            return []
        try:
            size = path.stat().st_size
        except OSError:
            size = 0
        return [
            ModelInfo(
                id=self.model_path,
                name=path.name,
                description="Local GGUF model",
                size_bytes=size,
            )
        ]

    def _get_client(self) -> InferenceClient:
        if not self.is_configured():
            raise ConfigurationError("No local model path configured")
        if not Path(self.model_path).is_file():
            raise ConfigurationError(f"Local model file not found: {self.model_path}")
        if self._client_factory is None:
            raise ConfigurationError("No local inference engine available")

        with self._client_lock:
            if self._client is None:
                try:
                    self._client = self._client_factory(self.model_path)
                except Exception as e:
                    raise InferenceRuntimeError(f"Failed to load local model: {e}") from e
                logger.info(f"Loaded local model {Path(self.model_path).name}")
            return self._client

    def _complete(self, request: InferenceRequest) -> InferenceResponse:
        client = self._get_client()
        prompt = build_transcript(request)
        logger.debug(f"Local request: {len(request.messages)} messages, {len(prompt)} chars")

        try:
            text = client.complete(prompt, request.max_tokens)
        except Exception as e:
            raise InferenceRuntimeError(f"Local inference failed: {e}") from e

        return InferenceResponse(
            text=text.strip(),
            provider_id=self.id,
            model_used=request.model or Path(self.model_path).name,
            used_remote_inference=False,
            actual_privacy_level=PrivacyLevel.LOCAL_ONLY,
        )
