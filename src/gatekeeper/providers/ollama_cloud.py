"""Ollama Cloud provider - Ollama's native /api/chat over HTTPS with bearer auth."""

from collections.abc import Callable

from gatekeeper.core.logging import get_logger
from gatekeeper.core.typing import JSONDict, UsageDict
from gatekeeper.providers.base import (
    Capability,
    HealthStatus,
    InferenceRequest,
    ModelInfo,
)
from gatekeeper.providers.errors import ParseError, RemoteServiceError
from gatekeeper.providers.remote import (
    DEFAULT_BACKOFF_BASE_MS,
    DEFAULT_MAX_RETRIES,
    DEFAULT_TIMEOUT,
    RemoteProvider,
    token_count,
)
from gatekeeper.providers.transport import Transport

logger = get_logger("providers.ollama_cloud")

HEALTH_PROBE_TIMEOUT = 5.0


class OllamaCloudProvider(RemoteProvider):
    """Ollama Cloud chat provider.

    Health is a single short GET against /api/tags since probing is free.
    There is no catalog call: list_models mirrors the configured model.
    """

    def __init__(
        self,
        base_url: str,
        api_key: str,
        model: str,
        timeout: float = DEFAULT_TIMEOUT,
        max_retries: int = DEFAULT_MAX_RETRIES,
        backoff_base_ms: int = DEFAULT_BACKOFF_BASE_MS,
        transport: Transport | None = None,
        sleep: Callable[[float], None] | None = None,
        provider_id: str = "ollama_cloud",
        display_name: str = "Ollama Cloud",
    ):
        super().__init__(
            base_url,
            api_key,
            model,
            timeout=timeout,
            max_retries=max_retries,
            backoff_base_ms=backoff_base_ms,
            transport=transport,
            sleep=sleep,
        )
        self.id = provider_id
        self.display_name = display_name

    def capabilities(self) -> Capability:
        return Capability.REMOTE_INFERENCE

    def is_configured(self) -> bool:
        return bool(self.base_url and self.api_key and self.model)

    def health_check(self) -> HealthStatus:
        """Probe the endpoint once with a short timeout."""
        if not self.is_configured():
            return HealthStatus.NOT_CONFIGURED

        url = f"{self.base_url}/api/tags"
        try:
            result = self.transport(url, "GET", "", self._headers(), HEALTH_PROBE_TIMEOUT)
        except Exception as e:
            logger.warning(f"Ollama Cloud health probe failed: {e}")
            return HealthStatus.UNAVAILABLE

        if result.ok:
            return HealthStatus.HEALTHY
        if result.status:
            logger.warning(f"Ollama Cloud health probe returned HTTP {result.status}")
            return HealthStatus.DEGRADED
        logger.warning(f"Ollama Cloud unreachable at {self.base_url}: {result.error}")
        return HealthStatus.UNAVAILABLE

    def list_models(self) -> list[ModelInfo]:
        if not self.model:
            return []
        return [
            ModelInfo(
                id=self.model,
                name=self.model,
                description="Configured Ollama Cloud model",
            )
        ]

    def _require_config(self) -> None:
        self._require_fields(base_url=self.base_url, api_key=self.api_key, model=self.model)

    def _chat_url(self) -> str:
        return f"{self.base_url}/api/chat"

    def _build_payload(self, request: InferenceRequest, model: str) -> JSONDict:
        return {
            "model": model,
            "stream": False,
            "messages": self._wire_messages(request),
            "options": {
                "num_predict": request.max_tokens,
                "temperature": request.temperature,
            },
        }

    def _parse_success(self, data: JSONDict) -> tuple[str, UsageDict]:
        message = data.get("message")
        if isinstance(message, dict) and isinstance(message.get("content"), str):
            text = message["content"]
        elif isinstance(data.get("response"), str):
            text = data["response"]
        elif data.get("error"):
            raise RemoteServiceError(f"Ollama Cloud error: {data['error']}")
        else:
            raise ParseError("Ollama Cloud response has no message, response or error field")

        prompt_tokens = token_count(data, "prompt_eval_count")
        completion_tokens = token_count(data, "eval_count")
        usage = {
            "prompt_tokens": prompt_tokens,
            "completion_tokens": completion_tokens,
            "total_tokens": prompt_tokens + completion_tokens,
        }
        return text.strip(), usage
