"""OpenAI provider - chat completions API with bearer auth."""

from collections.abc import Callable

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
    error_text,
    token_count,
)
from gatekeeper.providers.transport import Transport

OPENAI_BASE = "https://api.openai.com/v1"

# Static catalog: listing models costs a round trip we don't need
OPENAI_MODELS: list[ModelInfo] = [
    ModelInfo(id="gpt-4o-mini", name="GPT-4o mini", description="Fast, low cost"),
    ModelInfo(id="gpt-4o", name="GPT-4o", description="High quality multimodal"),
    ModelInfo(id="gpt-4.1-mini", name="GPT-4.1 mini", description="Balanced quality/cost"),
    ModelInfo(id="gpt-4.1", name="GPT-4.1", description="Best quality"),
]


class OpenAIProvider(RemoteProvider):
    """OpenAI chat completions provider."""

    def __init__(
        self,
        api_key: str,
        model: str,
        base_url: str = OPENAI_BASE,
        timeout: float = DEFAULT_TIMEOUT,
        max_retries: int = DEFAULT_MAX_RETRIES,
        backoff_base_ms: int = DEFAULT_BACKOFF_BASE_MS,
        transport: Transport | None = None,
        sleep: Callable[[float], None] | None = None,
        provider_id: str = "openai",
        display_name: str = "OpenAI",
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
        return Capability.REMOTE_INFERENCE | Capability.STREAMING

    def is_configured(self) -> bool:
        return bool(self.api_key)

    def health_check(self) -> HealthStatus:
        """Key presence only. A live probe would be a billed API call."""
        if not self.api_key:
            return HealthStatus.NOT_CONFIGURED
        return HealthStatus.HEALTHY

    def list_models(self) -> list[ModelInfo]:
        return list(OPENAI_MODELS)

    def _require_config(self) -> None:
        self._require_fields(api_key=self.api_key, base_url=self.base_url)

    def _chat_url(self) -> str:
        return f"{self.base_url}/chat/completions"

    def _build_payload(self, request: InferenceRequest, model: str) -> JSONDict:
        return {
            "model": model,
            "messages": self._wire_messages(request),
            "max_tokens": request.max_tokens,
            "temperature": request.temperature,
            "stream": False,
        }

    def _parse_success(self, data: JSONDict) -> tuple[str, UsageDict]:
        if data.get("error"):
            raise RemoteServiceError(f"OpenAI error: {error_text(data['error'])}")

        try:
            message = data["choices"][0]["message"]
        except (KeyError, IndexError, TypeError) as e:
            raise ParseError(f"OpenAI response has no choices: {e}") from e
        if not isinstance(message, dict):
            raise ParseError("OpenAI choice message is not an object")

        content = message.get("content") or ""
        if not isinstance(content, str):
            raise ParseError(f"OpenAI message content is not text: {type(content).__name__}")

        usage = data.get("usage") or {}
        if not isinstance(usage, dict):
            raise ParseError(f"OpenAI usage is not an object: {type(usage).__name__}")
        prompt_tokens = token_count(usage, "prompt_tokens")
        completion_tokens = token_count(usage, "completion_tokens")
        return content.strip(), {
            "prompt_tokens": prompt_tokens,
            "completion_tokens": completion_tokens,
            "total_tokens": token_count(usage, "total_tokens", prompt_tokens + completion_tokens),
        }
