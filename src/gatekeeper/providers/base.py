"""
Provider interface and shared vocabulary.

Capability flags, privacy levels, request/response types and the Provider
base class. Provider.chat() is the boundary: every fault raised by a
backend is converted into a failed InferenceResponse here.
"""

import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field, replace
from enum import Enum, Flag, IntEnum, auto

from gatekeeper.core.logging import get_logger, get_privacy_logger
from gatekeeper.core.typing import MessageDict, UsageDict
from gatekeeper.providers.errors import (
    InferenceRuntimeError,
    PrivacyBlockedError,
    ProviderError,
)

logger = get_logger("providers.base")
audit = get_privacy_logger()


class Capability(Flag):
    NONE = 0
    LOCAL_INFERENCE = auto()
    REMOTE_INFERENCE = auto()
    VISION = auto()
    EMBEDDINGS = auto()
    STREAMING = auto()


class PrivacyLevel(IntEnum):
    """Maximum data that may leave the device, least to most."""

    LOCAL_ONLY = 0
    METADATA_ONLY = 1  # filename / extension only
    CONTENT_EXCERPT = 2  # bounded excerpt
    FULL_CONTENT = 3  # everything, requires allow_content_upload


class HealthStatus(Enum):
    HEALTHY = "healthy"
    DEGRADED = "degraded"
    UNAVAILABLE = "unavailable"
    NOT_CONFIGURED = "not_configured"


class Role(Enum):
    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"


@dataclass(frozen=True)
class ChatMessage:
    role: Role
    content: str

    def to_llm_format(self) -> MessageDict:
        return {"role": self.role.value, "content": self.content}


def _empty_usage() -> UsageDict:
    return {"prompt_tokens": 0, "completion_tokens": 0, "total_tokens": 0}


@dataclass
class InferenceRequest:
    """A single chat request as seen by providers.

    Attributes:
        messages: Conversation, oldest first.
        model: Model id; empty means the provider's configured model.
        max_tokens: Generation limit.
        temperature: Sampling temperature.
        timeout: Per-attempt timeout in seconds (None = provider default).
        privacy_level: Maximum data the caller allows to leave the device. The
            caller vouches that its messages fit the level.
        allow_content_upload: Explicit consent flag, AND'ed with privacy_level.
        content_excerpt_budget: Character limit per user message at CONTENT_EXCERPT.
        max_retries: Retries after the first attempt (None = provider default).
        retry_backoff_base: Initial backoff in ms (None = provider default).
    """

    messages: list[ChatMessage] = field(default_factory=list)
    model: str = ""
    max_tokens: int = 512
    temperature: float = 0.2
    timeout: float | None = None
    privacy_level: PrivacyLevel = PrivacyLevel.LOCAL_ONLY
    allow_content_upload: bool = False
    content_excerpt_budget: int = 2000
    max_retries: int | None = None
    retry_backoff_base: int | None = None


@dataclass
class InferenceResponse:
    """Normalized response, identical in shape for every backend."""

    text: str = ""
    usage: UsageDict = field(default_factory=_empty_usage)
    provider_id: str = ""
    model_used: str = ""
    latency_ms: float = 0.0
    success: bool = True
    error_code: int = 0
    error_message: str = ""
    used_remote_inference: bool = False
    actual_privacy_level: PrivacyLevel = PrivacyLevel.LOCAL_ONLY

    @classmethod
    def failure(
        cls,
        code: int,
        message: str,
        provider_id: str = "",
        model_used: str = "",
    ) -> "InferenceResponse":
        """Failed response for a request that transmitted nothing."""
        return cls(
            provider_id=provider_id,
            model_used=model_used,
            success=False,
            error_code=int(code),
            error_message=message,
        )


@dataclass
class ModelInfo:
    """Information about a model a provider can serve."""

    id: str
    name: str
    description: str = ""
    size_bytes: int = 0
    is_available: bool = True


def check_privacy(request: InferenceRequest, requires_network: bool) -> str | None:
    """Return the reason a request must be refused, or None if allowed."""
    if request.privacy_level >= PrivacyLevel.FULL_CONTENT and not request.allow_content_upload:
        return "Full content requested without explicit content upload consent"
    if requires_network and request.privacy_level == PrivacyLevel.LOCAL_ONLY:
        return "Request marked as LocalOnly cannot be sent to a remote provider"
    return None


def outbound_messages(request: InferenceRequest) -> list[ChatMessage]:
    """Messages as they may be transmitted under the request's privacy level.

    At CONTENT_EXCERPT each user message is cut to content_excerpt_budget
    characters. System and assistant turns are our own text and pass through.

    At METADATA_ONLY the caller declares that its messages carry metadata
    only, and they are sent as given. Prompts built here from raw file
    details (categorize) are redacted when they are constructed.
    """
    if request.privacy_level != PrivacyLevel.CONTENT_EXCERPT:
        return list(request.messages)

    budget = max(0, request.content_excerpt_budget)
    return [
        replace(msg, content=msg.content[:budget]) if msg.role == Role.USER else msg
        for msg in request.messages
    ]


class Provider(ABC):
    """Abstract inference provider."""

    id: str
    display_name: str

    @abstractmethod
    def capabilities(self) -> Capability:
        ...

    @abstractmethod
    def health_check(self) -> HealthStatus:
        """Report provider health using a check suited to its cost profile."""
        ...

    @abstractmethod
    def list_models(self) -> list[ModelInfo]:
        ...

    @abstractmethod
    def requires_network(self) -> bool:
        ...

    @abstractmethod
    def is_configured(self) -> bool:
        ...

    @abstractmethod
    def _complete(self, request: InferenceRequest) -> InferenceResponse:
        """Backend-specific completion.

        Runs after the privacy gate. May raise ProviderError subclasses;
        anything else is reported as a runtime failure.
        """
        ...

    def supports(self, capability: Capability) -> bool:
        return capability in self.capabilities()

    def chat(self, request: InferenceRequest) -> InferenceResponse:
        """Run a chat request. Never raises."""
        started = time.monotonic()

        reason = check_privacy(request, self.requires_network())
        if reason:
            audit.warning(f"Provider {self.id} refused request: {reason}")
            response = self._error_response(request, PrivacyBlockedError(reason))
        else:
            try:
                response = self._complete(request)
            except ProviderError as e:
                logger.warning(f"Provider {self.id} failed ({e.code}): {e.message}")
                response = self._error_response(request, e)
            except Exception as e:
                logger.error(f"Provider {self.id} backend error: {e}")
                response = self._error_response(request, InferenceRuntimeError(str(e)))

        response.latency_ms = (time.monotonic() - started) * 1000
        return response

    def categorize(
        self,
        filename: str,
        filepath: str,
        is_directory: bool,
        consistency_context: str,
        base_request: InferenceRequest,
    ) -> InferenceResponse:
        """Categorize a file or directory by delegating to chat()."""
        from gatekeeper.providers.prompts import build_categorization_messages

        messages = build_categorization_messages(
            filename, filepath, is_directory, consistency_context, base_request
        )
        return self.chat(replace(base_request, messages=messages))

    def _error_response(self, request: InferenceRequest, error: ProviderError) -> InferenceResponse:
        response = InferenceResponse.failure(
            error.code,
            error.message,
            provider_id=self.id,
            model_used=request.model,
        )
        if error.payload_sent:
            response.used_remote_inference = self.requires_network()
            if response.used_remote_inference:
                response.actual_privacy_level = request.privacy_level
        return response


__all__ = [
    "Capability",
    "ChatMessage",
    "HealthStatus",
    "InferenceRequest",
    "InferenceResponse",
    "ModelInfo",
    "PrivacyLevel",
    "Provider",
    "Role",
    "check_privacy",
    "outbound_messages",
]
