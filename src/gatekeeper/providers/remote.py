"""
Shared plumbing for HTTP-backed providers.

Subclasses supply the endpoint, the payload and the response parser;
this base resolves per-request retry settings, runs the retrying invoker
and turns non-2xx outcomes into TransportError.
"""

import json
import time
from abc import abstractmethod
from collections.abc import Callable
from typing import Any

from gatekeeper.core.logging import get_logger
from gatekeeper.core.typing import JSONDict, StringDict, UsageDict
from gatekeeper.providers.base import (
    InferenceRequest,
    InferenceResponse,
    Provider,
    outbound_messages,
)
from gatekeeper.providers.errors import ConfigurationError, ParseError, TransportError
from gatekeeper.providers.retry import InvocationOutcome, RetryingInvoker
from gatekeeper.providers.transport import HttpxTransport, Transport

logger = get_logger("providers.remote")

DEFAULT_TIMEOUT = 60.0
DEFAULT_MAX_RETRIES = 2
DEFAULT_BACKOFF_BASE_MS = 500


def decode_json_object(body: str) -> JSONDict:
    """Parse a response body that must be a JSON object."""
    try:
        data = json.loads(body)
    except (json.JSONDecodeError, TypeError) as e:
        raise ParseError(f"Malformed response payload: {e}") from e
    if not isinstance(data, dict):
        raise ParseError(f"Expected a JSON object, got {type(data).__name__}")
    return data


def token_count(data: JSONDict, key: str, default: int = 0) -> int:
    """Integer counter from a usage object; absent or null is default."""
    value = data.get(key)
    if value is None:
        return default
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ParseError(f"Usage field {key!r} is not a number: {value!r}")
    return int(value)


def error_text(error: Any) -> str:
    """Error field may be a string or an OpenAI-style {"message": ...} object."""
    if isinstance(error, dict):
        return str(error.get("message") or error)
    return str(error)


class RemoteProvider(Provider):
    """Base for providers that call an HTTP API with bearer auth."""

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
    ):
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.model = model
        self.timeout = timeout
        self.max_retries = max_retries
        self.backoff_base_ms = backoff_base_ms
        self.transport = transport or HttpxTransport()
        self.invoker = RetryingInvoker(self.transport, sleep=sleep or time.sleep)

    def requires_network(self) -> bool:
        return True

    def _headers(self) -> StringDict:
        return {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
            "Accept": "application/json",
        }

    @abstractmethod
    def _require_config(self) -> None:
        """Raise ConfigurationError if a required setting is missing."""
        ...

    @abstractmethod
    def _chat_url(self) -> str:
        ...

    @abstractmethod
    def _build_payload(self, request: InferenceRequest, model: str) -> JSONDict:
        ...

    @abstractmethod
    def _parse_success(self, data: JSONDict) -> tuple[str, UsageDict]:
        """Extract (text, usage) from a 2xx body."""
        ...

    def _send(self, request: InferenceRequest, payload: JSONDict) -> InvocationOutcome:
        timeout = request.timeout if request.timeout is not None else self.timeout
        max_retries = request.max_retries if request.max_retries is not None else self.max_retries
        backoff = (
            request.retry_backoff_base
            if request.retry_backoff_base is not None
            else self.backoff_base_ms
        )
        return self.invoker.invoke(
            self._chat_url(),
            "POST",
            json.dumps(payload),
            self._headers(),
            timeout,
            max_retries,
            backoff,
        )

    def _raise_for_outcome(self, outcome: InvocationOutcome) -> None:
        result = outcome.result
        if result.ok:
            return

        detail = result.error
        if result.body:
            try:
                data = json.loads(result.body)
            except json.JSONDecodeError:
                data = None
            if isinstance(data, dict) and data.get("error"):
                detail = error_text(data["error"])
            elif not detail:
                detail = result.body[:200]

        status = outcome.last_status
        message = (
            f"{self.display_name} request failed after {outcome.attempts} attempt(s)"
            f" (HTTP {status or 'none'})"
        )
        if detail:
            message += f": {detail}"
        raise TransportError(message, code=status)

    def _complete(self, request: InferenceRequest) -> InferenceResponse:
        self._require_config()

        model = request.model or self.model
        payload = self._build_payload(request, model)
        logger.debug(
            f"{self.display_name} request: model={model}, "
            f"messages={len(payload.get('messages', []))}, level={request.privacy_level.name}"
        )

        outcome = self._send(request, payload)
        self._raise_for_outcome(outcome)

        text, usage = self._parse_success(decode_json_object(outcome.result.body))
        logger.debug(
            f"{self.display_name} response after {outcome.attempts} attempt(s): "
            f"{usage.get('total_tokens', 0)} tokens"
        )

        return InferenceResponse(
            text=text,
            usage=usage,
            provider_id=self.id,
            model_used=model,
            used_remote_inference=True,
            actual_privacy_level=request.privacy_level,
        )

    @staticmethod
    def _wire_messages(request: InferenceRequest) -> list[dict[str, str]]:
        return [msg.to_llm_format() for msg in outbound_messages(request)]

    @staticmethod
    def _require_fields(**fields: str) -> None:
        missing = [name for name, value in fields.items() if not value]
        if missing:
            raise ConfigurationError(f"Missing configuration: {', '.join(missing)}")
