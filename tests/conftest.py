"""Shared test doubles: scripted transport, recording sleep, spy provider."""

import json

import pytest

from gatekeeper.providers.base import (
    Capability,
    HealthStatus,
    InferenceRequest,
    InferenceResponse,
    ModelInfo,
    PrivacyLevel,
    Provider,
)
from gatekeeper.providers.transport import TransportResult


class StubTransport:
    """Returns scripted results in order, repeating the last one."""

    def __init__(self, *results: TransportResult):
        self.results = list(results) or [TransportResult(status=200, body="{}")]
        self.calls: list[dict] = []

    def __call__(self, url, method, body, headers, timeout):
        self.calls.append(
            {"url": url, "method": method, "body": body, "headers": headers, "timeout": timeout}
        )
        index = min(len(self.calls) - 1, len(self.results) - 1)
        return self.results[index]

    @property
    def payloads(self) -> list[dict]:
        return [json.loads(c["body"]) for c in self.calls if c["body"]]


class RecordingSleep:
    def __init__(self):
        self.calls: list[float] = []

    def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)


class SpyProvider(Provider):
    """Provider that records calls and answers with a fixed text."""

    def __init__(self, provider_id: str, network: bool, text: str = "ok"):
        self.id = provider_id
        self.display_name = provider_id.title()
        self.network = network
        self.text = text
        self.chat_calls: list[InferenceRequest] = []
        self.categorize_calls: list[tuple] = []

    def capabilities(self) -> Capability:
        return Capability.REMOTE_INFERENCE if self.network else Capability.LOCAL_INFERENCE

    def health_check(self) -> HealthStatus:
        return HealthStatus.HEALTHY

    def list_models(self) -> list[ModelInfo]:
        return [ModelInfo(id="spy", name="spy")]

    def requires_network(self) -> bool:
        return self.network

    def is_configured(self) -> bool:
        return True

    def chat(self, request: InferenceRequest) -> InferenceResponse:
        self.chat_calls.append(request)
        return super().chat(request)

    def categorize(self, filename, filepath, is_directory, consistency_context, base_request):
        self.categorize_calls.append((filename, filepath, is_directory, consistency_context))
        return super().categorize(
            filename, filepath, is_directory, consistency_context, base_request
        )

    def _complete(self, request: InferenceRequest) -> InferenceResponse:
        return InferenceResponse(
            text=self.text,
            provider_id=self.id,
            used_remote_inference=self.network,
            actual_privacy_level=request.privacy_level if self.network else PrivacyLevel.LOCAL_ONLY,
        )


def ok(body: dict) -> TransportResult:
    return TransportResult(status=200, body=json.dumps(body))


@pytest.fixture
def sleep() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture
def local_spy() -> SpyProvider:
    return SpyProvider("local", network=False, text="local answer")


@pytest.fixture
def remote_spy() -> SpyProvider:
    return SpyProvider("remote", network=True, text="remote answer")
