"""Tests for the Ollama Cloud provider and its retry protocol."""

import json

import pytest
from conftest import RecordingSleep, StubTransport, ok

from gatekeeper.providers.base import (
    Capability,
    ChatMessage,
    HealthStatus,
    InferenceRequest,
    PrivacyLevel,
    Role,
)
from gatekeeper.providers.ollama_cloud import OllamaCloudProvider
from gatekeeper.providers.transport import TransportResult

BASE_URL = "https://ollama.example.test"


def _provider(transport, sleep=None, **kwargs) -> OllamaCloudProvider:
    options = {"api_key": "test_key", "model": "llama3", "backoff_base_ms": 100}
    options.update(kwargs)
    return OllamaCloudProvider(
        base_url=options.pop("base_url", BASE_URL),
        transport=transport,
        sleep=sleep or RecordingSleep(),
        **options,
    )


def _request(**kwargs) -> InferenceRequest:
    kwargs.setdefault("privacy_level", PrivacyLevel.CONTENT_EXCERPT)
    return InferenceRequest(messages=[ChatMessage(Role.USER, "Hello")], **kwargs)


def test_basic_properties():
    provider = _provider(StubTransport())
    assert provider.id == "ollama_cloud"
    assert provider.display_name == "Ollama Cloud"
    assert provider.requires_network()
    assert provider.capabilities() == Capability.REMOTE_INFERENCE


def test_health_not_configured_without_key():
    transport = StubTransport()
    assert _provider(transport, api_key="").health_check() == HealthStatus.NOT_CONFIGURED
    assert transport.calls == []


def test_health_not_configured_without_url():
    assert _provider(StubTransport(), base_url="").health_check() == HealthStatus.NOT_CONFIGURED


def test_health_probes_once_with_short_timeout():
    transport = StubTransport(TransportResult(status=200, body="{}"))
    assert _provider(transport).health_check() == HealthStatus.HEALTHY

    assert len(transport.calls) == 1
    call = transport.calls[0]
    assert call["method"] == "GET"
    assert call["url"] == f"{BASE_URL}/api/tags"
    assert call["body"] == ""
    assert call["timeout"] <= 5.0


def test_health_unreachable():
    transport = StubTransport(TransportResult(error="connection refused"))
    assert _provider(transport).health_check() == HealthStatus.UNAVAILABLE


def test_health_transport_exception_is_unavailable():
    def exploding(url, method, body, headers, timeout):
        raise RuntimeError("transport exploded")

    assert _provider(exploding).health_check() == HealthStatus.UNAVAILABLE


def test_health_error_status_is_degraded():
    transport = StubTransport(TransportResult(status=503))
    assert _provider(transport).health_check() == HealthStatus.DEGRADED


def test_list_models_mirrors_configured_model():
    transport = StubTransport()
    models = _provider(transport).list_models()

    assert [m.id for m in models] == ["llama3"]
    assert transport.calls == []


def test_chat_payload_shape():
    transport = StubTransport(ok({"message": {"role": "assistant", "content": "Hi!"}}))
    _provider(transport).chat(_request(max_tokens=77, temperature=0.5))

    call = transport.calls[0]
    assert call["method"] == "POST"
    assert call["url"] == f"{BASE_URL}/api/chat"
    assert call["headers"]["Authorization"] == "Bearer test_key"
    assert json.loads(call["body"]) == {
        "model": "llama3",
        "stream": False,
        "messages": [{"role": "user", "content": "Hello"}],
        "options": {"num_predict": 77, "temperature": 0.5},
    }


def test_chat_message_shape():
    transport = StubTransport(
        ok({"message": {"content": " Hi! "}, "prompt_eval_count": 5, "eval_count": 3})
    )
    response = _provider(transport).chat(_request())

    assert response.success
    assert response.text == "Hi!"
    assert response.usage == {"prompt_tokens": 5, "completion_tokens": 3, "total_tokens": 8}
    assert response.provider_id == "ollama_cloud"
    assert response.model_used == "llama3"
    assert response.used_remote_inference is True
    assert response.actual_privacy_level == PrivacyLevel.CONTENT_EXCERPT


def test_chat_response_shape():
    transport = StubTransport(ok({"response": "generated"}))
    response = _provider(transport).chat(_request())
    assert response.success
    assert response.text == "generated"


def test_chat_error_shape():
    transport = StubTransport(ok({"error": "model overloaded"}))
    response = _provider(transport).chat(_request())

    assert not response.success
    assert response.error_code == 2
    assert "model overloaded" in response.error_message
    assert response.used_remote_inference is True


def test_chat_malformed_payload_is_parse_error():
    transport = StubTransport(TransportResult(status=200, body="<html>oops</html>"))
    response = _provider(transport).chat(_request())

    assert not response.success
    assert response.error_code == 3


def test_chat_unrecognized_payload_is_parse_error():
    transport = StubTransport(ok({"done": True}))
    assert _provider(transport).chat(_request()).error_code == 3


def test_chat_non_numeric_eval_count_is_parse_error():
    transport = StubTransport(ok({"response": "x", "prompt_eval_count": "lots"}))
    response = _provider(transport).chat(_request())

    assert not response.success
    assert response.error_code == 3


def test_request_model_overrides_configured_model():
    transport = StubTransport(ok({"response": "x"}))
    response = _provider(transport).chat(_request(model="qwen3"))

    assert transport.payloads[0]["model"] == "qwen3"
    assert response.model_used == "qwen3"


def test_missing_config_short_circuits():
    transport = StubTransport()
    response = _provider(transport, api_key="").chat(_request())

    assert response.error_code == 1
    assert transport.calls == []


def test_privacy_gate_runs_before_config_gate():
    """Unconfigured and blocked: the privacy error wins."""
    transport = StubTransport()
    response = _provider(transport, api_key="").chat(_request(privacy_level=PrivacyLevel.LOCAL_ONLY))
    assert response.error_code == 403


def test_local_only_request_blocked():
    transport = StubTransport()
    response = _provider(transport).chat(_request(privacy_level=PrivacyLevel.LOCAL_ONLY))

    assert response.error_code == 403
    assert response.used_remote_inference is False
    assert transport.calls == []


def test_full_content_without_consent_blocked_before_transport():
    """Scenario C."""
    transport = StubTransport()
    response = _provider(transport).chat(_request(privacy_level=PrivacyLevel.FULL_CONTENT))

    assert not response.success
    assert response.error_code == 403
    assert transport.calls == []


def test_full_content_with_consent_sends_everything():
    transport = StubTransport(ok({"response": "x"}))
    long_text = "y" * 5000
    request = InferenceRequest(
        messages=[ChatMessage(Role.USER, long_text)],
        privacy_level=PrivacyLevel.FULL_CONTENT,
        allow_content_upload=True,
        content_excerpt_budget=100,
    )
    response = _provider(transport).chat(request)

    assert response.success
    assert transport.payloads[0]["messages"][0]["content"] == long_text
    assert response.actual_privacy_level == PrivacyLevel.FULL_CONTENT


def test_content_excerpt_is_bounded():
    transport = StubTransport(ok({"response": "x"}))
    request = InferenceRequest(
        messages=[ChatMessage(Role.USER, "z" * 500)],
        privacy_level=PrivacyLevel.CONTENT_EXCERPT,
        content_excerpt_budget=40,
    )
    _provider(transport).chat(request)

    assert transport.payloads[0]["messages"][0]["content"] == "z" * 40


def test_retries_then_succeeds():
    """Two failures, success on third attempt: sleeps of base and 2*base."""
    sleep = RecordingSleep()
    transport = StubTransport(
        TransportResult(error="connection reset"),
        TransportResult(status=503),
        ok({"message": {"content": "finally"}}),
    )
    response = _provider(transport, sleep=sleep).chat(
        _request(max_retries=2, retry_backoff_base=100)
    )

    assert response.success
    assert response.text == "finally"
    assert len(transport.calls) == 3
    assert sleep.calls == [0.1, 0.2]


def test_not_found_single_attempt():
    """Scenario D."""
    sleep = RecordingSleep()
    transport = StubTransport(TransportResult(status=404, body='{"error": "model not found"}'))
    response = _provider(transport, sleep=sleep).chat(_request(max_retries=3))

    assert len(transport.calls) == 1
    assert not response.success
    assert response.error_code == 404
    assert "model not found" in response.error_message
    assert sleep.calls == []


def test_server_error_two_attempts():
    """Scenario E."""
    transport = StubTransport(TransportResult(status=500, body="internal"))
    response = _provider(transport).chat(_request(max_retries=1))

    assert len(transport.calls) == 2
    assert not response.success
    assert response.error_code == 500
    assert response.used_remote_inference is True


def test_network_failure_without_status_is_code_zero():
    transport = StubTransport(TransportResult(error="dns failure"))
    response = _provider(transport).chat(_request(max_retries=0))

    assert not response.success
    assert response.error_code == 0
    assert "dns failure" in response.error_message


def test_provider_retry_defaults_apply():
    transport = StubTransport(TransportResult(status=500))
    sleep = RecordingSleep()
    _provider(transport, sleep=sleep, max_retries=3, backoff_base_ms=10).chat(_request())

    assert len(transport.calls) == 4
    assert sleep.calls == [0.01, 0.02, 0.04]


def test_request_timeout_overrides_default():
    transport = StubTransport(ok({"response": "x"}))
    _provider(transport, timeout=60.0).chat(_request(timeout=7.5))
    assert transport.calls[0]["timeout"] == 7.5


@pytest.mark.parametrize(
    "filepath",
    [
        "/home/alice/secret/plan.docx",
        "C:\\Users\\bob\\Desktop\\plan.docx",
        "/var/data/plan.docx",
    ],
)
@pytest.mark.parametrize("consent", [False, True])
def test_categorize_metadata_only_never_sends_path(filepath, consent):
    transport = StubTransport(ok({"response": "Documents : Plans"}))
    base = InferenceRequest(privacy_level=PrivacyLevel.METADATA_ONLY, allow_content_upload=consent)

    response = _provider(transport).categorize("plan.docx", filepath, False, "", base)

    assert response.success
    assert response.text == "Documents : Plans"
    body = transport.calls[0]["body"]
    assert filepath not in body
    assert json.dumps(filepath)[1:-1] not in body
    assert "plan.docx" in body


def test_categorize_full_content_with_consent_sends_path():
    transport = StubTransport(ok({"response": "Documents : Plans"}))
    base = InferenceRequest(privacy_level=PrivacyLevel.FULL_CONTENT, allow_content_upload=True)

    _provider(transport).categorize("plan.docx", "/home/alice/plan.docx", False, "", base)

    assert "/home/alice/plan.docx" in transport.payloads[0]["messages"][1]["content"]


def test_categorize_uses_copy_of_base_request():
    transport = StubTransport(ok({"response": "x"}))
    base = InferenceRequest(
        messages=[ChatMessage(Role.USER, "unrelated")],
        privacy_level=PrivacyLevel.METADATA_ONLY,
    )
    _provider(transport).categorize("a.txt", "/tmp/a.txt", False, "", base)

    assert base.messages == [ChatMessage(Role.USER, "unrelated")]
    sent = transport.payloads[0]["messages"]
    assert [m["role"] for m in sent] == ["system", "user"]
