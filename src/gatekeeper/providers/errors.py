"""
Provider error taxonomy.

Raised inside provider implementations and converted to failure responses
at the provider boundary. Nothing here crosses into ProviderManager.
"""

from enum import IntEnum


class ErrorCode(IntEnum):
    NO_RESPONSE = 0  # Transport never received an HTTP status
    NOT_CONFIGURED = 1
    RUNTIME_FAILURE = 2
    PARSE_FAILURE = 3
    PRIVACY_BLOCKED = 403


class ProviderError(Exception):
    """Base class for errors normalized into an InferenceResponse."""

    code: int = ErrorCode.RUNTIME_FAILURE
    payload_sent: bool = False  # True once the request reached the transport

    def __init__(self, message: str, code: int | None = None):
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code


class ConfigurationError(ProviderError):
    """Required credentials, path or URL missing."""

    code = ErrorCode.NOT_CONFIGURED


class InferenceRuntimeError(ProviderError):
    """Backend raised while producing a completion."""

    code = ErrorCode.RUNTIME_FAILURE


class ParseError(ProviderError):
    """Backend answered with a payload we cannot interpret."""

    code = ErrorCode.PARSE_FAILURE
    payload_sent = True


class PrivacyBlockedError(ProviderError):
    """Request refused by privacy policy before any I/O."""

    code = ErrorCode.PRIVACY_BLOCKED


class TransportError(ProviderError):
    """Remote call failed after retries.

    The code is the last HTTP status seen, or 0 when none was received.
    """

    code = ErrorCode.NO_RESPONSE
    payload_sent = True


class RemoteServiceError(ProviderError):
    """Remote backend answered with an explicit error payload."""

    code = ErrorCode.RUNTIME_FAILURE
    payload_sent = True
