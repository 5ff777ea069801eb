"""
Provider manager - the single choke point for inference requests.

Every chat/categorize call from the application goes through here.
Remote providers can only be used after set_privacy_mode(REMOTE_ALLOWED)
with explicit user confirmation. Mutations take the manager lock; dispatch
takes a snapshot under the lock and calls the provider outside it.
"""

import threading
from enum import Enum

from gatekeeper.core.logging import get_logger, get_privacy_logger
from gatekeeper.providers.base import (
    HealthStatus,
    InferenceRequest,
    InferenceResponse,
    PrivacyLevel,
    Provider,
)
from gatekeeper.providers.errors import ErrorCode

logger = get_logger("providers.manager")
audit = get_privacy_logger()

NO_ACTIVE_PROVIDER = "No active provider configured"


class PrivacyMode(Enum):
    LOCAL_ONLY = "local_only"  # default
    REMOTE_ALLOWED = "remote_allowed"  # user consented to remote providers


class ProviderManager:
    """Registry, active provider selection and privacy enforcement.

    The application owns exactly one instance and passes it to whatever
    handles requests.
    """

    def __init__(self):
        self._providers: dict[str, Provider] = {}
        self._active_provider_id: str | None = None
        self._privacy_mode = PrivacyMode.LOCAL_ONLY
        self._lock = threading.RLock()

    # Registry

    def register_provider(self, provider: Provider) -> None:
        """Register a provider, replacing any with the same id."""
        with self._lock:
            if provider.id in self._providers:
                logger.warning(f"Provider {provider.id} already registered, replacing")
            self._providers[provider.id] = provider
            # A replacement must satisfy the current mode to stay active
            if self._active_provider_id == provider.id and not self._is_allowed(provider):
                logger.info(f"Replacement for {provider.id} requires network, deactivating")
                self._active_provider_id = None
        logger.info(f"Registered provider: {provider.id}")

    def unregister_provider(self, provider_id: str) -> None:
        with self._lock:
            if self._providers.pop(provider_id, None) is None:
                return
            if self._active_provider_id == provider_id:
                self._active_provider_id = None
        logger.info(f"Unregistered provider: {provider_id}")

    def get_provider(self, provider_id: str) -> Provider | None:
        with self._lock:
            return self._providers.get(provider_id)

    def all_providers(self) -> list[Provider]:
        with self._lock:
            return list(self._providers.values())

    def allowed_providers(self) -> list[Provider]:
        """Providers usable under the current privacy mode."""
        with self._lock:
            return [p for p in self._providers.values() if self._is_allowed(p)]

    # Selection and privacy mode

    @property
    def privacy_mode(self) -> PrivacyMode:
        return self._privacy_mode

    @property
    def remote_allowed(self) -> bool:
        return self._privacy_mode == PrivacyMode.REMOTE_ALLOWED

    def set_active_provider(self, provider_id: str) -> bool:
        """Activate a provider. False if unknown or blocked by privacy mode."""
        with self._lock:
            provider = self._providers.get(provider_id)
            if provider is None:
                logger.warning(f"Cannot set active provider: {provider_id} not found")
                return False
            if not self._is_allowed(provider):
                logger.warning(
                    f"Cannot set active provider: {provider_id} is remote "
                    f"and privacy mode is LocalOnly"
                )
                return False
            self._active_provider_id = provider_id

        remote = "yes" if provider.requires_network() else "no"
        logger.info(f"Set active provider: {provider_id} (remote: {remote})")
        return True

    def active_provider(self) -> Provider | None:
        with self._lock:
            if self._active_provider_id is None:
                return None
            return self._providers.get(self._active_provider_id)

    def set_privacy_mode(self, mode: PrivacyMode, user_confirmed: bool = False) -> bool:
        """Change privacy mode.

        REMOTE_ALLOWED enables data leaving the device and is refused unless
        the user explicitly confirmed it. LOCAL_ONLY always succeeds and
        deactivates an active remote provider in the same step.
        """
        if mode == PrivacyMode.REMOTE_ALLOWED and not user_confirmed:
            audit.warning("Cannot enable RemoteAllowed mode without user confirmation")
            return False

        with self._lock:
            old_mode = self._privacy_mode
            self._privacy_mode = mode

            if mode == PrivacyMode.LOCAL_ONLY and self._active_provider_id is not None:
                active = self._providers.get(self._active_provider_id)
                if active is not None and active.requires_network():
                    audit.info(
                        f"Privacy mode changed to LocalOnly, deactivating remote provider: "
                        f"{self._active_provider_id}"
                    )
                    self._active_provider_id = None

        audit.info(f"Privacy mode changed: {old_mode.value} -> {mode.value}")
        return True

    # Dispatch

    def validate_request(self, request: InferenceRequest) -> str | None:
        """Reason the request would be refused, or None if it would be dispatched."""
        with self._lock:
            provider = self.active_provider()
            if provider is None:
                return NO_ACTIVE_PROVIDER
            return self._admission_error(provider, request)

    def chat(self, request: InferenceRequest) -> InferenceResponse:
        """Primary entry point for inference requests."""
        provider, blocked = self._admit(request)
        if blocked is not None:
            return blocked

        logger.debug(f"Dispatching chat request to provider: {provider.id}")
        return provider.chat(request)

    def categorize(
        self,
        filename: str,
        filepath: str,
        is_directory: bool,
        consistency_context: str,
        base_request: InferenceRequest,
    ) -> InferenceResponse:
        provider, blocked = self._admit(base_request)
        if blocked is not None:
            return blocked

        logger.debug(f"Dispatching categorize request to provider: {provider.id} (file: {filename})")
        return provider.categorize(
            filename, filepath, is_directory, consistency_context, base_request
        )

    def health_check_all(self) -> dict[str, HealthStatus]:
        """Health of every registered provider."""
        return {p.id: p.health_check() for p in self.all_providers()}

    # Internals

    def _is_allowed(self, provider: Provider) -> bool:
        if not provider.requires_network():
            return True
        return self._privacy_mode == PrivacyMode.REMOTE_ALLOWED

    def _admission_error(self, provider: Provider, request: InferenceRequest) -> str | None:
        with self._lock:
            allowed = self._is_allowed(provider)
        if not allowed:
            return (
                f"Request blocked: provider '{provider.id}' requires network but privacy "
                f"mode is LocalOnly. Enable remote providers in settings if you want to "
                f"use this provider."
            )
        if provider.requires_network() and request.privacy_level == PrivacyLevel.LOCAL_ONLY:
            return "Request marked as LocalOnly cannot be sent to remote provider"
        return None

    def _admit(
        self, request: InferenceRequest
    ) -> tuple[Provider | None, InferenceResponse | None]:
        """Resolve the active provider, or a failure response if the request is refused."""
        with self._lock:
            provider = self.active_provider()
            if provider is None:
                return None, InferenceResponse.failure(ErrorCode.NOT_CONFIGURED, NO_ACTIVE_PROVIDER)
            reason = self._admission_error(provider, request)

        if reason is not None:
            audit.warning(f"Blocked request for provider {provider.id}: {reason}")
            return None, InferenceResponse.failure(
                ErrorCode.PRIVACY_BLOCKED, reason, provider_id=provider.id
            )
        return provider, None
