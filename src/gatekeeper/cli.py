"""
CLI entry point.

Commands:
- health: Check configured provider health
- models: List models of the configured provider
- chat <prompt>: Send one prompt through the ProviderManager

Flags:
- --debug: Enable debug logging
- --allow-remote: Confirm remote providers for this invocation (chat only)
- --level <name>: Privacy level for chat (local_only, metadata_only,
  content_excerpt, full_content)
- --upload: Allow full content upload (chat only)
"""

import logging
import sys

from gatekeeper.core.config import Settings, get_settings
from gatekeeper.core.logging import get_logger, setup_logging
from gatekeeper.providers.base import (
    ChatMessage,
    HealthStatus,
    InferenceRequest,
    PrivacyLevel,
    Role,
)
from gatekeeper.providers.factory import create_default_manager, create_provider_from_settings
from gatekeeper.providers.manager import PrivacyMode

USAGE = """Usage: gatekeeper [--debug] <command>
Commands: health, models, chat <prompt>
Chat flags: --allow-remote, --upload, --level <privacy level>"""


def _pop_flag(args: list[str], flag: str) -> bool:
    if flag in args:
        args.remove(flag)
        return True
    return False


def _pop_option(args: list[str], option: str) -> str | None:
    if option not in args:
        return None
    index = args.index(option)
    if index + 1 >= len(args):
        return None
    value = args[index + 1]
    del args[index : index + 2]
    return value


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    args = list(sys.argv[1:] if argv is None else argv)
    settings = get_settings()

    debug_mode = _pop_flag(args, "--debug")
    setup_logging(
        level=logging.DEBUG if debug_mode else logging.WARNING,
        audit_file=settings.audit_log_file,
    )
    logger = get_logger("cli")

    if not args:
        print(USAGE)
        return 1

    command, rest = args[0], args[1:]
    logger.debug(f"Command: {command}, provider choice: {settings.llm_choice.value}")

    if command == "health":
        return _health(settings)
    if command == "models":
        return _models(settings)
    if command == "chat":
        return _chat(settings, rest)

    print(f"Unknown command: {command}")
    return 1


def _health(settings: Settings) -> int:
    provider = create_provider_from_settings(settings)
    if provider is None:
        print("No provider configured. Set GATEKEEPER_LLM_CHOICE.")
        return 1

    status = provider.health_check()
    remote = "remote" if provider.requires_network() else "local"
    print(f"{provider.display_name} ({provider.id}, {remote}): {status.value}")
    return 0 if status == HealthStatus.HEALTHY else 1


def _models(settings: Settings) -> int:
    provider = create_provider_from_settings(settings)
    if provider is None:
        print("No provider configured. Set GATEKEEPER_LLM_CHOICE.")
        return 1

    models = provider.list_models()
    if not models:
        print(f"{provider.display_name}: no models available")
        return 0
    for model in models:
        size = f" ({model.size_bytes} bytes)" if model.size_bytes else ""
        print(f"{model.id}: {model.name}{size} {model.description}".rstrip())
    return 0


def _chat(settings: Settings, args: list[str]) -> int:
    allow_remote = _pop_flag(args, "--allow-remote")
    upload = _pop_flag(args, "--upload")
    level_name = _pop_option(args, "--level")

    if not args:
        print("Usage: gatekeeper chat [--allow-remote] [--upload] [--level <level>] <prompt>")
        return 1

    try:
        level = PrivacyLevel[level_name.upper()] if level_name else PrivacyLevel.LOCAL_ONLY
    except KeyError:
        print(f"Unknown privacy level: {level_name}")
        return 1

    manager = create_default_manager(settings)
    if allow_remote:
        manager.set_privacy_mode(PrivacyMode.REMOTE_ALLOWED, user_confirmed=True)
        for provider in manager.all_providers():
            manager.set_active_provider(provider.id)

    request = InferenceRequest(
        messages=[ChatMessage(Role.USER, " ".join(args))],
        privacy_level=level,
        allow_content_upload=upload,
    )
    response = manager.chat(request)

    if not response.success:
        print(f"Error ({response.error_code}): {response.error_message}")
        return 1

    print(response.text)
    return 0


if __name__ == "__main__":
    sys.exit(main())
