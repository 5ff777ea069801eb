"""Categorization prompt construction with path redaction."""

from gatekeeper.providers.base import ChatMessage, InferenceRequest, PrivacyLevel, Role

CATEGORIZATION_SYSTEM_PROMPT = (
    "You are a file categorization assistant. Given the name of a file or "
    "directory, reply with exactly one line in the form "
    "'Category : Subcategory'. Do not add explanations."
)


def may_send_filepath(request: InferenceRequest) -> bool:
    """Full paths leave the device only at FULL_CONTENT with explicit consent.

    Both gates must permit it. Consent alone never widens a lower level.
    """
    return (
        request.privacy_level >= PrivacyLevel.FULL_CONTENT and request.allow_content_upload
    )


def build_categorization_prompt(
    filename: str,
    filepath: str,
    is_directory: bool,
    consistency_context: str,
    request: InferenceRequest,
) -> str:
    item_type = "directory" if is_directory else "file"
    lines = [f"Categorize this {item_type}.", f"Name: {filename}"]

    if filepath and may_send_filepath(request):
        lines.append(f"Full path: {filepath}")

    if consistency_context:
        lines.append("")
        lines.append("Stay consistent with these earlier assignments:")
        lines.append(consistency_context)

    return "\n".join(lines)


def build_categorization_messages(
    filename: str,
    filepath: str,
    is_directory: bool,
    consistency_context: str,
    request: InferenceRequest,
) -> list[ChatMessage]:
    prompt = build_categorization_prompt(
        filename, filepath, is_directory, consistency_context, request
    )
    return [
        ChatMessage(Role.SYSTEM, CATEGORIZATION_SYSTEM_PROMPT),
        ChatMessage(Role.USER, prompt),
    ]
