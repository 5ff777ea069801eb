"""
Core module - configuration and shared plumbing.

Components:
- config: Settings management via pydantic-settings
- logging: Logging setup
- typing: Shared type aliases
"""

from gatekeeper.core.config import LLMChoice, Settings

__all__ = ["Settings", "LLMChoice"]
