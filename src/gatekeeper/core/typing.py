"""Shared typing aliases used across modules."""

from typing import Any, TypeAlias

JSONDict: TypeAlias = dict[str, Any]
MessageDict: TypeAlias = dict[str, str]
StringDict: TypeAlias = dict[str, str]
UsageDict: TypeAlias = dict[str, int]
