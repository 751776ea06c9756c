"""
Environment lookup abstraction.

Config resolution only ever asks "what is the string value for this key".
Absent and empty keys both read as ``""`` so callers never branch on the
difference. Tests substitute ``MappingEnv`` instead of touching ``os.environ``.
"""

from __future__ import annotations

import os
from typing import Mapping, Optional, Protocol


class HasEnv(Protocol):
    """Anything that can answer ``getenv(key) -> str``."""

    def getenv(self, key: str) -> str:
        ...


class OsEnv:
    """Reads from the process environment."""

    def getenv(self, key: str) -> str:
        return os.environ.get(key, "")


class MappingEnv:
    """Reads from an in-memory mapping; missing keys are empty."""

    def __init__(self, values: Optional[Mapping[str, str]] = None) -> None:
        self._values = dict(values or {})

    def getenv(self, key: str) -> str:
        return self._values.get(key) or ""
