from __future__ import annotations

from typing import Protocol


class LLMPort(Protocol):
    """Abstract language model: completes a prompt under a system instruction."""

    def complete(self, prompt: str, *, system: str = "") -> str:  # pragma: no cover - interface
        ...
