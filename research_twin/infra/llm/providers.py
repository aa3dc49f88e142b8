"""LLM providers implementing the LLMPort contract.

Adapters:
- DummyLLM: dependency-free, deterministic answer for tests and offline use.
- OllamaChatLLM: wraps langchain-ollama ChatOllama (system + user message).
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass, field
from typing import Any

from research_twin.core.settings import LLMSettings

_CONTEXT_LINE = re.compile(r"^\[Context 1\]\s*(.+)$", re.MULTILINE)
_FIRST_HINT = re.compile(r"^- \[([A-Z]+\d+)\]", re.MULTILINE)


@dataclass
class DummyLLM:
    """Answers with an excerpt of the first context passage, cited with the first hint marker."""

    excerpt_chars: int = 280
    prompts: list[str] = field(default_factory=list)

    def complete(self, prompt: str, *, system: str = "") -> str:
        self.prompts.append(prompt)
        ctx = _CONTEXT_LINE.search(prompt)
        hint = _FIRST_HINT.search(prompt)
        if ctx is None:
            text = "I could not find this in the indexed documents."
        else:
            text = ctx.group(1).strip()[: self.excerpt_chars].rstrip()
            if hint is not None:
                text = f"{text} [{hint.group(1)}]"
        return json.dumps({"response_text": text, "citations": [], "suggested_followups": []})


@dataclass
class OllamaChatLLM:
    model: str
    base_url: str = "http://127.0.0.1:11434"
    temperature: float = 0.4

    def __post_init__(self) -> None:
        try:
            from langchain_ollama import ChatOllama
        except ImportError as e:  # pragma: no cover - optional extra
            raise RuntimeError(
                "langchain-ollama is required for OllamaChatLLM.\n"
                "Install with: pip install 'research-twin[ollama]'"
            ) from e
        self._chat: Any = ChatOllama(
            model=self.model, base_url=self.base_url, temperature=float(self.temperature)
        )

    def complete(self, prompt: str, *, system: str = "") -> str:
        messages = [("system", system), ("human", prompt)] if system else [("human", prompt)]
        resp = self._chat.invoke(messages)
        text = getattr(resp, "content", None)
        if isinstance(text, str) and text.strip():
            return text.strip()
        raise RuntimeError("Ollama chat returned empty content")


def build_llm(cfg: LLMSettings) -> DummyLLM | OllamaChatLLM:
    provider = (cfg.provider or "").lower()
    if provider == "ollama":
        return OllamaChatLLM(model=cfg.model, base_url=cfg.base_url, temperature=cfg.temperature)
    return DummyLLM()
