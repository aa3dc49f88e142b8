from .providers import DummyLLM, OllamaChatLLM, build_llm

__all__ = ["DummyLLM", "OllamaChatLLM", "build_llm"]
