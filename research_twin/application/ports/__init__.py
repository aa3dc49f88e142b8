from .embeddings_port import EmbeddingsPort, EmbedderPort
from .llm_port import LLMPort
from .store_port import StorePort

__all__ = [
    "EmbedderPort",
    "EmbeddingsPort",
    "LLMPort",
    "StorePort",
]
