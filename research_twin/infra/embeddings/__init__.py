from .factory import DummyEmbeddings, SafeEmbedder, build_embeddings

__all__ = ["DummyEmbeddings", "SafeEmbedder", "build_embeddings"]
