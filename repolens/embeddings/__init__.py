from repolens.embeddings.base import EmbeddingProvider
from repolens.embeddings.generator import EmbeddingGenerator

__all__ = [
    "EmbeddingProvider",
    "EmbeddingGenerator"
]
