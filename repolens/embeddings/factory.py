from repolens.embeddings.base import EmbeddingProvider
from repolens.config import RepolensConfig


def create_embedding_provider(config: RepolensConfig) -> EmbeddingProvider:
    provider_type = config.embedding_provider.type
    provider_config = config.embedding_provider.config

    if provider_type == "pinecone":
        if not config.pinecone_api_key:
            raise ValueError("pinecone_api_key is required for the pinecone embedding provider")
        # imported here so the grpc extra is only needed when selected
        from repolens.embeddings.pinecone import PineconeEmbeddingProvider
        return PineconeEmbeddingProvider(
            api_key=config.pinecone_api_key,
            model=provider_config.get("model", "multilingual-e5-large"),
            dimension=provider_config.get("dimension", 1024),
        )
    elif provider_type == "openai":
        if not config.openai_api_key:
            raise ValueError("openai_api_key is required for the openai embedding provider")
        from repolens.embeddings.openai import OpenAIEmbeddingProvider
        return OpenAIEmbeddingProvider(
            api_key=config.openai_api_key,
            model=provider_config.get("model", "text-embedding-3-small"),
            dimension=provider_config.get("dimension", 768),
        )
    else:
        raise ValueError(
            f"Unsupported embedding provider type: {provider_type}")
