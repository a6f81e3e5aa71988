from repolens.llm.base import GenerationProvider
from repolens.llm.openai import OpenAIGenerationProvider
from repolens.config import RepolensConfig


def create_generation_provider(config: RepolensConfig) -> GenerationProvider:
    provider_type = config.generation_provider.type
    provider_config = config.generation_provider.config

    if provider_type == "openai":
        if not config.openai_api_key:
            raise ValueError("openai_api_key is required for the openai generation provider")
        return OpenAIGenerationProvider(
            api_key=config.openai_api_key,
            model=provider_config.get("model", "gpt-4o-mini"),
            temperature=provider_config.get("temperature", 0.2),
            max_tokens=provider_config.get("max_tokens", 2000),
        )
    else:
        raise ValueError(
            f"Unsupported generation provider type: {provider_type}")
