from repolens.llm.base import GenerationProvider
from repolens.llm.openai import OpenAIGenerationProvider

__all__ = [
    "GenerationProvider",
    "OpenAIGenerationProvider"
]
