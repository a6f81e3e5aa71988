from abc import ABC, abstractmethod


class GenerationProvider(ABC):

    @abstractmethod
    async def generate(self, prompt: str) -> str:
        """Return the model's free-text completion for ``prompt``."""
        pass
