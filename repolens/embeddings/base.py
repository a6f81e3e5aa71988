from abc import ABC, abstractmethod
import numpy as np


class EmbeddingProvider(ABC):

    @abstractmethod
    async def embed(self, text: str) -> np.ndarray:
        pass

    @property
    @abstractmethod
    def dimension(self) -> int:
        pass
