from repolens.embeddings.base import EmbeddingProvider
from typing import Optional
import numpy as np
import openai
import logging


class OpenAIEmbeddingProvider(EmbeddingProvider):

    def __init__(
        self,
        api_key: str,
        model: str = "text-embedding-3-small",
        dimension: Optional[int] = 768,
        timeout: int = 30,
    ):
        self.client = openai.AsyncOpenAI(api_key=api_key, timeout=timeout, max_retries=0)
        self.model = model
        # text-embedding-3 models can shorten their output; ada-002 is fixed at 1536
        self._dimension = dimension or 1536

    async def embed(self, text: str) -> np.ndarray:
        kwargs = {}
        if self.model.startswith("text-embedding-3"):
            kwargs["dimensions"] = self._dimension
        try:
            response = await self.client.embeddings.create(
                model=self.model,
                input=[text],
                **kwargs
            )
        except Exception as e:
            logging.debug(f"Error generating embedding: {str(e)}")
            raise
        return np.array(response.data[0].embedding)

    @property
    def dimension(self) -> int:
        return self._dimension
