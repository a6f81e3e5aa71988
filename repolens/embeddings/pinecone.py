import asyncio
import logging
import numpy as np
from pinecone.grpc import PineconeGRPC
from repolens.embeddings.base import EmbeddingProvider


class PineconeEmbeddingProvider(EmbeddingProvider):

    PASSAGE_PARAMS = {"input_type": "passage", "truncate": "END"}

    def __init__(
        self,
        api_key: str,
        model: str = "multilingual-e5-large",
        dimension: int = 1024,
    ):
        self.client = PineconeGRPC(api_key=api_key)
        self.model = model
        self._dimension = dimension

    def _embed_sync(self, text: str) -> np.ndarray:
        response = self.client.inference.embed(  # type: ignore
            model=self.model,
            inputs=[text],
            parameters=self.PASSAGE_PARAMS
        )
        return np.array(response[0]['values'])

    async def embed(self, text: str) -> np.ndarray:
        # the gRPC client is blocking
        try:
            return await asyncio.to_thread(self._embed_sync, text)
        except Exception as e:
            logging.debug(f"Error generating embedding: {str(e)}")
            raise

    @property
    def dimension(self) -> int:
        """Return the dimension of the embeddings (1024 for multilingual-e5-large)."""
        return self._dimension
