from repolens.llm.base import GenerationProvider
from openai import AsyncOpenAI
import logging

logger = logging.getLogger(__name__)


class OpenAIGenerationProvider(GenerationProvider):

    def __init__(
        self,
        api_key: str,
        model: str = "gpt-4o-mini",
        temperature: float = 0.2,
        max_tokens: int = 2000,
        timeout: int = 60,
    ):
        # retries are handled by repolens.retry so throttling stays visible
        self.client = AsyncOpenAI(api_key=api_key, timeout=timeout, max_retries=0)
        self.model = model
        self.temperature = temperature
        self.max_tokens = max_tokens

    async def generate(self, prompt: str) -> str:
        try:
            response = await self.client.chat.completions.create(
                model=self.model,
                messages=[{"role": "user", "content": prompt}],
                temperature=self.temperature,
                max_tokens=self.max_tokens
            )
        except Exception as e:
            logger.debug(f"Generation call failed: {str(e)}")
            raise
        return response.choices[0].message.content or ""
