import logging
from typing import TYPE_CHECKING

from openai import AsyncOpenAI

if TYPE_CHECKING:
    from fabric_core.config import FabricConfig

logger = logging.getLogger(__name__)


class OpenAIEmbedder:
    """Embeds search queries with the OpenAI embeddings endpoint.

    Single queries go through the same request path as batches, so a
    multi-query member search costs one round-trip.
    """

    def __init__(
        self,
        model: str = "text-embedding-3-small",
        dimensions: int = 1536,
        api_key: str | None = None,
        client: AsyncOpenAI | None = None,
    ) -> None:
        self._model = model
        self._dimensions = dimensions
        self._client = client or AsyncOpenAI(api_key=api_key)

    @classmethod
    def from_config(cls, config: "FabricConfig") -> "OpenAIEmbedder":
        return cls(
            model=config.embedding_model,
            dimensions=config.embedding_dimensions,
            api_key=config.openai_api_key,
        )

    @property
    def dimensions(self) -> int:
        return self._dimensions

    async def embed(self, text: str) -> list[float]:
        vectors = await self.embed_batch([text])
        return vectors[0]

    async def embed_batch(self, texts: list[str]) -> list[list[float]]:
        """Embed ``texts`` in one request, returning vectors in input order."""
        if not texts:
            return []

        response = await self._client.embeddings.create(
            model=self._model,
            input=texts,
            dimensions=self._dimensions,
        )
        # The endpoint tags each vector with its input position
        ordered = sorted(response.data, key=lambda item: item.index)
        logger.debug("Embedded %d search queries model=%s", len(texts), self._model)
        return [item.embedding for item in ordered]
