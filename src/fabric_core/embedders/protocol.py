from typing import Protocol


class Embedder(Protocol):
    """Turns search queries into vectors comparable with the stored documents."""

    @property
    def dimensions(self) -> int: ...

    async def embed(self, text: str) -> list[float]:
        """Embed one search query."""
        ...

    async def embed_batch(self, texts: list[str]) -> list[list[float]]:
        """Embed several search queries, one vector per query in the same order."""
        ...
