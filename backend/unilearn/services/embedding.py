"""Text embeddings — remote embedding client with a deterministic local fallback."""

import re
import logging

from unilearn.services.ai_client import EmbeddingClient

logger = logging.getLogger(__name__)

FALLBACK_DIMENSIONS = 100
FALLBACK_WORD_SLOTS = 50

_NON_WORD = re.compile(r"\W+", re.ASCII)
_DIGIT = re.compile(r"[0-9]")
_UPPER = re.compile(r"[A-Z]")


def simple_embedding(text: str) -> list[float]:
    """Build a 100-dimensional vector from word frequencies and text statistics.

    Slots 0-49 hold the normalized frequency of the first 50 distinct words
    longer than two characters, in the order they first appear. Slots 50-53
    hold length, word count, digit density and uppercase density. The rest
    stay zero.
    """
    words = _NON_WORD.split(text.lower())
    word_count = len(words)

    freq: dict[str, int] = {}
    for word in words:
        if len(word) > 2:
            freq[word] = freq.get(word, 0) + 1

    vector = [0.0] * FALLBACK_DIMENSIONS
    for i, count in enumerate(list(freq.values())[:FALLBACK_WORD_SLOTS]):
        vector[i] = count / word_count

    vector[50] = len(text) / 1000
    vector[51] = word_count / 100
    if text:
        vector[52] = len(_DIGIT.findall(text)) / len(text)
        vector[53] = len(_UPPER.findall(text)) / len(text)
    return vector


class Embedder:
    """Turns text into vectors.

    Uses the injected embedding client when there is one; any failure from
    it (network, auth, rate limit, malformed reply) degrades to
    simple_embedding() instead of propagating.
    """

    def __init__(self, client: EmbeddingClient | None = None):
        self.client = client

    @property
    def uses_remote(self) -> bool:
        return self.client is not None

    async def embed(self, text: str) -> list[float]:
        if self.client is None:
            return simple_embedding(text)

        try:
            vectors = await self.client.embed([text])
            if not vectors:
                raise ValueError("embedding service returned no vectors")
            return list(vectors[0])
        except Exception as e:
            logger.warning("Embedding request failed, using local fallback: %s", e)
            return simple_embedding(text)
