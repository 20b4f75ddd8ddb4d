"""Embedding providers.

A provider turns text into a fixed-length vector and reports the name of the
model that produced it; the name is stored next to cached post embeddings so
a model change invalidates them.
"""

import asyncio
import logging
import threading
from abc import ABC, abstractmethod
from typing import Any

from ..errors import EmbeddingUnavailable

logger = logging.getLogger(__name__)


class EmbeddingProvider(ABC):
    """Abstract base class for text embedding providers."""

    @property
    @abstractmethod
    def model_name(self) -> str:
        """Stable identifier of the underlying model."""
        ...

    @abstractmethod
    async def embed(self, text: str) -> list[float]:
        """Embed *text*.

        Raises
        ------
        EmbeddingUnavailable
            If the model cannot be loaded or the embedding call fails.
        """
        ...


class SentenceTransformerProvider(EmbeddingProvider):
    """Local sentence-transformers model, loaded on first use.

    Encoding is CPU bound, so it runs in a worker thread to keep the event
    loop responsive.  Vectors are mean-pooled and L2-normalised.
    """

    def __init__(self, model_name: str, *, device: str | None = None):
        self._model_name = model_name
        self._device = device
        self._model: Any = None
        self._load_lock = threading.Lock()

    @property
    def model_name(self) -> str:
        return self._model_name

    def _load_model(self) -> Any:
        with self._load_lock:
            if self._model is None:
                from sentence_transformers import SentenceTransformer

                logger.info("Loading embedding model %s", self._model_name)
                self._model = SentenceTransformer(self._model_name, device=self._device)
            return self._model

    def _encode(self, text: str) -> list[float]:
        model = self._load_model()
        vector = model.encode(text, convert_to_numpy=True, normalize_embeddings=True)
        return [float(v) for v in vector.tolist()]

    async def embed(self, text: str) -> list[float]:
        try:
            return await asyncio.to_thread(self._encode, text)
        except Exception as exc:
            raise EmbeddingUnavailable(
                f"Model {self._model_name} failed to embed text: {exc}"
            ) from exc
