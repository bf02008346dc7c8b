from __future__ import annotations

import threading
from typing import TYPE_CHECKING, Any, Final, Protocol

import numpy as np
from sklearn.feature_extraction.text import HashingVectorizer

if TYPE_CHECKING:
    from sentence_transformers import SentenceTransformer
else:
    SentenceTransformer = Any

DEFAULT_MODEL_NAME: Final[str] = "all-MiniLM-L6-v2"
MODEL_ALIASES: Final[dict[str, str]] = {
    DEFAULT_MODEL_NAME: "sentence-transformers/all-MiniLM-L6-v2",
}
DEFAULT_HASHING_FEATURES: Final[int] = 2**12


class EmbeddingUnavailableError(RuntimeError):
    """The embedding provider could not produce a vector."""


class EmbeddingProvider(Protocol):
    name: str

    def embed_texts(self, texts: list[str]) -> np.ndarray: ...

    def embed(self, text: str) -> np.ndarray: ...


def normalize_rows(array: np.ndarray) -> np.ndarray:
    matrix = np.asarray(array, dtype=np.float32)
    if matrix.ndim == 1:
        matrix = matrix.reshape(1, -1)
    norms = np.linalg.norm(matrix, axis=1, keepdims=True)
    norms = np.where(norms > 0.0, norms, 1.0)
    return (matrix / norms).astype(np.float32, copy=False)


def resolve_model_name(model_name: str | None) -> str:
    normalized = str(model_name or DEFAULT_MODEL_NAME).strip()
    if not normalized:
        normalized = DEFAULT_MODEL_NAME
    return MODEL_ALIASES.get(normalized, normalized)


class SentenceTransformerProvider:
    """Local sentence-transformers model, loaded on first use."""

    def __init__(
        self,
        model_name: str = DEFAULT_MODEL_NAME,
        *,
        batch_size: int = 32,
        device: str = "cpu",
    ) -> None:
        self.model_name = resolve_model_name(model_name)
        self.name = f"sentence-transformers:{self.model_name}"
        self.batch_size = batch_size
        self.device = device
        self._model: SentenceTransformer | None = None
        self._model_lock = threading.Lock()

    def get_model(self) -> SentenceTransformer:
        with self._model_lock:
            if self._model is not None:
                return self._model
            try:
                from sentence_transformers import SentenceTransformer as SentenceTransformerImpl
            except ModuleNotFoundError as exc:
                raise EmbeddingUnavailableError(
                    "sentence-transformers is required for this provider. "
                    "Install the 'embeddings' extra to enable local embedding models."
                ) from exc

            model = SentenceTransformerImpl(self.model_name, device=self.device)
            model.eval()
            self._model = model
            return model

    def embed_texts(self, texts: list[str]) -> np.ndarray:
        if not texts:
            return np.empty((0, 0), dtype=np.float32)

        model = self.get_model()
        try:
            vectors = model.encode(
                texts,
                batch_size=self.batch_size,
                convert_to_numpy=True,
                show_progress_bar=False,
                normalize_embeddings=False,
            )
        except Exception as exc:
            raise EmbeddingUnavailableError(f"Embedding model {self.model_name} failed.") from exc
        return normalize_rows(np.asarray(vectors, dtype=np.float32))

    def embed(self, text: str) -> np.ndarray:
        return self.embed_texts([text])[0]


class HashingEmbeddingProvider:
    """Stateless bag-of-ngrams vectors; no model download and fully deterministic."""

    def __init__(self, n_features: int = DEFAULT_HASHING_FEATURES) -> None:
        self.name = f"hashing:{n_features}"
        self._vectorizer = HashingVectorizer(
            n_features=n_features,
            lowercase=True,
            stop_words="english",
            ngram_range=(1, 2),
            alternate_sign=False,
            norm="l2",
        )

    def embed_texts(self, texts: list[str]) -> np.ndarray:
        if not texts:
            return np.empty((0, 0), dtype=np.float32)
        matrix = self._vectorizer.transform(texts)
        return normalize_rows(matrix.toarray())

    def embed(self, text: str) -> np.ndarray:
        return self.embed_texts([text])[0]
