from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Mapping

import numpy as np

from scholarmatch.embeddings.model import normalize_rows

logger = logging.getLogger(__name__)


def cosine_to_score(similarities: np.ndarray) -> np.ndarray:
    """Linearly rescale cosine similarity in [-1, 1] to a 0-100 score."""
    clipped = np.clip(np.asarray(similarities, dtype=np.float64), -1.0, 1.0)
    return np.round((clipped + 1.0) * 50.0, 4)


@dataclass(frozen=True, slots=True)
class IndexSnapshot:
    ids: tuple[str, ...]
    matrix: np.ndarray
    text_hashes: tuple[str, ...]

    @classmethod
    def empty(cls) -> IndexSnapshot:
        return cls(ids=(), matrix=np.empty((0, 0), dtype=np.float32), text_hashes=())

    @property
    def dimension(self) -> int | None:
        if not self.ids:
            return None
        return int(self.matrix.shape[1])

    def position(self, scholarship_id: str) -> int | None:
        try:
            return self.ids.index(scholarship_id)
        except ValueError:
            return None


class EmbeddingIndex:
    # Readers scan the current snapshot without locking; writers swap in a new one.
    def __init__(self, snapshot: IndexSnapshot | None = None) -> None:
        self._snapshot = snapshot or IndexSnapshot.empty()
        self._write_lock = threading.Lock()

    @property
    def snapshot(self) -> IndexSnapshot:
        return self._snapshot

    @property
    def dimension(self) -> int | None:
        return self._snapshot.dimension

    def __len__(self) -> int:
        return len(self._snapshot.ids)

    def __contains__(self, scholarship_id: object) -> bool:
        return scholarship_id in self._snapshot.ids

    def ids(self) -> tuple[str, ...]:
        return self._snapshot.ids

    def text_hash(self, scholarship_id: str) -> str | None:
        snapshot = self._snapshot
        position = snapshot.position(scholarship_id)
        if position is None:
            return None
        return snapshot.text_hashes[position] or None

    def needs_refresh(self, scholarship_id: str, text_hash: str) -> bool:
        return self.text_hash(scholarship_id) != text_hash

    def upsert(self, scholarship_id: str, vector: np.ndarray, *, text_hash: str = "") -> None:
        self.upsert_many({scholarship_id: vector}, text_hashes={scholarship_id: text_hash})

    def upsert_many(
        self,
        vectors: Mapping[str, np.ndarray],
        *,
        text_hashes: Mapping[str, str] | None = None,
    ) -> None:
        if not vectors:
            return
        hashes = text_hashes or {}
        incoming_ids = list(vectors)
        incoming = normalize_rows(
            np.vstack([np.asarray(vectors[key], dtype=np.float32).ravel() for key in incoming_ids])
        )

        with self._write_lock:
            current = self._snapshot
            if current.dimension is not None and incoming.shape[1] != current.dimension:
                raise ValueError(
                    f"Embedding dimension {incoming.shape[1]} does not match index dimension "
                    f"{current.dimension}."
                )

            rows: dict[str, tuple[np.ndarray, str]] = {
                scholarship_id: (current.matrix[position], current.text_hashes[position])
                for position, scholarship_id in enumerate(current.ids)
            }
            for offset, scholarship_id in enumerate(incoming_ids):
                rows[scholarship_id] = (incoming[offset], str(hashes.get(scholarship_id, "")))

            self._snapshot = _build_snapshot(rows)
        logger.debug("Upserted %d embedding(s); index size=%d", len(incoming_ids), len(self))

    def remove(self, scholarship_id: str) -> bool:
        with self._write_lock:
            current = self._snapshot
            if current.position(scholarship_id) is None:
                return False
            self._snapshot = _build_snapshot(
                {
                    existing_id: (current.matrix[position], current.text_hashes[position])
                    for position, existing_id in enumerate(current.ids)
                    if existing_id != scholarship_id
                }
            )
        logger.debug("Removed embedding for %s; index size=%d", scholarship_id, len(self))
        return True

    def clear(self) -> None:
        with self._write_lock:
            self._snapshot = IndexSnapshot.empty()

    def semantic_scores(
        self, query_vector: np.ndarray, *, ids: Iterable[str] | None = None
    ) -> dict[str, float]:
        """0-100 semantic score for every indexed scholarship (or the requested subset)."""
        snapshot = self._snapshot
        if not snapshot.ids:
            return {}

        query = normalize_rows(np.asarray(query_vector, dtype=np.float32).ravel())[0]
        if query.shape[0] != snapshot.matrix.shape[1]:
            raise ValueError(
                f"Query dimension {query.shape[0]} does not match index dimension "
                f"{snapshot.matrix.shape[1]}."
            )
        scores = cosine_to_score(snapshot.matrix @ query)
        wanted = None if ids is None else set(ids)
        return {
            scholarship_id: float(score)
            for scholarship_id, score in zip(snapshot.ids, scores, strict=True)
            if wanted is None or scholarship_id in wanted
        }

    def query(self, query_vector: np.ndarray, top_k: int = 5) -> list[tuple[str, float]]:
        scores = self.semantic_scores(query_vector)
        ranked = sorted(scores.items(), key=lambda item: (-item[1], item[0]))
        return ranked[: max(top_k, 0)]

    def save(self, path: Path) -> Path:
        snapshot = self._snapshot
        path.parent.mkdir(parents=True, exist_ok=True)
        temp_path = path.parent / f"{path.name}.tmp"
        with temp_path.open("wb") as handle:
            np.savez_compressed(
                handle,
                scholarship_id=np.array(snapshot.ids, dtype=str),
                text_hash=np.array(snapshot.text_hashes, dtype=str),
                vectors=snapshot.matrix.astype(np.float32),
            )
        temp_path.replace(path)
        return path

    @classmethod
    def load(cls, path: Path) -> EmbeddingIndex:
        if not path.exists():
            return cls()

        with np.load(path, allow_pickle=False) as payload:
            ids = [str(value) for value in payload["scholarship_id"].tolist()]
            hashes = [str(value) for value in payload["text_hash"].tolist()]
            vectors = np.asarray(payload["vectors"], dtype=np.float32)

        if not ids:
            return cls()
        rows = {
            scholarship_id: (vector, text_hash)
            for scholarship_id, vector, text_hash in zip(ids, vectors, hashes, strict=True)
        }
        return cls(_build_snapshot(rows))


def _build_snapshot(rows: Mapping[str, tuple[np.ndarray, str]]) -> IndexSnapshot:
    ordered_ids = sorted(rows)
    if not ordered_ids:
        return IndexSnapshot.empty()
    matrix = normalize_rows(np.vstack([rows[key][0] for key in ordered_ids]))
    matrix.setflags(write=False)
    return IndexSnapshot(
        ids=tuple(ordered_ids),
        matrix=matrix,
        text_hashes=tuple(rows[key][1] for key in ordered_ids),
    )
