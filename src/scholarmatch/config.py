from __future__ import annotations

import json
import math
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping

from scholarmatch.rank.weights import HybridWeights, ScorerWeights


@dataclass(frozen=True, slots=True)
class MatcherConfig:
    hybrid_weights: HybridWeights = field(default_factory=HybridWeights.baseline)
    scorer_weights: ScorerWeights = field(default_factory=ScorerWeights.baseline)
    suggestion_top_k: int = 5
    min_suggestion_score: float = 40.0
    max_recommendations: int | None = None
    embedding_timeout_seconds: float = 2.0
    embedding_batch_size: int = 32
    hide_closed: bool = False

    def __post_init__(self) -> None:
        if self.suggestion_top_k < 0:
            raise ValueError("suggestion_top_k must be non-negative.")
        score = self.min_suggestion_score
        if not math.isfinite(score) or not 0.0 <= score <= 100.0:
            raise ValueError("min_suggestion_score must be between 0.0 and 100.0.")
        if self.max_recommendations is not None and self.max_recommendations < 0:
            raise ValueError("max_recommendations must be non-negative when set.")
        timeout = self.embedding_timeout_seconds
        if not math.isfinite(timeout) or timeout <= 0.0:
            raise ValueError("embedding_timeout_seconds must be a positive number.")
        if self.embedding_batch_size <= 0:
            raise ValueError("embedding_batch_size must be positive.")

    @classmethod
    def baseline(cls) -> MatcherConfig:
        return cls()

    @classmethod
    def from_mapping(cls, payload: Mapping[str, Any] | None) -> MatcherConfig:
        values = payload or {}
        baseline = cls.baseline()
        max_recommendations = values.get("max_recommendations", baseline.max_recommendations)
        return cls(
            hybrid_weights=HybridWeights.from_mapping(values.get("hybrid_weights")),
            scorer_weights=ScorerWeights.from_mapping(values.get("scorer_weights")),
            suggestion_top_k=int(values.get("suggestion_top_k", baseline.suggestion_top_k)),
            min_suggestion_score=float(
                values.get("min_suggestion_score", baseline.min_suggestion_score)
            ),
            max_recommendations=None if max_recommendations is None else int(max_recommendations),
            embedding_timeout_seconds=float(
                values.get("embedding_timeout_seconds", baseline.embedding_timeout_seconds)
            ),
            embedding_batch_size=int(
                values.get("embedding_batch_size", baseline.embedding_batch_size)
            ),
            hide_closed=bool(values.get("hide_closed", baseline.hide_closed)),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "hybrid_weights": self.hybrid_weights.to_dict(),
            "scorer_weights": self.scorer_weights.to_dict(),
            "suggestion_top_k": self.suggestion_top_k,
            "min_suggestion_score": self.min_suggestion_score,
            "max_recommendations": self.max_recommendations,
            "embedding_timeout_seconds": self.embedding_timeout_seconds,
            "embedding_batch_size": self.embedding_batch_size,
            "hide_closed": self.hide_closed,
        }


def load_matcher_config(path: Path | None) -> MatcherConfig:
    if path is None or not path.exists():
        return MatcherConfig.baseline()
    payload = json.loads(path.read_text(encoding="utf-8"))
    return MatcherConfig.from_mapping(payload)
