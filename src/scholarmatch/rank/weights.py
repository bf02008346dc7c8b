from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Mapping

WEIGHT_TOLERANCE = 1e-6


@dataclass(frozen=True, slots=True)
class ScorerWeights:
    """Rule-based eligibility score: ``min(100, base_score + specificity_bonus * n_specific)``."""

    base_score: float
    specificity_bonus: float

    def __post_init__(self) -> None:
        for field_name in ("base_score", "specificity_bonus"):
            value = float(getattr(self, field_name))
            if not math.isfinite(value):
                raise ValueError(f"Scorer weight '{field_name}' must be finite.")
            if value < 0.0 or value > 100.0:
                raise ValueError(f"Scorer weight '{field_name}' must be between 0.0 and 100.0.")

    @classmethod
    def baseline(cls) -> ScorerWeights:
        return cls(base_score=55.0, specificity_bonus=5.0)

    @classmethod
    def from_mapping(cls, payload: Mapping[str, Any] | None) -> ScorerWeights:
        values = payload or {}
        baseline = cls.baseline()
        return cls(
            base_score=float(values.get("base_score", baseline.base_score)),
            specificity_bonus=float(values.get("specificity_bonus", baseline.specificity_bonus)),
        )

    def to_dict(self) -> dict[str, float]:
        return {
            "base_score": self.base_score,
            "specificity_bonus": self.specificity_bonus,
        }


@dataclass(frozen=True, slots=True)
class HybridWeights:
    eligibility: float
    semantic: float

    def __post_init__(self) -> None:
        for field_name in ("eligibility", "semantic"):
            value = float(getattr(self, field_name))
            if not math.isfinite(value):
                raise ValueError(f"Hybrid weight '{field_name}' must be finite.")
            if value < 0.0 or value > 1.0:
                raise ValueError(f"Hybrid weight '{field_name}' must be between 0.0 and 1.0.")

        total = self.eligibility + self.semantic
        if not math.isclose(total, 1.0, abs_tol=WEIGHT_TOLERANCE):
            raise ValueError(
                "Hybrid weights must sum to 1.0 "
                f"(received {total:.6f}, tolerance={WEIGHT_TOLERANCE})."
            )

    @classmethod
    def baseline(cls) -> HybridWeights:
        return cls(eligibility=0.70, semantic=0.30)

    @classmethod
    def from_mapping(cls, payload: Mapping[str, Any] | None) -> HybridWeights:
        values = payload or {}
        baseline = cls.baseline()
        return cls(
            eligibility=float(values.get("eligibility", baseline.eligibility)),
            semantic=float(values.get("semantic", baseline.semantic)),
        )

    def to_dict(self) -> dict[str, float]:
        return {
            "eligibility": self.eligibility,
            "semantic": self.semantic,
        }
