from __future__ import annotations

from datetime import date
from typing import Final, Mapping

import numpy as np
import pandas as pd

from scholarmatch.deadlines import days_until_deadline
from scholarmatch.rank.weights import HybridWeights

# Cosine similarity of zero after rescaling; used for eligible rows without a vector.
NEUTRAL_SEMANTIC_SCORE: Final[float] = 50.0


def _compute_deadline_sort(df: pd.DataFrame, today: date | None) -> np.ndarray:
    deadlines = df.get("deadline", pd.Series([""] * len(df), index=df.index))
    return np.array([days_until_deadline(value, today) for value in deadlines], dtype=int)


def _sort_ranked(df: pd.DataFrame, score_column: str, today: date | None) -> pd.DataFrame:
    ranked_df = df.copy()
    ranked_df["_deadline_sort"] = _compute_deadline_sort(ranked_df, today)
    ranked_df = ranked_df.sort_values(
        by=[score_column, "_deadline_sort", "scholarship_id"],
        ascending=[False, True, True],
        na_position="last",
        kind="mergesort",
    ).drop(columns=["_deadline_sort"])
    return ranked_df.reset_index(drop=True)


def rank_primary(
    scored_df: pd.DataFrame,
    semantic_scores: Mapping[str, float] | None = None,
    *,
    weights: HybridWeights | None = None,
    today: date | None = None,
) -> pd.DataFrame:
    """Order eligible scholarships by final score, then soonest deadline, then id.

    With ``semantic_scores=None`` the ranking is rule-based only and
    ``final_score`` equals ``eligibility_score`` exactly.
    """
    if "eligibility_score" not in scored_df.columns:
        raise ValueError("Hybrid ranking requires an 'eligibility_score' column.")

    active_weights = weights or HybridWeights.baseline()
    ranked_df = scored_df.copy()
    eligibility_score = pd.to_numeric(ranked_df["eligibility_score"], errors="coerce").fillna(0.0)

    if semantic_scores is None:
        ranked_df["semantic_score"] = np.nan
        ranked_df["final_score"] = eligibility_score.to_numpy(dtype=float)
    else:
        semantic_score = np.array(
            [
                float(semantic_scores.get(scholarship_id, NEUTRAL_SEMANTIC_SCORE))
                for scholarship_id in ranked_df["scholarship_id"]
            ],
            dtype=float,
        )
        ranked_df["semantic_score"] = semantic_score
        ranked_df["final_score"] = np.round(
            active_weights.eligibility * eligibility_score.to_numpy(dtype=float)
            + active_weights.semantic * semantic_score,
            4,
        )

    return _sort_ranked(ranked_df, "final_score", today)


def select_semantic_suggestions(
    ineligible_df: pd.DataFrame,
    semantic_scores: Mapping[str, float],
    *,
    weights: HybridWeights | None = None,
    top_k: int = 5,
    min_score: float = 0.0,
) -> pd.DataFrame:
    """Top-k ineligible scholarships by semantic score; only indexed ones qualify."""
    active_weights = weights or HybridWeights.baseline()
    candidates_df = ineligible_df[
        ineligible_df["scholarship_id"].isin(list(semantic_scores))
    ].copy()
    candidates_df["semantic_score"] = np.array(
        [
            float(semantic_scores[scholarship_id])
            for scholarship_id in candidates_df["scholarship_id"]
        ],
        dtype=float,
    )
    candidates_df = candidates_df[candidates_df["semantic_score"] >= min_score]
    candidates_df = candidates_df.sort_values(
        by=["semantic_score", "scholarship_id"],
        ascending=[False, True],
        kind="mergesort",
    ).head(max(top_k, 0)).copy()

    candidates_df["eligibility_score"] = 0.0
    candidates_df["final_score"] = np.round(
        active_weights.semantic * candidates_df["semantic_score"].to_numpy(dtype=float), 4
    )
    return candidates_df.reset_index(drop=True)
