from __future__ import annotations

import json
from pathlib import Path

import pytest

from scholarmatch.config import MatcherConfig, load_matcher_config
from scholarmatch.rank.weights import HybridWeights, ScorerWeights


def test_hybrid_weights_require_sum_of_one() -> None:
    with pytest.raises(ValueError):
        HybridWeights(eligibility=0.80, semantic=0.30)


def test_hybrid_weights_reject_non_finite_values() -> None:
    with pytest.raises(ValueError):
        HybridWeights(eligibility=float("nan"), semantic=0.30)


def test_hybrid_weights_baseline_is_seventy_thirty() -> None:
    weights = HybridWeights.baseline()

    assert weights.to_dict() == {"eligibility": 0.70, "semantic": 0.30}


def test_scorer_weights_reject_out_of_range_values() -> None:
    with pytest.raises(ValueError):
        ScorerWeights(base_score=120.0, specificity_bonus=5.0)


def test_matcher_config_rejects_non_positive_timeout() -> None:
    with pytest.raises(ValueError):
        MatcherConfig(embedding_timeout_seconds=0.0)


def test_matcher_config_rejects_negative_top_k() -> None:
    with pytest.raises(ValueError):
        MatcherConfig(suggestion_top_k=-1)


def test_matcher_config_from_mapping_overrides_selected_values() -> None:
    config = MatcherConfig.from_mapping(
        {
            "hybrid_weights": {"eligibility": 0.6, "semantic": 0.4},
            "suggestion_top_k": 3,
            "max_recommendations": 10,
        }
    )

    assert config.hybrid_weights == HybridWeights(eligibility=0.6, semantic=0.4)
    assert config.scorer_weights == ScorerWeights.baseline()
    assert config.suggestion_top_k == 3
    assert config.max_recommendations == 10
    assert config.embedding_timeout_seconds == 2.0


def test_load_matcher_config_falls_back_to_baseline(tmp_path: Path) -> None:
    assert load_matcher_config(tmp_path / "missing.json") == MatcherConfig.baseline()
    assert load_matcher_config(None) == MatcherConfig.baseline()


def test_load_matcher_config_reads_json(tmp_path: Path) -> None:
    path = tmp_path / "matcher.json"
    expected = MatcherConfig(min_suggestion_score=55.0, hide_closed=True)
    path.write_text(json.dumps(expected.to_dict()), encoding="utf-8")

    assert load_matcher_config(path) == expected
