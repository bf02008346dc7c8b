from __future__ import annotations

import logging
from datetime import date
from pathlib import Path

import numpy as np
import pytest

from scholarmatch.embeddings.index import EmbeddingIndex
from scholarmatch.embeddings.model import EmbeddingUnavailableError, HashingEmbeddingProvider
from scripts import match_profile
from scripts.build_embeddings import build_embeddings, build_provider
from scripts.match_profile import load_profile_payload, run_match

SAMPLE_PATH = Path(__file__).resolve().parents[1] / "data" / "sample_scholarships.json"


class _OfflineProvider:
    name = "offline"

    def embed_texts(self, texts: list[str]) -> np.ndarray:
        raise EmbeddingUnavailableError("provider offline")

    def embed(self, text: str) -> np.ndarray:
        raise EmbeddingUnavailableError("provider offline")


def test_build_embeddings_writes_index_and_reuses_it(tmp_path: Path) -> None:
    index_path = tmp_path / "index.npz"

    first = build_embeddings(
        scholarships_path=SAMPLE_PATH,
        index_path=index_path,
        provider=HashingEmbeddingProvider(),
    )
    second = build_embeddings(
        scholarships_path=SAMPLE_PATH,
        index_path=index_path,
        provider=HashingEmbeddingProvider(),
    )

    assert first == 4
    assert second == 0
    assert "sch-pending-review" not in EmbeddingIndex.load(index_path)


def test_build_provider_rejects_unknown_name() -> None:
    assert build_provider("hashing").name.startswith("hashing:")
    with pytest.raises(ValueError):
        build_provider("telepathy")


def test_run_match_rule_based_against_sample_data() -> None:
    response = run_match(
        scholarships_path=SAMPLE_PATH,
        profile={
            "state": "Karnataka",
            "category": "SC",
            "educationLevel": "undergraduate",
            "income": 150000,
        },
        today=date(2026, 10, 1),
    )

    ids = [result.scholarship_id for result in response.recommendations]
    assert response.matching_strategy == "rule-based"
    assert ids[0] == "sch-karnataka-sc-ug"
    assert "sch-national-open-merit" in ids


def test_run_match_hybrid_with_hashing_provider(tmp_path: Path) -> None:
    response = run_match(
        scholarships_path=SAMPLE_PATH,
        profile={"gender": "female", "course": "engineering", "income": 300000},
        semantic=True,
        index_path=tmp_path / "index.npz",
        today=date(2026, 10, 1),
    )

    assert response.matching_strategy == "hybrid"
    for result in response.recommendations:
        assert result.semantic_score is not None


def test_load_profile_payload_accepts_inline_json_and_files(tmp_path: Path) -> None:
    path = tmp_path / "profile.json"
    path.write_text('{"state": "Goa"}', encoding="utf-8")

    assert load_profile_payload('{"category": "ST"}') == {"category": "ST"}
    assert load_profile_payload(str(path)) == {"state": "Goa"}


def test_run_match_falls_back_when_index_sync_fails(
    tmp_path: Path, monkeypatch, caplog  # noqa: ANN001
) -> None:
    monkeypatch.setattr(
        match_profile, "build_provider", lambda name, model=None: _OfflineProvider()
    )

    with caplog.at_level(logging.WARNING, logger="match_profile"):
        response = run_match(
            scholarships_path=SAMPLE_PATH,
            profile={
                "state": "Karnataka",
                "category": "SC",
                "educationLevel": "undergraduate",
                "income": 150000,
            },
            semantic=True,
            index_path=tmp_path / "index.npz",
            today=date(2026, 10, 1),
        )

    assert response.matching_strategy == "rule-based"
    assert response.semantic_suggestions == ()
    assert response.recommendations[0].scholarship_id == "sch-karnataka-sc-ug"
    assert "Embedding index sync failed" in caplog.text
