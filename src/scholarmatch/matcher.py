from __future__ import annotations

import logging
import math
import time
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass
from datetime import date
from typing import Any, Literal, Mapping

import numpy as np
import pandas as pd

from scholarmatch.config import MatcherConfig
from scholarmatch.deadlines import deadline_status
from scholarmatch.embeddings.index import EmbeddingIndex
from scholarmatch.embeddings.model import EmbeddingProvider
from scholarmatch.embeddings.text import (
    build_profile_text,
    build_scholarship_text,
    compute_text_hash,
)
from scholarmatch.normalize.schema import Scholarship
from scholarmatch.profile import ApplicantProfile
from scholarmatch.rank.stage1_eligibility import apply_eligibility_filter, build_scholarship_frame
from scholarmatch.rank.stage2_scoring import annotate_warnings, score_stage2
from scholarmatch.rank.stage3_hybrid import rank_primary, select_semantic_suggestions
from scholarmatch.store import ScholarshipChange, ScholarshipSource

logger = logging.getLogger(__name__)

MatchingStrategy = Literal["rule-based", "hybrid"]


@dataclass(frozen=True, slots=True)
class MatchResult:
    scholarship_id: str
    eligibility_score: float
    final_score: float
    semantic_score: float | None = None
    match_reasons: tuple[str, ...] = ()
    eligibility_warnings: tuple[str, ...] = ()
    is_semantic_suggestion: bool = False
    name: str = ""
    description: str = ""
    benefits: str = ""
    deadline: str = ""
    official_url: str = ""
    application_steps: tuple[str, ...] = ()
    required_documents: tuple[str, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "scholarshipId": self.scholarship_id,
            "name": self.name,
            "description": self.description,
            "benefits": self.benefits,
            "deadline": self.deadline,
            "officialUrl": self.official_url,
            "applicationSteps": list(self.application_steps),
            "requiredDocuments": list(self.required_documents),
            "eligibilityScore": self.eligibility_score,
            "finalScore": self.final_score,
            "matchReasons": list(self.match_reasons),
            "eligibilityWarnings": list(self.eligibility_warnings),
            "isSemanticSuggestion": self.is_semantic_suggestion,
        }
        if self.semantic_score is not None:
            payload["semanticScore"] = self.semantic_score
        return payload


@dataclass(frozen=True, slots=True)
class MatchResponse:
    recommendations: tuple[MatchResult, ...]
    semantic_suggestions: tuple[MatchResult, ...]
    total_matches: int
    matching_strategy: MatchingStrategy

    def to_dict(self) -> dict[str, Any]:
        return {
            "recommendations": [result.to_dict() for result in self.recommendations],
            "semanticSuggestions": [result.to_dict() for result in self.semantic_suggestions],
            "totalMatches": self.total_matches,
            "matchingStrategy": self.matching_strategy,
        }


def _optional_score(value: Any) -> float | None:
    if value is None:
        return None
    numeric = float(value)
    if math.isnan(numeric):
        return None
    return numeric


def _rows_to_results(df: pd.DataFrame, *, suggestion: bool) -> tuple[MatchResult, ...]:
    results: list[MatchResult] = []
    for _, row in df.iterrows():
        scholarship: Scholarship = row["scholarship"]
        results.append(
            MatchResult(
                scholarship_id=scholarship.id,
                eligibility_score=float(row["eligibility_score"]),
                final_score=float(row["final_score"]),
                semantic_score=_optional_score(row.get("semantic_score")),
                match_reasons=tuple(row.get("match_reasons") or ()),
                eligibility_warnings=(
                    tuple(row.get("eligibility_warnings") or ()) if suggestion else ()
                ),
                is_semantic_suggestion=suggestion,
                name=scholarship.name,
                description=scholarship.description,
                benefits=scholarship.benefits,
                deadline=scholarship.deadline,
                official_url=scholarship.official_url,
                application_steps=scholarship.application_steps,
                required_documents=scholarship.required_documents,
            )
        )
    return tuple(results)


class ScholarshipMatcher:
    """Matching service: owns the embedding index and answers ``match`` requests.

    Requests share nothing but the index. Profile embedding runs on a small
    worker pool and is awaited for at most ``embedding_timeout_seconds``;
    past that the request is answered rule-based.
    """

    def __init__(
        self,
        source: ScholarshipSource,
        *,
        provider: EmbeddingProvider | None = None,
        index: EmbeddingIndex | None = None,
        config: MatcherConfig | None = None,
        subscribe: bool = True,
        max_workers: int = 4,
    ) -> None:
        self.source = source
        self.provider = provider
        self.index = index if index is not None else EmbeddingIndex()
        self.config = config or MatcherConfig.baseline()
        self._executor = ThreadPoolExecutor(
            max_workers=max_workers, thread_name_prefix="scholarmatch-embed"
        )
        self._unsubscribe = source.subscribe(self.handle_change) if subscribe else None

    def __enter__(self) -> ScholarshipMatcher:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def close(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        self._executor.shutdown(wait=False, cancel_futures=True)

    # Index maintenance

    def index_scholarship(self, scholarship: Scholarship) -> bool:
        """Embed one scholarship into the index; non-approved ones are removed instead."""
        if not scholarship.is_approved:
            self.index.remove(scholarship.id)
            return False
        if self.provider is None:
            return False

        text = build_scholarship_text(scholarship)
        text_hash = compute_text_hash(text)
        if not self.index.needs_refresh(scholarship.id, text_hash):
            return False
        vector = self.provider.embed(text)
        self.index.upsert(scholarship.id, vector, text_hash=text_hash)
        return True

    def handle_change(self, change: ScholarshipChange) -> None:
        if change.kind == "deleted" or change.scholarship is None:
            self.index.remove(change.scholarship_id)
            return
        try:
            self.index_scholarship(change.scholarship)
        except Exception:
            logger.warning(
                "Could not refresh embedding for %s after %s; keeping previous vector.",
                change.scholarship_id,
                change.kind,
                exc_info=True,
            )

    def sync_index(self) -> int:
        """Embed approved scholarships that are missing or stale; drop everything else."""
        approved = self.source.approved_scholarships()
        approved_ids = {scholarship.id for scholarship in approved}
        for stale_id in [key for key in self.index.ids() if key not in approved_ids]:
            self.index.remove(stale_id)
        if self.provider is None:
            return 0

        pending: list[tuple[str, str, str]] = []
        for scholarship in approved:
            text = build_scholarship_text(scholarship)
            text_hash = compute_text_hash(text)
            if self.index.needs_refresh(scholarship.id, text_hash):
                pending.append((scholarship.id, text, text_hash))

        batch_size = self.config.embedding_batch_size
        for start in range(0, len(pending), batch_size):
            batch = pending[start : start + batch_size]
            vectors = self.provider.embed_texts([text for _, text, _ in batch])
            self.index.upsert_many(
                {
                    scholarship_id: vectors[offset]
                    for offset, (scholarship_id, _, _) in enumerate(batch)
                },
                text_hashes={scholarship_id: text_hash for scholarship_id, _, text_hash in batch},
            )
        logger.info(
            "Embedding index synced: %d embedded, %d indexed.", len(pending), len(self.index)
        )
        return len(pending)

    # Matching

    def _submit_profile_embedding(self, profile: ApplicantProfile) -> Future[np.ndarray] | None:
        if self.provider is None or len(self.index) == 0:
            return None
        return self._executor.submit(self.provider.embed, build_profile_text(profile))

    def _await_semantic_scores(
        self, future: Future[np.ndarray], started_at: float
    ) -> dict[str, float] | None:
        remaining = self.config.embedding_timeout_seconds - (time.monotonic() - started_at)
        try:
            vector = future.result(timeout=max(remaining, 0.0))
            return self.index.semantic_scores(vector)
        except TimeoutError:
            future.cancel()
            logger.warning(
                "Profile embedding exceeded %.2fs; falling back to rule-based matching.",
                self.config.embedding_timeout_seconds,
            )
        except Exception:
            logger.warning(
                "Profile embedding failed; falling back to rule-based matching.", exc_info=True
            )
        return None

    def match(
        self,
        profile: ApplicantProfile | Mapping[str, Any] | None,
        use_semantic_matching: bool = False,
        *,
        today: date | None = None,
    ) -> MatchResponse:
        if isinstance(profile, ApplicantProfile):
            applicant = profile
        else:
            applicant = ApplicantProfile.from_mapping(profile)
        started_at = time.monotonic()
        future = self._submit_profile_embedding(applicant) if use_semantic_matching else None

        scholarships = [
            scholarship
            for scholarship in self.source.approved_scholarships()
            if scholarship.is_approved
        ]
        if self.config.hide_closed:
            scholarships = [
                scholarship
                for scholarship in scholarships
                if deadline_status(scholarship.deadline, today) != "closed"
            ]

        eligible_df, ineligible_df = apply_eligibility_filter(
            build_scholarship_frame(scholarships), applicant
        )
        scored_df = score_stage2(eligible_df, self.config.scorer_weights)

        semantic_scores = None
        if future is not None:
            semantic_scores = self._await_semantic_scores(future, started_at)

        ranked_df = rank_primary(
            scored_df,
            semantic_scores,
            weights=self.config.hybrid_weights,
            today=today,
        )
        total_matches = len(ranked_df)
        if self.config.max_recommendations is not None:
            ranked_df = ranked_df.head(self.config.max_recommendations)

        suggestions: tuple[MatchResult, ...] = ()
        if semantic_scores is not None:
            suggestions_df = select_semantic_suggestions(
                annotate_warnings(ineligible_df),
                semantic_scores,
                weights=self.config.hybrid_weights,
                top_k=self.config.suggestion_top_k,
                min_score=self.config.min_suggestion_score,
            )
            suggestions = _rows_to_results(suggestions_df, suggestion=True)

        strategy: MatchingStrategy = "hybrid" if semantic_scores is not None else "rule-based"
        logger.debug(
            "Matched profile fields=%s: %d eligible, %d suggestions, strategy=%s",
            applicant.known_fields(),
            total_matches,
            len(suggestions),
            strategy,
        )
        return MatchResponse(
            recommendations=_rows_to_results(ranked_df, suggestion=False),
            semantic_suggestions=suggestions,
            total_matches=total_matches,
            matching_strategy=strategy,
        )
