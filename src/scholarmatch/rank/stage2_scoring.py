from __future__ import annotations

from typing import Final, Iterable

import pandas as pd

from scholarmatch.helpers import format_rupees
from scholarmatch.rank.stage1_eligibility import CRITERION_KEYS, Criterion, object_column
from scholarmatch.rank.weights import ScorerWeights

EDUCATION_LEVEL_LABELS: Final[dict[str, str]] = {
    "class_1_to_8": "Class 1-8",
    "class_9": "Class 9",
    "class_10": "Class 10",
    "class_11": "Class 11",
    "class_12": "Class 12",
    "undergraduate": "Undergraduate",
    "postgraduate": "Postgraduate",
    "professional": "Professional Course",
}
CRITERION_LABELS: Final[dict[str, str]] = {
    "category": "Category",
    "state": "State",
    "educationLevel": "Education level",
    "course": "Course",
    "income": "Income",
    "gender": "Gender",
    "area": "Area",
    "religion": "Religion",
    "disability": "Disability",
}
_PRIORITY: Final[dict[str, int]] = {key: position for position, key in enumerate(CRITERION_KEYS)}


def _education_label(value: object) -> str:
    return EDUCATION_LEVEL_LABELS.get(str(value), str(value))


def _requirement_text(criterion: Criterion) -> str:
    required = criterion.required
    if criterion.key == "educationLevel":
        return ", ".join(sorted(_education_label(level) for level in required))
    if isinstance(required, (set, frozenset, list, tuple)):
        return ", ".join(sorted(str(item) for item in required))
    return str(required)


def _by_priority(criteria: Iterable[Criterion]) -> list[Criterion]:
    return sorted(criteria, key=lambda criterion: _PRIORITY.get(criterion.key, len(_PRIORITY)))


def compute_eligibility_score(
    satisfied: Iterable[Criterion], weights: ScorerWeights | None = None
) -> float:
    active_weights = weights or ScorerWeights.baseline()
    specificity = sum(1 for criterion in satisfied if criterion.specific)
    score = active_weights.base_score + active_weights.specificity_bonus * specificity
    return float(min(100.0, max(0.0, score)))


def _reason_for(criterion: Criterion) -> str:
    value = criterion.applicant_value
    if criterion.key == "category":
        return f"Matches your category ({value})"
    if criterion.key == "state":
        return f"Available in {value}"
    if criterion.key == "educationLevel":
        return f"Matches your education level ({_education_label(value)})"
    if criterion.key == "course":
        return f"Matches your field ({value})"
    if criterion.key == "income":
        return f"Within income limit ({format_rupees(criterion.required)})"
    if criterion.key == "gender":
        return f"For {value} students"
    if criterion.key == "area":
        return f"For {value} area students"
    if criterion.key == "religion":
        return f"For {value} community"
    return "For students with disabilities"


def build_match_reasons(satisfied: Iterable[Criterion]) -> list[str]:
    """Reasons for restricted fields the applicant matched, strongest signal first."""
    return [_reason_for(criterion) for criterion in _by_priority(satisfied) if criterion.specific]


def _warning_for(criterion: Criterion) -> str:
    label = CRITERION_LABELS.get(criterion.key, criterion.key)
    if criterion.key == "income":
        limit = format_rupees(criterion.required)
        if criterion.unknown:
            return f"Income not provided: limit is {limit}"
        return f"Income exceeds limit of {limit}"
    if criterion.key == "disability":
        return "Disability required: only for students with disabilities"

    requirement = _requirement_text(criterion)
    if criterion.key == "gender":
        requirement = f"{requirement} students"
    elif criterion.key == "area":
        requirement = f"{requirement} area students"
    elif criterion.key == "religion":
        requirement = f"{requirement} community"
    status = "not provided" if criterion.unknown else "mismatch"
    return f"{label} {status}: only for {requirement}"


def build_eligibility_warnings(violated: Iterable[Criterion]) -> list[str]:
    return [_warning_for(criterion) for criterion in _by_priority(violated)]


def score_stage2(eligible_df: pd.DataFrame, weights: ScorerWeights | None = None) -> pd.DataFrame:
    scored_df = eligible_df.copy()
    satisfied_column = list(scored_df.get("satisfied", pd.Series(dtype=object)))

    scored_df["specificity"] = [
        sum(1 for criterion in satisfied if criterion.specific) for satisfied in satisfied_column
    ]
    scored_df["eligibility_score"] = [
        compute_eligibility_score(satisfied, weights) for satisfied in satisfied_column
    ]
    scored_df["match_reasons"] = object_column(
        [build_match_reasons(satisfied) for satisfied in satisfied_column],
        scored_df.index,
    )
    return scored_df


def annotate_warnings(ineligible_df: pd.DataFrame) -> pd.DataFrame:
    annotated_df = ineligible_df.copy()
    violated_column = list(annotated_df.get("violated", pd.Series(dtype=object)))
    annotated_df["eligibility_warnings"] = object_column(
        [build_eligibility_warnings(violated) for violated in violated_column],
        annotated_df.index,
    )
    return annotated_df
