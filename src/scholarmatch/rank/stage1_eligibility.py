from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Final, Iterable

import numpy as np
import pandas as pd

from scholarmatch.normalize.schema import (
    EligibilityRule,
    Restriction,
    Scholarship,
    Specific,
    Unrestricted,
)
from scholarmatch.profile import ApplicantProfile

# Reason priority order; the scorer and warnings follow it as well.
CRITERION_KEYS: Final[tuple[str, ...]] = (
    "category",
    "state",
    "educationLevel",
    "course",
    "income",
    "gender",
    "area",
    "religion",
    "disability",
)


@dataclass(frozen=True, slots=True)
class Criterion:
    key: str
    specific: bool
    unknown: bool
    applicant_value: Any = None
    required: Any = None

    @property
    def code(self) -> str:
        return f"{self.key.upper()}_{'UNKNOWN' if self.unknown else 'MISMATCH'}"


@dataclass(frozen=True, slots=True)
class EligibilityOutcome:
    eligible: bool
    satisfied: tuple[Criterion, ...]
    violated: tuple[Criterion, ...]

    @property
    def violated_keys(self) -> list[str]:
        return [criterion.key for criterion in self.violated]


def object_column(values: list[Any], index: pd.Index) -> pd.Series:
    """Column of per-row Python objects; avoids numpy unpacking equal-length tuples."""
    column = np.empty(len(values), dtype=object)
    for position, value in enumerate(values):
        column[position] = value
    return pd.Series(column, index=index, dtype=object)


def _check_restriction(key: str, restriction: Restriction, value: Any) -> tuple[bool, Criterion]:
    specific = isinstance(restriction, Specific)
    criterion = Criterion(
        key=key,
        specific=specific,
        unknown=value is None,
        applicant_value=value,
        required=restriction.values if specific else None,
    )
    if isinstance(restriction, Unrestricted):
        return True, criterion
    return restriction.allows(value), criterion


def _check_income(max_income: int | None, income: int | None) -> tuple[bool, Criterion]:
    criterion = Criterion(
        key="income",
        specific=max_income is not None,
        unknown=income is None,
        applicant_value=income,
        required=max_income,
    )
    if max_income is None:
        return True, criterion
    return income is not None and income <= max_income, criterion


def _check_disability(required: bool, disability: bool | None) -> tuple[bool, Criterion]:
    criterion = Criterion(
        key="disability",
        specific=required,
        unknown=disability is None,
        applicant_value=disability,
        required=required,
    )
    if not required:
        return True, criterion
    return disability is True, criterion


def evaluate(profile: ApplicantProfile, rule: EligibilityRule) -> EligibilityOutcome:
    """Check every rule field independently; eligible only when none is violated.

    A missing profile value never satisfies a restricted field.
    """
    checks = {
        "category": _check_restriction("category", rule.categories, profile.category),
        "state": _check_restriction("state", rule.states, profile.state),
        "educationLevel": _check_restriction(
            "educationLevel", rule.education_levels, profile.education_level
        ),
        "course": _check_restriction("course", rule.courses, profile.course),
        "income": _check_income(rule.max_income, profile.income),
        "gender": _check_restriction("gender", rule.gender, profile.gender),
        "area": _check_restriction("area", rule.area, profile.area),
        "religion": _check_restriction("religion", rule.religion, profile.religion),
        "disability": _check_disability(rule.disability, profile.disability),
    }

    satisfied: list[Criterion] = []
    violated: list[Criterion] = []
    for key in CRITERION_KEYS:
        passed, criterion = checks[key]
        (satisfied if passed else violated).append(criterion)

    return EligibilityOutcome(
        eligible=not violated,
        satisfied=tuple(satisfied),
        violated=tuple(violated),
    )


def build_scholarship_frame(scholarships: Iterable[Scholarship]) -> pd.DataFrame:
    records = list(scholarships)
    df = pd.DataFrame(
        {
            "scholarship_id": [scholarship.id for scholarship in records],
            "deadline": [scholarship.deadline for scholarship in records],
        }
    )
    df["rule"] = object_column([scholarship.eligibility for scholarship in records], df.index)
    df["scholarship"] = object_column(records, df.index)
    return df


def apply_eligibility_filter(
    df: pd.DataFrame, profile: ApplicantProfile
) -> tuple[pd.DataFrame, pd.DataFrame]:
    """Split a scholarship frame (one ``rule`` column per row) into eligible and ineligible."""
    with_outcomes_df = df.copy()
    rules = with_outcomes_df.get("rule", pd.Series(dtype=object))
    outcomes = [evaluate(profile, rule) for rule in rules]
    with_outcomes_df["eligible"] = [outcome.eligible for outcome in outcomes]
    with_outcomes_df["satisfied"] = object_column(
        [outcome.satisfied for outcome in outcomes], with_outcomes_df.index
    )
    with_outcomes_df["violated"] = object_column(
        [outcome.violated for outcome in outcomes], with_outcomes_df.index
    )
    with_outcomes_df["reasons"] = object_column(
        [[criterion.code for criterion in outcome.violated] for outcome in outcomes],
        with_outcomes_df.index,
    )

    is_eligible = with_outcomes_df["eligible"].astype(bool)
    eligible_df = with_outcomes_df[is_eligible].copy()
    ineligible_df = with_outcomes_df[~is_eligible].copy()

    return eligible_df, ineligible_df
