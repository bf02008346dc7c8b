from __future__ import annotations

from scholarmatch.normalize.schema import EligibilityRule, Scholarship
from scholarmatch.profile import ApplicantProfile
from scholarmatch.rank.stage1_eligibility import (
    apply_eligibility_filter,
    build_scholarship_frame,
    evaluate,
)
from scholarmatch.rank.stage2_scoring import (
    annotate_warnings,
    build_eligibility_warnings,
    build_match_reasons,
    compute_eligibility_score,
    score_stage2,
)
from scholarmatch.rank.weights import ScorerWeights

OPEN_RULE = EligibilityRule.open().to_dict()


def test_open_rule_scores_the_base_score() -> None:
    outcome = evaluate(ApplicantProfile(), EligibilityRule.open())

    assert compute_eligibility_score(outcome.satisfied) == 55.0


def test_each_specific_match_adds_the_specificity_bonus() -> None:
    rule = EligibilityRule.from_mapping({**OPEN_RULE, "categories": ["SC"], "states": ["Bihar"]})
    profile = ApplicantProfile.from_mapping({"category": "SC", "state": "Bihar"})

    outcome = evaluate(profile, rule)

    assert compute_eligibility_score(outcome.satisfied) == 65.0


def test_score_is_capped_at_one_hundred() -> None:
    rule = EligibilityRule.from_mapping({**OPEN_RULE, "categories": ["SC"], "states": ["Bihar"]})
    profile = ApplicantProfile.from_mapping({"category": "SC", "state": "Bihar"})
    weights = ScorerWeights(base_score=95.0, specificity_bonus=10.0)

    outcome = evaluate(profile, rule)

    assert compute_eligibility_score(outcome.satisfied, weights) == 100.0


def test_adding_a_matching_field_never_lowers_the_score() -> None:
    rule = EligibilityRule.from_mapping({**OPEN_RULE, "categories": ["SC"], "courses": ["law"]})
    partial = ApplicantProfile.from_mapping({"category": "SC", "course": "law"})
    fuller = ApplicantProfile.from_mapping({"category": "SC", "course": "law", "state": "Goa"})

    partial_score = compute_eligibility_score(evaluate(partial, rule).satisfied)
    fuller_score = compute_eligibility_score(evaluate(fuller, rule).satisfied)

    assert fuller_score >= partial_score


def test_match_reasons_follow_priority_order() -> None:
    rule = EligibilityRule.from_mapping(
        {
            **OPEN_RULE,
            "states": ["Karnataka"],
            "categories": ["SC", "ST"],
            "maxIncome": 200000,
            "educationLevels": ["undergraduate"],
            "gender": "female",
            "area": "rural",
        }
    )
    profile = ApplicantProfile.from_mapping(
        {
            "state": "Karnataka",
            "category": "SC",
            "income": 150000,
            "educationLevel": "undergraduate",
            "gender": "female",
            "area": "rural",
        }
    )

    reasons = build_match_reasons(evaluate(profile, rule).satisfied)

    assert reasons == [
        "Matches your category (SC)",
        "Available in Karnataka",
        "Matches your education level (Undergraduate)",
        "Within income limit (Rs. 2,00,000)",
        "For female students",
        "For rural area students",
    ]


def test_unrestricted_fields_produce_no_reasons() -> None:
    outcome = evaluate(ApplicantProfile.from_mapping({"state": "Goa"}), EligibilityRule.open())

    assert build_match_reasons(outcome.satisfied) == []


def test_warnings_distinguish_mismatch_from_missing_value() -> None:
    rule = EligibilityRule.from_mapping({**OPEN_RULE, "states": ["Karnataka"], "maxIncome": 200000})

    mismatch = evaluate(ApplicantProfile(state="Kerala", income=300000), rule)
    missing = evaluate(ApplicantProfile(), rule)

    assert build_eligibility_warnings(mismatch.violated) == [
        "State mismatch: only for Karnataka",
        "Income exceeds limit of Rs. 2,00,000",
    ]
    assert build_eligibility_warnings(missing.violated) == [
        "State not provided: only for Karnataka",
        "Income not provided: limit is Rs. 2,00,000",
    ]


def test_score_stage2_and_annotate_warnings_add_columns() -> None:
    scholarships = [
        Scholarship.from_mapping(
            {"id": "sc", "name": "SC Award", "eligibility": {**OPEN_RULE, "categories": ["SC"]}}
        ),
        Scholarship.from_mapping(
            {"id": "st", "name": "ST Award", "eligibility": {**OPEN_RULE, "categories": ["ST"]}}
        ),
    ]
    profile = ApplicantProfile(category="SC")

    eligible_df, ineligible_df = apply_eligibility_filter(
        build_scholarship_frame(scholarships), profile
    )
    scored_df = score_stage2(eligible_df)
    annotated_df = annotate_warnings(ineligible_df)

    assert scored_df["eligibility_score"].tolist() == [60.0]
    assert scored_df["specificity"].tolist() == [1]
    assert scored_df["match_reasons"].tolist() == [["Matches your category (SC)"]]
    assert annotated_df["eligibility_warnings"].tolist() == [["Category mismatch: only for ST"]]
