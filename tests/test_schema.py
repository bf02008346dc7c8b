from __future__ import annotations

import pytest

from scholarmatch.normalize.schema import (
    UNRESTRICTED,
    EligibilityRule,
    InvalidRuleError,
    Scholarship,
    Specific,
    Unrestricted,
    parse_restriction,
)
from scholarmatch.profile import ApplicantProfile

OPEN_RULE = EligibilityRule.open().to_dict()


def test_all_sentinel_parses_to_unrestricted() -> None:
    assert parse_restriction(["all"], field_name="states") == UNRESTRICTED
    assert parse_restriction("ALL", field_name="gender") == UNRESTRICTED
    assert parse_restriction(["SC", "all"], field_name="categories") == UNRESTRICTED


def test_specific_restriction_keeps_values() -> None:
    restriction = parse_restriction(["SC", " ST "], field_name="categories")

    assert restriction == Specific(frozenset({"SC", "ST"}))
    assert restriction.allows("sc")
    assert not restriction.allows("OBC")
    assert not restriction.allows(None)


def test_specific_restriction_cannot_be_empty() -> None:
    with pytest.raises(InvalidRuleError):
        Specific(frozenset())
    with pytest.raises(InvalidRuleError):
        parse_restriction(["", "  "], field_name="states")


def test_missing_restriction_is_rejected_not_opened() -> None:
    with pytest.raises(InvalidRuleError):
        parse_restriction(None, field_name="courses")
    with pytest.raises(InvalidRuleError, match="states"):
        EligibilityRule.from_mapping({"categories": ["SC"]})
    with pytest.raises(InvalidRuleError, match="gender"):
        EligibilityRule.from_mapping({**OPEN_RULE, "gender": None})
    with pytest.raises(InvalidRuleError):
        EligibilityRule.from_mapping(None)


def test_optional_income_and_disability_may_be_omitted() -> None:
    payload = {
        key: value for key, value in OPEN_RULE.items() if key not in {"maxIncome", "disability"}
    }

    assert EligibilityRule.from_mapping(payload) == EligibilityRule.open()


def test_scholarship_without_rule_is_rejected() -> None:
    with pytest.raises(InvalidRuleError):
        Scholarship.from_mapping({"id": "x", "name": "X"})


def test_unrestricted_allows_missing_values() -> None:
    assert Unrestricted().allows(None)


@pytest.mark.parametrize("value", ["lots", -5, True])
def test_invalid_max_income_is_rejected(value: object) -> None:
    with pytest.raises(InvalidRuleError):
        EligibilityRule.from_mapping({**OPEN_RULE, "maxIncome": value})


def test_rule_accepts_snake_case_keys() -> None:
    rule = EligibilityRule.from_mapping(
        {
            "states": ["all"],
            "categories": ["all"],
            "max_income": "250000",
            "education_levels": ["undergraduate"],
            "gender": "all",
            "disability": "true",
            "religion": ["all"],
            "area": "all",
            "courses": ["all"],
        }
    )

    assert rule.max_income == 250000
    assert rule.education_levels == Specific(frozenset({"undergraduate"}))
    assert rule.disability is True


def test_rule_to_dict_writes_all_sentinel_for_open_fields() -> None:
    payload = EligibilityRule.from_mapping({**OPEN_RULE, "categories": ["ST", "SC"]}).to_dict()

    assert payload["categories"] == ["SC", "ST"]
    assert payload["states"] == ["all"]
    assert payload["gender"] == "all"
    assert payload["maxIncome"] is None


def test_scholarship_rejects_unknown_status() -> None:
    with pytest.raises(ValueError):
        Scholarship(id="x", name="X", status="archived")


def test_scholarship_from_mapping_requires_a_name() -> None:
    with pytest.raises(ValueError):
        Scholarship.from_mapping({"id": "x"})


def test_profile_from_mapping_drops_malformed_values() -> None:
    profile = ApplicantProfile.from_mapping(
        {
            "state": "Atlantis",
            "category": "sc",
            "educationLevel": "UNDERGRADUATE",
            "income": "1,50,000",
            "gender": 7,
            "disability": "maybe",
            "religion": "other",
            "area": "Rural",
            "course": None,
        }
    )

    assert profile == ApplicantProfile(
        category="SC",
        education_level="undergraduate",
        income=150000,
        religion="other",
        area="rural",
    )


def test_profile_accepts_snake_case_and_reports_known_fields() -> None:
    profile = ApplicantProfile.from_mapping({"education_level": "class_10", "income": -1})

    assert profile.education_level == "class_10"
    assert profile.income is None
    assert profile.known_fields() == ["educationLevel"]
    assert profile.to_dict() == {"educationLevel": "class_10"}
