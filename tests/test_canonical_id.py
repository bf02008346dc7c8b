from __future__ import annotations

from scholarmatch.normalize.canonical_id import generate_scholarship_id
from scholarmatch.normalize.schema import EligibilityRule, Scholarship


def test_generate_scholarship_id_is_stable_for_same_input() -> None:
    payload = {
        "name": "Post Matric Scholarship for SC Students",
        "deadline": "2026-10-31",
        "official_url": "https://www.scholarships.gov.in/post-matric",
    }

    assert generate_scholarship_id(**payload) == generate_scholarship_id(**payload)


def test_generate_scholarship_id_ignores_case_whitespace_and_www() -> None:
    first = generate_scholarship_id(
        name="Post Matric  Scholarship",
        deadline="2026-10-31",
        official_url="https://www.scholarships.gov.in/a",
    )
    second = generate_scholarship_id(
        name=" post matric scholarship ",
        deadline="2026-10-31",
        official_url="https://scholarships.gov.in/b",
    )

    assert first == second


def test_generate_scholarship_id_changes_when_deadline_changes() -> None:
    base = {
        "name": "Post Matric Scholarship",
        "deadline": "2026-10-31",
        "official_url": "https://scholarships.gov.in",
    }

    original = generate_scholarship_id(**base)
    changed = generate_scholarship_id(**{**base, "deadline": "2027-10-31"})

    assert original != changed


def test_scholarship_without_id_gets_generated_id() -> None:
    scholarship = Scholarship.from_mapping(
        {
            "name": "Post Matric Scholarship",
            "deadline": "2026-10-31",
            "officialUrl": "https://scholarships.gov.in",
            "eligibility": EligibilityRule.open().to_dict(),
        }
    )

    assert scholarship.id == generate_scholarship_id(
        name="Post Matric Scholarship",
        deadline="2026-10-31",
        official_url="https://scholarships.gov.in",
    )


def test_generate_scholarship_id_treats_deadline_formats_alike() -> None:
    iso = generate_scholarship_id(
        name="Post Matric Scholarship", deadline="2026-10-31", official_url=None
    )
    day_first = generate_scholarship_id(
        name="Post Matric Scholarship", deadline="31/10/2026", official_url=None
    )

    assert iso == day_first
