from __future__ import annotations

import hashlib
from typing import Final

from scholarmatch.helpers import format_rupees
from scholarmatch.normalize.schema import Restriction, Scholarship, Specific
from scholarmatch.profile import ApplicantProfile

# Bump when either template changes so stored vectors are re-embedded.
EMBEDDING_TEXT_VERSION: Final[str] = "1.1.0"

CATEGORY_PHRASES: Final[dict[str, str]] = {
    "SC": "Scheduled Caste (SC)",
    "ST": "Scheduled Tribe (ST)",
    "OBC": "Other Backward Class (OBC)",
    "General": "General category",
    "EWS": "Economically Weaker Section (EWS)",
}
EDUCATION_LEVEL_ALIASES: Final[dict[str, str]] = {
    "class_1_to_8": "Class 1 to 8, primary school, elementary, middle school",
    "class_9": "Class 9, 9th grade, secondary school",
    "class_10": "Class 10, 10th grade, SSLC, matric, secondary school",
    "class_11": "Class 11, 11th grade, plus one, intermediate first year, junior college",
    "class_12": "Class 12, 12th grade, plus two, HSC, pre-university, intermediate second year",
    "undergraduate": (
        "Undergraduate, bachelor degree, graduation, UG, college, BA, BSc, BCom, BTech, BE"
    ),
    "postgraduate": (
        "Postgraduate, master degree, PG, post graduation, MA, MSc, MCom, MTech, ME, MBA"
    ),
    "professional": (
        "Professional courses, engineering, medical, law, MBBS, LLB, chartered accountancy"
    ),
}
AREA_PHRASES: Final[dict[str, str]] = {
    "rural": "rural area students, village, countryside",
    "urban": "urban area students, city, metropolitan",
}


def income_bracket_phrase(income: int) -> str | None:
    if income <= 100000:
        return "economically weaker families, very low income, BPL, below poverty line"
    if income <= 250000:
        return "low income families, economically disadvantaged"
    if income <= 500000:
        return "lower middle income families"
    if income <= 800000:
        return "middle income families"
    return None


def _values(restriction: Restriction) -> list[str]:
    if isinstance(restriction, Specific):
        return sorted(restriction.values)
    return []


def build_scholarship_text(scholarship: Scholarship) -> str:
    """Name, description and a flattened eligibility summary in student-facing phrasing."""
    rule = scholarship.eligibility
    parts: list[str] = [f"{scholarship.name} scholarship"]
    if scholarship.description:
        parts.append(scholarship.description.rstrip("."))

    states = _values(rule.states)
    if states:
        joined = ", ".join(states)
        parts.append(f"For students from {joined}")
        parts.append(f"State-specific scholarship for {joined}")
    else:
        parts.append("Available across all states in India, nationwide scholarship, pan-India")

    categories = _values(rule.categories)
    if categories:
        parts.append(
            ". ".join(
                f"{CATEGORY_PHRASES.get(category, category)} students eligible"
                for category in categories
            )
        )
    else:
        parts.append("Open to all categories")

    if rule.max_income is not None:
        parts.append(f"Family income limit: {format_rupees(rule.max_income)} per annum")
        bracket = income_bracket_phrase(rule.max_income)
        if bracket:
            parts.append(f"For {bracket}")
    else:
        parts.append("No income restriction, open to all income levels")

    levels = _values(rule.education_levels)
    if levels:
        expanded = "; ".join(EDUCATION_LEVEL_ALIASES.get(level, level) for level in levels)
        parts.append(f"Education levels: {expanded}")

    genders = _values(rule.gender)
    if "female" in genders:
        parts.append("For female students only, girls scholarship, women empowerment")
    elif "male" in genders:
        parts.append("For male students only")

    if rule.disability:
        parts.append("For students with disabilities, PwD, differently abled, special needs")

    religions = _values(rule.religion)
    if religions:
        parts.append(f"For {', '.join(religions)} community students")

    for area in _values(rule.area):
        if area in AREA_PHRASES:
            parts.append(f"For {AREA_PHRASES[area]}")

    courses = _values(rule.courses)
    if courses:
        parts.append(f"Field of study: {', '.join(courses)}")

    if scholarship.benefits:
        parts.append(f"Benefits: {scholarship.benefits}")

    return ". ".join(parts)


def build_profile_text(profile: ApplicantProfile) -> str:
    """Template the known profile attributes with the same phrasing as the scholarship text."""
    parts: list[str] = []

    if profile.state:
        parts.append(f"Student from {profile.state}")
        parts.append(f"Looking for scholarships in {profile.state}")
    else:
        parts.append("Looking for nationwide scholarships, pan-India opportunities")

    if profile.category:
        phrase = CATEGORY_PHRASES.get(profile.category, profile.category)
        parts.append(f"{phrase} student, {profile.category} category eligible")

    if profile.gender == "female":
        parts.append("Female student, girl student, women scholarship seeker")
    elif profile.gender == "male":
        parts.append("Male student")

    if profile.education_level:
        alias = EDUCATION_LEVEL_ALIASES.get(profile.education_level, profile.education_level)
        parts.append(f"Studying {alias}")

    if profile.course:
        parts.append(f"Field of study: {profile.course}")
        parts.append(f"Pursuing {profile.course}")

    if profile.income is not None:
        parts.append(f"Family income: {format_rupees(profile.income)} per annum")
        bracket = income_bracket_phrase(profile.income)
        if bracket:
            parts.append(f"From {bracket}")

    if profile.disability:
        parts.append("Student with disability, PwD, differently abled, special needs")

    if profile.religion and profile.religion != "other":
        parts.append(f"{profile.religion} community student")

    if profile.area in AREA_PHRASES:
        parts.append(f"From {AREA_PHRASES[profile.area]}")

    return ". ".join(parts) + "."


def compute_text_hash(text: str) -> str:
    payload = f"{EMBEDDING_TEXT_VERSION}|{text}"
    return hashlib.sha1(payload.encode("utf-8")).hexdigest()
