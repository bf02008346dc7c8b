from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Any, Final, Mapping

logger = logging.getLogger(__name__)

STATES: Final[tuple[str, ...]] = (
    "Andhra Pradesh",
    "Arunachal Pradesh",
    "Assam",
    "Bihar",
    "Chhattisgarh",
    "Goa",
    "Gujarat",
    "Haryana",
    "Himachal Pradesh",
    "Jharkhand",
    "Karnataka",
    "Kerala",
    "Madhya Pradesh",
    "Maharashtra",
    "Manipur",
    "Meghalaya",
    "Mizoram",
    "Nagaland",
    "Odisha",
    "Punjab",
    "Rajasthan",
    "Sikkim",
    "Tamil Nadu",
    "Telangana",
    "Tripura",
    "Uttar Pradesh",
    "Uttarakhand",
    "West Bengal",
    "Andaman and Nicobar Islands",
    "Chandigarh",
    "Dadra and Nagar Haveli and Daman and Diu",
    "Delhi",
    "Jammu and Kashmir",
    "Ladakh",
    "Lakshadweep",
    "Puducherry",
    "other",
)
CATEGORIES: Final[tuple[str, ...]] = ("SC", "ST", "OBC", "General", "EWS")
EDUCATION_LEVELS: Final[tuple[str, ...]] = (
    "class_1_to_8",
    "class_9",
    "class_10",
    "class_11",
    "class_12",
    "undergraduate",
    "postgraduate",
    "professional",
)
GENDERS: Final[tuple[str, ...]] = ("male", "female", "other")
RELIGIONS: Final[tuple[str, ...]] = (
    "Hindu",
    "Muslim",
    "Christian",
    "Sikh",
    "Buddhist",
    "Jain",
    "Parsi",
    "other",
)
AREAS: Final[tuple[str, ...]] = ("urban", "rural")
COURSES: Final[tuple[str, ...]] = (
    "engineering",
    "medical",
    "science",
    "commerce",
    "law",
    "management",
    "arts",
    "other",
)

PROFILE_FIELDS: Final[tuple[str, ...]] = (
    "state",
    "category",
    "educationLevel",
    "income",
    "gender",
    "disability",
    "religion",
    "area",
    "course",
)

_VOCABULARIES: Final[dict[str, tuple[str, ...]]] = {
    "state": STATES,
    "category": CATEGORIES,
    "educationLevel": EDUCATION_LEVELS,
    "gender": GENDERS,
    "religion": RELIGIONS,
    "area": AREAS,
    "course": COURSES,
}
_SNAKE_ALIASES: Final[dict[str, str]] = {"education_level": "educationLevel"}
_TRUE_VALUES: Final[frozenset[str]] = frozenset({"true", "yes", "y", "1"})
_FALSE_VALUES: Final[frozenset[str]] = frozenset({"false", "no", "n", "0"})
_INCOME_SEPARATORS = re.compile(r"[,\s_]")


def normalize_key(value: Any) -> str | None:
    """Case- and whitespace-insensitive comparison key."""
    if value is None:
        return None
    text = " ".join(str(value).split()).casefold()
    return text or None


def canonical_choice(field_name: str, value: Any) -> str | None:
    vocabulary = _VOCABULARIES[field_name]
    key = normalize_key(value)
    if key is None:
        return None
    for option in vocabulary:
        if normalize_key(option) == key:
            return option
    logger.debug("Ignoring out-of-vocabulary %s value %r", field_name, value)
    return None


def coerce_income(value: Any) -> int | None:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value if value >= 0 else None
    if isinstance(value, float):
        if value != value or value < 0:
            return None
        return int(value)
    text = _INCOME_SEPARATORS.sub("", str(value))
    if not text.isdigit():
        logger.debug("Ignoring malformed income value %r", value)
        return None
    return int(text)


def coerce_flag(value: Any) -> bool | None:
    if isinstance(value, bool):
        return value
    key = normalize_key(value)
    if key in _TRUE_VALUES:
        return True
    if key in _FALSE_VALUES:
        return False
    return None


@dataclass(frozen=True, slots=True)
class ApplicantProfile:
    state: str | None = None
    category: str | None = None
    education_level: str | None = None
    income: int | None = None
    gender: str | None = None
    disability: bool | None = None
    religion: str | None = None
    area: str | None = None
    course: str | None = None

    @classmethod
    def from_mapping(cls, payload: Mapping[str, Any] | None) -> ApplicantProfile:
        """Build a profile from wire-format answers.

        Keys may be camelCase or snake_case. Anything malformed is dropped to
        ``None`` so that it reads as "unknown" downstream; this never raises.
        """
        values: dict[str, Any] = {}
        for key, value in (payload or {}).items():
            values[_SNAKE_ALIASES.get(key, key)] = value

        return cls(
            state=canonical_choice("state", values.get("state")),
            category=canonical_choice("category", values.get("category")),
            education_level=canonical_choice("educationLevel", values.get("educationLevel")),
            income=coerce_income(values.get("income")),
            gender=canonical_choice("gender", values.get("gender")),
            disability=coerce_flag(values.get("disability")),
            religion=canonical_choice("religion", values.get("religion")),
            area=canonical_choice("area", values.get("area")),
            course=canonical_choice("course", values.get("course")),
        )

    def get(self, field_name: str) -> Any:
        return getattr(self, "education_level" if field_name == "educationLevel" else field_name)

    def known_fields(self) -> list[str]:
        return [name for name in PROFILE_FIELDS if self.get(name) is not None]

    def to_dict(self) -> dict[str, Any]:
        return {name: self.get(name) for name in PROFILE_FIELDS if self.get(name) is not None}
