from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Final, Iterable, Mapping

from scholarmatch.normalize.canonical_id import generate_scholarship_id
from scholarmatch.profile import coerce_flag, normalize_key

ALL_SENTINEL: Final[str] = "all"
SCHOLARSHIP_TYPES: Final[frozenset[str]] = frozenset({"public", "private"})
SCHOLARSHIP_STATUSES: Final[frozenset[str]] = frozenset({"approved", "pending", "rejected"})


class InvalidRuleError(ValueError):
    """Raised when a scholarship eligibility rule cannot be interpreted."""


@dataclass(frozen=True, slots=True)
class Unrestricted:
    """The rule field imposes no restriction."""

    def allows(self, value: Any) -> bool:
        return True

    def describe(self) -> str:
        return ALL_SENTINEL


UNRESTRICTED: Final[Unrestricted] = Unrestricted()


@dataclass(frozen=True, slots=True)
class Specific:
    values: frozenset[str]

    def __post_init__(self) -> None:
        if not self.values:
            raise InvalidRuleError(
                "A specific restriction needs at least one value; use 'all' for no restriction."
            )

    def allows(self, value: Any) -> bool:
        key = normalize_key(value)
        if key is None:
            return False
        return key in {normalize_key(item) for item in self.values}

    def describe(self) -> str:
        return ", ".join(sorted(self.values))


Restriction = Unrestricted | Specific


def parse_restriction(value: Any, *, field_name: str) -> Restriction:
    if value is None:
        raise InvalidRuleError(
            f"Eligibility field '{field_name}' is missing; absence of restriction must be 'all'."
        )
    if isinstance(value, (Unrestricted, Specific)):
        return value
    if isinstance(value, str):
        items: Iterable[Any] = [value]
    elif isinstance(value, Iterable):
        items = value
    else:
        raise InvalidRuleError(f"Unsupported value for eligibility field '{field_name}': {value!r}")

    cleaned: set[str] = set()
    for item in items:
        text = " ".join(str(item).split()) if item is not None else ""
        if not text:
            continue
        if text.casefold() == ALL_SENTINEL:
            return UNRESTRICTED
        cleaned.add(text)
    if not cleaned:
        raise InvalidRuleError(
            f"Eligibility field '{field_name}' is empty; absence of restriction must be 'all'."
        )
    return Specific(frozenset(cleaned))


def _parse_max_income(value: Any) -> int | None:
    if value is None or value == "":
        return None
    if isinstance(value, bool):
        raise InvalidRuleError(f"Invalid maxIncome: {value!r}")
    try:
        parsed = int(float(value))
    except (TypeError, ValueError) as exc:
        raise InvalidRuleError(f"Invalid maxIncome: {value!r}") from exc
    if parsed < 0:
        raise InvalidRuleError(f"maxIncome must be non-negative (received {parsed}).")
    return parsed


@dataclass(frozen=True, slots=True)
class EligibilityRule:
    states: Restriction = UNRESTRICTED
    categories: Restriction = UNRESTRICTED
    max_income: int | None = None
    education_levels: Restriction = UNRESTRICTED
    gender: Restriction = UNRESTRICTED
    disability: bool = False
    religion: Restriction = UNRESTRICTED
    area: Restriction = UNRESTRICTED
    courses: Restriction = UNRESTRICTED

    @classmethod
    def open(cls) -> EligibilityRule:
        return cls()

    @classmethod
    def from_mapping(cls, payload: Mapping[str, Any] | None) -> EligibilityRule:
        """Parse a stored rule. Every restriction field must be present; open ones say 'all'."""
        if not isinstance(payload, Mapping):
            raise InvalidRuleError("Scholarship record has no eligibility rule.")

        def _restriction(key: str, snake_key: str | None = None) -> Restriction:
            value = payload.get(key)
            if value is None and snake_key is not None:
                value = payload.get(snake_key)
            return parse_restriction(value, field_name=key)

        return cls(
            states=_restriction("states"),
            categories=_restriction("categories"),
            max_income=_parse_max_income(payload.get("maxIncome", payload.get("max_income"))),
            education_levels=_restriction("educationLevels", "education_levels"),
            gender=_restriction("gender"),
            disability=coerce_flag(payload.get("disability")) is True,
            religion=_restriction("religion"),
            area=_restriction("area"),
            courses=_restriction("courses"),
        )

    def to_dict(self) -> dict[str, Any]:
        def _sets(restriction: Restriction) -> list[str]:
            if isinstance(restriction, Specific):
                return sorted(restriction.values)
            return [ALL_SENTINEL]

        def _single(restriction: Restriction) -> str:
            return restriction.describe()

        return {
            "states": _sets(self.states),
            "categories": _sets(self.categories),
            "maxIncome": self.max_income,
            "educationLevels": _sets(self.education_levels),
            "gender": _single(self.gender),
            "disability": self.disability,
            "religion": _sets(self.religion),
            "area": _single(self.area),
            "courses": _sets(self.courses),
        }


def _as_text_list(value: Any) -> tuple[str, ...]:
    if value is None:
        return ()
    if isinstance(value, str):
        cleaned = value.strip()
        return (cleaned,) if cleaned else ()
    return tuple(str(item).strip() for item in value if str(item).strip())


@dataclass(frozen=True, slots=True)
class Scholarship:
    """Canonical scholarship record read by the matcher."""

    id: str
    name: str
    description: str = ""
    eligibility: EligibilityRule = field(default_factory=EligibilityRule.open)
    benefits: str = ""
    deadline: str = ""
    application_steps: tuple[str, ...] = ()
    required_documents: tuple[str, ...] = ()
    official_url: str = ""
    type: str = "public"
    status: str = "approved"
    donor_name: str = ""

    def __post_init__(self) -> None:
        if self.type not in SCHOLARSHIP_TYPES:
            raise ValueError(f"Unsupported scholarship type: {self.type!r}")
        if self.status not in SCHOLARSHIP_STATUSES:
            raise ValueError(f"Unsupported scholarship status: {self.status!r}")

    @property
    def is_approved(self) -> bool:
        return self.status == "approved"

    @classmethod
    def from_mapping(cls, payload: Mapping[str, Any]) -> Scholarship:
        name = str(payload.get("name") or "").strip()
        if not name:
            raise ValueError("Scholarship record requires a name.")
        deadline = str(payload.get("deadline") or "").strip()
        official_url = str(payload.get("officialUrl") or payload.get("official_url") or "").strip()
        scholarship_id = str(payload.get("id") or "").strip() or generate_scholarship_id(
            name=name,
            deadline=deadline,
            official_url=official_url,
        )
        return cls(
            id=scholarship_id,
            name=name,
            description=str(payload.get("description") or "").strip(),
            eligibility=EligibilityRule.from_mapping(payload.get("eligibility")),
            benefits=str(payload.get("benefits") or "").strip(),
            deadline=deadline,
            application_steps=_as_text_list(
                payload.get("applicationSteps", payload.get("application_steps"))
            ),
            required_documents=_as_text_list(
                payload.get("requiredDocuments", payload.get("required_documents"))
            ),
            official_url=official_url,
            type=str(payload.get("type") or "public"),
            status=str(payload.get("status") or "approved"),
            donor_name=str(payload.get("donorName") or payload.get("donor_name") or "").strip(),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "eligibility": self.eligibility.to_dict(),
            "benefits": self.benefits,
            "deadline": self.deadline,
            "applicationSteps": list(self.application_steps),
            "requiredDocuments": list(self.required_documents),
            "officialUrl": self.official_url,
            "type": self.type,
            "status": self.status,
            "donorName": self.donor_name,
        }
