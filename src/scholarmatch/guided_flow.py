from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Final, Mapping

from scholarmatch.profile import ApplicantProfile

if TYPE_CHECKING:
    from scholarmatch.matcher import MatchResult, ScholarshipMatcher

logger = logging.getLogger(__name__)

RESULTS_STEP: Final[str] = "results"


class InvalidFlowStateError(ValueError):
    """Raised for a flow state the client cannot safely continue from."""


@dataclass(frozen=True, slots=True)
class FlowOption:
    value: str
    label: str

    def to_dict(self) -> dict[str, str]:
        return {"value": self.value, "label": self.label}


@dataclass(frozen=True, slots=True)
class FlowStep:
    id: str
    question: str
    options: tuple[FlowOption, ...]


def _options(*pairs: tuple[str, str]) -> tuple[FlowOption, ...]:
    return tuple(FlowOption(value=value, label=label) for value, label in pairs)


STEPS: Final[tuple[FlowStep, ...]] = (
    FlowStep(
        id="state",
        question="Which state are you from?",
        options=_options(
            ("Maharashtra", "Maharashtra"),
            ("Karnataka", "Karnataka"),
            ("Tamil Nadu", "Tamil Nadu"),
            ("Uttar Pradesh", "Uttar Pradesh"),
            ("Rajasthan", "Rajasthan"),
            ("Madhya Pradesh", "Madhya Pradesh"),
            ("West Bengal", "West Bengal"),
            ("Gujarat", "Gujarat"),
            ("Odisha", "Odisha"),
            ("Jammu and Kashmir", "Jammu & Kashmir"),
            ("Assam", "Assam"),
            ("other", "Other State"),
        ),
    ),
    FlowStep(
        id="category",
        question="What is your caste category?",
        options=_options(
            ("SC", "Scheduled Caste (SC)"),
            ("ST", "Scheduled Tribe (ST)"),
            ("OBC", "Other Backward Class (OBC)"),
            ("General", "General"),
        ),
    ),
    FlowStep(
        id="educationLevel",
        question="What is your current education level?",
        options=_options(
            ("class_1_to_8", "Class 1-8"),
            ("class_9", "Class 9"),
            ("class_10", "Class 10"),
            ("class_11", "Class 11"),
            ("class_12", "Class 12"),
            ("undergraduate", "Undergraduate (UG)"),
            ("postgraduate", "Postgraduate (PG)"),
            ("professional", "Professional Course"),
        ),
    ),
    FlowStep(
        id="income",
        question="What is your annual family income?",
        # Values are bracket ceilings.
        options=_options(
            ("100000", "Below Rs. 1 Lakh"),
            ("200000", "Rs. 1-2 Lakh"),
            ("300000", "Rs. 2-3 Lakh"),
            ("500000", "Rs. 3-5 Lakh"),
            ("800000", "Rs. 5-8 Lakh"),
            ("1000000", "Above Rs. 8 Lakh"),
        ),
    ),
    FlowStep(
        id="gender",
        question="What is your gender?",
        options=_options(("male", "Male"), ("female", "Female"), ("other", "Other")),
    ),
    FlowStep(
        id="disability",
        question="Do you have any disability (40% or more)?",
        options=_options(("true", "Yes"), ("false", "No")),
    ),
    FlowStep(
        id="religion",
        question="What is your religion/community?",
        options=_options(
            ("Hindu", "Hindu"),
            ("Muslim", "Muslim"),
            ("Christian", "Christian"),
            ("Sikh", "Sikh"),
            ("Buddhist", "Buddhist"),
            ("Jain", "Jain"),
            ("other", "Other"),
        ),
    ),
    FlowStep(
        id="area",
        question="Do you live in an urban or rural area?",
        options=_options(("urban", "Urban"), ("rural", "Rural")),
    ),
    FlowStep(
        id="course",
        question="What field/course are you pursuing or planning to pursue?",
        options=_options(
            ("engineering", "Engineering"),
            ("medical", "Medical"),
            ("science", "Science"),
            ("commerce", "Commerce"),
            ("law", "Law"),
            ("management", "Management/MBA"),
            ("arts", "Arts/Humanities"),
            ("other", "Other"),
        ),
    ),
)
STEP_IDS: Final[tuple[str, ...]] = tuple(step.id for step in STEPS)
TOTAL_STEPS: Final[int] = len(STEPS)
_STEP_POSITIONS: Final[dict[str, int]] = {step_id: index for index, step_id in enumerate(STEP_IDS)}


@dataclass(frozen=True, slots=True)
class GuidedFlowState:
    answered_steps: tuple[str, ...] = ()
    answers: Mapping[str, str] = field(default_factory=dict)
    step_index: int = 0

    def __post_init__(self) -> None:
        if isinstance(self.step_index, bool) or not isinstance(self.step_index, int):
            raise InvalidFlowStateError(
                f"Step index must be an integer, got {self.step_index!r}."
            )
        if not 0 <= self.step_index <= TOTAL_STEPS:
            raise InvalidFlowStateError(
                f"Step index {self.step_index} is outside 0..{TOTAL_STEPS}."
            )
        unknown = [step_id for step_id in self.answered_steps if step_id not in _STEP_POSITIONS]
        unknown += [step_id for step_id in self.answers if step_id not in _STEP_POSITIONS]
        if unknown:
            raise InvalidFlowStateError(f"Unknown step id(s): {', '.join(map(str, unknown))}.")
        if len(set(self.answered_steps)) != len(self.answered_steps):
            raise InvalidFlowStateError("Answered steps contain duplicates.")
        if set(self.answered_steps) != set(self.answers):
            raise InvalidFlowStateError("Answered steps and answers disagree.")
        skipped = [
            step_id for step_id in STEP_IDS[: self.step_index] if step_id not in self.answers
        ]
        if skipped:
            raise InvalidFlowStateError(
                f"Steps before the current one are unanswered: {', '.join(skipped)}."
            )

    @property
    def current_step(self) -> str:
        if self.step_index >= TOTAL_STEPS:
            return RESULTS_STEP
        return STEP_IDS[self.step_index]

    @property
    def is_complete(self) -> bool:
        return self.step_index >= TOTAL_STEPS

    @property
    def progress(self) -> float:
        return self.step_index / TOTAL_STEPS

    def profile(self) -> ApplicantProfile:
        return ApplicantProfile.from_mapping(self.answers)

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any] | None) -> GuidedFlowState:
        if payload is None:
            return start_flow()
        if not isinstance(payload, Mapping):
            raise InvalidFlowStateError("Flow state must be an object.")

        answered = payload.get("answeredSteps", [])
        answers = payload.get("answers", {})
        if not isinstance(answered, (list, tuple)) or not isinstance(answers, Mapping):
            raise InvalidFlowStateError("Flow state has malformed answeredSteps or answers.")
        return cls(
            answered_steps=tuple(str(step_id) for step_id in answered),
            answers={str(key): str(value) for key, value in answers.items()},
            step_index=payload.get("stepIndex", 0),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "answeredSteps": list(self.answered_steps),
            "answers": dict(self.answers),
            "stepIndex": self.step_index,
        }


@dataclass(frozen=True, slots=True)
class GuidedFlowResponse:
    next_state: GuidedFlowState
    step_id: str
    question: str | None
    options: tuple[FlowOption, ...]
    results: tuple[MatchResult, ...] | None
    progress: float

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "nextState": self.next_state.to_dict(),
            "stepId": self.step_id,
            "progress": self.progress,
        }
        if self.question is not None:
            payload["question"] = self.question
            payload["options"] = [option.to_dict() for option in self.options]
        if self.results is not None:
            payload["results"] = [result.to_dict() for result in self.results]
        return payload


def start_flow() -> GuidedFlowState:
    return GuidedFlowState()


def describe(state: GuidedFlowState) -> GuidedFlowResponse:
    """Current question and progress for ``state``; never runs matching."""
    if state.is_complete:
        return GuidedFlowResponse(
            next_state=state,
            step_id=RESULTS_STEP,
            question=None,
            options=(),
            results=None,
            progress=state.progress,
        )
    step = STEPS[state.step_index]
    return GuidedFlowResponse(
        next_state=state,
        step_id=step.id,
        question=step.question,
        options=step.options,
        results=None,
        progress=state.progress,
    )


def revisit(state: GuidedFlowState, step_id: str) -> GuidedFlowState:
    """Go back to an earlier step. Later answers are kept."""
    position = _STEP_POSITIONS.get(step_id)
    if position is None:
        raise InvalidFlowStateError(f"Unknown step id: {step_id!r}.")
    if step_id not in state.answers and position > state.step_index:
        raise InvalidFlowStateError(f"Cannot jump ahead to unanswered step {step_id!r}.")
    return GuidedFlowState(
        answered_steps=state.answered_steps,
        answers=dict(state.answers),
        step_index=position,
    )


def _next_unanswered(answers: Mapping[str, str], after: int) -> int:
    for position in range(after + 1, TOTAL_STEPS):
        if STEP_IDS[position] not in answers:
            return position
    return TOTAL_STEPS


def guided_flow_step(
    state: GuidedFlowState,
    step_id: str,
    answer: Any,
    matcher: ScholarshipMatcher,
) -> GuidedFlowResponse:
    """Record ``answer`` for the current step and move on.

    Answering the last open step moves the flow to ``results`` and runs the
    rule-based matcher on the accumulated answers.
    """
    if state.is_complete:
        raise InvalidFlowStateError("The flow is already at results; revisit a step to change it.")
    if step_id != state.current_step:
        raise InvalidFlowStateError(
            f"Expected an answer for {state.current_step!r}, got {step_id!r}."
        )
    if answer is None:
        raise InvalidFlowStateError(f"Missing answer for step {step_id!r}.")

    answers = dict(state.answers)
    answers[step_id] = str(answer).strip()
    answered_steps = state.answered_steps
    if step_id not in answered_steps:
        answered_steps = (*answered_steps, step_id)

    next_state = GuidedFlowState(
        answered_steps=answered_steps,
        answers=answers,
        step_index=_next_unanswered(answers, state.step_index),
    )
    if not next_state.is_complete:
        return describe(next_state)

    response = matcher.match(next_state.profile(), use_semantic_matching=False)
    logger.info(
        "Guided flow complete: %d answers, %d recommendation(s).",
        len(answers),
        len(response.recommendations),
    )
    return GuidedFlowResponse(
        next_state=next_state,
        step_id=RESULTS_STEP,
        question=None,
        options=(),
        results=response.recommendations,
        progress=next_state.progress,
    )
