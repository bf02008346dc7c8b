"""Scholarship matching: eligibility rules, hybrid ranking and the guided flow."""

from scholarmatch.config import MatcherConfig, load_matcher_config
from scholarmatch.guided_flow import (
    GuidedFlowResponse,
    GuidedFlowState,
    InvalidFlowStateError,
    guided_flow_step,
    start_flow,
)
from scholarmatch.matcher import MatchResponse, MatchResult, ScholarshipMatcher
from scholarmatch.normalize.schema import InvalidRuleError, Scholarship
from scholarmatch.profile import ApplicantProfile
from scholarmatch.store import InMemoryScholarshipStore

__all__ = [
    "ApplicantProfile",
    "GuidedFlowResponse",
    "GuidedFlowState",
    "InMemoryScholarshipStore",
    "InvalidFlowStateError",
    "InvalidRuleError",
    "MatchResponse",
    "MatchResult",
    "MatcherConfig",
    "Scholarship",
    "ScholarshipMatcher",
    "guided_flow_step",
    "load_matcher_config",
    "start_flow",
]
