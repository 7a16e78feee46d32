"""
Application services package.
"""

from .assignment_state_machine import AssignmentStateMachine
from .candidate_filter import CandidateFilter, CandidateFilterResult
from .dispatch_orchestrator import DispatchOrchestrator
from .dispatch_policy import DispatchPolicy, ScoringWeights
from .dispatch_results import ActionResult, NotifiedCandidate
from .offer_notifier import OfferNotifier
from .technician_scorer import CandidateScore, TechnicianScorer

__all__ = [
    "ActionResult",
    "AssignmentStateMachine",
    "CandidateFilter",
    "CandidateFilterResult",
    "CandidateScore",
    "DispatchOrchestrator",
    "DispatchPolicy",
    "NotifiedCandidate",
    "OfferNotifier",
    "ScoringWeights",
    "TechnicianScorer",
]
