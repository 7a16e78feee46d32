"""
Application layer package.

This package contains use cases, services, and interfaces that implement
the dispatch logic of the application.
"""

from .services.assignment_state_machine import AssignmentStateMachine
from .services.dispatch_orchestrator import DispatchOrchestrator
from .services.dispatch_policy import DispatchPolicy
from .services.dispatch_results import ActionResult
from .use_cases.handle_dispatch_action import HandleDispatchActionUseCase
from .use_cases.sweep_dispatch_timeouts import SweepDispatchTimeoutsUseCase

__all__ = [
    # Services
    "AssignmentStateMachine",
    "DispatchOrchestrator",
    "DispatchPolicy",
    "ActionResult",
    # Use cases
    "HandleDispatchActionUseCase",
    "SweepDispatchTimeoutsUseCase",
]
