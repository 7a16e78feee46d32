"""
Use cases package.

This package contains the use cases that drive the dispatch engine
from the API and the background scheduler.
"""

from .handle_dispatch_action import (
    AcceptRequest,
    AdvanceRequest,
    CancelRequest,
    CheckTimeoutRequest,
    DeclineRequest,
    DispatchRequest,
    GoRequest,
    HandleDispatchActionUseCase,
    RejectRequest,
)
from .sweep_dispatch_timeouts import SweepDispatchTimeoutsUseCase, SweepResult

__all__ = [
    "AcceptRequest",
    "AdvanceRequest",
    "CancelRequest",
    "CheckTimeoutRequest",
    "DeclineRequest",
    "DispatchRequest",
    "GoRequest",
    "HandleDispatchActionUseCase",
    "RejectRequest",
    "SweepDispatchTimeoutsUseCase",
    "SweepResult",
]
