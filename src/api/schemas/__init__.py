"""
API schemas for the Intervention Dispatch Service.
"""

from .common import BaseResponse, ErrorResponse
from .dispatch import (
    ActionRequestSchema,
    ActionResultResponse,
    DispatchAttemptResponse,
    ExclusionResponse,
    InterventionResponse,
)

__all__ = [
    "BaseResponse",
    "ErrorResponse",
    "ActionRequestSchema",
    "ActionResultResponse",
    "DispatchAttemptResponse",
    "ExclusionResponse",
    "InterventionResponse",
]
