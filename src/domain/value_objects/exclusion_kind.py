"""
Exclusion kind value object.
"""

from enum import Enum


class ExclusionKind(str, Enum):
    """Why a technician was permanently excluded from an intervention."""

    DECLINED = "declined"
    CANCELLED = "cancelled"
