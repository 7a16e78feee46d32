"""
Dispatch-related domain exceptions.

Business conflicts (too late, already assigned, no candidates) are never
raised; they come back as unsuccessful results. These exceptions cover
lookups that cannot proceed at all.
"""


class DispatchError(Exception):
    """Base exception for dispatch errors."""

    pass


class InterventionNotFoundError(DispatchError):
    """Raised when the intervention does not exist."""

    def __init__(self, intervention_id: str):
        self.intervention_id = intervention_id
        super().__init__(f"Intervention not found: {intervention_id}")
