"""
Exclusion record entity.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional
from uuid import UUID, uuid4

from src.domain.value_objects.exclusion_kind import ExclusionKind
from src.domain.value_objects.timestamps import utc_now


@dataclass(frozen=True)
class ExclusionRecord:
    """Permanent record that a technician must never be offered an intervention again."""

    intervention_id: UUID
    technician_id: UUID
    kind: ExclusionKind
    reason: str
    id: UUID = field(default_factory=uuid4)
    created_at: Optional[datetime] = field(default_factory=utc_now)

    def __post_init__(self):
        if not self.reason or not self.reason.strip():
            raise ValueError("Exclusion reason is required")
        object.__setattr__(self, "kind", ExclusionKind(self.kind))
