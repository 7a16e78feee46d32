"""
Dispatch tuning knobs shared by the filter, scorer and orchestrator.
"""

from dataclasses import dataclass, field
from datetime import timedelta
from typing import Dict

# Booking categories are English, technician skills are French.
DEFAULT_CATEGORY_ALIASES: Dict[str, str] = {
    "plumbing": "plomberie",
    "electricity": "electricite",
    "heating": "chauffage",
    "locksmith": "serrurerie",
    "glazing": "vitrerie",
    "aircon": "climatisation",
}


@dataclass(frozen=True)
class ScoringWeights:
    """Weights of the composite score."""

    proximity: float = 0.4
    skills: float = 0.3
    workload: float = 0.2
    rating: float = 0.1

    def __post_init__(self):
        for name in ("proximity", "skills", "workload", "rating"):
            if getattr(self, name) < 0:
                raise ValueError(f"Weight '{name}' cannot be negative")
        total = self.proximity + self.skills + self.workload + self.rating
        if abs(total - 1.0) > 1e-6:
            raise ValueError(f"Scoring weights must sum to 1.0, got {total}")


@dataclass(frozen=True)
class DispatchPolicy:
    """Dispatch policy configuration."""

    top_k: int = 3
    offer_timeout_minutes: int = 5
    standby_depth: int = 0
    default_max_concurrent_jobs: int = 3
    cold_start_rating: float = 3.0
    skill_mismatch_score: float = 30.0
    average_speed_kmh: float = 40.0
    weights: ScoringWeights = field(default_factory=ScoringWeights)
    category_aliases: Dict[str, str] = field(
        default_factory=lambda: dict(DEFAULT_CATEGORY_ALIASES)
    )

    def __post_init__(self):
        if self.top_k < 1:
            raise ValueError("top_k must be at least 1")
        if self.offer_timeout_minutes < 1:
            raise ValueError("offer_timeout_minutes must be at least 1")
        if self.standby_depth < 0:
            raise ValueError("standby_depth cannot be negative")
        if self.average_speed_kmh <= 0:
            raise ValueError("average_speed_kmh must be positive")

    @property
    def offer_window(self) -> timedelta:
        return timedelta(minutes=self.offer_timeout_minutes)

    def required_skill(self, category: str) -> str:
        """Skill name a category maps to."""
        key = category.strip().lower()
        return self.category_aliases.get(key, key)

    @classmethod
    def from_settings(cls, settings) -> "DispatchPolicy":
        """Build the policy from application settings."""
        return cls(
            top_k=settings.DISPATCH_TOP_K,
            offer_timeout_minutes=settings.DISPATCH_OFFER_TIMEOUT_MINUTES,
            standby_depth=settings.DISPATCH_STANDBY_DEPTH,
            default_max_concurrent_jobs=settings.DISPATCH_DEFAULT_MAX_CONCURRENT_JOBS,
            cold_start_rating=settings.DISPATCH_COLD_START_RATING,
            skill_mismatch_score=settings.DISPATCH_SKILL_MISMATCH_SCORE,
            average_speed_kmh=settings.DISPATCH_AVERAGE_SPEED_KMH,
            weights=ScoringWeights(
                proximity=settings.DISPATCH_WEIGHT_PROXIMITY,
                skills=settings.DISPATCH_WEIGHT_SKILLS,
                workload=settings.DISPATCH_WEIGHT_WORKLOAD,
                rating=settings.DISPATCH_WEIGHT_RATING,
            ),
        )
