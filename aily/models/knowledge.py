"""
Knowledge Models for the AI student.

One ConceptKnowledge document exists per (Aily instance, concept). It records:
- Understanding level of the concept (0.0-1.0)
- How many reinforcing interactions touched it
- When it was last reviewed (drives decay)
- When it was first mastered (the mastery bonus is paid once)
"""

from typing import Optional
from datetime import datetime
from pydantic import BaseModel, Field


class ConceptKnowledge(BaseModel):
    """Stored understanding of a single curriculum concept."""
    key: Optional[str] = Field(default=None, alias="_key", serialization_alias="key")
    agent_id: str = Field(description="Owning Aily instance key")
    concept: str = Field(description="Curriculum topic name")
    understanding_level: float = Field(
        default=0.0,
        ge=0.0,
        le=1.0,
        description="Understanding from 0.0 (never heard of it) to 1.0 (mastered)"
    )
    examples_seen: int = Field(
        default=0,
        ge=0,
        description="Reinforcing interactions that touched this concept"
    )
    last_reviewed: datetime = Field(description="Most recent interaction timestamp")
    mastered_at: Optional[datetime] = Field(
        default=None,
        description="When the mastery threshold was first crossed"
    )

    model_config = {
        "populate_by_name": True,
        "extra": "ignore"
    }


class KnowledgeView(BaseModel):
    """
    Knowledge row as seen "now": stored level plus its decay-corrected value.
    """
    concept: str
    stored_level: float
    understanding_level: float
    status: str = Field(description="known (>0.7), partial (>0.3) or new")
    examples_seen: int
    last_reviewed: datetime
    decayed: bool = False


class KnowledgeUpdate(BaseModel):
    """Outcome of one interaction write on a knowledge row."""
    concept: str
    previous_level: float
    new_level: float
    examples_seen: int
    mastery_bonus: int = 0
    created: bool = False
