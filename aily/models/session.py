from typing import Optional, List
from datetime import datetime
from enum import Enum
from pydantic import BaseModel, Field

from .aily import AilyInstance, Emotion
from .knowledge import KnowledgeUpdate


class SessionRole(str, Enum):
    STUDENT = "student"          # the human teacher
    AI_STUDENT = "ai_student"    # Aily


class SessionMessage(BaseModel):
    role: SessionRole
    message: str
    timestamp: datetime
    emotion: Optional[Emotion] = None


class TeachingSessionInDB(BaseModel):
    key: str = Field(alias="_key", serialization_alias="key")
    student_id: str
    aily_id: str
    topic: str
    transcript: List[SessionMessage] = Field(default_factory=list)
    created_at: datetime
    ended_at: Optional[datetime] = None
    duration_minutes: int = 0
    xp_earned: int = 0

    model_config = {
        "populate_by_name": True,
        "extra": "ignore"
    }

    @property
    def is_ended(self) -> bool:
        return self.ended_at is not None


class TeachingSession(TeachingSessionInDB):
    """API model for a session."""
    pass


# ============================================================================
# REQUEST / RESPONSE MODELS
# ============================================================================

class SessionStartRequest(BaseModel):
    student_id: str = Field(alias="studentId")
    ai_student_id: str = Field(alias="aiStudentId")
    topic: str = Field(min_length=1)

    model_config = {"populate_by_name": True}


class SessionStartResponse(BaseModel):
    id: str
    session_id: str
    student_id: str
    ai_student_id: str
    topic: str
    ai_student: AilyInstance
    initial_message: str
    initial_emotion: Emotion
    message: str = "Session started"


class TeachingMessageRequest(BaseModel):
    message: str = Field(min_length=1)


class TeachingMessageResponse(BaseModel):
    ai_response: str
    emotion: Emotion
    understanding_delta: float
    xp_gained: int
    knowledge: Optional[KnowledgeUpdate] = None
    degraded: bool = False


class SessionEndResponse(BaseModel):
    message: str = "Session ended"
    duration_minutes: int
    xp_earned: int
    messages_exchanged: int
    leveled_up: bool
    new_level: int
    total_xp: int


class ConceptCount(BaseModel):
    concept: str
    count: int


class AilySummary(BaseModel):
    id: str
    level: int
    total_xp: int
    session_count: int
    knowledge_count: int


class TeacherStats(BaseModel):
    total_sessions: int = 0
    total_teaching_minutes: int = 0
    total_xp_given: int = 0
    aily_level: int = 0
    most_taught_concepts: List[ConceptCount] = Field(default_factory=list)
    aily_instance: Optional[AilySummary] = None
