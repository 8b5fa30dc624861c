from typing import Optional, List
from datetime import datetime
from enum import Enum
from pydantic import BaseModel, Field

from .knowledge import KnowledgeView


class Emotion(str, Enum):
    CONFUSED = "confused"
    UNDERSTANDING = "understanding"
    EXCITED = "excited"
    NEUTRAL = "neutral"
    CURIOUS = "curious"


class PersonalityTraits(BaseModel):
    curiosity: float = Field(default=0.7, ge=0.0, le=1.0, description="How often Aily asks questions")
    confusion_rate: float = Field(default=0.5, ge=0.0, le=1.0, description="How easily Aily gets confused")
    learning_speed: float = Field(default=0.6, ge=0.0, le=1.0, description="How quickly Aily learns")


class AilyCharacter(BaseModel):
    """A predefined mood/personality Aily can take on for a session."""
    id: str
    name: str
    description: str
    personality: PersonalityTraits
    learning_style: str
    motivations: List[str] = Field(default_factory=list)
    common_questions: List[str] = Field(default_factory=list)
    psychological_type: str


class AilyInstance(BaseModel):
    """A user's persistent AI student. Knowledge and XP survive mood changes."""
    key: str = Field(alias="_key", serialization_alias="key")
    user_id: str
    current_character_id: str = "curious-explorer"
    level: int = Field(default=0, ge=0)
    total_xp: int = Field(default=0, ge=0)
    personality_traits: PersonalityTraits = Field(default_factory=PersonalityTraits)
    created_at: datetime
    updated_at: Optional[datetime] = None

    model_config = {
        "populate_by_name": True,
        "extra": "ignore"
    }


class AilyDetail(AilyInstance):
    """Aily instance with its knowledge map attached."""
    knowledge: List[KnowledgeView] = Field(default_factory=list)


class ChangeMoodRequest(BaseModel):
    character_id: str = Field(alias="characterId")

    model_config = {"populate_by_name": True}


class AIStudentContext(BaseModel):
    """Everything the generator needs to stay in character."""
    ai_student_id: str
    name: str = "Aily"
    level: int = 0
    grade: int = 8
    known_concepts: List[str] = Field(default_factory=list)
    partial_concepts: List[str] = Field(default_factory=list)
    common_mistakes: List[str] = Field(default_factory=list)
    current_topic: str
    current_topic_understanding: Optional[float] = Field(default=None, ge=0.0, le=1.0)
    personality_traits: PersonalityTraits = Field(default_factory=PersonalityTraits)


class AIResponse(BaseModel):
    """Structured reply from the AI student."""
    message: str
    emotion: Emotion = Emotion.NEUTRAL
    understanding_delta: float = Field(default=0.0, ge=-1.0, le=1.0)
    should_ask_question: bool = False
