from typing import List, Dict
from enum import Enum
from pydantic import BaseModel, Field


class TopicSection(str, Enum):
    BASICS = "basics"
    INTERMEDIATE = "intermediate"
    ADVANCED = "advanced"
    OOP = "oop"
    APPLICATIONS = "applications"
    WEB = "web"


class Difficulty(str, Enum):
    BEGINNER = "beginner"
    INTERMEDIATE = "intermediate"
    ADVANCED = "advanced"


class Topic(BaseModel):
    id: str
    section: TopicSection
    title: str
    description: str
    difficulty: Difficulty
    estimated_minutes: int = Field(gt=0)


class SectionTopics(BaseModel):
    section: TopicSection
    topic_count: int
    topics: List[Topic]


class Curriculum(BaseModel):
    total_topics: int
    sections: Dict[str, SectionTopics]


class TopicProgress(BaseModel):
    topic_id: str
    topic_title: str
    understanding_level: float
    examples_seen: int


class SectionProgress(BaseModel):
    total_topics: int
    progressed_topics: int
    completed_topics: int
    average_understanding: float
    topics: List[TopicProgress] = Field(default_factory=list)
