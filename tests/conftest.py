from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest

from aily.models.aily import AilyInstance, AIResponse, Emotion, PersonalityTraits
from aily.models.knowledge import ConceptKnowledge
from aily.models.session import SessionMessage, SessionRole, TeachingSessionInDB

NOW = datetime(2026, 3, 10, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def make_aily():
    def _make(key="aily1", user_id="user1", level=0, total_xp=0, curiosity=0.7):
        return AilyInstance(
            key=key,
            user_id=user_id,
            level=level,
            total_xp=total_xp,
            personality_traits=PersonalityTraits(curiosity=curiosity),
            created_at=NOW - timedelta(days=30),
        )
    return _make


@pytest.fixture
def make_session():
    def _make(key="sess1", aily_id="aily1", student_id="user1", topic="Variables",
              transcript=None, ended_at=None):
        return TeachingSessionInDB(
            key=key,
            student_id=student_id,
            aily_id=aily_id,
            topic=topic,
            transcript=transcript or [],
            created_at=NOW - timedelta(minutes=10),
            ended_at=ended_at,
        )
    return _make


@pytest.fixture
def make_row():
    def _make(concept="Variables", level=0.5, days_ago=0, examples_seen=1, mastered_at=None):
        return ConceptKnowledge(
            key=f"aily1-{concept}",
            agent_id="aily1",
            concept=concept,
            understanding_level=level,
            examples_seen=examples_seen,
            last_reviewed=NOW - timedelta(days=days_ago),
            mastered_at=mastered_at,
        )
    return _make


def transcript_of(count: int):
    """Alternating teacher / Aily messages."""
    return [
        SessionMessage(
            role=SessionRole.STUDENT if i % 2 == 0 else SessionRole.AI_STUDENT,
            message=f"message {i}",
            timestamp=NOW,
        )
        for i in range(count)
    ]


@pytest.fixture
def reply():
    def _make(emotion=Emotion.UNDERSTANDING, delta=0.1, message="Aha, got it! 😊"):
        return AIResponse(message=message, emotion=emotion, understanding_delta=delta)
    return _make


@pytest.fixture
def agent():
    fake = MagicMock()
    fake.generate = AsyncMock()
    return fake


@pytest.fixture
def cruds():
    """CRUD doubles keyed by name."""
    return {
        "user": MagicMock(),
        "aily": MagicMock(),
        "knowledge": MagicMock(),
        "session": MagicMock(),
    }
