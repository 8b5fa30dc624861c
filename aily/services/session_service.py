"""
Session Service.

Session lifecycle around the per-turn orchestrator: opening a session with
Aily's greeting, closing it with session XP and a level check, and the
teacher-facing statistics.
"""

from typing import List
from datetime import datetime, timezone
import logging

from aily.core.exceptions import NotFoundError, SessionAlreadyEnded, UpstreamError, UpstreamTimeout
from aily.crud.aily import AilyCRUD
from aily.crud.knowledge import KnowledgeCRUD
from aily.crud.session import SessionCRUD
from aily.crud.user import UserCRUD
from aily.agents.orchestrator import build_student_context
from aily.models.aily import AIResponse, Emotion
from aily.models.knowledge import KnowledgeView
from aily.models.session import (
    AilySummary,
    ConceptCount,
    SessionEndResponse,
    SessionMessage,
    SessionRole,
    SessionStartResponse,
    TeacherStats,
)
from aily.models.topic import SectionProgress, TopicProgress, TopicSection
from aily.data.topics import get_topics_by_section
from aily.services import knowledge_tracker as tracker

logger = logging.getLogger(__name__)


def greeting_prompt(topic: str) -> str:
    return f"Hi! Today I'll teach you about {topic}. Ready?"


def fallback_greeting(topic: str, error: UpstreamError) -> AIResponse:
    """Greeting used when the generator cannot greet; wording depends on the failure."""
    if isinstance(error, UpstreamTimeout):
        note = "(The AI assistant is responding slowly, but we can start.)"
    else:
        note = "(The AI assistant is unavailable, but we can start.)"
    return AIResponse(
        message=f"Hi! {note} Today you'll teach me about {topic}. Ready? 🙂",
        emotion=Emotion.CURIOUS,
        understanding_delta=0.0,
        should_ask_question=False,
    )


def section_progress(section: TopicSection, views: List[KnowledgeView]) -> SectionProgress:
    """Progress over a curriculum section from decay-corrected knowledge."""
    topics = get_topics_by_section(section)
    by_concept = {v.concept.lower(): v for v in views}

    progressed = []
    for topic in topics:
        view = by_concept.get(topic.title.lower())
        if view is not None:
            progressed.append(TopicProgress(
                topic_id=topic.id,
                topic_title=topic.title,
                understanding_level=view.understanding_level,
                examples_seen=view.examples_seen,
            ))

    completed = [p for p in progressed if p.understanding_level >= tracker.MASTERY_THRESHOLD]
    average = (
        sum(p.understanding_level for p in progressed) / len(progressed)
        if progressed else 0.0
    )

    return SectionProgress(
        total_topics=len(topics),
        progressed_topics=len(progressed),
        completed_topics=len(completed),
        average_understanding=round(average, 3),
        topics=progressed,
    )


class SessionService:
    """Opens, closes and summarizes teaching sessions."""

    def __init__(
        self,
        user_crud: UserCRUD,
        aily_crud: AilyCRUD,
        knowledge_crud: KnowledgeCRUD,
        session_crud: SessionCRUD,
        agent
    ):
        self.user_crud = user_crud
        self.aily_crud = aily_crud
        self.knowledge_crud = knowledge_crud
        self.session_crud = session_crud
        self.agent = agent

    async def start_session(self, student_id: str, aily_id: str, topic: str) -> SessionStartResponse:
        """
        Open a teaching session and let Aily greet the teacher.

        Raises:
            NotFoundError: If the Aily instance or the user does not exist
        """
        aily = self.aily_crud.get(aily_id)
        if not aily:
            raise NotFoundError(f"Aily instance {aily_id} not found")

        user = self.user_crud.get_user_by_key(student_id)
        if not user:
            raise NotFoundError(f"User {student_id} not found")

        session = self.session_crud.create(student_id, aily_id, topic)
        logger.info(f"📚 Session {session.key} started: {user.name} teaches '{topic}'")

        context = build_student_context(aily, topic, self.knowledge_crud.list_for_agent(aily.key))
        try:
            greeting = await self.agent.generate(greeting_prompt(topic), context, [])
        except UpstreamError as e:
            logger.error(f"❌ Failed to generate greeting: {type(e).__name__}: {e}")
            greeting = fallback_greeting(topic, e)

        self.session_crud.append_messages(session.key, [
            SessionMessage(
                role=SessionRole.AI_STUDENT,
                message=greeting.message,
                timestamp=datetime.now(timezone.utc),
                emotion=greeting.emotion,
            )
        ])

        return SessionStartResponse(
            id=session.key,
            session_id=session.key,
            student_id=student_id,
            ai_student_id=aily.key,
            topic=topic,
            ai_student=aily,
            initial_message=greeting.message,
            initial_emotion=greeting.emotion,
        )

    def end_session(self, session_id: str) -> SessionEndResponse:
        """
        Close a session, award session XP and check for a level-up.

        Raises:
            NotFoundError: If the session or its Aily instance does not exist
            SessionAlreadyEnded: If the session was closed before
        """
        session = self.session_crud.get(session_id)
        if not session:
            raise NotFoundError(f"Session {session_id} not found")
        if session.is_ended:
            raise SessionAlreadyEnded(f"Session {session_id} has already ended")

        messages = len(session.transcript)
        duration_minutes, xp_earned = tracker.session_xp(messages)

        if not self.session_crud.end(session_id, duration_minutes, xp_earned):
            # Lost the race against a concurrent end request
            raise SessionAlreadyEnded(f"Session {session_id} has already ended")

        aily = self.aily_crud.add_xp(session.aily_id, xp_earned)
        if not aily:
            raise NotFoundError(f"Aily instance {session.aily_id} not found")

        new_level, leveled_up = tracker.check_level_up(aily.total_xp, aily.level)
        if leveled_up:
            aily = self.aily_crud.record_level(aily.key, new_level) or aily
            logger.info(f"🎉 Aily {aily.key} reached level {new_level}")

        logger.info(
            f"🏁 Session {session_id} ended: {duration_minutes} min, +{xp_earned} XP, "
            f"total {aily.total_xp}"
        )

        return SessionEndResponse(
            duration_minutes=duration_minutes,
            xp_earned=xp_earned,
            messages_exchanged=messages,
            leveled_up=leveled_up,
            new_level=aily.level,
            total_xp=aily.total_xp,
        )

    def teacher_stats(self, user_id: str) -> TeacherStats:
        aily = self.aily_crud.get_by_user(user_id)
        if not aily:
            return TeacherStats()

        ended = self.session_crud.ended_for_agent(aily.key)
        most_taught = self.knowledge_crud.most_taught(aily.key, limit=10)

        return TeacherStats(
            total_sessions=len(ended),
            total_teaching_minutes=sum(s.duration_minutes for s in ended),
            total_xp_given=aily.total_xp,
            aily_level=aily.level,
            most_taught_concepts=[
                ConceptCount(concept=k.concept, count=k.examples_seen) for k in most_taught
            ],
            aily_instance=AilySummary(
                id=aily.key,
                level=aily.level,
                total_xp=aily.total_xp,
                session_count=self.session_crud.count_for_agent(aily.key),
                knowledge_count=self.knowledge_crud.count_for_agent(aily.key),
            ),
        )
