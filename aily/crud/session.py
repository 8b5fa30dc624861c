from typing import List, Optional
from datetime import datetime, timezone
from arango.database import StandardDatabase

from aily.models.session import TeachingSessionInDB, SessionMessage


class SessionCRUD:
    """Teaching session database operations."""

    def __init__(self, db: StandardDatabase):
        self.db = db
        self.collection = db.collection('teaching_sessions')

    def create(self, student_id: str, aily_id: str, topic: str) -> TeachingSessionInDB:
        doc = {
            "student_id": student_id,
            "aily_id": aily_id,
            "topic": topic,
            "transcript": [],
            "created_at": datetime.now(timezone.utc).isoformat(),
            "ended_at": None,
            "duration_minutes": 0,
            "xp_earned": 0,
        }
        result = self.collection.insert(doc, return_new=True)
        return TeachingSessionInDB(**result['new'])

    def get(self, session_id: str) -> Optional[TeachingSessionInDB]:
        doc = self.collection.get(session_id)
        return TeachingSessionInDB(**doc) if doc else None

    def append_messages(self, session_id: str, messages: List[SessionMessage]) -> Optional[TeachingSessionInDB]:
        """Append transcript entries in one server-side update."""
        cursor = self.db.aql.execute(
            """
            FOR s IN teaching_sessions
                FILTER s._key == @key
                UPDATE s WITH { transcript: APPEND(s.transcript, @messages) } IN teaching_sessions
                RETURN NEW
            """,
            bind_vars={
                'key': session_id,
                'messages': [m.model_dump(mode="json") for m in messages],
            }
        )
        docs = list(cursor)
        return TeachingSessionInDB(**docs[0]) if docs else None

    def end(
        self,
        session_id: str,
        duration_minutes: int,
        xp_earned: int
    ) -> Optional[TeachingSessionInDB]:
        """Mark a session as ended. Returns None if it was already ended."""
        cursor = self.db.aql.execute(
            """
            FOR s IN teaching_sessions
                FILTER s._key == @key AND s.ended_at == null
                UPDATE s WITH {
                    ended_at: @now,
                    duration_minutes: @duration,
                    xp_earned: @xp
                } IN teaching_sessions
                RETURN NEW
            """,
            bind_vars={
                'key': session_id,
                'now': datetime.now(timezone.utc).isoformat(),
                'duration': duration_minutes,
                'xp': xp_earned,
            }
        )
        docs = list(cursor)
        return TeachingSessionInDB(**docs[0]) if docs else None

    def history_for_agent(self, aily_id: str, limit: int = 20) -> List[TeachingSessionInDB]:
        cursor = self.db.aql.execute(
            """
            FOR s IN teaching_sessions
                FILTER s.aily_id == @aily_id
                SORT s.created_at DESC
                LIMIT @limit
                RETURN s
            """,
            bind_vars={'aily_id': aily_id, 'limit': limit}
        )
        return [TeachingSessionInDB(**doc) for doc in cursor]

    def ended_for_agent(self, aily_id: str) -> List[TeachingSessionInDB]:
        cursor = self.db.aql.execute(
            """
            FOR s IN teaching_sessions
                FILTER s.aily_id == @aily_id AND s.ended_at != null
                RETURN s
            """,
            bind_vars={'aily_id': aily_id}
        )
        return [TeachingSessionInDB(**doc) for doc in cursor]

    def count_for_agent(self, aily_id: str) -> int:
        cursor = self.db.aql.execute(
            "RETURN LENGTH(FOR s IN teaching_sessions FILTER s.aily_id == @aily_id RETURN 1)",
            bind_vars={'aily_id': aily_id}
        )
        return next(iter(cursor), 0)
