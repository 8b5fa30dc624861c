"""
Knowledge CRUD Operations.

One document per (Aily instance, concept) with a deterministic key. Every
teaching interaction is a single read-modify-write on that document guarded
by ArangoDB revision checks, so concurrent turns on the same concept never
lose an update.
"""

from typing import List, Optional
from datetime import datetime, timezone
import hashlib
import logging

from arango.database import StandardDatabase
from arango.exceptions import DocumentInsertError, DocumentRevisionError

from aily.core.config import settings
from aily.core.exceptions import KnowledgeWriteConflict
from aily.models.knowledge import ConceptKnowledge, KnowledgeUpdate, KnowledgeView
from aily.services import knowledge_tracker as tracker

logger = logging.getLogger(__name__)


def knowledge_key(agent_id: str, concept: str) -> str:
    """Document key for an agent's row on a concept."""
    digest = hashlib.sha1(concept.encode("utf-8")).hexdigest()[:16]
    return f"{agent_id}-{digest}"


def to_view(row: ConceptKnowledge, now: Optional[datetime] = None) -> KnowledgeView:
    """Decay-correct a stored row without writing it back."""
    effective = tracker.apply_decay(row.last_reviewed, row.understanding_level, now)
    return KnowledgeView(
        concept=row.concept,
        stored_level=row.understanding_level,
        understanding_level=effective,
        status=tracker.concept_status(effective),
        examples_seen=row.examples_seen,
        last_reviewed=row.last_reviewed,
        decayed=effective != row.understanding_level,
    )


class KnowledgeCRUD:
    """Operations for an Aily instance's concept knowledge."""

    def __init__(self, db: StandardDatabase, max_attempts: Optional[int] = None):
        self.db = db
        self.collection = db.collection('knowledge')
        self.max_attempts = max_attempts or settings.KNOWLEDGE_WRITE_ATTEMPTS

    def list_for_agent(self, agent_id: str) -> List[ConceptKnowledge]:
        cursor = self.db.aql.execute(
            """
            FOR k IN knowledge
                FILTER k.agent_id == @agent_id
                SORT k.understanding_level DESC
                RETURN k
            """,
            bind_vars={'agent_id': agent_id}
        )
        return [ConceptKnowledge(**doc) for doc in cursor]

    def views_for_agent(self, agent_id: str, now: Optional[datetime] = None) -> List[KnowledgeView]:
        """Decay-corrected knowledge map, strongest concepts first."""
        views = [to_view(row, now) for row in self.list_for_agent(agent_id)]
        views.sort(key=lambda v: v.understanding_level, reverse=True)
        return views

    def get(self, agent_id: str, concept: str) -> Optional[ConceptKnowledge]:
        doc = self.collection.get(knowledge_key(agent_id, concept))
        return ConceptKnowledge(**doc) if doc else None

    def count_for_agent(self, agent_id: str) -> int:
        cursor = self.db.aql.execute(
            "RETURN LENGTH(FOR k IN knowledge FILTER k.agent_id == @agent_id RETURN 1)",
            bind_vars={'agent_id': agent_id}
        )
        return next(iter(cursor), 0)

    def apply_interaction(
        self,
        agent_id: str,
        concept: str,
        delta: float,
        now: Optional[datetime] = None
    ) -> KnowledgeUpdate:
        """
        Apply one teaching interaction to a concept.

        Reads the row, decay-corrects it, adds the clamped delta, bumps
        examples_seen and resets last_reviewed. The mastery bonus is granted
        the first time the row crosses the mastery threshold and never again.

        Args:
            agent_id: Aily instance key
            concept: Concept being taught
            delta: Understanding change in [-1, 1]
            now: Interaction time (defaults to current UTC time)

        Returns:
            KnowledgeUpdate describing the write

        Raises:
            KnowledgeWriteConflict: If the row kept changing for every attempt
        """
        now = now or datetime.now(timezone.utc)
        key = knowledge_key(agent_id, concept)

        for attempt in range(1, self.max_attempts + 1):
            doc = self.collection.get(key)
            try:
                if doc is None:
                    return self._insert(key, agent_id, concept, delta, now)
                return self._update(doc, delta, now)
            except (DocumentRevisionError, DocumentInsertError) as e:
                logger.warning(
                    f"⚠️ Knowledge write conflict on {agent_id}/{concept} "
                    f"(attempt {attempt}/{self.max_attempts}): {type(e).__name__}"
                )

        logger.error(f"❌ Giving up on knowledge row {agent_id}/{concept}")
        raise KnowledgeWriteConflict(agent_id, concept, self.max_attempts)

    def _insert(
        self,
        key: str,
        agent_id: str,
        concept: str,
        delta: float,
        now: datetime
    ) -> KnowledgeUpdate:
        new_level = tracker.clamp(delta)
        bonus = tracker.mastery_bonus(0.0, new_level)

        self.collection.insert({
            "_key": key,
            "agent_id": agent_id,
            "concept": concept,
            "understanding_level": new_level,
            "examples_seen": 1,
            "last_reviewed": now.isoformat(),
            "mastered_at": now.isoformat() if bonus else None,
        })

        return KnowledgeUpdate(
            concept=concept,
            previous_level=0.0,
            new_level=new_level,
            examples_seen=1,
            mastery_bonus=bonus,
            created=True,
        )

    def _update(self, doc: dict, delta: float, now: datetime) -> KnowledgeUpdate:
        row = ConceptKnowledge(**doc)
        previous = tracker.apply_decay(row.last_reviewed, row.understanding_level, now)
        new_level = tracker.apply_interaction_delta(previous, delta)

        bonus = 0
        mastered_at = row.mastered_at
        if mastered_at is None:
            bonus = tracker.mastery_bonus(previous, new_level)
            if bonus:
                mastered_at = now

        examples_seen = row.examples_seen + 1
        self.collection.update(
            {
                "_key": doc["_key"],
                "_rev": doc["_rev"],
                "understanding_level": new_level,
                "examples_seen": examples_seen,
                "last_reviewed": now.isoformat(),
                "mastered_at": mastered_at.isoformat() if mastered_at else None,
            },
            check_rev=True
        )

        return KnowledgeUpdate(
            concept=row.concept,
            previous_level=previous,
            new_level=new_level,
            examples_seen=examples_seen,
            mastery_bonus=bonus,
        )

    def most_taught(self, agent_id: str, limit: int = 10) -> List[ConceptKnowledge]:
        """Concepts with the most reinforcing interactions."""
        cursor = self.db.aql.execute(
            """
            FOR k IN knowledge
                FILTER k.agent_id == @agent_id
                SORT k.examples_seen DESC
                LIMIT @limit
                RETURN k
            """,
            bind_vars={'agent_id': agent_id, 'limit': limit}
        )
        return [ConceptKnowledge(**doc) for doc in cursor]
