"""
Aily Instance CRUD Operations.

Each user owns exactly one Aily instance. XP and level only ever grow, so
every write to them is expressed as a single AQL update on the document.
"""

from typing import List, Optional
from datetime import datetime, timezone
from arango.database import StandardDatabase

from aily.models.aily import AilyInstance, AilyCharacter, PersonalityTraits
from aily.data.characters import DEFAULT_CHARACTER_ID

DEFAULT_PERSONALITY = PersonalityTraits(curiosity=0.7, confusion_rate=0.5, learning_speed=0.6)


class AilyCRUD:
    """Operations for managing Aily instances."""

    def __init__(self, db: StandardDatabase):
        self.db = db
        self.collection = db.collection('aily_instances')

    def create_for_user(self, user_id: str) -> AilyInstance:
        """Create the default Aily instance for a new user."""
        doc = {
            "user_id": user_id,
            "current_character_id": DEFAULT_CHARACTER_ID,
            "level": 0,
            "total_xp": 0,
            "personality_traits": DEFAULT_PERSONALITY.model_dump(),
            "created_at": datetime.now(timezone.utc).isoformat(),
        }
        result = self.collection.insert(doc, return_new=True)
        return AilyInstance(**result['new'])

    def get(self, aily_id: str) -> Optional[AilyInstance]:
        doc = self.collection.get(aily_id)
        return AilyInstance(**doc) if doc else None

    def get_by_user(self, user_id: str) -> Optional[AilyInstance]:
        cursor = self.db.aql.execute(
            "FOR a IN aily_instances FILTER a.user_id == @user_id LIMIT 1 RETURN a",
            bind_vars={'user_id': user_id}
        )
        docs = list(cursor)
        return AilyInstance(**docs[0]) if docs else None

    def set_character(self, aily_id: str, character: AilyCharacter) -> Optional[AilyInstance]:
        """Switch Aily's mood; personality follows the character, knowledge stays."""
        result = self.collection.update(
            {
                "_key": aily_id,
                "current_character_id": character.id,
                "personality_traits": character.personality.model_dump(),
                "updated_at": datetime.now(timezone.utc).isoformat(),
            },
            return_new=True
        )
        return AilyInstance(**result['new']) if result else None

    def add_xp(self, aily_id: str, xp: int) -> Optional[AilyInstance]:
        """
        Atomically add XP to an instance.

        Args:
            aily_id: Aily instance key
            xp: Non-negative XP award

        Returns:
            Updated instance, or None if it does not exist
        """
        if xp < 0:
            raise ValueError(f"XP awards must be non-negative, got {xp}")

        cursor = self.db.aql.execute(
            """
            FOR a IN aily_instances
                FILTER a._key == @key
                UPDATE a WITH { total_xp: a.total_xp + @xp, updated_at: @now } IN aily_instances
                RETURN NEW
            """,
            bind_vars={
                'key': aily_id,
                'xp': xp,
                'now': datetime.now(timezone.utc).isoformat(),
            }
        )
        docs = list(cursor)
        return AilyInstance(**docs[0]) if docs else None

    def record_level(self, aily_id: str, level: int) -> Optional[AilyInstance]:
        """Store a new level without ever lowering the current one."""
        cursor = self.db.aql.execute(
            """
            FOR a IN aily_instances
                FILTER a._key == @key
                UPDATE a WITH { level: MAX([a.level, @level]), updated_at: @now } IN aily_instances
                RETURN NEW
            """,
            bind_vars={
                'key': aily_id,
                'level': level,
                'now': datetime.now(timezone.utc).isoformat(),
            }
        )
        docs = list(cursor)
        return AilyInstance(**docs[0]) if docs else None

    def list_users_without_instance(self) -> List[dict]:
        """Users created before instances were provisioned automatically."""
        cursor = self.db.aql.execute(
            """
            FOR u IN users
                LET owned = FIRST(FOR a IN aily_instances FILTER a.user_id == u._key LIMIT 1 RETURN a._key)
                FILTER owned == null
                RETURN u
            """
        )
        return list(cursor)
