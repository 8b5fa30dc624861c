"""
AI student endpoints: character moods, a user's Aily and its knowledge map.
"""
from typing import List
import logging
from fastapi import APIRouter, HTTPException, Depends, status
from arango.database import StandardDatabase

from aily.crud.aily import AilyCRUD
from aily.crud.knowledge import KnowledgeCRUD
from aily.data.characters import AILY_CHARACTERS, get_character_by_id, get_random_character
from aily.db.database import get_db
from aily.models.aily import AilyCharacter, AilyDetail, AilyInstance, ChangeMoodRequest
from aily.models.knowledge import KnowledgeView

logger = logging.getLogger(__name__)

router = APIRouter(tags=["AI Students"])


def get_aily_crud(db: StandardDatabase = Depends(get_db)) -> AilyCRUD:
    return AilyCRUD(db)


def get_knowledge_crud(db: StandardDatabase = Depends(get_db)) -> KnowledgeCRUD:
    return KnowledgeCRUD(db)


def _get_aily_or_404(aily_crud: AilyCRUD, aily_id: str) -> AilyInstance:
    aily = aily_crud.get(aily_id)
    if not aily:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Aily instance not found"
        )
    return aily


@router.get("/characters", response_model=List[AilyCharacter])
async def list_characters():
    return AILY_CHARACTERS


@router.get("/random-character", response_model=AilyCharacter)
async def random_character():
    """A random mood for starting a new session."""
    return get_random_character()


@router.get("/user/{user_id}", response_model=List[AilyDetail])
async def get_user_ailys(
    user_id: str,
    aily_crud: AilyCRUD = Depends(get_aily_crud),
    knowledge_crud: KnowledgeCRUD = Depends(get_knowledge_crud)
):
    """A user's Aily, as a list (empty when none exists yet)."""
    aily = aily_crud.get_by_user(user_id)
    if not aily:
        return []
    return [AilyDetail(**aily.model_dump(), knowledge=knowledge_crud.views_for_agent(aily.key))]


@router.get("/{aily_id}", response_model=AilyDetail)
async def get_aily(
    aily_id: str,
    aily_crud: AilyCRUD = Depends(get_aily_crud),
    knowledge_crud: KnowledgeCRUD = Depends(get_knowledge_crud)
):
    aily = _get_aily_or_404(aily_crud, aily_id)
    return AilyDetail(**aily.model_dump(), knowledge=knowledge_crud.views_for_agent(aily.key))


@router.get("/{aily_id}/knowledge", response_model=List[KnowledgeView])
async def get_knowledge(
    aily_id: str,
    aily_crud: AilyCRUD = Depends(get_aily_crud),
    knowledge_crud: KnowledgeCRUD = Depends(get_knowledge_crud)
):
    """Decay-corrected knowledge map, strongest concepts first."""
    _get_aily_or_404(aily_crud, aily_id)
    return knowledge_crud.views_for_agent(aily_id)


@router.post("/{aily_id}/change-mood", response_model=AilyInstance)
async def change_mood(
    aily_id: str,
    request: ChangeMoodRequest,
    aily_crud: AilyCRUD = Depends(get_aily_crud)
):
    """Switch Aily's character for the next session. Knowledge and XP are kept."""
    character = get_character_by_id(request.character_id)
    if not character:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Character not found"
        )

    _get_aily_or_404(aily_crud, aily_id)
    updated = aily_crud.set_character(aily_id, character)
    logger.info(f"🎭 Aily {aily_id} is now '{character.name}'")
    return updated
