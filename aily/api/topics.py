from typing import Dict
from fastapi import APIRouter, HTTPException, Depends, status
from arango.database import StandardDatabase

from aily.crud.aily import AilyCRUD
from aily.crud.knowledge import KnowledgeCRUD
from aily.data.topics import ALL_TOPICS, find_section, get_topic_by_id, get_topics_by_section
from aily.db.database import get_db
from aily.models.topic import Curriculum, SectionProgress, SectionTopics, Topic, TopicSection
from aily.services.session_service import section_progress

router = APIRouter(tags=["Topics"])


def get_aily_crud(db: StandardDatabase = Depends(get_db)) -> AilyCRUD:
    return AilyCRUD(db)


def get_knowledge_crud(db: StandardDatabase = Depends(get_db)) -> KnowledgeCRUD:
    return KnowledgeCRUD(db)


@router.get("", response_model=Curriculum)
async def list_topics():
    """All topics organized by section."""
    sections = {}
    for section in TopicSection:
        topics = get_topics_by_section(section)
        sections[section.value] = SectionTopics(section=section, topic_count=len(topics), topics=topics)

    return Curriculum(total_topics=len(ALL_TOPICS), sections=sections)


@router.get("/section/{section_name}", response_model=SectionTopics)
async def get_section(section_name: str):
    section = find_section(section_name)
    if not section:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Section not found"
        )

    topics = get_topics_by_section(section)
    return SectionTopics(section=section, topic_count=len(topics), topics=topics)


@router.get("/progress/{aily_id}", response_model=Dict[str, SectionProgress])
async def get_progress(
    aily_id: str,
    aily_crud: AilyCRUD = Depends(get_aily_crud),
    knowledge_crud: KnowledgeCRUD = Depends(get_knowledge_crud)
):
    """Per-section progress from Aily's decay-corrected knowledge."""
    if not aily_crud.get(aily_id):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Aily instance not found"
        )

    views = knowledge_crud.views_for_agent(aily_id)
    return {section.value: section_progress(section, views) for section in TopicSection}


@router.get("/{topic_id}", response_model=Topic)
async def get_topic(topic_id: str):
    topic = get_topic_by_id(topic_id)
    if not topic:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Topic not found"
        )
    return topic
