"""
Teaching session endpoints.
"""
from typing import List
import logging
from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from arango.database import StandardDatabase

from aily.db.database import get_db
from aily.core.exceptions import NotFoundError, SessionAlreadyEnded
from aily.crud.aily import AilyCRUD
from aily.crud.knowledge import KnowledgeCRUD
from aily.crud.session import SessionCRUD
from aily.crud.user import UserCRUD
from aily.agents.orchestrator import TeachingOrchestrator, get_orchestrator
from aily.agents.student_agent import StudentAgent, get_student_agent
from aily.models.session import (
    SessionEndResponse,
    SessionStartRequest,
    SessionStartResponse,
    TeacherStats,
    TeachingMessageRequest,
    TeachingMessageResponse,
    TeachingSession,
)
from aily.services.rate_limiter import RateLimiter
from aily.services.session_service import SessionService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["sessions"])


def get_session_crud(db: StandardDatabase = Depends(get_db)) -> SessionCRUD:
    return SessionCRUD(db)


def get_session_service(
    db: StandardDatabase = Depends(get_db),
    agent: StudentAgent = Depends(get_student_agent)
) -> SessionService:
    return SessionService(
        user_crud=UserCRUD(db),
        aily_crud=AilyCRUD(db),
        knowledge_crud=KnowledgeCRUD(db),
        session_crud=SessionCRUD(db),
        agent=agent,
    )


def get_teaching_orchestrator() -> TeachingOrchestrator:
    return get_orchestrator()


def get_message_rate_limiter(request: Request) -> RateLimiter:
    """The application-wide limiter created with the app."""
    return request.app.state.message_rate_limiter


@router.post("/start", response_model=SessionStartResponse)
async def start_session(
    body: SessionStartRequest,
    service: SessionService = Depends(get_session_service)
):
    """Start a teaching session; Aily greets the teacher."""
    try:
        return await service.start_session(body.student_id, body.ai_student_id, body.topic)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))


@router.post("/{session_id}/message", response_model=TeachingMessageResponse)
async def send_message(
    session_id: str,
    body: TeachingMessageRequest,
    session_crud: SessionCRUD = Depends(get_session_crud),
    limiter: RateLimiter = Depends(get_message_rate_limiter),
    orchestrator: TeachingOrchestrator = Depends(get_teaching_orchestrator)
):
    """Teach Aily one message and get her reply."""
    session = session_crud.get(session_id)
    if not session:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Session not found")

    if not limiter.check(session.student_id):
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail="Too many messages. Please slow down.",
            headers={"Retry-After": str(limiter.retry_after_seconds(session.student_id))}
        )

    result = await orchestrator.ainvoke(session_id, body.message)
    next_action = result.get("next_action")

    if next_action == "not_found":
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=result["errors"][-1])
    if next_action == "session_ended":
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Session has already ended")
    if next_action == "conflict":
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Knowledge is being updated concurrently, please retry"
        )
    if next_action != "done":
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to process message: {'; '.join(result.get('errors', []))}"
        )

    reply = result["reply"]
    return TeachingMessageResponse(
        ai_response=reply.message,
        emotion=reply.emotion,
        understanding_delta=reply.understanding_delta,
        xp_gained=result.get("xp_gained", 0),
        knowledge=result.get("knowledge_update"),
        degraded=result.get("degraded", False),
    )


@router.post("/{session_id}/end", response_model=SessionEndResponse)
async def end_session(
    session_id: str,
    service: SessionService = Depends(get_session_service)
):
    try:
        return service.end_session(session_id)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except SessionAlreadyEnded as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))


@router.get("/ai-student/{aily_id}/history", response_model=List[TeachingSession])
async def get_history(
    aily_id: str,
    limit: int = Query(20, ge=1, le=100),
    session_crud: SessionCRUD = Depends(get_session_crud)
):
    """Most recent sessions for an Aily instance, newest first."""
    return session_crud.history_for_agent(aily_id, limit)


@router.get("/student/{user_id}/stats", response_model=TeacherStats)
async def get_teacher_stats(
    user_id: str,
    service: SessionService = Depends(get_session_service)
):
    return service.teacher_stats(user_id)


@router.get("/{session_id}", response_model=TeachingSession)
async def get_session(
    session_id: str,
    session_crud: SessionCRUD = Depends(get_session_crud)
):
    session = session_crud.get(session_id)
    if not session:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Session not found")
    return session
