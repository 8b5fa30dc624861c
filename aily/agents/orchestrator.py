"""
Orchestrator for teaching turns.

One teaching message flows through a LangGraph StateGraph:

        START
          ↓
      load_session ──(missing / ended)──→ END
          ↓
      build_context
          ↓
      generate_reply
          ↓
      record_transcript ──(degraded)──→ END
          ↓
      apply_outcome
          ↓
         END

The orchestrator is the only component that writes knowledge and XP for a
turn. A generator failure is absorbed by a fixed fallback reply and the turn
is marked degraded: the transcript still records the exchange but no
knowledge row or XP total is touched.
"""

from typing import TypedDict, Optional, Dict, Any, List
from datetime import datetime, timezone
import logging

from langgraph.graph import StateGraph, END

from aily.core.exceptions import UpstreamError, KnowledgeWriteConflict
from aily.crud.aily import AilyCRUD
from aily.crud.knowledge import KnowledgeCRUD, to_view
from aily.crud.session import SessionCRUD
from aily.models.aily import AilyInstance, AIResponse, AIStudentContext, Emotion
from aily.models.knowledge import KnowledgeUpdate
from aily.models.session import SessionMessage, SessionRole, TeachingSessionInDB
from aily.services import knowledge_tracker as tracker

logger = logging.getLogger(__name__)

COMMON_MISTAKES = [
    "forgetting semicolons",
    "mixing up = and ==",
    "capital letters in keywords",
]

FALLBACK_REPLY = AIResponse(
    message="Hmm... I got a bit lost in thought. Could you say that another way? 🤔",
    emotion=Emotion.CONFUSED,
    understanding_delta=0.0,
    should_ask_question=True,
)


def build_student_context(
    aily: AilyInstance,
    topic: str,
    knowledge: List,
    now: Optional[datetime] = None
) -> AIStudentContext:
    """Prompt context from decay-corrected knowledge. Nothing is written back."""
    views = [to_view(row, now) for row in knowledge]

    known = [v.concept for v in views if v.understanding_level > tracker.MASTERY_THRESHOLD]
    partial = [
        v.concept for v in views
        if tracker.PARTIAL_THRESHOLD < v.understanding_level <= tracker.MASTERY_THRESHOLD
    ]
    current = next((v.understanding_level for v in views if v.concept == topic), None)

    return AIStudentContext(
        ai_student_id=aily.key,
        level=aily.level,
        known_concepts=known,
        partial_concepts=partial,
        common_mistakes=COMMON_MISTAKES,
        current_topic=topic,
        current_topic_understanding=current,
        personality_traits=aily.personality_traits,
    )


# ============================================================================
# STATE DEFINITION
# ============================================================================

class TeachingTurnState(TypedDict):
    """Shared state for one teaching turn."""
    session_id: str
    teaching_message: str
    now: datetime

    # Loaded from the database
    session: Optional[TeachingSessionInDB]
    aily: Optional[AilyInstance]
    context: Optional[AIStudentContext]

    # Turn outputs
    reply: Optional[AIResponse]
    degraded: bool
    xp_gained: int
    knowledge_update: Optional[KnowledgeUpdate]

    errors: list[str]
    next_action: Optional[str]


# ============================================================================
# ORCHESTRATOR CLASS
# ============================================================================

class TeachingOrchestrator:
    """
    Runs teaching turns against an injected generator and CRUD layer.

    next_action in the final state is one of:
    - "done": turn completed
    - "not_found": session or Aily instance missing
    - "session_ended": session already closed
    - "conflict": knowledge row could not be written
    - "error": unexpected failure
    """

    def __init__(
        self,
        session_crud: SessionCRUD,
        aily_crud: AilyCRUD,
        knowledge_crud: KnowledgeCRUD,
        agent
    ):
        self.session_crud = session_crud
        self.aily_crud = aily_crud
        self.knowledge_crud = knowledge_crud
        self.agent = agent
        self.compiled_workflow = None

        logger.info("🎯 Orchestrator initialized")

    def build_workflow(self):
        workflow = StateGraph(TeachingTurnState)

        workflow.add_node("load_session", self._load_session_node)
        workflow.add_node("build_context", self._build_context_node)
        workflow.add_node("generate_reply", self._generate_reply_node)
        workflow.add_node("record_transcript", self._record_transcript_node)
        workflow.add_node("apply_outcome", self._apply_outcome_node)

        workflow.set_entry_point("load_session")
        workflow.add_conditional_edges(
            "load_session",
            self._route_after_load,
            {"continue": "build_context", "stop": END}
        )
        workflow.add_edge("build_context", "generate_reply")
        workflow.add_edge("generate_reply", "record_transcript")
        workflow.add_conditional_edges(
            "record_transcript",
            self._route_after_record,
            {"apply": "apply_outcome", "skip": END}
        )
        workflow.add_edge("apply_outcome", END)

        self.compiled_workflow = workflow.compile()

        logger.info("✅ Workflow built successfully")

    # ========================================================================
    # WORKFLOW NODES
    # ========================================================================

    def _load_session_node(self, state: TeachingTurnState) -> Dict[str, Any]:
        session_id = state["session_id"]
        logger.info(f"📥 Loading session: {session_id}")

        session = self.session_crud.get(session_id)
        if not session:
            logger.error(f"❌ Session not found: {session_id}")
            return {
                "errors": [*state.get("errors", []), f"Session {session_id} not found"],
                "next_action": "not_found"
            }

        if session.is_ended:
            logger.warning(f"⚠️ Session already ended: {session_id}")
            return {
                "session": session,
                "errors": [*state.get("errors", []), f"Session {session_id} has already ended"],
                "next_action": "session_ended"
            }

        aily = self.aily_crud.get(session.aily_id)
        if not aily:
            logger.error(f"❌ Aily instance not found: {session.aily_id}")
            return {
                "session": session,
                "errors": [*state.get("errors", []), f"Aily instance {session.aily_id} not found"],
                "next_action": "not_found"
            }

        return {"session": session, "aily": aily, "next_action": "continue"}

    def _route_after_load(self, state: TeachingTurnState) -> str:
        return "continue" if state.get("next_action") == "continue" else "stop"

    def _build_context_node(self, state: TeachingTurnState) -> Dict[str, Any]:
        aily = state["aily"]
        session = state["session"]

        rows = self.knowledge_crud.list_for_agent(aily.key)
        context = build_student_context(aily, session.topic, rows, state["now"])

        logger.info(
            f"🧠 Context: level {aily.level}, {len(context.known_concepts)} known, "
            f"{len(context.partial_concepts)} partial"
        )
        return {"context": context}

    async def _generate_reply_node(self, state: TeachingTurnState) -> Dict[str, Any]:
        try:
            reply = await self.agent.generate(
                state["teaching_message"],
                state["context"],
                state["session"].transcript
            )
            return {"reply": reply, "degraded": False}
        except UpstreamError as e:
            logger.error(f"❌ Generator failed, using fallback reply: {type(e).__name__}: {e}")
            return {
                "reply": FALLBACK_REPLY,
                "degraded": True,
                "errors": [*state.get("errors", []), f"Generator failed: {e}"]
            }

    def _record_transcript_node(self, state: TeachingTurnState) -> Dict[str, Any]:
        reply = state["reply"]
        now = state["now"]

        self.session_crud.append_messages(state["session_id"], [
            SessionMessage(role=SessionRole.STUDENT, message=state["teaching_message"], timestamp=now),
            SessionMessage(role=SessionRole.AI_STUDENT, message=reply.message, timestamp=now, emotion=reply.emotion),
        ])
        return {"next_action": "done"}

    def _route_after_record(self, state: TeachingTurnState) -> str:
        return "skip" if state.get("degraded") else "apply"

    def _apply_outcome_node(self, state: TeachingTurnState) -> Dict[str, Any]:
        aily = state["aily"]
        topic = state["session"].topic
        reply = state["reply"]

        xp_gained = tracker.xp_for_emotion(reply.emotion)
        update = None

        if reply.understanding_delta != 0:
            try:
                update = self.knowledge_crud.apply_interaction(
                    aily.key, topic, reply.understanding_delta, state["now"]
                )
            except KnowledgeWriteConflict as e:
                logger.error(f"❌ {e}")
                return {
                    "xp_gained": 0,
                    "errors": [*state.get("errors", []), str(e)],
                    "next_action": "conflict"
                }
            xp_gained += update.mastery_bonus
            if update.mastery_bonus:
                logger.info(f"🏆 Concept mastered: {topic} (+{update.mastery_bonus} XP)")

        if xp_gained > 0:
            self.aily_crud.add_xp(aily.key, xp_gained)

        logger.info(
            f"✨ Turn outcome: emotion={reply.emotion.value}, "
            f"delta={reply.understanding_delta:+.2f}, xp={xp_gained}"
        )
        return {"xp_gained": xp_gained, "knowledge_update": update}

    # ========================================================================
    # PUBLIC API
    # ========================================================================

    async def ainvoke(
        self,
        session_id: str,
        teaching_message: str,
        now: Optional[datetime] = None
    ) -> Dict[str, Any]:
        """
        Run one teaching turn.

        Args:
            session_id: Teaching session key
            teaching_message: What the teacher said
            now: Turn time used for decay (defaults to current UTC time)

        Returns:
            Final state after workflow execution
        """
        if not self.compiled_workflow:
            raise RuntimeError("Workflow not built. Call build_workflow() first.")

        logger.info(f"🚀 Teaching turn for session {session_id}")

        initial_state: TeachingTurnState = {
            "session_id": session_id,
            "teaching_message": teaching_message,
            "now": now or datetime.now(timezone.utc),
            "session": None,
            "aily": None,
            "context": None,
            "reply": None,
            "degraded": False,
            "xp_gained": 0,
            "knowledge_update": None,
            "errors": [],
            "next_action": None
        }

        try:
            final_state = await self.compiled_workflow.ainvoke(initial_state)
            logger.info(f"✅ Turn completed for session {session_id}: {final_state.get('next_action')}")
            return final_state

        except Exception as e:
            logger.exception(f"❌ Teaching turn failed for session {session_id}: {e}")
            return {
                **initial_state,
                "errors": [f"Workflow execution failed: {str(e)}"],
                "next_action": "error"
            }


# ============================================================================
# CONVENIENCE FUNCTIONS
# ============================================================================

def create_orchestrator(db=None, agent=None) -> TeachingOrchestrator:
    """
    Factory function to create and build an orchestrator.

    Example:
        >>> orchestrator = create_orchestrator()
        >>> result = await orchestrator.ainvoke("session123", "Variables store values")
    """
    if db is None:
        from aily.db.database import get_db
        db = get_db()
    if agent is None:
        from aily.agents.student_agent import get_student_agent
        agent = get_student_agent()

    orchestrator = TeachingOrchestrator(
        session_crud=SessionCRUD(db),
        aily_crud=AilyCRUD(db),
        knowledge_crud=KnowledgeCRUD(db),
        agent=agent,
    )
    orchestrator.build_workflow()
    return orchestrator


_orchestrator_instance: Optional[TeachingOrchestrator] = None


def get_orchestrator() -> TeachingOrchestrator:
    """
    Get or create the global orchestrator instance.

    The workflow is compiled once per process.
    """
    global _orchestrator_instance

    if _orchestrator_instance is None:
        _orchestrator_instance = create_orchestrator()

    return _orchestrator_instance
