"""
AI Student Agent.

Plays Aily, an 8th-grade student learning JavaScript from the user. The
teacher explains, Aily answers in character: short, occasionally wrong, and
always ending with one emotion emoji that drives knowledge and XP updates.

Architecture Constraint:
    - The reply is free text; emotion, understanding delta and the
      follow-up-question flag are all derived from it here
    - Failures surface as UpstreamError subclasses, never as partial replies

Emotion → understanding delta:
    excited        +0.15  (big "Aha!" moment)
    understanding  +0.10
    neutral        +0.03  (just listening)
    confused       -0.05

Usage:
    agent = get_student_agent()
    reply = await agent.generate(
        prompt="A variable is a box with a name",
        context=AIStudentContext(...),
        history=session.transcript
    )
"""

from typing import List, Optional, Sequence
import asyncio
import logging
import random
import re

from langchain_core.messages import AIMessage, BaseMessage, HumanMessage
from langchain_core.prompts import ChatPromptTemplate, MessagesPlaceholder
from langchain_google_genai import ChatGoogleGenerativeAI
from tenacity import (
    AsyncRetrying,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from aily.core.config import settings
from aily.core.exceptions import UpstreamError, UpstreamTimeout, UpstreamUnavailable
from aily.models.aily import AIResponse, AIStudentContext, Emotion
from aily.models.session import SessionMessage, SessionRole

logger = logging.getLogger(__name__)


# ============================================================================
# PROMPT TEMPLATES
# ============================================================================

SYSTEM_PROMPT = """You are {name}, a grade {grade} student who is learning JavaScript.

CURRENT LEVEL: {level} - {level_description}

PERSONALITY:
- Curiosity: {curiosity} (how often you ask questions)
- Confusion: {confusion_rate} (how easily you get confused)
- Learning speed: {learning_speed}

YOU ALREADY KNOW: {known_concepts}
YOU PARTIALLY UNDERSTAND: {partial_concepts}
MISTAKES YOU TEND TO MAKE: {common_mistakes}

CURRENT TOPIC: {current_topic}

HOW TO BEHAVE (MANDATORY!):
1. Answer SHORT - one or two sentences at most
2. Talk casually, like a real student
3. Make mistakes typical for level {level}
4. If you don't understand, ask a clarifying question
5. Show excitement when you learn something: "Aha!", "Awesome!", "Got it!"
6. Sometimes mix up similar things
7. ALWAYS end your message with exactly ONE of these emoji:
   - 😕 if you are confused or don't understand
   - 😃 if you are excited or just grasped something important
   - 😊 if you understand and are learning
   - 🙂 if you are neutral or just listening
8. DO NOT write code in your answers - only talk about it
9. DO NOT use assistant phrases like "Of course", "Certainly" or "Let me"

EXAMPLE ANSWERS FOR LEVEL {level}:
{example_replies}

Answer like a real student, NOT like an AI assistant!"""

HUMAN_PROMPT = """Your teacher explains: "{teaching_message}"

Answer as the student:"""

LEVEL_DESCRIPTIONS = [
    "complete beginner - you know almost nothing about programming",
    "beginner - you know a few basics",
    "advanced beginner - you understand basic concepts",
    "intermediate - you can write simple code",
    "advanced - you understand more complex concepts",
]

LEVEL_EXAMPLE_REPLIES = [
    # Level 0
    '- "Umm... what exactly is this let thing for? 😕"\n'
    '- "Wait, I didn\'t get it... can you show an example?"\n'
    '- "Does console.log print stuff?"',
    # Level 1
    '- "Aha! So let is for variables, right? 😃"\n'
    '- "Okay, I think I got it... let x = 5 makes a variable?"\n'
    '- "But why can\'t I just use var?"',
    # Level 2
    '- "Awesome! So const is for constants that never change!"\n'
    '- "And let can be changed later, is that right?"\n'
    '- "I get the difference now! 😃"',
]


# ============================================================================
# REPLY ANALYSIS
# ============================================================================

MAX_REPLY_LENGTH = 300
DEFAULT_EMOJI = "🙂"
EMOTION_EMOJI = re.compile("😕|😃|😊|🙂|🤔|🎉|🤩|👍")

CONFUSED_EMOJI = ("😕", "🤔", "❓")
EXCITED_EMOJI = ("😃", "🤩", "🎉")
UNDERSTANDING_EMOJI = ("😊", "👍")

CONFUSED_PATTERN = re.compile(
    r"i don'?t understand|i didn'?t get|i'?m confused|confusing|what does .* mean|"
    r"what do you mean|i don'?t know|huh\?|umm+"
)
EXCITED_PATTERN = re.compile(r"aha+!|awesome!|amazing!|wow|cool|perfect|i got it!")
UNDERSTANDING_PATTERN = re.compile(
    r"aha[,\s]|i see|got it|makes sense|okay|understood|i get it|i think so"
)

ASSISTANT_PHRASES = ("of course", "certainly", "let me", "i would be happy", "as an ai")

UNDERSTANDING_DELTAS = {
    Emotion.EXCITED: 0.15,
    Emotion.UNDERSTANDING: 0.10,
    Emotion.NEUTRAL: 0.03,
    Emotion.CONFUSED: -0.05,
}


def detect_emotion(message: str) -> Emotion:
    """Classify a reply. Confusion wins over excitement, excitement over understanding."""
    lower = message.lower()

    if any(e in message for e in CONFUSED_EMOJI) or CONFUSED_PATTERN.search(lower):
        return Emotion.CONFUSED
    if any(e in message for e in EXCITED_EMOJI) or EXCITED_PATTERN.search(lower):
        return Emotion.EXCITED
    if any(e in message for e in UNDERSTANDING_EMOJI) or UNDERSTANDING_PATTERN.search(lower):
        return Emotion.UNDERSTANDING
    return Emotion.NEUTRAL


def polish_reply(message: str) -> str:
    """Ensure an emotion emoji and cap the length of a raw completion."""
    if not EMOTION_EMOJI.search(message):
        logger.warning("⚠️ Reply missing emotion emoji, adding default")
        message = f"{message} {DEFAULT_EMOJI}"

    if len(message) > MAX_REPLY_LENGTH:
        logger.warning("⚠️ Reply too long, truncating")
        message = message[:MAX_REPLY_LENGTH - 3] + "... " + DEFAULT_EMOJI

    lower = message.lower()
    if any(phrase in lower for phrase in ASSISTANT_PHRASES):
        logger.warning("⚠️ Reply uses assistant phrasing, may not sound like a student")

    return message


def _content_text(response: BaseMessage) -> str:
    content = response.content
    if isinstance(content, list):
        parts = []
        for part in content:
            if isinstance(part, str):
                parts.append(part)
            elif isinstance(part, dict) and part.get("type") == "text":
                parts.append(part.get("text", ""))
        content = "".join(parts)
    return (content or "").strip()


def _format_concepts(concepts: Sequence[str], empty: str) -> str:
    return ", ".join(concepts) if concepts else empty


# ============================================================================
# STUDENT AGENT CLASS
# ============================================================================

class StudentAgent:
    """
    Generates in-character replies from Aily.

    Each attempt is bounded by a timeout and failed attempts are retried with
    exponential backoff. The final failure is reported as UpstreamTimeout when
    the last attempt timed out and UpstreamUnavailable otherwise.
    """

    def __init__(
        self,
        llm=None,
        rng: Optional[random.Random] = None,
        max_attempts: Optional[int] = None,
        timeout_seconds: Optional[float] = None,
        wait=None
    ):
        self._llm = llm
        self.rng = rng or random.Random()
        self.max_attempts = max_attempts or settings.LLM_MAX_ATTEMPTS
        self.timeout_seconds = timeout_seconds or settings.LLM_TIMEOUT_SECONDS
        self.wait = wait or wait_exponential(multiplier=1, min=1, max=8)
        self.prompt = ChatPromptTemplate.from_messages([
            ("system", SYSTEM_PROMPT),
            MessagesPlaceholder("history"),
            ("human", HUMAN_PROMPT),
        ])

    @property
    def llm(self):
        if self._llm is None:
            if not settings.GEMINI_API_KEY:
                raise UpstreamUnavailable(
                    "GEMINI_API_KEY not configured. Set it in .env or environment variables."
                )
            self._llm = ChatGoogleGenerativeAI(
                model=settings.GEMINI_MODEL,
                google_api_key=settings.GEMINI_API_KEY,
                temperature=settings.LLM_TEMPERATURE,
                max_output_tokens=settings.LLM_MAX_OUTPUT_TOKENS,
                top_p=settings.LLM_TOP_P,
                top_k=settings.LLM_TOP_K,
            )
            logger.info(f"✅ StudentAgent initialized with model: {settings.GEMINI_MODEL}")
        return self._llm

    def build_messages(
        self,
        prompt: str,
        context: AIStudentContext,
        history: Optional[Sequence[SessionMessage]] = None
    ) -> List[BaseMessage]:
        level = context.level
        traits = context.personality_traits
        recent = list(history or [])[-settings.HISTORY_WINDOW:]

        history_messages: List[BaseMessage] = [
            HumanMessage(content=m.message) if m.role == SessionRole.STUDENT
            else AIMessage(content=m.message)
            for m in recent
        ]

        return self.prompt.format_messages(
            name=context.name,
            grade=context.grade,
            level=level,
            level_description=LEVEL_DESCRIPTIONS[level] if level < len(LEVEL_DESCRIPTIONS) else LEVEL_DESCRIPTIONS[0],
            curiosity=traits.curiosity,
            confusion_rate=traits.confusion_rate,
            learning_speed=traits.learning_speed,
            known_concepts=_format_concepts(context.known_concepts, "almost nothing yet"),
            partial_concepts=_format_concepts(context.partial_concepts, "nothing so far"),
            common_mistakes=_format_concepts(context.common_mistakes, "none noted"),
            current_topic=context.current_topic,
            example_replies=LEVEL_EXAMPLE_REPLIES[min(level, len(LEVEL_EXAMPLE_REPLIES) - 1)],
            history=history_messages,
            teaching_message=prompt,
        )

    async def _invoke_once(self, messages: List[BaseMessage]) -> str:
        response = await asyncio.wait_for(self.llm.ainvoke(messages), timeout=self.timeout_seconds)
        text = _content_text(response)
        if not text:
            raise UpstreamUnavailable("Generator returned an empty completion")
        return text

    async def generate(
        self,
        prompt: str,
        context: AIStudentContext,
        history: Optional[Sequence[SessionMessage]] = None
    ) -> AIResponse:
        """
        Generate Aily's reply to a teaching message.

        Args:
            prompt: What the teacher just said
            context: Aily's level, personality and knowledge
            history: Session transcript so far

        Returns:
            AIResponse with message, emotion, understanding delta and question flag

        Raises:
            UpstreamTimeout: If the final attempt timed out
            UpstreamUnavailable: If no reply could be produced
        """
        self.llm  # missing key fails before any attempt
        messages = self.build_messages(prompt, context, history)

        logger.info(
            f"🤖 Generating reply (level {context.level}, topic '{context.current_topic}', "
            f"{len(messages) - 2} history messages)"
        )

        retrying = AsyncRetrying(
            stop=stop_after_attempt(self.max_attempts),
            wait=self.wait,
            retry=retry_if_exception_type(Exception),
            before_sleep=before_sleep_log(logger, logging.WARNING),
            reraise=True,
        )

        try:
            async for attempt in retrying:
                with attempt:
                    text = await self._invoke_once(messages)
        except asyncio.TimeoutError as e:
            logger.error(f"❌ All {self.max_attempts} attempts timed out")
            raise UpstreamTimeout(f"No reply within {self.timeout_seconds}s") from e
        except UpstreamError:
            logger.error(f"❌ All {self.max_attempts} attempts failed")
            raise
        except Exception as e:
            logger.error(f"❌ All {self.max_attempts} attempts failed: {e}")
            raise UpstreamUnavailable(f"Failed after {self.max_attempts} attempts: {e}") from e

        return self.parse_reply(text, context)

    def parse_reply(self, raw: str, context: AIStudentContext) -> AIResponse:
        message = polish_reply(raw).strip()
        emotion = detect_emotion(message)
        should_ask = (
            emotion == Emotion.CONFUSED
            or "?" in message
            or self.rng.random() < context.personality_traits.curiosity
        )

        logger.info(f"✅ Reply generated ({len(message)} chars, emotion: {emotion.value})")

        return AIResponse(
            message=message,
            emotion=emotion,
            understanding_delta=UNDERSTANDING_DELTAS.get(emotion, 0.0),
            should_ask_question=should_ask,
        )


# ============================================================================
# CONVENIENCE FUNCTION
# ============================================================================

_student_agent_instance: Optional[StudentAgent] = None


def get_student_agent() -> StudentAgent:
    """
    Get or create the global student agent instance.

    Returns:
        Configured StudentAgent
    """
    global _student_agent_instance

    if _student_agent_instance is None:
        _student_agent_instance = StudentAgent()

    return _student_agent_instance
