"""
Aily character moods.

Aily can take on one of these personalities for a session but keeps all
learned knowledge and XP across sessions.
"""

import random
from typing import List, Optional

from aily.models.aily import AilyCharacter, PersonalityTraits

DEFAULT_CHARACTER_ID = "curious-explorer"

AILY_CHARACTERS: List[AilyCharacter] = [
    AilyCharacter(
        id="curious-explorer",
        name="Curious Explorer",
        description="Imaginative learner who asks many questions and needs detailed examples. Takes time to understand but thoroughly.",
        personality=PersonalityTraits(curiosity=0.8, confusion_rate=0.6, learning_speed=0.5),
        learning_style="Detailed explanations with examples and step-by-step guidance",
        motivations=["Praise for progress", "Clear and complete explanations", "Practical examples", "Structured learning"],
        common_questions=["Why does it work this way?", "Can you give me an example?", "How is this used in practice?"],
        psychological_type="Diverger (Concrete Experience + Reflective Observation)",
    ),
    AilyCharacter(
        id="quick-learner",
        name="Quick Learner",
        description="Fast, independent learner who prefers brief explanations and hands-on practice. Gets frustrated with slow pace.",
        personality=PersonalityTraits(curiosity=0.5, confusion_rate=0.3, learning_speed=0.9),
        learning_style="Brief explanations and independent practice",
        motivations=["Fast results", "New challenges", "Opportunity to try independently"],
        common_questions=["How does this work?", "Can I try it myself?", "Is there a faster way?"],
        psychological_type="Accommodator (Concrete Experience + Active Experimentation)",
    ),
    AilyCharacter(
        id="logical-thinker",
        name="Logical Thinker",
        description="Highly curious analyst who wants to understand everything deeply. Loves logic and edge cases. Few misconceptions.",
        personality=PersonalityTraits(curiosity=0.9, confusion_rate=0.2, learning_speed=0.7),
        learning_style="Logical arguments and detailed explanations of edge cases",
        motivations=["Deep understanding", "Logical reasoning", "Discussion of ideas", "All details and exceptions"],
        common_questions=["Why is it this way and not another?", "What happens with edge cases?", "Are there other approaches?"],
        psychological_type="Assimilator (Abstract Conceptualization + Reflective Observation)",
    ),
    AilyCharacter(
        id="practical-helper",
        name="Practical Helper",
        description="Grounded learner who focuses on real-world applications and helping others. Needs practical relevance.",
        personality=PersonalityTraits(curiosity=0.6, confusion_rate=0.5, learning_speed=0.6),
        learning_style="Real-world examples and practical applications",
        motivations=["Praise and recognition", "Examples from real life", "Practical applications", "Usefulness of knowledge"],
        common_questions=["How is this used in real life?", "Why is this useful?", "How can I help others with this?"],
        psychological_type="Converger (Abstract Conceptualization + Active Experimentation)",
    ),
    AilyCharacter(
        id="organized-learner",
        name="Organized Learner",
        description="Structured thinker who values clear rules and logical progression. Learns well with systematic approach.",
        personality=PersonalityTraits(curiosity=0.7, confusion_rate=0.2, learning_speed=0.8),
        learning_style="Structured lessons with clear rules and logical sequence",
        motivations=["Clear structure and progression", "Rules and patterns", "Systematic learning", "Logical organization"],
        common_questions=["What is the rule?", "Is there a pattern here?", "How is this material organized?"],
        psychological_type="Converger/Assimilator (Theory + Practice + Structure)",
    ),
    AilyCharacter(
        id="creative-builder",
        name="Creative Builder",
        description="Project-oriented learner who thrives on building things with visible results. Loves creative freedom.",
        personality=PersonalityTraits(curiosity=0.7, confusion_rate=0.4, learning_speed=0.7),
        learning_style="Practical projects with visible results and creative freedom",
        motivations=["Completed projects", "Visible results", "Creative freedom", "Practical applications"],
        common_questions=["How can I create something with this?", "Can I do a project?", "What are the possibilities?"],
        psychological_type="Accommodator/Diverger (Creative + Hands-on)",
    ),
]


def get_character_by_id(character_id: str) -> Optional[AilyCharacter]:
    return next((c for c in AILY_CHARACTERS if c.id == character_id), None)


def get_random_character(rng: Optional[random.Random] = None) -> AilyCharacter:
    """Pick a mood for a new session. Knowledge is unaffected."""
    return (rng or random).choice(AILY_CHARACTERS)
