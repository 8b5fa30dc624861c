"""
Knowledge Tracker.

Pure arithmetic behind Aily's memory and progression:
- Time-based decay of concepts that have not been reviewed recently
- Saturating understanding updates from teaching turns
- XP awards per reply emotion plus a one-time mastery bonus
- Level-ups against a fixed XP threshold table

Nothing here touches the database. Callers validate that numeric inputs are
real numbers; NaN propagates instead of raising.
"""

from typing import Optional, Sequence, Tuple
from datetime import datetime, timezone
import math

# ============================================================================
# CONSTANTS
# ============================================================================

GRACE_PERIOD_DAYS = 3
RESIDUAL_MEMORY_FLOOR = 0.1
MAX_DECAY_FRACTION = 0.8

# (upper bound in days, decay per day); last band is open-ended
DECAY_BANDS = (
    (7, 0.05),
    (14, 0.10),
    (math.inf, 0.15),
)

MASTERY_THRESHOLD = 0.7
PARTIAL_THRESHOLD = 0.3
MASTERY_BONUS_XP = 50

EMOTION_XP = {
    "excited": 10,        # big "Aha!" moment
    "understanding": 5,
    "neutral": 2,         # took part in the conversation
    "confused": 0,
}

LEVEL_XP_THRESHOLDS = (0, 100, 300, 600, 1000, 1500)

SESSION_XP_PER_MINUTE = 10


# ============================================================================
# DECAY
# ============================================================================

def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _as_aware(value: datetime) -> datetime:
    """Treat naive datetimes as UTC so stored and live timestamps compare."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def days_since_review(last_reviewed: datetime, now: Optional[datetime] = None) -> int:
    """Whole days elapsed since the last review (floored)."""
    now = _as_aware(now or _utcnow())
    elapsed = now - _as_aware(last_reviewed)
    return math.floor(elapsed.total_seconds() / 86400)


def should_decay(last_reviewed: datetime, now: Optional[datetime] = None) -> bool:
    """True once the grace period has passed."""
    return days_since_review(last_reviewed, now) > GRACE_PERIOD_DAYS


def decay_rate_for(days: int) -> float:
    """Per-day decay rate for a review gap of ``days`` days (past the grace period)."""
    for upper_bound, rate in DECAY_BANDS:
        if days <= upper_bound:
            return rate
    return DECAY_BANDS[-1][1]


def apply_decay(
    last_reviewed: datetime,
    current_level: float,
    now: Optional[datetime] = None
) -> float:
    """
    Decay-correct an understanding level.

    Within the grace period the level is returned unchanged. Past it, decay is
    proportional to the current level, accelerates with the gap length, is
    capped at 80% of the current level and never goes below the 0.1 residual
    memory floor. Decay never raises a level: non-positive levels and levels
    already below the floor are returned as they are.

    Args:
        last_reviewed: When the concept was last touched
        current_level: Stored understanding level
        now: Reference time (defaults to current UTC time)

    Returns:
        Decay-corrected understanding level
    """
    if current_level <= 0:
        return current_level

    days = days_since_review(last_reviewed, now)
    if days <= GRACE_PERIOD_DAYS:
        return current_level

    rate = decay_rate_for(days)
    days_to_decay = days - GRACE_PERIOD_DAYS
    total_decay = min(
        current_level * rate * days_to_decay,
        current_level * MAX_DECAY_FRACTION
    )

    # Levels already under the floor keep their value
    return max(min(RESIDUAL_MEMORY_FLOOR, current_level), current_level - total_decay)


# ============================================================================
# UNDERSTANDING UPDATES
# ============================================================================

def clamp(value: float, lower: float = 0.0, upper: float = 1.0) -> float:
    return max(lower, min(upper, value))


def apply_interaction_delta(current_level: float, delta: float) -> float:
    """Add a (possibly negative) delta and clamp to [0, 1]."""
    return clamp(current_level + delta)


def concept_status(level: float) -> str:
    """Bucket a level the way the AI student's prompt does."""
    if level > MASTERY_THRESHOLD:
        return "known"
    if level > PARTIAL_THRESHOLD:
        return "partial"
    return "new"


# ============================================================================
# XP AND LEVELS
# ============================================================================

def xp_for_emotion(emotion: Optional[str]) -> int:
    """XP earned for a reply emotion; unknown tags earn nothing."""
    if emotion is None:
        return 0
    # Accept Emotion enum members as well as plain strings
    key = getattr(emotion, "value", emotion)
    return EMOTION_XP.get(key, 0)


def mastery_bonus(previous_level: float, new_level: float) -> int:
    """Bonus XP for crossing the mastery threshold upward, 0 otherwise."""
    if previous_level < MASTERY_THRESHOLD <= new_level:
        return MASTERY_BONUS_XP
    return 0


def check_level_up(
    total_xp: int,
    current_level: int,
    thresholds: Sequence[int] = LEVEL_XP_THRESHOLDS
) -> Tuple[int, bool]:
    """
    Advance at most one level when total XP reaches the next threshold.

    Args:
        total_xp: Agent's XP after the award
        current_level: Agent's level before the award
        thresholds: Ascending XP needed for each level (index = level)

    Returns:
        Tuple of (new_level, leveled_up)
    """
    next_level = current_level + 1
    if next_level < len(thresholds) and total_xp >= thresholds[next_level]:
        return next_level, True
    return current_level, False


def session_xp(transcript_length: int) -> Tuple[int, int]:
    """
    Estimate session duration from transcript length and the XP it earns.

    Returns:
        Tuple of (duration_minutes, xp_earned)
    """
    duration_minutes = max(1, transcript_length // 4)
    return duration_minutes, duration_minutes * SESSION_XP_PER_MINUTE
