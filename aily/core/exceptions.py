"""
Exception hierarchy for the Aily backend.
"""


class AilyError(Exception):
    """Base exception for all Aily errors."""
    pass


class UpstreamError(AilyError):
    """Base exception for failures of the generative-language collaborator."""
    pass


class UpstreamUnavailable(UpstreamError):
    """Raised when the generator cannot produce a reply (missing key, API error, empty output)."""
    pass


class UpstreamTimeout(UpstreamError):
    """Raised when every generation attempt ran out of time."""
    pass


class KnowledgeWriteConflict(AilyError):
    """Raised when a knowledge row keeps changing underneath a read-modify-write."""

    def __init__(self, agent_id: str, concept: str, attempts: int):
        self.agent_id = agent_id
        self.concept = concept
        self.attempts = attempts
        super().__init__(
            f"Knowledge row {agent_id}/{concept} still conflicting after {attempts} attempts"
        )


class NotFoundError(AilyError):
    """Raised when a user, Aily instance or session does not exist."""
    pass


class SessionAlreadyEnded(AilyError):
    """Raised when ending or teaching in a session that is already closed."""
    pass
