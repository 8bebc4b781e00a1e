from __future__ import annotations


class GearGuideError(Exception):
    """Base error for the assistant core."""


class ConfigError(GearGuideError):
    """Raised when settings describe an impossible configuration."""


class ConversationError(GearGuideError):
    """Raised when an operation would break the conversation log invariants."""


class TurnInProgressError(GearGuideError):
    """Raised when a second utterance is submitted while a turn awaits its reply."""

    def __init__(self, session_id: str = "") -> None:
        self.session_id = session_id
        detail = f" for session {session_id}" if session_id else ""
        super().__init__(f"A turn is already awaiting a reply{detail}")


class LLMClientError(GearGuideError):
    """Raised when the chat model cannot produce a completion."""


class EmptyCompletionError(LLMClientError):
    """Raised when the chat model answers without usable completion text."""
