from __future__ import annotations

import itertools
import threading
import time
from typing import TYPE_CHECKING, Callable, Dict, Iterator, List, Optional, Tuple

from .errors import ConversationError
from .models import Message, Role, SessionSummary

if TYPE_CHECKING:
    from .orchestrator import OrchestrationLoop


class ConversationStore:
    """Ordered, append-only message log; the single source of what the model sees."""

    def __init__(self, system_message: Message) -> None:
        """Purpose: Start a conversation seeded with its one system message.
        Inputs/Outputs: Input is the system Message; no return value.
        Side Effects / State: Creates the backing list with the system message first.
        Dependencies: Uses Message/Role from models.
        Failure Modes: Raises ConversationError if the seed is not a system message.
        If Removed: The orchestration loop has nowhere to keep the prompt history.
        Testing Notes: Verify snapshot()[0] is the seed and len() starts at 1.
        """
        # The system message is fixed for the conversation's lifetime.
        if system_message.role is not Role.SYSTEM:
            raise ConversationError("A conversation must start with a system message")
        self._messages: List[Message] = [system_message]

    def append(self, message: Message) -> None:
        """Purpose: Add a message to the end of the log.
        Inputs/Outputs: Input is a Message; no return value.
        Side Effects / State: Grows the log by one entry.
        Dependencies: None.
        Failure Modes: Raises ConversationError for a second system message.
        If Removed: Turns cannot record user input, facts or replies.
        Testing Notes: Append several messages and check order and immutability.
        """
        if message.role is Role.SYSTEM:
            raise ConversationError("The system message is set once at conversation start")
        self._messages.append(message)

    def snapshot(self) -> Tuple[Message, ...]:
        """Return the full ordered log; callers cannot mutate the store through it."""
        return tuple(self._messages)

    def facts(self) -> Tuple[Message, ...]:
        return tuple(message for message in self._messages if message.is_fact)

    @property
    def system_message(self) -> Message:
        return self._messages[0]

    def __len__(self) -> int:
        return len(self._messages)

    def __iter__(self) -> Iterator[Message]:
        return iter(self.snapshot())


class SessionStore:
    """In-memory registry of live conversations keyed by session id."""

    def __init__(self, loop_factory: Callable[[str], "OrchestrationLoop"], max_sessions: Optional[int] = None) -> None:
        """Purpose: Initialize an empty registry of per-session orchestration loops.
        Inputs/Outputs: Inputs are a factory building a loop for a session id and an
            optional max_sessions cap; no return value.
        Side Effects / State: None until sessions are created.
        Dependencies: loop_factory is supplied by the app wiring.
        Failure Modes: None at init.
        If Removed: Each request would start a fresh conversation and lose history.
        Testing Notes: Create more than max_sessions sessions and verify pruning.
        """
        self._loop_factory = loop_factory
        self._max_sessions = max_sessions
        self._loops: Dict[str, "OrchestrationLoop"] = {}
        self._summaries: Dict[str, SessionSummary] = {}
        # Activity order breaks updated_at ties between sessions touched in the same tick.
        self._activity: Dict[str, int] = {}
        self._counter = itertools.count()
        self._lock = threading.Lock()

    def get_or_create(self, session_id: str) -> "OrchestrationLoop":
        """Return the session's loop, creating the conversation on first use."""
        with self._lock:
            loop = self._loops.get(session_id)
            if loop is None:
                loop = self._loop_factory(session_id)
                self._loops[session_id] = loop
                self._summaries[session_id] = SessionSummary(
                    session_id=session_id,
                    title="New Chat",
                    updated_at=time.time(),
                )
                self._activity[session_id] = next(self._counter)
                self._prune_sessions()
            return loop

    def get(self, session_id: str) -> Optional["OrchestrationLoop"]:
        return self._loops.get(session_id)

    def touch(self, session_id: str, user_message: str) -> None:
        """Purpose: Refresh a session summary after a turn.
        Inputs/Outputs: Inputs are session_id and the submitted text; no return value.
        Side Effects / State: Updates updated_at and sets the title on first use.
        Dependencies: Uses SessionSummary.
        Failure Modes: Unknown sessions are ignored.
        If Removed: The session sidebar shows stale titles and ordering.
        Testing Notes: First user message becomes the title, truncated to 48 chars.
        """
        with self._lock:
            summary = self._summaries.get(session_id)
            if summary is None:
                return
            title = summary.title
            if title == "New Chat" and user_message.strip():
                title = user_message.strip().splitlines()[0][:48]
            self._summaries[session_id] = SessionSummary(
                session_id=session_id,
                title=title,
                updated_at=time.time(),
            )
            self._activity[session_id] = next(self._counter)

    def list_sessions(self) -> List[SessionSummary]:
        # Most recently active first.
        return sorted(self._summaries.values(), key=self._recency, reverse=True)

    def _recency(self, summary: SessionSummary) -> Tuple[float, int]:
        return summary.updated_at, self._activity.get(summary.session_id, -1)

    def _prune_sessions(self) -> bool:
        """Purpose: Enforce max_sessions by dropping the least recently updated sessions.
        Inputs/Outputs: No inputs; returns True if any sessions were removed.
        Side Effects / State: Mutates _loops and _summaries.
        Dependencies: Uses _max_sessions and updated_at ordering.
        Failure Modes: None; no-op when max_sessions is unset or not exceeded.
        If Removed: Memory grows with every new session id.
        Testing Notes: Set a low max_sessions and verify pruning order.
        """
        if not self._max_sessions or self._max_sessions <= 0:
            return False
        if len(self._summaries) <= self._max_sessions:
            return False

        sorted_summaries = sorted(self._summaries.values(), key=self._recency, reverse=True)
        keep_ids = {summary.session_id for summary in sorted_summaries[: self._max_sessions]}
        removed = [session_id for session_id in list(self._summaries.keys()) if session_id not in keep_ids]
        for session_id in removed:
            self._summaries.pop(session_id, None)
            self._loops.pop(session_id, None)
            self._activity.pop(session_id, None)
        return bool(removed)
