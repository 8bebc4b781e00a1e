"""Turn-taking driver for one grounded support conversation.

Role:
    Owns the conversation log and is its only writer. Each turn appends the user
    message, injects trusted local facts for any structural intents, sends the
    whole log to the chat model and appends the reply or a fixed fallback.

Turn states:
    IDLE --submit--> AWAITING_REPLY --reply or failure--> IDLE
    Empty input never leaves IDLE. A submit while AWAITING_REPLY is a caller
    error and raises TurnInProgressError without touching the log.

Turn steps (TurnRunner order):
    append_user -> inject_facts -> dispatch -> finalize
    Facts are injected in the fixed order order lookup, promotion, product lookup.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Dict, List, Optional, Protocol, Sequence, Tuple

from .conversation_store import ConversationStore
from .errors import TurnInProgressError
from .grounding import GroundingPolicy
from .intents import (
    ExtractedIntents,
    OrderLookupIntent,
    ProductLookupIntent,
    PromotionRequestIntent,
    extract_intents,
)
from .models import Message
from .promotion import PromotionPolicy
from .resolver import LocalFactResolver
from .turn_runtime import TurnRunner, TurnStep

logger = logging.getLogger("gearguide.orchestrator")

FALLBACK_REPLY = "⛰️ Apologies, adventurer! The trail is blocked at the moment. Please try again."
LOOKUP_UNAVAILABLE = "⛰️ Our {subject} records are out of reach right now, so I can't check that {subject}. Please try again shortly."


class TurnState(str, Enum):
    IDLE = "idle"
    AWAITING_REPLY = "awaiting_reply"


class ChatModel(Protocol):
    def complete(self, messages: Sequence[Message]) -> str:
        ...


FailureReporter = Callable[[str, BaseException], None]


@dataclass(frozen=True)
class TurnEvent:
    """Notification sent to subscribers after every state transition."""
    session_id: str
    state: TurnState
    messages: Tuple[Message, ...]


TurnListener = Callable[[TurnEvent], None]


@dataclass
class TurnContext:
    """Mutable context passed through each turn step."""
    session_id: str
    utterance: str
    intents: ExtractedIntents = field(default_factory=ExtractedIntents)
    facts: List[Message] = field(default_factory=list)
    reply: Optional[Message] = None
    failed: bool = False
    error: Optional[str] = None
    events: List[Dict[str, str]] = field(default_factory=list)

    def log(self, event: str, detail: str, status: str = "success") -> None:
        """Record a step log entry for the UI and debugging."""
        self.events.append(
            {
                "event": event,
                "detail": detail,
                "status": status,
            }
        )


@dataclass(frozen=True)
class TurnResult:
    """Outcome of one submit call."""
    accepted: bool
    failed: bool = False
    reply: Optional[Message] = None
    facts: Tuple[Message, ...] = ()
    intents: Tuple[str, ...] = ()
    events: Tuple[Dict[str, str], ...] = ()
    error: Optional[str] = None


class OrchestrationLoop:
    def __init__(
        self,
        session_id: str,
        grounding: GroundingPolicy,
        resolver: LocalFactResolver,
        promotion: PromotionPolicy,
        chat_model: ChatModel,
        failure_reporter: Optional[FailureReporter] = None,
        fallback_reply: str = FALLBACK_REPLY,
    ) -> None:
        """Purpose: Start a conversation and wire its turn collaborators.
        Inputs/Outputs: Inputs are the session id, grounding policy, fact resolver,
            promotion policy, chat model, an optional failure reporter and the
            fallback text; no return value.
        Side Effects / State: Creates the ConversationStore seeded with the
            grounding instruction as its system message; state starts IDLE.
        Dependencies: TurnRunner/TurnStep and the step methods on this class.
        Failure Modes: None at init beyond prompt loading done by the policy.
        If Removed: Nothing drives turns or owns the conversation log.
        Testing Notes: Construct with fakes and verify the log holds one system message.
        """
        self._session_id = session_id
        self._grounding = grounding
        self._resolver = resolver
        self._promotion = promotion
        self._chat_model = chat_model
        self._failure_reporter = failure_reporter
        self._fallback_reply = fallback_reply
        self._conversation = ConversationStore(grounding.system_message())
        self._state = TurnState.IDLE
        self._pending_input = ""
        self._listeners: List[TurnListener] = []
        self._turn_lock = threading.Lock()
        self._runner: TurnRunner[TurnContext] = TurnRunner(
            steps=[
                TurnStep("append_user", self._step_append_user),
                TurnStep("inject_facts", self._step_inject_facts, skip_if=lambda ctx: not ctx.intents),
                TurnStep("dispatch", self._step_dispatch),
                TurnStep("finalize", self._step_finalize),
            ]
        )

    @property
    def session_id(self) -> str:
        return self._session_id

    @property
    def state(self) -> TurnState:
        return self._state

    @property
    def pending_input(self) -> str:
        return self._pending_input

    @property
    def conversation(self) -> ConversationStore:
        return self._conversation

    def snapshot(self) -> Tuple[Message, ...]:
        return self._conversation.snapshot()

    def subscribe(self, listener: TurnListener) -> Callable[[], None]:
        """Register a state-transition listener; returns a callable that removes it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def submit(self, utterance: str) -> TurnResult:
        """Purpose: Run one full turn for a user utterance.
        Inputs/Outputs: Input is the raw utterance; output is a TurnResult with the
            injected facts, the reply (model text or fallback) and step events.
        Side Effects / State: Appends user, fact and reply messages to the log;
            moves IDLE -> AWAITING_REPLY -> IDLE and notifies subscribers.
        Dependencies: TurnRunner steps, intent extraction, resolver, promotion
            policy and the chat model.
        Failure Modes: Empty input is a no-op (accepted=False). A submit during
            AWAITING_REPLY raises TurnInProgressError. Chat model failures become
            the fallback reply and are never raised. Lookup errors become an
            "unavailable" fact and the turn still ends with a reply.
        If Removed: The assistant cannot hold a conversation.
        Testing Notes: Cover scenarios with fakes for every collaborator.
        """
        # Whitespace-only input changes nothing and calls nothing.
        if not utterance or not utterance.strip():
            logger.debug("session=%s empty input ignored", self._session_id)
            return TurnResult(accepted=False)

        if not self._turn_lock.acquire(blocking=False):
            raise TurnInProgressError(self._session_id)
        try:
            context = TurnContext(session_id=self._session_id, utterance=utterance)
            logger.info("session=%s turn start", self._session_id)
            self._runner.run(context)
        finally:
            self._state = TurnState.IDLE
            self._turn_lock.release()

        return TurnResult(
            accepted=True,
            failed=context.failed,
            reply=context.reply,
            facts=tuple(context.facts),
            intents=tuple(context.intents.labels()),
            events=tuple(context.events),
            error=context.error,
        )

    def _step_append_user(self, context: TurnContext) -> None:
        """Record the user message and extract intents from it."""
        self._pending_input = context.utterance
        self._conversation.append(Message.user(context.utterance))
        context.intents = extract_intents(context.utterance)
        labels = context.intents.labels()
        context.log("Intent Detection", ", ".join(labels) if labels else "no structural intent")
        logger.info("session=%s intents=%s", self._session_id, labels)

    def _step_inject_facts(self, context: TurnContext) -> None:
        """Purpose: Resolve each intent and append its fact message.
        Inputs/Outputs: Input is TurnContext with intents; no return value.
        Side Effects / State: Appends source=local messages to the log and context.
        Dependencies: LocalFactResolver and PromotionPolicy.
        Failure Modes: A lookup collaborator error is logged and reported, and an
            "unavailable" local fact takes the place of the missing one.
        If Removed: The model never sees trusted facts and cannot ground answers.
        Testing Notes: All three intents in one utterance give three facts in order.
        """
        for intent in context.intents.in_resolution_order():
            if isinstance(intent, OrderLookupIntent):
                step, subject = "Order Lookup", "order"
                resolve = self._resolver.resolve_order
            elif isinstance(intent, PromotionRequestIntent):
                step, subject = "Promotion", "promotion"
                resolve = lambda item: self._promotion.evaluate(item).message
            elif isinstance(intent, ProductLookupIntent):
                step, subject = "Product Lookup", "product"
                resolve = self._resolver.resolve_product
            else:
                continue
            try:
                fact = resolve(intent)
                status = "success"
            except Exception as exc:
                logger.exception("session=%s %s failed", self._session_id, step.lower())
                self._report_failure(exc)
                context.error = f"{type(exc).__name__}: {exc}"
                fact = Message.fact(LOOKUP_UNAVAILABLE.format(subject=subject))
                status = "error"
            self._conversation.append(fact)
            context.facts.append(fact)
            context.log(step, fact.content if status == "success" else context.error, status=status)

    def _step_dispatch(self, context: TurnContext) -> None:
        """Send the full log to the chat model; on any failure append the fallback."""
        self._transition(TurnState.AWAITING_REPLY)
        snapshot = self._conversation.snapshot()
        try:
            text = self._chat_model.complete(snapshot)
            if not isinstance(text, str) or not text.strip():
                raise ValueError("chat model returned no completion text")
        except Exception as exc:
            logger.exception("session=%s chat model failed", self._session_id)
            self._report_failure(exc)
            context.failed = True
            context.error = f"{type(exc).__name__}: {exc}"
            context.reply = Message.reply(self._fallback_reply)
            self._conversation.append(context.reply)
            context.log("Generation", context.error, status="error")
            return

        context.reply = Message.reply(text.strip())
        self._conversation.append(context.reply)
        self._pending_input = ""
        context.log("Generation", f"{len(context.reply.content)} chars")

    def _step_finalize(self, context: TurnContext) -> None:
        self._transition(TurnState.IDLE)
        logger.info(
            "session=%s turn done failed=%s facts=%s log_size=%s",
            self._session_id,
            context.failed,
            len(context.facts),
            len(self._conversation),
        )

    def _transition(self, state: TurnState) -> None:
        self._state = state
        event = TurnEvent(session_id=self._session_id, state=state, messages=self._conversation.snapshot())
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception:
                logger.exception("session=%s turn listener failed state=%s", self._session_id, state.value)

    def _report_failure(self, exc: BaseException) -> None:
        if self._failure_reporter is None:
            return
        try:
            self._failure_reporter(self._session_id, exc)
        except Exception:
            logger.exception("session=%s failure reporter raised", self._session_id)
