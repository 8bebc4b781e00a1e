from __future__ import annotations

import logging
import uuid
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv
from fastapi import FastAPI, HTTPException

from .catalog import JsonOrderLookup, JsonProductLookup
from .config import Settings, load_settings
from .conversation_store import SessionStore
from .errors import TurnInProgressError
from .gemini_client import GeminiClient
from .grounding import GroundingPolicy
from .models import ChatRequest, ChatResponse, Message, MessageView, Role, SessionSummary
from .orchestrator import ChatModel, OrchestrationLoop
from .promotion import Clock, PromotionPolicy, SystemClock
from .resolver import LocalFactResolver, OrderLookup, ProductLookup

BASE_DIR = Path(__file__).resolve().parent

logger = logging.getLogger("gearguide.app")


def configure_logging(level_name: str) -> None:
    """Configure root logging once and set the package logger level."""
    log_level = getattr(logging, level_name.upper(), logging.INFO)
    if not logging.getLogger().handlers:
        logging.basicConfig(
            level=log_level,
            format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        )
    logging.getLogger("gearguide").setLevel(log_level)


def to_views(messages: List[Message]) -> List[MessageView]:
    """Visible transcript for the UI; the system instruction is never rendered."""
    return [
        MessageView(role=message.role, content=message.content, source=message.source)
        for message in messages
        if message.role is not Role.SYSTEM
    ]


def create_app(
    settings: Optional[Settings] = None,
    chat_model: Optional[ChatModel] = None,
    orders: Optional[OrderLookup] = None,
    products: Optional[ProductLookup] = None,
    clock: Optional[Clock] = None,
) -> FastAPI:
    """Purpose: Build the FastAPI app and wire the assistant's collaborators.
    Inputs/Outputs: Optional settings and collaborator overrides; returns FastAPI.
    Side Effects / State: Loads .env, configures logging, creates the session store.
    Dependencies: load_settings, GeminiClient, JSON catalogs, GroundingPolicy,
        PromotionPolicy, LocalFactResolver and OrchestrationLoop.
    Failure Modes: Missing GEMINI_API_KEY raises ValueError when no chat_model is
        supplied; a missing grounding prompt raises FileNotFoundError; an
        unreadable or invalid catalog file raises ValueError or OSError.
    If Removed: The assistant has no HTTP surface.
    Testing Notes: Pass a fake chat_model and clock and use TestClient.
    """
    env_path = BASE_DIR / ".env"
    if env_path.exists():
        load_dotenv(env_path, override=True)
    else:
        load_dotenv(override=False)

    settings = settings or load_settings()
    configure_logging(settings.log_level)

    grounding = GroundingPolicy(settings.prompts_dir, settings.grounding_prompt_version)
    # Bundled catalogs are parsed here so a broken file fails startup, not a turn.
    if orders is None:
        orders = JsonOrderLookup(settings.orders_path)
        orders.load()
    if products is None:
        products = JsonProductLookup(settings.products_path)
        products.load()
    resolver = LocalFactResolver(
        orders=orders,
        products=products,
        tracking_url_template=settings.tracking_url_template,
    )
    promotion = PromotionPolicy(
        clock=clock or SystemClock(),
        tz_name=settings.promo_timezone,
        start_hour=settings.promo_start_hour,
        end_hour=settings.promo_end_hour,
        code_prefix=settings.promo_code_prefix,
    )
    model = chat_model or GeminiClient(settings)

    def build_loop(session_id: str) -> OrchestrationLoop:
        return OrchestrationLoop(
            session_id=session_id,
            grounding=grounding,
            resolver=resolver,
            promotion=promotion,
            chat_model=model,
        )

    session_store = SessionStore(build_loop, max_sessions=settings.max_sessions)

    app = FastAPI(title="Gear Guide Support Assistant")
    app.state.session_store = session_store
    app.state.grounding = grounding

    @app.get("/api/health")
    def health() -> dict:
        return {"status": "ok", "grounding_version": grounding.version}

    @app.post("/api/chat", response_model=ChatResponse)
    def chat(request: ChatRequest) -> ChatResponse:
        """Purpose: Run one grounded turn for a session.
        Inputs/Outputs: Input is ChatRequest; output is ChatResponse with transcript.
        Side Effects / State: Appends to the session's conversation log.
        Dependencies: SessionStore and OrchestrationLoop.submit.
        Failure Modes: An overlapping turn on the same session returns 409; model
            failures come back as failed=True with the fallback reply.
        If Removed: Core chat functionality is unavailable.
        Testing Notes: Send a sample message and verify facts precede the reply.
        """
        # Load or create the session, then run the turn.
        session_id = request.session_id or uuid.uuid4().hex
        loop = session_store.get_or_create(session_id)
        try:
            result = loop.submit(request.message)
        except TurnInProgressError as exc:
            raise HTTPException(status_code=409, detail=str(exc)) from exc
        if result.accepted:
            session_store.touch(session_id, request.message)
        return ChatResponse(
            session_id=session_id,
            accepted=result.accepted,
            failed=result.failed,
            reply=result.reply.content if result.reply else None,
            messages=to_views(list(loop.snapshot())),
            events=list(result.events),
        )

    @app.get("/api/sessions", response_model=List[SessionSummary])
    def list_sessions() -> List[SessionSummary]:
        return session_store.list_sessions()

    @app.get("/api/sessions/{session_id}")
    def get_session(session_id: str) -> dict:
        """Return the visible transcript; unknown sessions yield an empty list."""
        loop = session_store.get(session_id)
        messages = to_views(list(loop.snapshot())) if loop else []
        return {
            "session_id": session_id,
            "messages": [message.model_dump(mode="json") for message in messages],
        }

    logger.info(
        "app ready model=%s grounding=%s promo_tz=%s",
        settings.gemini_model,
        grounding.version,
        settings.promo_timezone,
    )
    return app
