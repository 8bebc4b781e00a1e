from __future__ import annotations

from typing import Dict, List, Optional, Sequence, Tuple

import google.generativeai as genai

from .config import Settings
from .errors import EmptyCompletionError, LLMClientError
from .models import Message, Role

# Role names on the Gemini side; system text travels as system_instruction.
GEMINI_ROLES = {
    Role.USER.value: "user",
    Role.ASSISTANT.value: "model",
}

# Closing user turn sent when the log ends on injected facts.
CONTINUE_TURN_TEXT = "Reply to the customer using the facts above."


class GeminiClient:
    """Chat model adapter that sends the conversation log to Gemini."""

    def __init__(self, settings: Settings) -> None:
        """Purpose: Configure the Gemini SDK for conversation completions.
        Inputs/Outputs: Input is Settings; no return value.
        Side Effects / State: Configures the SDK's global API key; keeps a model cache.
        Dependencies: google.generativeai and Settings from config.
        Failure Modes: Raises ValueError if the API key or model name is missing.
        If Removed: Turns always end with the fallback apology.
        Testing Notes: Validate missing key raises ValueError; mock GenerativeModel.
        """
        # Configure API key and remember generation parameters.
        if not settings.gemini_api_key:
            raise ValueError("GEMINI_API_KEY is required")
        self._model_name = _normalize_model_name(settings.gemini_model)
        if not self._model_name:
            raise ValueError("Gemini model name is required")
        genai.configure(api_key=settings.gemini_api_key)
        self._temperature = settings.temperature
        self._max_output_tokens = settings.max_output_tokens
        self._timeout = settings.llm_timeout_sec
        self._models: Dict[str, genai.GenerativeModel] = {}

    def complete(self, messages: Sequence[Message]) -> str:
        """Purpose: Generate the assistant's next reply for a conversation.
        Inputs/Outputs: Input is the ordered message log; output is reply text.
        Side Effects / State: One network call; may add a model to the cache.
        Dependencies: to_gemini_contents and genai.GenerativeModel.generate_content.
        Failure Modes: SDK/transport errors raise LLMClientError; a response without
            text (blocked or empty candidates) raises EmptyCompletionError.
        If Removed: The orchestration loop cannot reach the model.
        Testing Notes: Mock the model and check contents, config and error mapping.
        """
        system_instruction, contents = to_gemini_contents(messages)
        model = self._model_for(system_instruction)
        try:
            response = model.generate_content(
                contents,
                generation_config={
                    "temperature": self._temperature,
                    "max_output_tokens": self._max_output_tokens,
                },
                request_options={"timeout": self._timeout},
            )
        except Exception as exc:
            raise LLMClientError(f"Gemini request failed: {exc}") from exc

        try:
            text: Optional[str] = getattr(response, "text", None)
        except ValueError as exc:
            # The SDK raises when the candidate carries no text parts.
            raise EmptyCompletionError("Gemini response has no completion text") from exc
        text = (text or "").strip()
        if not text:
            raise EmptyCompletionError("Gemini response has no completion text")
        return text

    def _model_for(self, system_instruction: str) -> genai.GenerativeModel:
        # One cached model per distinct system instruction.
        key = f"{self._model_name}:{hash(system_instruction)}"
        if key not in self._models:
            self._models[key] = genai.GenerativeModel(
                self._model_name,
                system_instruction=system_instruction or None,
            )
        return self._models[key]


def to_gemini_contents(messages: Sequence[Message]) -> Tuple[str, List[dict]]:
    """Purpose: Convert the message log into Gemini system text and chat contents.
    Inputs/Outputs: Input is the ordered log; output is (system_instruction, contents).
    Side Effects / State: None; pure function.
    Dependencies: Message.to_llm and the GEMINI_ROLES mapping.
    Failure Modes: None; an empty log yields ("", []).
    If Removed: complete() cannot build its request.
    Testing Notes: Provenance never appears in the output; consecutive messages of
        one role are merged into a single content with one part each, and a
        request that would end on a model turn gets a closing user turn.
    """
    # Only role and content are transmitted; consecutive same-role turns share one entry.
    system_parts: List[str] = []
    contents: List[dict] = []
    for entry in (message.to_llm() for message in messages):
        if entry["role"] == Role.SYSTEM.value:
            system_parts.append(entry["content"])
            continue
        role = GEMINI_ROLES[entry["role"]]
        if contents and contents[-1]["role"] == role:
            contents[-1]["parts"].append({"text": entry["content"]})
        else:
            contents.append({"role": role, "parts": [{"text": entry["content"]}]})
    # Injected facts leave the log on a model turn; Gemini expects the user to speak last.
    if contents and contents[-1]["role"] == "model":
        contents.append({"role": "user", "parts": [{"text": CONTINUE_TURN_TEXT}]})
    return "\n\n".join(system_parts), contents


def _normalize_model_name(name: Optional[str]) -> str:
    """Strip a "models/" prefix and surrounding whitespace."""
    if not name:
        return ""
    cleaned = name.strip()
    if cleaned.startswith("models/"):
        return cleaned.split("/", 1)[1]
    return cleaned
