"""Grounding contract between the orchestration loop and the chat model.

The contract is a natural-language instruction, not a runtime gate: order
status, product availability and promotion details may only be presented when
they come from an assistant message tagged ``source=local``. The instruction is
versioned on disk so its wording can be regression-tested on its own.
"""

from __future__ import annotations

from pathlib import Path
from typing import Tuple

from .models import Message
from .prompt_loader import load_prompt

PROMPT_NAME = "grounding"

RESTRICTED_CATEGORIES: Tuple[str, ...] = (
    "order_status",
    "product_availability",
    "promotion",
)


class GroundingPolicy:
    """Versioned system instruction that steers the model toward local facts."""

    def __init__(self, prompts_dir: Path, version: str = "v1") -> None:
        self._version = version
        self._instruction = load_prompt(prompts_dir, PROMPT_NAME, version)

    @property
    def version(self) -> str:
        return self._version

    @property
    def instruction(self) -> str:
        return self._instruction

    @property
    def restricted_categories(self) -> Tuple[str, ...]:
        return RESTRICTED_CATEGORIES

    def system_message(self) -> Message:
        """The instruction as the conversation's opening system message."""
        return Message.system(self._instruction)

    @staticmethod
    def is_trusted(message: Message) -> bool:
        """Only locally resolved assistant facts may back restricted content."""
        return message.is_fact
