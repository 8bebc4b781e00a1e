from __future__ import annotations

from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator


class Role(str, Enum):
    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"


class Source(str, Enum):
    """Provenance tag carried by assistant messages."""
    LOCAL = "local"
    LLM = "llm"


class Message(BaseModel):
    """One immutable entry of the conversation log."""
    model_config = ConfigDict(frozen=True)

    role: Role
    content: str
    source: Optional[Source] = None

    @model_validator(mode="after")
    def check_source(self) -> "Message":
        # Provenance exists only on assistant messages, and always there.
        if self.role is Role.ASSISTANT and self.source is None:
            raise ValueError("assistant messages require a source")
        if self.role is not Role.ASSISTANT and self.source is not None:
            raise ValueError(f"{self.role.value} messages cannot carry a source")
        return self

    @classmethod
    def system(cls, content: str) -> "Message":
        return cls(role=Role.SYSTEM, content=content)

    @classmethod
    def user(cls, content: str) -> "Message":
        return cls(role=Role.USER, content=content)

    @classmethod
    def fact(cls, content: str) -> "Message":
        """Assistant message resolved from a trusted local lookup."""
        return cls(role=Role.ASSISTANT, content=content, source=Source.LOCAL)

    @classmethod
    def reply(cls, content: str) -> "Message":
        """Assistant message generated by the chat model."""
        return cls(role=Role.ASSISTANT, content=content, source=Source.LLM)

    @property
    def is_fact(self) -> bool:
        return self.role is Role.ASSISTANT and self.source is Source.LOCAL

    def to_llm(self) -> Dict[str, str]:
        """Role and content only; the source tag never leaves the process."""
        return {"role": self.role.value, "content": self.content}


class Order(BaseModel):
    """Order record as kept by the order catalog."""
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    email: str = Field(alias="Email")
    order_number: str = Field(alias="OrderNumber")
    status: str = Field(alias="Status")
    tracking_number: Optional[str] = Field(default=None, alias="TrackingNumber")
    customer_name: Optional[str] = Field(default=None, alias="CustomerName")
    products_ordered: List[str] = Field(default_factory=list, alias="ProductsOrdered")


class Product(BaseModel):
    """Product record as kept by the product catalog."""
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    sku: str = Field(alias="SKU")
    name: str = Field(alias="ProductName")
    inventory_count: int = Field(alias="Inventory", ge=0)


class ChatRequest(BaseModel):
    """Request payload for chat API."""
    session_id: Optional[str] = Field(default=None)
    message: str


class MessageView(BaseModel):
    """Transcript entry rendered by the UI."""
    role: Role
    content: str
    source: Optional[Source] = None


class ChatResponse(BaseModel):
    """Response payload returned by the chat API."""
    session_id: str
    accepted: bool
    failed: bool
    reply: Optional[str] = None
    messages: List[MessageView]
    events: List[Dict[str, str]]


class SessionSummary(BaseModel):
    """Lightweight session summary for sidebar listing."""
    session_id: str
    title: str
    updated_at: float
