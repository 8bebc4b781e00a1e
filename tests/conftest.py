"""Shared pytest fixtures for the assistant core.

Provides fakes for every collaborator the orchestration loop talks to:
- a scripted chat model that records what it was sent
- a fixed clock for the promotion window
- in-memory order and product lookups that count their calls
"""

from datetime import datetime
from typing import Dict, List, Optional, Sequence, Tuple
from zoneinfo import ZoneInfo

import pytest

from gearguide.config import BASE_DIR
from gearguide.grounding import GroundingPolicy
from gearguide.models import Message, Order, Product
from gearguide.orchestrator import OrchestrationLoop
from gearguide.promotion import PromotionPolicy
from gearguide.resolver import LocalFactResolver

PACIFIC = ZoneInfo("America/Los_Angeles")
PROMPTS_DIR = BASE_DIR / "prompts"
TRACKING_TEMPLATE = "https://tools.usps.com/go/TrackConfirmAction?tLabels={tracking_number}"


class FakeChatModel:
    """Returns scripted replies, or raises when given an exception."""

    def __init__(self, reply="Happy trails! Here's what I found.") -> None:
        self.reply = reply
        self.calls: List[Tuple[Message, ...]] = []

    def complete(self, messages: Sequence[Message]) -> str:
        self.calls.append(tuple(messages))
        if isinstance(self.reply, BaseException):
            raise self.reply
        return self.reply


class FixedClock:
    def __init__(self, moment: datetime) -> None:
        self.moment = moment

    def now(self) -> datetime:
        return self.moment


class FakeOrderLookup:
    def __init__(self, orders: Optional[List[Order]] = None) -> None:
        self._orders: Dict[Tuple[str, str], Order] = {
            (order.email, order.order_number): order for order in orders or []
        }
        self.calls: List[Tuple[str, str]] = []

    def find(self, email: str, order_number: str) -> Optional[Order]:
        self.calls.append((email, order_number))
        return self._orders.get((email, order_number))


class FakeProductLookup:
    def __init__(self, products: Optional[List[Product]] = None) -> None:
        self._products = {product.sku: product for product in products or []}
        self.calls: List[str] = []

    def find(self, sku: str) -> Optional[Product]:
        self.calls.append(sku)
        return self._products.get(sku)


def pacific(hour: int, minute: int = 0) -> datetime:
    return datetime(2026, 10, 19, hour, minute, tzinfo=PACIFIC)


@pytest.fixture
def shipped_order() -> Order:
    return Order(
        email="jane@example.com",
        order_number="#AB123",
        status="Shipped",
        tracking_number="9400111202555842761023",
        customer_name="Jane Doe",
    )


@pytest.fixture
def order_lookup(shipped_order) -> FakeOrderLookup:
    pending = Order(email="alex@example.org", order_number="#W003", status="Processing")
    return FakeOrderLookup([shipped_order, pending])


@pytest.fixture
def product_lookup() -> FakeProductLookup:
    return FakeProductLookup(
        [
            Product(sku="SOWB004", name="Canyon Insulated Water Bottle", inventory_count=0),
            Product(sku="SOBP001", name="Summit Trail Backpack 45L", inventory_count=24),
        ]
    )


@pytest.fixture
def grounding() -> GroundingPolicy:
    return GroundingPolicy(PROMPTS_DIR, "v1")


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock(pacific(14))


@pytest.fixture
def chat_model() -> FakeChatModel:
    return FakeChatModel()


@pytest.fixture
def resolver(order_lookup, product_lookup) -> LocalFactResolver:
    return LocalFactResolver(order_lookup, product_lookup, TRACKING_TEMPLATE)


@pytest.fixture
def make_loop(grounding, resolver, clock, chat_model):
    """Build an OrchestrationLoop; keyword overrides replace the default fakes."""

    def _make(**overrides) -> OrchestrationLoop:
        promotion = overrides.pop("promotion", None) or PromotionPolicy(clock=overrides.pop("clock", clock))
        return OrchestrationLoop(
            session_id=overrides.pop("session_id", "test-session"),
            grounding=grounding,
            resolver=overrides.pop("resolver", resolver),
            promotion=promotion,
            chat_model=overrides.pop("chat_model", chat_model),
            **overrides,
        )

    return _make
